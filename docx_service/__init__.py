"""
DOCX Conversion Service - Word to PDF conversion.

Converts uploaded .doc/.docx documents to PDF by extracting their content
as HTML and printing it with Playwright/Chromium. Every request owns its
temporary files and removes them before it finishes.
"""

__version__ = "0.1.0"
