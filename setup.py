"""
Setup script for the docx conversion service.

Allows development installation with `pip install -e .`
(`pip install -e .[test]` for the test tools).

Chromium for Playwright is installed separately:
`playwright install --with-deps chromium`
"""

from setuptools import setup, find_packages

setup(
    name="docx-pdf-service",
    version="0.1.0",
    packages=find_packages(include=["docx_service", "docx_service.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "python-multipart>=0.0.9",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "playwright>=1.40",
        "mammoth>=1.6",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "httpx>=0.25",
            "python-docx>=1.1",
        ],
    },
)
