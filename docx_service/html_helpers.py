"""
Helper functions for building the printable HTML document.

The extracted Word markup is wrapped in a fixed document shell so Chromium
paginates it consistently, and output names are derived from the upload.
"""

import html
import re
from pathlib import Path

_WORD_SUFFIX_RE = re.compile(r"\.(docx|doc)$", re.IGNORECASE)

DEFAULT_PDF_FILENAME = "documento.pdf"


def to_pdf_filename(original_filename: str) -> str:
    """
    Derive the download name for the converted document.

    Path components sent by the client are dropped, and a trailing
    .doc/.docx (any case) is replaced by .pdf.

    Example:
        >>> to_pdf_filename("Informe Final.DOCX")
        "Informe Final.pdf"
    """
    if not original_filename:
        return DEFAULT_PDF_FILENAME

    name = Path(original_filename.replace("\\", "/")).name.strip()
    if not name:
        return DEFAULT_PDF_FILENAME

    if _WORD_SUFFIX_RE.search(name):
        pdf_name = _WORD_SUFFIX_RE.sub(".pdf", name)
    else:
        pdf_name = f"{name}.pdf"

    return DEFAULT_PDF_FILENAME if pdf_name == ".pdf" else pdf_name


def derive_output_path(input_path: Path) -> Path:
    """Output artifact path: same directory and base name, .pdf extension."""
    input_path = Path(input_path)
    return input_path.with_name(f"{input_path.stem}.pdf")


def build_print_html(content_html: str, title: str = "Documento") -> str:
    """
    Build complete HTML document for PDF rendering.

    Includes base typography, image scaling, table borders and a fixed
    content width. The content is inserted as-is.

    Args:
        content_html: HTML fragment extracted from the Word document
        title: Document title (escaped)

    Returns:
        Complete HTML document string
    """
    return f"""<!DOCTYPE html>
<html lang="es">
<head>
    <meta charset="UTF-8">
    <title>{html.escape(title)}</title>
    <style>
        body {{
            font-family: Arial, Helvetica, sans-serif;
            font-size: 12pt;
            line-height: 1.6;
            color: #000;
            background: white;
            max-width: 800px;
            margin: 0 auto;
            padding: 20px;
        }}

        h1, h2, h3, h4, h5, h6 {{
            line-height: 1.3;
            margin: 1em 0 0.5em;
        }}

        p {{
            margin: 0 0 0.8em;
        }}

        img {{
            max-width: 100%;
            height: auto;
        }}

        table {{
            border-collapse: collapse;
            width: 100%;
            margin: 1em 0;
        }}

        table, th, td {{
            border: 1px solid #000;
        }}

        th, td {{
            padding: 6px 8px;
            vertical-align: top;
        }}

        ul, ol {{
            padding-left: 1.5em;
        }}
    </style>
</head>
<body>
{content_html}
</body>
</html>
"""
