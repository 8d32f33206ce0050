from __future__ import annotations

import io
from dataclasses import dataclass

import pdfplumber

from pulse_fetch.tools.html_cleaner import normalize_text

PDF_MEDIA_TYPE = "application/pdf"


@dataclass
class ParsedPdf:
    text: str
    page_count: int


def parse_pdf(data: bytes) -> ParsedPdf:
    """Extract text from a PDF document as markdown.

    Multi-page documents get a "## Page N" header per page with text.
    Raises ValueError when the document cannot be read.
    """
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            pages = [normalize_text(page.extract_text() or "") for page in pdf.pages]
    except Exception as exc:
        # pdfminer errors share no common base class
        raise ValueError(f"Failed to parse PDF: {exc}") from exc

    if len(pages) > 1:
        text = "\n\n---\n\n".join(
            f"## Page {number}\n\n{page_text}" for number, page_text in enumerate(pages, 1) if page_text
        )
    else:
        text = pages[0] if pages else ""
    return ParsedPdf(text=text, page_count=len(pages))
