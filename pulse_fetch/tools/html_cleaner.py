from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

NOISE_TAGS = (
    "script",
    "style",
    "noscript",
    "iframe",
    "svg",
    "nav",
    "footer",
    "header",
    "aside",
    "form",
)

_BASE64_IMAGE = re.compile(r"data:image/[a-zA-Z+.-]+;base64,[A-Za-z0-9+/=]+")


@dataclass
class CleanedContent:
    title: str
    text: str


def looks_like_html(content: str) -> bool:
    head = content[:2000].lower()
    return "<html" in head or "<body" in head or "<!doctype html" in head or "<div" in head


def normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def remove_base64_images(text: str) -> str:
    return _BASE64_IMAGE.sub("", text)


def clean_html(raw_content: str, *, only_main_content: bool = True) -> CleanedContent:
    """Reduce a scraped page to readable text.

    Non-HTML payloads (markdown, plain text) are only whitespace-normalized.
    """
    if not looks_like_html(raw_content):
        return CleanedContent(title="", text=normalize_text(remove_base64_images(raw_content)))

    soup = BeautifulSoup(raw_content, "html.parser")
    title = normalize_text(soup.title.get_text()) if soup.title else ""

    for tag in soup(NOISE_TAGS if only_main_content else ("script", "style", "noscript")):
        tag.decompose()

    root = soup
    if only_main_content:
        root = soup.find("main") or soup.find("article") or soup.body or soup

    text = root.get_text("\n")
    return CleanedContent(title=title, text=normalize_text(remove_base64_images(text)))
