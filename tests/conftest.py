from __future__ import annotations

import os

# Settings are read once at import; keep test runs off disk and away from real keys.
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("STRATEGY_CONFIG_BACKEND", "memory")
os.environ.setdefault("RESOURCE_STORAGE", "memory")
os.environ["FIRECRAWL_API_KEY"] = ""
os.environ["BRIGHTDATA_API_KEY"] = ""
os.environ["EXTRACT_LLM_API_KEY"] = ""

import pytest

from pulse_fetch.models.scrape import BackendOutcome, StrategyId
from pulse_fetch.scraping.clients import ScrapingClients


class FakeBackend:
    """Backend double that records the order in which backends were called."""

    def __init__(self, name: str, outcome: BackendOutcome | Exception, calls: list[str]):
        self.name = name
        self.outcome = outcome
        self.calls = calls
        self.timeouts: list[int | None] = []

    async def scrape(self, url: str, *, timeout_ms: int | None = None) -> BackendOutcome:
        self.calls.append(self.name)
        self.timeouts.append(timeout_ms)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def ok(content: str = "<html><body>ok</body></html>") -> BackendOutcome:
    return BackendOutcome(success=True, content=content, status_code=200)


def failed(error: str = "boom", status_code: int | None = None) -> BackendOutcome:
    return BackendOutcome(success=False, error=error, status_code=status_code)


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def make_clients(calls):
    """Build a registry; pass None for a managed backend to leave it unconfigured."""

    def _make(
        native: BackendOutcome | Exception,
        firecrawl: BackendOutcome | Exception | None = None,
        brightdata: BackendOutcome | Exception | None = None,
    ) -> ScrapingClients:
        managed = {}
        if firecrawl is not None:
            managed[StrategyId.FIRECRAWL] = FakeBackend("firecrawl", firecrawl, calls)
        if brightdata is not None:
            managed[StrategyId.BRIGHTDATA] = FakeBackend("brightdata", brightdata, calls)
        return ScrapingClients(native=FakeBackend("native", native, calls), managed=managed)

    return _make


def make_pdf(*page_texts: str) -> bytes:
    """Smallest valid PDF with one Helvetica text line per page."""
    page_count = len(page_texts)
    font_id = 3 + 2 * page_count
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids ["
            + " ".join(f"{3 + 2 * i} 0 R" for i in range(page_count))
            + f"] /Count {page_count} >>"
        ).encode(),
    ]
    for i, text in enumerate(page_texts):
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode()
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {4 + 2 * i} 0 R >>"
            ).encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)
