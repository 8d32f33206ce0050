from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Protocol
from urllib.parse import urlsplit

from pulse_fetch.config import settings
from pulse_fetch.models.resources import (
    MultiResourceUris,
    MultiResourceWrite,
    ResourceContent,
    ResourceMetadata,
    ResourceType,
    StoredResource,
)
from pulse_fetch.tools.web_utils import sanitize_url_fragment


class ResourceStorage(Protocol):
    async def write(self, url: str, content: str, metadata: dict[str, Any] | None = None) -> str: ...
    async def write_multi(self, data: MultiResourceWrite) -> MultiResourceUris: ...
    async def read(self, uri: str) -> ResourceContent: ...
    async def exists(self, uri: str) -> bool: ...
    async def delete(self, uri: str) -> None: ...
    async def list_resources(self) -> list[StoredResource]: ...
    async def find_by_url(self, url: str) -> list[StoredResource]: ...
    async def find_by_url_and_extract(
        self, url: str, extraction_prompt: str | None = None
    ) -> list[StoredResource]: ...


class WriteClock:
    """Hands out strictly increasing UTC timestamps, one per write."""

    def __init__(self) -> None:
        self._last: datetime | None = None

    def next(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last is not None and now <= self._last:
            now = self._last + timedelta(microseconds=1)
        self._last = now
        return now


def format_timestamp(ts: datetime) -> str:
    return ts.isoformat(timespec="microseconds")


def resource_id(url: str, resource_type: ResourceType, ts: datetime) -> str:
    """Unique per write: type, URL fragment, microsecond timestamp, random suffix."""
    stamp = ts.strftime("%Y%m%dT%H%M%S%f")
    return f"{resource_type}/{sanitize_url_fragment(url)}_{stamp}_{uuid.uuid4().hex[:8]}"


def build_metadata(url: str, ts: datetime, metadata: dict[str, Any] | None) -> ResourceMetadata:
    payload = dict(metadata or {})
    if "extract" in payload and "extraction_prompt" not in payload:
        payload["extraction_prompt"] = payload.pop("extract")
    payload.pop("extract", None)
    payload["url"] = url
    payload["timestamp"] = format_timestamp(ts)
    return ResourceMetadata.from_dict(payload)


def resource_name(metadata: ResourceMetadata) -> str:
    hostname = urlsplit(metadata.url).hostname or sanitize_url_fragment(metadata.url)
    return f"{metadata.resource_type}/{hostname}_{metadata.timestamp[:10]}"


def describe(metadata: ResourceMetadata) -> str:
    return metadata.description or f"Fetched content from {metadata.url}"


def multi_write_parts(data: MultiResourceWrite) -> list[tuple[ResourceType, str, dict[str, Any]]]:
    """Expand a multi-variant write into per-variant (type, content, metadata).

    Only the extracted variant carries the extraction prompt.
    """
    base = dict(data.metadata)
    prompt = base.pop("extraction_prompt", None) or base.pop("extract", None)
    base.pop("extract", None)

    parts: list[tuple[ResourceType, str, dict[str, Any]]] = [
        ("raw", data.raw, {**base, "resource_type": "raw"}),
    ]
    if data.cleaned:
        parts.append(("cleaned", data.cleaned, {**base, "resource_type": "cleaned"}))
    if data.extracted:
        extracted_meta = {**base, "resource_type": "extracted"}
        if prompt:
            extracted_meta["extraction_prompt"] = prompt
        parts.append(("extracted", data.extracted, extracted_meta))
    return parts


def mime_type_for(metadata: ResourceMetadata) -> str:
    """Raw variants keep the origin media type. PDF text is stored as markdown."""
    if metadata.resource_type != "raw" or not metadata.content_type:
        return "text/plain"
    if metadata.content_type == "application/pdf":
        return "text/markdown"
    return metadata.content_type


def newest_first(resources: Iterable[StoredResource]) -> list[StoredResource]:
    return sorted(resources, key=lambda r: r.metadata.timestamp, reverse=True)


def matches_extract(resource: StoredResource, extraction_prompt: str | None) -> bool:
    if extraction_prompt is None:
        return not resource.metadata.extraction_prompt
    return resource.metadata.extraction_prompt == extraction_prompt


_storage: ResourceStorage | None = None


def get_resource_storage() -> ResourceStorage:
    global _storage
    if _storage is None:
        backend = settings.resource_storage.lower().strip()
        if backend == "memory":
            from pulse_fetch.services.resource_store_memory import MemoryResourceStorage

            _storage = MemoryResourceStorage()
        elif backend == "filesystem":
            from pulse_fetch.services.resource_store_fs import FilesystemResourceStorage

            _storage = FilesystemResourceStorage(root_dir=settings.resource_storage_root)
        else:
            raise ValueError(f"Unsupported RESOURCE_STORAGE: {settings.resource_storage}")
    return _storage
