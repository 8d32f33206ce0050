from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

ResourceType = Literal["raw", "cleaned", "extracted"]
RESOURCE_TYPES: tuple[ResourceType, ...] = ("raw", "cleaned", "extracted")


@dataclass(slots=True)
class ResourceMetadata:
    url: str
    timestamp: str
    resource_type: ResourceType = "raw"
    title: str | None = None
    content_type: str | None = None
    extraction_prompt: str | None = None
    source: str | None = None
    description: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        extra = payload.pop("extra")
        payload = {k: v for k, v in payload.items() if v is not None}
        payload.update(extra)
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ResourceMetadata:
        known = {
            "url",
            "timestamp",
            "resource_type",
            "title",
            "content_type",
            "extraction_prompt",
            "source",
            "description",
        }
        resource_type = payload.get("resource_type") or "raw"
        if resource_type not in RESOURCE_TYPES:
            resource_type = "raw"
        return cls(
            url=str(payload.get("url") or ""),
            timestamp=str(payload.get("timestamp") or ""),
            resource_type=resource_type,
            title=payload.get("title"),
            content_type=payload.get("content_type"),
            extraction_prompt=payload.get("extraction_prompt"),
            source=payload.get("source"),
            description=payload.get("description"),
            extra={k: v for k, v in payload.items() if k not in known},
        )


@dataclass(slots=True)
class StoredResource:
    uri: str
    name: str
    description: str
    mime_type: str
    metadata: ResourceMetadata


@dataclass(slots=True)
class ResourceContent:
    uri: str
    mime_type: str
    text: str


@dataclass(slots=True)
class MultiResourceWrite:
    url: str
    raw: str
    cleaned: str | None = None
    extracted: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class MultiResourceUris:
    raw: str
    cleaned: str | None = None
    extracted: str | None = None
