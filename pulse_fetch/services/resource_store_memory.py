from __future__ import annotations

from typing import Any

from pulse_fetch.errors import ResourceNotFoundError
from pulse_fetch.models.resources import (
    MultiResourceUris,
    MultiResourceWrite,
    ResourceContent,
    StoredResource,
)
from pulse_fetch.services.resource_store import (
    WriteClock,
    build_metadata,
    describe,
    matches_extract,
    mime_type_for,
    multi_write_parts,
    newest_first,
    resource_id,
    resource_name,
)

URI_SCHEME = "memory://"


class MemoryResourceStorage:
    def __init__(self) -> None:
        self._resources: dict[str, tuple[StoredResource, str]] = {}
        self._clock = WriteClock()

    async def write(self, url: str, content: str, metadata: dict[str, Any] | None = None) -> str:
        ts = self._clock.next()
        meta = build_metadata(url, ts, metadata)
        uri = URI_SCHEME + resource_id(url, meta.resource_type, ts)
        resource = StoredResource(
            uri=uri,
            name=resource_name(meta),
            description=describe(meta),
            mime_type=mime_type_for(meta),
            metadata=meta,
        )
        self._resources[uri] = (resource, content)
        return uri

    async def write_multi(self, data: MultiResourceWrite) -> MultiResourceUris:
        written: dict[str, str] = {}
        for resource_type, content, metadata in multi_write_parts(data):
            written[resource_type] = await self.write(data.url, content, metadata)
        return MultiResourceUris(**written)

    async def read(self, uri: str) -> ResourceContent:
        entry = self._resources.get(uri)
        if entry is None:
            raise ResourceNotFoundError(uri)
        resource, content = entry
        return ResourceContent(uri=uri, mime_type=resource.mime_type, text=content)

    async def exists(self, uri: str) -> bool:
        return uri in self._resources

    async def delete(self, uri: str) -> None:
        if uri not in self._resources:
            raise ResourceNotFoundError(uri)
        del self._resources[uri]

    async def list_resources(self) -> list[StoredResource]:
        return [resource for resource, _ in self._resources.values()]

    async def find_by_url(self, url: str) -> list[StoredResource]:
        return newest_first(
            resource for resource, _ in self._resources.values() if resource.metadata.url == url
        )

    async def find_by_url_and_extract(
        self, url: str, extraction_prompt: str | None = None
    ) -> list[StoredResource]:
        return [r for r in await self.find_by_url(url) if matches_extract(r, extraction_prompt)]
