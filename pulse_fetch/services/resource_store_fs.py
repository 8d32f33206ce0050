from __future__ import annotations

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any

from loguru import logger

from pulse_fetch.errors import InvalidResourceUriError, ResourceNotFoundError
from pulse_fetch.models.resources import (
    MultiResourceUris,
    MultiResourceWrite,
    ResourceContent,
    ResourceMetadata,
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

URI_SCHEME = "file://"
_FRONT_MATTER = re.compile(r"\A---\n(.*?)\n---\n", re.DOTALL)


def render_resource_file(metadata: ResourceMetadata, content: str) -> str:
    lines = [f"{key}: {json.dumps(value, ensure_ascii=False)}" for key, value in metadata.to_dict().items()]
    return "---\n" + "\n".join(lines) + "\n---\n\n" + content


def parse_resource_file(raw: str) -> tuple[ResourceMetadata, str]:
    match = _FRONT_MATTER.match(raw)
    if not match:
        raise ValueError("Invalid resource file: missing front matter")

    payload: dict[str, Any] = {}
    for line in match.group(1).splitlines():
        key, sep, value = line.partition(": ")
        if not sep or not key:
            continue
        try:
            payload[key] = json.loads(value)
        except json.JSONDecodeError:
            payload[key] = value

    body = raw[match.end():]
    if body.startswith("\n"):
        body = body[1:]
    return ResourceMetadata.from_dict(payload), body


class FilesystemResourceStorage:
    """Resources as markdown files with JSON-valued front matter, one file per write."""

    def __init__(self, *, root_dir: str):
        self.root_dir = Path(root_dir).expanduser().resolve()
        self._clock = WriteClock()

    def _uri_to_path(self, uri: str) -> Path:
        if not uri.startswith(URI_SCHEME):
            raise InvalidResourceUriError(uri, "file")
        path = Path(uri[len(URI_SCHEME):]).resolve()
        if not path.is_relative_to(self.root_dir):
            raise InvalidResourceUriError(uri, "file")
        return path

    def _to_resource(self, path: Path, metadata: ResourceMetadata) -> StoredResource:
        return StoredResource(
            uri=URI_SCHEME + str(path),
            name=resource_name(metadata),
            description=describe(metadata),
            mime_type=mime_type_for(metadata),
            metadata=metadata,
        )

    def _write_file(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)

    async def write(self, url: str, content: str, metadata: dict[str, Any] | None = None) -> str:
        ts = self._clock.next()
        meta = build_metadata(url, ts, metadata)
        path = self.root_dir / f"{resource_id(url, meta.resource_type, ts)}.md"
        await asyncio.to_thread(self._write_file, path, render_resource_file(meta, content))
        return URI_SCHEME + str(path)

    async def write_multi(self, data: MultiResourceWrite) -> MultiResourceUris:
        written: dict[str, str] = {}
        for resource_type, content, metadata in multi_write_parts(data):
            written[resource_type] = await self.write(data.url, content, metadata)
        return MultiResourceUris(**written)

    async def read(self, uri: str) -> ResourceContent:
        path = self._uri_to_path(uri)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            raise ResourceNotFoundError(uri) from None
        metadata, body = parse_resource_file(raw)
        return ResourceContent(uri=uri, mime_type=mime_type_for(metadata), text=body)

    async def exists(self, uri: str) -> bool:
        try:
            path = self._uri_to_path(uri)
        except InvalidResourceUriError:
            return False
        return await asyncio.to_thread(path.is_file)

    async def delete(self, uri: str) -> None:
        path = self._uri_to_path(uri)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            raise ResourceNotFoundError(uri) from None

    def _scan(self) -> list[StoredResource]:
        if not self.root_dir.exists():
            return []
        resources: list[StoredResource] = []
        for path in sorted(self.root_dir.rglob("*.md")):
            try:
                metadata, _ = parse_resource_file(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning(f"Skipping unreadable resource file {path}: {exc}")
                continue
            resources.append(self._to_resource(path, metadata))
        return resources

    async def list_resources(self) -> list[StoredResource]:
        return await asyncio.to_thread(self._scan)

    async def find_by_url(self, url: str) -> list[StoredResource]:
        resources = await self.list_resources()
        return newest_first(r for r in resources if r.metadata.url == url)

    async def find_by_url_and_extract(
        self, url: str, extraction_prompt: str | None = None
    ) -> list[StoredResource]:
        return [r for r in await self.find_by_url(url) if matches_extract(r, extraction_prompt)]
