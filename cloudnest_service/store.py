"""JSON-document metadata store.

The whole collection lives in one document shaped ``{"files": [...]}``,
newest record first. Reads are fail-open: a missing or damaged document
loads as an empty collection. Writes replace the document whole.
Mutations go through ``MetadataStore.edit`` which serializes
``load -> mutate -> save`` behind an asyncio lock, so two requests in the
same process cannot overwrite each other's changes. Separate processes
sharing one document are still not coordinated.
"""
import asyncio
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List

import aiofiles
import aiofiles.os

import schemas
from logging_config import get_logger

logger = get_logger(__name__)

class MetadataStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not await aiofiles.os.path.exists(self.path):
            logger.info(f"Creating empty metadata document at {self.path}")
            await self.save([])

    async def load_result(self) -> schemas.LoadResult:
        if not await aiofiles.os.path.exists(self.path):
            logger.debug(f"Metadata document {self.path} does not exist yet.")
            return schemas.LoadResult(status=schemas.LoadStatus.MISSING)
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
            document = schemas.MetadataDocument.model_validate_json(raw)
        except (OSError, ValueError) as e:
            # ValueError covers JSON, unicode and pydantic validation errors.
            logger.warning(f"Metadata document {self.path} is unreadable or malformed, using an empty collection: {e}")
            return schemas.LoadResult(status=schemas.LoadStatus.RECOVERED, error=str(e))
        return schemas.LoadResult(status=schemas.LoadStatus.LOADED, files=document.files)

    async def load(self) -> List[schemas.FileRecord]:
        result = await self.load_result()
        return result.files

    async def save(self, files: List[schemas.FileRecord]) -> None:
        document = schemas.MetadataDocument(files=files)
        payload = document.model_dump_json(by_alias=True, indent=2)
        # Written next to the target and renamed over it, so a crash mid-write
        # leaves the previous document intact.
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(payload)
        await aiofiles.os.replace(tmp_path, self.path)
        logger.debug(f"Saved {len(files)} record(s) to {self.path}")

    @asynccontextmanager
    async def edit(self) -> AsyncIterator[List[schemas.FileRecord]]:
        """Hold the writer lock across load, mutation and save.

        The yielded list is saved when the block exits normally. If the
        block raises, nothing is written. A document that could not be
        parsed is moved aside before it is replaced.
        """
        async with self._lock:
            result = await self.load_result()
            files = result.files
            yield files
            if result.status == schemas.LoadStatus.RECOVERED:
                await self.set_aside()
            await self.save(files)

    async def set_aside(self) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        backup_path = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        await aiofiles.os.replace(self.path, backup_path)
        logger.error(f"Moved unreadable metadata document {self.path} to {backup_path}")
        return backup_path

_stores: Dict[Path, MetadataStore] = {}

def get_metadata_store(path: Path) -> MetadataStore:
    key = Path(path).resolve()
    if key not in _stores:
        _stores[key] = MetadataStore(key)
    return _stores[key]
