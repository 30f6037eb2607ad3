import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles.os

import schemas
import storage
from config import Settings
from exceptions import (
    BadRequestError,
    FileRemovalAdvisory,
    InternalStorageError,
    NotFoundError,
    UnsupportedMediaTypeError,
)
from logging_config import get_logger
from store import MetadataStore

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

def normalize_mime_type(declared_mime_type: Optional[str]) -> str:
    mime_type = (declared_mime_type or "").split(";", 1)[0].strip().lower()
    return mime_type or DEFAULT_MIME_TYPE

def reject_constant(name: str):
    raise BadRequestError(f"Invalid metadata JSON: {name} is not allowed")

def parse_user_metadata(metadata_json: Optional[str]) -> Dict[str, Any]:
    if not metadata_json:
        return {}
    try:
        value = json.loads(metadata_json, parse_constant=reject_constant)
    except json.JSONDecodeError as e:
        raise BadRequestError(f"Invalid metadata JSON: {e.msg}") from e
    if not isinstance(value, dict):
        raise BadRequestError("Metadata must be a JSON object")
    return value

async def create_file(
    store: MetadataStore,
    current_settings: Settings,
    stream: Optional[storage.ByteStream],
    declared_mime_type: Optional[str],
    declared_original_name: Optional[str],
    metadata_json: Optional[str] = None
) -> schemas.FileRecord:
    if stream is None:
        raise BadRequestError("No file uploaded")

    mime_type = normalize_mime_type(declared_mime_type)
    if mime_type not in current_settings.allowed_mime_types:
        raise UnsupportedMediaTypeError(f"File type '{mime_type}' is not allowed")
    user_metadata = parse_user_metadata(metadata_json)

    uploads_dir = Path(current_settings.UPLOADS_DIR)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    stored_name = storage.generate_stored_name(declared_original_name)
    local_file_path = uploads_dir / stored_name

    logger.info(f"Saving upload '{declared_original_name}' to {local_file_path}")
    try:
        size_bytes = await storage.write_stream(
            stream,
            local_file_path,
            max_bytes=current_settings.MAX_FILE_SIZE_BYTES,
            chunk_size=current_settings.CHUNK_SIZE_BYTES
        )
    except OSError as e:
        logger.exception(f"Error saving file '{declared_original_name}' to {local_file_path}")
        raise InternalStorageError(f"Error saving file: {e}") from e

    record = schemas.FileRecord(
        id=str(uuid.uuid4()),
        stored_name=stored_name,
        original_name=declared_original_name or stored_name,
        mime_type=mime_type,
        size_bytes=size_bytes,
        path=f"/uploads/{stored_name}",
        uploaded_at=datetime.now(timezone.utc),
        metadata=user_metadata
    )

    try:
        async with store.edit() as files:
            files.insert(0, record)
    except OSError as e:
        logger.exception(f"Could not persist metadata for {stored_name}; the stored file is orphaned")
        raise InternalStorageError("Error saving file metadata") from e

    logger.info(f"Stored '{record.original_name}' as {stored_name} (ID: {record.id}, {size_bytes} bytes)")
    return record

async def list_files(store: MetadataStore) -> List[schemas.FileRecord]:
    return await store.load()

async def get_file_by_id(store: MetadataStore, file_id: str) -> schemas.FileRecord:
    for record in await store.load():
        if record.id == file_id:
            return record
    raise NotFoundError("Not found")

async def get_file_by_stored_name(store: MetadataStore, stored_name: str) -> Optional[schemas.FileRecord]:
    for record in await store.load():
        if record.stored_name == stored_name:
            return record
    return None

async def delete_file(store: MetadataStore, current_settings: Settings, file_id: str) -> schemas.DeleteResult:
    try:
        async with store.edit() as files:
            index = next((i for i, r in enumerate(files) if r.id == file_id), None)
            if index is None:
                raise NotFoundError("Not found")
            record = files.pop(index)
    except OSError as e:
        logger.exception(f"Could not persist metadata while deleting {file_id}")
        raise InternalStorageError("Error saving file metadata") from e
    logger.info(f"Removed metadata for {file_id} ({record.stored_name})")

    # The record is gone from the API at this point; disk cleanup is best effort.
    try:
        local_file_path = storage.resolve_stored_path(current_settings.UPLOADS_DIR, record.stored_name)
        await storage.remove_stored_file(local_file_path)
    except (OSError, NotFoundError) as e:
        advisory = FileRemovalAdvisory(record.stored_name, str(e))
        logger.error(str(advisory))
        return schemas.DeleteResult(record=record, file_removed=False, error=str(advisory))
    return schemas.DeleteResult(record=record, file_removed=True)

async def resolve_stored_file(current_settings: Settings, stored_name: str) -> Path:
    local_file_path = storage.resolve_stored_path(current_settings.UPLOADS_DIR, stored_name)
    if not await aiofiles.os.path.isfile(local_file_path):
        raise NotFoundError("Not found")
    return local_file_path
