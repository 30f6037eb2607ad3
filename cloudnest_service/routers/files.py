from typing import List, Optional

from fastapi import APIRouter, UploadFile, File, Form, Depends
from fastapi.responses import FileResponse

import crud, schemas
from auth import require_token
from config import Settings, get_settings
from exceptions import BadRequestError
from logging_config import get_logger
from store import MetadataStore, get_metadata_store

logger = get_logger(__name__)

router = APIRouter(
    tags=["files"],
)

def get_store(current_settings: Settings = Depends(get_settings)) -> MetadataStore:
    return get_metadata_store(current_settings.METADATA_FILE)

@router.post("/upload", response_model=schemas.UploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    metadata: Optional[str] = Form(None),
    store: MetadataStore = Depends(get_store),
    current_settings: Settings = Depends(get_settings)
):
    if file is None:
        logger.warning("Upload request without a file part")
        raise BadRequestError("No file uploaded")

    logger.info(f"Upload request for filename: '{file.filename}', content_type: '{file.content_type}'")
    try:
        record = await crud.create_file(
            store,
            current_settings,
            file,
            declared_mime_type=file.content_type,
            declared_original_name=file.filename,
            metadata_json=metadata
        )
    finally:
        await file.close()
    return schemas.UploadResponse(file=record)

@router.get("/files", response_model=List[schemas.FileRecord])
async def list_files(store: MetadataStore = Depends(get_store)):
    return await crud.list_files(store)

@router.get("/files/{file_id}", response_model=schemas.FileRecord)
async def get_file(file_id: str, store: MetadataStore = Depends(get_store)):
    return await crud.get_file_by_id(store, file_id)

@router.delete("/files/{file_id}", response_model=schemas.DeleteResponse, dependencies=[Depends(require_token)])
async def delete_file(
    file_id: str,
    store: MetadataStore = Depends(get_store),
    current_settings: Settings = Depends(get_settings)
):
    logger.info(f"Delete request for file_id: {file_id}")
    result = await crud.delete_file(store, current_settings, file_id)
    if not result.file_removed:
        logger.warning(f"Deleted {file_id} from metadata but its file was not removed: {result.error}")
    return schemas.DeleteResponse()

@router.get("/uploads/{stored_name}")
async def download_file(
    stored_name: str,
    store: MetadataStore = Depends(get_store),
    current_settings: Settings = Depends(get_settings)
):
    logger.info(f"Download request for {stored_name}")
    file_path_on_disk = await crud.resolve_stored_file(current_settings, stored_name)
    record = await crud.get_file_by_stored_name(store, stored_name)
    if record is None:
        logger.debug(f"No metadata entry for {stored_name}, serving without a download name")
        return FileResponse(path=file_path_on_disk)
    return FileResponse(
        path=file_path_on_disk,
        filename=record.original_name,
        media_type=record.mime_type
    )
