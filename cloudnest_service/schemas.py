import enum
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

class FileRecord(BaseModel):
    id: str
    stored_name: str = Field(alias="filename")
    original_name: str = Field(alias="originalname")
    mime_type: str = Field(alias="mimetype")
    size_bytes: int = Field(alias="size", ge=0)
    path: str
    uploaded_at: datetime = Field(alias="uploadedAt")
    metadata: Any = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

class MetadataDocument(BaseModel):
    files: List[FileRecord] = Field(default_factory=list)

class UploadResponse(BaseModel):
    success: bool = True
    file: FileRecord

class DeleteResponse(BaseModel):
    success: bool = True

class LoadStatus(str, enum.Enum):
    LOADED = "loaded"
    MISSING = "missing"
    RECOVERED = "recovered"

class LoadResult(BaseModel):
    status: LoadStatus
    files: List[FileRecord] = Field(default_factory=list)
    error: Optional[str] = None

class DeleteResult(BaseModel):
    record: FileRecord
    file_removed: bool
    error: Optional[str] = None
