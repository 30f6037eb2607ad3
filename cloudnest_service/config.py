from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import Optional, Set

env_path = Path(__file__).parent / ".env"

DEFAULT_ALLOWED_MIME_TYPES = ",".join([
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/json",
    "application/zip",
    "text/plain",
    "text/csv",
])

class Settings(BaseSettings):
    UPLOAD_HOST: str = "0.0.0.0"
    UPLOAD_PORT: int = 4000
    UPLOADS_DIR: Path = Path("uploads")
    METADATA_FILE: Path = Path("metadata.json")
    MAX_FILE_SIZE_BYTES: int = 10 * 1024 * 1024
    ALLOWED_MIME_TYPES: str = DEFAULT_ALLOWED_MIME_TYPES
    AUTH_TOKEN: Optional[str] = None
    CHUNK_SIZE_BYTES: int = 1024 * 1024
    # Room for multipart boundaries, part headers and the metadata field.
    UPLOAD_OVERHEAD_BYTES: int = 1024 * 1024 + 64 * 1024
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=env_path, env_file_encoding='utf-8', extra='ignore')

    @property
    def allowed_mime_types(self) -> Set[str]:
        return {m.strip().lower() for m in self.ALLOWED_MIME_TYPES.split(",") if m.strip()}

settings = Settings()

def get_settings() -> Settings:
    return settings
