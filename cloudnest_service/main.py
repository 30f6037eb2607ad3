from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from routers import files as files_router
from exceptions import UploadServiceError
from logging_config import get_logger
from config import settings
from store import get_metadata_store

logger = get_logger(__name__)

async def prepare_storage():
    settings.UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    await get_metadata_store(settings.METADATA_FILE).initialize()
    logger.info("Upload directory and metadata document are ready.")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Cloudnest File Service starting up...")
    await prepare_storage()
    logger.info(f"Upload directory configured at: {settings.UPLOADS_DIR}")
    logger.info(f"Metadata document configured at: {settings.METADATA_FILE}")
    logger.info(f"Max file size: {settings.MAX_FILE_SIZE_BYTES} bytes, allowed types: {sorted(settings.allowed_mime_types)}")
    if settings.AUTH_TOKEN:
        logger.info("Delete requests require an auth token.")
    yield
    logger.info("Cloudnest File Service shutting down...")

app = FastAPI(
    title="Cloudnest File Service",
    version="0.1.0",
    lifespan=lifespan
)

@app.exception_handler(UploadServiceError)
async def upload_service_error_handler(request: Request, exc: UploadServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected with {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

@app.middleware("http")
async def reject_oversized_uploads(request: Request, call_next):
    content_length = request.headers.get("content-length", "")
    if request.method == "POST" and request.url.path == "/upload" and content_length.isdigit():
        limit = settings.MAX_FILE_SIZE_BYTES + settings.UPLOAD_OVERHEAD_BYTES
        if int(content_length) > limit:
            logger.warning(f"Rejected upload with Content-Length {content_length} before reading the body (limit {limit})")
            return JSONResponse(
                status_code=413,
                content={"detail": f"File exceeds the maximum size of {settings.MAX_FILE_SIZE_BYTES} bytes"}
            )
    return await call_next(request)

app.include_router(files_router.router)

@app.get("/ping")
async def ping():
    return {"ping": "pong! from Cloudnest"}

@app.get("/")
async def read_root():
    return {"message": "Welcome to the Cloudnest File Service API"}

if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Cloudnest on {settings.UPLOAD_HOST}:{settings.UPLOAD_PORT}")
    uvicorn.run("main:app", host=settings.UPLOAD_HOST, port=settings.UPLOAD_PORT)
