import itertools
import re
import secrets
import time
from pathlib import Path
from typing import Optional, Protocol

import aiofiles
import aiofiles.os

from exceptions import NotFoundError, PayloadTooLargeError
from logging_config import get_logger

logger = get_logger(__name__)

MAX_SAFE_NAME_LENGTH = 100

_sequence = itertools.count()
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_DOT_RUNS = re.compile(r"\.{2,}")

class ByteStream(Protocol):
    async def read(self, size: int = -1) -> bytes: ...

def safe_name(original_name: Optional[str]) -> str:
    """Reduce a client-supplied filename to something usable on disk."""
    name = (original_name or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_CHARS.sub("_", name)
    name = _DOT_RUNS.sub(".", name).strip(".")
    return name[-MAX_SAFE_NAME_LENGTH:] or "file"

def generate_stored_name(original_name: Optional[str]) -> str:
    millis = time.time_ns() // 1_000_000
    return f"{millis}-{next(_sequence)}-{secrets.randbelow(10**9)}-{safe_name(original_name)}"

def is_safe_stored_name(name: str) -> bool:
    if not name or name in (".", ".."):
        return False
    return not any(bad in name for bad in ("/", "\\", "\x00"))

def resolve_stored_path(uploads_dir: Path, name: str) -> Path:
    if not is_safe_stored_name(name):
        logger.warning(f"Rejected unsafe stored file name: {name!r}")
        raise NotFoundError("Not found")
    return Path(uploads_dir) / name

async def write_stream(
    stream: ByteStream,
    destination: Path,
    max_bytes: int,
    chunk_size: int = 1024 * 1024
) -> int:
    """Copy ``stream`` into a new file at ``destination``, counting bytes.

    The file is created exclusively, so an existing file is never
    overwritten. If the limit is exceeded, the stream fails or the task is
    cancelled, the partial file is removed before the error propagates.
    Returns the number of bytes written.
    """
    written = 0
    completed = False
    out_file = await aiofiles.open(destination, "xb")
    try:
        while chunk := await stream.read(chunk_size):
            written += len(chunk)
            if written > max_bytes:
                raise PayloadTooLargeError(f"File exceeds the maximum size of {max_bytes} bytes")
            await out_file.write(chunk)
        completed = True
    finally:
        await out_file.close()
        if not completed:
            logger.warning(f"Upload to {destination} did not complete after {written} bytes, removing partial file")
            await discard_partial(destination)
    return written

async def discard_partial(path: Path) -> None:
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.exception(f"Could not remove partial upload at {path}")

async def remove_stored_file(path: Path) -> None:
    await aiofiles.os.remove(path)
