"""Per-request temp files handed to the OS print primitives."""
import logging
import tempfile
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


def temp_file_path(ext: str, directory: Optional[str] = None) -> Path:
    """Collision-resistant path: print-<epoch ms>-<random hex>.<ext>"""
    base = Path(directory or tempfile.gettempdir())
    return base / f"print-{int(time.time() * 1000)}-{uuid.uuid4().hex}.{ext}"


@contextmanager
def temp_print_file(content: bytes, ext: str, directory: Optional[str] = None) -> Iterator[Path]:
    """
    Write content to a fresh temp file and yield its path.
    The file is removed when the block exits, whether it raised or not.
    """
    path = temp_file_path(ext, directory)
    try:
        path.write_bytes(content)
        logger.debug(f"Temp file {path} ({len(content)} bytes)")
        yield path
    finally:
        path.unlink(missing_ok=True)
