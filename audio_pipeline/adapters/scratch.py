import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@contextmanager
def scratch_dir(prefix: str) -> Iterator[Path]:
    """
    Per-attempt scratch directory, removed on every exit path.

    mkdtemp gives each call its own path, so concurrent conversions never collide.
    """
    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():
            logger.warning(f"⚠️  Failed to clean up scratch directory: {path}")
