"""File system operations."""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

PRIVATE_FILE_MODE = 0o600


def resolve_path(path: str | Path) -> Path:
    """Resolve a path to absolute path.

    Args:
        path: Path to resolve (string or Path object)

    Returns:
        Absolute Path object
    """
    return Path(path).expanduser().resolve()


def ensure_dir(path: str | Path) -> Path:
    """Ensure directory exists, create if not.

    Args:
        path: Path to directory

    Returns:
        Path object for the directory
    """
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def write_private_file(path: str | Path, data: bytes) -> Path:
    """Atomically write bytes to a file readable only by its owner.

    The payload goes to a temporary file in the target directory which is then
    renamed over ``path``, so readers never observe a partially written file.

    Args:
        path: Destination file path
        data: File contents

    Returns:
        Path object for the written file
    """
    target = Path(path)
    ensure_dir(target.parent)

    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_name, PRIVATE_FILE_MODE)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.debug("wrote %d bytes to %s", len(data), target)
    return target
