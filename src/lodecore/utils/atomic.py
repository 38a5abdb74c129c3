"""
Atomic JSON file helpers used by the on-disk acquisition cache.

Entries are written to a temporary file in the target directory and then
moved into place with ``os.replace`` so a reader never observes a partially
written entry.
"""

import asyncio
import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

TEMP_PREFIX = ".atomic_"
STALE_TEMP_AGE = 3600.0


def atomic_write_json(target_path: Path, data: Dict[str, Any]) -> None:
    """
    Atomically replace ``target_path`` with the JSON encoding of ``data``.

    Raises:
        ValueError: ``data`` is not JSON serialisable.
        OSError: the temporary file could not be written or moved into place.
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        content = json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    fd, temp_name = tempfile.mkstemp(dir=target_path.parent, prefix=f"{TEMP_PREFIX}{target_path.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path.exists():
            temp_path.unlink(missing_ok=True)


async def atomic_json_dump(data: Dict[str, Any], path: Path, timeout: float = 2.0) -> bool:
    """
    Write ``data`` to ``path`` off the event loop, with a timeout.

    Failures are logged as warnings and reported through the return value;
    nothing is raised.
    """
    loop = asyncio.get_running_loop()
    try:
        await asyncio.wait_for(loop.run_in_executor(None, atomic_write_json, Path(path), data), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Atomic write timed out", path=str(path), timeout=timeout)
        return False
    except (OSError, ValueError) as e:
        logger.warning("Atomic write failed", path=str(path), error=str(e))
        return False

    remove_stale_temp_files(Path(path).parent)
    return True


def read_json(path: Path) -> Optional[Dict[str, Any]]:
    """Load a JSON object from ``path``; None if missing or unreadable."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning("Unreadable JSON file", path=str(path), error=str(e))
        return None
    return data if isinstance(data, dict) else None


def remove_stale_temp_files(directory: Path, max_age: float = STALE_TEMP_AGE) -> int:
    """Delete temp files left behind by interrupted writes. Returns the count removed."""
    removed = 0
    now = time.time()
    for temp_file in directory.glob(f"{TEMP_PREFIX}*"):
        try:
            if temp_file.is_file() and now - temp_file.stat().st_mtime > max_age:
                temp_file.unlink()
                removed += 1
        except OSError as e:
            logger.debug("Could not remove stale temp file", path=str(temp_file), error=str(e))
    return removed
