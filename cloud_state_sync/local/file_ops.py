"""
Disk persistence for FileLocalStore.

The on-disk format is one JSON object mapping keys to string values, the
same shape the store holds in memory. Values that are not strings are
coerced on load (null becomes ""), so files written by other tools still
load; anything other than a top-level object is rejected.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from ..exceptions import StorageIOError

TEMP_PREFIX = ".tmp_local_"


def decode_entries(payload: Any, path: Path) -> dict[str, str]:
    """Coerce a parsed JSON payload into a key/value entry map.

    Raises:
        StorageIOError: If the payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise StorageIOError(
            "parse_json",
            str(path),
            ValueError(f"expected a JSON object, got {type(payload).__name__}"),
        )
    return {str(k): "" if v is None else str(v) for k, v in payload.items()}


async def load_entries(path: Path) -> dict[str, str]:
    """Read the entry map stored at ``path``.

    A missing or blank file holds no entries.

    Raises:
        StorageIOError: If the file cannot be read or does not hold a JSON object
    """
    if not await aiofiles.os.path.exists(path):
        return {}
    try:
        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()
    except OSError as e:
        raise StorageIOError("read_json", str(path), e) from e

    if not content.strip():
        return {}
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise StorageIOError("parse_json", str(path), e) from e
    return decode_entries(payload, path)


async def save_entries(path: Path, entries: dict[str, str]) -> None:
    """Replace the file at ``path`` with ``entries`` in one atomic rename.

    The directory is created if needed. A crash mid-write leaves the
    previous file intact.

    Raises:
        StorageIOError: If the directory or file cannot be written
    """
    try:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
    except OSError as e:
        raise StorageIOError("create_directory", str(path.parent), e) from e

    body = json.dumps(entries, ensure_ascii=False, sort_keys=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=TEMP_PREFIX, suffix=".json")
    os.close(fd)
    try:
        async with aiofiles.open(temp_name, "w", encoding="utf-8") as f:
            await f.write(body)
            await f.flush()
            os.fsync(f.fileno())
        await aiofiles.os.rename(temp_name, path)
    except OSError as e:
        try:
            await aiofiles.os.remove(temp_name)
        except OSError:
            pass
        raise StorageIOError("write_json", str(path), e) from e
