"""Filesystem utilities for podcast_enricher artefacts."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

JSON_INDENT = 2


def read_json(path: Path) -> Any:
    """Read and decode a JSON file."""
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def dump_json(data: Any) -> str:
    """Serialize ``data`` the way every artefact is written: indented, trailing newline."""
    return json.dumps(data, indent=JSON_INDENT, ensure_ascii=False) + "\n"


def _write_temp(path: Path, text: str) -> str:
    """Write ``text`` to a fsynced temp file beside ``path`` and return its name."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
    except BaseException:
        os.unlink(temp_name)
        raise
    return temp_name


def _discard(temp_names: List[str]) -> None:
    for temp_name in temp_names:
        if os.path.exists(temp_name):
            os.unlink(temp_name)


def write_text_atomic(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` via a temp file in the same directory."""
    temp_name = _write_temp(path, text)
    try:
        os.replace(temp_name, path)
    except BaseException:
        _discard([temp_name])
        raise


def write_json_batch(documents: Dict[Path, Any]) -> List[Path]:
    """Write several JSON artefacts as one all-or-nothing replacement.

    Every document is serialized and staged in a temp file beside its target
    before the first target is replaced. If staging or a swap fails, the
    targets already swapped in are restored from backups taken at staging
    time and every leftover temp file is removed.

    Returns:
        The written paths, in the order given.
    """
    rendered: List[Tuple[Path, str]] = [(path, dump_json(data)) for path, data in documents.items()]

    staged: List[Tuple[Path, str]] = []
    backups: Dict[Path, Optional[str]] = {}
    try:
        for path, text in rendered:
            staged.append((path, _write_temp(path, text)))
            backups[path] = (
                _write_temp(path, path.read_text(encoding="utf-8")) if path.exists() else None
            )
    except BaseException:
        _discard([name for _, name in staged])
        _discard([name for name in backups.values() if name])
        raise

    swapped: List[Path] = []
    try:
        for path, temp_name in staged:
            os.replace(temp_name, path)
            swapped.append(path)
    except BaseException:
        logger.error(
            "Artefact write failed after %d of %d files; restoring", len(swapped), len(staged)
        )
        for path in swapped:
            backup = backups.pop(path)
            if backup is None:
                path.unlink()
            else:
                os.replace(backup, path)
        _discard([name for _, name in staged])
        _discard([name for name in backups.values() if name])
        raise

    _discard([name for name in backups.values() if name])
    for path, text in rendered:
        logger.debug("Wrote %s (%d bytes)", path, len(text.encode("utf-8")))
    return [path for path, _ in rendered]
