from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from catalog_index.scraper.errors import MalformedInputError, MissingInputError


def dump_json(obj: Any) -> str:
    """Pretty-printed, newline-terminated JSON text."""
    return json.dumps(obj, ensure_ascii=False, indent=2) + "\n"


def read_json(path: str | Path, *, label: str | None = None) -> Any:
    """Load a required snapshot file.

    ``label`` is the name reported in errors (defaults to the path).
    """
    p = Path(path)
    name = label or str(p)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise MissingInputError(name) from e
    except UnicodeDecodeError as e:
        raise MalformedInputError(name, str(e)) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(name, str(e)) from e


def _discard(tmp: str) -> None:
    try:
        os.unlink(tmp)
    except OSError:
        pass


def _stage_text(path: Path, text: str) -> str:
    """Write ``text`` to a sibling temp file of ``path``; returns the temp path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
    except BaseException:
        _discard(tmp)
        raise
    return tmp


def write_text_atomic(path: str | Path, text: str) -> None:
    """Write via a sibling temp file + os.replace so readers never see a partial file."""
    p = Path(path)
    tmp = _stage_text(p, text)
    try:
        os.replace(tmp, p)
    except BaseException:
        _discard(tmp)
        raise


def write_json(path: str | Path, obj: Any) -> None:
    write_text_atomic(path, dump_json(obj))


def write_json_files(files: dict[Path, Any]) -> list[Path]:
    """Replace several JSON files together.

    Every payload is serialized and staged in a temp file before any target is
    replaced, and directory targets are rejected up front. Any failure before
    the first replace leaves every target untouched.
    """
    rendered = {Path(path): dump_json(obj) for path, obj in files.items()}
    for path in rendered:
        if path.is_dir():
            raise IsADirectoryError(f"cannot replace directory {path}")

    staged: dict[Path, str] = {}
    try:
        for path, text in rendered.items():
            staged[path] = _stage_text(path, text)
    except BaseException:
        for tmp in staged.values():
            _discard(tmp)
        raise

    written: list[Path] = []
    try:
        for path, tmp in staged.items():
            os.replace(tmp, path)
            written.append(path)
    except BaseException:
        for path, tmp in staged.items():
            if path not in written:
                _discard(tmp)
        raise
    return written
