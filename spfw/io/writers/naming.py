# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.io.writers.naming — Gemeinsames Namensschema der Report-Writer
===============================================================================
    <prefix>[_<YYYYMMDD>_<hhmmss>][_<postfix>].<ext>

    - prefix/postfix werden Dateinamen-sicher gemacht.
    - directory: None → cwd; '~' und relative Pfade werden aufgelöst.
    - overwrite=False und Datei vorhanden → _001, _002, … angehängt.

Version: 1.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from spfw.core.util import sanitize_for_filename

PathLike = Union[str, os.PathLike, Path]


def compose_filename(prefix: str, postfix: Optional[str], add_ts: bool, ext: str) -> str:
    parts = [sanitize_for_filename(prefix)]
    if add_ts:
        parts.append(datetime.now().strftime("%Y%m%d_%H%M%S"))
    if postfix:
        parts.append(sanitize_for_filename(postfix))
    stem = "_".join(p for p in parts if p)
    return f"{stem}.{ext.lstrip('.')}"


def next_free_path(path: Path, *, width: int = 3) -> Path:
    """file.csv → file_001.csv, file_002.csv, … (erster freier Name)."""
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{counter:0{width}d}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def resolve_target(
    *,
    prefix: str,
    ext: str,
    postfix: Optional[str] = None,
    timestamp: bool = True,
    directory: Optional[PathLike] = None,
    overwrite: bool = False,
) -> Path:
    """Zielpfad nach Namensschema; der Ordner wird angelegt, die Datei nicht."""
    base_dir = Path.cwd() if directory is None else Path(directory).expanduser()
    target = base_dir / compose_filename(prefix, postfix, timestamp, ext)
    if target.exists() and not overwrite:
        target = next_free_path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    return target


__all__ = ["PathLike", "compose_filename", "next_free_path", "resolve_target"]
