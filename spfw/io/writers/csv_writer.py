# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.io.writers.csv_writer — CSV-Report-Writer
===============================================================================
Zweck:
    - DataFrame als CSV schreiben (Namensschema siehe naming.py).
    - Gibt den vollständigen Pfad der erzeugten Datei zurück.

Parameter:
    - prefix / postfix / timestamp / directory / overwrite: siehe naming.py
    - encoding: Default "utf-8-sig" (Excel erkennt UTF-8 dank BOM)
    - sep:      Trennzeichen (Default ",")
    - index:    DataFrame-Index mitschreiben (Default False)

Abhängigkeiten:
    * pandas (df.to_csv)

Version: 3.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from .naming import PathLike, resolve_target


def write_csv(
    df: pd.DataFrame,
    *,
    prefix: str,
    postfix: Optional[str] = None,
    timestamp: bool = True,
    directory: Optional[PathLike] = None,
    overwrite: bool = False,
    encoding: str = "utf-8-sig",
    sep: str = ",",
    index: bool = False,
) -> Path:
    target = resolve_target(prefix=prefix, ext="csv", postfix=postfix, timestamp=timestamp,
                            directory=directory, overwrite=overwrite)
    df.to_csv(target, index=index, encoding=encoding, sep=sep)
    return target


__all__ = ["write_csv"]
