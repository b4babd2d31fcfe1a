# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.io.writers.excel_writer — Excel-Report-Writer (.xlsx, openpyxl)
===============================================================================
Zweck:
    - DataFrame als .xlsx schreiben, optional mit Zusatzblättern
      (z. B. "Summary", "Errors") in derselben Arbeitsmappe.
    - Spaltenbreiten werden grob an den Inhalt angepasst (max. 80 Zeichen).
    - Gibt den vollständigen Pfad der erzeugten Datei zurück.

Parameter:
    - prefix / postfix / timestamp / directory / overwrite: siehe naming.py
    - sheet_name:   Blattname für 'df' (Default "Sheet1")
    - extra_sheets: {blattname: DataFrame} — weitere Blätter in Einfügereihenfolge

Abhängigkeiten:
    * pandas, openpyxl

Version: 2.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

import pandas as pd
from openpyxl.utils import get_column_letter

from .naming import PathLike, resolve_target

_MAX_COL_WIDTH = 80


def _autofit(ws, df: pd.DataFrame) -> None:
    for idx, col in enumerate(df.columns, start=1):
        values = [str(col)] + [str(v) for v in df[col].tolist()]
        width = min(max(len(v) for v in values) + 2, _MAX_COL_WIDTH)
        ws.column_dimensions[get_column_letter(idx)].width = width


def write_excel(
    df: pd.DataFrame,
    *,
    prefix: str,
    postfix: Optional[str] = None,
    timestamp: bool = True,
    directory: Optional[PathLike] = None,
    overwrite: bool = False,
    sheet_name: str = "Sheet1",
    extra_sheets: Optional[Mapping[str, pd.DataFrame]] = None,
) -> Path:
    target = resolve_target(prefix=prefix, ext="xlsx", postfix=postfix, timestamp=timestamp,
                            directory=directory, overwrite=overwrite)
    sheets = {sheet_name: df, **dict(extra_sheets or {})}
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            # Excel erlaubt max. 31 Zeichen je Blattname
            frame.to_excel(writer, index=False, sheet_name=name[:31])
            _autofit(writer.sheets[name[:31]], frame)
    return target


__all__ = ["write_excel"]
