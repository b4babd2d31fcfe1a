# schema.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.params.schema — Parametrisierung: Schema, Coercion & Validierung
===============================================================================
Zweck:
    - Leichtgewichtiges Schema-System für Job-Parameter
      (z. B. "InfoPath-Anhänge aus Ordner X exportieren").
    - Typkonvertierung (bool/int/path/str) und Validierung (required/choices).
    - Aliase pro Feld (z. B. 'source' → 'SOURCE_DIR'), case-insensitiv.

Begriffe:
    - "Job":    ein Parameter-Satz für einen Lauf.
    - "Schema": deklariert Felder, Typen, Defaults, Requiredness.

Version: 2.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple


# ---------------------------- Coercion-Hilfsfunktionen ------------------------

_TRUE = ("1", "true", "t", "y", "yes", "on")
_FALSE = ("0", "false", "f", "n", "no", "off")


def coerce_bool(val: Any, default: Optional[bool] = None) -> Optional[bool]:
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return default


def coerce_int(val: Any, default: Optional[int] = None) -> Optional[int]:
    if val is None or str(val).strip() == "":
        return default
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def coerce_str(val: Any, default: Optional[str] = None) -> Optional[str]:
    if val is None:
        return default
    s = str(val).strip()
    return s if s != "" else default


def coerce_path(val: Any, default: Optional[Path] = None) -> Optional[Path]:
    if val is None or str(val).strip() == "":
        return default
    return Path(str(val).strip()).expanduser()


_COERCERS: Dict[str, Callable[[Any, Any], Any]] = {
    "bool": coerce_bool,
    "int": coerce_int,
    "path": coerce_path,
    "str": coerce_str,
}


# ------------------------------- Felddefinition -------------------------------

@dataclass
class Field:
    """
    Ein Feld im Schema.
    kind: 'str' | 'int' | 'bool' | 'path'
    """
    name: str
    kind: str = "str"
    required: bool = False
    default: Any = None
    choices: Optional[Sequence[Any]] = None
    aliases: Sequence[str] = field(default_factory=tuple)
    help: str = ""

    def coerce(self, value: Any) -> Any:
        try:
            coercer = _COERCERS[self.kind]
        except KeyError:
            raise ValueError(f"Unknown field kind {self.kind!r} for {self.name!r}") from None
        return coercer(value, self.default)


@dataclass
class ParamSchema:
    """
    Sammlung von Feldern mit Coercion/Validierung.
    Unbekannte Keys werden ignoriert; Aliase werden automatisch aufgelöst.
    """
    fields: Dict[str, Field]

    _alias_map: Dict[str, str] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        amap: Dict[str, str] = {}
        for canon, f in self.fields.items():
            amap[canon.lower()] = canon
            for a in f.aliases:
                amap[str(a).lower()] = canon
        self._alias_map = amap

    def canonical_key(self, key: str) -> Optional[str]:
        return self._alias_map.get(str(key).lower())

    def coerce_and_validate(self, raw: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        """
        Rückgabe:
        - clean: alle Felder (kanonische Keys), coerced, Defaults gesetzt
        - errors: Liste Fehlertexte (leer = gültig)
        """
        provided: Dict[str, Any] = {}
        for k, v in (raw or {}).items():
            canon = self.canonical_key(k)
            if canon is not None:
                provided[canon] = v

        clean: Dict[str, Any] = {}
        errors: List[str] = []
        for canon, fdef in self.fields.items():
            val = fdef.coerce(provided.get(canon))
            if val is None and fdef.required:
                errors.append(f"Missing required parameter: {canon}")
            if val is not None and fdef.choices is not None and val not in fdef.choices:
                errors.append(f"Invalid value for {canon!r}: {val!r}. Allowed: {tuple(fdef.choices)}")
            clean[canon] = val
        return clean, errors

    def keys(self) -> List[str]:
        return list(self.fields)


# --------------------------- Vordefiniertes Schema ----------------------------

def infopath_export_schema() -> ParamSchema:
    """
    Schema für den InfoPath-Anhang-Export.
    - SOURCE_DIR/OUTPUT_DIR: Pflicht (lokale Ordner)
    - SITE_URL + LIBRARY: optional; wenn gesetzt, werden die Formulare vorher
      aus der SharePoint-Formularbibliothek nach SOURCE_DIR geladen
    - ReportDir: Default = OUTPUT_DIR (wird im Job aufgelöst)
    """
    fields = {
        "SOURCE_DIR": Field("SOURCE_DIR", "path", required=True, aliases=("source", "sourcedir"),
                            help="Ordner mit den InfoPath-Formularen (XML)"),
        "OUTPUT_DIR": Field("OUTPUT_DIR", "path", required=True, aliases=("output", "outputdir"),
                            help="Zielordner für die Anhänge"),
        "PATTERN": Field("PATTERN", "str", default="*.xml", aliases=("pattern",), help="Glob-Muster der Formulare"),
        "RECURSIVE": Field("RECURSIVE", "bool", default=False, aliases=("recursive",), help="Unterordner einbeziehen"),
        "PER_FILE_FOLDER": Field("PER_FILE_FOLDER", "bool", default=False, aliases=("per_file_folder", "perfilefolder"),
                                 help="Je Formular ein eigener Unterordner"),
        "DEFAULT_FILE_NAME": Field("DEFAULT_FILE_NAME", "str", default="uploadedImage.jpg",
                                   aliases=("default_name", "defaultfilename"),
                                   help="Dateiname für Anhänge ohne InfoPath-Header"),
        "SITE_URL": Field("SITE_URL", "str", aliases=("site",), help="SharePoint Site URL (optional)"),
        "LIBRARY": Field("LIBRARY", "str", aliases=("library",), help="Formularbibliothek (Name oder Anzeigename)"),
        "FOLDER": Field("FOLDER", "str", aliases=("folder",), help="Unterordner in der Bibliothek (optional)"),
        "CreateCSV": Field("CreateCSV", "bool", default=True, aliases=("csv", "createcsv"), help="CSV-Report erzeugen"),
        "CreateExcel": Field("CreateExcel", "bool", default=False, aliases=("excel", "createexcel"),
                             help="Excel-Report erzeugen"),
        "ReportDir": Field("ReportDir", "path", aliases=("report_dir", "reportdir"), help="Ordner für Reports"),
        "LogFile": Field("LogFile", "path", aliases=("log_file", "logfile"), help="Pfad der Logdatei"),
    }
    return ParamSchema(fields=fields)


__all__ = [
    "Field",
    "ParamSchema",
    "coerce_bool",
    "coerce_int",
    "coerce_str",
    "coerce_path",
    "infopath_export_schema",
]
