# resolve.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.params.resolve — Job-Resolution: MODE + Quellen → valide Jobs
===============================================================================
Zweck:
    - Vereinheitlicht die Auflösung von Parametern aus mehreren Quellen:
        Priorität: CLI > Job-Eintrag (MODE=json) > JSON-Defaults > CONFIG-Block
    - Validiert/konvertiert anhand eines ParamSchema (siehe schema.py)
    - Liefert bereinigte Jobs + Diagnose (ResolveInfo)

MODE:
    - 'config' : ein Job aus dem CONFIG-Block (CLI-Werte überschreiben)
    - 'params' : ein Job nur aus CLI-Werten
    - 'json'   : mehrere Jobs aus einem Parameter-JSON ('defaults' + 'jobs')

Parameter-JSON (Beispiel):
{
  "defaults": { "OUTPUT_DIR": "D:/export", "CreateExcel": true },
  "jobs": [
    { "SOURCE_DIR": "D:/forms/Antraege" },
    { "SOURCE_DIR": "D:/forms/Reisen", "RECURSIVE": true }
  ]
}

Version: 2.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import json

from .schema import ParamSchema, infopath_export_schema

MODES = ("config", "params", "json")


def load_param_json(param_json_path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(param_json_path)
    if not p.exists():
        raise FileNotFoundError(f"Parameter JSON not found: {param_json_path}")
    try:
        obj = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as ex:
        raise RuntimeError(f"Failed to parse parameter JSON '{param_json_path}': {ex}") from ex
    if not isinstance(obj, dict) or not isinstance(obj.get("jobs"), list):
        raise ValueError("Parameter JSON must contain a 'jobs' array.")
    if not isinstance(obj.get("defaults", {}), dict):
        raise ValueError("'defaults' must be an object if present.")
    return obj


def _cli_to_dict(cli: Any) -> Dict[str, Any]:
    """argparse.Namespace oder dict → dict ohne None-Werte."""
    if cli is None:
        return {}
    src = cli if isinstance(cli, dict) else vars(cli)
    return {k: v for k, v in src.items() if v is not None}


def _merge(*sources: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Spätere Quellen überschreiben frühere."""
    out: Dict[str, Any] = {}
    for src in sources:
        if src:
            out.update(src)
    return out


@dataclass
class ResolveInfo:
    mode: str
    json_path: Optional[str] = None
    jobs_count: int = 0
    errors: List[str] = field(default_factory=list)


def resolve_jobs(
    *,
    mode: str,
    cli: Any = None,
    config_block: Optional[Dict[str, Any]] = None,
    param_json_path: Optional[Union[str, Path]] = None,
    schema: Optional[ParamSchema] = None,
) -> Tuple[str, List[Dict[str, Any]], ResolveInfo]:
    """
    Ermittelt die effektive Job-Liste gemäß MODE & Quellen.

    CLI-Keys werden über die Aliase des Schemas zugeordnet; unbekannte Keys
    (z. B. 'mode', 'config') werden ignoriert.

    Rückgabe:
        (mode, jobs_clean, info) — ungültige Jobs fehlen in jobs_clean,
        ihre Fehler stehen in info.errors.

    Raises:
        ValueError bei unbekanntem MODE oder MODE='json' ohne Pfad
    """
    mode = (mode or "params").strip().lower()
    if mode not in MODES:
        raise ValueError(f"Unknown MODE: {mode!r}")
    schema = schema or infopath_export_schema()
    info = ResolveInfo(mode=mode)

    cli_dict = _cli_to_dict(cli)
    cfg = config_block if mode == "config" else None

    if mode == "json":
        if not param_json_path:
            raise ValueError("MODE='json' requires 'param_json_path'.")
        obj = load_param_json(param_json_path)
        info.json_path = str(param_json_path)
        raw_jobs = [_merge(config_block, obj.get("defaults"), job, cli_dict) for job in obj["jobs"]]
    else:
        raw_jobs = [_merge(cfg, cli_dict)]

    jobs: List[Dict[str, Any]] = []
    for i, raw in enumerate(raw_jobs, start=1):
        clean, errs = schema.coerce_and_validate(raw)
        if errs:
            prefix = f"job {i}: " if mode == "json" else ""
            info.errors.extend(prefix + e for e in errs)
        else:
            jobs.append(clean)

    info.jobs_count = len(jobs)
    return mode, jobs, info


__all__ = ["MODES", "resolve_jobs", "load_param_json", "ResolveInfo"]
