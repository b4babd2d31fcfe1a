# forms.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.domains.sharepoint.libraries.forms — Formular-XML aus einer Bibliothek laden
===============================================================================
Funktionen:
    forms_df(gc, drive_id, *, folder_path=None, recursive=True, extension=".xml", top=None)
        → (df, info) aller Formulardateien des Drives (DriveItems)
    download_forms(gc, forms, target_dir, *, log=None)
        → (df, info) mit lokalem Pfad je Datei

Merkmale:
    - Ordner werden rekursiv (Breitensuche) über /items/{id}/children gelesen.
    - Relative Ordnerstruktur der Bibliothek bleibt lokal erhalten.
    - Nur lesend; ein fehlgeschlagener Download wird protokolliert und gezählt,
      der Lauf geht mit der nächsten Datei weiter.

Spalten (forms_df):
    ['id', 'driveId', 'name', 'path', 'size', 'lastModified']
    'path' ist relativ zum Startordner, mit '/' getrennt.

Version: 1.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import quote

import pandas as pd
import requests

from spfw.core.http import GraphClient

__version__ = "1.0.0"

FORM_COLUMNS = ["id", "driveId", "name", "path", "size", "lastModified"]
DOWNLOAD_COLUMNS = FORM_COLUMNS + ["localPath"]

_SELECT = "id,name,size,lastModifiedDateTime,file,folder"


def _children_url(drive_id: str, item_id: Optional[str] = None, folder_path: Optional[str] = None) -> str:
    if item_id:
        return f"/drives/{drive_id}/items/{item_id}/children"
    folder = (folder_path or "").strip("/")
    if folder:
        return f"/drives/{drive_id}/root:/{quote(folder)}:/children"
    return f"/drives/{drive_id}/root/children"


def forms_df(
    gc: GraphClient,
    drive_id: str,
    *,
    folder_path: Optional[str] = None,
    recursive: bool = True,
    extension: str = ".xml",
    top: Optional[int] = None,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """Formulardateien (Endung 'extension', case-insensitiv) eines Drives."""
    if not drive_id:
        raise ValueError("Parameter 'drive_id' must not be empty.")
    ext = extension.lower()

    rows: List[Dict[str, Any]] = []
    folders_seen = 0
    # (children-URL, relativer Ordnerpfad)
    queue = deque([(_children_url(drive_id, folder_path=folder_path), "")])
    while queue:
        url, rel = queue.popleft()
        for it in gc.get_paged(url, params={"$select": _SELECT}):
            name = it.get("name") or ""
            item_rel = f"{rel}/{name}" if rel else name
            if "folder" in it:
                folders_seen += 1
                if recursive:
                    queue.append((_children_url(drive_id, item_id=it.get("id")), item_rel))
                continue
            if "file" not in it or not name.lower().endswith(ext):
                continue
            rows.append({
                "id": it.get("id"),
                "driveId": drive_id,
                "name": name,
                "path": item_rel,
                "size": it.get("size"),
                "lastModified": it.get("lastModifiedDateTime"),
            })
            if top is not None and len(rows) >= top:
                queue.clear()
                break

    df = pd.DataFrame.from_records(rows, columns=FORM_COLUMNS)
    info = {
        "drive_id": drive_id,
        "folder_path": folder_path,
        "recursive": recursive,
        "folders": folders_seen,
        "count": int(len(df)),
        "module_version": __version__,
    }
    return df, info


def _local_target(target_dir: Path, rel_path: str) -> Path:
    # '..' und leere Segmente verwerfen, damit nichts außerhalb von target_dir landet
    parts = [p for p in rel_path.replace("\\", "/").split("/") if p not in ("", ".", "..")]
    return target_dir.joinpath(*parts)


def download_forms(
    gc: GraphClient,
    forms: pd.DataFrame,
    target_dir: Union[str, Path],
    *,
    log: Any = None,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Lädt alle Zeilen aus 'forms' (Ergebnis von forms_df) nach 'target_dir'.

    Rückgabe:
        df   – heruntergeladene Dateien (DOWNLOAD_COLUMNS)
        info – {'downloaded': int, 'errors': [{'path', 'error'}], 'target_dir': str}
    """
    base = Path(target_dir).expanduser()
    rows: List[Dict[str, Any]] = []
    errors: List[Dict[str, str]] = []

    for rec in forms.to_dict("records"):
        local = _local_target(base, str(rec.get("path") or rec.get("name") or rec["id"]))
        try:
            content = gc.get_content(f"/drives/{rec['driveId']}/items/{rec['id']}/content")
            local.parent.mkdir(parents=True, exist_ok=True)
            local.write_bytes(content)
        except (requests.RequestException, OSError) as ex:
            errors.append({"path": str(rec.get("path")), "error": str(ex)})
            if log is not None:
                log.error("Form download failed", path=rec.get("path"), error=str(ex))
            continue
        rows.append({**rec, "localPath": str(local)})
        if log is not None:
            log.debug("Form downloaded", path=rec.get("path"), local=str(local))

    if log is not None:
        log.info("Forms downloaded", target=str(base), downloaded=len(rows), errors=len(errors))
    df = pd.DataFrame.from_records(rows, columns=DOWNLOAD_COLUMNS)
    return df, {"downloaded": len(rows), "errors": errors, "target_dir": str(base)}


__all__ = ["FORM_COLUMNS", "DOWNLOAD_COLUMNS", "forms_df", "download_forms", "__version__"]
