"""
spfw.domains.sharepoint.sites.libraries
=======================================

Dokument- und Formularbibliotheken eines SharePoint-Sites über Microsoft Graph.

Funktion(en)
------------
- `site_segment(site)`:
  Voll-URL / Site-ID / fertiges `sites/...`-Segment → Graph-Segment.
- `libraries_df(gc, site, *, top=None)`:
  Liefert `(df, info)` mit den Spalten
  `['id', 'name', 'displayName', 'template', 'driveId', 'url']`.
- `find_library(df, name)`:
  Zeile zu Name oder Anzeigename (case-insensitiv).

Versionierung
-------------
- 1.0.0 (2025-10-02)
  * Erste Version: nur Bibliotheken (Template endet auf
    `Library`), inkl. Drive-ID über `$expand=drive($select=id)`.

Hinweise
--------
- HTTP ausschließlich über `GraphClient` (Retry/Backoff/Paging).
- Rückgabe stets `(df, info)`; `info` enthält `url`, `params`, `count`,
  `skipped` (Nicht-Bibliotheken) und `attempt`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import pandas as pd

from spfw.core.http import GraphClient
from spfw.core.util import deep_get

__all__ = ["LIBRARY_COLUMNS", "site_segment", "libraries_df", "find_library", "__version__"]
__version__ = "1.0.0"

LIBRARY_COLUMNS = ["id", "name", "displayName", "template", "driveId", "url"]


def site_segment(site: str) -> str:
    """
    Unterstützt:
      - Voll-URL: https://<host>/sites/<path>  ->  sites/<host>:/sites/<path>:
      - Root-Site https://<host>                ->  sites/<host>:
      - Bereits fertiges Segment 'sites/...'
      - Sonst: Site-ID -> 'sites/{site}'

    Raises:
        ValueError bei leerer Eingabe oder URL ohne Host
    """
    s = (site or "").strip()
    if not s:
        raise ValueError("Parameter 'site' must not be empty.")
    if s.startswith("sites/"):
        return s
    if s.startswith(("http://", "https://")):
        parts = urlparse(s)
        if not parts.netloc:
            raise ValueError(f"Invalid site URL: {s!r} (no host)")
        path = (parts.path or "").rstrip("/")
        return f"sites/{parts.netloc}:" + (f"{path}:" if path else "")
    return f"sites/{s}"


def libraries_df(
    gc: GraphClient,
    site: str,
    *,
    top: Optional[int] = None,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Bibliotheken eines Sites in der von Graph gelieferten Reihenfolge.

    Parameters
    ----------
    gc : GraphClient
        Authentifizierter Graph-Client.
    site : str
        Site-URL, Site-ID oder `sites/...`-Segment.
    top : int, optional
        Clientseitiges Limit der zurückgegebenen Bibliotheken.

    Examples
    --------
    >>> df, info = libraries_df(gc, "https://contoso.sharepoint.com/sites/HR")
    >>> df[df.template == "formLibrary"]
    """
    segment = site_segment(site)
    url = f"/{segment}/lists"
    params = {
        "$select": "id,name,displayName,webUrl,list",
        "$expand": "drive($select=id)",
    }

    rows: List[Dict[str, Any]] = []
    skipped = 0
    for it in gc.get_paged(url, params=params):
        template = str(deep_get(it, "list.template", "") or "")
        if not template.endswith("Library"):
            skipped += 1
            continue
        rows.append({
            "id": it.get("id"),
            "name": it.get("name"),
            "displayName": it.get("displayName"),
            "template": template,
            "driveId": deep_get(it, "drive.id"),
            "url": it.get("webUrl"),
        })
        if top is not None and len(rows) >= top:
            break

    df = pd.DataFrame.from_records(rows, columns=LIBRARY_COLUMNS)
    info: Dict[str, Any] = {
        "url": url,
        "params": params,
        "count": int(len(df)),
        "skipped": skipped,
        "attempt": gc.last_attempt_count,
        "module_version": __version__,
    }
    return df, info


def find_library(df: pd.DataFrame, name: str) -> Optional[Dict[str, Any]]:
    """Erste Bibliothek mit passendem name/displayName (case-insensitiv) oder None."""
    wanted = (name or "").strip().lower()
    if not wanted or df.empty:
        return None
    mask = (df["name"].fillna("").str.lower() == wanted) | (df["displayName"].fillna("").str.lower() == wanted)
    hits = df[mask]
    if hits.empty:
        return None
    return hits.iloc[0].to_dict()
