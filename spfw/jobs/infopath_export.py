# infopath_export.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.jobs.infopath_export — Job: InfoPath-Anhänge exportieren + Reports
===============================================================================
Ablauf run_export(job, gc=None, log=None):
    1. Optional (SITE_URL + LIBRARY + gc): Formularbibliothek auflösen und die
       Formular-XMLs nach SOURCE_DIR herunterladen.
    2. Anhänge aller Formulare in SOURCE_DIR nach OUTPUT_DIR extrahieren
       (nach einem Download immer rekursiv, sonst gemäß RECURSIVE).
    3. Reports schreiben (CreateCSV / CreateExcel) nach ReportDir
       (Default: OUTPUT_DIR): Details, Summary, Errors.
    4. Logdatei schreiben (LogFile, Default: ReportDir/InfoPathAttachments_<ts>.log).

'job' ist ein bereinigtes dict aus spfw.params (infopath_export_schema).

Rückgabe:
    (df, stats, outputs)
    df      – eine Zeile je extrahiertem Anhang
    stats   – ExtractionStats (+ Download-Fehler als Fehlereinträge)
    outputs – {'csv': Path, 'summary_csv': Path, 'errors_csv': Path,
               'excel': Path, 'log': Path} (nur geschriebene Einträge)

Version: 1.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from spfw.core.http import GraphClient
from spfw.core.logbuffer import LogBuffer
from spfw.domains.sharepoint.libraries.forms import download_forms, forms_df
from spfw.domains.sharepoint.sites.libraries import find_library, libraries_df
from spfw.infopath.decoder import DEFAULT_FILE_NAME
from spfw.infopath.extract import ExtractionStats, errors_df, extract_from_folder, summary_df
from spfw.io.writers.csv_writer import write_csv
from spfw.io.writers.excel_writer import write_excel
from spfw.io.writers.naming import resolve_target

__version__ = "1.0.0"

REPORT_PREFIX = "InfoPathAttachments"


def fetch_forms(job: Dict[str, Any], gc: GraphClient, *, log: LogBuffer) -> ExtractionStats:
    """
    Lädt die Formulare der Bibliothek job['LIBRARY'] nach job['SOURCE_DIR'].
    Download-Fehler landen als Fehlereinträge in der zurückgegebenen Statistik.

    Raises:
        RuntimeError wenn die Bibliothek nicht existiert
    """
    site, library = job["SITE_URL"], job["LIBRARY"]
    log.info("Resolving library", site=site, library=library)
    libs, _ = libraries_df(gc, site)
    lib = find_library(libs, library)
    if lib is None:
        known = ", ".join(str(n) for n in libs["displayName"].tolist()) or "-"
        raise RuntimeError(f"Library '{library}' not found on {site} (available: {known})")

    forms, info = forms_df(gc, lib["driveId"], folder_path=job.get("FOLDER"), recursive=True,
                           extension=Path(job.get("PATTERN") or "*.xml").suffix or ".xml")
    log.info("Forms listed", library=lib["displayName"], count=info["count"], folders=info["folders"])

    Path(job["SOURCE_DIR"]).mkdir(parents=True, exist_ok=True)
    _, dl_info = download_forms(gc, forms, job["SOURCE_DIR"], log=log)
    stats = ExtractionStats()
    for err in dl_info["errors"]:
        stats.add_error(err["path"], f"download failed: {err['error']}")
    return stats


def write_reports(
    job: Dict[str, Any],
    df: pd.DataFrame,
    stats: ExtractionStats,
    *,
    log: LogBuffer,
) -> Dict[str, Path]:
    report_dir = job.get("ReportDir") or job["OUTPUT_DIR"]
    summary = summary_df(stats, source=str(job["SOURCE_DIR"]), output=str(job["OUTPUT_DIR"]))
    errors = errors_df(stats)
    outputs: Dict[str, Path] = {}

    if job.get("CreateCSV"):
        outputs["csv"] = write_csv(df, prefix=REPORT_PREFIX, directory=report_dir)
        outputs["summary_csv"] = write_csv(summary, prefix=REPORT_PREFIX, postfix="summary", directory=report_dir)
        if not errors.empty:
            outputs["errors_csv"] = write_csv(errors, prefix=REPORT_PREFIX, postfix="errors", directory=report_dir)
    if job.get("CreateExcel"):
        outputs["excel"] = write_excel(df, prefix=REPORT_PREFIX, directory=report_dir, sheet_name="Attachments",
                                       extra_sheets={"Summary": summary, "Errors": errors})
    for kind, path in outputs.items():
        log.info("Report written", kind=kind, path=str(path))
    return outputs


def run_export(
    job: Dict[str, Any],
    *,
    gc: Optional[GraphClient] = None,
    log: Optional[LogBuffer] = None,
) -> Tuple[pd.DataFrame, ExtractionStats, Dict[str, Path]]:
    """Führt einen Export-Job aus (siehe Modul-Doku)."""
    log = log if log is not None else LogBuffer()
    stats = ExtractionStats()

    fetched = bool(job.get("SITE_URL") and job.get("LIBRARY"))
    if fetched:
        if gc is None:
            raise RuntimeError("SITE_URL/LIBRARY set but no GraphClient available (missing --config?).")
        stats.merge(fetch_forms(job, gc, log=log))

    log.info("Extracting attachments", source=str(job["SOURCE_DIR"]), output=str(job["OUTPUT_DIR"]))
    df, extracted = extract_from_folder(
        job["SOURCE_DIR"],
        job["OUTPUT_DIR"],
        pattern=job.get("PATTERN") or "*.xml",
        # heruntergeladene Formulare liegen in der Ordnerstruktur der Bibliothek
        recursive=fetched or bool(job.get("RECURSIVE")),
        per_file_folder=bool(job.get("PER_FILE_FOLDER")),
        default_file_name=job.get("DEFAULT_FILE_NAME") or DEFAULT_FILE_NAME,
        log=log,
    )
    stats.merge(extracted)
    log.info("Export finished", **stats.as_dict())

    outputs = write_reports(job, df, stats, log=log)

    log_path = job.get("LogFile") or resolve_target(
        prefix=REPORT_PREFIX, ext="log", directory=job.get("ReportDir") or job["OUTPUT_DIR"]
    )
    outputs["log"] = log.write_log(log_path)
    return df, stats, outputs


__all__ = ["REPORT_PREFIX", "fetch_forms", "write_reports", "run_export", "__version__"]
