# -*- coding: utf-8 -*-
"""
===============================================================================
InfoPath Attachment Exporter (local folder or SharePoint form library)
===============================================================================
Description (EN):
    Scans InfoPath form files (XML) for embedded file attachments, decodes
    them (InfoPath header-framed or headerless base64) and writes the files
    to an output folder. Produces a CSV and/or Excel report (one row per
    attachment, plus summary and error sheets) and a log file.

    Optionally the forms are first downloaded from a SharePoint form library
    via Microsoft Graph (read-only).

Key features:
    - Three parameter modes (same as the other spfw scripts):
        * params : everything from the command line (default)
        * config : in-script CONFIG block, CLI values override
        * json   : multiple jobs from a parameter JSON ("defaults" + "jobs")
    - Name collisions are resolved as name-copy1.ext, name-copy2.ext, ...
    - A corrupt attachment or unreadable form is logged and counted; the
      run continues with the next node/file.

Requirements:
    pip install msal requests pandas openpyxl

Permissions (only for the SharePoint download):
    Microsoft Graph (Application): Sites.Read.All

Usage examples:
    # 1) Local folder with exported forms:
    python ExportInfoPathAttachments.py --source "C:\\forms" --output "C:\\attachments"

    # 2) Download from a form library first, Excel report:
    python ExportInfoPathAttachments.py --config "C:\\python\\Scripts\\config.json" \
           --site "https://contoso.sharepoint.com/sites/HR" --library "Travel Requests" \
           --source "C:\\forms" --output "C:\\attachments" --excel

    # 3) Several jobs from a parameter JSON:
    python ExportInfoPathAttachments.py --mode json --params-json "C:\\jobs\\infopath.json"

Exit codes:
    0 = finished (attachment-level errors are reported, not fatal)
    1 = runtime error
    2 = invalid or missing parameters
===============================================================================
"""
import argparse
import sys
from typing import Any, Dict, List, Optional

from spfw.core.auth import TokenProvider
from spfw.core.http import GraphClient
from spfw.core.logbuffer import LogBuffer
from spfw.core.util import ELLIPSIS
from spfw.jobs.infopath_export import run_export
from spfw.params.resolve import MODES, resolve_jobs

# =============================================================================
# (A) In-script CONFIG block (used with --mode config)
# =============================================================================
CONFIG: Dict[str, Any] = {
    "SOURCE_DIR": r"C:\InfoPath\forms",
    "OUTPUT_DIR": r"C:\InfoPath\attachments",
    "PATTERN": "*.xml",
    "RECURSIVE": False,
    "PER_FILE_FOLDER": False,
    "DEFAULT_FILE_NAME": "uploadedImage.jpg",
    "CreateCSV": True,
    "CreateExcel": False,
}


# =============================================================================
# CLI
# =============================================================================
def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract file attachments from InfoPath forms (XML) and report them as CSV/Excel."
    )
    parser.add_argument("--mode", dest="MODE", choices=MODES, default="params",
                        help="Parameter source: params (CLI), config (in-script CONFIG), json (parameter JSON). Default: params")
    parser.add_argument("--params-json", dest="PARAMS_JSON", default=None,
                        help="Parameter JSON with 'defaults' and 'jobs' (required for --mode json).")
    parser.add_argument("--config", dest="CONFIG_PATH", default=None,
                        help="JSON config with AAD credentials ('azuread' section). Only needed for --site/--library.")
    parser.add_argument("--source", dest="SOURCE_DIR", default=None,
                        help="Folder with InfoPath forms (download target when --library is given).")
    parser.add_argument("--output", dest="OUTPUT_DIR", default=None,
                        help="Folder for the extracted attachments.")
    parser.add_argument("--pattern", dest="PATTERN", default=None,
                        help="Glob pattern for form files. Default: *.xml")
    parser.add_argument("--recursive", dest="RECURSIVE", action="store_true", default=None,
                        help="Include sub folders of --source.")
    parser.add_argument("--per-file-folder", dest="PER_FILE_FOLDER", action="store_true", default=None,
                        help="Write the attachments of each form into its own sub folder.")
    parser.add_argument("--default-name", dest="DEFAULT_FILE_NAME", default=None,
                        help="File name for attachments without InfoPath header. Default: uploadedImage.jpg")
    parser.add_argument("--site", dest="SITE_URL", default=None,
                        help="SharePoint site URL, e.g. https://contoso.sharepoint.com/sites/HR")
    parser.add_argument("--library", dest="LIBRARY", default=None,
                        help="Form library name or display name on --site.")
    parser.add_argument("--folder", dest="FOLDER", default=None,
                        help="Optional folder inside the library.")
    parser.add_argument("--csv", dest="CreateCSV", action=argparse.BooleanOptionalAction, default=None,
                        help="Write CSV reports (default: on).")
    parser.add_argument("--excel", dest="CreateExcel", action=argparse.BooleanOptionalAction, default=None,
                        help="Write an Excel report (default: off).")
    parser.add_argument("--report-dir", dest="ReportDir", default=None,
                        help="Folder for reports (default: --output).")
    parser.add_argument("--log-file", dest="LogFile", default=None,
                        help="Log file path (default: <report-dir>/InfoPathAttachments_<timestamp>.log).")
    return parser.parse_args(argv)


def build_graph_client(config_path: Optional[str]) -> GraphClient:
    """Credentials from --config, otherwise from SPFW_* environment variables."""
    tp = TokenProvider.from_json(config_path) if config_path else TokenProvider.from_env()
    return GraphClient(tp)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    # -------------------------------------------------------------------------
    # (B) Resolve jobs
    # -------------------------------------------------------------------------
    try:
        mode, jobs, info = resolve_jobs(
            mode=args.MODE,
            cli=args,
            config_block=CONFIG,
            param_json_path=args.PARAMS_JSON,
        )
    except (ValueError, RuntimeError, FileNotFoundError) as ex:
        print(f"[error] {ex}")
        return 2
    if info.errors:
        for err in info.errors:
            print(f"[error] {err}")
        return 2
    if not jobs:
        print("[error] No jobs to run.")
        return 2

    # -------------------------------------------------------------------------
    # (C) Execute
    # -------------------------------------------------------------------------
    try:
        gc = None
        if any(j.get("SITE_URL") and j.get("LIBRARY") for j in jobs):
            gc = build_graph_client(args.CONFIG_PATH)

        for i, job in enumerate(jobs, start=1):
            print(f"[info] Job {i}/{len(jobs)} ({mode}): {job['SOURCE_DIR']} -> {job['OUTPUT_DIR']} {ELLIPSIS}")
            # one log file per job
            log = LogBuffer()
            if gc is not None:
                gc.log = log
            _, stats, outputs = run_export(job, gc=gc, log=log)
            print(f"[ok] Files processed: {stats.files_processed} | "
                  f"Attachments extracted: {stats.attachments_extracted} | Errors: {stats.error_count}")
            for kind, path in outputs.items():
                print(f"[ok] {kind}: {path}")
        return 0
    except Exception as ex:
        print(f"[error] {ex}")
        return 1


# =============================================================================
# Entrypoint
# =============================================================================
if __name__ == "__main__":
    sys.exit(main())
