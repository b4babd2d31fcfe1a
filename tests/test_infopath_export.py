import importlib.util
import json
from pathlib import Path

import pandas as pd
import pytest

from conftest import FakeGraph, b64, form_xml, framed_bytes
from spfw.core.logbuffer import LogBuffer
from spfw.jobs.infopath_export import REPORT_PREFIX, run_export
from spfw.params.schema import infopath_export_schema

SCRIPT = Path(__file__).resolve().parents[1] / "Sharepoint" / "ExportInfoPathAttachments.py"
PDF = b"%PDF-1.4 " + bytes(range(200))
LISTS_URL = "/sites/contoso.sharepoint.com:/sites/HR:/lists"


def _job(**overrides):
    clean, errors = infopath_export_schema().coerce_and_validate(overrides)
    assert errors == []
    return clean


@pytest.fixture
def cli():
    module_spec = importlib.util.spec_from_file_location("export_infopath_attachments", SCRIPT)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


def test_run_export_local_folder(write_form, tmp_path):
    write_form("a.xml", [("receipt", b64(framed_bytes("receipt.pdf", PDF)))])
    write_form("b.xml", [("broken", b64(framed_bytes("x.txt", b"y" * 80, name_units=250)))])
    job = _job(SOURCE_DIR=tmp_path / "forms", OUTPUT_DIR=tmp_path / "out")

    df, stats, outputs = run_export(job, log=LogBuffer(echo=False))

    assert df["file_name"].tolist() == ["receipt.pdf"]
    assert stats.as_dict() == {"files_processed": 2, "attachments_extracted": 1, "errors": 1}
    assert set(outputs) == {"csv", "summary_csv", "errors_csv", "log"}
    assert all(p.parent == tmp_path / "out" for p in outputs.values())
    assert outputs["csv"].name.startswith(REPORT_PREFIX)
    assert pd.read_csv(outputs["summary_csv"], encoding="utf-8-sig").iloc[0]["errors"] == 1
    assert "malformed_header" in outputs["log"].read_text(encoding="utf-8")


def test_run_export_excel_report_dir_and_log_file(write_form, tmp_path):
    write_form("a.xml", [("receipt", b64(framed_bytes("receipt.pdf", PDF)))])
    job = _job(SOURCE_DIR=tmp_path / "forms", OUTPUT_DIR=tmp_path / "out", CreateCSV=False, CreateExcel=True,
               ReportDir=tmp_path / "reports", LogFile=tmp_path / "logs" / "run.log")

    _, _, outputs = run_export(job, log=LogBuffer(echo=False))

    assert set(outputs) == {"excel", "log"}
    assert outputs["excel"].parent == tmp_path / "reports"
    assert outputs["log"] == tmp_path / "logs" / "run.log"
    sheets = pd.read_excel(outputs["excel"], sheet_name=None)
    assert list(sheets) == ["Attachments", "Summary", "Errors"]
    assert sheets["Errors"].empty


def test_run_export_with_site_requires_graph_client(tmp_path):
    (tmp_path / "forms").mkdir()
    job = _job(SOURCE_DIR=tmp_path / "forms", OUTPUT_DIR=tmp_path / "out",
               SITE_URL="https://contoso.sharepoint.com/sites/HR", LIBRARY="Travel Requests")
    with pytest.raises(RuntimeError):
        run_export(job, log=LogBuffer(echo=False))


def _graph():
    return FakeGraph(
        pages={
            LISTS_URL: [{"id": "l3", "name": "TravelRequests", "displayName": "Travel Requests",
                         "list": {"template": "formLibrary"}, "drive": {"id": "b!forms"}}],
            "/drives/b!forms/root/children": [
                {"id": "f1", "name": "request1.xml", "file": {}},
                {"id": "f2", "name": "request2.xml", "file": {}},
            ],
        },
        contents={
            "/drives/b!forms/items/f1/content": form_xml([("receipt", b64(framed_bytes("receipt.pdf", PDF)))]).encode(),
            "/drives/b!forms/items/f2/content": OSError("disk full"),
        },
    )


def test_run_export_downloads_forms_first(tmp_path):
    job = _job(SOURCE_DIR=tmp_path / "forms", OUTPUT_DIR=tmp_path / "out",
               SITE_URL="https://contoso.sharepoint.com/sites/HR", LIBRARY="travel requests")

    df, stats, _ = run_export(job, gc=_graph(), log=LogBuffer(echo=False))

    assert (tmp_path / "forms" / "request1.xml").exists()
    assert df["file_name"].tolist() == ["receipt.pdf"]
    assert stats.files_processed == 1
    assert stats.error_count == 1
    assert stats.errors[0]["error"] == "download failed: disk full"


def test_run_export_extracts_forms_from_library_subfolders(tmp_path):
    gc = FakeGraph(
        pages={
            LISTS_URL: [{"id": "l3", "name": "TravelRequests", "displayName": "Travel Requests",
                         "list": {"template": "formLibrary"}, "drive": {"id": "b!forms"}}],
            "/drives/b!forms/root/children": [{"id": "fo", "name": "2019", "folder": {}}],
            "/drives/b!forms/items/fo/children": [{"id": "r1", "name": "r1.xml", "file": {}}],
        },
        contents={
            "/drives/b!forms/items/r1/content": form_xml([("receipt", b64(framed_bytes("receipt.pdf", PDF)))]).encode(),
        },
    )
    job = _job(SOURCE_DIR=tmp_path / "forms", OUTPUT_DIR=tmp_path / "out",
               SITE_URL="https://contoso.sharepoint.com/sites/HR", LIBRARY="Travel Requests")
    assert job["RECURSIVE"] is False

    df, stats, _ = run_export(job, gc=gc, log=LogBuffer(echo=False))

    assert (tmp_path / "forms" / "2019" / "r1.xml").exists()
    assert stats.files_processed == 1
    assert stats.attachments_extracted == 1
    assert df["file_name"].tolist() == ["receipt.pdf"]
    assert (tmp_path / "out" / "receipt.pdf").read_bytes() == PDF


def test_run_export_local_folder_stays_flat_by_default(write_form, tmp_path):
    write_form("2019/r1.xml", [("receipt", b64(framed_bytes("receipt.pdf", PDF)))])
    job = _job(SOURCE_DIR=tmp_path / "forms", OUTPUT_DIR=tmp_path / "out", CreateCSV=False)
    _, stats, _ = run_export(job, log=LogBuffer(echo=False))
    assert stats.files_processed == 0


def test_run_export_unknown_library(tmp_path):
    job = _job(SOURCE_DIR=tmp_path / "forms", OUTPUT_DIR=tmp_path / "out",
               SITE_URL="https://contoso.sharepoint.com/sites/HR", LIBRARY="Invoices")
    with pytest.raises(RuntimeError, match="Invoices"):
        run_export(job, gc=_graph(), log=LogBuffer(echo=False))


# ------------------------------ CLI ------------------------------------------

def test_cli_params_mode(cli, write_form, tmp_path, capsys):
    write_form("a.xml", [("receipt", b64(framed_bytes("receipt.pdf", PDF)))])
    rc = cli.main(["--source", str(tmp_path / "forms"), "--output", str(tmp_path / "out"), "--no-csv"])

    out = capsys.readouterr().out
    assert rc == 0
    assert "Attachments extracted: 1" in out
    assert (tmp_path / "out" / "receipt.pdf").read_bytes() == PDF
    assert not list((tmp_path / "out").glob("*.csv"))


def test_cli_missing_parameters(cli, capsys):
    assert cli.main([]) == 2
    assert "Missing required parameter: SOURCE_DIR" in capsys.readouterr().out


def test_cli_json_mode_errors(cli, tmp_path, capsys):
    assert cli.main(["--mode", "json"]) == 2
    assert cli.main(["--mode", "json", "--params-json", str(tmp_path / "missing.json")]) == 2

    param = tmp_path / "jobs.json"
    param.write_text(json.dumps({"jobs": []}), encoding="utf-8")
    assert cli.main(["--mode", "json", "--params-json", str(param)]) == 2
    assert "No jobs to run" in capsys.readouterr().out


def test_cli_missing_source_folder_is_a_runtime_error(cli, tmp_path, capsys):
    rc = cli.main(["--source", str(tmp_path / "nope"), "--output", str(tmp_path / "out")])
    assert rc == 1
    assert "Source folder not found" in capsys.readouterr().out
