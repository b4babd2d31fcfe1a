import io

import pytest

from conftest import b64, form_xml, framed_bytes
from spfw.core.logbuffer import LogBuffer
from spfw.infopath.extract import (
    EXTRACTED_COLUMNS,
    ExtractionStats,
    errors_df,
    extract_from_folder,
    extract_from_xml,
    iter_text_nodes,
    summary_df,
    unique_target_path,
)

PDF = b"%PDF-1.4 " + bytes(range(200))
JPG = b"\xff\xd8\xff\xe0" + bytes(range(150))


def test_iter_text_nodes_strips_namespaces_and_skips_empty():
    xml = form_xml([("title", "Hello"), ("empty", ""), ("amount", " 42 ")])
    nodes = list(iter_text_nodes(io.BytesIO(xml.encode("utf-8"))))
    assert nodes == [("title", "Hello"), ("amount", "42")]


def test_unique_target_path_appends_copy_suffix(tmp_path):
    assert unique_target_path(tmp_path, "a.pdf") == tmp_path / "a.pdf"
    (tmp_path / "a.pdf").write_bytes(b"1")
    assert unique_target_path(tmp_path, "a.pdf") == tmp_path / "a-copy1.pdf"
    (tmp_path / "a-copy1.pdf").write_bytes(b"2")
    assert unique_target_path(tmp_path, "a.pdf") == tmp_path / "a-copy2.pdf"


def test_unique_target_path_without_extension(tmp_path):
    (tmp_path / "README").write_bytes(b"1")
    assert unique_target_path(tmp_path, "README") == tmp_path / "README-copy1"


def test_extract_from_xml_writes_attachments(write_form, tmp_path):
    form = write_form("request1.xml", [
        ("title", "Travel request"),
        ("receipt", b64(framed_bytes("receipt.pdf", PDF))),
        ("photo", b64(JPG)),
        ("link", "https://contoso.sharepoint.com/sites/HR/Shared%20Documents/very/long/path/file.docx"),
    ])
    out = tmp_path / "out"
    log = LogBuffer(echo=False)

    df, stats = extract_from_xml(form, out, default_file_name="uploadedImage.jpg", log=log)

    assert list(df.columns) == EXTRACTED_COLUMNS
    assert df["file_name"].tolist() == ["receipt.pdf", "uploadedImage.jpg"]
    assert df["has_header"].tolist() == [True, False]
    assert (out / "receipt.pdf").read_bytes() == PDF
    assert (out / "uploadedImage.jpg").read_bytes() == JPG
    assert stats.as_dict() == {"files_processed": 1, "attachments_extracted": 2, "errors": 0}
    assert log.count("INFO") == 1


def test_name_collisions_within_one_form(write_form, tmp_path):
    form = write_form("dup.xml", [
        ("a", b64(framed_bytes("scan.pdf", PDF))),
        ("b", b64(framed_bytes("scan.pdf", PDF[::-1]))),
        ("c", b64(JPG)),
        ("d", b64(JPG[::-1])),
    ])
    df, _ = extract_from_xml(form, tmp_path / "out")
    assert df["file_name"].tolist() == ["scan.pdf", "scan-copy1.pdf", "uploadedImage.jpg", "uploadedImage-copy1.jpg"]
    assert (tmp_path / "out" / "scan-copy1.pdf").read_bytes() == PDF[::-1]


def test_corrupt_attachment_is_counted_and_others_survive(write_form, tmp_path):
    broken = b64(framed_bytes("x.txt", b"y" * 80, name_units=250))
    form = write_form("mixed.xml", [
        ("broken", broken),
        ("ok", b64(framed_bytes("ok.txt", PDF))),
    ])
    log = LogBuffer(echo=False)
    df, stats = extract_from_xml(form, tmp_path / "out", log=log)

    assert df["file_name"].tolist() == ["ok.txt"]
    assert stats.attachments_extracted == 1
    assert stats.error_count == 1
    assert stats.errors[0]["node"] == "broken"
    assert stats.errors[0]["error"].startswith("malformed_header")
    assert log.count("WARNING") == 1


def test_empty_sanitized_name_falls_back_to_default(write_form, tmp_path):
    form = write_form("noname.xml", [("f", b64(framed_bytes("???", PDF)))])
    df, _ = extract_from_xml(form, tmp_path / "out", default_file_name="attachment.bin")
    assert df["file_name"].tolist() == ["attachment.bin"]


def test_form_without_attachments_creates_no_folder(write_form, tmp_path):
    form = write_form("plain.xml", [("title", "nothing here")])
    df, stats = extract_from_xml(form, tmp_path / "out")
    assert df.empty
    assert stats.files_processed == 1
    assert not (tmp_path / "out").exists()


def test_invalid_xml_is_an_error_not_an_exception(tmp_path):
    bad = tmp_path / "bad.xml"
    bad.write_text("<my:myFields><unclosed>", encoding="utf-8")
    df, stats = extract_from_xml(bad, tmp_path / "out", log=LogBuffer(echo=False))
    assert df.empty
    assert stats.files_processed == 1
    assert stats.error_count == 1
    assert "XML could not be read" in stats.errors[0]["error"]


def test_extract_from_folder_continues_after_bad_file(write_form, tmp_path):
    write_form("a.xml", [("f", b64(framed_bytes("a.pdf", PDF)))])
    (tmp_path / "forms" / "b.xml").write_text("not xml at all", encoding="utf-8")
    write_form("c.xml", [("f", b64(framed_bytes("c.pdf", PDF)))])

    df, stats = extract_from_folder(tmp_path / "forms", tmp_path / "out")

    assert df["file_name"].tolist() == ["a.pdf", "c.pdf"]
    assert stats.as_dict() == {"files_processed": 3, "attachments_extracted": 2, "errors": 1}


def test_extract_from_folder_recursive_and_per_file_folder(write_form, tmp_path):
    write_form("top.xml", [("f", b64(framed_bytes("same.pdf", PDF)))])
    write_form("2019/nested form.xml", [("f", b64(framed_bytes("same.pdf", PDF)))])

    flat, flat_stats = extract_from_folder(tmp_path / "forms", tmp_path / "flat")
    assert flat_stats.files_processed == 1

    df, stats = extract_from_folder(tmp_path / "forms", tmp_path / "split", recursive=True, per_file_folder=True)
    assert stats.files_processed == 2
    assert (tmp_path / "split" / "top" / "same.pdf").exists()
    assert (tmp_path / "split" / "2019" / "nestedform" / "same.pdf").exists()


def test_per_file_folder_keeps_unicode_and_relative_path(write_form, tmp_path):
    write_form("Reiseantrag Müller.xml", [("f", b64(framed_bytes("a.pdf", PDF)))])
    write_form("a/x.xml", [("f", b64(framed_bytes("scan.pdf", PDF)))])
    write_form("b/x.xml", [("f", b64(framed_bytes("scan.pdf", PDF[::-1])))])

    df, _ = extract_from_folder(tmp_path / "forms", tmp_path / "out", recursive=True, per_file_folder=True)

    assert (tmp_path / "out" / "ReiseantragMüller" / "a.pdf").exists()
    assert (tmp_path / "out" / "a" / "x" / "scan.pdf").read_bytes() == PDF
    assert (tmp_path / "out" / "b" / "x" / "scan.pdf").read_bytes() == PDF[::-1]
    assert "scan-copy1.pdf" not in df["file_name"].tolist()


def test_extract_from_folder_pattern(write_form, tmp_path):
    write_form("a.xml", [("f", b64(JPG))])
    write_form("b.txt", [("f", b64(JPG))])
    _, stats = extract_from_folder(tmp_path / "forms", tmp_path / "out", pattern="*.txt")
    assert stats.files_processed == 1


def test_extract_from_folder_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        extract_from_folder(tmp_path / "missing", tmp_path / "out")


def test_empty_folder_gives_empty_frame(tmp_path):
    (tmp_path / "forms").mkdir()
    df, stats = extract_from_folder(tmp_path / "forms", tmp_path / "out")
    assert df.empty
    assert list(df.columns) == EXTRACTED_COLUMNS
    assert stats.files_processed == 0


def test_stats_merge_and_report_frames():
    a = ExtractionStats(files_processed=1, attachments_extracted=2)
    b = ExtractionStats(files_processed=2)
    b.add_error("f.xml", "boom", node="n1")
    a.merge(b)

    summary = summary_df(a, source="src")
    assert summary.to_dict("records") == [
        {"source": "src", "files_processed": 3, "attachments_extracted": 2, "errors": 1}
    ]
    assert errors_df(a).to_dict("records") == [{"file": "f.xml", "node": "n1", "error": "boom"}]
    assert errors_df(ExtractionStats()).empty
