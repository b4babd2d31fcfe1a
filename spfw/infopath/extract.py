# extract.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.infopath.extract — InfoPath-Formulare (XML) → Anhänge auf Platte
===============================================================================
Funktionen:
    iter_text_nodes(xml_source)
        Alle Elemente mit nicht-leerem Text als (knotenname, text).
    unique_target_path(folder, file_name)
        Kollisionsfreier Zielpfad: name.ext → name-copy1.ext → name-copy2.ext …
    extract_from_xml(xml_path, output_dir, *, default_file_name, log)
        Ein Formular verarbeiten → (df, stats)
    extract_from_folder(source_dir, output_dir, *, pattern, recursive, …)
        Alle Formulare eines Ordners verarbeiten → (df, stats)
    summary_df(stats) / errors_df(stats)
        Report-Tabellen für CSV/Excel.

Fehlerverhalten:
    - Ein defekter Anhang (Header inkonsistent, Dateiname nicht dekodierbar)
      wird protokolliert und gezählt; die übrigen Knoten werden weiter
      verarbeitet.
    - Ein nicht parsebares XML oder ein Schreibfehler zählt als Fehler der
      Datei; die übrigen Dateien werden weiter verarbeitet.
    - Formulare gelten als vertrauenswürdige Eingabe (eigene Bibliothek bzw.
      eigener Export); ElementTree prüft nicht auf Entity-Expansion.

Rückgabe:
    df: pandas.DataFrame mit EXTRACTED_COLUMNS (eine Zeile je Anhang)
    stats: ExtractionStats (Zähler + Fehlerliste)

Version: 1.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, IO, Iterator, List, Tuple, Union
import xml.etree.ElementTree as ET

import pandas as pd

from .decoder import DEFAULT_FILE_NAME, sanitize_file_name, try_decode

__version__ = "1.0.0"

EXTRACTED_COLUMNS = ["source_file", "node", "file_name", "target_path", "size_bytes", "has_header"]
ERROR_COLUMNS = ["file", "node", "error"]

PathLike = Union[str, Path]


@dataclass
class ExtractionStats:
    """Laufstatistik (ersetzt globale Zähler); mehrere Läufe via merge() kombinierbar."""
    files_processed: int = 0
    attachments_extracted: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add_error(self, file: Any, error: Any, node: str = "") -> None:
        self.errors.append({"file": str(file), "node": node, "error": str(error)})

    def merge(self, other: "ExtractionStats") -> "ExtractionStats":
        self.files_processed += other.files_processed
        self.attachments_extracted += other.attachments_extracted
        self.errors.extend(other.errors)
        return self

    def as_dict(self) -> Dict[str, int]:
        return {
            "files_processed": self.files_processed,
            "attachments_extracted": self.attachments_extracted,
            "errors": self.error_count,
        }


# ------------------------------ XML ------------------------------------------

def _local_name(tag: Any) -> str:
    # '{http://schemas.microsoft.com/office/infopath/...}field1' → 'field1'
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def iter_text_nodes(xml_source: Union[PathLike, IO[bytes]]) -> Iterator[Tuple[str, str]]:
    """
    Liefert (lokaler Knotenname, getrimmter Text) für alle Elemente mit Text.

    Raises:
        xml.etree.ElementTree.ParseError bei ungültigem XML
    """
    tree = ET.parse(xml_source)
    for elem in tree.iter():
        text = (elem.text or "").strip()
        if text:
            yield _local_name(elem.tag), text


# ------------------------------ Dateinamen -----------------------------------

def unique_target_path(folder: PathLike, file_name: str) -> Path:
    """
    Zielpfad in 'folder'; existiert die Datei bereits, wird vor der Endung
    '-copy1', '-copy2', … angehängt.
    """
    base = Path(folder)
    target = base / file_name
    if not target.exists():
        return target
    stem, suffix = target.stem, target.suffix
    counter = 1
    while True:
        candidate = base / f"{stem}-copy{counter}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1


# ------------------------------ Extraktion -----------------------------------

def extract_from_xml(
    xml_path: PathLike,
    output_dir: PathLike,
    *,
    default_file_name: str = DEFAULT_FILE_NAME,
    log: Any = None,
) -> Tuple[pd.DataFrame, ExtractionStats]:
    """
    Dekodiert alle Anhänge eines InfoPath-Formulars nach 'output_dir'.

    Der Ordner wird erst beim ersten Anhang angelegt. Ein Anhang mit leerem
    Dateinamen (nach Bereinigung) erhält 'default_file_name'.
    """
    src = Path(xml_path)
    out = Path(output_dir)
    stats = ExtractionStats(files_processed=1)
    rows: List[Dict[str, Any]] = []

    try:
        nodes = list(iter_text_nodes(src))
    except (ET.ParseError, OSError) as ex:
        stats.add_error(src, f"XML could not be read: {ex}")
        if log is not None:
            log.error("XML could not be read", file=str(src), error=str(ex))
        return pd.DataFrame(rows, columns=EXTRACTED_COLUMNS), stats

    for node, text in nodes:
        res = try_decode(text, default_file_name)
        if res.failed:
            stats.add_error(src, f"{res.status}: {res.error}", node=node)
            if log is not None:
                log.warning("Attachment could not be decoded", file=str(src), node=node,
                            status=res.status, error=res.error)
            continue
        if not res.ok:
            continue

        att = res.attachment
        try:
            out.mkdir(parents=True, exist_ok=True)
            target = unique_target_path(out, att.file_name or default_file_name)
            target.write_bytes(att.content)
        except OSError as ex:
            stats.add_error(src, f"write failed: {ex}", node=node)
            if log is not None:
                log.error("Attachment could not be written", file=str(src), node=node, error=str(ex))
            continue

        stats.attachments_extracted += 1
        rows.append({
            "source_file": str(src),
            "node": node,
            "file_name": target.name,
            "target_path": str(target),
            "size_bytes": att.size,
            "has_header": att.has_header,
        })
        if log is not None:
            log.debug("Attachment extracted", file=str(src), node=node, target=str(target), size=att.size)

    if log is not None:
        log.info("Form processed", file=str(src), attachments=len(rows))
    return pd.DataFrame(rows, columns=EXTRACTED_COLUMNS), stats


def _form_folder(out_dir: Path, src_dir: Path, xml_file: Path) -> Path:
    # 'a/Reise Müller.xml' → out_dir/a/ReiseMüller
    rel = xml_file.relative_to(src_dir).with_suffix("")
    return out_dir.joinpath(*(sanitize_file_name(part) or "_" for part in rel.parts))


def extract_from_folder(
    source_dir: PathLike,
    output_dir: PathLike,
    *,
    pattern: str = "*.xml",
    recursive: bool = False,
    per_file_folder: bool = False,
    default_file_name: str = DEFAULT_FILE_NAME,
    log: Any = None,
) -> Tuple[pd.DataFrame, ExtractionStats]:
    """
    Verarbeitet alle Formulare in 'source_dir' (sortiert, deterministisch).

    per_file_folder=True legt je Formular einen Unterordner an (relativer Pfad
    ohne Endung, Namen wie Anhänge bereinigt), sonst landen alle Anhänge
    gemeinsam in 'output_dir'.

    Raises:
        FileNotFoundError wenn 'source_dir' kein Ordner ist
    """
    src_dir = Path(source_dir).expanduser()
    if not src_dir.is_dir():
        raise FileNotFoundError(f"Source folder not found: {src_dir}")
    out_dir = Path(output_dir).expanduser()

    files = sorted(p for p in (src_dir.rglob(pattern) if recursive else src_dir.glob(pattern)) if p.is_file())
    if log is not None:
        log.info("Forms found", source=str(src_dir), count=len(files), pattern=pattern, recursive=recursive)

    total = ExtractionStats()
    frames: List[pd.DataFrame] = []
    for xml_file in files:
        target_dir = _form_folder(out_dir, src_dir, xml_file) if per_file_folder else out_dir
        df, stats = extract_from_xml(xml_file, target_dir, default_file_name=default_file_name, log=log)
        total.merge(stats)
        if not df.empty:
            frames.append(df)

    df_all = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=EXTRACTED_COLUMNS)
    return df_all, total


# ------------------------------ Reports --------------------------------------

def summary_df(stats: ExtractionStats, **extra: Any) -> pd.DataFrame:
    """Einzeilige Zusammenfassung; 'extra' (z. B. source/output) wird vorangestellt."""
    return pd.DataFrame([{**extra, **stats.as_dict()}])


def errors_df(stats: ExtractionStats) -> pd.DataFrame:
    return pd.DataFrame(stats.errors, columns=ERROR_COLUMNS)


__all__ = [
    "EXTRACTED_COLUMNS",
    "ERROR_COLUMNS",
    "ExtractionStats",
    "iter_text_nodes",
    "unique_target_path",
    "extract_from_xml",
    "extract_from_folder",
    "summary_df",
    "errors_df",
]
