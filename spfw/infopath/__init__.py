# -*- coding: utf-8 -*-
# Re-exports: Decoder (rein, ohne I/O) + Extraktion (XML → Dateien)

from .decoder import (
    DEFAULT_FILE_NAME,
    DecodedAttachment,
    DecodeResult,
    DecodeStatus,
    decode_attachment,
    sanitize_file_name,
    try_decode,
)
from .extract import ExtractionStats, extract_from_folder, extract_from_xml, unique_target_path

__all__ = [
    "DEFAULT_FILE_NAME",
    "DecodedAttachment",
    "DecodeResult",
    "DecodeStatus",
    "decode_attachment",
    "sanitize_file_name",
    "try_decode",
    "ExtractionStats",
    "extract_from_folder",
    "extract_from_xml",
    "unique_target_path",
]
