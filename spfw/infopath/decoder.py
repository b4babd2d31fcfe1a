# decoder.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.infopath.decoder — InfoPath-Anhänge aus XML-Textknoten dekodieren
===============================================================================
Zweck:
    InfoPath speichert Dateianhänge als base64-Text in den Knoten des
    Formular-XML. try_decode() entscheidet pro Knotentext, ob ein Anhang
    vorliegt, und liefert Dateiname + Bytes.

Ablauf (billige Prüfungen zuerst, Abbruch beim ersten Treffer):
    1. Länge <= 100 Zeichen            → kein Anhang
    2. Länge kein Vielfaches von 4     → kein Anhang
    3. enthält Leerzeichen             → kein Anhang
    4. beginnt mit http:// / https://  → kein Anhang (Hyperlink-Feld)
    5. base64 ungültig                 → kein Anhang
    6. dekodierte Bytes leer           → kein Anhang

Binärformat (InfoPath-Header, Little Endian):
    Offset  0..3   Signatur C7 49 46 41
    Offset  4..19  reserviert (Version, Dateigröße, …)
    Offset 20      Länge N des Dateinamens in UTF-16-Zeichen inkl. NUL (uint8)
    Offset 21..23  reserviert
    Offset 24..    Dateiname UTF-16LE (N*2 Bytes, letztes Zeichen NUL)
    danach         Dateiinhalt

    Ohne Signatur ("headerless", z. B. Bild-Steuerelemente) sind alle Bytes der
    Dateiinhalt; der Dateiname kommt vom Aufrufer (default_file_name).

Rückgabe:
    DecodeResult mit status ∈ DecodeStatus; bei Erfolg .attachment gesetzt.
    Die Funktionen werfen keine Exceptions für beliebige str-Eingaben,
    halten keinen Zustand und sind threadsicher.

Beispiel:
    res = try_decode(node.text, "uploadedImage.jpg")
    if res.ok:
        Path(out, res.attachment.file_name).write_bytes(res.attachment.content)
    elif res.status != DecodeStatus.NOT_ATTACHMENT:
        log.warning("Anhang defekt", error=res.error)

Version: 1.0.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional

__version__ = "1.0.0"

INFOPATH_SIGNATURE = bytes((0xC7, 0x49, 0x46, 0x41))
HEADER_SIZE = 24
NAME_LENGTH_OFFSET = 20
MIN_TEXT_LENGTH = 100
DEFAULT_FILE_NAME = "uploadedImage.jpg"

_URL_PREFIXES = ("http://", "https://")
_LEGAL_PUNCTUATION = frozenset("()_.@,-")


class DecodeStatus:
    OK = "ok"
    NOT_ATTACHMENT = "not_attachment"
    MALFORMED_HEADER = "malformed_header"
    FILENAME_DECODE_FAILURE = "filename_decode_failure"


@dataclass(frozen=True)
class DecodedAttachment:
    file_name: str
    content: bytes
    has_header: bool

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class DecodeResult:
    status: str
    attachment: Optional[DecodedAttachment] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == DecodeStatus.OK

    @property
    def failed(self) -> bool:
        """True für defekte Anhänge (nicht für 'kein Anhang')."""
        return self.status in (DecodeStatus.MALFORMED_HEADER, DecodeStatus.FILENAME_DECODE_FAILURE)


_NOT_ATTACHMENT = DecodeResult(DecodeStatus.NOT_ATTACHMENT)


def sanitize_file_name(name: str) -> str:
    """
    Trimmt Whitespace und behält nur Unicode-Buchstaben, Dezimalziffern und
    ( ) _ . @ , - ; Pfadtrenner und andere unzulässige Zeichen fallen weg.
    Führende Punkte werden entfernt ('../x' → 'x', keine versteckten Dateien).
    """
    kept = "".join(ch for ch in (name or "").strip()
                   if ch.isalpha() or ch.isdecimal() or ch in _LEGAL_PUNCTUATION)
    return kept.lstrip(".")


def _looks_like_base64(text: str) -> bool:
    if len(text) <= MIN_TEXT_LENGTH:
        return False
    if len(text) % 4 != 0:
        return False
    if " " in text:
        return False
    if text[:8].lower().startswith(_URL_PREFIXES):
        return False
    return True


def _b64decode(text: str) -> Optional[bytes]:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        # ValueError: Nicht-ASCII-Zeichen im str
        return None


def _parse_framed(data: bytes) -> DecodeResult:
    name_units = data[NAME_LENGTH_OFFSET]
    name_end = HEADER_SIZE + name_units * 2
    if name_end > len(data):
        return DecodeResult(
            DecodeStatus.MALFORMED_HEADER,
            error=f"file name length {name_units} exceeds buffer ({len(data)} bytes)",
        )

    try:
        raw_name = data[HEADER_SIZE:name_end].decode("utf-16-le")
    except UnicodeDecodeError as ex:
        return DecodeResult(DecodeStatus.FILENAME_DECODE_FAILURE, error=str(ex))

    content = data[name_end:]
    if not content:
        return _NOT_ATTACHMENT

    # letztes Zeichen ist der NUL-Terminator
    attachment = DecodedAttachment(sanitize_file_name(raw_name[:-1]), content, True)
    return DecodeResult(DecodeStatus.OK, attachment)


def try_decode(text: str, default_file_name: str = DEFAULT_FILE_NAME) -> DecodeResult:
    """Klassifiziert einen Knotentext und dekodiert ggf. den Anhang (siehe Modul-Doku)."""
    if not isinstance(text, str) or not _looks_like_base64(text):
        return _NOT_ATTACHMENT

    data = _b64decode(text)
    if not data:
        return _NOT_ATTACHMENT

    if data[:4] == INFOPATH_SIGNATURE:
        if len(data) < HEADER_SIZE:
            return DecodeResult(
                DecodeStatus.MALFORMED_HEADER,
                error=f"buffer shorter than header ({len(data)} < {HEADER_SIZE} bytes)",
            )
        return _parse_framed(data)

    return DecodeResult(DecodeStatus.OK, DecodedAttachment(default_file_name, data, False))


def decode_attachment(text: str, default_file_name: str = DEFAULT_FILE_NAME) -> Optional[DecodedAttachment]:
    """Kurzform von try_decode(): Anhang oder None."""
    return try_decode(text, default_file_name).attachment


__all__ = [
    "INFOPATH_SIGNATURE",
    "HEADER_SIZE",
    "NAME_LENGTH_OFFSET",
    "MIN_TEXT_LENGTH",
    "DEFAULT_FILE_NAME",
    "DecodeStatus",
    "DecodedAttachment",
    "DecodeResult",
    "sanitize_file_name",
    "try_decode",
    "decode_attachment",
]
