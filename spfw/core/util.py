# util.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.core.util — Helfer: Konsole, Masking, Dateinamen, Deep-Get
===============================================================================
Zweck:
    - UTF-8-Konsolenerkennung (Ellipsis-Zeichen für Statusausgaben)
    - Masking sensibler Felder (Secrets) für Logs
    - Dateinamen-Sanitizer für Report-Dateien (Prefix/Postfix)
    - Deep-Get (obj['a']['b']...) für Graph-JSON

Abhängigkeiten:
    * Standardbibliothek

Version: 1.1.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence
import sys
import locale
import re

# ------------------------------ UTF-8 / Console -------------------------------

def supports_utf8_stdout() -> bool:
    enc = (getattr(sys.stdout, "encoding", None) or locale.getpreferredencoding(False) or "").lower()
    return "utf" in enc


ELLIPSIS = "…" if supports_utf8_stdout() else "..."


# ------------------------------ Masking ---------------------------------------

DEFAULT_MASK_KEYS: Sequence[str] = ("client_secret", "password", "secret", "token")


def mask_secrets(d: Mapping[str, Any], *, mask_keys: Sequence[str] = DEFAULT_MASK_KEYS) -> Dict[str, Any]:
    """
    Kopie von 'd', in der Werte unterhalb sensibler Keys durch '***' ersetzt sind.
    Key-Vergleich ist case-insensitiv und prüft auf Teilstrings
    ('Client_Secret', 'access_token', ...).
    """
    out: Dict[str, Any] = {}
    for k, v in d.items():
        k_lc = str(k).lower()
        out[k] = "***" if any(m in k_lc for m in mask_keys) else v
    return out


# ------------------------------ Dateinamen ------------------------------------

_SAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9\-_.]")
_MULTI_UNDERSCORE_RE = re.compile(r"_+")


def sanitize_for_filename(value: str) -> str:
    """
    Macht einen Namensbestandteil (Report-Prefix, Ordnername) ASCII-dateisicher.
    Leerzeichen und Sonderzeichen werden zu '_', Mehrfach-Unterstriche
    zusammengefasst. Leeres Ergebnis → 'NA'.
    """
    val = (value or "").strip().replace(" ", "_")
    val = _SAFE_CHARS_RE.sub("_", val)
    val = _MULTI_UNDERSCORE_RE.sub("_", val).strip("_")
    return val or "NA"


# ------------------------------ Deep-Get --------------------------------------

def deep_get(obj: Any, path: str, default: Any = None) -> Any:
    """Navigiert 'a.b.c' in dicts; gibt default zurück, wenn ein Segment fehlt."""
    cur = obj
    for seg in path.split("."):
        if isinstance(cur, dict) and seg in cur:
            cur = cur[seg]
        else:
            return default
    return cur


__all__ = [
    "supports_utf8_stdout",
    "ELLIPSIS",
    "DEFAULT_MASK_KEYS",
    "mask_secrets",
    "sanitize_for_filename",
    "deep_get",
]
