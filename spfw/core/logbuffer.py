# logbuffer.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.core.logbuffer — Print + Log-Puffer → Logdatei / DataFrame
===============================================================================
Zweck:
    - Logging-Hilfe für Batch-Jobs, die
        * sofort auf die Konsole schreibt (print, abschaltbar)
        * parallel strukturierte Log-Einträge puffert
        * am Ende des Laufs als Logdatei (write_log) oder DataFrame (to_df)
          exportiert werden kann.

Besonderheiten:
    - Maskiert sensible Schlüssel (client_secret, password, token, …)
    - Level: DEBUG/INFO/WARNING/ERROR
    - ISO8601 Zeitstempel (UTC)

Beispiel:
    lb = LogBuffer()
    lb.info("Extrahiere Anhänge", source=str(src))
    ...
    lb.write_log(report_dir / "export.log")

Version: 1.1.0 (2025-10-02)

Änderungsprotokoll
------------------
2025-10-02 - write_log(), count(level) und min_level für die Konsolenausgabe.
===============================================================================
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import pandas as pd

from .util import DEFAULT_MASK_KEYS, mask_secrets

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


def _format_entry(entry: Dict[str, Any]) -> str:
    ctx = {k: v for k, v in entry.items() if k not in ("ts", "level", "message")}
    kv = " ".join(f"{k}={v}" for k, v in ctx.items())
    return f"[{entry['level']}] {entry['ts']} {entry['message']}" + (f" | {kv}" if kv else "")


@dataclass
class LogBuffer:
    """
    Kleiner Logger:
        - echo: sofort in Konsole ausgeben
        - min_level: kleinstes Level, das auf der Konsole erscheint (gepuffert wird alles)
        - mask_keys: Keys, deren Werte in context maskiert werden
    """
    echo: bool = True
    min_level: str = "INFO"
    mask_keys: Sequence[str] = field(default=DEFAULT_MASK_KEYS)

    _entries: List[Dict[str, Any]] = field(default_factory=list, init=False)

    # ------------------------------ Basis-API ---------------------------------

    def log(self, level: str, message: str, **context: Any) -> None:
        """Allgemeiner Logeintrag."""
        lvl = level.upper()
        ts = datetime.now(timezone.utc).isoformat()
        ctx_masked = mask_secrets(context, mask_keys=self.mask_keys) if context else {}
        entry = {"ts": ts, "level": lvl, "message": message, **ctx_masked}
        self._entries.append(entry)
        if self.echo and _LEVELS.get(lvl, 0) >= _LEVELS.get(self.min_level.upper(), 0):
            print(_format_entry(entry))

    # ------------------------------ Komfort-API -------------------------------

    def debug(self, message: str, **context: Any) -> None:
        self.log("DEBUG", message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log("INFO", message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log("WARNING", message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.log("ERROR", message, **context)

    # ------------------------------ Export-API --------------------------------

    def to_list(self) -> List[Dict[str, Any]]:
        """Rohdaten (Liste von dicts)."""
        return list(self._entries)

    def to_df(self) -> pd.DataFrame:
        return pd.DataFrame(self._entries)

    def write_log(self, path: Union[str, Path], *, encoding: str = "utf-8") -> Path:
        """
        Schreibt alle gepufferten Einträge (eine Zeile pro Eintrag) nach 'path'.
        Ordner werden bei Bedarf angelegt; eine bestehende Datei wird überschrieben.
        """
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        lines = [_format_entry(e) for e in self._entries]
        target.write_text("\n".join(lines) + ("\n" if lines else ""), encoding=encoding)
        return target

    # ------------------------------ Extras ------------------------------------

    def count(self, level: str) -> int:
        lvl = level.upper()
        return sum(1 for e in self._entries if e["level"] == lvl)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["LogBuffer"]
