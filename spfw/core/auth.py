# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.core.auth — MSAL-Authentifizierung (App-Flow) für Graph/SharePoint
===============================================================================
Zweck:
    - Kapselt den Client-Credentials-Flow (Application Permissions) via MSAL.
    - Fabriken:
        • from_json  (Abschnitt "azuread" einer config.json)
        • from_dict / from_values
        • from_env   (SPFW_TENANT_ID / SPFW_CLIENT_ID / SPFW_CLIENT_SECRET)
    - Die ConfidentialClientApplication wird einmal erzeugt und wiederverwendet;
      MSAL cached Tokens in-memory bis kurz vor Ablauf.

Design-Notizen:
    - Geheimnisse erscheinen weder in __repr__ noch in Fehlermeldungen.
    - Standard-Scope "https://graph.microsoft.com/.default".
    - Benötigte App-Permission für den InfoPath-Export: Sites.Read.All.

Abhängigkeiten:
    pip install msal

Beispiel:
    tp = TokenProvider.from_json("config.json")
    token = tp.get_access_token()

Version: 1.4.0 (2025-10-02)

Änderungsprotokoll
------------------
2025-10-02 - ENV-Präfix SPFW_, persistenter Token-Cache entfernt.
===============================================================================
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import json
import os
import threading

import msal

__version__ = "1.4.0"

GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"


def _ensure_scopes(scopes: Optional[Union[str, Iterable[str]]]) -> List[str]:
    """Normalisiert 'scopes' zu einer Liste. None/leer → Graph .default."""
    if scopes is None:
        return [GRAPH_DEFAULT_SCOPE]
    if isinstance(scopes, str):
        scopes = [scopes]
    cleaned = [str(s).strip() for s in scopes if str(s).strip()]
    return cleaned or [GRAPH_DEFAULT_SCOPE]


@dataclass
class TokenProvider:
    """
    Dünner Wrapper um MSAL ConfidentialClientApplication (Client-Credentials).

    get_access_token() ist mit einem Lock geschützt; dieselbe Instanz darf
    von mehreren Threads genutzt werden.
    """

    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    authority_base: str = "https://login.microsoftonline.com"

    _cca: Optional[msal.ConfidentialClientApplication] = field(default=None, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    # ------------------------------- Fabriken ---------------------------------

    @classmethod
    def from_json(cls, config_path: Union[str, Path], section: str = "azuread") -> "TokenProvider":
        """
        Lädt Credentials aus JSON:

        {
          "azuread": {"tenant_id": "...", "client_id": "...", "client_secret": "..."}
        }
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            cfg = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as ex:
            raise RuntimeError(f"Failed to parse JSON config at '{path}': {ex}") from ex
        if section not in cfg:
            raise KeyError(f"Section '{section}' not found in {path}")
        return cls.from_dict(cfg[section])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TokenProvider":
        missing = [k for k in ("tenant_id", "client_id", "client_secret") if not d.get(k)]
        if missing:
            raise KeyError(f"Missing key(s) in azuread config: {', '.join(missing)}")
        return cls.from_values(d["tenant_id"], d["client_id"], d["client_secret"])

    @classmethod
    def from_values(cls, tenant_id: str, client_id: str, client_secret: str) -> "TokenProvider":
        return cls(
            tenant_id=str(tenant_id).strip(),
            client_id=str(client_id).strip(),
            client_secret=str(client_secret).strip(),
        )

    @classmethod
    def from_env(cls, prefix: str = "SPFW_") -> "TokenProvider":
        """Erwartet <prefix>TENANT_ID, <prefix>CLIENT_ID, <prefix>CLIENT_SECRET."""
        tid = os.getenv(f"{prefix}TENANT_ID", "").strip()
        cid = os.getenv(f"{prefix}CLIENT_ID", "").strip()
        sec = os.getenv(f"{prefix}CLIENT_SECRET", "")
        if not (tid and cid and sec):
            raise ValueError(f"Environment variables {prefix}TENANT_ID/_CLIENT_ID/_CLIENT_SECRET required.")
        return cls.from_values(tid, cid, sec)

    # --------------------------------- Utils ----------------------------------

    @property
    def authority(self) -> str:
        return f"{self.authority_base.rstrip('/')}/{self.tenant_id}"

    def _ensure_app(self) -> msal.ConfidentialClientApplication:
        if self._cca is None:
            self._cca = msal.ConfidentialClientApplication(
                client_id=self.client_id,
                authority=self.authority,
                client_credential=self.client_secret,
            )
        return self._cca

    # ------------------------------ Hauptmethode ------------------------------

    def get_access_token(
        self,
        scopes: Optional[Union[str, Iterable[str]]] = None,
        *,
        return_status: bool = False,
    ):
        """
        Holt ein Access Token (Client-Credentials-Flow).

        Rückgabe:
            - Standard: Access Token (str)
            - return_status=True: (token_or_empty, succeeded, error_message)

        Raises:
            RuntimeError bei Fehlschlag (nur ohne return_status)
        """
        scope_list = _ensure_scopes(scopes)
        with self._lock:
            result = self._ensure_app().acquire_token_for_client(scopes=scope_list)

        if "access_token" in result:
            token = str(result["access_token"])
            return (token, True, "") if return_status else token

        # nur unkritische Felder weiterreichen
        err = {
            "error": result.get("error"),
            "error_description": result.get("error_description"),
            "correlation_id": result.get("correlation_id"),
        }
        if return_status:
            return ("", False, f"Token acquisition failed: {err}")
        raise RuntimeError(f"Token acquisition failed: {err}")


__all__ = ["TokenProvider", "GRAPH_DEFAULT_SCOPE", "__version__"]
