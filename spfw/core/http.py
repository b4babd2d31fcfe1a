# http.py
# -*- coding: utf-8 -*-
"""
===============================================================================
spfw.core.http — HTTP-Client für Microsoft Graph (Retry, Paging, Download)
===============================================================================
Zweck:
    - Einheitlicher Zugriff auf Graph-Endpoints (SharePoint Sites/Lists/Drives):
        * Bearer-Auth via TokenProvider (alles mit get_access_token())
        * Exponentielles Backoff mit Jitter bei 429/5xx, Retry-After-Respekt
        * Auto-Paging über @odata.nextLink
        * Binär-Download (Dateiinhalt von DriveItems)

    - Methoden:
        * request()      – generisch (GET/POST/…)
        * get_json()     – GET + JSON
        * get_paged()    – Generator über Items ('value') seitenübergreifend
        * get_content()  – GET + Bytes (z. B. /drives/{id}/items/{id}/content)

    - Diagnose: last_attempt_count / last_retry_count des letzten Requests.

Abhängigkeiten:
    pip install requests

Beispiel:
    tp = TokenProvider.from_json("config.json")
    gc = GraphClient(tp, log=LogBuffer())
    for it in gc.get_paged("/sites/root/lists"):
        ...

Version: 1.1.0 (2025-10-02)
===============================================================================
"""
from __future__ import annotations

import random
import time
from typing import Any, Dict, Generator, Iterable, Mapping, Optional
from urllib.parse import urljoin

import requests

GRAPH_BASE = "https://graph.microsoft.com/v1.0"
RETRY_STATUS = (429, 500, 502, 503, 504)

_JSON_ACCEPT = "application/json;odata.metadata=none"


class GraphClient:
    """
    Schlanker Graph-HTTP-Client mit Retry- und Paging-Unterstützung.

    Hinweis:
        - 'path_or_url' kann absolut (https://...) oder relativ zu 'base' sein.
        - Relative Pfade dürfen mit '/v1.0/' beginnen; das Präfix wird dann nicht
          doppelt angehängt.
        - Session wird wiederverwendet (Keep-Alive).
    """

    def __init__(
        self,
        token_provider,
        *,
        base: str = GRAPH_BASE,
        timeout: int = 60,
        max_retries: int = 5,
        backoff_factor: float = 0.5,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
        log: Optional[Any] = None,  # LogBuffer-kompatibel: .warning/.error(msg, **ctx)
    ) -> None:
        self.token_provider = token_provider
        self.base = base.rstrip("/") + "/"
        self.timeout = int(timeout)
        self.max_retries = int(max_retries)
        self.backoff_factor = float(backoff_factor)
        self.user_agent = user_agent or "spfw/1.1 (+https://graph.microsoft.com)"
        self.session = session or requests.Session()
        self.log = log
        self.last_attempt_count = 0
        self.last_retry_count = 0

    # ------------------------------- Kernaufruf --------------------------------

    def url_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        path = path_or_url.lstrip("/")
        version = self.base.rstrip("/").rsplit("/", 1)[-1]
        if path.startswith(version + "/"):
            path = path[len(version) + 1:]
        return urljoin(self.base, path)

    def request(
        self,
        method: str,
        path_or_url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        json: Optional[Any] = None,
        expected: Iterable[int] = (200,),
        timeout: Optional[int] = None,
        stream: bool = False,
    ) -> requests.Response:
        """
        Führt einen HTTP-Request mit Retry-Logik aus.

        - expected: erlaubte Statuscodes (default: 200)
        - Retry bei Verbindungsfehlern und 429/5xx, höchstens max_retries-mal

        Raises:
            requests.RequestException (Verbindungsfehler nach Ausschöpfen der Retries)
            requests.HTTPError (unerwarteter Status)
        """
        url = self.url_for(path_or_url)
        hdrs = {
            "Authorization": f"Bearer {self.token_provider.get_access_token()}",
            "Accept": _JSON_ACCEPT,
            "User-Agent": self.user_agent,
        }
        if headers:
            hdrs.update(headers)
        expected = tuple(expected)

        attempt = 0
        while True:
            attempt += 1
            self.last_attempt_count = attempt
            self.last_retry_count = attempt - 1
            try:
                resp = self.session.request(
                    method=method.upper(),
                    url=url,
                    params=dict(params) if params else None,
                    headers=hdrs,
                    json=json,
                    timeout=timeout or self.timeout,
                    stream=stream,
                )
            except requests.RequestException:
                if attempt > self.max_retries:
                    self._log("error", "HTTP request failed (no response)", url=url, method=method, attempt=attempt)
                    raise
                self._sleep_backoff(attempt, None)
                continue

            if resp.status_code in expected:
                return resp

            if resp.status_code in RETRY_STATUS and attempt <= self.max_retries:
                retry_after = self._parse_retry_after(resp)
                self._log("warning", "HTTP retry", url=url, method=method,
                          status=resp.status_code, attempt=attempt, retry_after=retry_after)
                self._sleep_backoff(attempt, retry_after)
                continue

            self._log("error", "HTTP error", url=url, method=method,
                      status=resp.status_code, text=self._safe_text(resp))
            resp.raise_for_status()
            # 2xx/3xx außerhalb von 'expected'
            raise requests.HTTPError(f"Unexpected status {resp.status_code} for {url}", response=resp)

    # ------------------------------- Hilfen ------------------------------------

    def get_json(self, path_or_url: str, *, params: Optional[Mapping[str, Any]] = None,
                 timeout: Optional[int] = None) -> Dict[str, Any]:
        """GET + JSON-Decoding (dict)."""
        payload = self.request("GET", path_or_url, params=params, timeout=timeout).json()
        if not isinstance(payload, dict):
            raise RuntimeError(f"Unexpected response structure (expected JSON object): {path_or_url}")
        return payload

    def get_paged(
        self,
        path_or_url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        item_path: str = "value",
        page_size_hint: Optional[int] = None,
    ) -> Generator[Dict[str, Any], None, None]:
        """
        Generator über Items (Standard: 'value') über @odata.nextLink hinweg.
        page_size_hint setzt $top für die erste Seite.
        """
        query = dict(params or {})
        if page_size_hint and "$top" not in query:
            query["$top"] = int(page_size_hint)

        url = self.url_for(path_or_url)
        while url:
            page = self.get_json(url, params=query or None)
            items = page.get(item_path, [])
            if not isinstance(items, list):
                raise RuntimeError(f"Unexpected response structure: '{item_path}' is not an array.")
            yield from items
            # nextLink ist absolut und enthält die Query bereits
            url, query = page.get("@odata.nextLink"), {}

    def get_content(self, path_or_url: str, *, timeout: Optional[int] = None) -> bytes:
        """GET + Rohbytes (Graph antwortet bei /content mit 302 → requests folgt)."""
        resp = self.request("GET", path_or_url, headers={"Accept": "*/*"}, timeout=timeout)
        return resp.content

    # ------------------------------ interne Utils -----------------------------

    def _log(self, level: str, message: str, **context: Any) -> None:
        if self.log is not None:
            getattr(self.log, level)(message, **context)

    @staticmethod
    def _parse_retry_after(resp: requests.Response) -> Optional[float]:
        """Retry-After in Sekunden; None wenn fehlend oder als HTTP-Datum angegeben."""
        ra = resp.headers.get("Retry-After")
        if not ra:
            return None
        try:
            return float(ra)
        except ValueError:
            return None

    def _sleep_backoff(self, attempt: int, retry_after: Optional[float]) -> None:
        if retry_after is not None:
            time.sleep(max(0.0, retry_after))
            return
        delay = self.backoff_factor * (2 ** (attempt - 1))
        delay += random.uniform(0.0, 0.25)  # jitter
        time.sleep(delay)

    @staticmethod
    def _safe_text(resp: requests.Response, limit: int = 500) -> str:
        t = resp.text or ""
        return t if len(t) <= limit else t[:limit] + " …"


__all__ = ["GraphClient", "GRAPH_BASE", "RETRY_STATUS"]
