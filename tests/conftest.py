import base64
import json

import pytest
import requests

from spfw.infopath.decoder import INFOPATH_SIGNATURE

INFOPATH_NS = "http://schemas.microsoft.com/office/infopath/2003/myXSD/2011-01-01T00:00:00"


def framed_bytes(name, content, name_units=None):
    """InfoPath-Anhang: Signatur + 16 reserviert + Länge + 3 reserviert + Name (UTF-16LE + NUL) + Inhalt."""
    raw_name = (name + "\0").encode("utf-16-le")
    units = len(name) + 1 if name_units is None else name_units
    header = INFOPATH_SIGNATURE + bytes(16) + bytes([units]) + bytes(3)
    return header + raw_name + content


def b64(data):
    return base64.b64encode(data).decode("ascii")


def form_xml(fields):
    """InfoPath-ähnliches Formular; fields = [(knotenname, text), ...]."""
    body = "".join(f"<my:{name}>{text}</my:{name}>" for name, text in fields)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<?mso-infoPathSolution solutionVersion="1.0.0.1" productVersion="14.0.0" PIVersion="1.0.0.0"?>'
        f'<my:myFields xmlns:my="{INFOPATH_NS}">{body}</my:myFields>'
    )


@pytest.fixture
def framed():
    def _make(name, content, name_units=None):
        return b64(framed_bytes(name, content, name_units))
    return _make


@pytest.fixture
def write_form(tmp_path):
    def _write(rel_path, fields):
        path = tmp_path / "forms" / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(form_xml(fields), encoding="utf-8")
        return path
    return _write


# ------------------------------ Graph fakes ----------------------------------

class FakeTokenProvider:
    def __init__(self, token="test-token"):
        self.token = token
        self.calls = 0

    def get_access_token(self):
        self.calls += 1
        return self.token


def make_response(status=200, payload=None, content=None, headers=None, url="https://graph.microsoft.com/v1.0/x"):
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp.encoding = "utf-8"
    if payload is not None:
        resp._content = json.dumps(payload).encode("utf-8")
    else:
        resp._content = content if content is not None else b""
    for k, v in (headers or {}).items():
        resp.headers[k] = v
    return resp


class FakeSession:
    """requests.Session-Ersatz: liefert vorbereitete Antworten in Reihenfolge."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, params=None, headers=None, json=None, timeout=None, stream=False):
        self.calls.append({"method": method, "url": url, "params": params, "headers": headers})
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


class FakeGraph:
    """GraphClient-Ersatz für Domain-Module: Routing über exakte URLs."""

    def __init__(self, pages=None, contents=None):
        self.pages = pages or {}
        self.contents = contents or {}
        self.paged_calls = []
        self.content_calls = []
        self.last_attempt_count = 1
        self.log = None

    def get_paged(self, url, *, params=None, item_path="value", page_size_hint=None):
        self.paged_calls.append((url, params))
        yield from self.pages.get(url, [])

    def get_content(self, url, *, timeout=None):
        self.content_calls.append(url)
        value = self.contents[url]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def token_provider():
    return FakeTokenProvider()
