import json

import pytest

from spfw.core.auth import GRAPH_DEFAULT_SCOPE, TokenProvider


class FakeApp:
    instances = []

    def __init__(self, client_id, authority, client_credential, result=None):
        self.client_id = client_id
        self.authority = authority
        self.client_credential = client_credential
        self.scopes = []
        FakeApp.instances.append(self)

    def acquire_token_for_client(self, scopes):
        self.scopes.append(scopes)
        if self.client_credential == "bad":
            return {"error": "invalid_client", "error_description": "AADSTS7000215", "correlation_id": "c1"}
        return {"access_token": "tok-123", "expires_in": 3599}


@pytest.fixture(autouse=True)
def fake_msal(monkeypatch):
    FakeApp.instances = []
    monkeypatch.setattr("spfw.core.auth.msal.ConfidentialClientApplication", FakeApp)


def test_token_is_acquired_with_default_scope():
    tp = TokenProvider.from_values(" tid ", "cid", "secret")
    assert tp.get_access_token() == "tok-123"
    app = FakeApp.instances[0]
    assert app.authority == "https://login.microsoftonline.com/tid"
    assert app.scopes == [[GRAPH_DEFAULT_SCOPE]]


def test_app_is_created_once():
    tp = TokenProvider.from_values("tid", "cid", "secret")
    tp.get_access_token()
    tp.get_access_token("https://graph.microsoft.com/.default")
    assert len(FakeApp.instances) == 1


def test_failure_raises_or_returns_status():
    tp = TokenProvider.from_values("tid", "cid", "bad")
    with pytest.raises(RuntimeError, match="invalid_client"):
        tp.get_access_token()
    token, ok, msg = tp.get_access_token(return_status=True)
    assert (token, ok) == ("", False)
    assert "AADSTS7000215" in msg


def test_secret_not_in_repr():
    assert "secret" not in repr(TokenProvider.from_values("tid", "cid", "secret"))


def test_from_json(tmp_path):
    cfg = tmp_path / "config.json"
    cfg.write_text(json.dumps({"azuread": {"tenant_id": "t", "client_id": "c", "client_secret": "s"}}), encoding="utf-8")
    tp = TokenProvider.from_json(cfg)
    assert (tp.tenant_id, tp.client_id) == ("t", "c")


def test_from_json_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        TokenProvider.from_json(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(RuntimeError):
        TokenProvider.from_json(broken)

    other = tmp_path / "other.json"
    other.write_text(json.dumps({"sql": {}}), encoding="utf-8")
    with pytest.raises(KeyError):
        TokenProvider.from_json(other)

    with pytest.raises(KeyError, match="client_secret"):
        TokenProvider.from_dict({"tenant_id": "t", "client_id": "c"})


def test_from_env(monkeypatch):
    monkeypatch.setenv("SPFW_TENANT_ID", "t")
    monkeypatch.setenv("SPFW_CLIENT_ID", "c")
    monkeypatch.setenv("SPFW_CLIENT_SECRET", "s")
    assert TokenProvider.from_env().client_id == "c"

    monkeypatch.delenv("SPFW_CLIENT_SECRET")
    with pytest.raises(ValueError):
        TokenProvider.from_env()
