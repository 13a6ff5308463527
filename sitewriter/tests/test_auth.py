import time

import jwt
import pytest
from fastapi import HTTPException

from sitewriter.core import auth
from sitewriter.core.auth import issue_session_token, verify_session_jwt


def test_issue_and_verify_round_trip():
    token = issue_session_token("user-9", "gho_abc", secret="k")
    session = verify_session_jwt(token, "k")
    assert session.user_id == "user-9"
    assert session.access_token == "gho_abc"


def test_wrong_secret_rejected():
    token = issue_session_token("user-9", "gho_abc", secret="k")
    with pytest.raises(HTTPException) as exc_info:
        verify_session_jwt(token, "other")
    assert exc_info.value.status_code == 401


def test_expired_token_rejected():
    token = jwt.encode({"sub": "u", "exp": int(time.time()) - 60}, "k", algorithm="HS256")
    with pytest.raises(HTTPException) as exc_info:
        verify_session_jwt(token, "k")
    assert exc_info.value.detail == "Token expired"


def test_token_without_subject_rejected():
    token = jwt.encode({"access_token": "x"}, "k", algorithm="HS256")
    with pytest.raises(HTTPException):
        verify_session_jwt(token, "k")


def test_bearer_session_used_when_secret_configured(anon_client, fake_github, monkeypatch):
    monkeypatch.setattr(auth.settings, "SESSION_SECRET", "k")
    token = issue_session_token("jwt-user", "gho_from_session", secret="k")

    resp = anon_client.get("/api/drafts", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    resp = anon_client.get("/api/drafts", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


def test_session_token_forwarded_to_github(anon_client, fake_github):
    resp = anon_client.get(
        "/api/github/notes",
        headers={"X-User-Id": "u", "X-Access-Token": "gho_personal"},
    )
    assert resp.status_code == 200
    assert fake_github.auth_headers == ["Bearer gho_personal"]
