from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
import requests

import auth
from use_cases.session_models import IdentitySession


def _resp(status=200, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body or {}
    return resp


@patch("auth.st.secrets", new_callable=MagicMock)
def test_get_secret_prefers_streamlit_secrets(mock_secrets, monkeypatch):
    mock_secrets.get.return_value = "from-secrets"
    monkeypatch.setenv("ACTOR_URL", "from-env")
    assert auth.get_secret("ACTOR_URL") == "from-secrets"


@patch("auth.st.secrets", new_callable=MagicMock)
def test_get_secret_falls_back_to_env(mock_secrets, monkeypatch):
    mock_secrets.get.side_effect = FileNotFoundError()
    monkeypatch.setenv("ACTOR_URL", "http://actor.env")
    assert auth.get_secret("ACTOR_URL") == "http://actor.env"


@patch("auth.get_secret", return_value=None)
def test_begin_identity_login_url(_mock_secret):
    url = auth.begin_identity_login("https://crm.example.com")
    parsed = urlparse(url)
    assert url.startswith(auth.DEFAULT_IDENTITY_PROVIDER_URL + "/authorize?")
    assert parse_qs(parsed.query)["redirect_uri"] == ["https://crm.example.com"]


@patch("auth.get_secret", return_value=None)
@patch("auth.requests.post")
def test_resolve_identity_token(mock_post, _mock_secret):
    mock_post.return_value = _resp(200, {"principal": "aaaaa-bbbbb"})
    identity = auth.resolve_identity_token("tok")
    assert identity == IdentitySession(principal="aaaaa-bbbbb", token="tok")
    assert mock_post.call_args.kwargs["json"] == {"token": "tok"}


@pytest.mark.parametrize(
    "response",
    [_resp(401, {"error": "expired"}), _resp(200, {})],
)
@patch("auth.get_secret", return_value=None)
@patch("auth.requests.post")
def test_resolve_identity_token_rejections(mock_post, _mock_secret, response):
    mock_post.return_value = response
    with pytest.raises(auth.IdentityError):
        auth.resolve_identity_token("tok")


@patch("auth.get_secret", return_value=None)
@patch("auth.requests.post", side_effect=requests.Timeout("slow"))
def test_resolve_identity_token_unreachable(_mock_post, _mock_secret):
    with pytest.raises(auth.IdentityError, match="unreachable"):
        auth.resolve_identity_token("tok")


def test_resolve_empty_token():
    with pytest.raises(auth.IdentityError):
        auth.resolve_identity_token("")


@patch("auth.get_secret", side_effect=lambda key: {"ACTOR_URL": "http://actor.local", "ACTOR_TIMEOUT": "4"}.get(key))
def test_build_actor_client(_mock_secret):
    client = auth.build_actor_client(IdentitySession(principal="p", token="tok"))
    assert client.base_url == "http://actor.local"
    assert client.identity_token == "tok"
    assert client.timeout == 4.0

    anonymous = auth.build_actor_client(None)
    assert anonymous.identity_token is None
