import logging
import os
from typing import Optional
from urllib.parse import urlencode

import requests
import streamlit as st

from infrastructure.actor_client import ActorClient, DEFAULT_TIMEOUT
from use_cases.session_models import IdentitySession

log = logging.getLogger(__name__)


class IdentityError(Exception):
    pass


DEFAULT_ACTOR_URL = "http://localhost:4943"
DEFAULT_IDENTITY_PROVIDER_URL = "https://identity.ic0.app"
IDENTITY_COOKIE = "crm_identity_token"
IDENTITY_TTL_DAYS = 7


def get_secret(key):
    try:
        value = st.secrets.get(key)
    except FileNotFoundError:
        value = None
    return value or os.getenv(key)


def get_actor_url() -> str:
    return get_secret("ACTOR_URL") or DEFAULT_ACTOR_URL


def get_identity_provider_url() -> str:
    return (get_secret("IDENTITY_PROVIDER_URL") or DEFAULT_IDENTITY_PROVIDER_URL).rstrip("/")


def begin_identity_login(return_to: Optional[str] = None) -> str:
    """URL of the identity provider's authorize page; it redirects back with ?identity_token=..."""
    return_to = return_to or get_secret("APP_ORIGIN") or "http://localhost:8501"
    params = {"redirect_uri": return_to, "max_time_to_live_days": IDENTITY_TTL_DAYS}
    return f"{get_identity_provider_url()}/authorize?{urlencode(params)}"


def resolve_identity_token(token: str) -> IdentitySession:
    """Verifies a delegation token with the identity provider and returns the session it grants."""
    if not token:
        raise IdentityError("Empty identity token")
    try:
        resp = requests.post(
            f"{get_identity_provider_url()}/delegation/verify",
            json={"token": token},
            timeout=5,
        )
    except requests.RequestException as e:
        log.error(f"Identity provider unreachable: {e}")
        raise IdentityError("Identity provider unreachable") from e

    if resp.status_code != 200:
        raise IdentityError(f"Identity token rejected (HTTP {resp.status_code})")
    try:
        principal = resp.json().get("principal")
    except ValueError as e:
        raise IdentityError("Invalid response from identity provider") from e
    if not principal:
        raise IdentityError("Identity provider returned no principal")
    return IdentitySession(principal=str(principal), token=token)


def build_actor_client(identity: Optional[IdentitySession] = None) -> ActorClient:
    """Actor client for the identity, or an anonymous one before sign-in."""
    timeout = float(get_secret("ACTOR_TIMEOUT") or DEFAULT_TIMEOUT)
    return ActorClient(get_actor_url(), identity.token if identity else None, timeout=timeout)
