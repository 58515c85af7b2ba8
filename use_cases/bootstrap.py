"""Startup gate: profile and admin-flag checks run before any dashboard renders."""

from dataclasses import dataclass
from typing import Literal, Optional

from infrastructure.query_cache import QueryCache, QueryKey, QueryResult
from services import agent_service

StartupStatus = Literal["LOADING", "ERROR", "READY"]
StartupView = Literal["AUTH", "PROFILE_SETUP", "ADMIN_DASHBOARD", "AGENT_DASHBOARD"]

STARTUP_KEYS = (QueryKey.CURRENT_USER_PROFILE, QueryKey.IS_ADMIN)


@dataclass(frozen=True)
class StartupResult:
    """Result contract for the startup gate."""

    status: StartupStatus
    view: Optional[StartupView] = None
    error: Optional[BaseException] = None


def evaluate_startup_gate(has_identity: bool, profile_query: QueryResult, admin_query: QueryResult) -> StartupResult:
    """Pure function of the two startup queries; anonymous visitors are never gated."""
    if not has_identity:
        return StartupResult(status="READY", view="AUTH")

    if profile_query.is_error or admin_query.is_error:
        return StartupResult(status="ERROR", error=profile_query.error or admin_query.error)

    if profile_query.is_loading or admin_query.is_loading:
        return StartupResult(status="LOADING")
    if not (profile_query.is_fetched and admin_query.is_fetched):
        return StartupResult(status="LOADING")

    if profile_query.data is None:
        return StartupResult(status="READY", view="PROFILE_SETUP")
    if admin_query.data:
        return StartupResult(status="READY", view="ADMIN_DASHBOARD")
    return StartupResult(status="READY", view="AGENT_DASHBOARD")


def retry_startup(cache: QueryCache) -> None:
    for key in STARTUP_KEYS:
        cache.invalidate(key)


def run_startup(actor, cache: QueryCache, has_identity: bool) -> StartupResult:
    if not has_identity:
        return evaluate_startup_gate(False, QueryResult(), QueryResult())

    profile_query = agent_service.caller_user_profile(actor, cache)
    admin_query = agent_service.is_caller_admin(actor, cache)
    return evaluate_startup_gate(True, profile_query, admin_query)
