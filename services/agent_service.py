"""
Agent onboarding queries and mutations against the remote actor.

Queries go through the per-session QueryCache and return QueryResult.
Mutations never notify the user: they return a MutationResult and leave
presentation to the calling form.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from infrastructure.actor_client import ActorError, ActorNotAvailableError
from infrastructure.query_cache import Mutation, QueryCache, QueryKey, QueryResult
from use_cases.approval_status import is_approved, is_pending
from use_cases.face_capture import CapturedImage, FaceFlow, FaceFlowError, classify_actor_error, missing_capture_message
from use_cases.session_models import AgentLoginInfo, AgentProfile, UserProfile

log = logging.getLogger(__name__)

# Stale times in seconds.
PROFILE_STALE = 60
ADMIN_STALE = 120
APPROVAL_STALE = 60
AGENT_LIST_STALE = 5
APPROVAL_LIST_STALE = 10

STARTUP_RETRY = 1
STARTUP_RETRY_DELAY = 1.0


@dataclass(frozen=True)
class MutationResult:
    ok: bool
    error: Optional[str] = None
    error_kind: Optional[FaceFlowError] = None
    invalidated: Tuple[QueryKey, ...] = ()


def require_actor(actor):
    if actor is None:
        raise ActorNotAvailableError()
    return actor


def run_mutation(
    actor,
    cache: QueryCache,
    mutation: Mutation,
    call: Callable[[Any], Any],
    flow: Optional[FaceFlow] = None,
) -> MutationResult:
    try:
        call(require_actor(actor))
    except ActorError as e:
        message = str(e)
        kind = classify_actor_error(message, flow) if flow else None
        log.warning(f"Mutation {mutation.value} failed: {message}")
        return MutationResult(ok=False, error=message, error_kind=kind)

    invalidated = cache.invalidate_for(mutation)
    log.info(f"Mutation {mutation.value} succeeded")
    return MutationResult(ok=True, invalidated=invalidated)


# --- queries ---

def caller_user_profile(actor, cache: QueryCache, force: bool = False) -> QueryResult:
    def load():
        payload = require_actor(actor).get_caller_user_profile()
        return UserProfile.from_payload(payload) if payload else None

    return cache.fetch(
        QueryKey.CURRENT_USER_PROFILE,
        load,
        stale_time=PROFILE_STALE,
        retry=STARTUP_RETRY,
        retry_delay=STARTUP_RETRY_DELAY,
        force=force,
    )


def is_caller_admin(actor, cache: QueryCache, force: bool = False) -> QueryResult:
    return cache.fetch(
        QueryKey.IS_ADMIN,
        lambda: require_actor(actor).is_caller_admin(),
        stale_time=ADMIN_STALE,
        retry=STARTUP_RETRY,
        retry_delay=STARTUP_RETRY_DELAY,
        force=force,
    )


def caller_approval(actor, cache: QueryCache, force: bool = False) -> QueryResult:
    return cache.fetch(
        QueryKey.IS_CALLER_APPROVED,
        lambda: require_actor(actor).is_caller_approved(),
        stale_time=APPROVAL_STALE,
        force=force,
    )


def agent_profile_by_caller(actor, cache: QueryCache, force: bool = False) -> QueryResult:
    """Any actor failure here reads as "no profile": not approved or not face-logged-in."""

    def load():
        try:
            payload = require_actor(actor).get_agent_profile_by_caller()
        except ActorError as e:
            log.info(f"No agent profile for caller: {e}")
            return None
        return AgentProfile.from_payload(payload) if payload else None

    return cache.fetch(QueryKey.AGENT_PROFILE_BY_CALLER, load, stale_time=APPROVAL_STALE, force=force)


def all_agent_profiles(actor, cache: QueryCache) -> QueryResult:
    return cache.fetch(
        QueryKey.ALL_AGENT_PROFILES,
        lambda: [AgentProfile.from_payload(p) for p in require_actor(actor).get_all_agent_profiles()],
        stale_time=AGENT_LIST_STALE,
    )


def pending_agents(agents: Optional[List[AgentProfile]]) -> List[AgentProfile]:
    return [a for a in agents or [] if is_pending(a.status)]


def approved_agents(agents: Optional[List[AgentProfile]]) -> List[AgentProfile]:
    return [a for a in agents or [] if is_approved(a.status)]


def agent_login_times(actor, cache: QueryCache) -> QueryResult:
    def load():
        rows = require_actor(actor).get_agent_login_times_and_status()
        return [AgentLoginInfo(mobile=m, last_login_ns=ts, is_active=active) for m, ts, active in rows]

    return cache.fetch(QueryKey.AGENT_LOGIN_TIMES, load, stale_time=AGENT_LIST_STALE)


def approvals_by_status(actor, cache: QueryCache, key: QueryKey) -> QueryResult:
    """Principal-level approval list from listApprovals, for PENDING_AGENTS or APPROVED_AGENTS."""
    wanted = is_pending if key == QueryKey.PENDING_AGENTS else is_approved

    def load():
        return [
            {"principal": str(row.get("principal", "")), "status": row.get("status")}
            for row in require_actor(actor).list_approvals()
            if wanted(row.get("status"))
        ]

    return cache.fetch(key, load, stale_time=APPROVAL_LIST_STALE)


def join_approvals(approvals: Optional[List[dict]], agents: Optional[List[AgentProfile]]) -> List[dict]:
    """Pairs each approval row with the agent profile its principal registered, if any."""
    by_principal = {a.principal: a for a in agents or [] if a.principal}
    rows = []
    for row in approvals or []:
        agent = by_principal.get(row["principal"])
        rows.append({
            "principal": row["principal"],
            "name": agent.name if agent else "",
            "mobile": agent.mobile if agent else "",
        })
    return rows


# --- mutations ---

def save_profile(actor, cache: QueryCache, name: str, email: str, mobile: str) -> MutationResult:
    name, email, mobile = name.strip(), email.strip(), mobile.strip()
    if not (name and email and mobile):
        return MutationResult(ok=False, error="Name, email and mobile are required")
    return run_mutation(actor, cache, Mutation.SAVE_PROFILE, lambda a: a.save_caller_user_profile(name, email, mobile))


def register_agent(
    actor,
    cache: QueryCache,
    name: str,
    mobile: str,
    email: str,
    image: Optional[CapturedImage],
) -> MutationResult:
    if image is None or not image.data:
        return MutationResult(ok=False, error=missing_capture_message("register"), error_kind=FaceFlowError.FACE_REQUIRED)
    return run_mutation(
        actor,
        cache,
        Mutation.REGISTER_AGENT,
        lambda a: a.register_agent(name, mobile, email, image.data),
        flow="register",
    )


def login_agent(actor, cache: QueryCache, image: Optional[CapturedImage]) -> MutationResult:
    if image is None or not image.data:
        return MutationResult(ok=False, error=missing_capture_message("login"), error_kind=FaceFlowError.FACE_REQUIRED)
    return run_mutation(actor, cache, Mutation.LOGIN_AGENT, lambda a: a.login_agent(image.data), flow="login")


def logout_agent(actor, cache: QueryCache) -> MutationResult:
    return run_mutation(actor, cache, Mutation.LOGOUT_AGENT, lambda a: a.logout_agent())


def approve_agent(actor, cache: QueryCache, mobile: str) -> MutationResult:
    return run_mutation(actor, cache, Mutation.APPROVE_AGENT, lambda a: a.approve_agent(mobile))


def reject_agent(actor, cache: QueryCache, mobile: str) -> MutationResult:
    return run_mutation(actor, cache, Mutation.REJECT_AGENT, lambda a: a.reject_agent(mobile))
