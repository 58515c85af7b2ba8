"""
Per-session query cache.

Cache keys are a closed enum and every mutation's invalidation set lives in
one static table, so a mutation can never forget a dependent key.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

log = logging.getLogger(__name__)


class QueryKey(str, Enum):
    CURRENT_USER_PROFILE = "currentUserProfile"
    IS_ADMIN = "isAdmin"
    IS_CALLER_APPROVED = "isCallerApproved"
    AGENT_PROFILE_BY_CALLER = "agentProfileByCaller"
    PENDING_AGENTS = "pendingAgents"
    APPROVED_AGENTS = "approvedAgents"
    ALL_AGENT_PROFILES = "allAgentProfiles"
    AGENT_LOGIN_TIMES = "agentLoginTimes"
    ALL_CUSTOMERS = "allCustomers"
    CUSTOMERS_BY_AGENT = "customersByAgent"
    ALL_LEADS = "allLeads"
    LEADS_BY_AGENT = "leadsByAgent"
    ALL_FOLLOW_UPS = "allFollowUps"
    FOLLOW_UPS_BY_AGENT = "followUpsByAgent"


class Mutation(str, Enum):
    SAVE_PROFILE = "saveCallerUserProfile"
    REGISTER_AGENT = "registerAgent"
    LOGIN_AGENT = "loginAgent"
    LOGOUT_AGENT = "logoutAgent"
    APPROVE_AGENT = "approveAgent"
    REJECT_AGENT = "rejectAgent"
    ADD_CUSTOMER = "addCustomer"
    ADD_LEAD = "addLead"
    ADD_FOLLOW_UP = "addFollowUp"
    UPDATE_FOLLOW_UP = "updateFollowUp"


_AGENT_DIRECTORY = (
    QueryKey.ALL_AGENT_PROFILES,
    QueryKey.PENDING_AGENTS,
    QueryKey.APPROVED_AGENTS,
    QueryKey.AGENT_LOGIN_TIMES,
)

INVALIDATIONS: Dict[Mutation, Tuple[QueryKey, ...]] = {
    Mutation.SAVE_PROFILE: (QueryKey.CURRENT_USER_PROFILE,),
    Mutation.REGISTER_AGENT: (
        QueryKey.PENDING_AGENTS,
        QueryKey.ALL_AGENT_PROFILES,
        QueryKey.AGENT_LOGIN_TIMES,
    ),
    Mutation.LOGIN_AGENT: (
        QueryKey.AGENT_LOGIN_TIMES,
        QueryKey.ALL_AGENT_PROFILES,
        QueryKey.AGENT_PROFILE_BY_CALLER,
        QueryKey.IS_CALLER_APPROVED,
    ),
    Mutation.LOGOUT_AGENT: (
        QueryKey.AGENT_LOGIN_TIMES,
        QueryKey.ALL_AGENT_PROFILES,
        QueryKey.AGENT_PROFILE_BY_CALLER,
    ),
    Mutation.APPROVE_AGENT: _AGENT_DIRECTORY,
    Mutation.REJECT_AGENT: _AGENT_DIRECTORY,
    Mutation.ADD_CUSTOMER: (QueryKey.CUSTOMERS_BY_AGENT, QueryKey.ALL_CUSTOMERS),
    Mutation.ADD_LEAD: (QueryKey.LEADS_BY_AGENT, QueryKey.ALL_LEADS),
    Mutation.ADD_FOLLOW_UP: (QueryKey.FOLLOW_UPS_BY_AGENT, QueryKey.ALL_FOLLOW_UPS),
    Mutation.UPDATE_FOLLOW_UP: (QueryKey.FOLLOW_UPS_BY_AGENT, QueryKey.ALL_FOLLOW_UPS),
}


@dataclass(frozen=True)
class QueryResult:
    """Loading/error/data triple for one query, as seen by the gates."""

    data: Any = None
    error: Optional[BaseException] = None
    is_loading: bool = False
    is_fetched: bool = False

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def loading(cls) -> "QueryResult":
        return cls(is_loading=True)

    @classmethod
    def success(cls, data: Any) -> "QueryResult":
        return cls(data=data, is_fetched=True)

    @classmethod
    def failure(cls, error: BaseException) -> "QueryResult":
        return cls(error=error, is_fetched=True)


@dataclass
class _Entry:
    result: QueryResult
    fetched_at: float
    stale: bool = False


CacheId = Tuple[QueryKey, Tuple[Hashable, ...]]


@dataclass
class QueryCache:
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    _entries: Dict[CacheId, _Entry] = field(default_factory=dict)

    def peek(self, key: QueryKey, params: Tuple[Hashable, ...] = ()) -> QueryResult:
        entry = self._entries.get((key, tuple(params)))
        return entry.result if entry is not None else QueryResult()

    def fetch(
        self,
        key: QueryKey,
        fn: Callable[[], Any],
        *,
        params: Tuple[Hashable, ...] = (),
        stale_time: float = 0.0,
        retry: int = 0,
        retry_delay: float = 1.0,
        force: bool = False,
    ) -> QueryResult:
        """
        Returns the cached result when it is still fresh, otherwise calls fn.

        Failures are cached like data: a failed result is served until it goes
        stale or is invalidated, then fn runs again. fn is retried `retry` extra
        times with a fixed delay before the failure is recorded.
        """
        cache_id = (key, tuple(params))
        entry = self._entries.get(cache_id)
        if entry is not None and not force and not entry.stale:
            if self.clock() - entry.fetched_at < stale_time:
                return entry.result

        attempts = retry + 1
        for attempt in range(1, attempts + 1):
            try:
                result = QueryResult.success(fn())
                break
            except Exception as e:
                if attempt < attempts:
                    log.info(f"Query {key.value} failed (attempt {attempt}/{attempts}), retrying: {e}")
                    self.sleep(retry_delay)
                    continue
                log.warning(f"Query {key.value} failed: {e}")
                result = QueryResult.failure(e)

        self._entries[cache_id] = _Entry(result=result, fetched_at=self.clock())
        return result

    def invalidate(self, key: QueryKey) -> None:
        for (entry_key, _), entry in self._entries.items():
            if entry_key == key:
                entry.stale = True

    def invalidate_for(self, mutation: Mutation) -> Tuple[QueryKey, ...]:
        keys = INVALIDATIONS[mutation]
        for key in keys:
            self.invalidate(key)
        return keys

    def clear(self) -> None:
        self._entries.clear()
