"""Customers, leads and follow-ups held by the actor, plus the overview numbers built from them."""

import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import pandas as pd

from infrastructure.query_cache import Mutation, QueryCache, QueryKey, QueryResult
from services.agent_service import MutationResult, approved_agents, pending_agents, require_actor, run_mutation
from use_cases.session_models import AgentProfile

log = logging.getLogger(__name__)

RECORDS_STALE = 30


class Requirement(str, Enum):
    RENT = "Rent"
    SELL = "Sell"
    PURCHASE = "Purchase"
    INTERIOR = "Interior"
    FULLY_FURNISHED_FLAT = "Fully_furnished_flat"
    SEMI_FURNISHED_FLAT = "Semi_furnished_flat"
    RWA_FLAT = "RWA_flat"


class LeadRequirement(str, Enum):
    FULLY_FURNISHED_FLAT = "Fully_furnished_flat"
    SEMI_FURNISHED_FLAT = "Semi_furnished_flat"
    RWA_FLAT = "RWA_flat"


class LeadStatus(str, Enum):
    NEW = "new"
    GOING_ON = "going_on"
    CONVERTED = "converted"
    LOST = "lost"


def _enum_value(enum_cls, raw, default):
    # Variants may arrive as a bare name or as a single-key tagged object.
    if isinstance(raw, Mapping) and len(raw) == 1:
        raw = next(iter(raw.keys()))
    try:
        return enum_cls(raw)
    except ValueError:
        log.warning(f"Unknown {enum_cls.__name__} value {raw!r}, using {default.value}")
        return default


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    mobile: str
    email: Optional[str]
    requirement: Requirement
    assigned_agent: str
    follow_up_status: str
    created_at: int

    @classmethod
    def from_payload(cls, record_id: str, p: Mapping[str, Any]) -> "Customer":
        return cls(
            id=record_id,
            name=str(p.get("name", "")),
            mobile=str(p.get("mobile", "")),
            email=p.get("email"),
            requirement=_enum_value(Requirement, p.get("requirement"), Requirement.RENT),
            assigned_agent=str(p.get("assignedAgent", "")),
            follow_up_status=str(p.get("followUpStatus", "")),
            created_at=int(p.get("createdAt") or 0),
        )


@dataclass(frozen=True)
class Lead:
    id: str
    name: str
    mobile: str
    email: Optional[str]
    status: LeadStatus
    requirement: LeadRequirement
    assigned_agent: str
    description: str
    remarks: Optional[str]
    created_at: int
    remarks_timestamp: Optional[int] = None

    @classmethod
    def from_payload(cls, record_id: str, p: Mapping[str, Any]) -> "Lead":
        return cls(
            id=record_id,
            name=str(p.get("name", "")),
            mobile=str(p.get("mobile", "")),
            email=p.get("email"),
            status=_enum_value(LeadStatus, p.get("status"), LeadStatus.NEW),
            requirement=_enum_value(LeadRequirement, p.get("requirement"), LeadRequirement.RWA_FLAT),
            assigned_agent=str(p.get("assignedAgent", "")),
            description=str(p.get("description", "")),
            remarks=p.get("remarks"),
            created_at=int(p.get("createdAt") or 0),
            remarks_timestamp=p.get("remarksTimestamp"),
        )


@dataclass(frozen=True)
class FollowUp:
    id: str
    linked_id: str
    type: str
    agent: str
    follow_up_time: int
    remarks: str
    status: str
    created_at: int

    @classmethod
    def from_payload(cls, record_id: str, p: Mapping[str, Any]) -> "FollowUp":
        return cls(
            id=str(p.get("id") or record_id),
            linked_id=str(p.get("linkedId", "")),
            type=str(p.get("type", "")),
            agent=str(p.get("agent", "")),
            follow_up_time=int(p.get("followUpTime") or 0),
            remarks=str(p.get("remarks", "")),
            status=str(p.get("status", "")),
            created_at=int(p.get("createdAt") or 0),
        )


# --- queries ---

def _customers(actor):
    return [Customer.from_payload(k, v) for k, v in require_actor(actor).get_customers()]


def _leads(actor):
    return [Lead.from_payload(k, v) for k, v in require_actor(actor).get_leads()]


def _follow_ups(actor):
    return [FollowUp.from_payload(k, v) for k, v in require_actor(actor).get_follow_ups()]


def all_customers(actor, cache: QueryCache) -> QueryResult:
    return cache.fetch(QueryKey.ALL_CUSTOMERS, lambda: _customers(actor), stale_time=RECORDS_STALE)


def customers_by_agent(actor, cache: QueryCache, agent_mobile: str) -> QueryResult:
    if not agent_mobile:
        return QueryResult()
    return cache.fetch(
        QueryKey.CUSTOMERS_BY_AGENT,
        lambda: [c for c in _customers(actor) if c.assigned_agent == agent_mobile],
        params=(agent_mobile,),
        stale_time=RECORDS_STALE,
    )


def all_leads(actor, cache: QueryCache) -> QueryResult:
    return cache.fetch(QueryKey.ALL_LEADS, lambda: _leads(actor), stale_time=RECORDS_STALE)


def leads_by_agent(actor, cache: QueryCache, agent_mobile: str) -> QueryResult:
    if not agent_mobile:
        return QueryResult()
    return cache.fetch(
        QueryKey.LEADS_BY_AGENT,
        lambda: [lead for lead in _leads(actor) if lead.assigned_agent == agent_mobile],
        params=(agent_mobile,),
        stale_time=RECORDS_STALE,
    )


def all_follow_ups(actor, cache: QueryCache) -> QueryResult:
    return cache.fetch(QueryKey.ALL_FOLLOW_UPS, lambda: _follow_ups(actor), stale_time=RECORDS_STALE)


def follow_ups_by_agent(actor, cache: QueryCache, agent_mobile: str) -> QueryResult:
    if not agent_mobile:
        return QueryResult()
    return cache.fetch(
        QueryKey.FOLLOW_UPS_BY_AGENT,
        lambda: [f for f in _follow_ups(actor) if f.agent == agent_mobile],
        params=(agent_mobile,),
        stale_time=RECORDS_STALE,
    )


def filter_leads(leads: List[Lead], agent_mobile: Optional[str] = None, status: Optional[LeadStatus] = None) -> List[Lead]:
    result = leads
    if agent_mobile:
        result = [lead for lead in result if lead.assigned_agent == agent_mobile]
    if status is not None:
        result = [lead for lead in result if lead.status == status]
    return result


# --- mutations ---

def add_customer(
    actor,
    cache: QueryCache,
    name: str,
    mobile: str,
    email: Optional[str],
    requirement: Requirement,
    assigned_agent: str,
    follow_up_status: str = "Pending",
) -> MutationResult:
    if not name.strip() or not mobile.strip():
        return MutationResult(ok=False, error="Customer name and mobile are required")
    return run_mutation(
        actor,
        cache,
        Mutation.ADD_CUSTOMER,
        lambda a: a.add_customer(
            name.strip(), mobile.strip(), (email or "").strip() or None, requirement.value, assigned_agent, follow_up_status
        ),
    )


def add_lead(
    actor,
    cache: QueryCache,
    name: str,
    mobile: str,
    email: Optional[str],
    status: LeadStatus,
    requirement: LeadRequirement,
    assigned_agent: str,
    description: str,
    remarks: Optional[str] = None,
) -> MutationResult:
    if not name.strip() or not mobile.strip():
        return MutationResult(ok=False, error="Lead name and mobile are required")
    return run_mutation(
        actor,
        cache,
        Mutation.ADD_LEAD,
        lambda a: a.add_lead(
            name.strip(),
            mobile.strip(),
            (email or "").strip() or None,
            status.value,
            requirement.value,
            assigned_agent,
            description,
            (remarks or "").strip() or None,
            None,
        ),
    )


def add_follow_up(
    actor,
    cache: QueryCache,
    linked_id: str,
    follow_up_type: str,
    agent: str,
    follow_up_time_ns: int,
    remarks: str,
    status: str = "pending",
) -> MutationResult:
    if not linked_id:
        return MutationResult(ok=False, error="Select a customer or lead for the follow-up")
    return run_mutation(
        actor,
        cache,
        Mutation.ADD_FOLLOW_UP,
        lambda a: a.add_follow_up(linked_id, follow_up_type, agent, follow_up_time_ns, remarks, status),
    )


def update_follow_up(actor, cache: QueryCache, follow_up_id: str, remarks: str, status: str) -> MutationResult:
    return run_mutation(
        actor,
        cache,
        Mutation.UPDATE_FOLLOW_UP,
        lambda a: a.update_follow_up(follow_up_id, remarks, status),
    )


# --- helpers ---

def whatsapp_link(mobile: str, text: str = "") -> str:
    digits = re.sub(r"\D", "", mobile)
    url = f"https://wa.me/{digits}"
    if text:
        url += f"?text={quote(text)}"
    return url


def overview_counts(agents: Optional[List[AgentProfile]], leads: Optional[List[Lead]]) -> Dict[str, int]:
    counts = {
        "pending_agents": len(pending_agents(agents)),
        "approved_agents": len(approved_agents(agents)),
        "total_leads": len(leads or []),
    }
    by_status = pd.Series([lead.status.value for lead in leads or []], dtype="object").value_counts()
    for status in LeadStatus:
        counts[f"leads_{status.value}"] = int(by_status.get(status.value, 0))
    return counts


def is_overdue(follow_up: FollowUp, now_ns: Optional[int] = None) -> bool:
    if follow_up.status == "completed":
        return False
    now_ns = now_ns if now_ns is not None else time.time_ns()
    return now_ns > follow_up.follow_up_time


def linked_name(follow_up: FollowUp, customers: Optional[List[Customer]], leads: Optional[List[Lead]]) -> str:
    """Follow-ups link to a customer or lead by mobile number."""
    pool = customers if follow_up.type == "customer" else leads
    for record in pool or []:
        if record.mobile == follow_up.linked_id:
            return record.name
    return follow_up.linked_id


LEAD_REMARKS_DEADLINE_NS = 8 * 3600 * 1_000_000_000

LEAD_STATUS_LABELS = {
    LeadStatus.NEW: "New",
    LeadStatus.GOING_ON: "Going On",
    LeadStatus.CONVERTED: "Converted",
    LeadStatus.LOST: "Lost",
}

LEAD_REQUIREMENT_LABELS = {
    LeadRequirement.RWA_FLAT: "RWA Flat",
    LeadRequirement.SEMI_FURNISHED_FLAT: "Semi-furnished Flat",
    LeadRequirement.FULLY_FURNISHED_FLAT: "Fully-furnished Flat",
}


def lead_remarks_overdue(lead: Lead, now_ns: Optional[int] = None) -> bool:
    """A lead without remarks is overdue eight hours after it was created."""
    if lead.remarks and lead.remarks.strip():
        return False
    now_ns = now_ns if now_ns is not None else time.time_ns()
    return now_ns - lead.created_at > LEAD_REMARKS_DEADLINE_NS


def greeting(contact_name: str, agent_name: str) -> str:
    return f"Hello {contact_name}, this is {agent_name} from VR Homes Infra."
