"""
HTTP client for the remote CRM actor.

Every actor method is exposed as `POST {base_url}/call/{method}` taking
`{"args": [...]}` and answering `{"ok": <value>}` or `{"err": "<message>"}`.
Byte buffers travel as `{"__bytes__": "<base64>"}` in both directions.
"""

import base64
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests import RequestException

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ActorError(Exception):
    pass


class ActorNotAvailableError(ActorError):
    def __init__(self, message: str = "Actor not available"):
        super().__init__(message)


class ActorCallError(ActorError):
    """The actor rejected the call; the message is the actor's own text."""

    def __init__(self, method: str, message: str):
        super().__init__(message)
        self.method = method


class ActorTransportError(ActorError):
    pass


def _encode(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return {"__bytes__": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value.keys()) == {"__bytes__"}:
            return base64.b64decode(value["__bytes__"])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


class ActorClient:
    def __init__(self, base_url: str, identity_token: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT, session=None):
        self.base_url = base_url.rstrip("/")
        self.identity_token = identity_token
        self.timeout = timeout
        self._http = session or requests.Session()

    def _call(self, method: str, *args: Any) -> Any:
        url = f"{self.base_url}/call/{method}"
        headers = {"Accept": "application/json"}
        # Anonymous callers send no token.
        if self.identity_token:
            headers["Authorization"] = f"Bearer {self.identity_token}"
        try:
            response = self._http.post(url, json={"args": _encode(list(args))}, headers=headers, timeout=self.timeout)
        except RequestException as exc:
            log.error(f"Actor call {method} failed: {exc}")
            raise ActorTransportError(f"Backend request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            log.error(f"Actor call {method} returned non-JSON body (HTTP {response.status_code})")
            raise ActorTransportError("Invalid response from server") from exc

        if not isinstance(body, dict):
            raise ActorTransportError("Invalid response from server")
        if "err" in body:
            raise ActorCallError(method, str(body["err"]))
        if response.status_code >= 400:
            raise ActorTransportError(f"Backend request failed with HTTP {response.status_code}")
        return _decode(body.get("ok"))

    # --- identity-scoped profile ---
    def get_caller_user_profile(self) -> Optional[Dict[str, Any]]:
        return self._call("getCallerUserProfile")

    def save_caller_user_profile(self, name: str, email: str, mobile: str) -> None:
        self._call("saveCallerUserProfile", {"name": name, "email": email, "mobile": mobile})

    def is_caller_admin(self) -> bool:
        return bool(self._call("isCallerAdmin"))

    def is_caller_approved(self) -> bool:
        return bool(self._call("isCallerApproved"))

    # --- agents ---
    def get_agent_profile_by_caller(self) -> Dict[str, Any]:
        return self._call("getAgentProfileByCaller")

    def get_all_agent_profiles(self) -> List[Dict[str, Any]]:
        return self._call("getAllAgentProfiles") or []

    def register_agent(self, name: str, mobile: str, email: str, face_embeddings: bytes) -> None:
        self._call("registerAgent", name, mobile, email, face_embeddings)

    def login_agent(self, face_embeddings: bytes) -> None:
        self._call("loginAgent", face_embeddings)

    def logout_agent(self) -> None:
        self._call("logoutAgent")

    def approve_agent(self, mobile: str) -> None:
        self._call("approveAgent", mobile)

    def reject_agent(self, mobile: str) -> None:
        self._call("rejectAgent", mobile)

    def list_approvals(self) -> List[Dict[str, Any]]:
        return self._call("listApprovals") or []

    def get_agent_login_times_and_status(self) -> List[Tuple[str, int, bool]]:
        rows = self._call("getAgentLoginTimesAndStatus") or []
        return [(str(mobile), int(ts), bool(active)) for mobile, ts, active in rows]

    # --- CRM records ---
    def get_customers(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [(str(k), v) for k, v in self._call("getCustomers") or []]

    def add_customer(self, name, mobile, email, requirement, assigned_agent, follow_up_status) -> str:
        return self._call("addCustomer", name, mobile, email, requirement, assigned_agent, follow_up_status)

    def get_leads(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [(str(k), v) for k, v in self._call("getLeads") or []]

    def add_lead(self, name, mobile, email, status, requirement, assigned_agent, description, remarks, remarks_timestamp) -> str:
        return self._call(
            "addLead", name, mobile, email, status, requirement, assigned_agent, description, remarks, remarks_timestamp
        )

    def get_follow_ups(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [(str(k), v) for k, v in self._call("getFollowUps") or []]

    def add_follow_up(self, linked_id, follow_up_type, agent, follow_up_time, remarks, status) -> str:
        return self._call("addFollowUp", linked_id, follow_up_type, agent, follow_up_time, remarks, status)

    def update_follow_up(self, follow_up_id: str, remarks: str, status: str) -> None:
        self._call("updateFollowUp", follow_up_id, remarks, status)
