"""
Transition Table

Single source of truth for which role may fire which transition from which status,
plus the projection that derives ``to_user_id`` (the next actor) from a request's state.
"""

from typing import Any
from typing import Dict
from typing import FrozenSet
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict

from upthrive_api.workflow.enums import RequestStatus
from upthrive_api.workflow.enums import Role
from upthrive_api.workflow.enums import Transition


class TransitionRule(BaseModel):
    """Who may fire a transition, from which statuses, and where it may lead."""

    transition: Transition
    role: Role
    sources: FrozenSet[RequestStatus]
    targets: FrozenSet[RequestStatus]

    model_config = ConfigDict(frozen=True)


TRANSITION_TABLE: Dict[Transition, TransitionRule] = {
    Transition.CREATE: TransitionRule(
        transition=Transition.CREATE,
        role=Role.CLIENT,
        sources=frozenset(),
        targets=frozenset({RequestStatus.PENDING_MANAGER_REVIEW}),
    ),
    Transition.ASSIGN: TransitionRule(
        transition=Transition.ASSIGN,
        role=Role.MANAGER,
        sources=frozenset({RequestStatus.PENDING_MANAGER_REVIEW}),
        targets=frozenset({RequestStatus.ASSIGNED_TO_EDITOR}),
    ),
    Transition.SUBMIT: TransitionRule(
        transition=Transition.SUBMIT,
        role=Role.EDITOR,
        sources=frozenset(
            {
                RequestStatus.ASSIGNED_TO_EDITOR,
                RequestStatus.MANAGER_REJECTED,
                RequestStatus.CLIENT_REJECTED,
            }
        ),
        targets=frozenset({RequestStatus.SUBMITTED_FOR_REVIEW}),
    ),
    Transition.MANAGER_REVIEW: TransitionRule(
        transition=Transition.MANAGER_REVIEW,
        role=Role.MANAGER,
        sources=frozenset({RequestStatus.SUBMITTED_FOR_REVIEW}),
        targets=frozenset({RequestStatus.MANAGER_APPROVED, RequestStatus.MANAGER_REJECTED}),
    ),
    Transition.CLIENT_REVIEW: TransitionRule(
        transition=Transition.CLIENT_REVIEW,
        role=Role.CLIENT,
        sources=frozenset({RequestStatus.MANAGER_APPROVED}),
        targets=frozenset({RequestStatus.CLIENT_APPROVED, RequestStatus.CLIENT_REJECTED}),
    ),
}


def get_rule(transition: Transition) -> TransitionRule:
    """Look up the rule for a transition."""
    return TRANSITION_TABLE[transition]


def is_allowed(role: Role, transition: Transition) -> bool:
    """Return True if ``role`` is the actor that fires ``transition``."""
    return TRANSITION_TABLE[transition].role == role


def allowed_transitions(status: RequestStatus) -> FrozenSet[Transition]:
    """Transitions that may fire from ``status`` (empty for terminal statuses)."""
    return frozenset(rule.transition for rule in TRANSITION_TABLE.values() if status in rule.sources)


def _as_uuid(value: Any) -> Optional[UUID]:
    if value is None:
        return None
    return value if isinstance(value, UUID) else UUID(str(value))


def derive_to_user(
    status: RequestStatus,
    request: Dict[str, Any],
    pending_manager_id: Optional[UUID] = None,
) -> Optional[UUID]:
    """
    Compute who must act next on a request in ``status``.

    Args:
        status: Status the request is (or is about to be) in
        request: Request fields after the transition is applied
        pending_manager_id: Manager to route a freshly created request to

    Returns:
        Profile id of the next actor, or None when the status is terminal
    """
    if status == RequestStatus.PENDING_MANAGER_REVIEW:
        return _as_uuid(pending_manager_id or request.get("manager_id"))
    if status in (
        RequestStatus.ASSIGNED_TO_EDITOR,
        RequestStatus.MANAGER_REJECTED,
        RequestStatus.CLIENT_REJECTED,
    ):
        return _as_uuid(request.get("assigned_editor_id"))
    if status == RequestStatus.SUBMITTED_FOR_REVIEW:
        return _as_uuid(request.get("manager_id"))
    if status == RequestStatus.MANAGER_APPROVED:
        return _as_uuid(request.get("from_user_id"))
    return None
