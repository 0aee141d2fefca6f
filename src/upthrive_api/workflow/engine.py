"""
Request Workflow Engine

Validates and applies state transitions on content requests.

Every transition goes through the same steps:
1. Load the request (NotFoundError)
2. Check the actor against the transition table and the request's scope (ForbiddenError)
3. Check the current status is a precondition of the transition (InvalidStateError)
4. Validate transition inputs (ValidationError)
5. Persist with a conditional update scoped by id and the status read in step 1

Two concurrent attempts on the same request race on step 5: one update matches,
the other re-reads the record and fails with InvalidStateError.
"""

from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID
from uuid import uuid4

from loguru import logger

from upthrive_api.workflow.enums import ContentType
from upthrive_api.workflow.enums import RequestStatus
from upthrive_api.workflow.enums import Role
from upthrive_api.workflow.enums import Transition
from upthrive_api.workflow.exceptions import ForbiddenError
from upthrive_api.workflow.exceptions import InvalidStateError
from upthrive_api.workflow.exceptions import NotFoundError
from upthrive_api.workflow.exceptions import ValidationError
from upthrive_api.workflow.models import Actor
from upthrive_api.workflow.models import ContentRequest
from upthrive_api.workflow.transitions import TransitionRule
from upthrive_api.workflow.transitions import derive_to_user
from upthrive_api.workflow.transitions import get_rule

_ROLE_LABELS = {
    Role.CLIENT: "clients",
    Role.MANAGER: "managers",
    Role.EDITOR: "editors",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _parse_content_type(value: Any) -> ContentType:
    try:
        return ContentType(value or ContentType.POST)
    except ValueError:
        raise ValidationError(f"Invalid content type '{value}'. Must be post, reel or story")


def _require_message(message: Optional[str]) -> None:
    if _blank(message):
        raise ValidationError("Message is required")


class RequestWorkflowEngine:
    """
    Single authority for request lifecycle transitions.

    Collaborators:
        requests: store exposing ``get_by_id``, ``insert`` and ``conditional_update``
        profiles: store exposing ``get_by_id`` and ``get_any_manager``
    """

    def __init__(self, requests, profiles, clock: Callable[[], datetime] = _utcnow):
        self.requests = requests
        self.profiles = profiles
        self.clock = clock

    # ────────────────────────────────────────────────────────────────────
    # Transitions
    # ────────────────────────────────────────────────────────────────────

    async def create(
        self,
        actor: Actor,
        message: str,
        content_type: Any = ContentType.POST,
        requirements: str = "",
        media_urls: Optional[List[str]] = None,
        cc_list_item_id: Optional[UUID] = None,
    ) -> ContentRequest:
        """Create a request on behalf of a client; it starts pending manager review."""
        rule = get_rule(Transition.CREATE)
        self._authorize(actor, rule)

        content_type = _parse_content_type(content_type)

        manager = await self.profiles.get_any_manager()
        if manager is None:
            logger.warning("No manager profile found - new request has no next actor", client_id=str(actor.client_id))

        now = self.clock()
        status = RequestStatus.PENDING_MANAGER_REVIEW
        fields: Dict[str, Any] = {
            "id": uuid4(),
            "client_id": actor.client_id,
            "from_user_id": actor.id,
            "message": message or "",
            "content_type": content_type.value,
            "requirements": requirements or "",
            "media_urls": list(media_urls or []),
            "cc_list_item_id": cc_list_item_id,
            "status": status.value,
            "created_at": now,
            "updated_at": now,
        }
        fields["to_user_id"] = derive_to_user(status, fields, manager["id"] if manager else None)

        row = await self.requests.insert(fields)
        created = ContentRequest.model_validate(row)
        logger.info(
            "Request created",
            request_id=str(created.id),
            transition=Transition.CREATE.value,
            to_status=created.status.value,
            actor_id=str(actor.id),
        )
        return created

    async def assign(self, actor: Actor, request_id: UUID, editor_id: Optional[UUID]) -> ContentRequest:
        """Manager assigns a pending request to an editor."""
        rule = get_rule(Transition.ASSIGN)
        current = await self._load(request_id)
        self._authorize(actor, rule, current)
        self._check_state(actor, rule, current)

        if editor_id is None:
            raise ValidationError("Editor ID is required")
        editor = await self.profiles.get_by_id(editor_id)
        if editor is None or editor.get("role") != Role.EDITOR.value:
            raise ValidationError("Invalid editor selected")

        return await self._apply(
            actor,
            rule,
            current,
            RequestStatus.ASSIGNED_TO_EDITOR,
            {
                "assigned_editor_id": editor_id,
                "manager_id": actor.id,
            },
        )

    async def submit(
        self,
        actor: Actor,
        request_id: UUID,
        message: str,
        work_ref: Optional[str] = None,
    ) -> ContentRequest:
        """
        Assigned editor delivers (or re-delivers) work.

        Clears both feedback fields. When ``work_ref`` is omitted the stored
        ``completed_work_url`` is kept.
        """
        rule = get_rule(Transition.SUBMIT)
        current = await self._load(request_id)
        self._authorize(actor, rule, current)
        self._check_state(actor, rule, current)

        _require_message(message)

        fields: Dict[str, Any] = {
            "editor_message": message,
            "manager_feedback": None,
            "client_feedback": None,
        }
        if not _blank(work_ref):
            fields["completed_work_url"] = work_ref

        return await self._apply(actor, rule, current, RequestStatus.SUBMITTED_FOR_REVIEW, fields)

    async def manager_review(
        self,
        actor: Actor,
        request_id: UUID,
        approve: bool,
        feedback: Optional[str] = None,
    ) -> ContentRequest:
        """Manager approves submitted work (forwarding it to the client) or sends it back to the editor."""
        rule = get_rule(Transition.MANAGER_REVIEW)
        current = await self._load(request_id)
        self._authorize(actor, rule, current)
        self._check_state(actor, rule, current)

        if approve:
            return await self._apply(actor, rule, current, RequestStatus.MANAGER_APPROVED, {})

        if _blank(feedback):
            raise ValidationError("Feedback is required when rejecting")
        return await self._apply(
            actor,
            rule,
            current,
            RequestStatus.MANAGER_REJECTED,
            {"manager_feedback": feedback},
        )

    async def client_review(
        self,
        actor: Actor,
        request_id: UUID,
        approve: bool,
        feedback: Optional[str] = None,
    ) -> ContentRequest:
        """Client gives the final decision on manager-approved work."""
        rule = get_rule(Transition.CLIENT_REVIEW)
        current = await self._load(request_id)
        self._authorize(actor, rule, current)
        self._check_state(actor, rule, current)

        target = RequestStatus.CLIENT_APPROVED if approve else RequestStatus.CLIENT_REJECTED
        return await self._apply(
            actor,
            rule,
            current,
            target,
            {"client_feedback": None if _blank(feedback) else feedback},
        )

    # ────────────────────────────────────────────────────────────────────
    # Reads
    # ────────────────────────────────────────────────────────────────────

    async def preflight(
        self,
        actor: Actor,
        transition: Transition,
        request_id: Optional[UUID] = None,
        inputs: Optional[Dict[str, Any]] = None,
    ) -> Optional[ContentRequest]:
        """
        Run the checks of ``transition`` without applying it.

        Used before side effects such as file uploads; the transition itself
        re-checks everything and still races safely on the conditional update.
        When ``inputs`` is given, the transition's input validation runs too
        (``content_type`` for create, ``message`` for submit).
        """
        rule = get_rule(transition)
        current = None
        if transition == Transition.CREATE:
            self._authorize(actor, rule)
        else:
            current = await self._load(request_id)
            self._authorize(actor, rule, current)
            self._check_state(actor, rule, current)

        if inputs is not None:
            if transition == Transition.CREATE:
                _parse_content_type(inputs.get("content_type"))
            elif transition == Transition.SUBMIT:
                _require_message(inputs.get("message"))
        return current

    async def get(self, actor: Actor, request_id: UUID) -> ContentRequest:
        """Fetch one request, hiding other client scopes from clients."""
        current = await self._load(request_id)
        if actor.role == Role.CLIENT and not actor.in_client_scope(current.client_id):
            raise ForbiddenError("Access denied")
        return current

    # ────────────────────────────────────────────────────────────────────
    # Helpers
    # ────────────────────────────────────────────────────────────────────

    async def _load(self, request_id: UUID) -> ContentRequest:
        row = await self.requests.get_by_id(request_id)
        if row is None:
            raise NotFoundError("Request not found")
        return ContentRequest.model_validate(row)

    def _reject(self, actor: Actor, rule: TransitionRule, current: Optional[ContentRequest], reason: str) -> None:
        logger.warning(
            "Transition rejected",
            transition=rule.transition.value,
            request_id=str(current.id) if current else None,
            status=current.status.value if current else None,
            actor_id=str(actor.id),
            actor_role=actor.role.value,
            reason=reason,
        )

    def _authorize(self, actor: Actor, rule: TransitionRule, current: Optional[ContentRequest] = None) -> None:
        """Role from the transition table, then the per-transition ownership rules."""
        reason = None
        if actor.role != rule.role:
            reason = f"Only {_ROLE_LABELS[rule.role]} can {rule.transition.value.replace('_', ' ')}"
        elif rule.transition == Transition.CREATE and actor.client_id is None:
            reason = "Client profile not found"
        elif rule.transition == Transition.SUBMIT and current.assigned_editor_id != actor.id:
            reason = "Request is not assigned to you"
        elif rule.transition == Transition.CLIENT_REVIEW and not actor.in_client_scope(current.client_id):
            reason = "Access denied"

        if reason is not None:
            self._reject(actor, rule, current, reason)
            raise ForbiddenError(reason)

    def _check_state(self, actor: Actor, rule: TransitionRule, current: ContentRequest) -> None:
        if current.status not in rule.sources:
            reason = f"Cannot {rule.transition.value.replace('_', ' ')} a request in status '{current.status.value}'"
            self._reject(actor, rule, current, reason)
            raise InvalidStateError(reason)

    async def _apply(
        self,
        actor: Actor,
        rule: TransitionRule,
        current: ContentRequest,
        target: RequestStatus,
        fields: Dict[str, Any],
    ) -> ContentRequest:
        """Persist ``fields`` plus the derived status/to_user/updated_at, guarded by the current status."""
        if target not in rule.targets:
            raise InvalidStateError(f"{rule.transition.value} cannot lead to '{target.value}'")

        update: Dict[str, Any] = dict(fields)
        update["status"] = target.value
        update["updated_at"] = self.clock()

        projected = current.model_dump()
        projected.update(update)
        update["to_user_id"] = derive_to_user(target, projected)

        row = await self.requests.conditional_update(current.id, current.status.value, update)
        if row is None:
            latest = await self.requests.get_by_id(current.id)
            if latest is None:
                raise NotFoundError("Request not found")
            reason = (
                f"Request changed from '{current.status.value}' to '{latest['status']}' "
                f"before {rule.transition.value.replace('_', ' ')} could be applied"
            )
            self._reject(actor, rule, current, reason)
            raise InvalidStateError(reason)

        updated = ContentRequest.model_validate(row)
        logger.info(
            "Request transition applied",
            request_id=str(updated.id),
            transition=rule.transition.value,
            from_status=current.status.value,
            to_status=updated.status.value,
            to_user_id=str(updated.to_user_id) if updated.to_user_id else None,
            actor_id=str(actor.id),
        )
        return updated
