"""
Workflow Enums

All enum types used throughout the request workflow.
Values must match exactly with database constraints.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Actor Enums
# ════════════════════════════════════════════════════════════════════════════


class Role(str, Enum):
    """Role of an authenticated actor (profiles.role)."""

    CLIENT = "client"
    MANAGER = "manager"
    EDITOR = "editor"


# ════════════════════════════════════════════════════════════════════════════
# Request Enums
# ════════════════════════════════════════════════════════════════════════════


class RequestStatus(str, Enum):
    """Request workflow status."""

    PENDING_MANAGER_REVIEW = "pending_manager_review"  # Initial state after client creates it
    ASSIGNED_TO_EDITOR = "assigned_to_editor"
    SUBMITTED_FOR_REVIEW = "submitted_for_review"  # Editor delivered work
    MANAGER_APPROVED = "manager_approved"  # Visible to the client for final review
    MANAGER_REJECTED = "manager_rejected"
    CLIENT_APPROVED = "client_approved"  # Terminal
    CLIENT_REJECTED = "client_rejected"


class ContentType(str, Enum):
    """Kind of content a client is asking for."""

    POST = "post"
    REEL = "reel"
    STORY = "story"


class Transition(str, Enum):
    """Named state changes a request can go through."""

    CREATE = "create"
    ASSIGN = "assign"
    SUBMIT = "submit"
    MANAGER_REVIEW = "manager_review"
    CLIENT_REVIEW = "client_review"


class ReviewAction(str, Enum):
    """Decision taken in a manager or client review."""

    APPROVE = "approve"
    REJECT = "reject"


# Statuses in which an editor still has work to do
EDITOR_OPEN_STATUSES = (
    RequestStatus.ASSIGNED_TO_EDITOR,
    RequestStatus.MANAGER_REJECTED,
    RequestStatus.CLIENT_REJECTED,
)

TERMINAL_STATUSES = frozenset({RequestStatus.CLIENT_APPROVED})
