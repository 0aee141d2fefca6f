"""
Request API Schemas

Request bodies and response models for the content request endpoints.
"""

from typing import List
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict

from upthrive_api.workflow.models import ContentRequest
from upthrive_api.workflow.models import RequestView

# ════════════════════════════════════════════════════════════════════════════
# Request Bodies
# ════════════════════════════════════════════════════════════════════════════


class AssignRequestBody(BaseModel):
    """Body for PUT /requests/{id}/assign."""

    editor_id: Optional[UUID] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"editor_id": "6f1c2d3e-0000-4000-8000-000000000003"}}
    )


class ReviewRequestBody(BaseModel):
    """Body for PUT /requests/{id}/review and /requests/{id}/client-review."""

    action: Optional[str] = None  # approve | reject, checked by the route
    feedback: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={"example": {"action": "reject", "feedback": "redo colors"}})


# ════════════════════════════════════════════════════════════════════════════
# Responses
# ════════════════════════════════════════════════════════════════════════════


class RequestResponse(BaseModel):
    """Single request envelope, as returned by transitions."""

    request: ContentRequest


class RequestViewResponse(BaseModel):
    """Single request with party and client names."""

    request: RequestView


class RequestListResponse(BaseModel):
    """List of requests with party and client names."""

    requests: List[RequestView]


class EditorSummary(BaseModel):
    """Editor option for the assignment dropdown."""

    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None


class EditorListResponse(BaseModel):
    """List of editors."""

    editors: List[EditorSummary]


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error: str
    error_type: str
