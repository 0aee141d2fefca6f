"""
Request Model

Database model for content requests.
"""

from datetime import datetime
from typing import List
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from upthrive_api.workflow.enums import ContentType
from upthrive_api.workflow.enums import RequestStatus


class ContentRequest(BaseModel):
    """Request database model (upthrive.requests)."""

    id: UUID
    client_id: UUID
    from_user_id: UUID
    to_user_id: Optional[UUID] = None  # Derived: whoever must act next
    assigned_editor_id: Optional[UUID] = None
    manager_id: Optional[UUID] = None  # Manager who assigned the editor
    cc_list_item_id: Optional[UUID] = None

    message: str = ""
    content_type: ContentType = ContentType.POST
    requirements: str = ""
    media_urls: List[str] = Field(default_factory=list)

    status: RequestStatus
    editor_message: Optional[str] = None
    manager_feedback: Optional[str] = None
    client_feedback: Optional[str] = None
    completed_work_url: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PartySummary(BaseModel):
    """Name and email of a profile a request refers to."""

    name: Optional[str] = None
    email: Optional[str] = None


class RequestView(ContentRequest):
    """Request joined with the names of its parties and client, returned by reads."""

    from_user: Optional[PartySummary] = None
    to_user: Optional[PartySummary] = None
    assigned_editor: Optional[PartySummary] = None
    client_name: Optional[str] = None


class Profile(BaseModel):
    """Profile database model (upthrive.profiles), read-only for the workflow."""

    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    role: str
    client_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
