"""
Workflow Models Module

Pydantic models for the request workflow:
- Actor resolved from the bearer credential
- Database entity models (requests, profiles)
- Joined request view returned by reads
"""

from upthrive_api.workflow.models.actor import Actor
from upthrive_api.workflow.models.request import ContentRequest, PartySummary, Profile, RequestView

__all__ = [
    "Actor",
    "ContentRequest",
    "PartySummary",
    "Profile",
    "RequestView",
]
