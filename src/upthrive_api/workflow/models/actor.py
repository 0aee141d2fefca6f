"""
Actor Model

Authenticated party performing a transition.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from upthrive_api.workflow.enums import Role


class Actor(BaseModel):
    """Resolved identity of the caller: who they are, their role and client scope."""

    id: UUID
    role: Role
    client_id: Optional[UUID] = None
    email: Optional[str] = None

    def in_client_scope(self, client_id: Optional[UUID]) -> bool:
        """Return True if this actor is a client belonging to ``client_id``."""
        return self.role == Role.CLIENT and self.client_id is not None and self.client_id == client_id
