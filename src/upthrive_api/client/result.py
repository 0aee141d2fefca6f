"""
Call Results

Every client call returns exactly one of these, so callers decide explicitly
what to do when the backend cannot be reached.
"""

from typing import Any
from typing import Optional
from typing import Union

from pydantic import BaseModel


class Success(BaseModel):
    """The call completed; ``data`` holds the decoded payload."""

    data: Any = None
    source: str


class Failure(BaseModel):
    """The backend answered and refused the call (4xx or a workflow error)."""

    error: str
    status_code: Optional[int] = None
    source: str


class TransientFailure(BaseModel):
    """The backend could not answer: network error, timeout, 5xx or storage failure."""

    error: str
    source: str


Result = Union[Success, Failure, TransientFailure]
