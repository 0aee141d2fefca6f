"""
Requests API Clients

``RequestsApiClient`` talks to the HTTP API; ``EngineRequestsClient`` drives a
workflow engine in-process. Both expose the same calls and return a Result, so
``call_with_fallback`` can try one and fall back to the other on a transient
failure only.
"""

from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from uuid import UUID

import httpx
from loguru import logger

from upthrive_api.client.result import Failure
from upthrive_api.client.result import Result
from upthrive_api.client.result import Success
from upthrive_api.client.result import TransientFailure
from upthrive_api.workflow.engine import RequestWorkflowEngine
from upthrive_api.workflow.enums import ReviewAction
from upthrive_api.workflow.enums import Transition
from upthrive_api.workflow.exceptions import PersistenceError
from upthrive_api.workflow.exceptions import ServiceUnavailableError
from upthrive_api.workflow.exceptions import UpstreamError
from upthrive_api.workflow.exceptions import ValidationError
from upthrive_api.workflow.exceptions import WorkflowError
from upthrive_api.workflow.models import Actor
from upthrive_api.workflow.models import ContentRequest

# Workflow errors that mean "backend could not answer" rather than "backend said no"
TRANSIENT_WORKFLOW_ERRORS = (PersistenceError, UpstreamError, ServiceUnavailableError)


class RequestsApiClient:
    """
    HTTP client for the requests API.

    Parameters
    ----------
    base_url : str
        Server root, e.g. ``http://localhost:8000``
    token : str
        Bearer access token of the acting user
    timeout : float
        Timeout in seconds per call
    transport : httpx.AsyncBaseTransport, optional
        Transport override (tests)
    """

    source = "api"

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    async def _call(self, method: str, path: str, envelope: str = "request", **kwargs) -> Result:
        try:
            async with httpx.AsyncClient(
                base_url=f"{self.base_url}/api",
                timeout=self.timeout,
                transport=self.transport,
                headers={"Authorization": f"Bearer {self.token}"},
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            # TimeoutException is a RequestError too
            logger.warning("Requests API unreachable", method=method, path=path, error=str(e))
            return TransientFailure(error=f"Requests API unreachable: {e}", source=self.source)

        if response.status_code >= 500:
            logger.warning("Requests API server error", method=method, path=path, status_code=response.status_code)
            return TransientFailure(error=_error_message(response), source=self.source)
        if response.status_code >= 400:
            return Failure(error=_error_message(response), status_code=response.status_code, source=self.source)

        payload = response.json()
        if envelope == "request":
            return Success(data=ContentRequest.model_validate(payload["request"]), source=self.source)
        if envelope == "requests":
            return Success(data=[ContentRequest.model_validate(r) for r in payload["requests"]], source=self.source)
        return Success(data=payload, source=self.source)

    async def create(
        self,
        message: str,
        content_type: str = "post",
        requirements: str = "",
        media_urls: Optional[List[str]] = None,
        cc_list_item_id: Optional[UUID] = None,
    ) -> Result:
        form: Dict[str, Any] = {
            "message": message,
            "content_type": content_type,
            "requirements": requirements,
        }
        if media_urls:
            form["media_urls"] = list(media_urls)
        if cc_list_item_id is not None:
            form["cc_list_item_id"] = str(cc_list_item_id)
        return await self._call("POST", "/requests", data=form)

    async def assign(self, request_id: UUID, editor_id: UUID) -> Result:
        return await self._call("PUT", f"/requests/{request_id}/assign", json={"editor_id": str(editor_id)})

    async def submit(self, request_id: UUID, message: str, completed_work_url: Optional[str] = None) -> Result:
        form = {"message": message}
        if completed_work_url:
            form["completed_work_url"] = completed_work_url
        return await self._call("PUT", f"/requests/{request_id}/submit", data=form)

    async def manager_review(self, request_id: UUID, action: str, feedback: Optional[str] = None) -> Result:
        return await self._call(
            "PUT",
            f"/requests/{request_id}/review",
            json={"action": action, "feedback": feedback},
        )

    async def client_review(self, request_id: UUID, action: str, feedback: Optional[str] = None) -> Result:
        return await self._call(
            "PUT",
            f"/requests/{request_id}/client-review",
            json={"action": action, "feedback": feedback},
        )

    async def get(self, request_id: UUID) -> Result:
        return await self._call("GET", f"/requests/{request_id}")

    async def my_requests(self) -> Result:
        return await self._call("GET", "/requests/my-requests", envelope="requests")


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or response.text
    except ValueError:
        return response.text or f"HTTP {response.status_code}"


class EngineRequestsClient:
    """
    In-process client over a workflow engine, for when the HTTP API is down.

    Same calls as RequestsApiClient; the acting user is fixed at construction.
    """

    source = "engine"

    def __init__(self, engine: RequestWorkflowEngine, actor: Actor):
        self.engine = engine
        self.actor = actor

    async def _run(self, call: Awaitable[ContentRequest]) -> Result:
        try:
            return Success(data=await call, source=self.source)
        except TRANSIENT_WORKFLOW_ERRORS as e:
            return TransientFailure(error=e.message, source=self.source)
        except WorkflowError as e:
            return Failure(error=e.message, status_code=e.status_code, source=self.source)

    async def create(
        self,
        message: str,
        content_type: str = "post",
        requirements: str = "",
        media_urls: Optional[List[str]] = None,
        cc_list_item_id: Optional[UUID] = None,
    ) -> Result:
        return await self._run(
            self.engine.create(
                self.actor,
                message=message,
                content_type=content_type,
                requirements=requirements,
                media_urls=media_urls,
                cc_list_item_id=cc_list_item_id,
            )
        )

    async def assign(self, request_id: UUID, editor_id: UUID) -> Result:
        return await self._run(self.engine.assign(self.actor, request_id, editor_id))

    async def submit(self, request_id: UUID, message: str, completed_work_url: Optional[str] = None) -> Result:
        return await self._run(self.engine.submit(self.actor, request_id, message, completed_work_url))

    async def manager_review(self, request_id: UUID, action: str, feedback: Optional[str] = None) -> Result:
        approve = _approve(action)
        if approve is None:
            return await self._run(self._invalid_action(Transition.MANAGER_REVIEW, request_id))
        return await self._run(self.engine.manager_review(self.actor, request_id, approve, feedback))

    async def client_review(self, request_id: UUID, action: str, feedback: Optional[str] = None) -> Result:
        approve = _approve(action)
        if approve is None:
            return await self._run(self._invalid_action(Transition.CLIENT_REVIEW, request_id))
        return await self._run(self.engine.client_review(self.actor, request_id, approve, feedback))

    async def _invalid_action(self, transition: Transition, request_id: UUID) -> ContentRequest:
        """Report an unknown action only once the transition's other checks pass, as the HTTP API does."""
        await self.engine.preflight(self.actor, transition, request_id)
        raise ValidationError("Invalid action. Must be approve or reject")

    async def get(self, request_id: UUID) -> Result:
        return await self._run(self.engine.get(self.actor, request_id))


def _approve(action: Optional[str]) -> Optional[bool]:
    try:
        return ReviewAction((action or "").strip().lower()) == ReviewAction.APPROVE
    except ValueError:
        return None


async def call_with_fallback(
    primary: Callable[[], Awaitable[Result]],
    fallback: Callable[[], Awaitable[Result]],
) -> Result:
    """
    Run ``primary``; run ``fallback`` only if it failed transiently.

    A plain Failure is returned as is: the backend answered, so retrying the
    same call elsewhere would give the same refusal.

    Usage:
        result = await call_with_fallback(
            lambda: api.assign(request_id, editor_id),
            lambda: local.assign(request_id, editor_id),
        )
    """
    result = await primary()
    if isinstance(result, TransientFailure):
        logger.warning("Primary call failed transiently, using fallback", error=result.error, source=result.source)
        return await fallback()
    return result
