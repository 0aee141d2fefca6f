"""
Request API Routes

REST API endpoints for the content request lifecycle. Every transition is
delegated to the workflow engine; the routes only parse input, upload files
and shape responses.
"""

from typing import List
from typing import Optional
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import File
from fastapi import Form
from fastapi import UploadFile
from fastapi import status
from loguru import logger

from upthrive_api.dependencies import get_current_actor
from upthrive_api.dependencies import get_media_store
from upthrive_api.dependencies import get_profile_repository
from upthrive_api.dependencies import get_request_repository
from upthrive_api.dependencies import get_workflow_engine
from upthrive_api.dependencies import require_role
from upthrive_api.schemas.schemas_requests import AssignRequestBody
from upthrive_api.schemas.schemas_requests import EditorListResponse
from upthrive_api.schemas.schemas_requests import EditorSummary
from upthrive_api.schemas.schemas_requests import ErrorResponse
from upthrive_api.schemas.schemas_requests import RequestListResponse
from upthrive_api.schemas.schemas_requests import RequestResponse
from upthrive_api.schemas.schemas_requests import RequestViewResponse
from upthrive_api.schemas.schemas_requests import ReviewRequestBody
from upthrive_api.workflow.db.repository_profile import ProfileRepository
from upthrive_api.workflow.db.repository_request import RequestRepository
from upthrive_api.workflow.engine import RequestWorkflowEngine
from upthrive_api.workflow.enums import EDITOR_OPEN_STATUSES
from upthrive_api.workflow.enums import ReviewAction
from upthrive_api.workflow.enums import Role
from upthrive_api.workflow.enums import Transition
from upthrive_api.workflow.exceptions import ForbiddenError
from upthrive_api.workflow.exceptions import NotFoundError
from upthrive_api.workflow.exceptions import ValidationError
from upthrive_api.workflow.models import Actor
from upthrive_api.workflow.models import RequestView

ROUTER_REQUESTS = APIRouter(tags=["Requests"], prefix="/requests")

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid transition input"},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse, "description": "Actor may not perform this action"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Request not found"},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Request is not in a valid status"},
}


async def _parse_review_action(
    engine: RequestWorkflowEngine,
    actor: Actor,
    transition: Transition,
    request_id: UUID,
    action: Optional[str],
) -> bool:
    """
    Return True for approve, False for reject.

    An unknown action is only reported once the request, actor and status
    checks of the transition have passed.
    """
    try:
        return ReviewAction((action or "").strip().lower()) == ReviewAction.APPROVE
    except ValueError:
        await engine.preflight(actor, transition, request_id)
        raise ValidationError("Invalid action. Must be approve or reject")


def _to_views(rows) -> List[RequestView]:
    return [RequestView.model_validate(row) for row in rows]


# ════════════════════════════════════════════════════════════════════════════
# Listings
# ════════════════════════════════════════════════════════════════════════════


@ROUTER_REQUESTS.get(
    "",
    response_model=RequestListResponse,
    summary="List all requests",
    responses=_ERROR_RESPONSES,
)
async def list_requests(
    actor: Actor = Depends(require_role(Role.MANAGER.value)),
    requests: RequestRepository = Depends(get_request_repository),
):
    """Every request in the system, newest first. Managers only."""
    rows = await requests.list_all()
    logger.info("Listed all requests", count=len(rows), actor_id=str(actor.id))
    return RequestListResponse(requests=_to_views(rows))


@ROUTER_REQUESTS.get(
    "/my-requests",
    response_model=RequestListResponse,
    summary="List requests visible to the caller",
    responses=_ERROR_RESPONSES,
)
async def list_my_requests(
    actor: Actor = Depends(get_current_actor),
    requests: RequestRepository = Depends(get_request_repository),
):
    """
    Role-scoped listing.

    - client: requests of its client scope
    - editor: requests assigned to it
    - manager: all requests
    """
    if actor.role == Role.CLIENT:
        if actor.client_id is None:
            raise ForbiddenError("Client profile not found")
        rows = await requests.list_by_client(actor.client_id)
    elif actor.role == Role.EDITOR:
        rows = await requests.list_by_editor(actor.id)
    else:
        rows = await requests.list_all()

    logger.info("Listed requests for actor", count=len(rows), actor_id=str(actor.id), actor_role=actor.role.value)
    return RequestListResponse(requests=_to_views(rows))


@ROUTER_REQUESTS.get(
    "/my-tasks",
    response_model=RequestListResponse,
    summary="List the editor's open tasks",
    responses=_ERROR_RESPONSES,
)
async def list_my_tasks(
    actor: Actor = Depends(require_role(Role.EDITOR.value)),
    requests: RequestRepository = Depends(get_request_repository),
):
    """Requests assigned to the calling editor that still need work from it."""
    rows = await requests.list_by_editor(actor.id, [s.value for s in EDITOR_OPEN_STATUSES])
    logger.info("Listed editor tasks", count=len(rows), actor_id=str(actor.id))
    return RequestListResponse(requests=_to_views(rows))


@ROUTER_REQUESTS.get(
    "/editors",
    response_model=EditorListResponse,
    summary="List editors available for assignment",
    responses=_ERROR_RESPONSES,
)
async def list_editors(
    actor: Actor = Depends(require_role(Role.MANAGER.value)),
    profiles: ProfileRepository = Depends(get_profile_repository),
):
    rows = await profiles.list_editors()
    return EditorListResponse(editors=[EditorSummary.model_validate(row) for row in rows])


# ════════════════════════════════════════════════════════════════════════════
# Transitions
# ════════════════════════════════════════════════════════════════════════════


@ROUTER_REQUESTS.post(
    "",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a content request",
    responses=_ERROR_RESPONSES,
)
async def create_request(
    message: str = Form("", description="What the client wants"),
    content_type: str = Form("post", description="post, reel or story"),
    requirements: str = Form(""),
    cc_list_item_id: Optional[UUID] = Form(None),
    media_urls: Optional[List[str]] = Form(None, description="Already-uploaded media references"),
    file: Optional[UploadFile] = File(None, description="Optional image or video attachment"),
    actor: Actor = Depends(get_current_actor),
    engine: RequestWorkflowEngine = Depends(get_workflow_engine),
    media_store=Depends(get_media_store),
):
    """
    Create a request in ``pending_manager_review`` on behalf of the calling client.

    An attached file is uploaded once the request would be accepted, and its
    URL appended to ``media_urls``.
    """
    urls = [url for url in (media_urls or []) if url]
    if file is not None and file.filename:
        await engine.preflight(actor, Transition.CREATE, inputs={"content_type": content_type})
        url = await media_store.upload(
            str(actor.id),
            file.filename,
            await file.read(),
            file.content_type,
        )
        urls.append(url)

    created = await engine.create(
        actor,
        message=message,
        content_type=content_type,
        requirements=requirements,
        media_urls=urls,
        cc_list_item_id=cc_list_item_id,
    )
    return RequestResponse(request=created)


@ROUTER_REQUESTS.put(
    "/{request_id}/assign",
    response_model=RequestResponse,
    summary="Assign a request to an editor",
    responses=_ERROR_RESPONSES,
)
async def assign_request(
    request_id: UUID,
    body: AssignRequestBody,
    actor: Actor = Depends(get_current_actor),
    engine: RequestWorkflowEngine = Depends(get_workflow_engine),
):
    updated = await engine.assign(actor, request_id, body.editor_id)
    return RequestResponse(request=updated)


@ROUTER_REQUESTS.put(
    "/{request_id}/submit",
    response_model=RequestResponse,
    summary="Submit completed work",
    responses=_ERROR_RESPONSES,
)
async def submit_request(
    request_id: UUID,
    message: str = Form("", description="Message to the manager"),
    completed_work_url: Optional[str] = Form(None, description="Link to the delivered work"),
    completed_work: Optional[UploadFile] = File(None, description="Delivered image or video"),
    actor: Actor = Depends(get_current_actor),
    engine: RequestWorkflowEngine = Depends(get_workflow_engine),
    media_store=Depends(get_media_store),
):
    """
    Assigned editor delivers work, either as a link or an uploaded file.

    An uploaded file takes precedence over ``completed_work_url``. With neither,
    the previously delivered work reference is kept.
    """
    work_ref = completed_work_url
    if completed_work is not None and completed_work.filename:
        await engine.preflight(actor, Transition.SUBMIT, request_id, inputs={"message": message})
        work_ref = await media_store.upload(
            str(actor.id),
            completed_work.filename,
            await completed_work.read(),
            completed_work.content_type,
            prefix="completed-work/",
        )

    updated = await engine.submit(actor, request_id, message, work_ref)
    return RequestResponse(request=updated)


@ROUTER_REQUESTS.put(
    "/{request_id}/review",
    response_model=RequestResponse,
    summary="Manager review of submitted work",
    responses=_ERROR_RESPONSES,
)
async def manager_review_request(
    request_id: UUID,
    body: ReviewRequestBody,
    actor: Actor = Depends(get_current_actor),
    engine: RequestWorkflowEngine = Depends(get_workflow_engine),
):
    approve = await _parse_review_action(engine, actor, Transition.MANAGER_REVIEW, request_id, body.action)
    updated = await engine.manager_review(actor, request_id, approve, body.feedback)
    return RequestResponse(request=updated)


@ROUTER_REQUESTS.put(
    "/{request_id}/client-review",
    response_model=RequestResponse,
    summary="Client review of manager-approved work",
    responses=_ERROR_RESPONSES,
)
async def client_review_request(
    request_id: UUID,
    body: ReviewRequestBody,
    actor: Actor = Depends(get_current_actor),
    engine: RequestWorkflowEngine = Depends(get_workflow_engine),
):
    approve = await _parse_review_action(engine, actor, Transition.CLIENT_REVIEW, request_id, body.action)
    updated = await engine.client_review(actor, request_id, approve, body.feedback)
    return RequestResponse(request=updated)


# ════════════════════════════════════════════════════════════════════════════
# Single request
# ════════════════════════════════════════════════════════════════════════════


@ROUTER_REQUESTS.get(
    "/{request_id}",
    response_model=RequestViewResponse,
    summary="Get one request",
    responses=_ERROR_RESPONSES,
)
async def get_request(
    request_id: UUID,
    actor: Actor = Depends(get_current_actor),
    engine: RequestWorkflowEngine = Depends(get_workflow_engine),
    requests: RequestRepository = Depends(get_request_repository),
):
    """Clients only see requests of their own client scope."""
    current = await engine.get(actor, request_id)
    view = await requests.get_view(current.id)
    if view is None:
        raise NotFoundError("Request not found")
    return RequestViewResponse(request=RequestView.model_validate(view))
