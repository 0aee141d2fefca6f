"""Error handling for the FastAPI application and request workflow exceptions."""

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from upthrive_api.monitoring.logger import log_response_info
from upthrive_api.workflow.exceptions import WorkflowError

__all__ = [
    "handle_broad_exceptions",
    "handle_pydantic_validation_errors",
    "handle_workflow_errors",
    "register_exception_handlers",
]


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"error": "Internal server error", "error_type": type(err).__name__}

        logger.error(
            f"Unhandled exception: {type(err).__name__}: {str(err)}",
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            request_body=getattr(request.state, "request_body", None),
            exc_info=True,
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors (including FastAPI request validation)."""
    errors = exc.errors()
    error_response = {
        "error": "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body') or 'body'}: {error['msg']}"
            for error in errors
        ),
        "error_type": "ValidationError",
        "detail": [
            {
                "msg": error["msg"],
                "loc": list(error.get("loc", ())),
            }
            for error in errors
        ],
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        validation_errors=errors,
        request_body=getattr(request.state, "request_body", None),
    )

    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_response,
    )
    log_response_info(response)

    return response


async def handle_workflow_errors(request: Request, exc: WorkflowError) -> JSONResponse:
    """
    Convert workflow errors to HTTP responses.

    Maps the workflow error taxonomy to HTTP status codes:
    - AuthenticationError -> 401 Unauthorized
    - ForbiddenError -> 403 Forbidden
    - NotFoundError -> 404 Not Found
    - InvalidStateError -> 409 Conflict
    - ValidationError -> 400 Bad Request
    - UpstreamError -> 502 Bad Gateway
    - PersistenceError -> 500 Internal Server Error
    - ServiceUnavailableError -> 503 Service Unavailable

    Parameters
    ----------
    request : Request
        FastAPI request object
    exc : WorkflowError
        Raised workflow error

    Returns
    -------
    JSONResponse
        ``{"error": <message>, "error_type": <class name>}`` with the mapped status
    """
    error_type = type(exc).__name__
    error_response = {"error": exc.message, "error_type": error_type}

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Workflow error: {error_type}: {exc.message}",
        http_status=exc.status_code,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=error_type,
        request_body=getattr(request.state, "request_body", None),
    )

    response = JSONResponse(
        status_code=exc.status_code,
        content=error_response,
    )
    log_response_info(response)
    return response


def register_exception_handlers(app) -> None:
    """Attach all error handlers to ``app``."""
    app.add_exception_handler(
        exc_class_or_status_code=WorkflowError,
        handler=handle_workflow_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=RequestValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)
