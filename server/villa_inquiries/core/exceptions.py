"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
import logging
import uuid

from .database import utcnow

logger = logging.getLogger(__name__)


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    Every body also carries ``ok: false`` so the site's form script can
    branch on a single flag for both success and error responses.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "ok": False,
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )


class ValidationError(ProblemDetailsException):
    """Bad or missing guest input; user-correctable."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, str]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri="https://lovethisplace.co/problems/validation-error",
            instance=instance,
            extensions=extensions,
        )
        self.errors = errors or {}


class AuthenticationError(ProblemDetailsException):
    """
    Bad or expired signed link.

    The detail is deliberately the same for a wrong signature, a tampered
    field and an expired timestamp.
    """

    def __init__(self, instance: Optional[str] = None):
        super().__init__(
            status_code=400,
            title="Invalid or Expired Link",
            detail="This action link is invalid or has expired",
            type_uri="https://lovethisplace.co/problems/invalid-link",
            instance=instance,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://lovethisplace.co/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            type_uri="https://lovethisplace.co/problems/resource-conflict",
            instance=instance,
            extensions=extensions,
        )


class IllegalTransitionError(ConflictError):
    """An inquiry event that is not legal from the inquiry's current status."""

    def __init__(self, current_status: Optional[str], event: str):
        super().__init__(
            detail=f"Event '{event}' is not allowed from status '{current_status}'",
            conflicting_resource={"status": current_status, "event": event},
        )
        self.current_status = current_status
        self.event = event


class DependencyError(ProblemDetailsException):
    """A store, email or payment-provider failure on the critical path."""

    def __init__(
        self,
        dependency: str,
        detail: str = "We could not process your request right now. Please try again shortly.",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=500,
            title="Dependency Failure",
            detail=detail,
            type_uri="https://lovethisplace.co/problems/dependency-failure",
            instance=instance,
            extensions={"dependency": dependency, "error_id": str(uuid.uuid4())},
        )
        self.dependency = dependency


class ServiceUnavailableError(ProblemDetailsException):
    """A collaborator the endpoint needs is not configured."""

    def __init__(self, detail: str = "This service is not configured", instance: Optional[str] = None):
        super().__init__(
            status_code=503,
            title="Service Unavailable",
            detail=detail,
            type_uri="https://lovethisplace.co/problems/service-unavailable",
            instance=instance,
        )


class WebhookVerificationError(ProblemDetailsException):
    """The payment provider's webhook signature could not be verified."""

    def __init__(self, detail: str = "Invalid webhook signature"):
        super().__init__(
            status_code=400,
            title="Invalid Webhook",
            detail=detail,
            type_uri="https://lovethisplace.co/problems/invalid-webhook",
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    The exception text stays in the server log; the client only gets an error id.
    """
    error_id = str(uuid.uuid4())
    logger.error(
        "Unhandled exception",
        extra={"error_id": error_id, "path": request.url.path},
        exc_info=exc,
    )

    problem_details = {
        "ok": False,
        "type": "https://lovethisplace.co/problems/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": request.url.path,
        "error_id": error_id,
        "timestamp": utcnow().isoformat(),
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
