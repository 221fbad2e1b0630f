"""Inquiry intake router for the villa contact form."""

import json
import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.datastructures import FormData

from ..core.config import Settings
from ..core.dependencies import IntakeServiceDep, SettingsDep
from ..core.exceptions import DependencyError, ValidationError
from ..schemas.common import Problem
from ..schemas.inquiry import IntakeResponse, InquirySubmission
from ..services.intake import InquiryIntakeService
from ..templates.pages import error_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["inquiry"])

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_body(request: Request) -> dict[str, Any]:
    """Parse a JSON or form body into a flat dict; anything unreadable is treated as empty."""
    content_type = request.headers.get("content-type", "").lower()
    try:
        if content_type.startswith(FORM_TYPES):
            form: FormData = await request.form()
            return {key: value for key, value in form.items() if isinstance(value, str)}
        raw = await request.body()
        if not raw:
            return {}
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        logger.info("Unreadable inquiry body", extra={"content_type": content_type})
        return {}
    return data if isinstance(data, dict) else {}


def wants_html(request: Request) -> bool:
    accept = request.headers.get("accept", "").lower()
    if "application/json" in accept:
        return False
    if "text/html" in accept:
        return True
    return request.headers.get("content-type", "").lower().startswith(FORM_TYPES)


def thank_you_url(settings: Settings, submission: InquirySubmission) -> str:
    if submission.slug:
        return f"{settings.site_url}/villas/{submission.slug}/{submission.lang}/thank-you"
    return f"{settings.site_url}/{submission.lang}/thank-you"


def contact_url(settings: Settings, submission: InquirySubmission, fields: list[str]) -> str:
    query = urlencode({"error": "validation", "fields": ",".join(fields)})
    if submission.slug:
        return f"{settings.site_url}/villas/{submission.slug}/{submission.lang}/contact?{query}"
    return f"{settings.site_url}/{submission.lang}/contact?{query}"


@router.post(
    "/inquire",
    response_model=IntakeResponse,
    responses={400: {"model": Problem}, 500: {"model": Problem}},
    summary="Submit a stay inquiry",
    description="Accepts the villa contact form as JSON or form data, stores the inquiry and notifies the owner",
)
async def submit_inquiry(
    request: Request,
    service: InquiryIntakeService = IntakeServiceDep,
    settings: Settings = SettingsDep,
) -> Response:
    raw = await read_body(request)
    html = wants_html(request)

    try:
        outcome = await service.submit(raw)
    except ValidationError as exc:
        if not html:
            raise
        submission = service.normalize(raw)
        return RedirectResponse(
            contact_url(settings, submission, sorted(exc.errors)),
            status_code=status.HTTP_303_SEE_OTHER,
        )
    except DependencyError as exc:
        if not html:
            raise
        logger.error("Inquiry intake failed", extra={"dependency": exc.dependency})
        return HTMLResponse(error_page(exc.problem_details["detail"]), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if html:
        return RedirectResponse(thank_you_url(settings, outcome.submission), status_code=status.HTTP_303_SEE_OTHER)
    body = IntakeResponse(inquiry_id=outcome.inquiry_id)
    return JSONResponse(body.model_dump(by_alias=True, exclude_none=True))
