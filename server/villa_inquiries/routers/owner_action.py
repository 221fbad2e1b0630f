"""Owner action router: the approve/decline links embedded in owner emails."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse

from ..core.dependencies import OwnerActionServiceDep
from ..core.exceptions import AuthenticationError, DependencyError, IllegalTransitionError, NotFoundError
from ..services.owner_actions import OwnerActionService
from ..services.signing import ActionKind
from ..templates import pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["owner-action"])


@router.get(
    "/owner-action",
    response_class=HTMLResponse,
    summary="Apply an owner decision",
    description="Opened from the owner's email; verifies the signed link and approves or declines the inquiry",
)
async def owner_action(
    request: Request,
    service: OwnerActionService = OwnerActionServiceDep,
) -> HTMLResponse:
    try:
        result = await service.handle(request.query_params)
    except AuthenticationError:
        return HTMLResponse(pages.invalid_link_page(), status_code=status.HTTP_400_BAD_REQUEST)
    except NotFoundError:
        return HTMLResponse(pages.not_found_page(), status_code=status.HTTP_404_NOT_FOUND)
    except IllegalTransitionError as exc:
        return HTMLResponse(pages.already_processed_page(exc.current_status), status_code=status.HTTP_200_OK)
    except DependencyError:
        return HTMLResponse(pages.error_page(), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception:
        logger.exception("Owner action failed")
        return HTMLResponse(pages.error_page(), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    guest_name = result.inquiry.guest_name
    if result.action is ActionKind.APPROVE:
        page = pages.approved_page(
            guest_name,
            result.listing_name,
            result.price,
            result.currency,
            result.payment_link_created,
        )
    else:
        page = pages.declined_page(guest_name, result.listing_name)
    return HTMLResponse(page)
