"""FastAPI routers package."""

from .availability import router as availability_router
from .inquiry import router as inquiry_router
from .metrics import router as metrics_router
from .owner_action import router as owner_action_router
from .payments import router as payments_router

__all__ = [
    "availability_router",
    "inquiry_router",
    "metrics_router",
    "owner_action_router",
    "payments_router",
]
