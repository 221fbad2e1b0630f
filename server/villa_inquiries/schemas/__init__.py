"""Pydantic schemas for request/response validation."""

from .availability import *  # noqa: F403
from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .inquiry import *  # noqa: F403
from .pricing import *  # noqa: F403
from .tenants import *  # noqa: F403
