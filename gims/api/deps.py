"""
API Dependencies
Common dependencies for API endpoints
"""

from typing import Optional
from fastapi import Query

from gims.core.config import settings
from gims.core.database import get_db
from gims.core.security import UserContext, get_user_context, require_permissions

__all__ = [
    "get_db",
    "get_user_context",
    "require_permissions",
    "UserContext",
    "PageParams",
    "get_page_params",
]


class PageParams:
    """Page/pageSize query parameters"""

    def __init__(self, page: int, page_size: int):
        self.page = page
        self.page_size = page_size


def get_page_params(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
) -> PageParams:
    """
    Common pagination parameters.
    """
    size = min(page_size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    return PageParams(page, size)
