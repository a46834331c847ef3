"""
Security utilities for GIMS
Bearer token decoding and permission checks

Tokens are issued by the external authentication service. Their claims carry
the username (``sub``) and the list of granted permission names.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, FrozenSet, Iterable
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from gims.core.config import settings
from gims.core.exceptions import AuthenticationError, InsufficientPermissionsError
from gims.core.logging import get_logger

logger = get_logger("security")

bearer_scheme = HTTPBearer(auto_error=False)


class Permissions:
    """Permission names granted to users"""
    APPROVE_REQUEST = "can_approve_request"
    FORCE_CLOSE_REQUEST = "can_force_close_request"
    CREATE_NEW_REQUEST_NUMBER = "can_create_new_request_number"
    APPROVE_RECEIVE = "can_approve_receive"
    RECEIVE_ITEMS = "can_receive_items"
    RECEIVE_FROM_TENDER = "can_receive_items_from_tender"
    BORROW_STOCKS = "can_borrow_stocks"
    CREATE_RRP = "can_create_rrp"
    APPROVE_RRP = "can_approve_rrp"
    ISSUE_ITEMS = "can_issue_items"
    APPROVE_ISSUES = "can_approve_issues"
    ADD_NEW_ITEMS = "can_add_new_items"
    EDIT_STOCK_ITEMS = "can_edit_stock_items"
    DELETE_STOCK_ITEMS = "can_delete_stock_items"
    ACCESS_SETTINGS = "can_access_settings"
    ACCESS_ASSETS = "can_access_asset_management_system"
    ACCESS_PREDICTIVE_ANALYSIS = "can_access_predictive_analysis"
    GENERATE_CURRENT_STOCK_REPORT = "can_generate_current_stock_report"
    ACCESS_RRP_REPORTS = "can_access_rrp_reports"
    ISSUE_FUEL = "can_issue_fuel"
    RECEIVE_PETROL = "can_receive_petrol"
    EDIT_FUEL_ISSUE = "can_edit_fuel_issue_item"
    DELETE_FUEL_ISSUE = "can_delete_fuel_issue_item"
    TRANSFER_BALANCE = "can_transfer_one_stock_balance_to_another"
    REVERT_BALANCE_TRANSFER = "can_revert_balance_transfers"
    EDIT_RECEIVE_ITEM = "can_edit_receive_item"
    DELETE_RECEIVE_ITEM = "can_delete_receive_item"
    EDIT_SPARES_ISSUE = "can_edit_spares_issue_item"
    DELETE_SPARES_ISSUE = "can_delete_spares_issue_item"


@dataclass(frozen=True)
class UserContext:
    """Authenticated caller passed explicitly into handlers"""
    username: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    def has(self, permission: str) -> bool:
        return permission in self.permissions


def create_access_token(
    username: str,
    permissions: Iterable[str] = (),
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": username, "permissions": list(permissions), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> UserContext:
    """Verify JWT token and build the caller context"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise AuthenticationError("Could not validate credentials")

    username = payload.get("sub")
    if not username:
        raise AuthenticationError("Could not validate credentials")

    permissions = payload.get("permissions") or []
    return UserContext(username=username, permissions=frozenset(permissions))


async def get_user_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> UserContext:
    """Get the authenticated caller from the bearer token"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return decode_token(credentials.credentials)


def require_permissions(*required: str):
    """
    Dependency to require permissions
    Use in routes like: user: UserContext = Depends(require_permissions(Permissions.APPROVE_RRP))
    """
    async def _require_permissions(
        user: UserContext = Depends(get_user_context)
    ) -> UserContext:
        if not user.permissions:
            logger.warning(f"User {user.username} has no permissions")
            raise InsufficientPermissionsError("User permissions not found")
        missing = [p for p in required if not user.has(p)]
        if missing:
            logger.warning(f"User {user.username} lacks {', '.join(missing)}")
            raise InsufficientPermissionsError("Insufficient permissions")
        return user

    return _require_permissions
