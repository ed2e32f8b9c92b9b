from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ErrorCode(str, Enum):
    # Auth related
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    # Validation
    VALIDATION_ERROR = "VALIDATION_001"
    NOT_FOUND = "NOT_FOUND_001"

    # Revenue provider
    PROVIDER_ERROR = "PROVIDER_001"

    # Settlement / payout
    ALREADY_SETTLED = "SETTLEMENT_001"
    SETTLEMENT_LOCKED = "SETTLEMENT_002"
    ALREADY_PAID = "PAYOUT_001"


class Error(BaseModel):
    code: ErrorCode
    message: str
    details: Optional[dict] = None


class BaseResponse(BaseModel):
    success: bool = True
    data: Optional[dict] = None
    error: Optional[Error] = None
    meta: Optional[dict] = None


class UserRole(str, Enum):
    """토큰에 담긴 역할 (인증 서버가 발급)"""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class TokenPayload(BaseModel):
    sub: str  # user id
    role: UserRole = UserRole.USER


class Principal(BaseModel):
    """인증된 호출자"""

    user_id: str
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)
