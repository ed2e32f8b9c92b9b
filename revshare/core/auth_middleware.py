"""
인증 의존성

토큰 발급은 외부 인증 서버 담당. 여기서는 HS256 JWT를 검증하고
sub(사용자 ID), role 클레임만 사용합니다.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from revshare.config import settings
from revshare.core.exceptions import AuthenticationError, AuthorizationError
from revshare.schemas.auth import Principal, TokenPayload

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> Principal:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        token_data = TokenPayload.model_validate(payload)
    except (JWTError, PydanticValidationError):
        raise AuthenticationError("Invalid or expired token")
    return Principal(user_id=token_data.sub, role=token_data.role)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """필수 사용자 인증 - 유효한 토큰이 필요함"""
    if not credentials:
        raise AuthenticationError("Authentication required")
    return decode_token(credentials.credentials)


def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """관리자 권한이 필요한 엔드포인트용 의존성"""
    if not principal.is_admin:
        raise AuthorizationError("Admin access required")
    return principal


# 일반 사용자 (본인 수익 조회)
require_user = get_current_principal
