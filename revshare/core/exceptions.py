from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message


class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )


class AuthorizationError(BaseAPIException):
    """Authorization related errors"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )


class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )


class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )


class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )


class ExternalProviderError(BaseAPIException):
    """매출 제공자(Smoobu) 조회 실패 - 캐시는 유지되며 재시도 가능"""
    def __init__(self, reason: str, year: Optional[int] = None):
        if year is None:
            message = f"Smoobu request failed: {reason}"
        else:
            message = f"Revenue refresh for {year} failed: {reason}. Previous cache was kept; retry the refresh."
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="PROVIDER_001",
            message=message,
            details={"year": year, "reason": reason, "retryable": True}
        )


class DuplicateSettlementError(BaseAPIException):
    """이미 정산된 분기"""
    def __init__(self, unit_id: int, year: int, quarter: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="SETTLEMENT_001",
            message=f"Q{quarter} {year} for unit {unit_id} has already been settled",
            details={"unit_id": unit_id, "year": year, "quarter": quarter}
        )


class ImmutabilityViolationError(BaseAPIException):
    """지급 완료된 payout이 있는 정산 삭제 시도"""
    def __init__(self, settlement_id: int, unit_id: int, year: int, quarter: int, paid_count: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="SETTLEMENT_002",
            message=(
                f"Cannot delete settlement {settlement_id} (unit {unit_id}, Q{quarter} {year}): "
                f"{paid_count} payout(s) already marked as paid"
            ),
            details={
                "settlement_id": settlement_id,
                "unit_id": unit_id,
                "year": year,
                "quarter": quarter,
                "paid_count": paid_count,
            }
        )


class AlreadyPaidError(BaseAPIException):
    """이미 지급 처리된 payout"""
    def __init__(self, payout_id: int, settlement_id: int, paid_at: Optional[datetime] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="PAYOUT_001",
            message=f"Payout {payout_id} of settlement {settlement_id} is already marked as paid",
            details={
                "payout_id": payout_id,
                "settlement_id": settlement_id,
                "paid_at": paid_at.isoformat() if paid_at else None,
            }
        )
