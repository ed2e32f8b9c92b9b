from datetime import date
from typing import Optional, Tuple
import logging

from revshare.config import settings

# 로거 설정
logger = logging.getLogger(__name__)

QUARTER_MONTHS: Tuple[Tuple[int, int, int], ...] = (
    (1, 2, 3),
    (4, 5, 6),
    (7, 8, 9),
    (10, 11, 12),
)

QUARTER_LABELS: Tuple[str, ...] = (
    "Q1 (Jan–Mar)",
    "Q2 (Apr–Jun)",
    "Q3 (Jul–Sep)",
    "Q4 (Oct–Dec)",
)


def validate_year(year: int) -> int:
    """설정된 범위 밖의 연도는 ValueError"""
    if year < settings.MIN_YEAR or year > settings.MAX_YEAR:
        raise ValueError(
            f"Year {year} is outside the supported range "
            f"{settings.MIN_YEAR}-{settings.MAX_YEAR}"
        )
    return year


def validate_quarter(quarter: int) -> int:
    if quarter not in (1, 2, 3, 4):
        raise ValueError(f"Quarter must be 1-4, got {quarter}")
    return quarter


def quarter_months(quarter: int) -> Tuple[int, int, int]:
    """분기에 속한 월 (1분기 -> 1, 2, 3)"""
    return QUARTER_MONTHS[validate_quarter(quarter) - 1]


def quarter_label(quarter: int) -> str:
    return QUARTER_LABELS[validate_quarter(quarter) - 1]


def year_bounds(year: int) -> Tuple[str, str]:
    """Provider 조회용 연도 범위 ("YYYY-01-01", "YYYY-12-31")"""
    return date(year, 1, 1).isoformat(), date(year, 12, 31).isoformat()


def arrival_month(arrival: str, year: int) -> Optional[int]:
    """
    도착일 문자열(YYYY-MM-DD)에서 월을 추출

    Args:
        arrival: 예약 도착일
        year: 집계 대상 연도

    Returns:
        Optional[int]: 해당 연도의 도착일이면 월 (1-12), 아니면 None
    """
    try:
        parsed = date.fromisoformat(arrival[:10])
    except (TypeError, ValueError):
        logger.warning(f"도착일 파싱 실패: {arrival}")
        return None

    if parsed.year != year:
        return None
    return parsed.month
