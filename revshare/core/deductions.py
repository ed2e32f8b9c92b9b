"""
분기 정산 공제 계산 (gross → 고정비 → 추가비용 → 관리 수수료 → 분배 가능 금액)

정산 확정과 미정산 추정이 같은 함수를 사용합니다.
모든 단계에서 ROUND_HALF_UP으로 소수 둘째 자리까지 반올림합니다.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Tuple, Union

CENT = Decimal("0.01")
BASIS_POINTS = 10000

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """금액을 Decimal 소수 둘째 자리로 정규화 (float는 문자열을 거쳐 변환)"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DeductionBreakdown:
    gross_revenue: Decimal
    fixed_expense: Decimal
    additional_expense: Decimal
    after_expense: Decimal
    management_fee: Decimal
    net_pool: Decimal


def compute_deductions(
    gross_revenue: Number,
    fixed_expense: Number,
    additional_expense: Number,
    fee_percent: Number,
) -> DeductionBreakdown:
    """
    공제 워터폴 계산

    Args:
        gross_revenue: 분기 총 매출 (3개월 캐시 합계)
        fixed_expense: 분기 고정비
        additional_expense: 추가 비용 (추정 시 0)
        fee_percent: 관리 수수료 비율 (0.08 = 8%)

    Returns:
        DeductionBreakdown: 단계별 금액
    """
    gross = to_money(gross_revenue)
    fixed = to_money(fixed_expense)
    additional = to_money(additional_expense)
    if additional < 0:
        raise ValueError("additional_expense must be >= 0")

    fee_rate = fee_percent if isinstance(fee_percent, Decimal) else Decimal(str(fee_percent))

    after_expense = max(Decimal("0.00"), to_money(gross - fixed - additional))
    management_fee = to_money(after_expense * fee_rate)
    net_pool = to_money(after_expense - management_fee)

    return DeductionBreakdown(
        gross_revenue=gross,
        fixed_expense=fixed,
        additional_expense=additional,
        after_expense=after_expense,
        management_fee=management_fee,
        net_pool=net_pool,
    )


def owner_share(net_pool: Number, percentage_owned: int) -> Decimal:
    """netPool × bp / 10000, 소유자별로 독립 반올림"""
    return to_money(to_money(net_pool) * Decimal(percentage_owned) / BASIS_POINTS)


def aggregate_owner_percentages(rows: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    """같은 소유자의 여러 소유권 레코드를 합산 (입력 순서 유지)"""
    owners: Dict[str, int] = {}
    for user_id, percentage in rows:
        if not user_id:
            continue
        owners[user_id] = owners.get(user_id, 0) + int(percentage)
    return owners


def allocate_payouts(net_pool: Number, owners: Dict[str, int]) -> List[Tuple[str, int, Decimal]]:
    """(user_id, bp, amount) 목록 - 합계와 net_pool 차이는 소유자당 최대 0.01"""
    return [
        (user_id, percentage, owner_share(net_pool, percentage))
        for user_id, percentage in owners.items()
    ]


def percentage_display(percentage_owned: int) -> str:
    return f"{percentage_owned / 100:.2f}%"
