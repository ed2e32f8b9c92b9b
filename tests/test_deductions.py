from decimal import Decimal

import pytest

from revshare.core.deductions import (
    aggregate_owner_percentages,
    allocate_payouts,
    compute_deductions,
    owner_share,
    percentage_display,
    to_money,
)

FEE = Decimal("0.08")
FIXED = Decimal("2000.00")


class TestComputeDeductions:
    """공제 워터폴 계산 테스트"""

    def test_simple_settlement_scenario(self):
        # Act
        result = compute_deductions(Decimal("10000.00"), FIXED, Decimal("0"), FEE)

        # Assert
        assert result.after_expense == Decimal("8000.00")
        assert result.management_fee == Decimal("640.00")
        assert result.net_pool == Decimal("7360.00")

        payouts = allocate_payouts(result.net_pool, {"owner-a": 6000, "owner-b": 4000})
        assert payouts == [
            ("owner-a", 6000, Decimal("4416.00")),
            ("owner-b", 4000, Decimal("2944.00")),
        ]
        assert sum(p[2] for p in payouts) == result.net_pool

    def test_expenses_above_revenue_clamp_to_zero(self):
        result = compute_deductions(Decimal("1000.00"), FIXED, Decimal("0"), FEE)

        assert result.after_expense == Decimal("0.00")
        assert result.management_fee == Decimal("0.00")
        assert result.net_pool == Decimal("0.00")
        assert [p[2] for p in allocate_payouts(result.net_pool, {"a": 6000, "b": 4000})] == [
            Decimal("0.00"),
            Decimal("0.00"),
        ]

    def test_additional_expense_is_deducted_before_fee(self):
        result = compute_deductions(Decimal("10000.00"), FIXED, Decimal("500.50"), FEE)

        assert result.after_expense == Decimal("7499.50")
        assert result.management_fee == Decimal("599.96")
        assert result.net_pool == Decimal("6899.54")

    def test_fee_rounds_half_up(self):
        # 1234.56 * 0.08 = 98.7648 -> 98.76
        result = compute_deductions(Decimal("3234.56"), FIXED, Decimal("0"), FEE)
        assert result.management_fee == Decimal("98.76")
        assert result.net_pool == Decimal("1135.80")

    def test_negative_additional_expense_rejected(self):
        with pytest.raises(ValueError):
            compute_deductions(Decimal("10000.00"), FIXED, Decimal("-1.00"), FEE)

    def test_accepts_floats_and_strings(self):
        result = compute_deductions(10000.0, "2000", 0, "0.08")
        assert result.net_pool == Decimal("7360.00")


class TestOwnerAllocation:
    def test_owner_share_rounds_each_owner_independently(self):
        # 100.01 * 0.5 = 50.005 -> 50.01
        assert owner_share(Decimal("100.01"), 5000) == Decimal("50.01")

    @pytest.mark.parametrize(
        "net_pool,owners",
        [
            (Decimal("100.00"), {"a": 3333, "b": 3333, "c": 3334}),
            (Decimal("7360.01"), {"a": 3333, "b": 3333, "c": 3334}),
            (Decimal("999.99"), {"a": 1, "b": 9999}),
            (Decimal("12345.67"), {"a": 1250, "b": 1250, "c": 2500, "d": 5000}),
            (Decimal("0.05"), {"a": 2500, "b": 2500, "c": 2500, "d": 2500}),
        ],
    )
    def test_conservation_within_one_cent_per_owner(self, net_pool, owners):
        payouts = allocate_payouts(net_pool, owners)
        total = sum(p[2] for p in payouts)
        assert abs(net_pool - total) <= Decimal("0.01") * len(owners)

    def test_aggregate_sums_records_per_owner(self):
        rows = [("owner-a", 2500), ("owner-c", 5000), ("owner-a", 2500), (None, 1000), ("", 10)]
        assert aggregate_owner_percentages(rows) == {"owner-a": 5000, "owner-c": 5000}

    def test_no_owners_means_no_payouts(self):
        assert allocate_payouts(Decimal("7360.00"), {}) == []


def test_to_money_normalizes_floats():
    assert to_money(0.1 + 0.2) == Decimal("0.30")
    assert to_money(Decimal("2.345")) == Decimal("2.35")
    assert to_money(7) == Decimal("7.00")


def test_percentage_display():
    assert percentage_display(6000) == "60.00%"
    assert percentage_display(3333) == "33.33%"
    assert percentage_display(1) == "0.01%"
