"""Tests for form-input coercion into CostInput."""

from decimal import Decimal

import pytest

from docflow_kernel.domain.coercion import (
    cost_input_from_mapping,
    cost_input_to_mapping,
    to_amount,
)
from docflow_kernel.domain.cost_input import CostInput, CostTier, SolarInputs


class TestToAmount:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1234", Decimal("1234")),
            ("1,234,567", Decimal("1234567")),
            ("  42 ", Decimal("42")),
            ("0.0085", Decimal("0.0085")),
            (1500, Decimal("1500")),
            (0.1, Decimal("0.1")),
            (Decimal("7.5"), Decimal("7.5")),
            (" -5 ", Decimal("-5")),
        ],
    )
    def test_numeric_input(self, raw, expected):
        assert to_amount(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["", "   ", "abc", "12abc", True, False, "NaN", float("inf"), Decimal("Infinity"), [1]],
    )
    def test_garbage_becomes_zero(self, raw):
        assert to_amount(raw) == Decimal("0")

    def test_none_stays_none(self):
        assert to_amount(None) is None


class TestCostInputFromMapping:

    def test_empty_mapping(self):
        assert cost_input_from_mapping({}) == CostInput()

    def test_tiers_keep_entry_order(self):
        cost_input = cost_input_from_mapping(
            {"tier_b": {"zeta": "1", "alpha": "2", "mid": ""}}
        )
        assert cost_input.tier_b.names() == ("zeta", "alpha", "mid")
        assert cost_input.tier_b.get("mid") == Decimal("0")

    def test_tranches_truncated_and_named(self):
        cost_input = cost_input_from_mapping({
            "loans": [{"principal": str(i)} for i in range(1, 6)],
            "bridge_loans": [{"amount": "1"}, "not a record", {"name": "land", "amount": "2"}],
        })
        assert [t.name for t in cost_input.loans] == ["loan_1", "loan_2", "loan_3"]
        assert [t.name for t in cost_input.bridge_loans] == ["bridge_1", "land"]

    def test_wrong_section_types_ignored(self):
        cost_input = cost_input_from_mapping(
            {"building": "big", "tier_a": ["x"], "loans": "many", "solar": 5}
        )
        assert cost_input.building_unit_price is None
        assert cost_input.tier_a == CostTier()
        assert cost_input.loans == ()
        assert cost_input.solar is None

    def test_solar_block(self):
        cost_input = cost_input_from_mapping({"solar": {"capacity_kw": "5.5"}})
        assert cost_input.solar == SolarInputs(capacity_kw=Decimal("5.5"))


class TestCostInputToMapping:

    def test_mapping_shape(self):
        data = cost_input_to_mapping(
            CostInput(
                building_unit_price=Decimal("600000"),
                tier_a=CostTier.of(foundation=Decimal("1000000"), design=None),
            )
        )
        assert data["building"] == {"unit_price": "600000", "area": None}
        assert data["tier_a"] == {"foundation": "1000000", "design": None}
        assert data["loans"] == []
        assert data["solar"] is None
        assert data["locked_total_at_signing"] is None

    def test_inverse_of_from_mapping(self):
        form = {
            "building": {"unit_price": "600000", "area": "30"},
            "land": {"land_price": "10000000"},
            "loans": [
                {
                    "name": "main",
                    "principal": "30000000",
                    "annual_rate": "0.0085",
                    "years": "35",
                    "bonus_principal": None,
                },
            ],
            "solar": {"capacity_kw": "5"},
            "locked_total_at_signing": "33000000",
        }
        cost_input = cost_input_from_mapping(form)
        assert cost_input_from_mapping(cost_input_to_mapping(cost_input)) == cost_input
