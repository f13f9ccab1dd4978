"""
Boundary coercion for form input (``docflow_kernel.domain.coercion``).

Upstream forms deliver numbers as possibly-empty strings, ``None`` or
garbage. The calculation engine only accepts ``Decimal | None``; this
module is the single place where raw input becomes that.

Policy:
    * ``None`` stays ``None`` (field not entered).
    * Empty strings, unparsable strings, booleans, NaN and infinities
      become ``Decimal(0)``. Nothing here raises for numeric content.
    * Thousands separators and surrounding whitespace are ignored.
    * Negative values pass through unchanged; the engine clamps them.

``cost_input_from_mapping`` / ``cost_input_to_mapping`` convert between
``CostInput`` and the nested, JSON-safe dict shape used by forms and by
the persistence layer.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from docflow_kernel.domain.cost_input import (
    MAX_BRIDGE_TRANCHES,
    MAX_LOAN_TRANCHES,
    Amount,
    BridgeLoanTranche,
    CostInput,
    CostTier,
    LoanTranche,
    SolarInputs,
)

_ZERO = Decimal(0)

_TIER_KEYS = (
    "tier_a",
    "tier_b",
    "tier_c",
    "miscellaneous",
    "land",
    "self_funding",
    "current_housing",
)

_SOLAR_KEYS = (
    "capacity_kw",
    "annual_yield_per_kw",
    "daily_consumption",
    "battery_charge",
    "sale_tariff",
    "saved_utility_cost",
    "system_cost",
)


def to_amount(raw: Any) -> Amount:
    """Coerce one raw form value to ``Decimal | None``."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        return _ZERO
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        text = raw.strip().replace(",", "")
        if not text:
            return _ZERO
        try:
            value = Decimal(text)
        except InvalidOperation:
            return _ZERO
    else:
        return _ZERO
    if not value.is_finite():
        return _ZERO
    return value


def _tier(raw: Any) -> CostTier:
    if not isinstance(raw, Mapping):
        return CostTier()
    return CostTier(items=tuple((str(k), to_amount(v)) for k, v in raw.items()))


def _records(raw: Any, limit: int) -> list[Mapping[str, Any]]:
    if not isinstance(raw, Iterable) or isinstance(raw, (str, bytes, Mapping)):
        return []
    return [r for r in raw if isinstance(r, Mapping)][:limit]


def cost_input_from_mapping(raw: Mapping[str, Any]) -> CostInput:
    """Build a ``CostInput`` from a nested form/persistence mapping.

    Unknown keys are ignored; missing sections become empty. Tranche lists
    longer than the allowed maximum are truncated.
    """
    building = raw.get("building")
    if not isinstance(building, Mapping):
        building = {}
    loans = tuple(
        LoanTranche(
            name=str(r.get("name") or f"loan_{i + 1}"),
            principal=to_amount(r.get("principal")),
            annual_rate=to_amount(r.get("annual_rate")),
            years=to_amount(r.get("years")),
            bonus_principal=to_amount(r.get("bonus_principal")),
        )
        for i, r in enumerate(_records(raw.get("loans"), MAX_LOAN_TRANCHES))
    )
    bridges = tuple(
        BridgeLoanTranche(
            name=str(r.get("name") or f"bridge_{i + 1}"),
            amount=to_amount(r.get("amount")),
            annual_rate=to_amount(r.get("annual_rate")),
            months=to_amount(r.get("months")),
        )
        for i, r in enumerate(_records(raw.get("bridge_loans"), MAX_BRIDGE_TRANCHES))
    )
    solar_raw = raw.get("solar")
    solar = (
        SolarInputs(**{key: to_amount(solar_raw.get(key)) for key in _SOLAR_KEYS})
        if isinstance(solar_raw, Mapping)
        else None
    )
    tiers = {key: _tier(raw.get(key)) for key in _TIER_KEYS}
    return CostInput(
        building_unit_price=to_amount(building.get("unit_price")),
        building_area=to_amount(building.get("area")),
        loans=loans,
        bridge_loans=bridges,
        solar=solar,
        locked_total_at_signing=to_amount(raw.get("locked_total_at_signing")),
        **tiers,
    )


def _dump(value: Amount) -> str | None:
    return None if value is None else str(value)


def cost_input_to_mapping(cost_input: CostInput) -> dict[str, Any]:
    """Inverse of ``cost_input_from_mapping``. Decimals become strings."""
    data: dict[str, Any] = {
        "building": {
            "unit_price": _dump(cost_input.building_unit_price),
            "area": _dump(cost_input.building_area),
        },
    }
    for key in _TIER_KEYS:
        tier: CostTier = getattr(cost_input, key)
        data[key] = {name: _dump(value) for name, value in tier}
    data["loans"] = [
        {
            "name": t.name,
            "principal": _dump(t.principal),
            "annual_rate": _dump(t.annual_rate),
            "years": _dump(t.years),
            "bonus_principal": _dump(t.bonus_principal),
        }
        for t in cost_input.loans
    ]
    data["bridge_loans"] = [
        {
            "name": t.name,
            "amount": _dump(t.amount),
            "annual_rate": _dump(t.annual_rate),
            "months": _dump(t.months),
        }
        for t in cost_input.bridge_loans
    ]
    data["solar"] = (
        None
        if cost_input.solar is None
        else {key: _dump(getattr(cost_input.solar, key)) for key in _SOLAR_KEYS}
    )
    data["locked_total_at_signing"] = _dump(cost_input.locked_total_at_signing)
    return data
