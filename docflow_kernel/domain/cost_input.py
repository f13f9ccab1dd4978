"""
Cost input and derived totals (``docflow_kernel.domain.cost_input``).

Responsibility
--------------
Pure value objects for a fund plan: the raw cost lines an editor enters
(``CostInput``) and the record the calculation engine derives from them
(``DerivedTotals``).

Architecture position
---------------------
**Kernel domain layer** -- pure value objects. ZERO I/O.

Invariants enforced
-------------------
* Every monetary input is ``Decimal | None``. ``None`` means "not
  entered": it counts as zero in every sum but is kept on the input so a
  form can show an empty field rather than ``0``.
* At most three loan tranches and three bridge-loan tranches.
* ``DerivedTotals`` has no setters and is only produced by
  ``docflow_engines.calculation.compute_totals``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator

MAX_LOAN_TRANCHES = 3
MAX_BRIDGE_TRANCHES = 3

Amount = Decimal | None


# =========================================================================
# Inputs
# =========================================================================


@dataclass(frozen=True)
class CostTier:
    """An additive group of named line items.

    Items keep their entry order so a form can be rebuilt exactly.
    """

    items: tuple[tuple[str, Amount], ...] = ()

    @classmethod
    def of(cls, **items: Amount) -> CostTier:
        return cls(items=tuple(items.items()))

    def get(self, name: str) -> Amount:
        for key, value in self.items:
            if key == name:
                return value
        return None

    def names(self) -> tuple[str, ...]:
        return tuple(key for key, _ in self.items)

    def __iter__(self) -> Iterator[tuple[str, Amount]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class LoanTranche:
    """One bank loan. ``annual_rate`` is a fraction (0.0085 = 0.85%).

    ``bonus_principal`` is the part of ``principal`` repaid in semiannual
    bonus installments; the rest is repaid monthly.
    """

    name: str
    principal: Amount = None
    annual_rate: Amount = None
    years: Amount = None
    bonus_principal: Amount = None


@dataclass(frozen=True)
class BridgeLoanTranche:
    """A short-term loan accruing simple interest until permanent financing."""

    name: str
    amount: Amount = None
    annual_rate: Amount = None
    months: Amount = None


@dataclass(frozen=True)
class SolarInputs:
    """Solar-economics inputs for one panel installation."""

    capacity_kw: Amount = None
    annual_yield_per_kw: Amount = None
    daily_consumption: Amount = None
    battery_charge: Amount = None
    sale_tariff: Amount = None
    saved_utility_cost: Amount = None
    system_cost: Amount = None


@dataclass(frozen=True)
class CostInput:
    """Everything an editor enters for a fund plan."""

    building_unit_price: Amount = None
    building_area: Amount = None
    tier_a: CostTier = field(default_factory=CostTier)
    tier_b: CostTier = field(default_factory=CostTier)
    tier_c: CostTier = field(default_factory=CostTier)
    miscellaneous: CostTier = field(default_factory=CostTier)
    land: CostTier = field(default_factory=CostTier)
    loans: tuple[LoanTranche, ...] = ()
    bridge_loans: tuple[BridgeLoanTranche, ...] = ()
    solar: SolarInputs | None = None
    self_funding: CostTier = field(default_factory=CostTier)
    current_housing: CostTier = field(default_factory=CostTier)
    locked_total_at_signing: Amount = None

    def __post_init__(self) -> None:
        if len(self.loans) > MAX_LOAN_TRANCHES:
            raise ValueError(
                f"At most {MAX_LOAN_TRANCHES} loan tranches allowed, got {len(self.loans)}"
            )
        if len(self.bridge_loans) > MAX_BRIDGE_TRANCHES:
            raise ValueError(
                f"At most {MAX_BRIDGE_TRANCHES} bridge-loan tranches allowed, "
                f"got {len(self.bridge_loans)}"
            )


# =========================================================================
# Settings
# =========================================================================


@dataclass(frozen=True)
class CalculationSettings:
    """Rates and constants the engine applies.

    ``base_utility_cost`` is the assumed monthly utility bill of an
    all-electric new house before any solar offset.
    """

    tax_rate: Decimal = Decimal("0.10")
    base_utility_cost: Decimal = Decimal("16533")
    solar_horizon_months: int = 120

    def __post_init__(self) -> None:
        if self.tax_rate < 0:
            raise ValueError(f"tax_rate must be non-negative, got {self.tax_rate}")
        if self.solar_horizon_months < 0:
            raise ValueError(
                f"solar_horizon_months must be non-negative, got {self.solar_horizon_months}"
            )


# =========================================================================
# Outputs
# =========================================================================


@dataclass(frozen=True)
class LoanPayment:
    """Repayment figures for one loan tranche."""

    name: str
    monthly: Decimal
    bonus: Decimal


@dataclass(frozen=True)
class BridgeInterest:
    name: str
    interest: Decimal


@dataclass(frozen=True)
class SolarEconomics:
    annual_production: Decimal
    daily_production: Decimal
    daily_sale: Decimal
    monthly_sale: Decimal
    monthly_sale_income: Decimal
    monthly_total_effect: Decimal
    horizon_total_effect: Decimal
    return_rate: Decimal


@dataclass(frozen=True)
class HousingComparison:
    """Current monthly housing spend against the new-house monthly spend."""

    current_monthly_total: Decimal
    effective_utility_cost: Decimal
    new_monthly_total: Decimal
    monthly_difference: Decimal


@dataclass(frozen=True)
class DerivedTotals:
    """Output-only record computed from a ``CostInput``."""

    subtotal_building_base: Decimal
    subtotal_tier_a: Decimal
    subtotal_tier_b: Decimal
    subtotal_tier_c: Decimal
    subtotal_miscellaneous: Decimal
    subtotal_land: Decimal
    construction_total: Decimal
    tax: Decimal
    construction_total_with_tax: Decimal
    outside_construction_total: Decimal
    grand_total: Decimal
    self_funding_total: Decimal
    bank_loan_total: Decimal
    loan_payments: tuple[LoanPayment, ...]
    total_monthly_payment: Decimal
    total_bonus_payment: Decimal
    bridge_interests: tuple[BridgeInterest, ...]
    bridge_interest_total: Decimal
    solar: SolarEconomics | None
    housing: HousingComparison
    difference_from_locked_total: Decimal
