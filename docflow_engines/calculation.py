"""
docflow_engines.calculation -- Fund plan calculation engine.

Responsibility:
    Derive the canonical totals of a fund plan from its raw cost lines:
    tier subtotals, construction total and tax, grand total, loan
    repayments, bridge-loan interest, solar economics and the comparison
    with the customer's current housing costs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import docflow_kernel/domain/ types (plus the tracer).

Invariants enforced:
    - Totality: every function accepts ``Decimal``, ``None``, ints, floats
      and form strings, and never raises for numeric content.  Non-Decimal
      values go through ``to_amount``; ``None``, garbage and negative
      amounts count as zero.
    - Purity: totals are a function of (CostInput, CalculationSettings)
      only; computing twice yields equal records.
    - Decimal-only arithmetic: floats never enter a sum.

Rounding:
    - "round" means half-up to an integer (yen), unless a number of
      places is given.
    - Tax is floored: floor(construction_total * tax_rate).
    - Straight-line repayment (rate <= 0) is left unrounded.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any

from docflow_engines.tracer import traced_engine
from docflow_kernel.domain.coercion import to_amount
from docflow_kernel.domain.cost_input import (
    Amount,
    BridgeInterest,
    BridgeLoanTranche,
    CalculationSettings,
    CostInput,
    CostTier,
    DerivedTotals,
    HousingComparison,
    LoanPayment,
    LoanTranche,
    SolarEconomics,
    SolarInputs,
)

ENGINE_NAME = "calculation"
ENGINE_VERSION = "1.0"

_ZERO = Decimal(0)
_ONE = Decimal(1)
_TWELVE = Decimal(12)
_DAYS_PER_YEAR = Decimal(365)


def _amount(value: Any) -> Decimal:
    if not isinstance(value, Decimal):
        value = to_amount(value)
    if value is None or not value.is_finite() or value <= 0:
        return _ZERO
    return value


def _round(value: Decimal, places: int = 0) -> Decimal:
    return value.quantize(_ONE.scaleb(-places), rounding=ROUND_HALF_UP)


def _floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


# =========================================================================
# Building blocks
# =========================================================================


def tier_total(tier: CostTier) -> Decimal:
    """Plain sum of a tier's line items."""
    return sum((_amount(value) for _, value in tier), _ZERO)


def _amortized(principal: Decimal, periodic_rate: Decimal, periods: Decimal) -> Decimal:
    growth = (_ONE + periodic_rate) ** periods
    return _round(principal * periodic_rate * growth / (growth - _ONE))


def monthly_payment(principal: Amount, annual_rate: Amount, years: Amount) -> Decimal:
    """Level monthly installment of an amortizing loan.

    ``P*i*(1+i)^n / ((1+i)^n - 1)`` with ``i = r/12`` and ``n = years*12``,
    rounded to an integer.  A zero rate repays ``P/n`` straight-line.
    """
    p, r, y = _amount(principal), _amount(annual_rate), _amount(years)
    if p <= 0 or y <= 0:
        return _ZERO
    periods = y * _TWELVE
    if r <= 0:
        return p / periods
    return _amortized(p, r / _TWELVE, periods)


def bonus_payment(principal: Amount, annual_rate: Amount, years: Amount) -> Decimal:
    """Semiannual bonus installment: same formula with ``i = r/2``, ``n = years*2``."""
    p, r, y = _amount(principal), _amount(annual_rate), _amount(years)
    if p <= 0 or y <= 0:
        return _ZERO
    periods = y * 2
    if r <= 0:
        return p / periods
    return _amortized(p, r / 2, periods)


def loan_payment(tranche: LoanTranche) -> LoanPayment:
    """Monthly installment on the non-bonus part, bonus on the rest."""
    bonus_principal = min(_amount(tranche.bonus_principal), _amount(tranche.principal))
    monthly_principal = _amount(tranche.principal) - bonus_principal
    return LoanPayment(
        name=tranche.name,
        monthly=monthly_payment(monthly_principal, tranche.annual_rate, tranche.years),
        bonus=bonus_payment(bonus_principal, tranche.annual_rate, tranche.years),
    )


def bridge_loan_interest(amount: Amount, annual_rate: Amount, months: Amount) -> Decimal:
    """Simple interest ``round(amount * rate * months / 12)``; 0 if any factor <= 0."""
    a, r, m = _amount(amount), _amount(annual_rate), _amount(months)
    if a <= 0 or r <= 0 or m <= 0:
        return _ZERO
    return _round(a * r * m / _TWELVE)


def solar_economics(solar: SolarInputs, horizon_months: int = 120) -> SolarEconomics:
    annual = _round(_amount(solar.capacity_kw) * _amount(solar.annual_yield_per_kw))
    daily = _round(annual / _DAYS_PER_YEAR, 2)
    daily_sale = max(
        _ZERO,
        daily - _amount(solar.daily_consumption) - _amount(solar.battery_charge),
    )
    monthly_sale = _round(daily_sale * _DAYS_PER_YEAR / _TWELVE, 2)
    income = _round(monthly_sale * _amount(solar.sale_tariff))
    monthly_effect = income + _amount(solar.saved_utility_cost)
    system_cost = _amount(solar.system_cost)
    return_rate = (
        _round(monthly_effect * _TWELVE / system_cost, 4) if system_cost > 0 else _ZERO
    )
    return SolarEconomics(
        annual_production=annual,
        daily_production=daily,
        daily_sale=daily_sale,
        monthly_sale=monthly_sale,
        monthly_sale_income=income,
        monthly_total_effect=monthly_effect,
        horizon_total_effect=monthly_effect * horizon_months,
        return_rate=return_rate,
    )


def housing_comparison(
    current_housing: CostTier,
    total_monthly_payment: Decimal,
    solar: SolarEconomics | None,
    solar_inputs: SolarInputs | None,
    base_utility_cost: Decimal,
) -> HousingComparison:
    """Current monthly housing spend against loan repayment plus utilities.

    The solar monthly effect offsets the base utility bill only when panels
    are actually planned (capacity > 0).
    """
    utility = base_utility_cost
    if solar is not None and solar_inputs is not None and _amount(solar_inputs.capacity_kw) > 0:
        utility = max(_ZERO, base_utility_cost - solar.monthly_total_effect)
    current = tier_total(current_housing)
    new_total = total_monthly_payment + utility
    return HousingComparison(
        current_monthly_total=current,
        effective_utility_cost=utility,
        new_monthly_total=new_total,
        monthly_difference=current - new_total,
    )


# =========================================================================
# Entry point
# =========================================================================


def _bridge_interest(tranche: BridgeLoanTranche) -> BridgeInterest:
    return BridgeInterest(
        name=tranche.name,
        interest=bridge_loan_interest(tranche.amount, tranche.annual_rate, tranche.months),
    )


@traced_engine(ENGINE_NAME, ENGINE_VERSION, fingerprint_fields=("cost_input", "settings"))
def compute_totals(
    cost_input: CostInput,
    settings: CalculationSettings | None = None,
) -> DerivedTotals:
    """Compute every derived figure of a fund plan."""
    settings = settings or CalculationSettings()

    building_base = _amount(cost_input.building_unit_price) * _amount(cost_input.building_area)
    tier_a = tier_total(cost_input.tier_a)
    tier_b = tier_total(cost_input.tier_b)
    tier_c = tier_total(cost_input.tier_c)
    misc = tier_total(cost_input.miscellaneous)
    land = tier_total(cost_input.land)

    construction = building_base + tier_a + tier_b + tier_c
    tax = _floor(construction * settings.tax_rate)
    construction_with_tax = construction + tax
    outside = land + misc
    grand_total = construction_with_tax + outside

    self_funding = tier_total(cost_input.self_funding)
    bank_loan_total = max(_ZERO, grand_total - self_funding)

    payments = tuple(loan_payment(t) for t in cost_input.loans)
    total_monthly = sum((p.monthly for p in payments), _ZERO)
    total_bonus = sum((p.bonus for p in payments), _ZERO)

    bridges = tuple(_bridge_interest(t) for t in cost_input.bridge_loans)
    bridge_total = sum((b.interest for b in bridges), _ZERO)

    solar = (
        solar_economics(cost_input.solar, settings.solar_horizon_months)
        if cost_input.solar is not None
        else None
    )
    housing = housing_comparison(
        cost_input.current_housing,
        total_monthly,
        solar,
        cost_input.solar,
        settings.base_utility_cost,
    )

    return DerivedTotals(
        subtotal_building_base=building_base,
        subtotal_tier_a=tier_a,
        subtotal_tier_b=tier_b,
        subtotal_tier_c=tier_c,
        subtotal_miscellaneous=misc,
        subtotal_land=land,
        construction_total=construction,
        tax=tax,
        construction_total_with_tax=construction_with_tax,
        outside_construction_total=outside,
        grand_total=grand_total,
        self_funding_total=self_funding,
        bank_loan_total=bank_loan_total,
        loan_payments=payments,
        total_monthly_payment=total_monthly,
        total_bonus_payment=total_bonus,
        bridge_interests=bridges,
        bridge_interest_total=bridge_total,
        solar=solar,
        housing=housing,
        difference_from_locked_total=grand_total - _amount(cost_input.locked_total_at_signing),
    )
