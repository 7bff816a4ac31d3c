"""Derived metrics engine - deterministic arithmetic owned locally.

Nothing here calls the reasoning service or reads the clock. Ratios whose
denominator is zero or negative come back as None and are rendered "N/A".
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from finpulse_gateway.domain.models import (
    AssessmentResult,
    FinancialData,
    TenureOption,
    WorkingCapitalMetrics,
)

DEFAULT_TENURES: Tuple[int, ...] = (12, 24, 36)
DEFAULT_EMI_CEILING_RATIO = 0.5
INDICATIVE_EMI_RATIO = 0.03  # share of the eligible amount quoted as a ballpark monthly EMI
WORKING_CAPITAL_TOLERANCE = 1.0

_RATE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


def _safe_divide(numerator: float, denominator: float) -> Optional[float]:
    if denominator <= 0:
        return None
    return numerator / denominator


def working_capital(data: FinancialData) -> float:
    """Receivables + inventory - payables"""
    return data.accounts_receivable + data.inventory - data.accounts_payable


def current_ratio(data: FinancialData) -> Optional[float]:
    return _safe_divide(data.accounts_receivable + data.inventory, data.accounts_payable)


def debt_to_income(data: FinancialData) -> Optional[float]:
    return _safe_divide(data.loans, data.revenue)


def emi_burden(total_emi: float, monthly_revenue: float) -> Optional[float]:
    """EMI outflow as a percentage of monthly revenue"""
    ratio = _safe_divide(total_emi, monthly_revenue)
    return None if ratio is None else ratio * 100


def compute_working_capital_metrics(data: FinancialData) -> WorkingCapitalMetrics:
    return WorkingCapitalMetrics(
        working_capital=working_capital(data),
        current_ratio=current_ratio(data),
        debt_to_income=debt_to_income(data),
        emi_burden=emi_burden(data.existing_emi, data.revenue),
    )


def monthly_emi(principal: float, annual_rate_pct: float, months: int) -> Optional[float]:
    """
    Reducing-balance annuity: EMI = P * r * (1+r)^n / ((1+r)^n - 1).

    r is the monthly rate (annual_rate_pct / 12 / 100) and n the tenure in
    months. A zero rate degenerates to straight-line repayment P / n.

    Returns None for non-positive tenure, negative principal or negative rate.
    """
    if months <= 0 or principal < 0 or annual_rate_pct < 0:
        return None

    r = annual_rate_pct / 12 / 100
    if r == 0:
        return principal / months

    growth = (1 + r) ** months
    return principal * r * growth / (growth - 1)


@dataclass(frozen=True)
class RateBandPolicy:
    """
    Resolves the annual rate used for EMI tables from an assessed rate band.

    The reasoning service only returns a band such as "12-16%". Which point of
    that band is used is a policy decision, versioned so stored tables can be
    traced back to the rule that produced them.
    """

    version: str = "rb-2024.1"
    point: str = "mid"  # low | mid | high
    fallback_annual_rate_pct: float = 14.0

    def parse_band(self, interest_rate_range: str) -> Optional[Tuple[float, float]]:
        numbers = [float(n) for n in _RATE_PATTERN.findall(interest_rate_range or "")]
        if not numbers:
            return None
        return min(numbers[:2]), max(numbers[:2])

    def annual_rate(self, interest_rate_range: str) -> float:
        band = self.parse_band(interest_rate_range)
        if band is None:
            return self.fallback_annual_rate_pct

        low, high = band
        if self.point == "low":
            return low
        if self.point == "high":
            return high
        return (low + high) / 2


def build_tenure_options(
    eligible_amount: float,
    monthly_revenue: float,
    annual_rate_pct: float,
    tenures: Iterable[int] = DEFAULT_TENURES,
    emi_ceiling_ratio: float = DEFAULT_EMI_CEILING_RATIO,
    existing_emi: float = 0.0,
) -> List[TenureOption]:
    """
    Amortize the eligible amount over each candidate tenure.

    A tenure is ineligible when the resulting EMI burden (existing EMIs plus
    the new EMI) exceeds emi_ceiling_ratio of monthly revenue, or when revenue
    is zero, since no EMI is then serviceable.
    """
    principal = max(eligible_amount, 0.0)
    existing = max(existing_emi, 0.0)
    ceiling = monthly_revenue * emi_ceiling_ratio
    options = []

    for months in tenures:
        emi = monthly_emi(principal, annual_rate_pct, months)
        if emi is None:
            continue

        total_interest = emi * months - principal
        reason = None
        if monthly_revenue <= 0:
            reason = "No monthly revenue to service an EMI"
        elif existing + emi > ceiling:
            burden = emi_burden(existing + emi, monthly_revenue)
            reason = (
                f"EMI burden of {burden:.1f}% (existing {existing:,.0f} + new {emi:,.0f}) "
                f"exceeds {emi_ceiling_ratio:.0%} of monthly revenue ({ceiling:,.0f})"
            )

        options.append(
            TenureOption(
                label=f"{months} Months",
                months=months,
                is_eligible=reason is None,
                estimated_emi=round(emi, 2),
                total_interest=round(total_interest, 2),
                reason=reason,
            )
        )

    return options


def daily_sales_target(eligible_amount: float) -> float:
    return eligible_amount / 365


def monthly_sales_target(eligible_amount: float) -> float:
    return eligible_amount / 12


def indicative_emi(eligible_amount: float) -> float:
    return eligible_amount * INDICATIVE_EMI_RATIO


def tenure_emi_reduction_pct(options: Sequence[TenureOption]) -> Optional[float]:
    """How much lower the longest tenure's EMI is than the shortest's, in percent"""
    if len(options) < 2:
        return None
    ordered = sorted(options, key=lambda o: o.months)
    shortest, longest = ordered[0].estimated_emi, ordered[-1].estimated_emi
    ratio = _safe_divide(shortest - longest, shortest)
    return None if ratio is None else ratio * 100


def reconcile_working_capital(result: AssessmentResult, data: FinancialData) -> float:
    """Difference between the reported and the locally computed working capital"""
    return result.working_capital_metrics.working_capital - working_capital(data)


def format_metric(value: Optional[float], digits: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{value:,.{digits}f}"


@dataclass(frozen=True)
class DerivedMetrics:
    """Figures computed at render time alongside a stored assessment"""

    working_capital: WorkingCapitalMetrics
    daily_sales_target: float
    monthly_sales_target: float
    indicative_emi: float
    annual_rate_pct: float
    rate_policy_version: str
    tenure_options: Tuple[TenureOption, ...]
    tenure_emi_reduction_pct: Optional[float]
    working_capital_discrepancy: float


def build_derived_view(
    result: AssessmentResult,
    data: FinancialData,
    policy: RateBandPolicy,
    tenures: Iterable[int] = DEFAULT_TENURES,
    emi_ceiling_ratio: float = DEFAULT_EMI_CEILING_RATIO,
) -> DerivedMetrics:
    """Bundle locally computed metrics for one stored assessment"""
    loan = result.loan_eligibility
    rate = policy.annual_rate(loan.interest_rate_range)
    options = build_tenure_options(
        loan.eligible_amount,
        data.revenue,
        rate,
        tenures=tenures,
        emi_ceiling_ratio=emi_ceiling_ratio,
        existing_emi=data.existing_emi,
    )

    return DerivedMetrics(
        working_capital=compute_working_capital_metrics(data),
        daily_sales_target=daily_sales_target(loan.eligible_amount),
        monthly_sales_target=monthly_sales_target(loan.eligible_amount),
        indicative_emi=indicative_emi(loan.eligible_amount),
        annual_rate_pct=rate,
        rate_policy_version=policy.version,
        tenure_options=tuple(options),
        tenure_emi_reduction_pct=tenure_emi_reduction_pct(options),
        working_capital_discrepancy=reconcile_working_capital(result, data),
    )
