"""Wire contract for the reasoning service.

Converts between the camelCase JSON exchanged with the reasoning service (and
stored by the SQL history backend) and the frozen domain dataclasses.

Every field listed in the assessment contract is required. A missing key, a
value of the wrong type or an unknown enum member raises ContractError: a
partial result is never accepted.
"""

import math
from enum import Enum
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from finpulse_gateway.domain.exceptions import ContractError
from finpulse_gateway.domain.metrics import DerivedMetrics
from finpulse_gateway.domain.models import (
    AssessmentResult,
    Benchmark,
    BenchmarkStatus,
    FinancialData,
    FinancialProduct,
    ForecastPoint,
    GstStatus,
    HistorySummary,
    Impact,
    Industry,
    LedgerSuggestion,
    LoanEligibility,
    Recommendation,
    RevenueSlice,
    RiskRating,
    TaxIntegrity,
    TaxStatus,
    TenureOption,
    WorkingCapitalMetrics,
    YearlyForecastPoint,
)

E = TypeVar("E", bound=Enum)
T = TypeVar("T")


# ---------- Field readers ----------

def _require(payload: Dict[str, Any], key: str, path: str) -> Any:
    if not isinstance(payload, dict):
        raise ContractError(f"{path or 'payload'} must be an object")
    if key not in payload or payload[key] is None:
        raise ContractError(f"Missing required field: {path}{key}")
    return payload[key]


def _number(payload: Dict[str, Any], key: str, path: str = "") -> float:
    value = _require(payload, key, path)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ContractError(f"Field {path}{key} must be a finite number, got {value!r}")
    return float(value)


def _optional_number(payload: Dict[str, Any], key: str, path: str = "") -> Optional[float]:
    if payload.get(key) is None:
        return None
    return _number(payload, key, path)


def _bounded(payload: Dict[str, Any], key: str, low: float, high: float, path: str = "") -> float:
    value = _number(payload, key, path)
    if not low <= value <= high:
        raise ContractError(f"Field {path}{key} must be within [{low}, {high}], got {value}")
    return value


def _text(payload: Dict[str, Any], key: str, path: str = "") -> str:
    value = _require(payload, key, path)
    if not isinstance(value, str):
        raise ContractError(f"Field {path}{key} must be a string, got {value!r}")
    return value


def _enum(enum_cls: Type[E], payload: Dict[str, Any], key: str, path: str = "") -> E:
    value = _text(payload, key, path)
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ContractError(f"Field {path}{key} must be one of [{allowed}], got {value!r}") from e


def _items(
    payload: Dict[str, Any],
    key: str,
    parse: Callable[[Dict[str, Any], str], T],
    path: str = "",
) -> tuple:
    value = _require(payload, key, path)
    if not isinstance(value, list):
        raise ContractError(f"Field {path}{key} must be a list")
    return tuple(parse(item, f"{path}{key}[{i}].") for i, item in enumerate(value))


def _strings(payload: Dict[str, Any], key: str, path: str = "") -> tuple:
    value = _require(payload, key, path)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ContractError(f"Field {path}{key} must be a list of strings")
    return tuple(value)


def _object(payload: Dict[str, Any], key: str, path: str = "") -> Dict[str, Any]:
    value = _require(payload, key, path)
    if not isinstance(value, dict):
        raise ContractError(f"Field {path}{key} must be an object")
    return value


# ---------- Assessment parsing ----------

def _ledger_entry(item: Dict[str, Any], path: str) -> LedgerSuggestion:
    return LedgerSuggestion(
        category=_text(item, "category", path),
        description=_text(item, "description", path),
        suggested_account=_text(item, "suggestedAccount", path),
    )


def _recommendation(item: Dict[str, Any], path: str) -> Recommendation:
    return Recommendation(
        title=_text(item, "title", path),
        description=_text(item, "description", path),
        impact=_enum(Impact, item, "impact", path),
    )


def _benchmark(item: Dict[str, Any], path: str) -> Benchmark:
    return Benchmark(
        metric=_text(item, "metric", path),
        business_value=_number(item, "businessValue", path),
        industry_average=_number(item, "industryAverage", path),
        status=_enum(BenchmarkStatus, item, "status", path),
    )


def _forecast_point(item: Dict[str, Any], path: str) -> ForecastPoint:
    return ForecastPoint(
        month=_text(item, "month", path),
        projected_revenue=_number(item, "projectedRevenue", path),
        projected_expense=_number(item, "projectedExpense", path),
        projected_profit=_number(item, "projectedProfit", path),
    )


def _yearly_point(item: Dict[str, Any], path: str) -> YearlyForecastPoint:
    return YearlyForecastPoint(
        year=_text(item, "year", path),
        revenue=_number(item, "revenue", path),
        profit=_number(item, "profit", path),
        working_capital=_optional_number(item, "workingCapital", path),
    )


def _revenue_slice(item: Dict[str, Any], path: str) -> RevenueSlice:
    return RevenueSlice(
        category=_text(item, "category", path),
        amount=_number(item, "amount", path),
        percentage=_number(item, "percentage", path),
    )


def _product(item: Dict[str, Any], path: str) -> FinancialProduct:
    return FinancialProduct(
        provider=_text(item, "provider", path),
        product=_text(item, "product", path),
        rate=_text(item, "rate", path),
        suitability=_text(item, "suitability", path),
    )


def _tenure(item: Dict[str, Any], path: str) -> TenureOption:
    eligible = _require(item, "isEligible", path)
    if not isinstance(eligible, bool):
        raise ContractError(f"Field {path}isEligible must be a boolean")
    months = _number(item, "months", path)
    if months <= 0 or months != int(months):
        raise ContractError(f"Field {path}months must be a positive whole number")
    reason = item.get("reason")
    if reason is not None and not isinstance(reason, str):
        raise ContractError(f"Field {path}reason must be a string")
    return TenureOption(
        label=_text(item, "label", path),
        months=int(months),
        is_eligible=eligible,
        estimated_emi=_number(item, "estimatedEmi", path),
        total_interest=_number(item, "totalInterest", path),
        reason=reason,
    )


def _metrics_block(block: Dict[str, Any]) -> WorkingCapitalMetrics:
    path = "workingCapitalMetrics."
    for key in ("workingCapital", "currentRatio", "debtToIncome", "emiBurden"):
        if key not in block:
            raise ContractError(f"Missing required field: {path}{key}")
    return WorkingCapitalMetrics(
        working_capital=_number(block, "workingCapital", path),
        current_ratio=_optional_number(block, "currentRatio", path),
        debt_to_income=_optional_number(block, "debtToIncome", path),
        emi_burden=_optional_number(block, "emiBurden", path),
    )


def parse_assessment(payload: Dict[str, Any]) -> AssessmentResult:
    """
    Build an AssessmentResult from the reasoning service JSON.

    Raises:
        ContractError: On any missing or malformed required field
    """
    if not isinstance(payload, dict):
        raise ContractError("Assessment payload must be a JSON object")

    credit_score = _number(payload, "creditScore")
    tax = _object(payload, "taxIntegrity")
    loan = _object(payload, "loanEligibility")

    return AssessmentResult(
        credit_score=int(round(credit_score)),
        risk_rating=_enum(RiskRating, payload, "riskRating"),
        compliance_score=_bounded(payload, "complianceScore", 0, 100),
        working_capital_status=_text(payload, "workingCapitalStatus"),
        working_capital_metrics=_metrics_block(_object(payload, "workingCapitalMetrics")),
        bookkeeping_advice=_strings(payload, "bookkeepingAdvice"),
        suggested_ledger_entries=_items(payload, "suggestedLedgerEntries", _ledger_entry),
        tax_compliance_notes=_text(payload, "taxComplianceNotes"),
        tax_integrity=TaxIntegrity(
            expected_tax=_number(tax, "expectedTax", "taxIntegrity."),
            actual_paid=_number(tax, "actualPaid", "taxIntegrity."),
            status=_enum(TaxStatus, tax, "status", "taxIntegrity."),
        ),
        insights=_strings(payload, "insights"),
        recommendations=_items(payload, "recommendations", _recommendation),
        benchmarks=_items(payload, "benchmarks", _benchmark),
        forecast=_items(payload, "forecast", _forecast_point),
        five_year_forecast=_items(payload, "fiveYearForecast", _yearly_point),
        revenue_breakdown=_items(payload, "revenueBreakdown", _revenue_slice),
        financial_products=_items(payload, "financialProducts", _product),
        loan_eligibility=LoanEligibility(
            eligible_amount=_number(loan, "eligibleAmount", "loanEligibility."),
            interest_rate_range=_text(loan, "interestRateRange", "loanEligibility."),
            propensity_score=_bounded(loan, "propensityScore", 0, 100, "loanEligibility."),
            growth_factor=_number(loan, "growthFactor", "loanEligibility."),
            tenure_options=_items(loan, "tenureOptions", _tenure, "loanEligibility."),
        ),
        long_term_tips=_strings(payload, "longTermTips"),
    )


# ---------- Serialization ----------

def tenure_to_payload(option: TenureOption) -> Dict[str, Any]:
    payload = {
        "label": option.label,
        "months": option.months,
        "isEligible": option.is_eligible,
        "estimatedEmi": option.estimated_emi,
        "totalInterest": option.total_interest,
    }
    if option.reason is not None:
        payload["reason"] = option.reason
    return payload


def metrics_to_payload(metrics: WorkingCapitalMetrics) -> Dict[str, Any]:
    return {
        "workingCapital": metrics.working_capital,
        "currentRatio": metrics.current_ratio,
        "debtToIncome": metrics.debt_to_income,
        "emiBurden": metrics.emi_burden,
    }


def assessment_to_payload(result: AssessmentResult) -> Dict[str, Any]:
    """Inverse of parse_assessment; output parses back to an equal result"""
    loan = result.loan_eligibility
    return {
        "creditScore": result.credit_score,
        "riskRating": result.risk_rating.value,
        "complianceScore": result.compliance_score,
        "workingCapitalStatus": result.working_capital_status,
        "workingCapitalMetrics": metrics_to_payload(result.working_capital_metrics),
        "bookkeepingAdvice": list(result.bookkeeping_advice),
        "suggestedLedgerEntries": [
            {"category": e.category, "description": e.description, "suggestedAccount": e.suggested_account}
            for e in result.suggested_ledger_entries
        ],
        "taxComplianceNotes": result.tax_compliance_notes,
        "taxIntegrity": {
            "expectedTax": result.tax_integrity.expected_tax,
            "actualPaid": result.tax_integrity.actual_paid,
            "status": result.tax_integrity.status.value,
        },
        "insights": list(result.insights),
        "recommendations": [
            {"title": r.title, "description": r.description, "impact": r.impact.value}
            for r in result.recommendations
        ],
        "benchmarks": [
            {
                "metric": b.metric,
                "businessValue": b.business_value,
                "industryAverage": b.industry_average,
                "status": b.status.value,
            }
            for b in result.benchmarks
        ],
        "forecast": [
            {
                "month": f.month,
                "projectedRevenue": f.projected_revenue,
                "projectedExpense": f.projected_expense,
                "projectedProfit": f.projected_profit,
            }
            for f in result.forecast
        ],
        "fiveYearForecast": [
            {"year": y.year, "revenue": y.revenue, "profit": y.profit, "workingCapital": y.working_capital}
            for y in result.five_year_forecast
        ],
        "revenueBreakdown": [
            {"category": s.category, "amount": s.amount, "percentage": s.percentage}
            for s in result.revenue_breakdown
        ],
        "financialProducts": [
            {"provider": p.provider, "product": p.product, "rate": p.rate, "suitability": p.suitability}
            for p in result.financial_products
        ],
        "loanEligibility": {
            "eligibleAmount": loan.eligible_amount,
            "interestRateRange": loan.interest_rate_range,
            "propensityScore": loan.propensity_score,
            "growthFactor": loan.growth_factor,
            "tenureOptions": [tenure_to_payload(t) for t in loan.tenure_options],
        },
        "longTermTips": list(result.long_term_tips),
    }


def financial_data_to_payload(data: FinancialData) -> Dict[str, Any]:
    return {
        "revenue": data.revenue,
        "expenses": data.expenses,
        "accountsReceivable": data.accounts_receivable,
        "accountsPayable": data.accounts_payable,
        "inventory": data.inventory,
        "loans": data.loans,
        "cashInHand": data.cash_in_hand,
        "industry": data.industry.value,
        "gstStatus": data.gst_status.value if data.gst_status else None,
        "bankBalance": data.bank_balance,
        "existingEmi": data.existing_emi,
    }


def financial_data_from_payload(payload: Dict[str, Any]) -> FinancialData:
    """Rebuild a stored FinancialData snapshot"""
    gst = payload.get("gstStatus")
    return FinancialData(
        revenue=_number(payload, "revenue"),
        expenses=_number(payload, "expenses"),
        accounts_receivable=_number(payload, "accountsReceivable"),
        accounts_payable=_number(payload, "accountsPayable"),
        inventory=_number(payload, "inventory"),
        loans=_number(payload, "loans"),
        cash_in_hand=_number(payload, "cashInHand"),
        industry=_enum(Industry, payload, "industry"),
        gst_status=GstStatus(gst) if gst else None,
        bank_balance=_optional_number(payload, "bankBalance") or 0.0,
        existing_emi=_optional_number(payload, "existingEmi") or 0.0,
    )


def history_summary_to_payload(summary: HistorySummary) -> Dict[str, Any]:
    return {"previousRevenue": summary.previous_revenue, "reportCount": summary.report_count}


def derived_to_payload(derived: DerivedMetrics) -> Dict[str, Any]:
    return {
        "workingCapitalMetrics": metrics_to_payload(derived.working_capital),
        "dailySalesTarget": derived.daily_sales_target,
        "monthlySalesTarget": derived.monthly_sales_target,
        "indicativeEmi": derived.indicative_emi,
        "annualRatePct": derived.annual_rate_pct,
        "ratePolicyVersion": derived.rate_policy_version,
        "tenureOptions": [tenure_to_payload(t) for t in derived.tenure_options],
        "tenureEmiReductionPct": derived.tenure_emi_reduction_pct,
        "workingCapitalDiscrepancy": derived.working_capital_discrepancy,
    }
