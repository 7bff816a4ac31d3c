"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


class Industry(str, Enum):
    MANUFACTURING = "Manufacturing"
    RETAIL = "Retail"
    AGRICULTURE = "Agriculture"
    SERVICES = "Services"
    LOGISTICS = "Logistics"
    ECOMMERCE = "E-commerce"


class GstStatus(str, Enum):
    FILED = "Filed"
    PENDING = "Pending"
    OVERDUE = "Overdue"


class RiskRating(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TaxStatus(str, Enum):
    COMPLIANT = "Compliant"
    UNDERPAID = "Underpaid"
    OVERPAID = "Overpaid"


class Impact(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class BenchmarkStatus(str, Enum):
    ABOVE = "Above"
    BELOW = "Below"
    PAR = "Par"


class LoginStatus(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass(frozen=True)
class FinancialData:
    """Financial snapshot submitted by a business owner (amounts in INR)"""

    revenue: float  # monthly
    expenses: float
    accounts_receivable: float
    accounts_payable: float
    inventory: float
    loans: float  # total outstanding debt
    cash_in_hand: float
    industry: Industry
    gst_status: Optional[GstStatus] = None
    bank_balance: float = 0.0
    existing_emi: float = 0.0  # sum of current monthly EMIs


@dataclass(frozen=True)
class WorkingCapitalMetrics:
    """Liquidity block. Ratios are None when their denominator is zero"""

    working_capital: float
    current_ratio: Optional[float]
    debt_to_income: Optional[float]
    emi_burden: Optional[float]


@dataclass(frozen=True)
class LedgerSuggestion:
    category: str
    description: str
    suggested_account: str


@dataclass(frozen=True)
class TaxIntegrity:
    expected_tax: float
    actual_paid: float
    status: TaxStatus


@dataclass(frozen=True)
class Recommendation:
    title: str
    description: str
    impact: Impact


@dataclass(frozen=True)
class Benchmark:
    metric: str
    business_value: float
    industry_average: float
    status: BenchmarkStatus


@dataclass(frozen=True)
class ForecastPoint:
    """Short-term (monthly) projection"""

    month: str
    projected_revenue: float
    projected_expense: float
    projected_profit: float


@dataclass(frozen=True)
class YearlyForecastPoint:
    """Long-term (yearly) projection"""

    year: str
    revenue: float
    profit: float
    working_capital: Optional[float] = None


@dataclass(frozen=True)
class RevenueSlice:
    category: str
    amount: float
    percentage: float


@dataclass(frozen=True)
class FinancialProduct:
    provider: str
    product: str
    rate: str
    suitability: str


@dataclass(frozen=True)
class TenureOption:
    """Single repayment tenure for the eligible loan amount"""

    label: str  # e.g. "12 Months"
    months: int
    is_eligible: bool
    estimated_emi: float
    total_interest: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class LoanEligibility:
    eligible_amount: float
    interest_rate_range: str  # e.g. "12-16%"
    propensity_score: float  # 0-100
    growth_factor: float
    tenure_options: Tuple[TenureOption, ...]


@dataclass(frozen=True)
class AssessmentResult:
    """Output of one assessment run. Never mutated; corrections need a new run"""

    credit_score: int
    risk_rating: RiskRating
    compliance_score: float  # 0-100
    working_capital_status: str
    working_capital_metrics: WorkingCapitalMetrics
    bookkeeping_advice: Tuple[str, ...]
    suggested_ledger_entries: Tuple[LedgerSuggestion, ...]
    tax_compliance_notes: str
    tax_integrity: TaxIntegrity
    insights: Tuple[str, ...]
    recommendations: Tuple[Recommendation, ...]
    benchmarks: Tuple[Benchmark, ...]
    forecast: Tuple[ForecastPoint, ...]
    five_year_forecast: Tuple[YearlyForecastPoint, ...]
    revenue_breakdown: Tuple[RevenueSlice, ...]
    financial_products: Tuple[FinancialProduct, ...]
    loan_eligibility: LoanEligibility
    long_term_tips: Tuple[str, ...]


@dataclass(frozen=True)
class SavedReport:
    """Assessment paired with the input it was produced from"""

    id: str
    created_at: datetime
    data: FinancialData
    assessment: AssessmentResult


@dataclass(frozen=True)
class DailySalesEntry:
    date: date
    amount: float


@dataclass(frozen=True)
class LoginSession:
    created_at: datetime
    status: LoginStatus
    ip: Optional[str] = None


@dataclass(frozen=True)
class HistorySummary:
    """Trend context passed to the reasoning service"""

    previous_revenue: Optional[float]
    report_count: int
