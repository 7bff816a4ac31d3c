"""Pydantic schemas for API request/response validation"""

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from finpulse_gateway.domain.models import FinancialData, GstStatus, Industry, LoginStatus


class FinancialDataSchema(BaseModel):
    """Submitted financial snapshot; sign checks happen in the pipeline"""

    revenue: float = Field(..., description="Monthly revenue (INR)")
    expenses: float
    accounts_receivable: float
    accounts_payable: float
    inventory: float
    loans: float = Field(0, description="Total outstanding debt")
    cash_in_hand: float = 0
    industry: Industry
    gst_status: Optional[GstStatus] = None
    bank_balance: float = 0
    existing_emi: float = Field(0, description="Sum of current monthly EMIs")

    def to_domain(self) -> FinancialData:
        return FinancialData(**self.model_dump())


class AssessmentRequest(BaseModel):
    """Request body for POST /v1/assessments"""

    user_id: str = Field(..., min_length=1, description="User identifier")
    financial_data: FinancialDataSchema


class ReportResponse(BaseModel):
    """A saved report: input snapshot plus assessment, both in wire format"""

    report_id: str
    user_id: str
    created_at: str
    financial_data: Dict[str, Any]
    assessment: Dict[str, Any]


class HistoryItem(BaseModel):
    """Single report in history"""

    report_id: str
    created_at: str
    credit_score: int
    risk_rating: str
    revenue: float


class HistoryResponse(BaseModel):
    """Response for GET /v1/assessments/history"""

    user_id: str
    reports: List[HistoryItem]


class DashboardResponse(BaseModel):
    """Response for GET /v1/assessments/current"""

    user_id: str
    state: str
    error: Optional[str] = None
    progress: List[str]
    report_id: Optional[str] = None
    financial_data: Optional[Dict[str, Any]] = None
    assessment: Optional[Dict[str, Any]] = None
    derived: Optional[Dict[str, Any]] = None
    history_count: int
    month_sales_total: float
    all_time_sales_total: float


class SeedRequest(BaseModel):
    """Manual import: any subset of the financial fields"""

    user_id: str = Field(..., min_length=1)
    imported: Dict[str, Any] = Field(default_factory=dict)


class SeedResponse(BaseModel):
    user_id: str
    form: Dict[str, Any]


class SalesEntryRequest(BaseModel):
    """Request body for POST /v1/sales"""

    user_id: str = Field(..., min_length=1)
    date: dt.date
    amount: float = Field(..., ge=0, description="Sales for the day (INR)")


class SalesEntrySchema(BaseModel):
    date: dt.date
    amount: float


class SalesLedgerResponse(BaseModel):
    user_id: str
    entries: List[SalesEntrySchema]


class SalesSummaryResponse(BaseModel):
    """Response for GET /v1/sales/summary"""

    user_id: str
    year: int
    month: int
    month_total: float
    all_time_total: float
    months: Dict[str, float]  # YYYY-MM -> total, newest first


class LoginRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    status: LoginStatus = LoginStatus.SUCCESS
    ip: Optional[str] = None


class LoginSchema(BaseModel):
    created_at: str
    status: LoginStatus
    ip: Optional[str] = None


class LoginHistoryResponse(BaseModel):
    user_id: str
    sessions: List[LoginSchema]
