"""Input checks run before any network activity"""

import math

from finpulse_gateway.domain.exceptions import ValidationError
from finpulse_gateway.domain.models import FinancialData

# revenue and expenses first so their messages lead the error detail
MONETARY_FIELDS = (
    "revenue",
    "expenses",
    "accounts_receivable",
    "accounts_payable",
    "inventory",
    "loans",
    "cash_in_hand",
    "bank_balance",
    "existing_emi",
)

_LABELS = {
    "revenue": "Revenue",
    "expenses": "Expenses",
    "accounts_receivable": "Receivables",
    "accounts_payable": "Payables",
    "inventory": "Inventory",
    "loans": "Outstanding debt",
    "cash_in_hand": "Cash in hand",
    "bank_balance": "Bank balance",
    "existing_emi": "Existing EMI",
}


def validate_financial_data(data: FinancialData) -> FinancialData:
    """
    Reject negative or non-numeric monetary fields.

    Raises:
        ValidationError: With one message per offending field
    """
    errors = {}
    for name in MONETARY_FIELDS:
        value = getattr(data, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            errors[name] = f"{_LABELS[name]} must be a number"
        elif value < 0:
            errors[name] = f"{_LABELS[name]} cannot be negative"

    if errors:
        raise ValidationError(errors)
    return data
