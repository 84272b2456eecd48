"""Installment schedule generation for payment plans and won sales"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from cashflow_planner.domain.exceptions import ValidationError
from cashflow_planner.domain.models import Installment
from cashflow_planner.utils.money import apply_ratio, divide

MONTHLY = relativedelta(months=1)


def generate_installment_plan(
    total_cents: int,
    num_installments: int,
    start_date: date,
    cadence: relativedelta = MONTHLY,
    installment_cents: Optional[int] = None,
    first_sequence: int = 1,
) -> List[Installment]:
    """
    Split a total into a fixed number of installments.

    Requirements:
    - Installment i (0-indexed) is due on start_date + i * cadence
    - Every installment but the last is round(total / count), or the explicit
      installment amount when one is given
    - Last installment is total - sum(previous), so the schedule always sums
      to the total exactly

    Example:
        100003 cents / 3 -> [33334, 33334, 33335]
    """
    if total_cents <= 0:
        raise ValidationError("Total amount must be positive")
    if num_installments <= 0:
        raise ValidationError("Installment count must be at least 1")

    base_amount = installment_cents if installment_cents is not None else divide(total_cents, num_installments)
    if base_amount <= 0:
        raise ValidationError("Installment amount must be positive")

    last_amount = total_cents - base_amount * (num_installments - 1)
    if last_amount <= 0:
        raise ValidationError(
            f"Installment amount {base_amount} x {num_installments - 1} exceeds total {total_cents}"
        )

    installments = []
    for i in range(num_installments):
        due_date = start_date + cadence * i
        amount = last_amount if i == num_installments - 1 else base_amount
        installments.append(Installment(due_date=due_date, amount_cents=amount, sequence=first_sequence + i))

    return installments


# Payment type -> (share of total, offset from closing date) per installment
SALES_PAYMENT_TEMPLATES: Dict[str, Tuple[Tuple[Decimal, relativedelta], ...]] = {
    "website_50_50": (
        (Decimal("0.50"), relativedelta()),
        (Decimal("0.50"), relativedelta(days=60)),
    ),
    "msd_30_70": (
        (Decimal("0.30"), relativedelta()),
        (Decimal("0.70"), relativedelta(days=21)),
    ),
    "marketing_4_quarterly": tuple(
        (Decimal("0.25"), relativedelta(months=3 * i)) for i in range(4)
    ),
    "immediate": ((Decimal("1"), relativedelta()),),
}

# Payment type names used by earlier data imports
PAYMENT_TYPE_ALIASES = {
    "sito_web_50_50": "website_50_50",
    "marketing_4_trim": "marketing_4_quarterly",
    "immediato": "immediate",
}


def sales_template(payment_type: str) -> Tuple[Tuple[Decimal, relativedelta], ...]:
    """Template for a payment type; unknown types (e.g. "custom") are one lump sum"""
    name = PAYMENT_TYPE_ALIASES.get(payment_type, payment_type)
    return SALES_PAYMENT_TEMPLATES.get(name, SALES_PAYMENT_TEMPLATES["immediate"])


def generate_sales_installments(total_cents: int, payment_type: str, closing_date: date) -> List[Installment]:
    """
    Installments for a won sale according to its payment type.

    Unknown payment types produce a single lump sum due on the closing date.
    The last installment absorbs rounding so the schedule sums to the total.
    """
    if total_cents <= 0:
        raise ValidationError("Sale amount must be positive")

    template = sales_template(payment_type)

    installments = []
    allocated = 0
    for i, (share, offset) in enumerate(template):
        if i == len(template) - 1:
            amount = total_cents - allocated
        else:
            amount = apply_ratio(total_cents, share)
        allocated += amount
        installments.append(Installment(due_date=closing_date + offset, amount_cents=amount, sequence=i + 1))

    return installments
