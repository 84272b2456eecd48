"""Proportional split of tax-inclusive receipts and sales"""

from decimal import Decimal

from cashflow_planner.domain.exceptions import ValidationError
from cashflow_planner.domain.models import IncomeSplit, SalesBreakdown
from cashflow_planner.utils.money import apply_ratio, divide

TAX_DIVISOR = Decimal("1.22")  # price includes 22% VAT
TAX_RATE = Decimal("0.22")

SHARE_A_RATE = Decimal("0.10")
SHARE_B_RATE = Decimal("0.20")
SHARE_C_RATE = Decimal("0.70")

PARTNERS_RATE = Decimal("0.30")  # of the post-commission amount

# Max absolute rounding error between the shares and the amount they split
ROUNDING_TOLERANCE_CENTS = 1


def net_of_tax(gross_cents: int) -> int:
    """Taxable base of a tax-inclusive amount: round(gross / 1.22)"""
    return divide(gross_cents, TAX_DIVISOR)


def calculate_income_split(gross_cents: int) -> IncomeSplit:
    """
    Split a gross receipt into three beneficiary shares and the tax reserve.

    Each share is computed independently from the net and rounded on its own,
    so the shares may differ from the net by at most one minor unit. That
    difference is not redistributed.

    Example:
        122000 -> net 100000 -> 10000 / 20000 / 70000, tax 22000
    """
    if gross_cents <= 0:
        raise ValidationError("Only positive receipts can be split")

    net = net_of_tax(gross_cents)
    return IncomeSplit(
        gross_cents=gross_cents,
        net_cents=net,
        share_a_cents=apply_ratio(net, SHARE_A_RATE),
        share_b_cents=apply_ratio(net, SHARE_B_RATE),
        share_c_cents=apply_ratio(net, SHARE_C_RATE),
        tax_cents=apply_ratio(net, TAX_RATE),
    )


def verify_split(split: IncomeSplit) -> bool:
    """True when the beneficiary shares account for the net within tolerance"""
    shares = split.share_a_cents + split.share_b_cents + split.share_c_cents
    return abs(shares - split.net_cents) <= ROUNDING_TOLERANCE_CENTS


def calculate_sales_breakdown(gross_cents: int, commission_rate: int = 0) -> SalesBreakdown:
    """
    Break a sale down after tax and sales commission.

    commission_rate is a whole percentage of the net. Partners take 30% of
    what is left after commission; the remainder is available to the business.
    """
    if gross_cents <= 0:
        raise ValidationError("Sale amount must be positive")
    if not 0 <= commission_rate <= 100:
        raise ValidationError("Commission rate must be between 0 and 100")

    net = net_of_tax(gross_cents)
    commission = apply_ratio(net, Decimal(commission_rate) / 100)
    post_commission = net - commission
    partners = apply_ratio(post_commission, PARTNERS_RATE)

    return SalesBreakdown(
        gross_cents=gross_cents,
        net_cents=net,
        commission_cents=commission,
        post_commission_cents=post_commission,
        tax_cents=apply_ratio(net, TAX_RATE),
        partners_cents=partners,
        available_cents=post_commission - partners,
    )
