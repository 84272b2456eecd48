"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional


class Frequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    ONE_TIME = "one_time"


class EntryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class SourceType(str, Enum):
    """Back-reference kind for forecast entries generated from a contract"""

    EXPECTED_INCOME = "expected_income"
    EXPECTED_EXPENSE = "expected_expense"


class LifecycleState(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"
    DELETED = "deleted"


class Phase(str, Enum):
    DEFENSE = "defense"
    ATTACK = "attack"
    GROWTH = "growth"


class SalesStatus(str, Enum):
    OBJECTIVE = "objective"
    OPPORTUNITY = "opportunity"
    WON = "won"
    LOST = "lost"


# Default expected day of month when a contract does not set one
DEFAULT_EXPENSE_DAY = 1
DEFAULT_INCOME_DAY = 20


@dataclass
class RecurringContract:
    """Expected income or expense that recurs on a calendar schedule"""

    kind: EntryType
    label: str  # client name for incomes, expense name for expenses
    amount_cents: int
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None  # inclusive, None = open-ended
    expected_day: Optional[int] = None
    center_id: Optional[int] = None  # cost center (expense) or revenue center (income)
    priority: Optional[str] = None  # expenses: essential | important | investment | normal
    reliability: Optional[str] = None  # incomes: high | medium | low
    notes: Optional[str] = None
    is_active: bool = True
    state: LifecycleState = LifecycleState.ACTIVE
    id: Optional[int] = None

    @property
    def source_type(self) -> SourceType:
        if self.kind == EntryType.INCOME:
            return SourceType.EXPECTED_INCOME
        return SourceType.EXPECTED_EXPENSE

    @property
    def day_of_month(self) -> int:
        if self.expected_day:
            return self.expected_day
        return DEFAULT_INCOME_DAY if self.kind == EntryType.INCOME else DEFAULT_EXPENSE_DAY


@dataclass
class ForecastEntry:
    """One projected cash event; generated from a contract or added by hand"""

    date: date
    type: EntryType
    amount_cents: int  # magnitude, direction comes from type
    description: str
    source_type: Optional[SourceType] = None
    source_id: Optional[int] = None
    center_id: Optional[int] = None
    priority: Optional[str] = None
    reliability: Optional[str] = None
    notes: Optional[str] = None
    state: LifecycleState = LifecycleState.ACTIVE
    id: Optional[int] = None

    @property
    def is_manual(self) -> bool:
        return self.source_id is None

    @property
    def signed_amount_cents(self) -> int:
        return self.amount_cents if self.type == EntryType.INCOME else -self.amount_cents


@dataclass
class Installment:
    """Single payment in a repayment plan"""

    due_date: date
    amount_cents: int
    sequence: int = 1


@dataclass
class Transaction:
    """Actual bank movement; positive = inflow, negative = outflow"""

    date: date
    amount_cents: int
    description: str = ""
    external_id: Optional[str] = None
    is_transfer: bool = False
    center_id: Optional[int] = None


@dataclass
class IncomeSplit:
    """Fixed-ratio decomposition of a tax-inclusive receipt"""

    gross_cents: int
    net_cents: int
    share_a_cents: int  # 10% of net
    share_b_cents: int  # 20% of net
    share_c_cents: int  # 70% of net, stays with the business
    tax_cents: int  # 22% of net

    @property
    def transfer_cents(self) -> int:
        """Amount moved out of the business account: partner shares plus tax reserve"""
        return self.share_a_cents + self.share_b_cents + self.tax_cents


@dataclass
class SalesBreakdown:
    """Sale value split into tax, commission, partner and available parts"""

    gross_cents: int
    net_cents: int
    commission_cents: int
    post_commission_cents: int
    tax_cents: int
    partners_cents: int
    available_cents: int


@dataclass
class LiquidityPoint:
    """Month of the liquidity curve"""

    month: int
    expected_inflow_cents: int
    expected_outflow_cents: int  # negative
    actual_inflow_cents: int
    actual_outflow_cents: int  # negative
    margin_cents: int
    running_balance_cents: int
    projected_balance_cents: int


@dataclass
class PhaseThresholds:
    defense_cents: int = 0
    attack_cents: int = 500_000
    growth_cents: int = 700_000


@dataclass
class LiquidityProjection:
    """Output of the yearly liquidity projection"""

    year: int
    opening_balance_cents: int
    current_month: int
    phase: Phase
    points: List[LiquidityPoint] = field(default_factory=list)

    @property
    def closing_balance_cents(self) -> int:
        return self.points[-1].running_balance_cents if self.points else self.opening_balance_cents

    @property
    def total_margin_cents(self) -> int:
        return sum(p.margin_cents for p in self.points)


@dataclass
class CashEvent:
    """Upcoming dated cash movement used by the difficulty-day walk"""

    date: date
    amount_cents: int  # signed
    reliability: Optional[str] = None


@dataclass
class DifficultyForecast:
    days_until: Optional[int]
    date: Optional[date]
    closing_balance_cents: int


@dataclass
class CenterSummary:
    """Expected vs. actual cash for one revenue or cost center over a year"""

    center_id: int
    kind: EntryType
    expected_cents: int
    actual_cents: int  # magnitude: collected for income, spent for expense
    monthly_actual_cents: List[int]  # index 0 = January
    contract_count: int
    transaction_count: int
    percent_complete: int = 0
    first_movement: Optional[date] = None
    last_movement: Optional[date] = None

    @property
    def remaining_cents(self) -> int:
        return self.expected_cents - self.actual_cents
