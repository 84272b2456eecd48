"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import date
from typing import List, Optional

from cashflow_planner.domain.models import EntryType, Frequency, LifecycleState, SalesStatus, SourceType

ORM = ConfigDict(from_attributes=True)


# Contracts


class ContractCreate(BaseModel):
    """Request body for POST /v1/contracts"""

    kind: EntryType
    label: str = Field(..., min_length=1, description="Client name (income) or expense name")
    amount_cents: int = Field(..., gt=0, description="Amount per occurrence in cents")
    frequency: Frequency = Frequency.MONTHLY
    start_date: date
    end_date: Optional[date] = None
    expected_day: Optional[int] = Field(None, ge=1, le=31)
    center_id: Optional[int] = None
    priority: Optional[str] = None
    reliability: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


class ContractUpdate(BaseModel):
    """Request body for PATCH /v1/contracts/{id}; only sent fields change"""

    label: Optional[str] = Field(None, min_length=1)
    amount_cents: Optional[int] = Field(None, gt=0)
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    expected_day: Optional[int] = Field(None, ge=1, le=31)
    center_id: Optional[int] = None
    priority: Optional[str] = None
    reliability: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class TerminateRequest(BaseModel):
    termination_date: date


class ContractResponse(BaseModel):
    model_config = ORM

    id: int
    kind: EntryType
    label: str
    amount_cents: int
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    expected_day: Optional[int] = None
    center_id: Optional[int] = None
    priority: Optional[str] = None
    reliability: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    state: LifecycleState


class SyncSummary(BaseModel):
    created: int = 0
    deleted: int = 0
    patched: int = 0


class ContractWriteResponse(BaseModel):
    """Contract write plus forecast sync outcome; warnings are non-fatal sync failures"""

    contract: ContractResponse
    forecast: SyncSummary
    warnings: List[str] = []


class OccurrenceResponse(BaseModel):
    contract_id: int
    year: int
    months: List[int]
    annual_total_cents: int


# Forecast ledger


class ForecastEntryCreate(BaseModel):
    """Manual forecast entry"""

    date: date
    type: EntryType
    amount_cents: int = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    center_id: Optional[int] = None
    priority: Optional[str] = None
    reliability: Optional[str] = None
    notes: Optional[str] = None


class ForecastEntryUpdate(BaseModel):
    date: Optional[date] = None
    amount_cents: Optional[int] = Field(None, gt=0)
    description: Optional[str] = Field(None, min_length=1)
    notes: Optional[str] = None
    priority: Optional[str] = None
    reliability: Optional[str] = None


class ForecastEntryResponse(BaseModel):
    model_config = ORM

    id: int
    date: date
    type: EntryType
    amount_cents: int
    description: str
    source_type: Optional[SourceType] = None
    source_id: Optional[int] = None
    center_id: Optional[int] = None
    priority: Optional[str] = None
    reliability: Optional[str] = None
    notes: Optional[str] = None


class PromoteRequest(BaseModel):
    """Move an expense entry into a new plan, or append it to plan_id"""

    plan_id: Optional[int] = None
    creditor_name: Optional[str] = None
    installment_count: int = Field(1, gt=0)
    start_date: Optional[date] = None


# Payment plans


class PlanCreate(BaseModel):
    creditor_name: str = Field(..., min_length=1)
    total_cents: int = Field(..., gt=0)
    installment_count: int = Field(..., gt=0)
    installment_cents: Optional[int] = Field(None, gt=0, description="Fixed amount; last installment takes the rest")
    start_date: date
    notes: Optional[str] = None


class PlanUpdate(BaseModel):
    creditor_name: Optional[str] = Field(None, min_length=1)
    total_cents: Optional[int] = Field(None, gt=0)
    installment_count: Optional[int] = Field(None, gt=0)
    installment_cents: Optional[int] = Field(None, gt=0)
    start_date: Optional[date] = None
    notes: Optional[str] = None
    regenerate: bool = False
    full: bool = Field(False, description="Rebuild paid installments too and reset the paid count")


class InstallmentSchema(BaseModel):
    """Single installment in a payment plan"""

    model_config = ORM

    id: int
    sequence: int
    due_date: date
    amount_cents: int
    is_paid: bool
    paid_date: Optional[date] = None
    transaction_id: Optional[int] = None


class PlanResponse(BaseModel):
    model_config = ORM

    id: int
    creditor_name: str
    total_cents: int
    installment_cents: int
    installment_count: int
    paid_installment_count: int
    start_date: date
    notes: Optional[str] = None
    state: LifecycleState
    installments: List[InstallmentSchema]


class PayRequest(BaseModel):
    paid_date: Optional[date] = None
    transaction_id: Optional[int] = None


class RescheduleRequest(BaseModel):
    due_date: date


class PlanSummaryResponse(BaseModel):
    model_config = ORM

    plan_id: int
    total_cents: int
    paid_cents: int
    remaining_cents: int
    paid_installment_count: int
    installment_count: int
    next_due_date: Optional[date] = None
    next_due_cents: Optional[int] = None


# Sales


class SalesCreate(BaseModel):
    client_name: Optional[str] = None
    project_type: str = Field(..., min_length=1)
    total_cents: int = Field(..., gt=0)
    commission_rate: int = Field(20, ge=0, le=100)
    # website_50_50 | msd_30_70 | marketing_4_quarterly | immediate, anything else is paid at once
    payment_type: str = Field("immediate", min_length=1)
    month: int = Field(..., ge=1, le=12)
    year: int
    status: SalesStatus = SalesStatus.OBJECTIVE
    closed_date: Optional[date] = None
    notes: Optional[str] = None


class SalesUpdate(BaseModel):
    client_name: Optional[str] = None
    project_type: Optional[str] = Field(None, min_length=1)
    total_cents: Optional[int] = Field(None, gt=0)
    commission_rate: Optional[int] = Field(None, ge=0, le=100)
    payment_type: Optional[str] = Field(None, min_length=1)
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = None
    status: Optional[SalesStatus] = None
    closed_date: Optional[date] = None
    notes: Optional[str] = None


class SalesInstallmentSchema(BaseModel):
    model_config = ORM

    sequence: int
    due_date: date
    amount_cents: int
    is_paid: bool


class SalesResponse(BaseModel):
    model_config = ORM

    id: int
    client_name: Optional[str] = None
    project_type: str
    total_cents: int
    commission_rate: int
    payment_type: str
    month: int
    year: int
    status: SalesStatus
    closed_date: Optional[date] = None
    notes: Optional[str] = None
    installments: List[SalesInstallmentSchema] = []


class SalesBreakdownResponse(BaseModel):
    model_config = ORM

    gross_cents: int
    net_cents: int
    commission_cents: int
    post_commission_cents: int
    tax_cents: int
    partners_cents: int
    available_cents: int


# Transactions and splits


class TransactionCreate(BaseModel):
    date: date
    amount_cents: int = Field(..., description="Positive for inflows, negative for outflows")
    description: str = ""
    external_id: Optional[str] = None
    center_id: Optional[int] = None


class TransactionResponse(BaseModel):
    model_config = ORM

    id: int
    external_id: Optional[str] = None
    date: date
    description: Optional[str] = None
    amount_cents: int
    is_split: bool
    is_transfer: bool
    linked_transaction_id: Optional[int] = None
    notes: Optional[str] = None
    center_id: Optional[int] = None


class ImportRequest(BaseModel):
    start_date: date
    end_date: date


class ImportResponse(BaseModel):
    created: int
    skipped: int


class SplitResponse(BaseModel):
    model_config = ORM

    id: int
    transaction_id: int
    transfer_transaction_id: Optional[int] = None
    gross_cents: int
    net_cents: int
    share_a_cents: int
    share_b_cents: int
    share_c_cents: int
    tax_cents: int


# Liquidity


class LiquidityPointSchema(BaseModel):
    model_config = ORM

    month: int
    expected_inflow_cents: int
    expected_outflow_cents: int
    actual_inflow_cents: int
    actual_outflow_cents: int
    margin_cents: int
    running_balance_cents: int
    projected_balance_cents: int


class LiquidityResponse(BaseModel):
    year: int
    current_month: int
    opening_balance_cents: int
    closing_balance_cents: int
    total_margin_cents: int
    phase: str
    points: List[LiquidityPointSchema]


class CashflowResponse(BaseModel):
    as_of: date
    balance_cents: int
    upcoming_expenses_cents: int
    difficulty_date: Optional[date] = None
    days_until_difficulty: Optional[int] = None
    closing_balance_cents: int
    required_revenue_cents: int


class LiquiditySettings(BaseModel):
    opening_balance_cents: Optional[int] = None
    defense_threshold_cents: Optional[int] = None
    attack_threshold_cents: Optional[int] = None
    growth_threshold_cents: Optional[int] = None


# Centers


class CenterSummarySchema(BaseModel):
    model_config = ORM

    center_id: int
    expected_cents: int
    actual_cents: int
    remaining_cents: int
    percent_complete: int
    monthly_actual_cents: List[int]
    contract_count: int
    transaction_count: int
    first_movement: Optional[date] = None
    last_movement: Optional[date] = None


class CenterReportResponse(BaseModel):
    year: int
    kind: EntryType
    centers: List[CenterSummarySchema]
    monthly_totals_cents: List[int]
    expected_cents: int
    actual_cents: int
    variance_cents: int
