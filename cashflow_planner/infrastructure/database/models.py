"""SQLAlchemy ORM models"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func, text

Base = declarative_base()


class RecurringContractRow(Base):
    """Expected income or expense driving forecast generation"""

    __tablename__ = "recurring_contract"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(Text, nullable=False, index=True)  # income | expense
    label = Column(Text, nullable=False)
    center_id = Column(Integer, nullable=True, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    frequency = Column(Text, nullable=False, default="monthly")
    expected_day = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    priority = Column(Text, nullable=True)
    reliability = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    state = Column(Text, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class ForecastEntryRow(Base):
    """Forecast ledger line, generated from a contract or added manually"""

    __tablename__ = "forecast_entry"
    __table_args__ = (
        # One live entry per contract occurrence; manual entries have no source and never collide
        Index(
            "uq_forecast_entry_live_source_date",
            "source_type",
            "source_id",
            "date",
            unique=True,
            sqlite_where=text("state != 'deleted'"),
            postgresql_where=text("state != 'deleted'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, index=True)
    type = Column(Text, nullable=False)  # income | expense
    amount_cents = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False)
    source_type = Column(Text, nullable=True)
    source_id = Column(Integer, nullable=True)
    center_id = Column(Integer, nullable=True)
    priority = Column(Text, nullable=True)
    reliability = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    state = Column(Text, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class PaymentPlanRow(Base):
    """Fixed-total debt paid off across a known number of installments"""

    __tablename__ = "payment_plan"

    id = Column(Integer, primary_key=True, autoincrement=True)
    creditor_name = Column(Text, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    installment_cents = Column(BigInteger, nullable=False)
    installment_count = Column(Integer, nullable=False)
    paid_installment_count = Column(Integer, nullable=False, default=0)
    start_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    state = Column(Text, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    installments = relationship(
        "PaymentPlanInstallmentRow",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PaymentPlanInstallmentRow.sequence",
    )

    @property
    def is_active(self) -> bool:
        return self.state == "active"


class PaymentPlanInstallmentRow(Base):
    """Individual installment within a payment plan"""

    __tablename__ = "payment_plan_installment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(Integer, ForeignKey("payment_plan.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    paid_date = Column(Date, nullable=True)
    transaction_id = Column(Integer, ForeignKey("bank_transaction.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    plan = relationship("PaymentPlanRow", back_populates="installments")


class SalesOpportunityRow(Base):
    """Sales pipeline item; generates installments once won"""

    __tablename__ = "sales_opportunity"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_name = Column(Text, nullable=True)
    project_type = Column(Text, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    commission_rate = Column(Integer, nullable=False, default=20)
    payment_type = Column(Text, nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default="objective")
    closed_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    installments = relationship(
        "SalesInstallmentRow",
        back_populates="opportunity",
        cascade="all, delete-orphan",
        order_by="SalesInstallmentRow.sequence",
    )


class SalesInstallmentRow(Base):
    __tablename__ = "sales_installment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    opportunity_id = Column(Integer, ForeignKey("sales_opportunity.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)

    opportunity = relationship("SalesOpportunityRow", back_populates="installments")


class TransactionRow(Base):
    """Actual bank movement; positive = inflow, negative = outflow"""

    __tablename__ = "bank_transaction"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(Text, nullable=True, unique=True)
    date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    amount_cents = Column(BigInteger, nullable=False)
    is_split = Column(Boolean, nullable=False, default=False)
    is_transfer = Column(Boolean, nullable=False, default=False)
    linked_transaction_id = Column(Integer, nullable=True)
    center_id = Column(Integer, nullable=True, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class IncomeSplitRow(Base):
    """Split of a receipt; one per transaction"""

    __tablename__ = "income_split"
    __table_args__ = (UniqueConstraint("transaction_id", name="uq_income_split_transaction"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(Integer, ForeignKey("bank_transaction.id"), nullable=False)
    transfer_transaction_id = Column(Integer, ForeignKey("bank_transaction.id"), nullable=True)
    gross_cents = Column(BigInteger, nullable=False)
    net_cents = Column(BigInteger, nullable=False)
    share_a_cents = Column(BigInteger, nullable=False)
    share_b_cents = Column(BigInteger, nullable=False)
    share_c_cents = Column(BigInteger, nullable=False)
    tax_cents = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SettingRow(Base):
    """Key/value runtime settings"""

    __tablename__ = "setting"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(Text, nullable=False, unique=True)
    value = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, server_default=func.now(), onupdate=func.now())
