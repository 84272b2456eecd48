"""Liquidity projection over stored transactions and forecast entries"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from cashflow_planner.config import settings
from cashflow_planner.domain.exceptions import ValidationError
from cashflow_planner.domain.liquidity import find_difficulty_day, project_liquidity, required_revenue
from cashflow_planner.domain.models import CashEvent, DifficultyForecast, LiquidityProjection, PhaseThresholds
from cashflow_planner.infrastructure.database.repositories import (
    ForecastRepository,
    SettingsRepository,
    TransactionRepository,
)

# Keys in the settings table that override configured defaults
OPENING_BALANCE_KEY = "initial_balance"
DEFENSE_THRESHOLD_KEY = "phase_defense_threshold"
ATTACK_THRESHOLD_KEY = "phase_attack_threshold"
GROWTH_THRESHOLD_KEY = "phase_growth_threshold"


@dataclass
class CashflowOutlook:
    as_of: date
    balance_cents: int
    upcoming_expenses_cents: int  # negative
    difficulty: DifficultyForecast
    required_revenue_cents: int


class LiquidityService:
    def __init__(self, db: Session):
        self.settings_store = SettingsRepository(db)
        self.transactions = TransactionRepository(db)
        self.forecast = ForecastRepository(db)

    def opening_balance(self) -> int:
        return self.settings_store.get_int(OPENING_BALANCE_KEY, settings.opening_balance_cents)

    def thresholds(self) -> PhaseThresholds:
        return PhaseThresholds(
            defense_cents=self.settings_store.get_int(DEFENSE_THRESHOLD_KEY, settings.phase_defense_threshold_cents),
            attack_cents=self.settings_store.get_int(ATTACK_THRESHOLD_KEY, settings.phase_attack_threshold_cents),
            growth_cents=self.settings_store.get_int(GROWTH_THRESHOLD_KEY, settings.phase_growth_threshold_cents),
        )

    def update_settings(self, opening_balance_cents=None, thresholds: PhaseThresholds | None = None) -> None:
        if opening_balance_cents is not None:
            self.settings_store.set_value(OPENING_BALANCE_KEY, opening_balance_cents, "Opening balance in cents")
        if thresholds is not None:
            if not thresholds.defense_cents <= thresholds.attack_cents <= thresholds.growth_cents:
                raise ValidationError("Phase thresholds must be ascending")
            self.settings_store.set_value(DEFENSE_THRESHOLD_KEY, thresholds.defense_cents)
            self.settings_store.set_value(ATTACK_THRESHOLD_KEY, thresholds.attack_cents)
            self.settings_store.set_value(GROWTH_THRESHOLD_KEY, thresholds.growth_cents)

    def project(self, year: int, current_month: int) -> LiquidityProjection:
        start, end = date(year, 1, 1), date(year, 12, 31)
        return project_liquidity(
            year=year,
            opening_balance_cents=self.opening_balance(),
            transactions=self.transactions.list_between(start, end),
            forecast_entries=self.forecast.list_between(start, end),
            current_month=current_month,
            thresholds=self.thresholds(),
        )

    def outlook(self, as_of: date, horizon_days: int) -> CashflowOutlook:
        """Balance today, first day an expense can't be covered, revenue still needed"""
        if horizon_days <= 0:
            raise ValidationError("Horizon must be at least one day")

        balance = self.opening_balance() + self.transactions.balance_movement_until(as_of)
        start = as_of + timedelta(days=1)
        entries = self.forecast.list_between(start, start + timedelta(days=horizon_days - 1))
        events = [CashEvent(e.date, e.signed_amount_cents, e.reliability) for e in entries]
        expenses = sum(e.amount_cents for e in events if e.amount_cents < 0)
        ratio = Decimal(settings.available_income_ratio)

        return CashflowOutlook(
            as_of=as_of,
            balance_cents=balance,
            upcoming_expenses_cents=expenses,
            difficulty=find_difficulty_day(balance, events, as_of, horizon_days, ratio),
            required_revenue_cents=required_revenue(balance, expenses, ratio),
        )
