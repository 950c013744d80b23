"""
Portfolio position calculation from an investment operation ledger.

Positions use a simplified weighted-average-cost model (not lot-level FIFO):
a sell removes ``min(sold, held) * average cost`` from invested capital and
neither quantity nor invested capital can go below zero. There is no live
market pricing, so a position's current value equals its invested capital and
profit is always zero.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from fintrack.core.periods import month_key
from fintrack.models.enums import OperationType
from fintrack.models.investment_operation import QUANTITY_SCALE
from fintrack.schemas.investment import PortfolioMonthlyEvolution, PositionSummary


class OperationRecord(Protocol):
    asset: str
    asset_class: str
    type: str
    date: date
    quantity: int
    total_amount: int
    currency: str
    broker: Optional[str]
    created_at: Optional[datetime]


@dataclass
class _PositionState:
    asset: str
    asset_class: str
    currency: str
    quantity: float = 0.0
    total_invested: float = 0.0
    total_sold: float = 0.0
    brokers: List[str] = field(default_factory=list)
    first_buy_date: Optional[date] = None
    last_operation_date: Optional[date] = None

    def apply(self, op: OperationRecord) -> None:
        op_type = OperationType(op.type)
        units = op.quantity / QUANTITY_SCALE

        if op.broker and op.broker not in self.brokers:
            self.brokers.append(op.broker)

        if op_type == OperationType.BUY:
            self.quantity += units
            self.total_invested += op.total_amount
            if self.first_buy_date is None or op.date < self.first_buy_date:
                self.first_buy_date = op.date

        elif op_type == OperationType.SELL:
            average_cost = self.total_invested / self.quantity if self.quantity > 0 else 0.0
            cost_basis = min(units, self.quantity) * average_cost
            self.quantity = max(0.0, self.quantity - units)
            self.total_invested = max(0.0, self.total_invested - cost_basis)
            self.total_sold += op.total_amount

        # Dividends, interest and splits only feed the monthly evolution

        if self.last_operation_date is None or op.date > self.last_operation_date:
            self.last_operation_date = op.date

    @property
    def holding_days(self) -> int:
        if self.first_buy_date is None or self.last_operation_date is None:
            return 0
        return (self.last_operation_date - self.first_buy_date).days


def _chronological(operations: Iterable[OperationRecord]) -> List[OperationRecord]:
    # Operations without a creation time (not yet flushed) sort last within their day
    return sorted(
        operations,
        key=lambda op: (op.date, op.created_at is None, op.created_at or datetime.min),
    )


def reduce_positions(operations: Iterable[OperationRecord]) -> List[PositionSummary]:
    """Fold an operation ledger into one summary per open (asset, currency) pair.

    Operations may be passed in any order. Pairs whose quantity drops to zero
    are omitted. The output has no defined order.
    """
    states: Dict[Tuple[str, str], _PositionState] = {}

    for op in _chronological(operations):
        key = (op.asset, op.currency)
        state = states.get(key)
        if state is None:
            state = _PositionState(
                asset=op.asset, asset_class=op.asset_class, currency=op.currency
            )
            states[key] = state
        state.apply(op)

    active = [s for s in states.values() if s.quantity > 0]
    portfolio_total = sum(s.total_invested for s in active)

    positions = []
    for state in active:
        current_value = state.total_invested
        profit = current_value - state.total_invested
        positions.append(
            PositionSummary(
                asset=state.asset,
                asset_class=state.asset_class,
                quantity=state.quantity,
                average_price=state.total_invested / state.quantity,
                current_value=current_value,
                total_invested=state.total_invested,
                profit=profit,
                profit_percentage=(
                    profit / state.total_invested * 100 if state.total_invested > 0 else 0.0
                ),
                portfolio_percentage=(
                    state.total_invested / portfolio_total * 100 if portfolio_total > 0 else 0.0
                ),
                broker=", ".join(state.brokers) or None,
                currency=state.currency,
                average_holding_time=state.holding_days,
            )
        )
    return positions


def portfolio_monthly_evolution(
    operations: Iterable[OperationRecord],
) -> List[PortfolioMonthlyEvolution]:
    """Monthly contributions, withdrawals and dividends with running totals.

    Only months that have operations are returned, oldest first. Portfolio
    value is cumulative contributions minus cumulative withdrawals plus
    cumulative dividends.
    """
    monthly: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"contributions": 0, "withdrawals": 0, "dividends": 0}
    )

    for op in operations:
        bucket = monthly[month_key(op.date)]
        op_type = OperationType(op.type)
        if op_type == OperationType.BUY:
            bucket["contributions"] += op.total_amount
        elif op_type == OperationType.SELL:
            bucket["withdrawals"] += op.total_amount
        elif op_type in (OperationType.DIVIDEND, OperationType.INTEREST):
            bucket["dividends"] += op.total_amount

    evolution = []
    cumulative_contributions = 0
    cumulative_withdrawals = 0
    cumulative_dividends = 0
    previous_value = 0

    for month in sorted(monthly):
        data = monthly[month]
        cumulative_contributions += data["contributions"]
        cumulative_withdrawals += data["withdrawals"]
        cumulative_dividends += data["dividends"]

        portfolio_value = (
            cumulative_contributions - cumulative_withdrawals + cumulative_dividends
        )
        if previous_value > 0:
            returns = (
                (portfolio_value - previous_value - data["contributions"] + data["withdrawals"])
                / previous_value
                * 100
            )
        else:
            returns = 0.0
        previous_value = portfolio_value

        evolution.append(
            PortfolioMonthlyEvolution(
                month=month,
                portfolio_value=portfolio_value,
                contributions=data["contributions"],
                withdrawals=data["withdrawals"],
                dividends=data["dividends"],
                returns=returns,
                cumulative_contributions=cumulative_contributions,
                cumulative_dividends=cumulative_dividends,
            )
        )

    return evolution
