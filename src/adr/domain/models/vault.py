from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class StockHolding:
    stock_id: int
    shares: int = 0
    purchase_price: int = 0


@dataclass
class VaultAccount:
    """A user's bank account.

    ``loan_amount`` is the borrowed principal; simple interest accrues into
    ``loan_interest_accrued`` one whole ``loan_interest_time`` period at a time.
    """

    user_id: int
    balance: int = 0
    last_interest_time: int = 0
    loan_amount: int = 0
    loan_interest_accrued: int = 0
    loan_interest_time: int = 0
    loan_taken_at: int = 0
    holdings: Dict[int, StockHolding] = field(default_factory=dict)

    @property
    def has_loan(self) -> bool:
        return self.loan_amount > 0

    @property
    def loan_payoff(self) -> int:
        return self.loan_amount + self.loan_interest_accrued


@dataclass
class Stock:
    id: int
    name: str
    current_price: int = 100
    previous_price: int = 100
    min_price: int = 50
    max_price: int = 300


@dataclass
class StockMarket:
    stocks: Dict[int, Stock] = field(default_factory=dict)
    last_update: int = 0
