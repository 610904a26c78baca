from __future__ import annotations

import logging

from adr.application.dtos import StockTradeRequest, StockTradeResult, VaultAmountRequest, VaultResult, VaultStatus
from adr.application.services.accrual_service import AccrualService
from adr.application.services.rules import require_gold, require_not_battling, spend_gold, working_copy
from adr.domain.errors import StateConflict, ValidationError
from adr.domain.models.character import Character
from adr.domain.models.game_config import GameConfig
from adr.domain.models.vault import StockHolding, StockMarket, VaultAccount
from adr.domain.services.economy import weighted_average_price


logger = logging.getLogger(__name__)


class VaultService:
    """Bank deposits, loans and stock trades.

    Deposits, withdrawals, loans and status reads first bring the account's
    interest up to date. Stock trades settle in character gold and leave the
    cash balance and its interest clock alone.
    """

    def __init__(self, config: GameConfig, accrual: AccrualService) -> None:
        self.config = config
        self.accrual = accrual

    @staticmethod
    def open_account(user_id: int, now: int) -> VaultAccount:
        return VaultAccount(user_id=user_id, last_interest_time=now)

    def deposit(self, character: Character, account: VaultAccount, request: VaultAmountRequest) -> VaultResult:
        self._check_open(character, account)
        require_gold(character, request.amount)
        accrued = self.accrual.accrue_interest(account, request.now)

        updated = working_copy(character)
        updated_account = accrued.account
        updated.gold -= request.amount
        updated_account.balance += request.amount
        return VaultResult(
            character=updated,
            account=updated_account,
            amount=request.amount,
            interest_applied=accrued.interest,
            message=f"Deposited {request.amount}g. New balance: {updated_account.balance}g",
        )

    def withdraw(self, character: Character, account: VaultAccount, request: VaultAmountRequest) -> VaultResult:
        self._check_open(character, account)
        accrued = self.accrual.accrue_interest(account, request.now)
        updated_account = accrued.account
        if updated_account.balance < request.amount:
            raise StateConflict(
                f"Insufficient balance! You have {updated_account.balance}g in the vault.",
                {"balance": updated_account.balance, "amount": request.amount},
            )

        updated = working_copy(character)
        updated_account.balance -= request.amount
        updated.gold += request.amount
        return VaultResult(
            character=updated,
            account=updated_account,
            amount=request.amount,
            interest_applied=accrued.interest,
            message=f"Withdrew {request.amount}g. New balance: {updated_account.balance}g",
        )

    def take_loan(self, character: Character, account: VaultAccount, request: VaultAmountRequest) -> VaultResult:
        self._check_open(character, account)
        if not self.config.loan_enable:
            raise StateConflict("Loans are not available.")
        if request.amount > self.config.loan_max_sum:
            raise ValidationError(
                f"Maximum loan amount is {self.config.loan_max_sum}g.",
                {"amount": request.amount, "maximum": self.config.loan_max_sum},
            )
        accrued = self.accrual.accrue_interest(account, request.now)
        updated_account = accrued.account
        if updated_account.has_loan:
            raise StateConflict("You already have an active loan. Repay it first!", {"loan": updated_account.loan_amount})

        updated = working_copy(character)
        updated.gold += request.amount
        updated_account.loan_amount = request.amount
        updated_account.loan_interest_accrued = self.accrual.loan_fee(request.amount)
        updated_account.loan_interest_time = request.now
        updated_account.loan_taken_at = request.now
        logger.info(
            "Loan taken",
            extra={"user_id": account.user_id, "amount": request.amount, "payoff": updated_account.loan_payoff},
        )
        return VaultResult(
            character=updated,
            account=updated_account,
            amount=request.amount,
            interest_applied=accrued.interest,
            message=(
                f"Borrowed {request.amount}g. You must repay {updated_account.loan_payoff}g "
                f"({self.config.loan_interest}% interest)."
            ),
        )

    def repay_loan(self, character: Character, account: VaultAccount, now: int) -> VaultResult:
        self._check_open(character, account)
        accrued = self.accrual.accrue_interest(account, now)
        updated_account = accrued.account
        if not updated_account.has_loan:
            raise StateConflict("You have no active loan.")

        payoff = updated_account.loan_payoff
        principal = updated_account.loan_amount
        updated = working_copy(character)
        spend_gold(updated, payoff)
        updated_account.loan_amount = 0
        updated_account.loan_interest_accrued = 0
        updated_account.loan_interest_time = 0
        updated_account.loan_taken_at = 0
        logger.info("Loan repaid", extra={"user_id": account.user_id, "payoff": payoff})
        return VaultResult(
            character=updated,
            account=updated_account,
            amount=payoff,
            interest_applied=accrued.interest,
            message=f"Loan repaid! Paid {payoff}g ({principal}g principal + {payoff - principal}g interest).",
        )

    def status(self, account: VaultAccount, now: int) -> VaultStatus:
        current = self.accrual.accrue_interest(account, now).account
        return VaultStatus(
            balance=current.balance,
            loan_amount=current.loan_amount,
            loan_payoff=current.loan_payoff if current.has_loan else 0,
            loan_overdue=self.accrual.loan_overdue(current, now),
            next_interest_in=self.accrual.next_interest_in(current, now),
            interest_rate=self.config.interest_rate,
            loan_interest_rate=self.config.loan_interest,
        )

    def buy_stock(
        self,
        character: Character,
        account: VaultAccount,
        market: StockMarket,
        request: StockTradeRequest,
    ) -> StockTradeResult:
        self._check_open(character, account)
        self._check_shares(request.shares)
        stock = self._stock(market, request.stock_id)
        total = request.shares * stock.current_price
        require_gold(character, total)

        updated = working_copy(character)
        updated_account = working_copy(account)
        updated.gold -= total
        holding = updated_account.holdings.get(stock.id)
        if holding is None:
            holding = StockHolding(stock_id=stock.id, shares=request.shares, purchase_price=stock.current_price)
            updated_account.holdings[stock.id] = holding
        else:
            holding.purchase_price = weighted_average_price(
                holding.shares, holding.purchase_price, request.shares, stock.current_price
            )
            holding.shares += request.shares

        return StockTradeResult(
            character=updated,
            account=updated_account,
            stock=stock,
            shares=holding.shares,
            total=total,
            message=(
                f"Bought {request.shares} shares of {stock.name} at {stock.current_price}g each (total: {total}g)"
            ),
        )

    def sell_stock(
        self,
        character: Character,
        account: VaultAccount,
        market: StockMarket,
        request: StockTradeRequest,
    ) -> StockTradeResult:
        self._check_open(character, account)
        self._check_shares(request.shares)
        stock = self._stock(market, request.stock_id)
        holding = account.holdings.get(stock.id)
        owned = holding.shares if holding is not None else 0
        if owned < request.shares:
            raise StateConflict(
                f"You don't own enough shares. You have {owned}.",
                {"stock_id": stock.id, "shares": owned},
            )

        updated = working_copy(character)
        updated_account = working_copy(account)
        total = request.shares * stock.current_price
        profit = total - request.shares * holding.purchase_price
        updated.gold += total
        remaining = owned - request.shares
        if remaining <= 0:
            del updated_account.holdings[stock.id]
        else:
            updated_account.holdings[stock.id].shares = remaining

        outcome = "profit" if profit >= 0 else "loss"
        return StockTradeResult(
            character=updated,
            account=updated_account,
            stock=stock,
            shares=remaining,
            total=total,
            profit=profit,
            message=(
                f"Sold {request.shares} shares of {stock.name} at {stock.current_price}g each "
                f"(total: {total}g, {outcome}: {abs(profit)}g)"
            ),
        )

    def _check_open(self, character: Character, account: VaultAccount) -> None:
        if not self.config.vault_enable:
            raise StateConflict("The vault is closed.")
        if account.user_id != character.user_id:
            raise ValidationError("Vault account belongs to another user.", {"user_id": account.user_id})
        require_not_battling(character)

    def _check_shares(self, shares: int) -> None:
        if shares > self.config.max_shares_per_transaction:
            raise ValidationError(
                f"Maximum {self.config.max_shares_per_transaction} shares per transaction.",
                {"shares": shares},
            )

    @staticmethod
    def _stock(market: StockMarket, stock_id: int):
        stock = market.stocks.get(stock_id)
        if stock is None:
            raise ValidationError("Stock not found.", {"stock_id": stock_id})
        return stock
