"""Time-windowed state: bank and loan interest, stock drift, daily limits and jail sentences.

Everything here is safe to run on every read. Timestamps only ever advance by
whole elapsed periods, so calling again before the next period boundary
changes nothing.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Callable, Iterable, List, Optional

from adr.application.dtos import (
    AccrualResult,
    BailResult,
    DailyLimitResult,
    JailHistoryRow,
    JailStatus,
    JailStatusResult,
    StockUpdateResult,
)
from adr.application.services.event_bus import EventBus
from adr.application.services.rules import spend_gold, working_copy
from adr.domain import events
from adr.domain.errors import ConfigurationError, StateConflict, ValidationError
from adr.domain.models.character import Character, DailyCounter
from adr.domain.models.game_config import GameConfig
from adr.domain.models.jail import JailRecord, JailReleaseState
from adr.domain.models.vault import StockMarket, VaultAccount
from adr.domain.services import economy, thievery
from adr.domain.services.dice import percent_roll


logger = logging.getLogger(__name__)


class AccrualService:
    def __init__(
        self,
        config: GameConfig,
        rng: random.Random,
        event_bus: Optional[EventBus] = None,
        allocate_record_id: Optional[Callable[[], int]] = None,
    ) -> None:
        self.config = config
        self.rng = rng
        self.event_bus = event_bus
        self.allocate_record_id = allocate_record_id

    # Vault

    def accrue_interest(self, account: VaultAccount, now: int) -> AccrualResult:
        updated = working_copy(account)
        interest = 0
        loan_interest = 0

        if updated.balance <= 0:
            # An empty account earns nothing; restart the clock so the next deposit waits a full period.
            updated.last_interest_time = now
        else:
            elapsed = now - updated.last_interest_time
            periods = economy.elapsed_periods(elapsed, self.config.interest_time)
            if periods > 0:
                interest = economy.calculate_interest(
                    updated.balance, self.config.interest_rate, elapsed, self.config.interest_time
                )
                updated.balance += interest
                updated.last_interest_time += periods * self.config.interest_time

        if updated.has_loan and updated.loan_interest_time > 0:
            elapsed = now - updated.loan_interest_time
            periods = economy.elapsed_periods(elapsed, self.config.loan_interest_time)
            if periods > 0:
                loan_interest = economy.calculate_loan_interest(
                    updated.loan_amount, self.config.loan_interest, elapsed, self.config.loan_interest_time
                )
                updated.loan_interest_accrued += loan_interest
                updated.loan_interest_time += periods * self.config.loan_interest_time

        if interest or loan_interest:
            logger.debug(
                "Vault interest accrued",
                extra={"user_id": updated.user_id, "interest": interest, "loan_interest": loan_interest},
            )
        return AccrualResult(account=updated, interest=interest, loan_interest=loan_interest)

    def loan_fee(self, amount: int) -> int:
        """Interest charged for the first loan period, due as soon as the loan is taken."""
        return math.ceil(amount * self.config.loan_interest / 100)

    def loan_overdue(self, account: VaultAccount, now: int) -> bool:
        if not account.has_loan or account.loan_taken_at <= 0:
            return False
        return now - account.loan_taken_at > self.config.loan_interest_time

    def next_interest_in(self, account: VaultAccount, now: int) -> int:
        if account.balance <= 0:
            return 0
        elapsed = now - account.last_interest_time
        return max(0, self.config.interest_time - elapsed)

    def recompute_stock_prices(self, market: StockMarket, now: int) -> StockUpdateResult:
        updated = working_copy(market)
        if updated.last_update <= 0:
            updated.last_update = now
            return StockUpdateResult(market=updated, periods_applied=0)

        period = self.config.stock_update_time
        periods = economy.elapsed_periods(now - updated.last_update, period)
        if periods <= 0:
            return StockUpdateResult(market=updated, periods_applied=0)

        for stock in updated.stocks.values():
            price = stock.current_price
            for _ in range(periods):
                price = economy.stock_price_change(
                    price,
                    self.config.stock_min_change,
                    self.config.stock_max_change,
                    stock.min_price,
                    stock.max_price,
                    self.rng,
                )
            stock.previous_price = stock.current_price
            stock.current_price = price
        updated.last_update += periods * period
        logger.info("Stock prices updated", extra={"periods": periods, "stocks": len(updated.stocks)})
        return StockUpdateResult(market=updated, periods_applied=periods)

    # Daily limits

    def refresh_daily_limits(self, character: Character, now: int) -> DailyLimitResult:
        updated = working_copy(character)
        if now - updated.limit_update < self.config.limit_reset_time:
            return DailyLimitResult(character=updated, reset=False)
        for counter in DailyCounter:
            updated.daily_counters[counter.value] = 0
        updated.limit_update = now
        return DailyLimitResult(character=updated, reset=True)

    # Jail

    def jail_player(
        self,
        user_id: int,
        item_name: str,
        item_price: int,
        now: int,
        open_record: Optional[JailRecord] = None,
    ) -> Optional[JailRecord]:
        """Roll the jail chance after a failed theft; returns the new record or None when the thief got away.

        ``open_record`` must already have been through :meth:`get_jail_status`;
        any record still open is refused, even one whose time is up.
        """
        if open_record is not None and open_record.is_open:
            raise StateConflict("Already in jail.", {"user_id": user_id, "record_id": open_record.id})
        if percent_roll(self.rng) >= self.config.jail_chance:
            return None
        if self.allocate_record_id is None:
            raise ConfigurationError("Jailing needs a record id allocator.")

        duration = thievery.jail_duration(item_price, self.config.jail_duration_tiers, self.config.jail_max_duration)
        duration = min(duration, self.config.thief_failure_time)
        record = JailRecord(
            id=self.allocate_record_id(),
            user_id=user_id,
            reason=f"Caught stealing {item_name}",
            jailed_at=now,
            release_at=now + duration,
            bail_cost=thievery.bail_cost(item_price, self.config.bail_multiplier, self.config.bail_minimum),
        )
        logger.info(
            "Player jailed",
            extra={"user_id": user_id, "record_id": record.id, "duration": duration, "bail_cost": record.bail_cost},
        )
        self._publish(
            events.PlayerJailed(user_id=user_id, reason=record.reason, release_at=record.release_at, bail_cost=record.bail_cost)
        )
        return record

    def get_jail_status(self, record: Optional[JailRecord], now: int) -> JailStatusResult:
        """Report the sentence, releasing the record as a side effect once its time is served.

        The returned record is the one to persist; it is ``None`` only when
        ``None`` was passed in.
        """
        if record is None:
            return JailStatusResult(record=None, status=JailStatus(is_jailed=False))
        updated = working_copy(record)
        if not updated.is_open:
            return JailStatusResult(record=updated, status=JailStatus(is_jailed=False))
        if now >= updated.release_at:
            updated.released = JailReleaseState.TIME_SERVED
            updated.released_at = now
            self._publish(
                events.PlayerReleased(
                    user_id=updated.user_id, record_id=updated.id, outcome=JailReleaseState.TIME_SERVED.label
                )
            )
            return JailStatusResult(record=updated, status=JailStatus(is_jailed=False))

        remaining = updated.release_at - now
        status = JailStatus(
            is_jailed=True,
            record_id=updated.id,
            reason=updated.reason,
            jailed_at=updated.jailed_at,
            release_at=updated.release_at,
            bail_cost=updated.bail_cost,
            remaining_seconds=remaining,
            remaining_formatted=thievery.format_duration(remaining),
        )
        return JailStatusResult(record=updated, status=status)

    def pay_bail(self, character: Character, record: Optional[JailRecord], now: int) -> BailResult:
        if record is not None and record.user_id != character.user_id:
            raise ValidationError("Jail record belongs to another user.", {"record_id": record.id})
        status = self.get_jail_status(record, now)
        if not status.status.is_jailed:
            raise StateConflict("You are not in jail.", {"user_id": character.user_id})

        updated_character = working_copy(character)
        released = status.record
        spend_gold(updated_character, released.bail_cost)
        released.released = JailReleaseState.BAILED
        released.released_at = now

        logger.info(
            "Bail paid",
            extra={"user_id": character.user_id, "record_id": released.id, "bail_cost": released.bail_cost},
        )
        self._publish(
            events.PlayerReleased(user_id=released.user_id, record_id=released.id, outcome=JailReleaseState.BAILED.label)
        )
        return BailResult(character=updated_character, record=released, cost=released.bail_cost)

    @staticmethod
    def jail_history(records: Iterable[JailRecord]) -> List[JailHistoryRow]:
        return [
            JailHistoryRow(
                record_id=record.id,
                reason=record.reason,
                jailed_at=record.jailed_at,
                release_at=record.release_at,
                bail_cost=record.bail_cost,
                status=record.released.label,
            )
            for record in sorted(records, key=lambda r: (r.jailed_at, r.id), reverse=True)
        ]

    def _publish(self, event: object) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)
