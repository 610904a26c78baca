"""Gold formulas: trading discounts, taxes, bank interest and stock drift."""

from __future__ import annotations

import math
import random

from adr.domain.models.stats import ability_modifier


TRADING_MODIFIER_CAP = 30


def trading_modifier(
    charisma: int,
    trading_skill_level: int,
    trading_power: int = 2,
    cap: int = TRADING_MODIFIER_CAP,
) -> int:
    """Percentage discount on buying (and bonus on selling), capped."""
    charisma_mod = max(0, ability_modifier(charisma))
    return min(int(cap), charisma_mod + int(trading_skill_level) * int(trading_power))


def buy_price(base_price: int, trading_mod_percent: int) -> int:
    discount = trading_mod_percent / 100
    return max(1, math.floor(base_price * (1 - discount)))


def sell_price(base_price: int, trading_mod_percent: int) -> int:
    bonus = trading_mod_percent / 100
    return max(1, math.floor(base_price * (0.5 + bonus * 0.5)))


def percentage_tax(amount: int, tax_percent: int) -> int:
    """Flat percentage deduction floored to whole gold; used for shop and warehouse tax."""
    return math.floor(amount * (tax_percent / 100))


def elapsed_periods(elapsed_seconds: int, period_seconds: int) -> int:
    if period_seconds <= 0:
        return 0
    return max(0, int(elapsed_seconds) // int(period_seconds))


def calculate_interest(balance: int, rate_percent: int, elapsed_seconds: int, period_seconds: int) -> int:
    periods = elapsed_periods(elapsed_seconds, period_seconds)
    if periods <= 0 or balance <= 0:
        return 0
    rate = rate_percent / 100
    return math.floor(balance * math.pow(1 + rate, periods) - balance)


def calculate_loan_interest(loan_amount: int, rate_percent: int, elapsed_seconds: int, period_seconds: int) -> int:
    periods = elapsed_periods(elapsed_seconds, period_seconds)
    if periods <= 0 or loan_amount <= 0:
        return 0
    rate = rate_percent / 100
    return math.floor(loan_amount * rate * periods)


def stock_price_change(
    current_price: int,
    min_change_percent: int,
    max_change_percent: int,
    min_price: int,
    max_price: int,
    rng: random.Random,
) -> int:
    """One period of price drift: uniform percent in the band, random sign, clamped to the price bounds."""
    change_percent = min_change_percent + rng.random() * (max_change_percent - min_change_percent)
    direction = -1 if rng.random() < 0.5 else 1
    change = math.floor(current_price * change_percent / 100) * direction
    return max(int(min_price), min(int(max_price), int(current_price) + change))


def weighted_average_price(old_shares: int, old_price: int, new_shares: int, new_price: int) -> int:
    total = int(old_shares) + int(new_shares)
    if total <= 0:
        return 0
    return (int(old_shares) * int(old_price) + int(new_shares) * int(new_price)) // total
