from __future__ import annotations

import logging
from typing import Callable, List, Optional

from adr.application.dtos import ShopItemView, TradeRequest, TradeResult
from adr.application.services.rules import (
    consume_counter,
    require_counter,
    require_gold,
    require_in_inventory,
    require_not_battling,
    require_not_jailed,
    require_restrictions,
    require_unequipped,
    train_skill,
    working_copy,
)
from adr.domain.errors import ConfigurationError, StateConflict
from adr.domain.models.character import Character, DailyCounter, SkillKind
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import Shop
from adr.domain.models.jail import JailRecord
from adr.domain.services import economy


logger = logging.getLogger(__name__)


def character_trading_modifier(character: Character, config: GameConfig) -> int:
    return economy.trading_modifier(
        character.charisma,
        character.skill_level(SkillKind.TRADING),
        config.skill_trading_power,
        config.trading_modifier_cap,
    )


class ShopService:
    """Buying from and selling to NPC shops at trading-adjusted prices."""

    def __init__(self, config: GameConfig, allocate_item_id: Optional[Callable[[], int]] = None) -> None:
        self.config = config
        self.allocate_item_id = allocate_item_id

    def list_items(self, character: Character, shop: Shop) -> List[ShopItemView]:
        modifier = character_trading_modifier(character, self.config)
        return [
            ShopItemView(
                item_id=item_id,
                name=listing.item.name,
                type_id=listing.item.type_id,
                quality_id=listing.item.quality_id,
                base_price=listing.item.price,
                price=economy.buy_price(listing.item.price, modifier),
                quantity=listing.quantity,
                slot=listing.item.slot,
            )
            for item_id, listing in sorted(shop.listings.items())
            if not listing.sold_out
        ]

    def buy(
        self,
        character: Character,
        shop: Shop,
        request: TradeRequest,
        jail_record: Optional[JailRecord] = None,
    ) -> TradeResult:
        require_not_battling(character)
        require_not_jailed(jail_record, request.now)
        require_counter(character, DailyCounter.TRADING, self.config)
        listing = shop.listings.get(request.item_id)
        if listing is None:
            raise StateConflict("Item not found in shop.", {"shop_id": shop.id, "item_id": request.item_id})
        if listing.sold_out:
            raise StateConflict(f"{listing.item.name} is sold out.", {"shop_id": shop.id, "item_id": request.item_id})
        require_restrictions(character, listing.item)
        price = economy.buy_price(listing.item.price, character_trading_modifier(character, self.config))
        require_gold(character, price)
        if self.allocate_item_id is None:
            raise ConfigurationError("Buying needs an item id allocator.")

        buyer = working_copy(character)
        stock = working_copy(shop)
        bought = listing.item.copy_for_owner(self.allocate_item_id(), buyer.id)
        buyer.inventory.append(bought)
        buyer.gold -= price
        remaining = stock.listings[request.item_id]
        if remaining.quantity is not None:
            remaining.quantity -= 1
        consume_counter(buyer, DailyCounter.TRADING)
        if buyer.skill_level(SkillKind.TRADING) > 0:
            train_skill(buyer, SkillKind.TRADING, self.config)

        logger.info(
            "Item bought",
            extra={"character_id": buyer.id, "shop_id": shop.id, "item_id": bought.id, "price": price},
        )
        return TradeResult(
            character=buyer,
            shop=stock,
            item=bought,
            price=price,
            message=f"Bought {bought.name} for {price} gold",
        )

    def sell(
        self,
        character: Character,
        request: TradeRequest,
        jail_record: Optional[JailRecord] = None,
    ) -> TradeResult:
        """Sell an owned item back to the shops; the shop tax comes off the proceeds."""
        require_not_battling(character)
        require_not_jailed(jail_record, request.now)
        require_counter(character, DailyCounter.TRADING, self.config)
        item = require_in_inventory(character, request.item_id)
        require_unequipped(item)

        seller = working_copy(character)
        sold = seller.find_item(item.id)
        seller.inventory.remove(sold)
        sale = economy.sell_price(sold.price, character_trading_modifier(character, self.config))
        tax = economy.percentage_tax(sale, self.config.shop_tax)
        seller.gold += sale - tax
        consume_counter(seller, DailyCounter.TRADING)
        if seller.skill_level(SkillKind.TRADING) > 0:
            train_skill(seller, SkillKind.TRADING, self.config)
        sold.owner_id = 0

        logger.info(
            "Item sold",
            extra={"character_id": seller.id, "item_id": sold.id, "price": sale, "tax": tax},
        )
        return TradeResult(
            character=seller,
            shop=None,
            item=sold,
            price=sale - tax,
            tax=tax,
            message=f"Sold {sold.name} for {sale - tax} gold ({tax} gold tax)",
        )
