from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from adr.application.dtos import StealableItemView, StealRequest, StealResult
from adr.application.services.accrual_service import AccrualService
from adr.application.services.rules import (
    consume_counter,
    require_counter,
    require_not_battling,
    require_not_jailed,
    require_skill,
    train_skill,
    working_copy,
)
from adr.domain.errors import ConfigurationError, RequirementNotMet, StateConflict
from adr.domain.models.character import Character, DailyCounter, SkillKind
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import Shop
from adr.domain.models.jail import JailRecord
from adr.domain.services import thievery


logger = logging.getLogger(__name__)


class ThiefService:
    """Shoplifting: a d20 steal check against a price-tiered difficulty, with a fine and possible jail on failure."""

    def __init__(
        self,
        config: GameConfig,
        rng: random.Random,
        accrual: AccrualService,
        allocate_item_id: Optional[Callable[[], int]] = None,
    ) -> None:
        self.config = config
        self.rng = rng
        self.accrual = accrual
        self.allocate_item_id = allocate_item_id

    def difficulty_for(self, price: int) -> int:
        return thievery.theft_difficulty(price, self.config.theft_difficulty_tiers, self.config.theft_max_difficulty)

    def stealable_items(self, shop: Shop) -> List[StealableItemView]:
        rows = []
        for item_id, listing in sorted(shop.listings.items()):
            if listing.sold_out:
                continue
            difficulty = self.difficulty_for(listing.item.price)
            rows.append(
                StealableItemView(
                    item_id=item_id,
                    name=listing.item.name,
                    price=listing.item.price,
                    difficulty=difficulty,
                    roll_needed=thievery.scaled_difficulty(difficulty),
                )
            )
        return rows

    def steal(
        self,
        character: Character,
        shop: Shop,
        request: StealRequest,
        jail_record: Optional[JailRecord] = None,
    ) -> StealResult:
        require_not_battling(character)
        jail_status = self.accrual.get_jail_status(jail_record, request.now)
        current_record = jail_status.record
        require_not_jailed(current_record, request.now)
        released_record = current_record if jail_record is not None and jail_record.is_open else None
        skill = require_skill(character, SkillKind.THIEF)
        if character.level < self.config.shop_steal_min_level:
            raise RequirementNotMet(
                f"Must be at least level {self.config.shop_steal_min_level} to steal.",
                {"level": character.level, "required": self.config.shop_steal_min_level},
            )
        require_counter(character, DailyCounter.THIEF, self.config)
        listing = shop.listings.get(request.item_id)
        if listing is None or listing.sold_out:
            raise StateConflict("Item not found in shop.", {"shop_id": shop.id, "item_id": request.item_id})
        if self.allocate_item_id is None:
            raise ConfigurationError("Stealing needs an item id allocator.")

        thief = working_copy(character)
        target = working_copy(shop)
        consume_counter(thief, DailyCounter.THIEF)
        difficulty = self.difficulty_for(listing.item.price)

        if thievery.steal_check(skill, thief.dexterity, difficulty, self.rng):
            stolen = listing.item.copy_for_owner(self.allocate_item_id(), thief.id)
            thief.inventory.append(stolen)
            remaining = target.listings[request.item_id]
            if remaining.quantity is not None:
                remaining.quantity -= 1
            train_skill(thief, SkillKind.THIEF, self.config)
            logger.info(
                "Theft succeeded",
                extra={"character_id": thief.id, "shop_id": shop.id, "item_id": stolen.id, "difficulty": difficulty},
            )
            return StealResult(
                character=thief,
                shop=target,
                success=True,
                difficulty=difficulty,
                stolen_item=stolen,
                released_record=released_record,
                message=f"You stole {stolen.name}!",
            )

        fine = thievery.theft_fine(listing.item.price, self.config.thief_failure_damage, thief.gold)
        thief.gold -= fine
        record = None
        if self.config.thief_failure_punishment:
            record = self.accrual.jail_player(
                thief.user_id, listing.item.name, listing.item.price, request.now, open_record=current_record
            )
        message = f"You were caught trying to steal {listing.item.name} and fined {fine} gold."
        if record is not None:
            message += f" The guards throw you in jail! Bail: {record.bail_cost}g."
        logger.info(
            "Theft failed",
            extra={
                "character_id": thief.id,
                "shop_id": shop.id,
                "difficulty": difficulty,
                "fine": fine,
                "jailed": record is not None,
            },
        )
        return StealResult(
            character=thief,
            shop=target,
            success=False,
            difficulty=difficulty,
            fine=fine,
            jail_record=record,
            released_record=released_record,
            message=message,
        )
