"""Crafting skills: mining, stone cutting, repairing, enchanting and forging.

Each action needs the matching skill, spends one daily skill use and trains
the skill whatever the outcome. Rolls use the skill level the character had
before this use was counted.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Callable, Dict, Optional, Tuple

from adr.application.dtos import ForgeItemRequest, ForgeResult, ItemRequest
from adr.application.services.event_bus import EventBus
from adr.application.services.rules import (
    consume_counter,
    require_counter,
    require_gold,
    require_in_inventory,
    require_not_battling,
    require_skill,
    require_unequipped,
    train_skill,
    working_copy,
)
from adr.domain.errors import ConfigurationError, RequirementNotMet, StateConflict, ValidationError
from adr.domain.events import ItemForged
from adr.domain.models.character import Character, DailyCounter, SkillKind
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import (
    MATERIAL_TYPES,
    QUALITY_MODIFIERS,
    QUALITY_NAMES,
    REPAIRABLE_TYPES,
    Item,
    ItemType,
    QualityTier,
)
from adr.domain.repositories import ReferenceDataProvider
from adr.domain.services import crafting
from adr.domain.services.crafting import ForgeOutcome, MiningFind


logger = logging.getLogger(__name__)

# name, type, quality, price, weight
MINED_MATERIALS: Dict[MiningFind, Tuple[str, ItemType, int, int, int]] = {
    MiningFind.RARE: ("Rare Diamond", ItemType.RARE_MATERIAL, QualityTier.VERY_GOOD, 150, 1),
    MiningFind.GEM: ("Rough Gem", ItemType.RARE_MATERIAL, QualityTier.MEDIUM, 80, 1),
    MiningFind.ORE: ("Iron Ore", ItemType.RAW_MATERIAL, QualityTier.POOR, 30, 3),
}

MAX_CUT_QUALITY = QualityTier.VERY_GOOD
POLISHED_PREFIX = "Polished "


def _scaled(value: int, quality_id: int) -> int:
    return math.ceil(value * QUALITY_MODIFIERS[quality_id] / 100)


class ForgeService:
    def __init__(
        self,
        reference: ReferenceDataProvider,
        config: GameConfig,
        rng: random.Random,
        allocate_item_id: Optional[Callable[[], int]] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.reference = reference
        self.config = config
        self.rng = rng
        self.allocate_item_id = allocate_item_id
        self.event_bus = event_bus

    def mine(self, character: Character, request: ItemRequest) -> ForgeResult:
        level = self._check(character, SkillKind.MINING)
        pickaxe = require_in_inventory(character, request.item_id)
        if pickaxe.type_id != ItemType.PICKAXE:
            raise ValidationError(f"{pickaxe.name} is not a pickaxe.", {"item_id": pickaxe.id})
        if pickaxe.is_broken:
            raise StateConflict("Your pickaxe is broken! Get a new one or repair it.", {"item_id": pickaxe.id})
        self._require_allocator()

        miner = self._begin(character, SkillKind.MINING)
        tool = miner.find_item(pickaxe.id)
        tool.duration -= 1

        if not crafting.mining_success(level, self.rng, self.config.mining_success_cap):
            return ForgeResult(
                character=miner,
                outcome=ForgeOutcome.FAILURE.value,
                message="You swing your pickaxe but find nothing useful.",
            )

        find = crafting.mining_find(level, self.rng)
        name, type_id, quality_id, price, weight = MINED_MATERIALS[find]
        mined = Item(
            id=self.allocate_item_id(),
            name=name,
            type_id=type_id,
            quality_id=quality_id,
            price=price,
            weight=weight,
            description=f"Mined material (mining skill level {level})",
            owner_id=miner.id,
        )
        miner.inventory.append(mined)
        message = f"You mined {name}!"
        if tool.is_broken:
            message += " Your pickaxe broke!"
        return ForgeResult(character=miner, outcome=ForgeOutcome.SUCCESS.value, item=mined, message=message)

    def cut_stone(self, character: Character, request: ItemRequest) -> ForgeResult:
        level = self._check(character, SkillKind.STONE_CUTTING)
        material = require_in_inventory(character, request.item_id)
        require_unequipped(material)
        if material.type_id not in MATERIAL_TYPES:
            raise ValidationError("You can only cut raw or rare materials.", {"item_id": material.id})
        if material.quality_id >= MAX_CUT_QUALITY:
            raise StateConflict("This material is already at maximum quality for cutting.", {"item_id": material.id})

        cutter = self._begin(character, SkillKind.STONE_CUTTING)
        stone = cutter.find_item(material.id)
        if crafting.critical_failure(self.rng, self.config.critical_failure_chance):
            cutter.inventory.remove(stone)
            return ForgeResult(
                character=cutter,
                outcome=ForgeOutcome.CRITICAL_FAILURE.value,
                message=f"Critical failure! The {stone.name} shattered during cutting and was destroyed!",
            )
        if not crafting.stone_cutting_success(level, self.rng, self.config.stone_cutting_success_cap):
            return ForgeResult(
                character=cutter,
                outcome=ForgeOutcome.FAILURE.value,
                item=stone,
                message="Your cutting attempt failed. The material is undamaged, try again.",
            )

        stone.quality_id += 1
        stone.price = math.ceil(stone.price * 1.5)
        if stone.quality_id >= QualityTier.GOOD and not stone.name.startswith(POLISHED_PREFIX):
            stone.name = POLISHED_PREFIX + stone.name
        return ForgeResult(
            character=cutter,
            outcome=ForgeOutcome.SUCCESS.value,
            item=stone,
            message=f"Successfully improved {material.name} to {QUALITY_NAMES[stone.quality_id]} quality!",
        )

    def repair(self, character: Character, request: ItemRequest) -> ForgeResult:
        level = self._check(character, SkillKind.FORGE)
        item = require_in_inventory(character, request.item_id)
        require_unequipped(item)
        if item.type_id not in REPAIRABLE_TYPES:
            raise ValidationError("You can only repair equipment items.", {"item_id": item.id})
        if not item.is_damaged:
            raise StateConflict("This item is already at full durability.", {"item_id": item.id})
        if item.duration_max <= 1:
            raise StateConflict("This item is too worn to repair any further.", {"item_id": item.id})
        cost = crafting.repair_cost(item.price, item.duration, item.duration_max)
        require_gold(character, cost)

        smith = self._begin(character, SkillKind.FORGE)
        smith.gold -= cost
        repaired = smith.find_item(item.id)
        outcome = crafting.forging_result(
            level, self.rng, self.config.forge_success_cap, self.config.critical_failure_chance
        )
        if outcome == ForgeOutcome.CRITICAL_FAILURE:
            smith.inventory.remove(repaired)
            message = f"Critical failure! The {item.name} was destroyed during repair! ({cost}g lost)"
            repaired = None
        elif outcome == ForgeOutcome.FAILURE:
            message = f"Repair attempt on {item.name} failed. No damage done, but the gold was spent ({cost}g)."
        else:
            repaired.duration_max -= 1
            repaired.duration = repaired.duration_max
            message = (
                f"Successfully repaired {item.name}! "
                f"Durability: {repaired.duration}/{repaired.duration_max} (cost: {cost}g)"
            )
        return ForgeResult(character=smith, outcome=outcome.value, item=repaired, gold_spent=cost, message=message)

    def enchant(self, character: Character, request: ItemRequest) -> ForgeResult:
        level = self._check(character, SkillKind.ENCHANTMENT)
        item = require_in_inventory(character, request.item_id)
        require_unequipped(item)
        if item.type_id not in REPAIRABLE_TYPES:
            raise ValidationError("You can only enchant equipment items.", {"item_id": item.id})
        cost = crafting.enchant_cost(item.add_power, self.config.enchant_base_cost, self.config.enchant_cost_per_power)
        require_gold(character, cost)

        enchanter = self._begin(character, SkillKind.ENCHANTMENT)
        enchanter.gold -= cost
        target = enchanter.find_item(item.id)
        if crafting.critical_failure(self.rng, self.config.critical_failure_chance):
            target.add_power = 0
            return ForgeResult(
                character=enchanter,
                outcome=ForgeOutcome.CRITICAL_FAILURE.value,
                item=target,
                gold_spent=cost,
                message=f"Critical failure! The enchantment on {item.name} destabilized, all bonus power was lost!",
            )
        if not crafting.enchant_success(level, self.rng, self.config.enchant_success_cap):
            return ForgeResult(
                character=enchanter,
                outcome=ForgeOutcome.FAILURE.value,
                item=target,
                gold_spent=cost,
                message=f"Enchantment of {item.name} fizzled. No effect, but the gold was spent ({cost}g).",
            )

        target.add_power += 1
        if target.type_id == ItemType.WEAPON:
            target.type_id = ItemType.ENCHANTED_WEAPON
        return ForgeResult(
            character=enchanter,
            outcome=ForgeOutcome.SUCCESS.value,
            item=target,
            gold_spent=cost,
            message=f"Successfully enchanted {item.name}! Bonus power: +{target.add_power} (cost: {cost}g)",
        )

    def forge_item(self, character: Character, request: ForgeItemRequest) -> ForgeResult:
        level = self._check(character, SkillKind.FORGE)
        recipe = self.reference.get_forge_recipe(request.recipe_id)
        if recipe is None:
            raise ValidationError(f"Unknown forge recipe {request.recipe_id}.", {"recipe_id": request.recipe_id})
        if level < recipe.required_skill_level:
            raise RequirementNotMet(
                f"{recipe.name} needs forge skill level {recipe.required_skill_level}.",
                {"recipe_id": recipe.id, "skill_level": level},
            )
        if len(request.material_ids) != recipe.materials_required:
            raise ValidationError(
                f"{recipe.name} needs exactly {recipe.materials_required} materials.",
                {"recipe_id": recipe.id, "given": len(request.material_ids)},
            )
        for material_id in request.material_ids:
            material = require_in_inventory(character, material_id)
            require_unequipped(material)
            if material.type_id not in MATERIAL_TYPES:
                raise ValidationError(f"{material.name} is not a forging material.", {"item_id": material.id})
        self._require_allocator()

        smith = self._begin(character, SkillKind.FORGE)
        outcome = crafting.forging_result(
            level, self.rng, self.config.forge_success_cap, self.config.critical_failure_chance
        )
        if outcome == ForgeOutcome.FAILURE:
            return ForgeResult(
                character=smith,
                outcome=outcome.value,
                message=f"Forging {recipe.name} failed. The materials are unharmed, try again.",
            )

        for material_id in request.material_ids:
            smith.inventory.remove(smith.find_item(material_id))
        if outcome == ForgeOutcome.CRITICAL_FAILURE:
            return ForgeResult(
                character=smith,
                outcome=outcome.value,
                message=f"Critical failure! The materials for {recipe.name} were ruined!",
            )

        quality_id = crafting.forge_quality(level, self.rng)
        forged = Item(
            id=self.allocate_item_id(),
            name=recipe.name,
            type_id=recipe.type_id,
            quality_id=quality_id,
            power=_scaled(recipe.base_power, quality_id),
            bonus_ac=_scaled(recipe.base_bonus_ac, quality_id),
            price=_scaled(recipe.base_price, quality_id),
            weight=recipe.weight,
            duration=recipe.duration_max,
            duration_max=recipe.duration_max,
            description=f"Forged by {smith.name}",
            owner_id=smith.id,
        )
        smith.inventory.append(forged)
        logger.info(
            "Item forged",
            extra={"character_id": smith.id, "recipe_id": recipe.id, "item_id": forged.id, "quality_id": quality_id},
        )
        if self.event_bus is not None:
            self.event_bus.publish(ItemForged(character_id=smith.id, item_id=forged.id, quality_id=quality_id))
        return ForgeResult(
            character=smith,
            outcome=outcome.value,
            item=forged,
            message=f"You forged a {QUALITY_NAMES[quality_id]} {recipe.name}!",
        )

    def _check(self, character: Character, kind: SkillKind) -> int:
        require_not_battling(character)
        level = require_skill(character, kind)
        require_counter(character, DailyCounter.SKILL, self.config)
        return level

    def _begin(self, character: Character, kind: SkillKind) -> Character:
        updated = working_copy(character)
        consume_counter(updated, DailyCounter.SKILL)
        train_skill(updated, kind, self.config)
        return updated

    def _require_allocator(self) -> None:
        if self.allocate_item_id is None:
            raise ConfigurationError("Crafting needs an item id allocator.")
