from __future__ import annotations

import logging

from adr.application.dtos import CharacterResult, GiveResult, ItemRequest, UnequipRequest
from adr.application.services.rules import (
    require_in_inventory,
    require_not_battling,
    require_owned_item,
    require_restrictions,
    require_unequipped,
    spend_gold,
    working_copy,
)
from adr.domain.errors import StateConflict, ValidationError
from adr.domain.models.character import Character
from adr.domain.models.game_config import GameConfig
from adr.domain.services.economy import percentage_tax


logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, config: GameConfig) -> None:
        self.config = config

    def equip(self, character: Character, request: ItemRequest) -> CharacterResult:
        require_not_battling(character)
        item = require_in_inventory(character, request.item_id)
        if item.equipped:
            raise StateConflict(f"{item.name} is already equipped.", {"item_id": item.id})
        if item.is_broken:
            raise StateConflict(f"{item.name} is broken and cannot be equipped.", {"item_id": item.id})
        slot = item.slot
        if slot is None:
            raise ValidationError(f"{item.name} cannot be equipped.", {"item_id": item.id, "type_id": item.type_id})
        require_restrictions(character, item)

        updated = working_copy(character)
        previous = updated.equipped_item(slot)
        if previous is not None:
            previous.equipped = False
        equipped = updated.find_item(item.id)
        equipped.equipped = True
        updated.equipment[slot.value] = equipped.id

        message = f"Equipped {equipped.name}"
        if previous is not None:
            message += f" (replaced {previous.name})"
        return CharacterResult(character=updated, message=message)

    def unequip(self, character: Character, request: UnequipRequest) -> CharacterResult:
        require_not_battling(character)
        item = character.equipped_item(request.slot)
        if item is None:
            raise StateConflict(f"Nothing is equipped in the {request.slot.value} slot.", {"slot": request.slot.value})

        updated = working_copy(character)
        updated.find_item(item.id).equipped = False
        updated.equipment[request.slot.value] = 0
        return CharacterResult(character=updated, message=f"Unequipped {item.name}")

    def drop(self, character: Character, request: ItemRequest) -> CharacterResult:
        require_not_battling(character)
        item = require_owned_item(character, request.item_id)
        require_unequipped(item)

        updated = working_copy(character)
        updated.inventory.remove(updated.find_item(item.id))
        return CharacterResult(character=updated, message=f"Dropped {item.name}")

    def give(self, giver: Character, receiver: Character, request: ItemRequest) -> GiveResult:
        """Move one item between inventories; both snapshots in the result must be persisted together."""
        if giver.id == receiver.id:
            raise ValidationError("You cannot give items to yourself.", {"character_id": giver.id})
        require_not_battling(giver)
        item = require_in_inventory(giver, request.item_id)
        require_unequipped(item)

        from_character = working_copy(giver)
        to_character = working_copy(receiver)
        moved = from_character.find_item(item.id)
        from_character.inventory.remove(moved)
        moved.owner_id = to_character.id
        to_character.inventory.append(moved)

        logger.info(
            "Item given",
            extra={"from_character_id": giver.id, "to_character_id": receiver.id, "item_id": moved.id},
        )
        return GiveResult(giver=from_character, receiver=to_character, item=moved)

    def store(self, character: Character, request: ItemRequest) -> CharacterResult:
        require_not_battling(character)
        item = require_in_inventory(character, request.item_id)
        require_unequipped(item)
        tax = percentage_tax(item.price, self.config.warehouse_tax)

        updated = working_copy(character)
        spend_gold(updated, tax)
        updated.find_item(item.id).in_warehouse = True
        return CharacterResult(
            character=updated,
            message=f"Stored {item.name} in the warehouse",
            gold_spent=tax,
        )

    def retrieve(self, character: Character, request: ItemRequest) -> CharacterResult:
        require_not_battling(character)
        item = require_owned_item(character, request.item_id)
        if not item.in_warehouse:
            raise StateConflict(f"{item.name} is not in the warehouse.", {"item_id": item.id})

        updated = working_copy(character)
        updated.find_item(item.id).in_warehouse = False
        return CharacterResult(character=updated, message=f"Retrieved {item.name} from the warehouse")
