from __future__ import annotations

from dataclasses import dataclass

from adr.domain.models.character import Character
from adr.domain.models.item import EquipmentSlot


DEFAULT_CRIT_RANGE = 20
DEFAULT_CRIT_MULTIPLIER = 2


@dataclass(frozen=True)
class EquipmentBonuses:
    defense: int = 0
    weapon_power: int = 0
    crit_range: int = DEFAULT_CRIT_RANGE
    crit_multiplier: int = DEFAULT_CRIT_MULTIPLIER
    weapon_element: int = 0
    hp_regen: int = 0
    mp_regen: int = 0
    magic_attack: int = 0
    magic_defense: int = 0


def calculate_equipment_bonuses(character: Character) -> EquipmentBonuses:
    """Sum what the equipped, unbroken items contribute. Inventory items that are not equipped add nothing."""
    values = {
        "defense": 0,
        "weapon_power": 0,
        "crit_range": DEFAULT_CRIT_RANGE,
        "crit_multiplier": DEFAULT_CRIT_MULTIPLIER,
        "weapon_element": 0,
        "hp_regen": 0,
        "mp_regen": 0,
        "magic_attack": 0,
        "magic_defense": 0,
    }
    for slot, item in character.equipped_items().items():
        if item.is_broken:
            continue
        total_power = item.power + item.add_power
        if slot == EquipmentSlot.WEAPON:
            values["weapon_power"] = total_power
            values["crit_range"] = item.crit_hit
            values["crit_multiplier"] = item.crit_hit_mod
            values["weapon_element"] = item.element_id
        elif slot in (EquipmentSlot.ARMOR, EquipmentSlot.SHIELD, EquipmentSlot.HELM, EquipmentSlot.GLOVES):
            values["defense"] += total_power + item.bonus_ac
        elif slot == EquipmentSlot.AMULET:
            values["hp_regen"] = total_power
        elif slot == EquipmentSlot.RING:
            values["mp_regen"] = total_power
        elif slot == EquipmentSlot.MAGIC_ATTACK:
            values["magic_attack"] = total_power
        elif slot == EquipmentSlot.MAGIC_DEFENSE:
            values["magic_defense"] = total_power
    return EquipmentBonuses(**values)


def wear_equipment(character: Character) -> int:
    """Take one durability point from every equipped item; returns how many items wore."""
    worn = 0
    for item in character.equipped_items().values():
        if item.duration > 0:
            item.duration -= 1
            worn += 1
    return worn
