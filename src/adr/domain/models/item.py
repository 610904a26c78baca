from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple


class ItemType(IntEnum):
    RAW_MATERIAL = 1
    RARE_MATERIAL = 2
    PICKAXE = 3
    MAGIC_TOME = 4
    WEAPON = 5
    ENCHANTED_WEAPON = 6
    ARMOR = 7
    SHIELD = 8
    HELM = 9
    GLOVES = 10
    MAGIC_ATTACK = 11
    MAGIC_DEFENSE = 12
    AMULET = 13
    RING = 14
    HEALTH_POTION = 15
    MANA_POTION = 16
    SCROLL = 17
    MISC = 18


class QualityTier(IntEnum):
    DONT_CARE = 0
    VERY_POOR = 1
    POOR = 2
    MEDIUM = 3
    GOOD = 4
    VERY_GOOD = 5
    EXCELLENT = 6


QUALITY_MODIFIERS: Dict[int, int] = {
    QualityTier.DONT_CARE: 0,
    QualityTier.VERY_POOR: 20,
    QualityTier.POOR: 50,
    QualityTier.MEDIUM: 100,
    QualityTier.GOOD: 140,
    QualityTier.VERY_GOOD: 200,
    QualityTier.EXCELLENT: 300,
}

QUALITY_NAMES: Dict[int, str] = {
    QualityTier.DONT_CARE: "Don't care",
    QualityTier.VERY_POOR: "Very Poor",
    QualityTier.POOR: "Poor",
    QualityTier.MEDIUM: "Medium",
    QualityTier.GOOD: "Good",
    QualityTier.VERY_GOOD: "Very Good",
    QualityTier.EXCELLENT: "Excellent",
}

MATERIAL_TYPES = (ItemType.RAW_MATERIAL, ItemType.RARE_MATERIAL)
REPAIRABLE_TYPES = tuple(ItemType(value) for value in range(ItemType.WEAPON, ItemType.RING + 1))
ARMOR_SLOT_TYPES = (ItemType.ARMOR, ItemType.SHIELD, ItemType.HELM, ItemType.GLOVES)


class EquipmentSlot(str, Enum):
    WEAPON = "weapon"
    ARMOR = "armor"
    SHIELD = "shield"
    HELM = "helm"
    GLOVES = "gloves"
    AMULET = "amulet"
    RING = "ring"
    MAGIC_ATTACK = "magic_attack"
    MAGIC_DEFENSE = "magic_defense"


SLOT_ITEM_TYPES: Dict[EquipmentSlot, Tuple[ItemType, ...]] = {
    EquipmentSlot.WEAPON: (ItemType.WEAPON, ItemType.ENCHANTED_WEAPON),
    EquipmentSlot.ARMOR: (ItemType.ARMOR,),
    EquipmentSlot.SHIELD: (ItemType.SHIELD,),
    EquipmentSlot.HELM: (ItemType.HELM,),
    EquipmentSlot.GLOVES: (ItemType.GLOVES,),
    EquipmentSlot.AMULET: (ItemType.AMULET,),
    EquipmentSlot.RING: (ItemType.RING,),
    EquipmentSlot.MAGIC_ATTACK: (ItemType.MAGIC_ATTACK,),
    EquipmentSlot.MAGIC_DEFENSE: (ItemType.MAGIC_DEFENSE,),
}


def slot_for_item_type(type_id: int) -> Optional[EquipmentSlot]:
    for slot, item_types in SLOT_ITEM_TYPES.items():
        if int(type_id) in item_types:
            return slot
    return None


@dataclass(frozen=True)
class ItemRestrictions:
    """Requirements a character must meet to buy or equip an item. Empty id tuples allow anyone."""

    level: int = 0
    might: int = 0
    dexterity: int = 0
    constitution: int = 0
    intelligence: int = 0
    wisdom: int = 0
    charisma: int = 0
    class_ids: Tuple[int, ...] = ()
    race_ids: Tuple[int, ...] = ()
    element_ids: Tuple[int, ...] = ()
    alignment_ids: Tuple[int, ...] = ()


@dataclass
class Item:
    id: int
    name: str
    type_id: int
    quality_id: int = QualityTier.MEDIUM
    power: int = 0
    add_power: int = 0
    weight: int = 25
    duration: int = 100
    duration_max: int = 100
    price: int = 0
    bonus_ac: int = 0
    element_id: int = 0
    crit_hit: int = 20
    crit_hit_mod: int = 2
    description: str = ""
    restrictions: ItemRestrictions = field(default_factory=ItemRestrictions)
    owner_id: int = 0
    shop_id: int = 0
    equipped: bool = False
    in_warehouse: bool = False

    @property
    def is_broken(self) -> bool:
        return self.duration <= 0

    @property
    def is_damaged(self) -> bool:
        return self.duration < self.duration_max

    @property
    def slot(self) -> Optional[EquipmentSlot]:
        return slot_for_item_type(self.type_id)

    def copy_for_owner(self, item_id: int, owner_id: int) -> "Item":
        return replace(
            self,
            id=int(item_id),
            owner_id=int(owner_id),
            shop_id=0,
            equipped=False,
            in_warehouse=False,
        )


@dataclass
class ShopListing:
    """A shop's item template; ``quantity`` of None means the shop never runs out."""

    item: Item
    quantity: Optional[int] = None

    @property
    def sold_out(self) -> bool:
        return self.quantity is not None and self.quantity <= 0


@dataclass
class Shop:
    id: int
    name: str
    owner_id: int = 0
    listings: Dict[int, ShopListing] = field(default_factory=dict)

    @property
    def is_npc_shop(self) -> bool:
        return self.owner_id == 0
