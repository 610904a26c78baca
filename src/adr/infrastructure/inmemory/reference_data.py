from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from adr.domain.models.element import Element
from adr.domain.models.item import Item, ItemType, QualityTier, Shop, ShopListing
from adr.domain.models.monster import MonsterTemplate
from adr.domain.models.reference import CharacterClass, ForgeRecipe, NamedReference, Race, SkillDefinition
from adr.domain.models.vault import Stock, StockMarket
from adr.domain.repositories import ReferenceDataProvider


GENERAL_STORE_ID = 1
ARMORY_ID = 2

DEFAULT_RACES = (
    Race(1, "Human"),
    Race(2, "Half-elf", bonuses={"dexterity": 1, "intelligence": 1}, maluses={"constitution": 1}),
    Race(
        3,
        "Half-orc",
        bonuses={"might": 2, "constitution": 1},
        maluses={"intelligence": 1, "wisdom": 1, "charisma": 1},
    ),
    Race(
        4,
        "Elf",
        bonuses={"dexterity": 2, "intelligence": 1, "wisdom": 1},
        maluses={"might": 1, "constitution": 2},
    ),
    Race(5, "Gnome", bonuses={"dexterity": 1, "intelligence": 2}, maluses={"might": 2, "charisma": 1}),
    Race(6, "Halfling", bonuses={"dexterity": 2, "charisma": 1}, maluses={"might": 2, "wisdom": 1}),
    Race(7, "Dwarf", bonuses={"might": 1, "constitution": 2}, maluses={"dexterity": 1, "charisma": 2}),
)

DEFAULT_CLASSES = (
    CharacterClass(1, "Fighter", base_hp=10, base_mp=0, base_ac=2, update_hp=3, update_mp=0, update_ac=1),
    CharacterClass(2, "Barbarian", base_hp=12, base_mp=0, base_ac=0, update_hp=4, update_mp=0, update_ac=0),
    CharacterClass(3, "Druid", base_hp=6, base_mp=8, base_ac=0, update_hp=2, update_mp=3, update_ac=0),
    CharacterClass(4, "Bard", base_hp=6, base_mp=6, base_ac=0, update_hp=2, update_mp=2, update_ac=0),
    CharacterClass(5, "Magician", base_hp=4, base_mp=12, base_ac=0, update_hp=1, update_mp=4, update_ac=0),
    CharacterClass(6, "Monk", base_hp=8, base_mp=4, base_ac=1, update_hp=3, update_mp=1, update_ac=1),
    CharacterClass(7, "Paladin", base_hp=8, base_mp=4, base_ac=2, update_hp=3, update_mp=1, update_ac=1),
    CharacterClass(8, "Priest", base_hp=6, base_mp=10, base_ac=0, update_hp=2, update_mp=4, update_ac=0),
    CharacterClass(
        9, "Sorcerer", selectable=False, base_hp=4, base_mp=14, base_ac=0, update_hp=1, update_mp=5, update_ac=0
    ),
    CharacterClass(10, "Thief", base_hp=6, base_mp=2, base_ac=1, update_hp=2, update_mp=1, update_ac=0),
)

DEFAULT_ELEMENTS = (
    NamedReference(Element.WATER, "Water"),
    NamedReference(Element.EARTH, "Earth"),
    NamedReference(Element.HOLY, "Holy"),
    NamedReference(Element.FIRE, "Fire"),
)

DEFAULT_ALIGNMENTS = (
    NamedReference(1, "Neutral"),
    NamedReference(2, "Evil"),
    NamedReference(3, "Good"),
)

DEFAULT_SKILLS = (
    SkillDefinition(1, "Mining", required_sp=100),
    SkillDefinition(2, "Stonecutting", required_sp=200),
    SkillDefinition(3, "Forge", required_sp=50),
    SkillDefinition(4, "Enchantment", required_sp=300),
    SkillDefinition(5, "Trading", required_sp=80),
    SkillDefinition(6, "Thief", required_sp=70),
)

DEFAULT_MONSTERS = (
    MonsterTemplate(1, "Globuz", level=1, hp=15, mp=5, attack=6, defense=3, mp_power=1, magic_attack=5,
                    magic_resistance=4, sp=5, element_id=Element.WATER, custom_spell="a water splash"),
    MonsterTemplate(2, "Kargh", level=2, hp=25, mp=8, attack=10, defense=5, mp_power=2, magic_attack=8,
                    magic_resistance=6, sp=8, element_id=Element.FIRE, custom_spell="a fireball"),
    MonsterTemplate(3, "Bouglou", level=1, hp=12, mp=10, attack=4, defense=4, mp_power=3, magic_attack=10,
                    magic_resistance=8, sp=6, element_id=Element.WATER, custom_spell="an ice shard"),
    MonsterTemplate(4, "Dretg", level=1, hp=18, mp=3, attack=8, defense=2, mp_power=1, magic_attack=4,
                    magic_resistance=3, sp=4, element_id=Element.EARTH, custom_spell="a rock throw"),
    MonsterTemplate(5, "Greyiok", level=1, hp=14, mp=6, attack=5, defense=6, mp_power=1, magic_attack=7,
                    magic_resistance=5, sp=5, element_id=Element.EARTH, custom_spell="an earth spike"),
    MonsterTemplate(6, "Itchy", level=2, hp=22, mp=12, attack=8, defense=4, mp_power=2, magic_attack=12,
                    magic_resistance=7, sp=10, element_id=Element.FIRE, custom_spell="a flame burst"),
    MonsterTemplate(7, "Globber", level=3, hp=35, mp=15, attack=14, defense=8, mp_power=3, magic_attack=14,
                    magic_resistance=10, sp=15, thief_skill=5, element_id=Element.WATER, custom_spell="a tidal wave"),
    MonsterTemplate(8, "Scratchy", level=4, hp=50, mp=20, attack=18, defense=12, mp_power=4, magic_attack=16,
                    magic_resistance=12, sp=20, thief_skill=10, element_id=Element.FIRE,
                    custom_spell="an inferno blast"),
)

# Shop stock doubles as the item template catalogue; ids are stable template ids.
DEFAULT_ITEM_TEMPLATES = (
    Item(1, "Health Potion", ItemType.HEALTH_POTION, power=20, weight=1, price=50,
         description="Restores 20 HP", shop_id=GENERAL_STORE_ID),
    Item(2, "Mana Potion", ItemType.MANA_POTION, power=15, weight=1, price=75,
         description="Restores 15 MP", shop_id=GENERAL_STORE_ID),
    Item(3, "Mining Pick", ItemType.PICKAXE, weight=5, price=200,
         description="Required for mining ore", shop_id=GENERAL_STORE_ID),
    Item(4, "Magic Tome", ItemType.MAGIC_TOME, power=5, weight=3, price=300,
         description="Increases magical knowledge", shop_id=GENERAL_STORE_ID),
    Item(5, "Short Sword", ItemType.WEAPON, power=8, weight=4, price=100,
         description="A basic but reliable blade", shop_id=ARMORY_ID),
    Item(6, "Long Bow", ItemType.WEAPON, power=10, weight=3, price=150,
         description="A finely crafted bow", shop_id=ARMORY_ID),
    Item(7, "Iron Flail", ItemType.WEAPON, quality_id=QualityTier.GOOD, power=14, weight=8, price=250,
         description="A heavy crushing weapon", shop_id=ARMORY_ID),
    Item(8, "Leather Armor", ItemType.ARMOR, weight=10, price=120, bonus_ac=3,
         description="Light but protective", shop_id=ARMORY_ID),
    Item(9, "Chain Mail", ItemType.ARMOR, quality_id=QualityTier.GOOD, weight=20, price=300, bonus_ac=6,
         description="Interlocking metal rings", shop_id=ARMORY_ID),
    Item(10, "Wooden Shield", ItemType.SHIELD, weight=6, price=80, bonus_ac=2,
         description="Basic defensive shield", shop_id=ARMORY_ID),
    Item(11, "Iron Helm", ItemType.HELM, weight=5, price=90, bonus_ac=1,
         description="Protects the head", shop_id=ARMORY_ID),
    Item(12, "Leather Gloves", ItemType.GLOVES, weight=2, price=60, bonus_ac=1,
         description="Light hand protection", shop_id=ARMORY_ID),
    Item(13, "Bronze Amulet", ItemType.AMULET, weight=1, price=150,
         description="A simple protective charm", shop_id=ARMORY_ID),
    Item(14, "Silver Ring", ItemType.RING, weight=1, price=200,
         description="A ring that enhances magic", shop_id=ARMORY_ID),
)

DEFAULT_FORGE_RECIPES = (
    ForgeRecipe(1, "Iron Dagger", ItemType.WEAPON, materials_required=1, base_power=6, base_price=60,
                duration_max=80, weight=2, required_skill_level=1),
    ForgeRecipe(2, "Iron Shield", ItemType.SHIELD, materials_required=2, base_bonus_ac=3, base_price=110,
                duration_max=100, weight=7, required_skill_level=2),
    ForgeRecipe(3, "Steel Sword", ItemType.WEAPON, materials_required=3, base_power=12, base_price=220,
                duration_max=120, weight=5, required_skill_level=4),
    ForgeRecipe(4, "Steel Breastplate", ItemType.ARMOR, materials_required=4, base_bonus_ac=7, base_price=350,
                duration_max=150, weight=18, required_skill_level=6),
)

DEFAULT_STOCKS = (
    Stock(1, "Dwarven Mining Co.", current_price=113, previous_price=110, min_price=80, max_price=200),
    Stock(2, "Elven Enchantments", current_price=177, previous_price=180, min_price=100, max_price=300),
    Stock(3, "Dragon Fire Arms", current_price=280, previous_price=275, min_price=150, max_price=500),
)


def _index(rows: Iterable) -> Dict[int, object]:
    return {int(row.id): row for row in rows}


class InMemoryReferenceData(ReferenceDataProvider):
    def __init__(
        self,
        races: Iterable[Race] = DEFAULT_RACES,
        classes: Iterable[CharacterClass] = DEFAULT_CLASSES,
        elements: Iterable[NamedReference] = DEFAULT_ELEMENTS,
        alignments: Iterable[NamedReference] = DEFAULT_ALIGNMENTS,
        skills: Iterable[SkillDefinition] = DEFAULT_SKILLS,
        monsters: Iterable[MonsterTemplate] = DEFAULT_MONSTERS,
        item_templates: Iterable[Item] = DEFAULT_ITEM_TEMPLATES,
        forge_recipes: Iterable[ForgeRecipe] = DEFAULT_FORGE_RECIPES,
    ) -> None:
        self._races = _index(races)
        self._classes = _index(classes)
        self._elements = _index(elements)
        self._alignments = _index(alignments)
        self._skills = _index(skills)
        self._monsters = _index(monsters)
        self._items = _index(item_templates)
        self._recipes = _index(forge_recipes)

    def get_race(self, race_id: int) -> Optional[Race]:
        return self._races.get(int(race_id))

    def get_class(self, class_id: int) -> Optional[CharacterClass]:
        return self._classes.get(int(class_id))

    def get_element(self, element_id: int) -> Optional[NamedReference]:
        return self._elements.get(int(element_id))

    def get_alignment(self, alignment_id: int) -> Optional[NamedReference]:
        return self._alignments.get(int(alignment_id))

    def get_skill(self, skill_id: int) -> Optional[SkillDefinition]:
        return self._skills.get(int(skill_id))

    def get_monster(self, monster_id: int) -> Optional[MonsterTemplate]:
        return self._monsters.get(int(monster_id))

    def list_monsters(self) -> List[MonsterTemplate]:
        return [self._monsters[key] for key in sorted(self._monsters)]

    def get_item_template(self, item_id: int) -> Optional[Item]:
        return self._items.get(int(item_id))

    def get_forge_recipe(self, recipe_id: int) -> Optional[ForgeRecipe]:
        return self._recipes.get(int(recipe_id))

    def list_classes(self, selectable_only: bool = True) -> List[CharacterClass]:
        return [row for _, row in sorted(self._classes.items()) if row.selectable or not selectable_only]

    def default_shops(self) -> List[Shop]:
        shops = {
            GENERAL_STORE_ID: Shop(id=GENERAL_STORE_ID, name="General Store"),
            ARMORY_ID: Shop(id=ARMORY_ID, name="Armory"),
        }
        for item in self._items.values():
            shop = shops.get(item.shop_id)
            if shop is not None:
                shop.listings[item.id] = ShopListing(item=item)
        return list(shops.values())


def default_stock_market(last_update: int = 0) -> StockMarket:
    return StockMarket(
        stocks={stock.id: Stock(**vars(stock)) for stock in DEFAULT_STOCKS},
        last_update=last_update,
    )
