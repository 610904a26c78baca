import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from adr.application.dtos import ForgeItemRequest, ItemRequest
from adr.application.services.event_bus import EventBus
from adr.application.services.forge_service import ForgeService
from adr.domain.errors import LimitReached, RequirementNotMet, StateConflict, ValidationError
from adr.domain.events import ItemForged
from adr.domain.models.character import Character
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import Item, ItemType, QualityTier
from adr.infrastructure.inmemory.reference_data import InMemoryReferenceData


class _ScriptedRandom(random.Random):
    def __init__(self, ints=(), floats=()) -> None:
        super().__init__(0)
        self._ints = list(ints)
        self._floats = list(floats)

    def randint(self, a, b):
        value = self._ints.pop(0) if self._ints else a
        return max(a, min(b, value))

    def random(self):
        return self._floats.pop(0) if self._floats else 0.0


ALL_CRAFTS = {"mining": 1, "stone_cutting": 1, "forge": 1, "enchantment": 1}


def _character(items=(), **overrides) -> Character:
    values = dict(id=1, user_id=7, name="Ari", skills=dict(ALL_CRAFTS), inventory=list(items))
    values.update(overrides)
    return Character(**values)


def _service(floats=(), event_bus=None) -> ForgeService:
    return ForgeService(
        InMemoryReferenceData(),
        GameConfig(),
        _ScriptedRandom(floats=floats),
        allocate_item_id=lambda: 1000,
        event_bus=event_bus,
    )


def _pickaxe(duration: int = 2) -> Item:
    return Item(50, "Pickaxe", ItemType.PICKAXE, duration=duration, duration_max=10, owner_id=1)


def _ore(item_id: int = 60, quality_id: int = QualityTier.POOR) -> Item:
    return Item(item_id, "Iron Ore", ItemType.RAW_MATERIAL, quality_id=quality_id, price=30, owner_id=1)


def _dagger(**overrides) -> Item:
    values = dict(id=70, name="Iron Dagger", type_id=ItemType.WEAPON, price=100, duration=50, duration_max=100, owner_id=1)
    values.update(overrides)
    return Item(**values)


class MiningTests(unittest.TestCase):
    def test_successful_dig_finds_material_and_wears_pickaxe(self) -> None:
        result = _service(floats=[0.0, 0.0]).mine(_character([_pickaxe()]), ItemRequest(50))

        self.assertEqual("success", result.outcome)
        self.assertEqual("Rare Diamond", result.item.name)
        self.assertEqual(1000, result.item.id)
        self.assertEqual(1, result.character.find_item(50).duration)
        self.assertEqual(1, result.character.skill_uses["mining"])
        self.assertEqual(1, result.character.daily_counters["skill"])

    def test_failed_dig_still_wears_pickaxe(self) -> None:
        result = _service(floats=[0.99]).mine(_character([_pickaxe()]), ItemRequest(50))
        self.assertEqual("failure", result.outcome)
        self.assertIsNone(result.item)
        self.assertEqual(1, result.character.find_item(50).duration)

    def test_last_swing_breaks_the_pickaxe(self) -> None:
        result = _service(floats=[0.0, 0.99]).mine(_character([_pickaxe(duration=1)]), ItemRequest(50))
        self.assertEqual("Iron Ore", result.item.name)
        self.assertIn("Your pickaxe broke!", result.message)

    def test_mining_guards(self) -> None:
        service = _service()
        with self.assertRaises(StateConflict):
            service.mine(_character([_pickaxe(duration=0)]), ItemRequest(50))
        with self.assertRaises(ValidationError):
            service.mine(_character([_ore()]), ItemRequest(60))
        with self.assertRaises(RequirementNotMet):
            service.mine(_character([_pickaxe()], skills={}), ItemRequest(50))
        with self.assertRaises(LimitReached):
            service.mine(_character([_pickaxe()], daily_counters={"skill": 30}), ItemRequest(50))


class StoneCuttingTests(unittest.TestCase):
    def test_cut_raises_quality_and_price(self) -> None:
        result = _service(floats=[0.5, 0.1]).cut_stone(_character([_ore()]), ItemRequest(60))
        self.assertEqual("success", result.outcome)
        self.assertEqual(QualityTier.MEDIUM, result.item.quality_id)
        self.assertEqual(45, result.item.price)
        self.assertEqual("Iron Ore", result.item.name)

    def test_good_quality_stones_are_polished(self) -> None:
        ore = _ore(quality_id=QualityTier.MEDIUM)
        ore.price = 45
        result = _service(floats=[0.5, 0.1]).cut_stone(_character([ore]), ItemRequest(60))
        self.assertEqual("Polished Iron Ore", result.item.name)
        self.assertEqual(68, result.item.price)

    def test_critical_failure_destroys_the_stone(self) -> None:
        result = _service(floats=[0.01]).cut_stone(_character([_ore()]), ItemRequest(60))
        self.assertEqual("critical_failure", result.outcome)
        self.assertIsNone(result.character.find_item(60))

    def test_plain_failure_keeps_the_stone(self) -> None:
        result = _service(floats=[0.5, 0.9]).cut_stone(_character([_ore()]), ItemRequest(60))
        self.assertEqual("failure", result.outcome)
        self.assertEqual(QualityTier.POOR, result.character.find_item(60).quality_id)

    def test_top_quality_cannot_be_cut(self) -> None:
        with self.assertRaises(StateConflict):
            _service().cut_stone(_character([_ore(quality_id=QualityTier.VERY_GOOD)]), ItemRequest(60))


class RepairTests(unittest.TestCase):
    def test_repair_restores_durability_at_a_cost(self) -> None:
        result = _service(floats=[0.1]).repair(_character([_dagger()]), ItemRequest(70))
        self.assertEqual("success", result.outcome)
        self.assertEqual(15, result.gold_spent)
        self.assertEqual(85, result.character.gold)
        self.assertEqual((99, 99), (result.item.duration, result.item.duration_max))

    def test_failed_repair_spends_the_gold(self) -> None:
        result = _service(floats=[0.5]).repair(_character([_dagger()]), ItemRequest(70))
        self.assertEqual("failure", result.outcome)
        self.assertEqual(85, result.character.gold)
        self.assertEqual(50, result.character.find_item(70).duration)

    def test_critical_repair_destroys_the_item(self) -> None:
        result = _service(floats=[0.01]).repair(_character([_dagger()]), ItemRequest(70))
        self.assertEqual("critical_failure", result.outcome)
        self.assertIsNone(result.item)
        self.assertIsNone(result.character.find_item(70))

    def test_repair_guards(self) -> None:
        service = _service()
        with self.assertRaises(StateConflict):
            service.repair(_character([_dagger(duration=100)]), ItemRequest(70))
        with self.assertRaises(ValidationError):
            service.repair(_character([_ore()]), ItemRequest(60))


class EnchantTests(unittest.TestCase):
    def test_enchanting_a_weapon(self) -> None:
        result = _service(floats=[0.5, 0.1]).enchant(_character([_dagger()]), ItemRequest(70))
        self.assertEqual("success", result.outcome)
        self.assertEqual(1, result.item.add_power)
        self.assertEqual(ItemType.ENCHANTED_WEAPON, result.item.type_id)
        self.assertEqual(50, result.character.gold)

    def test_critical_enchant_strips_bonus_power(self) -> None:
        result = _service(floats=[0.01]).enchant(_character([_dagger(add_power=3)], gold=500), ItemRequest(70))
        self.assertEqual("critical_failure", result.outcome)
        self.assertEqual(0, result.item.add_power)
        self.assertEqual(110, result.gold_spent)


class ForgeItemTests(unittest.TestCase):
    def test_forging_consumes_materials_and_publishes(self) -> None:
        bus = EventBus()
        seen = []
        bus.subscribe(ItemForged, seen.append)
        result = _service(floats=[0.1, 0.6], event_bus=bus).forge_item(_character([_ore()]), ForgeItemRequest(1, (60,)))

        self.assertEqual("success", result.outcome)
        self.assertIsNone(result.character.find_item(60))
        forged = result.character.find_item(1000)
        self.assertEqual("Iron Dagger", forged.name)
        self.assertEqual(QualityTier.POOR, forged.quality_id)
        self.assertEqual(3, forged.power)
        self.assertEqual(30, forged.price)
        self.assertEqual(80, forged.duration)
        self.assertEqual("You forged a Poor Iron Dagger!", result.message)
        self.assertEqual([(1, 1000, QualityTier.POOR)], [(e.character_id, e.item_id, e.quality_id) for e in seen])

    def test_failed_forge_keeps_materials(self) -> None:
        result = _service(floats=[0.9]).forge_item(_character([_ore()]), ForgeItemRequest(1, (60,)))
        self.assertEqual("failure", result.outcome)
        self.assertIsNotNone(result.character.find_item(60))

    def test_critical_forge_ruins_materials(self) -> None:
        result = _service(floats=[0.0]).forge_item(_character([_ore()]), ForgeItemRequest(1, (60,)))
        self.assertEqual("critical_failure", result.outcome)
        self.assertIsNone(result.character.find_item(60))
        self.assertIsNone(result.item)

    def test_forge_guards(self) -> None:
        service = _service()
        ores = [_ore(60), _ore(61), _ore(62)]
        with self.assertRaises(RequirementNotMet):
            service.forge_item(_character(ores), ForgeItemRequest(3, (60, 61, 62)))
        with self.assertRaises(ValidationError):
            service.forge_item(_character(ores), ForgeItemRequest(1, (60, 61)))
        with self.assertRaises(ValidationError):
            service.forge_item(_character([_dagger()]), ForgeItemRequest(1, (70,)))
        with self.assertRaises(ValidationError):
            service.forge_item(_character(ores), ForgeItemRequest(42, (60,)))

    def test_request_validation(self) -> None:
        with self.assertRaises(ValidationError):
            ForgeItemRequest(1, ())
        with self.assertRaises(ValidationError):
            ForgeItemRequest(1, (60, 60))


if __name__ == "__main__":
    unittest.main()
