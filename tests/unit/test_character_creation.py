import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from adr.application.dtos import CreateCharacterRequest
from adr.application.services.character_creation_service import CharacterCreationService
from adr.domain.errors import ConfigurationError, RequirementNotMet, ValidationError
from adr.domain.models.game_config import GameConfig
from adr.domain.models.item import ItemType
from adr.domain.models.reference import CharacterClass
from adr.domain.models.stats import AbilityScores
from adr.infrastructure.inmemory.reference_data import DEFAULT_CLASSES, InMemoryReferenceData


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


class _Allocator:
    def __init__(self, start: int = 1000) -> None:
        self.next_id = start

    def __call__(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value


def _request(**overrides) -> CreateCharacterRequest:
    values = dict(
        character_id=1,
        user_id=7,
        name="Grok",
        race_id=3,
        class_id=1,
        element_id=4,
        alignment_id=1,
        stats=AbilityScores(constitution=14),
    )
    values.update(overrides)
    return CreateCharacterRequest(**values)


def _service(reference=None, rng=None, allocator=True) -> CharacterCreationService:
    return CharacterCreationService(
        reference or InMemoryReferenceData(),
        GameConfig(),
        rng or _ScriptedRandom(),
        allocate_item_id=_Allocator() if allocator else None,
    )


class RollStatsTests(unittest.TestCase):
    def test_four_dice_drop_lowest(self) -> None:
        rolled = _service(rng=_ScriptedRandom(ints=[6, 6, 6, 1, 2, 3, 4, 5])).roll_stats()
        self.assertEqual(18, rolled.might)
        self.assertEqual(12, rolled.dexterity)
        self.assertEqual(3, rolled.charisma)

    def test_rolls_stay_in_range(self) -> None:
        service = _service(rng=random.Random(11))
        for _ in range(50):
            for value in service.roll_stats().as_dict().values():
                self.assertTrue(3 <= value <= 18)


class CreateCharacterTests(unittest.TestCase):
    def test_race_adjustments_and_class_base_values(self) -> None:
        result = _service().create_character(_request())
        character = result.character

        self.assertEqual((12, 10, 15, 9, 9, 9), tuple(character.scores.as_dict().values()))
        self.assertEqual((27, 27), (character.hp, character.hp_max))
        self.assertEqual((8, 8), (character.mp, character.mp_max))
        self.assertEqual(2, character.ac)
        self.assertEqual(100, character.gold)
        self.assertEqual(1, character.level)
        self.assertEqual("Grok the Half-orc Fighter is ready.", result.message)

    def test_starter_kit_gets_fresh_ids(self) -> None:
        items = _service().create_character(_request()).character.inventory
        self.assertEqual([1000, 1001, 1002, 1003], [item.id for item in items])
        self.assertTrue(all(item.owner_id == 1 for item in items))
        self.assertEqual(ItemType.WEAPON, items[0].type_id)

    def test_racial_bonus_is_clamped(self) -> None:
        character = _service().create_character(_request(stats=AbilityScores(might=20))).character
        self.assertEqual(20, character.might)

    def test_creation_guards(self) -> None:
        cases = (
            dict(race_id=99),
            dict(class_id=9),
            dict(element_id=0),
            dict(stats=AbilityScores(might=2)),
        )
        for overrides in cases:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValidationError):
                    _service().create_character(_request(**overrides))

    def test_name_is_validated_on_the_request(self) -> None:
        with self.assertRaises(ValidationError):
            _request(name=" x ")
        self.assertEqual("Grok", _request(name="  Grok ").name)

    def test_class_requirements_apply_after_racial_adjustments(self) -> None:
        brute = CharacterClass(11, "Brute", requirements={"might": 12})
        service = _service(reference=InMemoryReferenceData(classes=DEFAULT_CLASSES + (brute,)))
        self.assertEqual(11, service.create_character(_request(class_id=11)).character.class_id)
        with self.assertRaises(RequirementNotMet):
            service.create_character(_request(class_id=11, race_id=1))

    def test_creation_needs_an_allocator(self) -> None:
        with self.assertRaises(ConfigurationError):
            _service(allocator=False).create_character(_request())


if __name__ == "__main__":
    unittest.main()
