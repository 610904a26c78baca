import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from adr.bootstrap import create_game_engine, load_game_config_from_env
from adr.domain.errors import ConfigurationError
from adr.domain.models.game_config import GameConfig
from adr.infrastructure.inmemory.snapshot_store import InMemorySnapshotStore


class GameConfigTests(unittest.TestCase):
    def test_defaults_reproduce_shipped_values(self) -> None:
        config = GameConfig().validate()
        self.assertEqual(20, config.battle_limit)
        self.assertEqual(4, config.interest_rate)
        self.assertEqual(21600, config.thief_failure_time)
        self.assertEqual(864000, config.loan_interest_time)
        self.assertIsNone(config.flee_chance)

    def test_from_mapping_accepts_legacy_camel_case_keys(self) -> None:
        config = GameConfig.from_mapping({"interestRate": "6", "battleLimit": 5, "thiefFailurePunishment": "0"})
        self.assertEqual(6, config.interest_rate)
        self.assertEqual(5, config.battle_limit)
        self.assertFalse(config.thief_failure_punishment)

    def test_from_mapping_skips_unmodelled_legacy_keys(self) -> None:
        config = GameConfig.from_mapping({"pvpEnable": 1, "shop_tax": 12})
        self.assertEqual(12, config.shop_tax)

    def test_unknown_option_is_rejected(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            GameConfig.from_mapping({"dragonCount": 3})
        self.assertEqual("configuration_error", ctx.exception.to_dict()["error"])

    def test_wrong_types_are_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            GameConfig.from_mapping({"battle_limit": "many"})
        with self.assertRaises(ConfigurationError):
            GameConfig.from_mapping({"battle_enable": "perhaps"})
        with self.assertRaises(ConfigurationError):
            GameConfig.from_mapping({"battle_limit": True})

    def test_validation_rejects_broken_values(self) -> None:
        for overrides in (
            {"battle_limit": -1},
            {"interest_time": 0},
            {"next_level_penalty": 0},
            {"shop_tax": 101},
            {"base_exp_min": 50, "base_exp_max": 40},
            {"min_characteristic": 21},
            {"flee_chance": 150},
            {"jail_duration_tiers": ((300, 900), (100, 300))},
        ):
            with self.subTest(overrides=overrides):
                with self.assertRaises(ConfigurationError):
                    GameConfig().with_overrides(**overrides)

    def test_flee_chance_can_be_cleared(self) -> None:
        self.assertIsNone(GameConfig.from_mapping({"flee_chance": ""}).flee_chance)
        self.assertEqual(35, GameConfig.from_mapping({"fleeChance": "35"}).flee_chance)


class EnvironmentConfigTests(unittest.TestCase):
    def test_environment_overrides_defaults(self) -> None:
        config = load_game_config_from_env(
            environ={
                "ADR_INTEREST_RATE": "7",
                "ADR_BATTLE_ENABLE": "false",
                "ADR_JAIL_DURATION_TIERS": "[[100, 60], [200, 120]]",
                "OTHER_BATTLE_LIMIT": "1",
            }
        )
        self.assertEqual(7, config.interest_rate)
        self.assertFalse(config.battle_enable)
        self.assertEqual(((100, 60), (200, 120)), config.jail_duration_tiers)
        self.assertEqual(20, config.battle_limit)

    def test_invalid_environment_value_is_logged_and_raised(self) -> None:
        with self.assertLogs("adr.bootstrap", level="ERROR"):
            with self.assertRaises(ConfigurationError):
                load_game_config_from_env(environ={"ADR_SHOP_TAX": "250"})

    def test_malformed_tier_table_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_game_config_from_env(environ={"ADR_THEFT_DIFFICULTY_TIERS": "not json"})

    def test_engine_is_wired_with_in_memory_store_by_default(self) -> None:
        engine = create_game_engine(config=GameConfig(), seed=3)
        self.assertIsInstance(engine.store, InMemorySnapshotStore)
        self.assertIs(engine.config, engine.battles.config)
        self.assertIs(engine.event_bus, engine.accrual.event_bus)
        self.assertEqual(2, len(engine.reference.default_shops()))


if __name__ == "__main__":
    unittest.main()
