import random
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from adr.domain.models.element import Element, element_multiplier
from adr.domain.models.stats import ability_modifier, combat_modifier
from adr.domain.services import combat_math, crafting, economy, leveling, thievery
from adr.domain.services.crafting import ForgeOutcome, MiningFind
from adr.domain.services.dice import rand_range, stat_roll


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


class StatAndDiceTests(unittest.TestCase):
    def test_stat_roll_stays_within_characteristic_range(self) -> None:
        rng = random.Random(1234)
        for _ in range(2000):
            value = stat_roll(rng, 3, 20)
            self.assertGreaterEqual(value, 3)
            self.assertLessEqual(value, 20)

    def test_stat_roll_drops_the_lowest_die(self) -> None:
        self.assertEqual(15, stat_roll(_ScriptedRandom(ints=[1, 5, 5, 5])))

    def test_rand_range_returns_lower_bound_for_degenerate_band(self) -> None:
        self.assertEqual(7, rand_range(7, 7, _ScriptedRandom(ints=[99])))
        self.assertEqual(7, rand_range(7, 3, _ScriptedRandom(ints=[99])))

    def test_modifiers(self) -> None:
        self.assertEqual(-1, ability_modifier(9))
        self.assertEqual(2, ability_modifier(14))
        self.assertEqual(0, combat_modifier(11))
        self.assertEqual(1, combat_modifier(12))
        self.assertEqual(3, combat_modifier(17))


class LevelingTests(unittest.TestCase):
    def test_first_level_threshold_is_one_hundred_for_any_penalty(self) -> None:
        for penalty in (1, 10, 25, 100):
            self.assertEqual(100, leveling.xp_for_level(1, penalty))

    def test_thresholds_strictly_increase(self) -> None:
        for penalty in (1, 10, 50):
            values = [leveling.xp_for_level(level, penalty) for level in range(1, 30)]
            self.assertEqual(sorted(set(values)), values)

    def test_level_up_and_remaining_xp(self) -> None:
        self.assertEqual(110, leveling.xp_for_level(2, 10))
        self.assertFalse(leveling.should_level_up(1, 109, 10))
        self.assertTrue(leveling.should_level_up(1, 110, 10))
        self.assertEqual(10, leveling.xp_to_next_level(1, 100, 10))

    def test_starting_pools_have_floors(self) -> None:
        self.assertEqual(10, leveling.starting_hp(3, -20, 0))
        self.assertEqual(27, leveling.starting_hp(14, 0, 10))
        self.assertEqual(5, leveling.starting_mp(3, -10, 0))
        self.assertEqual(21, leveling.starting_mp(12, 0, 12))

    def test_skill_level_never_drops(self) -> None:
        self.assertEqual(4, leveling.skill_level_after_use(4, 12, 10))
        self.assertEqual(2, leveling.skill_level_after_use(1, 20, 10))


class EconomyTests(unittest.TestCase):
    def test_buy_and_sell_prices(self) -> None:
        self.assertEqual(80, economy.buy_price(100, 20))
        self.assertEqual(60, economy.sell_price(100, 20))
        self.assertEqual(1, economy.buy_price(1, 30))

    def test_trading_modifier_is_capped(self) -> None:
        self.assertEqual(0, economy.trading_modifier(8, 0))
        self.assertEqual(7, economy.trading_modifier(16, 2, 2))
        self.assertEqual(30, economy.trading_modifier(20, 50, 2, 30))

    def test_tax_is_floored(self) -> None:
        self.assertEqual(5, economy.percentage_tax(59, 10))
        self.assertEqual(0, economy.percentage_tax(9, 10))

    def test_interest_is_zero_before_a_full_period(self) -> None:
        self.assertEqual(0, economy.calculate_interest(1000, 4, 86399, 86400))
        self.assertEqual(40, economy.calculate_interest(1000, 4, 86400, 86400))

    def test_interest_is_non_decreasing_in_elapsed_time(self) -> None:
        previous = 0
        for elapsed in range(0, 86400 * 12, 3600 * 7):
            value = economy.calculate_interest(2500, 4, elapsed, 86400)
            self.assertGreaterEqual(value, previous)
            previous = value

    def test_loan_interest_is_simple(self) -> None:
        self.assertEqual(300, economy.calculate_loan_interest(1000, 15, 2 * 864000, 864000))
        self.assertEqual(0, economy.calculate_loan_interest(1000, 15, 863999, 864000))

    def test_stock_price_change_is_clamped(self) -> None:
        rising = _ScriptedRandom(floats=[0.999, 0.9])
        self.assertEqual(200, economy.stock_price_change(195, 0, 10, 80, 200, rising))
        falling = _ScriptedRandom(floats=[0.999, 0.1])
        self.assertEqual(80, economy.stock_price_change(82, 0, 10, 80, 200, falling))

    def test_weighted_average_price_is_floored(self) -> None:
        self.assertEqual(103, economy.weighted_average_price(2, 100, 1, 110))


class ThieveryTests(unittest.TestCase):
    def test_difficulty_tiers(self) -> None:
        tiers = ((50, 7), (100, 12), (200, 20), (350, 30), (500, 45), (800, 75), (1500, 100))
        self.assertEqual(7, thievery.theft_difficulty(50, tiers, 150))
        self.assertEqual(30, thievery.theft_difficulty(250, tiers, 150))
        self.assertEqual(150, thievery.theft_difficulty(1501, tiers, 150))
        self.assertEqual(20, thievery.scaled_difficulty(150))
        self.assertEqual(4, thievery.scaled_difficulty(30))

    def test_jail_sentence_and_bail_for_mid_priced_item(self) -> None:
        tiers = ((100, 300), (300, 900), (500, 1800), (1000, 3600))
        self.assertEqual(900, thievery.jail_duration(250, tiers, 7200))
        self.assertEqual(750, thievery.bail_cost(250, 3, 500))
        self.assertEqual(500, thievery.bail_cost(100, 3, 500))

    def test_fine_never_exceeds_gold(self) -> None:
        self.assertEqual(150, thievery.theft_fine(100, 2000, 150))
        self.assertEqual(2000, thievery.theft_fine(100, 2000, 5000))

    def test_steal_success_rate_rises_as_difficulty_falls(self) -> None:
        rates = []
        for difficulty in (150, 100, 75, 45, 30, 12):
            rng = random.Random(99)
            successes = sum(thievery.steal_check(1, 12, difficulty, rng) for _ in range(3000))
            rates.append(successes)
        self.assertEqual(sorted(rates), rates)
        self.assertLess(rates[0], rates[-1])

    def test_format_duration(self) -> None:
        self.assertEqual("45s", thievery.format_duration(45))
        self.assertEqual("5m", thievery.format_duration(300))
        self.assertEqual("2m 30s", thievery.format_duration(150))
        self.assertEqual("1h", thievery.format_duration(3600))
        self.assertEqual("1h 30m", thievery.format_duration(5400))


class CraftingTests(unittest.TestCase):
    def test_low_roll_is_always_a_critical_failure(self) -> None:
        self.assertEqual(ForgeOutcome.CRITICAL_FAILURE, crafting.classify_forging_roll(2, 0))
        self.assertEqual(ForgeOutcome.CRITICAL_FAILURE, crafting.classify_forging_roll(2, 10))
        self.assertEqual(ForgeOutcome.CRITICAL_FAILURE, crafting.forging_result(0, _ScriptedRandom(floats=[0.02])))

    def test_forging_success_band_follows_skill(self) -> None:
        self.assertEqual(ForgeOutcome.SUCCESS, crafting.classify_forging_roll(24, 0))
        self.assertEqual(ForgeOutcome.FAILURE, crafting.classify_forging_roll(25, 0))
        self.assertEqual(ForgeOutcome.SUCCESS, crafting.classify_forging_roll(89, 20))
        self.assertEqual(ForgeOutcome.FAILURE, crafting.classify_forging_roll(90, 20))

    def test_quality_buckets_at_skill_boundaries(self) -> None:
        self.assertEqual(6, crafting.classify_forge_quality(4.9, 10))
        self.assertEqual(5, crafting.classify_forge_quality(4.9, 9))
        self.assertEqual(5, crafting.classify_forge_quality(14.9, 7))
        self.assertEqual(4, crafting.classify_forge_quality(14.9, 6))
        self.assertEqual(4, crafting.classify_forge_quality(29.9, 5))
        self.assertEqual(3, crafting.classify_forge_quality(29.9, 4))
        self.assertEqual(3, crafting.classify_forge_quality(49.9, 3))
        self.assertEqual(2, crafting.classify_forge_quality(49.9, 2))
        self.assertEqual(2, crafting.classify_forge_quality(69.9, 10))
        self.assertEqual(1, crafting.classify_forge_quality(70, 10))

    def test_mining_finds(self) -> None:
        self.assertEqual(MiningFind.ORE, crafting.classify_mining_find(50, 0))
        self.assertEqual(MiningFind.GEM, crafting.classify_mining_find(5, 0))
        self.assertEqual(MiningFind.RARE, crafting.classify_mining_find(3, 2))
        self.assertEqual(MiningFind.GEM, crafting.classify_mining_find(4, 2))

    def test_success_thresholds_are_capped(self) -> None:
        self.assertEqual(35, crafting.mining_threshold(1))
        self.assertEqual(90, crafting.mining_threshold(50))
        self.assertEqual(85, crafting.stone_cutting_threshold(50))
        self.assertEqual(75, crafting.enchant_threshold(50))

    def test_repair_and_enchant_costs(self) -> None:
        self.assertEqual(0, crafting.repair_cost(100, 100, 100))
        self.assertEqual(15, crafting.repair_cost(100, 50, 100))
        self.assertEqual(1, crafting.repair_cost(2, 99, 100))
        self.assertEqual(90, crafting.enchant_cost(2, 50, 20))


class CombatMathTests(unittest.TestCase):
    def test_element_advantage_is_floored(self) -> None:
        self.assertEqual(12, combat_math.apply_element(10, Element.WATER, Element.FIRE))
        self.assertEqual(7, combat_math.apply_element(10, Element.FIRE, Element.WATER))
        self.assertEqual(10, combat_math.apply_element(10, Element.HOLY, Element.FIRE))

    def test_element_cycle(self) -> None:
        self.assertEqual(1.25, element_multiplier(Element.FIRE, Element.EARTH))
        self.assertEqual(1.25, element_multiplier(Element.EARTH, Element.WATER))
        self.assertEqual(1.0, element_multiplier(Element.WATER, Element.WATER))
        self.assertEqual(1.0, element_multiplier(0, Element.FIRE))
        self.assertEqual(1.0, element_multiplier(42, Element.FIRE))

    def test_natural_rolls_override_totals(self) -> None:
        self.assertFalse(combat_math.player_attack_roll(100, 0, 10, 1, 1, _ScriptedRandom(ints=[1])).hit)
        self.assertTrue(combat_math.player_attack_roll(1, 0, 1, 100, 10, _ScriptedRandom(ints=[20])).hit)
        self.assertTrue(combat_math.monster_attack_roll(1, 100, 10, _ScriptedRandom(ints=[20])).hit)

    def test_player_attack_compares_totals(self) -> None:
        self.assertTrue(combat_math.player_attack_roll(10, 0, 1, 15, 1, _ScriptedRandom(ints=[6])).hit)
        self.assertFalse(combat_math.player_attack_roll(10, 0, 1, 15, 1, _ScriptedRandom(ints=[5])).hit)

    def test_monster_uses_physical_attacks_without_mana(self) -> None:
        self.assertEqual(
            combat_math.MonsterAttackKind.PHYSICAL,
            combat_math.monster_decision(0, 1, _ScriptedRandom(ints=[20])),
        )
        self.assertEqual(
            combat_math.MonsterAttackKind.MAGIC,
            combat_math.monster_decision(5, 1, _ScriptedRandom(ints=[17])),
        )

    def test_flee_check_modes(self) -> None:
        self.assertTrue(combat_math.flee_check(_ScriptedRandom(floats=[0.3]), 40).success)
        self.assertFalse(combat_math.flee_check(_ScriptedRandom(floats=[0.4]), 40).success)
        self.assertTrue(combat_math.flee_check(_ScriptedRandom(ints=[12, 11])).success)
        self.assertFalse(combat_math.flee_check(_ScriptedRandom(ints=[11, 11])).success)
        self.assertFalse(combat_math.flee_check(_ScriptedRandom(ints=[1, 1])).success)

    def test_monster_scaling(self) -> None:
        self.assertEqual(1, combat_math.monster_scaling(3, 5, 150, 1))
        self.assertEqual(2.0, combat_math.monster_scaling(3, 1, 150, 1))
        self.assertEqual(3.0, combat_math.monster_scaling(3, 1, 150, 0))
        self.assertEqual(23, combat_math.scale_stat(15, 1.5))

    def test_monster_damage_is_at_least_one(self) -> None:
        damage = combat_math.monster_damage(
            1, True, combat_math.MonsterAttackKind.PHYSICAL, 10, 1, _ScriptedRandom(ints=[1, 2])
        )
        self.assertEqual(2, damage)

    def test_rewards_for_tougher_monsters_use_modifiers(self) -> None:
        roll = combat_math.calculate_rewards(
            5,
            2,
            10,
            _ScriptedRandom(),
            exp_min=10,
            exp_max=40,
            exp_modifier=120,
            reward_min=10,
            reward_max=40,
            reward_modifier=120,
            sp_modifier=120,
        )
        self.assertEqual((3, 3, 12), (roll.xp, roll.gold, roll.sp))

    def test_rewards_for_even_fights_roll_the_band(self) -> None:
        roll = combat_math.calculate_rewards(
            2,
            2,
            7,
            _ScriptedRandom(ints=[25, 33]),
            exp_min=10,
            exp_max=40,
            exp_modifier=120,
            reward_min=10,
            reward_max=40,
            reward_modifier=120,
            sp_modifier=120,
        )
        self.assertEqual((25, 33, 7), (roll.xp, roll.gold, roll.sp))


if __name__ == "__main__":
    unittest.main()
