from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional, Sequence

from adr.application.dtos import (
    BattleStartResult,
    BattleTurnRequest,
    BattleTurnResult,
    StartBattleRequest,
    VictoryRewards,
)
from adr.application.services.equipment import calculate_equipment_bonuses, wear_equipment
from adr.application.services.event_bus import EventBus
from adr.application.services.reward_service import RewardService
from adr.application.services.rules import (
    consume_counter,
    require_counter,
    working_copy,
)
from adr.domain.errors import ConfigurationError, NoActiveBattle, StateConflict, ValidationError
from adr.domain.events import BattleEnded, BattleStarted, LevelUpApplied
from adr.domain.models.battle import (
    BattleAction,
    BattleSession,
    BattleStatus,
    CombatantState,
    TurnLogEntry,
)
from adr.domain.models.character import Character, DailyCounter
from adr.domain.models.game_config import GameConfig
from adr.domain.models.monster import MonsterTemplate
from adr.domain.repositories import ReferenceDataProvider
from adr.domain.services import combat_math
from adr.domain.services.combat_math import MonsterAttackKind
from adr.domain.services.dice import rand_range


logger = logging.getLogger(__name__)

MonsterPicker = Callable[[Sequence[MonsterTemplate], int, random.Random], MonsterTemplate]


def level_proximity_picker(window: int = 0) -> MonsterPicker:
    """Pick among monsters at or below the player's level.

    With ``window`` 0 every candidate is equally likely. Otherwise a monster
    ``gap`` levels below the player weighs ``max(1, window + 1 - gap)``.
    """

    def _pick(candidates: Sequence[MonsterTemplate], player_level: int, rng: random.Random) -> MonsterTemplate:
        pool = list(candidates)
        if window <= 0:
            return rng.choice(pool)
        weights = [max(1, window + 1 - (player_level - monster.level)) for monster in pool]
        return rng.choices(pool, weights=weights, k=1)[0]

    return _pick


class BattleService:
    def __init__(
        self,
        reference: ReferenceDataProvider,
        config: GameConfig,
        rng: random.Random,
        reward_service: Optional[RewardService] = None,
        event_bus: Optional[EventBus] = None,
        monster_picker: Optional[MonsterPicker] = None,
        allocate_item_id: Optional[Callable[[], int]] = None,
    ) -> None:
        self.reference = reference
        self.config = config
        self.rng = rng
        self.reward_service = reward_service or RewardService(reference, config, rng, allocate_item_id)
        self.event_bus = event_bus
        self.monster_picker = monster_picker or level_proximity_picker(config.monster_level_window)

    def start_battle(
        self,
        character: Character,
        request: StartBattleRequest = StartBattleRequest(),
        active_session: Optional[BattleSession] = None,
    ) -> BattleStartResult:
        if not self.config.battle_enable:
            raise StateConflict("Battles are disabled.")
        if character.is_battling or (active_session is not None and active_session.is_active):
            raise StateConflict("Already in battle!", {"character_id": character.id})
        if character.is_dead:
            raise StateConflict("Your character is dead! Visit the temple to resurrect.", {"character_id": character.id})
        require_counter(character, DailyCounter.BATTLE, self.config)
        if character.hp <= 0:
            raise StateConflict("You have no HP! Visit the temple to heal.", {"character_id": character.id})

        monster = self._select_monster(character, request.monster_id)
        working = working_copy(character)

        scaling = combat_math.monster_scaling(
            working.level,
            monster.level,
            self.config.monster_stats_modifier,
            self.config.battle_calc_type,
        )
        scaled_hp = combat_math.scale_stat(monster.hp, scaling)
        scaled_mp = combat_math.scale_stat(monster.mp, scaling)
        monster_state = CombatantState(
            hp=scaled_hp,
            hp_max=scaled_hp,
            mp=scaled_mp,
            mp_max=scaled_mp,
            attack=combat_math.scale_stat(monster.attack, scaling),
            defense=combat_math.scale_stat(monster.defense, scaling),
            magic_attack=combat_math.scale_stat(monster.magic_attack, scaling),
            magic_defense=combat_math.scale_stat(monster.magic_resistance, scaling),
            element_id=monster.element_id,
        )

        bonuses = calculate_equipment_bonuses(working)
        attack = combat_math.physical_attack(working.might, working.constitution)
        player_state = CombatantState(
            hp=working.hp_max,
            hp_max=working.hp_max,
            mp=working.mp_max,
            mp_max=working.mp_max,
            attack=attack,
            defense=combat_math.physical_defense(working.ac, working.dexterity) + bonuses.defense,
            magic_attack=combat_math.magic_attack(working.intelligence) + bonuses.magic_attack,
            magic_defense=combat_math.magic_defense(working.wisdom) + bonuses.magic_defense,
            element_id=working.element_id,
        )
        armed = bonuses.weapon_power > 0

        consume_counter(working, DailyCounter.BATTLE)
        working.is_battling = True
        wear_equipment(working)

        session = BattleSession(
            character_id=working.id,
            monster_id=monster.id,
            monster_name=monster.name,
            monster_level=monster.level,
            player=player_state,
            monster=monster_state,
            monster_mp_power=monster.mp_power,
            monster_sp=combat_math.scale_stat(monster.sp, scaling),
            monster_spell=monster.custom_spell,
            weapon_power=bonuses.weapon_power if armed else max(1, attack // 2),
            crit_range=bonuses.crit_range if armed else 20,
            crit_multiplier=bonuses.crit_multiplier if armed else 2,
            weapon_element=bonuses.weapon_element,
            hp_regen=bonuses.hp_regen,
            mp_regen=bonuses.mp_regen,
            status=BattleStatus.IN_PROGRESS,
            turn=0,
            started_at=int(request.now),
        )
        logger.info(
            "Battle started",
            extra={"character_id": working.id, "monster_id": monster.id, "scaling": scaling},
        )
        self._publish([BattleStarted(character_id=working.id, monster_id=monster.id, monster_level=monster.level)])
        return BattleStartResult(character=working, session=session, monster=monster, scaling=scaling)

    def take_turn(
        self,
        character: Character,
        session: Optional[BattleSession],
        request: BattleTurnRequest,
    ) -> BattleTurnResult:
        if session is None or not session.is_active:
            raise NoActiveBattle("No active battle.", {"character_id": character.id})
        if session.character_id != character.id:
            raise ValidationError(
                "Battle belongs to another character.",
                {"character_id": character.id, "session_character_id": session.character_id},
            )
        monster = self.reference.get_monster(session.monster_id)
        if monster is None:
            raise ConfigurationError(f"Unknown monster {session.monster_id}.", {"monster_id": session.monster_id})

        working = working_copy(character)
        battle = working_copy(session)
        turn = _TurnOutcome(action=request.action)
        battle.player_defending = False

        if request.action == BattleAction.FLEE:
            flee = combat_math.flee_check(self.rng, self.config.flee_chance)
            if flee.success:
                turn.messages.append(f"{working.name} flees from {battle.monster_name}!")
                battle.status = BattleStatus.FLED
                working.flees += 1
                return self._finish(working, battle, monster, turn)
            turn.messages.append(f"{working.name} tries to flee but {battle.monster_name} blocks the way!")
        elif request.action == BattleAction.ATTACK:
            self._player_attack(working, battle, turn)
        else:
            battle.player_defending = True
            turn.messages.append(f"{working.name} takes a defensive stance against {battle.monster_name}.")

        if battle.monster.hp <= 0:
            battle.status = BattleStatus.WON
            turn.messages.append(f"{working.name} defeated {battle.monster_name}!")
            return self._finish(working, battle, monster, turn)

        self._monster_attack(working, battle, turn)

        if battle.player.hp <= 0:
            battle.status = BattleStatus.LOST
            turn.messages.append(f"{working.name} was defeated by {battle.monster_name}!")
            return self._finish(working, battle, monster, turn)

        battle.player.hp = min(battle.player.hp_max, battle.player.hp + battle.hp_regen)
        battle.player.mp = min(battle.player.mp_max, battle.player.mp + battle.mp_regen)
        entry = self._record(battle, turn)
        return BattleTurnResult(character=working, session=battle, entry=entry)

    def _select_monster(self, character: Character, monster_id: Optional[int]) -> MonsterTemplate:
        if monster_id is not None:
            monster = self.reference.get_monster(monster_id)
            if monster is None:
                raise ValidationError(f"Unknown monster {monster_id}.", {"monster_id": monster_id})
            return monster
        candidates = [monster for monster in self.reference.list_monsters() if monster.level <= character.level]
        if not candidates:
            raise StateConflict("No suitable monsters found.", {"level": character.level})
        return self.monster_picker(candidates, character.level, self.rng)

    def _player_attack(self, character: Character, battle: BattleSession, turn: "_TurnOutcome") -> None:
        roll = combat_math.player_attack_roll(
            battle.player.attack, 0, character.level, battle.monster.defense, battle.monster_level, self.rng
        )
        if not roll.hit:
            turn.messages.append(f"{character.name} attacks {battle.monster_name} but misses!")
            return

        damage = rand_range(1, battle.weapon_power, self.rng)
        if roll.roll >= battle.crit_range:
            turn.player_crit = combat_math.crit_confirm(
                battle.player.attack,
                0,
                character.level,
                battle.monster.defense,
                battle.monster_level,
                battle.crit_range,
                self.rng,
            )
        attack_element = battle.weapon_element or battle.player.element_id
        damage = combat_math.apply_element(damage, attack_element, battle.monster.element_id)
        if turn.player_crit:
            damage *= battle.crit_multiplier
            turn.messages.append("CRITICAL HIT!")
        if damage < 1:
            damage = rand_range(1, 3, self.rng)
        damage = min(damage, battle.monster.hp)

        battle.monster.hp -= damage
        turn.player_hit = True
        turn.player_damage = damage
        turn.messages.append(f"{character.name} attacks {battle.monster_name} for {damage} damage!")

    def _monster_attack(self, character: Character, battle: BattleSession, turn: "_TurnOutcome") -> None:
        monster_str = combat_math.monster_combat_stat(battle.monster_level, self.rng)
        monster_int = combat_math.monster_combat_stat(battle.monster_level, self.rng)
        kind = combat_math.monster_decision(battle.monster.mp, battle.monster_mp_power, self.rng)
        turn.monster_acted = True
        turn.monster_used_magic = kind == MonsterAttackKind.MAGIC

        if kind == MonsterAttackKind.MAGIC:
            roll = combat_math.magic_attack_roll(battle.monster_mp_power, monster_int, character.wisdom, self.rng)
            battle.monster.mp -= battle.monster_mp_power
            if not roll.hit:
                turn.messages.append(f"{battle.monster_name} tries to cast {battle.monster_spell} but fails!")
                return
            damage = combat_math.monster_damage(
                battle.monster_level, battle.player_defending, kind, monster_str, battle.monster_mp_power, self.rng
            )
            damage = combat_math.apply_element(damage, battle.monster.element_id, battle.player.element_id)
            turn.messages.append(f"{battle.monster_name} casts {battle.monster_spell}!")
        else:
            roll = combat_math.monster_attack_roll(
                battle.monster.attack, battle.player.defense, character.dexterity, self.rng
            )
            if not roll.hit:
                turn.messages.append(f"{battle.monster_name} attacks {character.name} but misses!")
                return
            damage = combat_math.monster_damage(
                battle.monster_level, battle.player_defending, kind, monster_str, battle.monster_mp_power, self.rng
            )
            turn.messages.append(f"{battle.monster_name} attacks {character.name}!")

        if roll.roll >= combat_math.NATURAL_HIT:
            damage *= 2
            turn.monster_crit = True
        # The opening exchange never kills.
        if battle.turn == 0 and battle.player.hp - damage < 1:
            damage = battle.player.hp - 1
        damage = min(max(1, damage), battle.player.hp)

        battle.player.hp -= damage
        turn.monster_damage = damage
        turn.messages.append(f"{battle.monster_name} deals {damage} damage to {character.name}!")

    def _finish(
        self,
        character: Character,
        battle: BattleSession,
        monster: MonsterTemplate,
        turn: "_TurnOutcome",
    ) -> BattleTurnResult:
        character.is_battling = False
        character.hp = max(0, battle.player.hp)
        character.mp = max(0, battle.player.mp)
        rewards: Optional[VictoryRewards] = None
        events: List[object] = []

        if battle.status == BattleStatus.WON:
            battle.winner = "player"
            character.victories += 1
            rewards = self.reward_service.grant_victory(character, battle, monster)
            battle.player.hp = character.hp
            battle.player.mp = character.mp
            turn.messages.append(f"Earned {rewards.xp} XP, {rewards.gold} gold, {rewards.sp} SP!")
            for level_up in rewards.level_ups:
                turn.messages.append(f"LEVEL UP! You are now level {level_up.to_level}!")
                events.append(
                    LevelUpApplied(
                        character_id=character.id,
                        from_level=level_up.from_level,
                        to_level=level_up.to_level,
                        hp_gain=level_up.hp_gain,
                        mp_gain=level_up.mp_gain,
                    )
                )
            if rewards.dropped_item is not None:
                turn.messages.append(f"{battle.monster_name} dropped {rewards.dropped_item.name}!")
        elif battle.status == BattleStatus.LOST:
            battle.winner = "monster"
            character.hp = 0
            character.is_dead = True
            character.defeats += 1
            turn.messages.append("Visit the temple to resurrect.")

        entry = self._record(battle, turn)
        logger.info(
            "Battle finished",
            extra={
                "character_id": character.id,
                "monster_id": battle.monster_id,
                "status": battle.status.value,
                "turns": battle.turn,
            },
        )
        events.insert(
            0,
            BattleEnded(
                character_id=character.id,
                monster_id=battle.monster_id,
                status=battle.status.value,
                turns=battle.turn,
            ),
        )
        self._publish(events)
        return BattleTurnResult(character=character, session=battle, entry=entry, rewards=rewards)

    @staticmethod
    def _record(battle: BattleSession, turn: "_TurnOutcome") -> TurnLogEntry:
        entry = TurnLogEntry(
            turn=battle.turn,
            action=turn.action,
            player_hit=turn.player_hit,
            player_damage=turn.player_damage,
            player_crit=turn.player_crit,
            monster_acted=turn.monster_acted,
            monster_used_magic=turn.monster_used_magic,
            monster_damage=turn.monster_damage,
            monster_crit=turn.monster_crit,
            player_hp=battle.player.hp,
            player_mp=battle.player.mp,
            monster_hp=battle.monster.hp,
            monster_mp=battle.monster.mp,
            battle_over=battle.is_terminal,
            status=battle.status,
            messages=tuple(turn.messages),
        )
        battle.log.append(entry)
        battle.turn += 1
        return entry

    def _publish(self, events: List[object]) -> None:
        if self.event_bus is not None and events:
            self.event_bus.publish_all(events)


class _TurnOutcome:
    def __init__(self, action: BattleAction) -> None:
        self.action = action
        self.player_hit = False
        self.player_damage = 0
        self.player_crit = False
        self.monster_acted = False
        self.monster_used_magic = False
        self.monster_damage = 0
        self.monster_crit = False
        self.messages: List[str] = []
