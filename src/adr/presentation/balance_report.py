from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adr.application.dtos import BattleTurnRequest, StartBattleRequest
from adr.application.services.battle_service import BattleService
from adr.bootstrap import GameEngine
from adr.domain.models.battle import BattleAction, BattleStatus
from adr.domain.models.character import Character
from adr.domain.models.game_config import GameConfig
from adr.domain.services import economy
from adr.domain.services.leveling import xp_for_level


MAX_SIMULATED_TURNS = 200


@dataclass(frozen=True)
class BattleSummary:
    monster_name: str
    monster_level: int
    battles: int
    won: int
    lost: int
    fled: int
    average_turns: float


def sample_character(level: int) -> Character:
    """A plain level-N fighter; the report only needs comparable numbers."""
    hp = 20 + 3 * (level - 1)
    return Character(id=1, user_id=1, name="Sparring Dummy", level=level, might=14, constitution=14, hp=hp, hp_max=hp)


def simulate_battles(battles: BattleService, monster_id: int, level: int, count: int) -> BattleSummary:
    monster = battles.reference.get_monster(monster_id)
    outcomes: Counter = Counter()
    turns = 0
    for _ in range(count):
        start = battles.start_battle(sample_character(level), StartBattleRequest(monster_id=monster_id))
        character, session = start.character, start.session
        while session.is_active and session.turn < MAX_SIMULATED_TURNS:
            result = battles.take_turn(character, session, BattleTurnRequest(BattleAction.ATTACK))
            character, session = result.character, result.session
        outcomes[session.status] += 1
        turns += session.turn
    return BattleSummary(
        monster_name=monster.name,
        monster_level=monster.level,
        battles=count,
        won=outcomes[BattleStatus.WON],
        lost=outcomes[BattleStatus.LOST],
        fled=outcomes[BattleStatus.FLED],
        average_turns=turns / count if count else 0.0,
    )


def xp_curve_table(config: GameConfig, levels: int = 10) -> Table:
    table = Table(title="Experience curve", show_header=True, header_style="bold yellow")
    table.add_column("Level", justify="right")
    table.add_column("XP to next", justify="right")
    for level in range(1, levels + 1):
        table.add_row(str(level), str(xp_for_level(level, config.next_level_penalty)))
    return table


def trading_table(config: GameConfig, prices: Sequence[int] = (50, 100, 300, 1000)) -> Table:
    table = Table(title="Trading prices", show_header=True, header_style="bold yellow")
    table.add_column("Base", justify="right")
    table.add_column("CHA", justify="right")
    table.add_column("Trading", justify="right")
    table.add_column("Buy", justify="right")
    table.add_column("Sell (after tax)", justify="right")
    for price in prices:
        for charisma, skill in ((10, 0), (16, 3), (20, 10)):
            modifier = economy.trading_modifier(charisma, skill, config.skill_trading_power, config.trading_modifier_cap)
            sale = economy.sell_price(price, modifier)
            table.add_row(
                str(price),
                str(charisma),
                str(skill),
                str(economy.buy_price(price, modifier)),
                str(sale - economy.percentage_tax(sale, config.shop_tax)),
            )
    return table


def battle_table(summaries: List[BattleSummary]) -> Table:
    table = Table(title="Simulated battles", show_header=True, header_style="bold yellow")
    table.add_column("Monster")
    table.add_column("Lvl", justify="right")
    table.add_column("Won", justify="right")
    table.add_column("Lost", justify="right")
    table.add_column("Fled", justify="right")
    table.add_column("Avg turns", justify="right")
    for row in summaries:
        table.add_row(
            row.monster_name,
            str(row.monster_level),
            f"{row.won}/{row.battles}",
            str(row.lost),
            str(row.fled),
            f"{row.average_turns:.1f}",
        )
    return table


def render_balance_report(engine: GameEngine, battles_per_monster: int = 20, console: Optional[Console] = None) -> None:
    console = console or Console()
    config = engine.config
    console.print(
        Panel.fit(
            f"Monster stats modifier {config.monster_stats_modifier}% | "
            f"shop tax {config.shop_tax}% | interest {config.interest_rate}% per {config.interest_time}s",
            title="Balance report",
        )
    )
    console.print(xp_curve_table(config))
    console.print(trading_table(config))
    summaries = [
        simulate_battles(engine.battles, monster.id, monster.level, battles_per_monster)
        for monster in engine.reference.list_monsters()
    ]
    console.print(battle_table(summaries))
