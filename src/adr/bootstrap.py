from __future__ import annotations

import json
import logging
import os
import random
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from adr.application.services.accrual_service import AccrualService
from adr.application.services.battle_service import BattleService
from adr.application.services.character_creation_service import CharacterCreationService
from adr.application.services.event_bus import EventBus
from adr.application.services.forge_service import ForgeService
from adr.application.services.inventory_service import InventoryService
from adr.application.services.reward_service import RewardService
from adr.application.services.shop_service import ShopService
from adr.application.services.thief_service import ThiefService
from adr.application.services.town_service import TownService
from adr.application.services.vault_service import VaultService
from adr.domain.errors import ConfigurationError
from adr.domain.models.game_config import GameConfig
from adr.infrastructure.inmemory.reference_data import InMemoryReferenceData, default_stock_market
from adr.infrastructure.inmemory.snapshot_store import InMemorySnapshotStore


logger = logging.getLogger(__name__)


def load_game_config_from_env(prefix: str = "ADR_", environ: Optional[Mapping[str, str]] = None) -> GameConfig:
    """Overlay ``<prefix><OPTION>`` environment variables on the default config.

    Tier tables are read as JSON lists of ``[max_price, value]`` pairs.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for option in fields(GameConfig):
        raw = environ.get(f"{prefix}{option.name.upper()}")
        if raw is None:
            continue
        if isinstance(option.default, tuple):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                logger.error("Invalid game configuration", extra={"option": option.name})
                raise ConfigurationError(f"{option.name} expects a JSON list of pairs.", {"option": option.name}) from exc
        values[option.name] = raw
    try:
        return GameConfig.from_mapping(values)
    except ConfigurationError as exc:
        logger.error("Invalid game configuration", extra={"option": exc.details.get("option")})
        raise


@dataclass
class GameEngine:
    config: GameConfig
    reference: InMemoryReferenceData
    store: Any
    event_bus: EventBus
    rng: random.Random
    battles: BattleService
    rewards: RewardService
    accrual: AccrualService
    shops: ShopService
    inventory: InventoryService
    thief: ThiefService
    vault: VaultService
    forge: ForgeService
    town: TownService
    creation: CharacterCreationService


def _build_sql_store(database_url: str, reference: InMemoryReferenceData):
    from adr.infrastructure.db.connection import build_engine, build_session_factory
    from adr.infrastructure.db.snapshot_store import SqlSnapshotStore, create_schema

    engine = build_engine(database_url)
    create_schema(engine)
    store = SqlSnapshotStore(build_session_factory(engine))
    store.seed(reference.default_shops(), default_stock_market())
    logger.info("Using SQL snapshot store", extra={"dialect": engine.dialect.name})
    return store


def create_game_engine(
    config: Optional[GameConfig] = None,
    seed: Optional[int] = None,
    database_url: Optional[str] = None,
    store=None,
) -> GameEngine:
    """Wire every resolver around one config, one RNG, one event bus and one snapshot store.

    Without an explicit store, ``ADR_DATABASE_URL`` selects the SQL store and
    its absence the in-memory one.
    """
    config = config or load_game_config_from_env()
    if seed is None and os.getenv("ADR_RNG_SEED"):
        seed = int(os.getenv("ADR_RNG_SEED", "0"))
    rng = random.Random(seed)
    reference = InMemoryReferenceData()
    if store is None:
        url = database_url if database_url is not None else os.getenv("ADR_DATABASE_URL")
        if url:
            store = _build_sql_store(url, reference)
        else:
            store = InMemorySnapshotStore(shops=reference.default_shops(), market=default_stock_market())

    event_bus = EventBus()
    rewards = RewardService(reference, config, rng, allocate_item_id=store.next_item_id)
    accrual = AccrualService(config, rng, event_bus=event_bus, allocate_record_id=store.next_jail_id)
    return GameEngine(
        config=config,
        reference=reference,
        store=store,
        event_bus=event_bus,
        rng=rng,
        battles=BattleService(
            reference,
            config,
            rng,
            reward_service=rewards,
            event_bus=event_bus,
            allocate_item_id=store.next_item_id,
        ),
        rewards=rewards,
        accrual=accrual,
        shops=ShopService(config, allocate_item_id=store.next_item_id),
        inventory=InventoryService(config),
        thief=ThiefService(config, rng, accrual, allocate_item_id=store.next_item_id),
        vault=VaultService(config, accrual),
        forge=ForgeService(reference, config, rng, allocate_item_id=store.next_item_id, event_bus=event_bus),
        town=TownService(reference, config),
        creation=CharacterCreationService(reference, config, rng, allocate_item_id=store.next_item_id),
    )
