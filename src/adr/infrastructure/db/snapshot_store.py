from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Set

from sqlalchemy import text
from sqlalchemy.engine import Engine

from adr.domain.errors import StateConflict, ValidationError
from adr.domain.models.character import Character
from adr.domain.models.item import Shop
from adr.domain.models.vault import StockMarket
from adr.infrastructure.db import codec
from adr.infrastructure.inmemory.snapshot_store import FIRST_INSTANCE_ID, GameSnapshot, SharedEntity


logger = logging.getLogger(__name__)

MARKET_ROW_ID = 1

_TABLES = (
    ("adr_user", "user_id BIGINT PRIMARY KEY"),
    ("adr_character", "character_id BIGINT PRIMARY KEY, user_id BIGINT NOT NULL, payload_json {payload} NOT NULL"),
    ("adr_battle_session", "character_id BIGINT PRIMARY KEY, payload_json {payload} NOT NULL"),
    ("adr_jail_record", "record_id BIGINT PRIMARY KEY, user_id BIGINT NOT NULL, payload_json {payload} NOT NULL"),
    ("adr_vault_account", "user_id BIGINT PRIMARY KEY, payload_json {payload} NOT NULL"),
    ("adr_shop", "shop_id BIGINT PRIMARY KEY, payload_json {payload} NOT NULL"),
    ("adr_stock_market", "market_id BIGINT PRIMARY KEY, payload_json {payload} NOT NULL"),
    ("adr_id_sequence", "name VARCHAR(32) PRIMARY KEY, next_value BIGINT NOT NULL"),
)


def create_schema(engine: Engine) -> None:
    payload_type = "LONGTEXT" if engine.dialect.name == "mysql" else "TEXT"
    with engine.begin() as conn:
        for table_name, columns in _TABLES:
            conn.execute(text(f"CREATE TABLE IF NOT EXISTS {table_name} ({columns.format(payload=payload_type)})"))


def _dialect(session) -> str:
    return session.bind.dialect.name if session.bind is not None else "mysql"


def _lock_clause(session) -> str:
    # SQLite has no row locks; its single writer already serialises transactions.
    return " FOR UPDATE" if _dialect(session) in {"mysql", "postgresql"} else ""


def _upsert(session, table_name: str, values: Dict[str, Any], key_columns: Sequence[str]) -> None:
    columns = ", ".join(values)
    placeholders = ", ".join(f":{name}" for name in values)
    updates = [name for name in values if name not in key_columns]
    if _dialect(session) == "mysql":
        assignments = ", ".join(f"{name} = VALUES({name})" for name in updates)
        statement = f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders}) ON DUPLICATE KEY UPDATE {assignments}"
    else:
        assignments = ", ".join(f"{name} = excluded.{name}" for name in updates)
        statement = (
            f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(key_columns)}) DO UPDATE SET {assignments}"
        )
    session.execute(text(statement), values)


class SqlSnapshotStore:
    """Snapshot store over SQLAlchemy sessions with the same surface as ``InMemorySnapshotStore``.

    Nested scopes on one thread (a shop lock or an id allocation inside a
    character transaction) join the outer session, so everything commits or
    rolls back together.
    """

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory
        self._local = threading.local()

    def _held_users(self) -> Set[int]:
        held = getattr(self._local, "users", None)
        if held is None:
            held = self._local.users = set()
        return held

    @contextmanager
    def _session_scope(self) -> Iterator[Any]:
        active = getattr(self._local, "session", None)
        if active is not None:
            yield active
            return
        with self.session_factory.begin() as session:
            self._local.session = session
            try:
                yield session
            finally:
                self._local.session = None

    def seed(self, shops: Iterable[Shop] = (), market: Optional[StockMarket] = None) -> None:
        """Insert shops and the stock market unless rows for them already exist."""
        with self._session_scope() as session:
            for shop in shops:
                exists = session.execute(
                    text("SELECT shop_id FROM adr_shop WHERE shop_id = :sid"), {"sid": shop.id}
                ).first()
                if exists is None:
                    session.execute(
                        text("INSERT INTO adr_shop (shop_id, payload_json) VALUES (:sid, :payload)"),
                        {"sid": shop.id, "payload": codec.dumps(shop)},
                    )
            if market is not None:
                exists = session.execute(
                    text("SELECT market_id FROM adr_stock_market WHERE market_id = :mid"), {"mid": MARKET_ROW_ID}
                ).first()
                if exists is None:
                    session.execute(
                        text("INSERT INTO adr_stock_market (market_id, payload_json) VALUES (:mid, :payload)"),
                        {"mid": MARKET_ROW_ID, "payload": codec.dumps(market)},
                    )

    def add_character(self, character: Character) -> None:
        with self._session_scope() as session:
            existing = session.execute(
                text("SELECT character_id FROM adr_character WHERE character_id = :cid"),
                {"cid": character.id},
            ).first()
            if existing is not None:
                raise StateConflict("Character already exists.", {"character_id": character.id})
            user = session.execute(
                text("SELECT user_id FROM adr_user WHERE user_id = :uid"), {"uid": character.user_id}
            ).first()
            if user is None:
                session.execute(text("INSERT INTO adr_user (user_id) VALUES (:uid)"), {"uid": character.user_id})
            session.execute(
                text("INSERT INTO adr_character (character_id, user_id, payload_json) VALUES (:cid, :uid, :payload)"),
                {"cid": character.id, "uid": character.user_id, "payload": codec.dumps(character)},
            )

    def get_character(self, character_id: int) -> Optional[Character]:
        with self.session_factory() as session:
            row = session.execute(
                text("SELECT payload_json FROM adr_character WHERE character_id = :cid"),
                {"cid": int(character_id)},
            ).first()
        return codec.character_from_json(row.payload_json) if row is not None else None

    def get_shop(self, shop_id: int) -> Optional[Shop]:
        with self.session_factory() as session:
            row = session.execute(
                text("SELECT payload_json FROM adr_shop WHERE shop_id = :sid"),
                {"sid": int(shop_id)},
            ).first()
        return codec.shop_from_json(row.payload_json) if row is not None else None

    def get_market(self) -> StockMarket:
        with self.session_factory() as session:
            row = session.execute(
                text("SELECT payload_json FROM adr_stock_market WHERE market_id = :mid"),
                {"mid": MARKET_ROW_ID},
            ).first()
        return codec.stock_market_from_json(row.payload_json) if row is not None else StockMarket()

    def next_item_id(self) -> int:
        return self._next_value("item", FIRST_INSTANCE_ID)

    def next_jail_id(self) -> int:
        return self._next_value("jail", 1)

    @contextmanager
    def transaction(self, character_id: int) -> Iterator[GameSnapshot]:
        character_id = int(character_id)
        with self._session_scope() as session:
            lock = _lock_clause(session)
            owner = session.execute(
                text("SELECT user_id FROM adr_character WHERE character_id = :cid"),
                {"cid": character_id},
            ).first()
            if owner is None:
                raise ValidationError("Character not found.", {"character_id": character_id})
            user_id = int(owner.user_id)
            held = self._held_users()
            if user_id in held:
                raise StateConflict(
                    "A transaction for this user is already open.", {"character_id": character_id, "user_id": user_id}
                )
            # User row first: vault and jail rows are shared by the user's characters.
            session.execute(text(f"SELECT user_id FROM adr_user WHERE user_id = :uid{lock}"), {"uid": user_id})
            row = session.execute(
                text(f"SELECT payload_json FROM adr_character WHERE character_id = :cid{lock}"),
                {"cid": character_id},
            ).first()
            character = codec.character_from_json(row.payload_json)
            held.add(user_id)
            try:
                snapshot = GameSnapshot(
                    character=character,
                    battle_session=self._load_session(session, character_id),
                    vault_account=self._load_account(session, user_id),
                    jail_records=self._load_jail_records(session, user_id),
                )
                try:
                    yield snapshot
                except Exception:
                    logger.warning("Character transaction rolled back", extra={"character_id": character_id})
                    raise
                self._write_snapshot(session, character_id, snapshot)
            finally:
                held.discard(user_id)

    @contextmanager
    def lock_shop(self, shop_id: int) -> Iterator[SharedEntity]:
        with self._session_scope() as session:
            row = session.execute(
                text(f"SELECT payload_json FROM adr_shop WHERE shop_id = :sid{_lock_clause(session)}"),
                {"sid": int(shop_id)},
            ).first()
            if row is None:
                raise ValidationError("Shop not found.", {"shop_id": int(shop_id)})
            held = SharedEntity(codec.shop_from_json(row.payload_json))
            yield held
            _upsert(session, "adr_shop", {"shop_id": int(shop_id), "payload_json": codec.dumps(held.value)}, ("shop_id",))

    @contextmanager
    def lock_market(self) -> Iterator[SharedEntity]:
        with self._session_scope() as session:
            row = session.execute(
                text(f"SELECT payload_json FROM adr_stock_market WHERE market_id = :mid{_lock_clause(session)}"),
                {"mid": MARKET_ROW_ID},
            ).first()
            market = codec.stock_market_from_json(row.payload_json) if row is not None else StockMarket()
            held = SharedEntity(market)
            yield held
            _upsert(
                session,
                "adr_stock_market",
                {"market_id": MARKET_ROW_ID, "payload_json": codec.dumps(held.value)},
                ("market_id",),
            )

    def _next_value(self, name: str, start: int) -> int:
        with self._session_scope() as session:
            row = session.execute(
                text(f"SELECT next_value FROM adr_id_sequence WHERE name = :name{_lock_clause(session)}"),
                {"name": name},
            ).first()
            value = int(row.next_value) if row is not None else int(start)
            _upsert(session, "adr_id_sequence", {"name": name, "next_value": value + 1}, ("name",))
        return value

    @staticmethod
    def _load_session(session, character_id: int):
        row = session.execute(
            text("SELECT payload_json FROM adr_battle_session WHERE character_id = :cid"),
            {"cid": character_id},
        ).first()
        return codec.battle_session_from_json(row.payload_json) if row is not None else None

    @staticmethod
    def _load_account(session, user_id: int):
        row = session.execute(
            text("SELECT payload_json FROM adr_vault_account WHERE user_id = :uid"),
            {"uid": user_id},
        ).first()
        return codec.vault_account_from_json(row.payload_json) if row is not None else None

    @staticmethod
    def _load_jail_records(session, user_id: int):
        rows = session.execute(
            text("SELECT payload_json FROM adr_jail_record WHERE user_id = :uid ORDER BY record_id"),
            {"uid": user_id},
        ).all()
        return [codec.jail_record_from_json(row.payload_json) for row in rows]

    def _write_snapshot(self, session, character_id: int, snapshot: GameSnapshot) -> None:
        character = snapshot.character
        if character.id != character_id:
            raise StateConflict("Transaction snapshot changed character.", {"character_id": character_id})
        _upsert(
            session,
            "adr_character",
            {"character_id": character.id, "user_id": character.user_id, "payload_json": codec.dumps(character)},
            ("character_id",),
        )
        if snapshot.battle_session is None:
            session.execute(
                text("DELETE FROM adr_battle_session WHERE character_id = :cid"),
                {"cid": character_id},
            )
        else:
            _upsert(
                session,
                "adr_battle_session",
                {"character_id": character_id, "payload_json": codec.dumps(snapshot.battle_session)},
                ("character_id",),
            )
        if snapshot.vault_account is not None:
            _upsert(
                session,
                "adr_vault_account",
                {"user_id": character.user_id, "payload_json": codec.dumps(snapshot.vault_account)},
                ("user_id",),
            )
        for record in snapshot.jail_records:
            _upsert(
                session,
                "adr_jail_record",
                {"record_id": record.id, "user_id": record.user_id, "payload_json": codec.dumps(record)},
                ("record_id",),
            )
