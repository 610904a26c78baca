from __future__ import annotations

import copy
import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from adr.domain.errors import StateConflict, ValidationError
from adr.domain.models.battle import BattleSession
from adr.domain.models.character import Character
from adr.domain.models.item import Shop
from adr.domain.models.jail import JailRecord
from adr.domain.models.vault import StockMarket, VaultAccount


logger = logging.getLogger(__name__)

FIRST_INSTANCE_ID = 1000


@dataclass
class GameSnapshot:
    """Everything one character's request may read and write, owned by a single transaction."""

    character: Character
    battle_session: Optional[BattleSession] = None
    vault_account: Optional[VaultAccount] = None
    jail_records: List[JailRecord] = field(default_factory=list)

    @property
    def open_jail_record(self) -> Optional[JailRecord]:
        for record in sorted(self.jail_records, key=lambda row: row.jailed_at, reverse=True):
            if record.is_open:
                return record
        return None

    def save_jail_record(self, record: Optional[JailRecord]) -> None:
        if record is None:
            return
        self.jail_records = [row for row in self.jail_records if row.id != record.id] + [record]


@dataclass
class SharedEntity:
    """A locked cross-character entity; assign ``value`` to replace what is committed."""

    value: Any


class InMemorySnapshotStore:
    """Process-local store that serialises mutations per user and character, per shop and for the stock market.

    A transaction works on deep copies; nothing is written back unless the
    block completes, so a resolver error leaves the stored state untouched.
    """

    def __init__(
        self,
        characters: Iterable[Character] = (),
        shops: Iterable[Shop] = (),
        market: Optional[StockMarket] = None,
    ) -> None:
        self._characters: Dict[int, Character] = {}
        self._sessions: Dict[int, BattleSession] = {}
        self._accounts: Dict[int, VaultAccount] = {}
        self._jail_records: Dict[int, List[JailRecord]] = {}
        self._shops: Dict[int, Shop] = {shop.id: copy.deepcopy(shop) for shop in shops}
        self._market = copy.deepcopy(market) if market is not None else StockMarket()

        self._registry_lock = threading.Lock()
        self._character_locks: Dict[int, threading.Lock] = {}
        self._user_locks: Dict[int, threading.Lock] = {}
        self._shop_locks: Dict[int, threading.Lock] = {}
        self._market_lock = threading.Lock()
        self._id_lock = threading.Lock()
        self._local = threading.local()

        highest = max(
            [FIRST_INSTANCE_ID - 1]
            + [listing.item.id for shop in self._shops.values() for listing in shop.listings.values()]
        )
        self._item_ids = itertools.count(highest + 1)
        self._jail_ids = itertools.count(1)
        for character in characters:
            self.add_character(character)

    def add_character(self, character: Character) -> None:
        with self._registry_lock:
            if character.id in self._characters:
                raise StateConflict("Character already exists.", {"character_id": character.id})
            self._characters[character.id] = copy.deepcopy(character)
            self._character_locks[character.id] = threading.Lock()
            self._user_locks.setdefault(character.user_id, threading.Lock())

    def get_character(self, character_id: int) -> Optional[Character]:
        character = self._characters.get(int(character_id))
        return copy.deepcopy(character) if character is not None else None

    def get_shop(self, shop_id: int) -> Optional[Shop]:
        shop = self._shops.get(int(shop_id))
        return copy.deepcopy(shop) if shop is not None else None

    def get_market(self) -> StockMarket:
        return copy.deepcopy(self._market)

    def next_item_id(self) -> int:
        with self._id_lock:
            return next(self._item_ids)

    def next_jail_id(self) -> int:
        with self._id_lock:
            return next(self._jail_ids)

    @contextmanager
    def transaction(self, character_id: int) -> Iterator[GameSnapshot]:
        character_id = int(character_id)
        user_lock, lock, user_id = self._locks_for(character_id)
        held = self._held_users()
        if user_id in held:
            raise StateConflict(
                "A transaction for this user is already open.", {"character_id": character_id, "user_id": user_id}
            )
        with user_lock, lock:
            held.add(user_id)
            try:
                character = self._characters[character_id]
                snapshot = GameSnapshot(
                    character=copy.deepcopy(character),
                    battle_session=copy.deepcopy(self._sessions.get(character_id)),
                    vault_account=copy.deepcopy(self._accounts.get(user_id)),
                    jail_records=copy.deepcopy(self._jail_records.get(user_id, [])),
                )
                try:
                    yield snapshot
                except Exception:
                    logger.warning("Character transaction rolled back", extra={"character_id": character_id})
                    raise
                self._commit(character_id, snapshot)
            finally:
                held.discard(user_id)

    @contextmanager
    def lock_shop(self, shop_id: int) -> Iterator[SharedEntity]:
        shop_id = int(shop_id)
        with self._registry_lock:
            if shop_id not in self._shops:
                raise ValidationError("Shop not found.", {"shop_id": shop_id})
            lock = self._shop_locks.setdefault(shop_id, threading.Lock())
        with lock:
            held = SharedEntity(copy.deepcopy(self._shops[shop_id]))
            yield held
            self._shops[shop_id] = copy.deepcopy(held.value)

    @contextmanager
    def lock_market(self) -> Iterator[SharedEntity]:
        with self._market_lock:
            held = SharedEntity(copy.deepcopy(self._market))
            yield held
            self._market = copy.deepcopy(held.value)

    def _locks_for(self, character_id: int) -> Tuple[threading.Lock, threading.Lock, int]:
        """User lock first, then the character lock; vault and jail rows are shared by the user's characters."""
        with self._registry_lock:
            if character_id not in self._characters:
                raise ValidationError("Character not found.", {"character_id": character_id})
            user_id = self._characters[character_id].user_id
            return self._user_locks[user_id], self._character_locks[character_id], user_id

    def _held_users(self) -> Set[int]:
        held = getattr(self._local, "users", None)
        if held is None:
            held = self._local.users = set()
        return held

    def _commit(self, character_id: int, snapshot: GameSnapshot) -> None:
        if snapshot.character.id != character_id:
            raise StateConflict("Transaction snapshot changed character.", {"character_id": character_id})
        user_id = snapshot.character.user_id
        self._characters[character_id] = copy.deepcopy(snapshot.character)
        if snapshot.battle_session is None:
            self._sessions.pop(character_id, None)
        else:
            self._sessions[character_id] = copy.deepcopy(snapshot.battle_session)
        if snapshot.vault_account is not None:
            self._accounts[user_id] = copy.deepcopy(snapshot.vault_account)
        self._jail_records[user_id] = copy.deepcopy(snapshot.jail_records)
