import sys
import threading
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from adr.domain.errors import StateConflict, ValidationError
from adr.domain.models.battle import BattleSession, CombatantState
from adr.domain.models.character import Character
from adr.domain.models.jail import JailRecord, JailReleaseState
from adr.domain.models.vault import VaultAccount
from adr.infrastructure.inmemory.reference_data import InMemoryReferenceData, default_stock_market
from adr.infrastructure.inmemory.snapshot_store import FIRST_INSTANCE_ID, InMemorySnapshotStore


def _store(*characters) -> InMemorySnapshotStore:
    return InMemorySnapshotStore(
        characters=characters or (Character(id=1, user_id=7, name="Ari"),),
        shops=InMemoryReferenceData().default_shops(),
        market=default_stock_market(),
    )


def _session(character_id: int = 1) -> BattleSession:
    pool = CombatantState(hp=10, hp_max=10, mp=0, mp_max=0, attack=5, defense=5, magic_attack=5, magic_defense=5)
    return BattleSession(
        character_id=character_id, monster_id=1, monster_name="Globuz", monster_level=1, player=pool, monster=pool
    )


class TransactionTests(unittest.TestCase):
    def test_committed_changes_are_visible_to_later_reads(self) -> None:
        store = _store()
        with store.transaction(1) as snapshot:
            snapshot.character.gold += 50
            snapshot.battle_session = _session()
        self.assertEqual(150, store.get_character(1).gold)
        with store.transaction(1) as snapshot:
            self.assertEqual("Globuz", snapshot.battle_session.monster_name)
            snapshot.battle_session = None
        with store.transaction(1) as snapshot:
            self.assertIsNone(snapshot.battle_session)

    def test_failed_block_rolls_back(self) -> None:
        store = _store()
        with self.assertLogs("adr.infrastructure.inmemory.snapshot_store", level="WARNING"):
            with self.assertRaises(StateConflict):
                with store.transaction(1) as snapshot:
                    snapshot.character.gold = 0
                    raise StateConflict("Already in battle!")
        self.assertEqual(100, store.get_character(1).gold)

    def test_reads_are_copies(self) -> None:
        store = _store()
        store.get_character(1).gold = 0
        self.assertEqual(100, store.get_character(1).gold)

    def test_unknown_and_duplicate_characters(self) -> None:
        store = _store()
        with self.assertRaises(ValidationError):
            with store.transaction(99):
                pass
        with self.assertRaises(StateConflict):
            store.add_character(Character(id=1, user_id=7, name="Ari"))

    def test_swapping_the_character_is_refused(self) -> None:
        store = _store()
        with self.assertRaises(StateConflict):
            with store.transaction(1) as snapshot:
                snapshot.character = Character(id=2, user_id=7, name="Bo")

    def test_vault_and_jail_rows_belong_to_the_user(self) -> None:
        store = _store(Character(id=1, user_id=7, name="Ari"), Character(id=2, user_id=7, name="Bo"))
        old = JailRecord(id=1, user_id=7, reason="Caught stealing Torch", jailed_at=10, release_at=20, bail_cost=500,
                         released=JailReleaseState.BAILED)
        new = JailRecord(id=2, user_id=7, reason="Caught stealing Lantern", jailed_at=50, release_at=950, bail_cost=500)
        with store.transaction(1) as snapshot:
            snapshot.vault_account = VaultAccount(user_id=7, balance=300)
            snapshot.save_jail_record(old)
            snapshot.save_jail_record(new)

        with store.transaction(2) as snapshot:
            self.assertEqual(300, snapshot.vault_account.balance)
            self.assertEqual(2, snapshot.open_jail_record.id)
            released = snapshot.open_jail_record
            released.released = JailReleaseState.TIME_SERVED
            snapshot.save_jail_record(released)

        with store.transaction(1) as snapshot:
            self.assertIsNone(snapshot.open_jail_record)
            self.assertEqual(2, len(snapshot.jail_records))

    def test_parallel_transactions_serialise(self) -> None:
        store = _store()

        def worker() -> None:
            for _ in range(25):
                with store.transaction(1) as snapshot:
                    snapshot.character.gold += 1

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(200, store.get_character(1).gold)

    def test_characters_of_one_user_share_vault_updates(self) -> None:
        store = _store(Character(id=1, user_id=7, name="Ari"), Character(id=2, user_id=7, name="Bo"))
        with store.transaction(1) as snapshot:
            snapshot.vault_account = VaultAccount(user_id=7)

        def worker(character_id: int) -> None:
            for _ in range(25):
                with store.transaction(character_id) as snapshot:
                    snapshot.vault_account.balance += 1

        threads = [threading.Thread(target=worker, args=(character_id,)) for character_id in (1, 2, 1, 2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        with store.transaction(2) as snapshot:
            self.assertEqual(100, snapshot.vault_account.balance)

    def test_nested_transaction_for_the_same_user_is_refused(self) -> None:
        store = _store(Character(id=1, user_id=7, name="Ari"), Character(id=2, user_id=7, name="Bo"),
                       Character(id=3, user_id=8, name="Cy"))
        with store.transaction(1) as outer:
            outer.vault_account = VaultAccount(user_id=7, balance=100)
            with self.assertRaises(StateConflict):
                with store.transaction(2) as inner:
                    inner.vault_account = VaultAccount(user_id=7, balance=200)
            with store.transaction(3) as other:
                other.character.gold = 5

        with store.transaction(2) as snapshot:
            self.assertEqual(100, snapshot.vault_account.balance)
        self.assertEqual(5, store.get_character(3).gold)


class SharedEntityTests(unittest.TestCase):
    def test_shop_lock_commits_the_held_value(self) -> None:
        store = _store()
        with store.lock_shop(1) as held:
            held.value.listings[1].quantity = 3
        self.assertEqual(3, store.get_shop(1).listings[1].quantity)

    def test_shop_lock_discards_on_error(self) -> None:
        store = _store()
        with self.assertRaises(RuntimeError):
            with store.lock_shop(1) as held:
                held.value.listings[1].quantity = 0
                raise RuntimeError("boom")
        self.assertIsNone(store.get_shop(1).listings[1].quantity)

    def test_unknown_shop(self) -> None:
        with self.assertRaises(ValidationError):
            with _store().lock_shop(42):
                pass

    def test_market_lock(self) -> None:
        store = _store()
        with store.lock_market() as held:
            held.value.last_update = 1234
        self.assertEqual(1234, store.get_market().last_update)


class IdentifierTests(unittest.TestCase):
    def test_item_ids_start_above_templates(self) -> None:
        store = _store()
        self.assertEqual([FIRST_INSTANCE_ID, FIRST_INSTANCE_ID + 1], [store.next_item_id(), store.next_item_id()])
        self.assertEqual([1, 2], [store.next_jail_id(), store.next_jail_id()])


if __name__ == "__main__":
    unittest.main()
