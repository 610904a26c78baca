import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from adr.application.services.event_bus import EventBus
from adr.domain.events import BattleEnded, BattleStarted


class EventBusTests(unittest.TestCase):
    def test_handlers_run_by_priority_then_subscription_order(self) -> None:
        bus = EventBus()
        calls = []
        bus.subscribe(BattleStarted, lambda event: calls.append("late"), priority=200)
        bus.subscribe(BattleStarted, lambda event: calls.append("first"))
        bus.subscribe(BattleStarted, lambda event: calls.append("second"))
        bus.subscribe(BattleStarted, lambda event: calls.append("early"), priority=10)

        bus.publish(BattleStarted(character_id=1, monster_id=2, monster_level=1))
        self.assertEqual(["early", "first", "second", "late"], calls)

    def test_only_matching_event_types_are_delivered(self) -> None:
        bus = EventBus()
        ended = []
        bus.subscribe(BattleEnded, ended.append)
        bus.publish(BattleStarted(character_id=1, monster_id=2, monster_level=1))
        self.assertEqual([], ended)

    def test_failing_handler_is_isolated(self) -> None:
        bus = EventBus()
        calls = []

        def broken(event) -> None:
            raise RuntimeError("handler down")

        bus.subscribe(BattleEnded, broken, priority=1)
        bus.subscribe(BattleEnded, calls.append)
        with self.assertLogs("adr.application.services.event_bus", level="ERROR"):
            bus.publish_all(
                [
                    BattleEnded(character_id=1, monster_id=2, status="won", turns=3),
                    BattleEnded(character_id=1, monster_id=3, status="fled", turns=1),
                ]
            )
        self.assertEqual(["won", "fled"], [event.status for event in calls])
        self.assertEqual(2, len(bus.last_publish_errors()))

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        calls = []

        def handler(event) -> None:
            calls.append(event)

        bus.subscribe(BattleStarted, handler)
        bus.unsubscribe(BattleStarted, handler)
        bus.publish(BattleStarted(character_id=1, monster_id=2, monster_level=1))
        self.assertEqual([], calls)


if __name__ == "__main__":
    unittest.main()
