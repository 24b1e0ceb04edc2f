"""Tests for the message bus and the Django unit of work."""

from __future__ import annotations

from dataclasses import dataclass

from django.test import SimpleTestCase, TestCase

from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import DomainEvent, EventRecorder


@dataclass
class Ping:
    value: int


@dataclass
class SomethingHappened(DomainEvent):
    value: int = 0


class Aggregate(EventRecorder):
    pk = 1


class MessageBusTests(SimpleTestCase):
    def setUp(self) -> None:
        self.bus = MessageBus()

    def test_command_goes_to_its_single_handler(self) -> None:
        self.bus.register_command_handler(Ping, lambda command: command.value * 2)

        self.assertEqual(self.bus.handle_command(Ping(21)), 42)

    def test_second_handler_needs_replace(self) -> None:
        self.bus.register_command_handler(Ping, lambda command: 1)
        with self.assertRaises(ValueError):
            self.bus.register_command_handler(Ping, lambda command: 2)

        self.bus.register_command_handler(Ping, lambda command: 2, replace=True)
        self.assertEqual(self.bus.handle_command(Ping(0)), 2)

    def test_unknown_command(self) -> None:
        with self.assertRaises(ValueError):
            self.bus.handle_command(Ping(1))

    def test_failing_event_handler_does_not_stop_others(self) -> None:
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        self.bus.register_event_handler(SomethingHappened, broken)
        self.bus.register_event_handler(SomethingHappened, seen.append)
        self.bus.register_event_handler(SomethingHappened, seen.append)

        with self.assertLogs("shared.application.message_bus", level="ERROR"):
            self.bus.publish_events([SomethingHappened(value=1)])

        self.assertEqual([event.value for event in seen], [1])

    def test_event_serialization(self) -> None:
        payload = SomethingHappened(value=3, aggregate_id=9).to_dict()
        self.assertEqual(payload["event_type"], "SomethingHappened")
        self.assertEqual(payload["aggregate_id"], 9)


class DjangoUnitOfWorkTests(TestCase):
    def setUp(self) -> None:
        self.published = []

    def uow(self) -> DjangoUnitOfWork:
        return DjangoUnitOfWork(publisher=self.published.extend)

    def test_events_are_published_after_commit(self) -> None:
        aggregate = Aggregate()
        aggregate.record_event(SomethingHappened(value=1))

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.uow() as uow:
                uow.collect_events(aggregate)
                self.assertEqual(self.published, [])

        self.assertEqual(len(callbacks), 1)
        self.assertEqual([event.value for event in self.published], [1])
        self.assertEqual(aggregate.events, [])

    def test_events_are_dropped_on_rollback(self) -> None:
        aggregate = Aggregate()
        aggregate.record_event(SomethingHappened(value=1))

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(RuntimeError):
                with self.uow() as uow:
                    uow.collect_events(aggregate)
                    raise RuntimeError("abort")

        self.assertEqual(callbacks, [])
        self.assertEqual(self.published, [])

    def test_nested_unit_rolls_back_with_outer(self) -> None:
        inner_aggregate = Aggregate()
        inner_aggregate.record_event(SomethingHappened(value=2))

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with self.uow():
                    with self.uow() as inner:
                        inner.collect_events(inner_aggregate)
                    raise RuntimeError("abort")

        self.assertEqual(self.published, [])
