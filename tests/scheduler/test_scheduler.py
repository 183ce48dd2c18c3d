"""Tests for the reading-window scheduler."""

import time
from unittest.mock import Mock

from mealcycle_app.notify.base import AlertUrgency
from mealcycle_app.scheduler.scheduler import DEFAULT_ALERT_TITLE, ReadingWindowScheduler
from mealcycle_app.utils.time import MS_PER_MINUTE


def make_scheduler(machine, alert_sink, clock, **kwargs):
    return ReadingWindowScheduler(machine=machine, alert_sink=alert_sink, clock=clock, **kwargs)


class TestTick:
    """Test edge-triggered notification."""

    def test_no_cycle_no_alerts(self, machine, alert_sink, clock):
        scheduler = make_scheduler(machine, alert_sink, clock)

        assert scheduler.tick() == []
        assert alert_sink.alerts == []

    def test_unstarted_cycle_no_alerts(self, machine, alert_sink, clock):
        machine.start(95)
        clock.advance(minutes=6)

        assert make_scheduler(machine, alert_sink, clock).tick() == []

    def test_single_alert_per_due_transition(self, machine, alert_sink, clock):
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        scheduler = make_scheduler(machine, alert_sink, clock)

        fired = []
        for seconds in range(4 * 60, 8 * 60, 15):
            clock.set(t0 + seconds * 1000)
            fired.extend(scheduler.tick())

        assert fired == [5]
        assert len(alert_sink.alerts) == 1
        title, body, urgency = alert_sink.alerts[0]
        assert title == DEFAULT_ALERT_TITLE
        assert "5 minutes since your first bite" in body
        assert urgency is AlertUrgency.HIGH
        assert scheduler.notified_offsets == frozenset({5})

    def test_filled_slot_is_not_alerted(self, machine, alert_sink, clock):
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        clock.set(t0 + 4 * MS_PER_MINUTE)
        machine.submit_reading(5, 120)
        scheduler = make_scheduler(machine, alert_sink, clock)

        clock.set(t0 + 5 * MS_PER_MINUTE)

        assert scheduler.tick() == []

    def test_each_offset_alerted_once(self, machine, alert_sink, clock):
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        scheduler = make_scheduler(machine, alert_sink, clock)

        for minute in range(0, 20):
            clock.set(t0 + minute * MS_PER_MINUTE)
            scheduler.tick()
            scheduler.tick()

        assert [body.split(" ")[2] for _, body, _ in alert_sink.alerts] == ["5", "10", "15"]

    def test_terminal_cycle_clears_notified(self, machine, alert_sink, clock):
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        scheduler = make_scheduler(machine, alert_sink, clock)
        clock.set(t0 + 5 * MS_PER_MINUTE)
        scheduler.tick()

        machine.cancel()

        assert scheduler.tick() == []
        assert scheduler.notified_offsets == frozenset()

    def test_new_cycle_alerts_again(self, machine, alert_sink, clock):
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        scheduler = make_scheduler(machine, alert_sink, clock)
        clock.set(t0 + 5 * MS_PER_MINUTE)
        scheduler.tick()
        machine.abandon()

        machine.start(100)
        t1 = machine.mark_start_event().start_time
        clock.set(t1 + 5 * MS_PER_MINUTE)

        assert scheduler.tick() == [5]
        assert len(alert_sink.alerts) == 2

    def test_sink_failure_is_contained(self, machine, clock):
        sink = Mock()
        sink.name = "broken"
        sink.emit_alert.side_effect = RuntimeError("no audio device")
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        scheduler = make_scheduler(machine, sink, clock)
        clock.set(t0 + 5 * MS_PER_MINUTE)

        assert scheduler.tick() == [5]
        assert scheduler.tick() == []
        sink.emit_alert.assert_called_once()

    def test_scheduler_never_writes(self, machine, queue, alert_sink, clock):
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        before = len(queue)
        scheduler = make_scheduler(machine, alert_sink, clock)

        clock.set(t0 + 5 * MS_PER_MINUTE)
        scheduler.tick()

        assert len(queue) == before


class TestTickTask:
    """Test start/stop of the tick thread."""

    def test_start_and_stop(self, machine, alert_sink, clock):
        machine.start(95)
        t0 = machine.mark_start_event().start_time
        clock.set(t0 + 5 * MS_PER_MINUTE)
        scheduler = make_scheduler(machine, alert_sink, clock, tick_seconds=0.01)

        scheduler.start()
        assert scheduler.is_running
        deadline = time.monotonic() + 2
        while not alert_sink.alerts and time.monotonic() < deadline:
            time.sleep(0.01)
        scheduler.stop()

        assert not scheduler.is_running
        assert len(alert_sink.alerts) == 1
        assert scheduler.notified_offsets == frozenset()
