"""Tests for audit logging of cycle transitions and queue flushes."""

import pytest

from mealcycle_app.errors import InvalidStateError
from mealcycle_app.logging.config import (
    bind_session_context,
    clear_session_context,
    configure_logging,
    get_state_logger,
    log_flush_result,
    log_state_transition,
    session_processors,
)
from mealcycle_app.utils.time import MS_PER_MINUTE


class RecordingLogger:
    """Minimal bound-logger stand-in that records every call."""

    def __init__(self, messages, context=None):
        self.messages = messages
        self.context = context or {}

    def bind(self, **kwargs):
        return RecordingLogger(self.messages, {**self.context, **kwargs})

    def _record(self, level, message, **kwargs):
        self.messages.append({
            'message': message,
            'level': level,
            'kwargs': {**self.context, **kwargs},
        })

    def debug(self, message, **kwargs):
        self._record('debug', message, **kwargs)

    def info(self, message, **kwargs):
        self._record('info', message, **kwargs)

    def warning(self, message, **kwargs):
        self._record('warning', message, **kwargs)

    def error(self, message, **kwargs):
        self._record('error', message, **kwargs)

    def critical(self, message, **kwargs):
        self._record('critical', message, **kwargs)


class TestLoggingIntegration:
    """Test transition and flush logging."""

    def setup_method(self):
        configure_logging(level="DEBUG", format_json=True)
        self.log_messages = []
        self.logger = RecordingLogger(self.log_messages)

    def transitions(self):
        return [m for m in self.log_messages if m['message'] == "State transition"]

    def test_state_logger_is_usable(self):
        logger = get_state_logger("test")
        logger.info("Audit trail check", cycle_id="c1")

    def test_session_context_merged_into_events(self):
        bind_session_context("user-1", "testing")
        try:
            merge = session_processors()[0]
            event = merge(None, "info", {"event": "Reading submitted"})
        finally:
            clear_session_context()

        assert event["owner_id"] == "user-1"
        assert event["profile"] == "testing"
        assert "owner_id" not in merge(None, "info", {"event": "after stop"})

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            configure_logging(level="LOUD")

    def test_log_state_transition_fields(self):
        log_state_transition(self.logger, "c1", "collecting", "completed", "final_reading",
                             context={"slot": 15})

        entry = self.log_messages[0]
        assert entry['level'] == 'info'
        assert entry['kwargs']['cycle_id'] == "c1"
        assert entry['kwargs']['from_state'] == "collecting"
        assert entry['kwargs']['to_state'] == "completed"
        assert entry['kwargs']['trigger'] == "final_reading"
        assert entry['kwargs']['context'] == {"slot": 15}

    def test_log_flush_result_levels(self):
        log_flush_result(self.logger, "flushed", 3, 0)
        log_flush_result(self.logger, "failed", 0, 3, error=RuntimeError("offline"))

        assert self.log_messages[0]['level'] == 'info'
        assert self.log_messages[0]['kwargs']['flushed_count'] == 3
        assert self.log_messages[1]['level'] == 'warning'
        assert self.log_messages[1]['kwargs']['error_type'] == "RuntimeError"

    def test_machine_logs_every_transition(self, machine, clock):
        machine.logger = self.logger

        machine.start(95)
        t0 = machine.mark_start_event().start_time
        clock.set(t0 + 5 * MS_PER_MINUTE)
        machine.submit_reading(5, 120)
        machine.cancel()

        triggers = [(m['kwargs']['from_state'], m['kwargs']['to_state'], m['kwargs']['trigger'])
                    for m in self.transitions()]
        assert triggers == [
            ("no_cycle", "awaiting_start", "start"),
            ("awaiting_start", "collecting", "first_bite"),
            ("collecting", "collecting", "reading"),
            ("collecting", "canceled", "user_cancel"),
        ]

    def test_ceiling_timeout_is_logged(self, machine, clock):
        machine.logger = self.logger
        machine.start(95)
        t0 = machine.mark_start_event().start_time

        clock.set(t0 + 41 * MS_PER_MINUTE)
        machine.current()

        last = self.transitions()[-1]
        assert last['kwargs']['trigger'] == "ceiling_timeout"
        assert last['kwargs']['to_state'] == "abandoned"
        assert last['kwargs']['context']['filled_slots'] == []

    def test_rejected_submission_logs_no_transition(self, machine, clock):
        machine.logger = self.logger
        machine.start(95)
        machine.cancel()
        before = len(self.transitions())

        with pytest.raises(InvalidStateError):
            machine.submit_reading(5, 120)

        assert len(self.transitions()) == before
