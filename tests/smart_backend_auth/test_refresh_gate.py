import logging

import pytest

import smart_backend_auth as m
from smart_backend_auth import refresh_gate


def test_refresh_gate_allows_first(monkeypatch: pytest.MonkeyPatch):
    """First call to allow() returns True, subsequent calls return False."""
    gate = m.RefreshGate(min_interval=10.0)

    t = 1000.0
    monkeypatch.setattr(refresh_gate.time, "time", lambda: t)

    assert gate.allow() is True
    assert gate.allow() is False  # same time -> blocked


def test_refresh_gate_allows_after_interval(monkeypatch: pytest.MonkeyPatch):
    """After min_interval passes, allow() returns True again."""
    gate = m.RefreshGate(min_interval=10.0)

    time_val = [1000.0]  # use list to allow modification
    monkeypatch.setattr(refresh_gate.time, "time", lambda: time_val[0])

    assert gate.allow() is True

    time_val[0] = 1009.0
    assert gate.allow() is False

    time_val[0] = 1010.0
    assert gate.allow() is True


def test_refresh_gate_counts_denials(monkeypatch: pytest.MonkeyPatch):
    gate = m.RefreshGate(min_interval=10.0, alert_threshold=3)

    time_val = [1000.0]
    monkeypatch.setattr(refresh_gate.time, "time", lambda: time_val[0])

    assert gate.allow() is True
    assert gate.allow() is False
    assert gate.allow() is False
    assert gate.denied_attempts == 2

    # After interval, allow succeeds again and the count resets
    time_val[0] = 1010.0
    assert gate.allow() is True
    assert gate.denied_attempts == 0


def test_refresh_gate_warns_at_alert_threshold(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    gate = m.RefreshGate(min_interval=10.0, alert_threshold=3)
    monkeypatch.setattr(refresh_gate.time, "time", lambda: 1000.0)

    with caplog.at_level(logging.WARNING, logger="smart_backend_auth.refresh_gate"):
        gate.allow()
        gate.allow()
        gate.allow()
        assert not caplog.records

        gate.allow()
        gate.allow()

    # Logged once, when the threshold is reached
    assert len(caplog.records) == 1
    assert "throttled 3 times" in caplog.records[0].getMessage()


@pytest.mark.parametrize(
    ("kwargs"),
    [{"min_interval": 0}, {"min_interval": -1.0}, {"alert_threshold": 0}],
)
def test_refresh_gate_rejects_invalid_settings(kwargs: dict):
    with pytest.raises(ValueError):
        m.RefreshGate(**kwargs)
