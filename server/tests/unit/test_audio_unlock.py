from __future__ import annotations
import pytest

pytestmark = pytest.mark.unit


def _audio(device, clock, throttle_ms=450):
    from pixoverlay.application.services.audio_service import AudioUnlock

    return AudioUnlock(device, clock, throttle_ms=throttle_ms)


def test_unlock_success_goes_ready_and_restores_volume(device, clock, run):
    a = _audio(device, clock)
    assert a.state == "init"

    assert run(a.try_unlock()) is True
    assert a.state == "ready"
    assert a.hint == ""
    # l'essai est muet, puis le volume est rétabli
    assert device.plays == [(True, 0.0)]
    assert device.paused == 1
    assert device.muted is False and device.volume == 1.0


def test_unlock_failure_goes_blocked_with_hint(blocked_device, clock, run):
    from pixoverlay.application.services.audio_service import HINT_BLOCKED

    a = _audio(blocked_device, clock)
    assert run(a.try_unlock()) is False
    assert a.state == "blocked"
    assert a.hint == HINT_BLOCKED


def test_failed_alert_sound_is_owed_then_played_on_unlock(blocked_device, clock, run):
    from pixoverlay.application.services.audio_service import HINT_PENDING

    a = _audio(blocked_device, clock)
    assert run(a.play_alert_sound()) is False
    assert a.state == "pending"
    assert a.hint == HINT_PENDING
    assert a.sound_owed is True

    # un nouvel essai raté garde l'état pending
    assert run(a.try_unlock()) is False
    assert a.state == "pending"
    assert a.hint == HINT_PENDING

    blocked_device.blocked = False
    assert run(a.try_unlock()) is True
    assert a.state == "ready"
    assert a.sound_owed is False
    assert blocked_device.audible_plays == 1


def test_owed_sound_replayed_even_inside_throttle_window(blocked_device, clock, run):
    a = _audio(blocked_device, clock)
    run(a.play_alert_sound())
    clock.advance(100)
    blocked_device.blocked = False
    run(a.try_unlock())
    assert blocked_device.audible_plays == 1


def test_throttle_collapses_bursts(device, clock, run):
    a = _audio(device, clock)
    run(a.try_unlock())

    results = [run(a.play_alert_sound()) for _ in range(3)]
    assert results == [True, False, False]
    clock.advance(449)
    assert run(a.play_alert_sound()) is False
    clock.advance(1)
    assert run(a.play_alert_sound()) is True
    assert device.audible_plays == 2


def test_success_after_block_clears_hint(device, clock, run):
    a = _audio(device, clock)
    device.blocked = True
    run(a.try_unlock())
    assert a.state == "blocked"

    device.blocked = False
    assert run(a.play_alert_sound()) is True
    assert a.state == "ready"
    assert a.hint == ""


def test_snapshot_and_notifications(blocked_device, clock, run):
    a = _audio(blocked_device, clock)
    topics: list[str] = []
    a.subscribe(topics.append)
    run(a.try_unlock())
    run(a.try_unlock())  # pas de changement => pas de notification
    assert topics == ["audio"]
    assert a.snapshot() == {"state": "blocked", "hint": a.hint, "sound_owed": False}
