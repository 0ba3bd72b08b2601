from __future__ import annotations

import random

import pytest

from media_presence.events import (
    Diagnostic,
    EventBus,
    PlayerAppeared,
    PlayerVanished,
    SessionAdded,
    SessionChanged,
    SessionRemoved,
)
from media_presence.mpris.player import PlaybackStatus
from media_presence.session.registry import SessionRegistry
from tests.mocks.bus_mock import FakeBus, FakeClock

VLC = "org.mpris.MediaPlayer2.vlc"
SPOTIFY = "org.mpris.MediaPlayer2.spotify"


@pytest.fixture
def env():
    bus = FakeBus()
    events = EventBus()
    clock = FakeClock()
    registry = SessionRegistry(bus, events, clock=clock)
    seen: list = []
    for event_type in (SessionAdded, SessionChanged, SessionRemoved, Diagnostic):
        events.subscribe(event_type, seen.append)
    return bus, events, clock, registry, seen


def test_appeared_creates_refreshing_session(env):
    bus, events, _clock, registry, seen = env
    bus.add_player(VLC, status="Playing")

    events.publish(PlayerAppeared(VLC))

    session = registry.get(VLC)
    assert session is not None
    assert session.refreshing
    assert session.playback_status is PlaybackStatus.UNKNOWN
    assert seen == [SessionAdded(VLC)]
    assert not registry.settled

    bus.run_pending()
    assert not session.refreshing
    assert session.playback_status is PlaybackStatus.PLAYING
    assert seen[-1] == SessionChanged(VLC)
    assert registry.settled


def test_duplicate_appeared_is_noop(env):
    bus, _events, _clock, registry, seen = env
    obj = bus.add_player(VLC)
    registry.on_appeared(VLC)
    handle = registry.get(VLC).handle
    registry.on_appeared(VLC)

    assert len(registry) == 1
    assert registry.get(VLC).handle is handle
    assert len(obj.signal_handlers) == 1
    assert seen == [SessionAdded(VLC)]


def test_disappeared_for_absent_id_is_noop(env):
    _bus, _events, _clock, registry, seen = env
    registry.on_disappeared(VLC)
    assert len(registry) == 0
    assert seen == []


def test_disappeared_releases_subscription_before_announcing(env):
    bus, events, _clock, registry, _seen = env
    obj = bus.add_player(VLC, status="Playing")
    registry.on_appeared(VLC)
    bus.run_pending()

    observed: list[bool] = []
    events.subscribe(SessionRemoved, lambda ev: observed.append(ev.session_id in registry or obj.subscribed))

    events.publish(PlayerVanished(VLC))

    assert VLC not in registry
    assert observed == [False]


def test_late_reply_for_removed_session_is_dropped(env):
    bus, _events, _clock, registry, seen = env
    bus.add_player(VLC, status="Playing")
    registry.on_appeared(VLC)
    session = registry.get(VLC)
    registry.on_disappeared(VLC)

    bus.run_pending()

    assert VLC not in registry
    # no mutation after removal
    assert session.refreshing
    assert session.playback_status is PlaybackStatus.UNKNOWN
    assert SessionChanged(VLC) not in seen


def test_status_timestamp_moves_only_on_status_change(env):
    bus, _events, clock, registry, _seen = env
    obj = bus.add_player(VLC, status="Paused")
    registry.on_appeared(VLC)
    added_at = registry.get(VLC).last_status_change_at

    clock.advance(5)
    bus.run_pending()
    session = registry.get(VLC)
    assert session.playback_status is PlaybackStatus.PAUSED
    assert session.last_status_change_at == added_at + 5

    clock.advance(5)
    obj.push({"Metadata": {"xesam:title": "Other"}})
    assert session.metadata.title == "Other"
    assert session.last_status_change_at == added_at + 5

    clock.advance(5)
    obj.set_status("Playing")
    assert session.last_status_change_at == added_at + 15


def test_handle_construction_failure_is_diagnostic(env):
    _bus, _events, _clock, registry, seen = env
    # no object on the bus for this name
    registry.on_appeared(VLC)
    assert VLC not in registry
    assert isinstance(seen[0], Diagnostic)
    assert seen[0].error.service_name == VLC


def test_remote_errors_become_diagnostics(env):
    bus, _events, _clock, registry, seen = env
    obj = bus.add_player(VLC)
    obj.fail_get_all = True
    registry.on_appeared(VLC)
    bus.run_pending()
    diags = [e for e in seen if isinstance(e, Diagnostic)]
    assert len(diags) == 1
    assert diags[0].source == "player"
    # entry stays, waiting for the next push
    assert VLC in registry


def test_close_tears_down_everything(env):
    bus, events, _clock, registry, _seen = env
    objs = [bus.add_player(n) for n in (VLC, SPOTIFY)]
    registry.on_appeared(VLC)
    registry.on_appeared(SPOTIFY)

    registry.close()

    assert len(registry) == 0
    assert not any(o.subscribed for o in objs)
    assert events.subscriber_count(PlayerAppeared) == 0
    assert events.subscriber_count(PlayerVanished) == 0
    # events after close do nothing
    events.publish(PlayerAppeared(VLC))
    assert len(registry) == 0


def test_sessions_in_insertion_order_and_snapshot(env):
    bus, _events, _clock, registry, _seen = env
    bus.add_player(SPOTIFY, status="Playing", metadata={"xesam:title": "S"})
    bus.add_player(VLC)
    registry.on_appeared(SPOTIFY)
    registry.on_appeared(VLC)
    bus.run_pending()

    assert [s.id for s in registry.sessions()] == [SPOTIFY, VLC]
    snap = registry.snapshot()
    assert [(i, st) for i, st, _t in snap] == [(SPOTIFY, PlaybackStatus.PLAYING), (VLC, PlaybackStatus.STOPPED)]
    assert snap[0][2].title == "S"


@pytest.mark.parametrize("seed", range(5))
def test_random_interleaving_matches_net_appearance(seed):
    rng = random.Random(seed)
    names = [f"org.mpris.MediaPlayer2.p{i}" for i in range(4)]
    bus = FakeBus()
    for n in names:
        bus.add_player(n)
    events = EventBus()
    registry = SessionRegistry(bus, events, clock=FakeClock())

    present: set[str] = set()
    for _ in range(60):
        name = rng.choice(names)
        if rng.random() < 0.5:
            events.publish(PlayerAppeared(name))
            present.add(name)
        else:
            events.publish(PlayerVanished(name))
            present.discard(name)
        if rng.random() < 0.3:
            bus.run_pending()
        assert set(registry.ids()) == present

    subscribed = {n for n in names if bus.objects[n].subscribed}
    assert subscribed == present


def test_identity_call_failing_on_dropped_connection_keeps_session(env):
    bus, _events, _clock, registry, seen = env
    obj = bus.add_player(VLC, status="Playing")
    bus.disconnected_methods.add("Get")

    registry.on_appeared(VLC)

    # identity is optional: the session is tracked and its subscription owned
    assert VLC in registry
    assert obj.subscribed
    assert not any(isinstance(e, Diagnostic) for e in seen)
    registry.on_disappeared(VLC)
    assert not obj.subscribed


def test_refresh_failing_on_dropped_connection_is_diagnostic(env):
    bus, events, _clock, registry, seen = env
    bus.add_player(VLC, status="Playing")
    bus.disconnected_methods.add("GetAll")

    events.publish(PlayerAppeared(VLC))

    diags = [e for e in seen if isinstance(e, Diagnostic)]
    assert len(diags) == 1
    assert diags[0].source == "player"
    assert diags[0].error.operation == "GetAll"
    assert registry.get(VLC).refreshing
