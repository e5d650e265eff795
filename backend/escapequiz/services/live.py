"""Publish/subscribe channels carrying full snapshots of live state.

Each logical collection (``game_config``, ``leaderboard``, ``team:<id>``)
has a channel. Subscribers receive the complete current snapshot on every
publish, never a delta, and hold a ``Subscription`` token they can cancel.
The hub attached to each Flask app forwards every publish to the Socket.IO
room of the same name on the ``/ws`` namespace; dropping a channel closes
that room.
"""
import itertools
import threading
import time
from functools import partial
from typing import Any, Callable, Dict, Optional

from flask import current_app

CONFIG_CHANNEL = 'game_config'
LEADERBOARD_CHANNEL = 'leaderboard'


def team_channel(team_id) -> str:
    return f"team:{team_id}"


class Subscription:
    def __init__(self, channel: 'LiveChannel', token: int):
        self.channel = channel
        self.token = token
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.channel._remove(self.token)
            self.active = False


class LiveChannel:
    def __init__(self, name: str, logger=None):
        self.name = name
        self._logger = logger
        self._subscribers: Dict[int, Callable[[Any], None]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[Any], None]) -> Subscription:
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = callback
        return Subscription(self, token)

    def _remove(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, snapshot: Any) -> int:
        """Deliver ``snapshot`` to every subscriber; returns how many were called."""
        with self._lock:
            callbacks = list(self._subscribers.values())
        delivered = 0
        for callback in callbacks:
            try:
                callback(snapshot)
                delivered += 1
            except Exception:
                # One broken subscriber must not starve the others
                if self._logger is not None:
                    self._logger.exception(f"[live] subscriber failed on channel={self.name}")
        return delivered


class LiveHub:
    def __init__(self, forward: Optional[Callable[[str, Any], None]] = None, logger=None,
                 close: Optional[Callable[[str], None]] = None):
        self._channels: Dict[str, LiveChannel] = {}
        self._forward = forward
        self._close = close
        self._logger = logger
        self._lock = threading.Lock()

    def channel(self, name: str) -> LiveChannel:
        with self._lock:
            ch = self._channels.get(name)
            if ch is None:
                ch = LiveChannel(name, logger=self._logger)
                if self._forward is not None:
                    ch.subscribe(partial(self._forward, name))
                self._channels[name] = ch
            return ch

    def subscribe(self, name: str, callback: Callable[[Any], None]) -> Subscription:
        return self.channel(name).subscribe(callback)

    def publish(self, name: str, snapshot: Any) -> int:
        return self.channel(name).publish(snapshot)

    def drop(self, name: str) -> bool:
        """Forget a channel and its subscribers. Returns False if it did not exist."""
        with self._lock:
            ch = self._channels.pop(name, None)
        if ch is None:
            return False
        with ch._lock:
            ch._subscribers.clear()
        if self._close is not None:
            self._close(name)
        return True

    def __contains__(self, name: str) -> bool:
        return name in self._channels


def _socketio_forward(name: str, snapshot: Any) -> None:
    from escapequiz import socketio
    socketio.emit('snapshot', {'channel': name, 'data': snapshot}, to=name, namespace='/ws')


def _socketio_close(name: str) -> None:
    from escapequiz import socketio
    socketio.close_room(name, namespace='/ws')


def init_live_hub(app) -> LiveHub:
    hub = LiveHub(forward=_socketio_forward, logger=app.logger, close=_socketio_close)
    app.extensions['live_hub'] = hub
    return hub


def get_hub() -> LiveHub:
    return current_app.extensions['live_hub']


# ---- Snapshot builders ----

def config_snapshot() -> dict:
    from escapequiz.services.game_control import get_game_config
    return get_game_config().to_dict()


def leaderboard_rows(now: Optional[float] = None) -> list:
    from escapequiz.models import Team, current_app_id
    from escapequiz.services.leaderboard import leaderboard_snapshot
    teams = Team.query.filter_by(app_id=current_app_id()).all()
    return leaderboard_snapshot(teams, now=time.time() if now is None else now)


def channel_snapshot(name: str) -> Any:
    """Current snapshot for a channel name, or ``None`` if the channel is unknown."""
    from escapequiz.models import Team, current_app_id
    if name == CONFIG_CHANNEL:
        return config_snapshot()
    if name == LEADERBOARD_CHANNEL:
        return leaderboard_rows()
    if name.startswith('team:'):
        try:
            team_id = int(name.split(':', 1)[1])
        except ValueError:
            return None
        team = Team.query.filter_by(id=team_id, app_id=current_app_id()).first()
        return team.to_private_dict() if team else None
    return None


# ---- Publishers used by the services after each commit ----

def publish_config() -> None:
    get_hub().publish(CONFIG_CHANNEL, config_snapshot())


def publish_leaderboard() -> None:
    get_hub().publish(LEADERBOARD_CHANNEL, leaderboard_rows())


def publish_team(team) -> None:
    get_hub().publish(team_channel(team.id), team.to_private_dict())
