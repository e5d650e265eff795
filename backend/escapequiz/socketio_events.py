from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit, join_room, leave_room
from typing import Any

from escapequiz import socketio
from escapequiz.services import live
from escapequiz.services.teams import get_team_for_user


PUBLIC_CHANNELS = {live.CONFIG_CHANNEL, live.LEADERBOARD_CHANNEL}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _authorize(channel: str) -> bool:
    if channel in PUBLIC_CHANNELS:
        return True
    if channel.startswith('team:'):
        if not current_user.is_authenticated:
            return False
        if current_user.is_admin:
            return True
        team = get_team_for_user(current_user.id)
        return team is not None and live.team_channel(team.id) == channel
    return False


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    current_app.logger.info(f"[ws] sid={_get_sid()} disconnected")


def _channel_arg(data: Any):
    if not isinstance(data, dict):
        return None
    channel = data.get('channel')
    return channel if isinstance(channel, str) and channel else None


def handle_subscribe(data: Any):
    channel = _channel_arg(data)
    if not channel:
        emit('error', {'error': 'invalid-argument', 'message': 'channel is required'})
        return
    if channel == 'team':
        # Shorthand for the caller's own team channel
        team = get_team_for_user(current_user.id) if current_user.is_authenticated else None
        if team is None:
            emit('error', {'error': 'not-found', 'message': 'Register a team first'})
            return
        channel = live.team_channel(team.id)
    if not _authorize(channel):
        emit('error', {'error': 'permission-denied', 'message': f'Cannot subscribe to {channel}'})
        return
    join_room(channel)
    emit('subscribed', {'channel': channel})
    # Initial full snapshot, as a fresh subscriber would see
    emit('snapshot', {'channel': channel, 'data': live.channel_snapshot(channel)})
    current_app.logger.info(f"[ws] sid={_get_sid()} subscribed channel={channel}")


def handle_unsubscribe(data: Any):
    channel = _channel_arg(data)
    if not channel:
        emit('error', {'error': 'invalid-argument', 'message': 'channel is required'})
        return
    leave_room(channel)
    emit('unsubscribed', {'channel': channel})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('subscribe', handle_subscribe, namespace=namespace)
        socketio.on_event('unsubscribe', handle_unsubscribe, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
