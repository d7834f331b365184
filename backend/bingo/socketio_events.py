from flask_socketio import join_room, leave_room, close_room, emit
from bingo import socketio, get_registry, get_presence
from flask import current_app, request
from bingo.services.lobby import (
    DuplicateIdentity,
    InvalidCredential,
    InvalidPayload,
    LobbyError,
    rebind,
    release_connection,
)
from bingo.services.lobby import workflows
from typing import Any, Dict
import time

NAMESPACE = '/ws'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _field(data: Dict[str, Any], *names):
    """First present key; later names are aliases used by older clients."""
    for name in names:
        if name in data:
            return data[name]
    return None


def _lobby_for(data):
    if not isinstance(data, dict):
        raise InvalidPayload('Event payload must be an object')
    room_code = _field(data, 'roomCode')
    if not room_code:
        raise InvalidPayload('roomCode is required')
    return get_registry().get(room_code)


def _require_admin(lobby) -> None:
    if not get_presence().is_admin(_get_sid(), lobby.room_code):
        raise InvalidCredential('invalid credential')


def _ensure_joined(lobby, is_admin: bool = False) -> None:
    sid = _get_sid()
    tracker = get_presence()
    previous = tracker.get(sid)
    if previous is not None and previous.room_code != lobby.room_code:
        _release(sid)
        leave_room(previous.room_code)
    join_room(lobby.room_code)
    tracker.bind(sid, lobby.room_code, is_admin=is_admin)


def _broadcast(lobby) -> None:
    """Push the full snapshot to the room. Caller holds ``lobby.lock``."""
    socketio.emit('lobbyUpdate', lobby.to_dict(), to=lobby.room_code, namespace=NAMESPACE)


def _release(sid: str) -> None:
    tracker = get_presence()
    presence = tracker.release(sid)
    if presence is None:
        return
    lobby = get_registry().find(presence.room_code)
    if lobby is None:
        return
    policy = current_app.config.get('ON_DISCONNECT', 'retain')
    with lobby.lock:
        if release_connection(lobby, sid, policy):
            current_app.logger.info(f"[presence-release] room={lobby.room_code} identity={presence.identity} policy={policy}")
            _broadcast(lobby)
    if tracker.connection_count(lobby.room_code) == 0:
        schedule_lobby_disposal(current_app._get_current_object(), lobby.room_code)


# ---- Lobby disposal ----

def dispose_lobby(app, room_code: str) -> bool:
    """Drop a lobby and every connection record and timer tied to its code."""
    get_presence(app).forget_room(room_code)
    return get_registry(app).dispose(room_code)


def schedule_lobby_disposal(app, room_code: str, on_create: bool = False) -> None:
    """Dispose an empty room once its grace period runs out.

    A negative grace period disables automatic disposal. Zero disposes a room
    as soon as its last connection leaves (rooms are never disposed at
    creation time in that case).
    """
    grace = float(app.config.get('LOBBY_GRACE_PERIOD_SEC', 300))
    if grace < 0 or (on_create and grace == 0):
        return
    tracker = get_presence(app)
    registry = get_registry(app)
    target = registry.find(room_code)
    if target is None:
        return
    deadline = tracker.schedule_disposal(room_code, grace)

    def _runner(code: str, expected: float):
        sleep_for = max(0.0, expected - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if not tracker.disposal_due(code, expected):
            return
        # The code may have been reused by a lobby registered after this timer
        if registry.find(code) is not target:
            return
        if dispose_lobby(app, code):
            app.logger.info(f"[dispose] room={code} idle for {grace}s")

    if grace == 0:
        _runner(room_code, deadline)
    else:
        socketio.start_background_task(_runner, room_code, deadline)


# ---- Handlers ----

def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    _release(_get_sid())


def handle_join_room(data):
    data = data or {}
    lobby = _lobby_for(data)
    secret = _field(data, 'adminSecret', 'adminCode')
    is_admin = False
    if secret is not None:
        get_registry().authenticate_admin(lobby.room_code, secret)
        is_admin = True
    _ensure_joined(lobby, is_admin=is_admin)
    current_app.logger.info(f"[join-room] room={lobby.room_code} sid={_get_sid()} admin={is_admin}")
    emit('joined', {'room': lobby.room_code, 'admin': is_admin})
    with lobby.lock:
        emit('lobbyUpdate', lobby.to_dict())


def handle_request_join(data):
    data = data or {}
    try:
        lobby = _lobby_for(data)
    except LobbyError as exc:
        emit('joinError', {'reason': exc.message})
        return
    _ensure_joined(lobby)
    identity = _field(data, 'identity', 'username')
    with lobby.lock:
        try:
            entry = workflows.request_join(lobby, identity, _get_sid())
        except (DuplicateIdentity, InvalidPayload) as exc:
            emit('joinError', {'reason': exc.message})
            return
        get_presence().set_identity(_get_sid(), entry.identity)
        _broadcast(lobby)
    current_app.logger.info(f"[join-request] room={lobby.room_code} identity={entry.identity}")


def handle_approve_join(data):
    data = data or {}
    lobby = _lobby_for(data)
    _require_admin(lobby)
    identity = _field(data, 'identity', 'username')
    with lobby.lock:
        entry = workflows.approve(lobby, identity, _field(data, 'team'))
        if entry is None:
            return
        _broadcast(lobby)
        if entry.connection:
            emit('participantApproved', {'identity': entry.identity}, to=entry.connection)
    current_app.logger.info(f"[join-approve] room={lobby.room_code} identity={identity}")


def handle_request_review(data):
    data = data or {}
    lobby = _lobby_for(data)
    identity = _field(data, 'identity', 'username')
    names = _field(data, 'objectiveNames', 'achievements')
    with lobby.lock:
        if workflows.request_review(lobby, identity, names):
            _broadcast(lobby)


def handle_mark_complete(data):
    data = data or {}
    lobby = _lobby_for(data)
    _require_admin(lobby)
    identity = _field(data, 'identity', 'username')
    name = _field(data, 'objectiveName', 'achievementName')
    with lobby.lock:
        if workflows.mark_complete(lobby, identity, name, _field(data, 'team')):
            _broadcast(lobby)


def handle_dismiss_review(data):
    data = data or {}
    lobby = _lobby_for(data)
    _require_admin(lobby)
    identity = _field(data, 'identity', 'username')
    name = _field(data, 'objectiveName', 'achievementName')
    with lobby.lock:
        if workflows.dismiss_review(lobby, identity, name):
            _broadcast(lobby)


def handle_manual_change(data):
    data = data or {}
    lobby = _lobby_for(data)
    _require_admin(lobby)
    name = _field(data, 'objectiveName', 'achievementName')
    with lobby.lock:
        if workflows.manual_override(lobby, name, _field(data, 'newTeam')):
            _broadcast(lobby)


def handle_team_message(data):
    data = data or {}
    lobby = _lobby_for(data)
    sid = _get_sid()
    with lobby.lock:
        if get_presence().is_admin(sid, lobby.room_code):
            identity = _field(data, 'identity', 'username') or 'Admin'
            team = workflows.clean_team(_field(data, 'team'))
        else:
            participant = lobby.participant_by_connection(sid)
            if participant is None:
                raise InvalidPayload('Only approved participants can send team messages.')
            identity, team = participant.identity, participant.team
        entry = workflows.post_team_message(lobby, identity, team, _field(data, 'message'))
        targets = lobby.team_connections(team)
        for target in targets:
            emit('teamMessage', entry, to=target)
        if sid not in targets:
            emit('teamMessage', entry)


def handle_rejoin(data):
    data = data or {}
    lobby = _lobby_for(data)
    _ensure_joined(lobby)
    sid = _get_sid()
    tracker = get_presence()
    identity = _field(data, 'identity', 'username')
    with lobby.lock:
        try:
            participant = rebind(lobby, identity, sid, live=tracker.connections(lobby.room_code))
        except DuplicateIdentity as exc:
            emit('joinError', {'reason': exc.message})
            return
        if participant is None:
            emit('joinError', {'reason': 'Unknown participant.'})
            return
        tracker.set_identity(sid, participant.identity)
        _broadcast(lobby)
        emit('participantApproved', {'identity': participant.identity})
        emit('chatHistory', {'messages': lobby.team_chat(participant.team)})
    current_app.logger.info(f"[rejoin] room={lobby.room_code} identity={participant.identity}")


def handle_close_room(data):
    data = data or {}
    lobby = _lobby_for(data)
    _require_admin(lobby)
    code = lobby.room_code
    with lobby.lock:
        socketio.emit('lobbyClosed', {'roomCode': code}, to=code, namespace=NAMESPACE)
        dispose_lobby(current_app._get_current_object(), code)
        close_room(code)
    current_app.logger.info(f"[dispose] room={code} closed by admin")


def handle_socket_error(exc):
    if isinstance(exc, LobbyError):
        emit('error', {'message': exc.message, 'status': exc.status})
        return
    current_app.logger.exception(f"[socket-error] sid={_get_sid()}")
    emit('error', {'message': 'Internal server error', 'status': 500})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('joinRoom', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('requestJoin', handle_request_join, namespace=NAMESPACE)
    socketio.on_event('approveJoin', handle_approve_join, namespace=NAMESPACE)
    socketio.on_event('requestReview', handle_request_review, namespace=NAMESPACE)
    socketio.on_event('markComplete', handle_mark_complete, namespace=NAMESPACE)
    socketio.on_event('dismissReview', handle_dismiss_review, namespace=NAMESPACE)
    socketio.on_event('manualChange', handle_manual_change, namespace=NAMESPACE)
    socketio.on_event('teamMessage', handle_team_message, namespace=NAMESPACE)
    # Older clients name the chat event sendChatMessage
    socketio.on_event('sendChatMessage', handle_team_message, namespace=NAMESPACE)
    socketio.on_event('rejoin', handle_rejoin, namespace=NAMESPACE)
    socketio.on_event('closeRoom', handle_close_room, namespace=NAMESPACE)
    socketio.on_error(NAMESPACE)(handle_socket_error)
