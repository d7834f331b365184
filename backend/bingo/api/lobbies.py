from flask import Blueprint, jsonify, request, current_app
from bingo import get_registry
from bingo.services.lobby import LobbyError, export_lobby, restore_lobby
from bingo.socketio_events import schedule_lobby_disposal


lobbies = Blueprint('lobbies', __name__)


def _error(exc: LobbyError):
    return jsonify({'error': exc.message, 'status': exc.status}), exc.status


@lobbies.errorhandler(LobbyError)
def handle_lobby_error(exc):
    return _error(exc)


@lobbies.route('/create-lobby', methods=['POST'])
def create_lobby():
    data = request.get_json(silent=True) or {}
    if 'boardSize' not in data:
        return jsonify({'error': 'boardSize is required', 'status': 400}), 400
    lobby = get_registry().create_lobby(data.get('boardSize'))
    current_app.logger.info(f"[lobby-create] room={lobby.room_code} size={lobby.board_size}")
    schedule_lobby_disposal(current_app._get_current_object(), lobby.room_code, on_create=True)
    return jsonify({
        'roomCode': lobby.room_code,
        'adminSecret': lobby.admin_secret,
        'boardSize': lobby.board_size,
    })


@lobbies.route('/join-lobby', methods=['POST'])
def join_lobby():
    data = request.get_json(silent=True) or {}
    room_code = data.get('roomCode')
    role = data.get('role') or 'admin'
    if not room_code:
        return jsonify({'error': 'roomCode is required', 'status': 400}), 400

    registry = get_registry()
    registry.get(room_code)
    if role == 'participant':
        return jsonify({'error': 'Participants cannot join directly. They must request access.', 'status': 400}), 400
    if role != 'admin':
        return jsonify({'error': 'Invalid role or request.', 'status': 400}), 400

    # Older clients send adminCode
    secret = data.get('adminSecret', data.get('adminCode'))
    lobby = registry.authenticate_admin(room_code, secret)
    current_app.logger.info(f"[admin-join] room={lobby.room_code}")
    with lobby.lock:
        snapshot = lobby.to_dict()
    return jsonify({'ok': True, 'lobbySnapshot': snapshot})


@lobbies.route('/lobbies/<string:room_code>/state', methods=['GET'])
def get_lobby_state(room_code):
    lobby = get_registry().get(room_code)
    with lobby.lock:
        return jsonify(lobby.to_dict())


@lobbies.route('/lobbies/<string:room_code>/export', methods=['GET'])
def export_lobby_state(room_code):
    secret = request.headers.get('X-Admin-Secret')
    lobby = get_registry().authenticate_admin(room_code, secret)
    return jsonify(export_lobby(lobby))


@lobbies.route('/lobbies/import', methods=['POST'])
def import_lobby_state():
    data = request.get_json(silent=True)
    limit = int(current_app.config.get('CHAT_LOG_LIMIT', 200))
    lobby = get_registry().register(restore_lobby(data, chat_log_limit=limit))
    current_app.logger.info(f"[lobby-import] room={lobby.room_code} participants={len(lobby.participants)}")
    schedule_lobby_disposal(current_app._get_current_object(), lobby.room_code, on_create=True)
    return jsonify({'roomCode': lobby.room_code, 'boardSize': lobby.board_size}), 201
