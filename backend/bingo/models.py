from bingo import db
from bingo.services.lobby import LobbyExists, SnapshotError, export_lobby, restore_lobby
from flask import current_app
import json
import time


class LobbySnapshot(db.Model):
    __tablename__ = 'lobby_snapshot'
    room_code = db.Column(db.String(16), primary_key=True)
    payload = db.Column(db.Text, nullable=False)  # JSON-encoded lobby export
    saved_at = db.Column(db.Float, nullable=False, default=time.time)

    def to_dict(self):
        try:
            data = json.loads(self.payload)
        except ValueError:
            data = None
        return {
            'room_code': self.room_code,
            'saved_at': self.saved_at,
            'board_size': data.get('boardSize') if isinstance(data, dict) else None,
            'participants': len(data.get('participants', [])) if isinstance(data, dict) else 0,
        }


def save_snapshots(lobbies) -> int:
    """Upsert an export of each lobby and drop rows of lobbies no longer live.

    Returns how many were written.
    """
    lobbies = list(lobbies)
    live = {lobby.room_code for lobby in lobbies}
    saved = 0
    try:
        for row in LobbySnapshot.query.all():
            if row.room_code not in live:
                db.session.delete(row)
        for lobby in lobbies:
            row = db.session.get(LobbySnapshot, lobby.room_code)
            if row is None:
                row = LobbySnapshot(room_code=lobby.room_code)
            row.payload = json.dumps(export_lobby(lobby))
            row.saved_at = time.time()
            db.session.add(row)
            saved += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info(f"[snapshot-save] lobbies={saved}")
    return saved


def restore_snapshots(registry) -> list:
    """Register every stored lobby not already live. Returns the restored codes."""
    restored = []
    chat_log_limit = int(current_app.config.get('CHAT_LOG_LIMIT', 200))
    for row in LobbySnapshot.query.order_by(LobbySnapshot.room_code).all():
        try:
            lobby = restore_lobby(json.loads(row.payload), chat_log_limit=chat_log_limit)
            registry.register(lobby)
        except (ValueError, SnapshotError, LobbyExists) as exc:
            current_app.logger.warning(f"[snapshot-skip] room={row.room_code} reason={exc}")
            continue
        restored.append(lobby.room_code)
    return restored
