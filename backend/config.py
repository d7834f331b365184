import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Only used for best-effort lobby snapshots
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///' + os.path.join(BASE_DIR, 'bingo.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [o for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',') if o]
    # Objective catalog (JSON array of {name, description})
    OBJECTIVES_PATH = os.environ.get('OBJECTIVES_PATH') or os.path.join(BASE_DIR, 'objectives.json')
    BOARD_SIZE_MIN = int(os.environ.get('BOARD_SIZE_MIN', '3'))
    BOARD_SIZE_MAX = int(os.environ.get('BOARD_SIZE_MAX', '16'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '4'))
    ROOM_CODE_ATTEMPTS = int(os.environ.get('ROOM_CODE_ATTEMPTS', '10'))
    ADMIN_SECRET_LENGTH = int(os.environ.get('ADMIN_SECRET_LENGTH', '6'))
    # 'retain' keeps a disconnected participant for reconnection, 'remove' drops it
    ON_DISCONNECT = os.environ.get('ON_DISCONNECT', 'retain')
    # Seconds an empty room survives before disposal. Negative disables.
    LOBBY_GRACE_PERIOD_SEC = float(os.environ.get('LOBBY_GRACE_PERIOD_SEC', '300'))
    CHAT_LOG_LIMIT = int(os.environ.get('CHAT_LOG_LIMIT', '200'))
    # Save lobbies to the snapshot table on shutdown and reload them on start
    PERSIST_SNAPSHOTS = os.environ.get('PERSIST_SNAPSHOTS', '0').lower() in ('1', 'true', 'yes')
