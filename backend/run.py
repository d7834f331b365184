from bingo import create_app, socketio, db, get_registry, get_presence
from bingo.models import restore_snapshots, save_snapshots
from bingo.socketio_events import schedule_lobby_disposal

app = create_app()

if __name__ == '__main__':
    persist = app.config.get('PERSIST_SNAPSHOTS')
    if persist:
        with app.app_context():
            db.create_all()
            restored = restore_snapshots(get_registry(app))
            app.logger.info(f"[snapshot-restore] rooms={restored}")
        # Restored rooms start with no connections, same as freshly created ones
        for code in restored:
            schedule_lobby_disposal(app, code, on_create=True)
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, debug=True)
    finally:
        with app.app_context():
            if persist:
                save_snapshots(get_registry(app).lobbies())
            get_registry(app).clear()
            get_presence(app).clear()
