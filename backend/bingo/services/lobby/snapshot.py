"""Best-effort lobby export/import.

An export carries everything needed to rebuild a lobby except live
connections: restored participants come back disconnected and the pending
join queue starts empty.
"""

from .board import Board, BoardCell, Objective
from .errors import SnapshotError
from .lobby import Lobby, Participant, ReviewRequest


def export_lobby(lobby: Lobby) -> dict:
    with lobby.lock:
        return {
            'roomCode': lobby.room_code,
            'adminSecret': lobby.admin_secret,
            'boardSize': lobby.board_size,
            'board': lobby.board.to_list(),
            'participants': [p.to_dict(include_connection=False) for p in lobby.participants.values()],
            'pendingReviews': [r.to_dict() for r in lobby.pending_reviews],
            'version': lobby.version,
        }


def _enqueue(lobby: Lobby, identity: str, name: str) -> None:
    if not any(r.matches(identity, name) for r in lobby.pending_reviews):
        lobby.pending_reviews.append(ReviewRequest(identity, name))


def restore_lobby(data, chat_log_limit: int = 200) -> Lobby:
    if not isinstance(data, dict):
        raise SnapshotError()
    try:
        board = Board(
            BoardCell(Objective(cell['name'], cell.get('description', '')), cell.get('team'))
            for cell in data['board']
        )
        lobby = Lobby(
            str(data['roomCode']).upper(),
            str(data['adminSecret']),
            int(data['boardSize']),
            board,
            chat_log_limit=chat_log_limit,
        )
        for raw in data.get('participants', []):
            participant = Participant(raw['identity'], raw['team'])
            participant.pending_review = list(dict.fromkeys(
                n for n in raw.get('pendingReview', []) if n in board
            ))
            participant.completed = [
                {'objectiveName': c['objectiveName'], 'team': c.get('team')}
                for c in raw.get('completedObjectives', [])
            ]
            lobby.participants[participant.identity] = participant
        # The admin queue and each participant's pending set must list the same claims
        for raw in data.get('pendingReviews', []):
            identity, name = raw['identity'], raw['objectiveName']
            participant = lobby.participant(identity)
            if participant is None or name not in board:
                continue
            if name not in participant.pending_review:
                participant.pending_review.append(name)
            _enqueue(lobby, identity, name)
        for participant in lobby.participants.values():
            for name in participant.pending_review:
                _enqueue(lobby, participant.identity, name)
        lobby.version = int(data.get('version', 0))
    except (KeyError, TypeError, ValueError) as exc:
        raise SnapshotError(f'Malformed lobby snapshot: {exc}') from exc
    return lobby
