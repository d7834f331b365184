"""In-memory lobby aggregate.

A Lobby holds the board, the approved participants, the pending-join queue,
the admin review queue and the team chat log. Mutations go through the
functions in ``workflows``; each one runs under ``Lobby.lock``.
"""

import threading
from collections import deque
from typing import Deque, Dict, List, Optional

from .board import Board


class Participant:
    def __init__(self, identity: str, team: str, connection: Optional[str] = None):
        self.identity = identity
        self.team = team
        # Live Socket.IO sid; the record outlives any single connection
        self.connection = connection
        self.pending_review: List[str] = []
        self.completed: List[dict] = []

    @property
    def connected(self) -> bool:
        return self.connection is not None

    def to_dict(self, include_connection=True):
        data = {
            'identity': self.identity,
            'team': self.team,
            'pendingReview': list(self.pending_review),
            'completedObjectives': [dict(entry) for entry in self.completed],
        }
        if include_connection:
            data['connected'] = self.connected
        return data


class PendingJoin:
    __slots__ = ('identity', 'connection')

    def __init__(self, identity: str, connection: Optional[str] = None):
        self.identity = identity
        self.connection = connection

    def to_dict(self):
        return {'identity': self.identity}


class ReviewRequest:
    __slots__ = ('identity', 'objective_name')

    def __init__(self, identity: str, objective_name: str):
        self.identity = identity
        self.objective_name = objective_name

    def matches(self, identity: str, objective_name: str) -> bool:
        return self.identity == identity and self.objective_name == objective_name

    def to_dict(self):
        return {'identity': self.identity, 'objectiveName': self.objective_name}


class Lobby:
    def __init__(self, room_code: str, admin_secret: str, board_size: int, board: Board,
                 chat_log_limit: int = 200):
        if len(board) != board_size * board_size:
            raise ValueError(f"board has {len(board)} cells, expected {board_size * board_size}")
        self.room_code = room_code
        self.admin_secret = admin_secret
        self.board_size = board_size
        self.board = board
        self.participants: Dict[str, Participant] = {}
        self.pending_joins: List[PendingJoin] = []
        self.pending_reviews: List[ReviewRequest] = []
        self.chat_log: Deque[dict] = deque(maxlen=chat_log_limit)
        self.version = 0
        self.lock = threading.RLock()

    def touch(self) -> int:
        """Record an accepted mutation."""
        self.version += 1
        return self.version

    def has_identity(self, identity: str) -> bool:
        return identity in self.participants or self.find_pending(identity) is not None

    def find_pending(self, identity: str) -> Optional[PendingJoin]:
        for entry in self.pending_joins:
            if entry.identity == identity:
                return entry
        return None

    def participant(self, identity: str) -> Optional[Participant]:
        if not isinstance(identity, str):
            return None
        return self.participants.get(identity)

    def participant_by_connection(self, connection: str) -> Optional[Participant]:
        for participant in self.participants.values():
            if participant.connection == connection:
                return participant
        return None

    def team_connections(self, team: str) -> List[str]:
        return [
            p.connection for p in self.participants.values()
            if p.team == team and p.connection is not None
        ]

    def team_chat(self, team: str) -> List[dict]:
        return [dict(entry) for entry in self.chat_log if entry.get('team') == team]

    def to_dict(self):
        """Public snapshot pushed to every client in the room.

        Carries no admin secret and no chat history.
        """
        return {
            'roomCode': self.room_code,
            'boardSize': self.board_size,
            'board': self.board.to_list(),
            'participants': [p.to_dict() for p in self.participants.values()],
            'pendingJoins': [entry.to_dict() for entry in self.pending_joins],
            'pendingReviews': [req.to_dict() for req in self.pending_reviews],
            'version': self.version,
        }
