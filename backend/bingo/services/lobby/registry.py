"""Process-local lobby registry.

Constructed by the application factory and stored on ``app.extensions``;
nothing here is a module-level global.
"""

import logging
import random
import secrets
import string
import threading
from typing import Callable, Dict, List, Optional, Sequence

from .board import Objective, generate_board
from .errors import (
    CodeSpaceExhausted,
    InvalidBoardSize,
    InvalidCredential,
    LobbyExists,
    LobbyNotFound,
)
from .lobby import Lobby

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ADMIN_SECRET_ALPHABET = string.ascii_lowercase + string.digits


def generate_room_code(length: int = 4) -> str:
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def generate_admin_secret(length: int = 6) -> str:
    return ''.join(secrets.choice(ADMIN_SECRET_ALPHABET) for _ in range(length))


def normalize_code(room_code) -> str:
    if not isinstance(room_code, str):
        return ''
    return room_code.strip().upper()


class LobbyRegistry:
    """Maps room codes to lobbies and owns their creation and disposal."""

    def __init__(self, objectives: Sequence[Objective] = (), *, board_size_min: int = 3,
                 board_size_max: int = 16, room_code_length: int = 4, room_code_attempts: int = 10,
                 admin_secret_length: int = 6, chat_log_limit: int = 200,
                 code_generator: Optional[Callable[[int], str]] = None,
                 rng: Optional[random.Random] = None):
        self.objectives: List[Objective] = list(objectives)
        self.board_size_min = board_size_min
        self.board_size_max = board_size_max
        self.room_code_length = room_code_length
        self.room_code_attempts = room_code_attempts
        self.admin_secret_length = admin_secret_length
        self.chat_log_limit = chat_log_limit
        self._code_generator = code_generator or generate_room_code
        self._rng = rng
        self._lobbies: Dict[str, Lobby] = {}
        self._guard = threading.Lock()

    @classmethod
    def from_config(cls, config, objectives):
        return cls(
            objectives,
            board_size_min=int(config.get('BOARD_SIZE_MIN', 3)),
            board_size_max=int(config.get('BOARD_SIZE_MAX', 16)),
            room_code_length=int(config.get('ROOM_CODE_LENGTH', 4)),
            room_code_attempts=int(config.get('ROOM_CODE_ATTEMPTS', 10)),
            admin_secret_length=int(config.get('ADMIN_SECRET_LENGTH', 6)),
            chat_log_limit=int(config.get('CHAT_LOG_LIMIT', 200)),
        )

    def __len__(self):
        return len(self._lobbies)

    def __contains__(self, room_code):
        return normalize_code(room_code) in self._lobbies

    def validate_board_size(self, board_size) -> int:
        try:
            board_size = int(board_size)
        except (TypeError, ValueError):
            board_size = None
        if board_size is None or not self.board_size_min <= board_size <= self.board_size_max:
            raise InvalidBoardSize(
                f'Invalid board size. Must be between {self.board_size_min} and {self.board_size_max}.'
            )
        return board_size

    def create_lobby(self, board_size) -> Lobby:
        board_size = self.validate_board_size(board_size)
        # Raises InsufficientObjectives before any registry entry exists
        board = generate_board(self.objectives, board_size, rng=self._rng)
        with self._guard:
            for _ in range(self.room_code_attempts):
                code = normalize_code(self._code_generator(self.room_code_length))
                if code and code not in self._lobbies:
                    break
            else:
                raise CodeSpaceExhausted()
            lobby = Lobby(
                code,
                generate_admin_secret(self.admin_secret_length),
                board_size,
                board,
                chat_log_limit=self.chat_log_limit,
            )
            self._lobbies[code] = lobby
        logger.info("lobby created room=%s size=%sx%s", code, board_size, board_size)
        return lobby

    def register(self, lobby: Lobby) -> Lobby:
        with self._guard:
            if lobby.room_code in self._lobbies:
                raise LobbyExists()
            self._lobbies[lobby.room_code] = lobby
        return lobby

    def get(self, room_code) -> Lobby:
        lobby = self._lobbies.get(normalize_code(room_code))
        if lobby is None:
            raise LobbyNotFound()
        return lobby

    def find(self, room_code) -> Optional[Lobby]:
        return self._lobbies.get(normalize_code(room_code))

    def authenticate_admin(self, room_code, admin_secret) -> Lobby:
        """Check the shared admin code for a room.

        Plain equality: the admin code is human-shareable room access
        control, not a security credential.
        """
        lobby = self.get(room_code)
        if not isinstance(admin_secret, str) or admin_secret != lobby.admin_secret:
            raise InvalidCredential()
        return lobby

    def dispose(self, room_code) -> bool:
        with self._guard:
            lobby = self._lobbies.pop(normalize_code(room_code), None)
        if lobby is not None:
            logger.info("lobby disposed room=%s", lobby.room_code)
        return lobby is not None

    def list_codes(self) -> List[str]:
        return sorted(self._lobbies)

    def lobbies(self) -> List[Lobby]:
        with self._guard:
            return [self._lobbies[code] for code in sorted(self._lobbies)]

    def clear(self) -> None:
        with self._guard:
            self._lobbies.clear()
