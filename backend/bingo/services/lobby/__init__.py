"""Lobby domain services: registry, board generation and workflows.

Pure in-memory logic imported by HTTP routes and socket handlers, keeping
transport concerns out of the session state machine.
"""

from .board import Board, BoardCell, Objective, generate_board
from .errors import (
    CodeSpaceExhausted,
    DuplicateIdentity,
    InsufficientObjectives,
    InvalidBoardSize,
    InvalidCredential,
    InvalidPayload,
    LobbyError,
    LobbyExists,
    LobbyNotFound,
    SnapshotError,
)
from .lobby import Lobby, Participant, PendingJoin, ReviewRequest
from .objectives import load_objective_pool, parse_objectives
from .presence import (
    DISCONNECT_POLICIES,
    REMOVE_PARTICIPANT,
    RETAIN_FOR_RECONNECT,
    PresenceTracker,
    rebind,
    release_connection,
)
from .registry import LobbyRegistry
from .snapshot import export_lobby, restore_lobby
