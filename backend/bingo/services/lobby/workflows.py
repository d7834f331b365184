"""Join/approval and review/completion workflows.

Each function takes the lobby lock, validates, then mutates. Validation
failures raise before anything changes. Idempotent no-ops return a falsy
value so callers can skip the broadcast.
"""

import logging
from typing import Iterable, Optional

from .errors import DuplicateIdentity, InvalidPayload
from .lobby import Lobby, Participant, PendingJoin, ReviewRequest

logger = logging.getLogger(__name__)

MAX_IDENTITY_LENGTH = 32


def clean_identity(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidPayload('A username is required.')
    value = value.strip()
    if len(value) > MAX_IDENTITY_LENGTH:
        raise InvalidPayload(f'Usernames are limited to {MAX_IDENTITY_LENGTH} characters.')
    return value


def clean_team(value, required=True) -> Optional[str]:
    if value is None and not required:
        return None
    if not isinstance(value, str) or not value.strip():
        raise InvalidPayload('A team is required.')
    return value.strip()


# ---- Join / approval ----

def request_join(lobby: Lobby, identity: str, connection: Optional[str]) -> PendingJoin:
    identity = clean_identity(identity)
    with lobby.lock:
        if lobby.has_identity(identity):
            raise DuplicateIdentity()
        entry = PendingJoin(identity, connection)
        lobby.pending_joins.append(entry)
        lobby.touch()
    logger.info("join requested room=%s identity=%s", lobby.room_code, identity)
    return entry


def approve(lobby: Lobby, identity: str, team: str) -> Optional[PendingJoin]:
    """Promote a pending join to a participant on ``team``.

    Returns the resolved pending entry (so the caller can notify its
    connection) or None when nothing was pending under that identity.
    """
    with lobby.lock:
        entry = lobby.find_pending(identity)
        if entry is None:
            return None
        team = clean_team(team)
        lobby.pending_joins.remove(entry)
        lobby.participants[identity] = Participant(identity, team, connection=entry.connection)
        lobby.touch()
    logger.info("join approved room=%s identity=%s team=%s", lobby.room_code, identity, team)
    return entry


# ---- Review / completion ----

def _drop_requests(lobby: Lobby, objective_name: str, identity: Optional[str] = None) -> int:
    before = len(lobby.pending_reviews)
    if identity is None:
        lobby.pending_reviews = [r for r in lobby.pending_reviews if r.objective_name != objective_name]
    else:
        lobby.pending_reviews = [r for r in lobby.pending_reviews if not r.matches(identity, objective_name)]
    return before - len(lobby.pending_reviews)


def _drop_pending_everywhere(lobby: Lobby, objective_name: str) -> int:
    removed = 0
    for participant in lobby.participants.values():
        if objective_name in participant.pending_review:
            participant.pending_review.remove(objective_name)
            removed += 1
    return removed


def request_review(lobby: Lobby, identity: str, objective_names: Iterable[str]) -> bool:
    if not isinstance(objective_names, (list, tuple, set)):
        raise InvalidPayload('objectiveNames must be a list.')
    with lobby.lock:
        participant = lobby.participant(identity)
        if participant is None:
            return False
        changed = False
        for name in objective_names:
            if not isinstance(name, str) or name not in lobby.board:
                continue
            if name not in participant.pending_review:
                participant.pending_review.append(name)
                changed = True
            if not any(r.matches(identity, name) for r in lobby.pending_reviews):
                lobby.pending_reviews.append(ReviewRequest(identity, name))
                changed = True
        if changed:
            lobby.touch()
    return changed


def mark_complete(lobby: Lobby, identity: str, objective_name: str, team: Optional[str] = None) -> bool:
    """Award ``objective_name`` to ``team`` and resolve every request for it."""
    team = clean_team(team, required=False)
    with lobby.lock:
        participant = lobby.participant(identity)
        cell = lobby.board.get(objective_name)
        if participant is None or cell is None:
            return False
        team = team or participant.team
        cell.team = team
        participant.completed.append({'objectiveName': objective_name, 'team': team})
        _drop_pending_everywhere(lobby, objective_name)
        _drop_requests(lobby, objective_name)
        lobby.touch()
    logger.info("objective completed room=%s objective=%s team=%s by=%s",
                lobby.room_code, objective_name, team, identity)
    return True


def dismiss_review(lobby: Lobby, identity: str, objective_name: str) -> bool:
    """Drop a single requester's claim; other claims on the objective stay queued."""
    with lobby.lock:
        participant = lobby.participant(identity)
        changed = False
        if participant is not None and objective_name in participant.pending_review:
            participant.pending_review.remove(objective_name)
            changed = True
        if _drop_requests(lobby, objective_name, identity):
            changed = True
        if changed:
            lobby.touch()
    return changed


def manual_override(lobby: Lobby, objective_name: str, team: Optional[str]) -> bool:
    """Set or clear a cell's owner directly, bypassing the review queue."""
    if isinstance(team, str) and not team.strip():
        team = None
    team = clean_team(team, required=False)
    with lobby.lock:
        cell = lobby.board.get(objective_name)
        if cell is None:
            return False
        cell.team = team
        _drop_requests(lobby, objective_name)
        _drop_pending_everywhere(lobby, objective_name)
        lobby.touch()
    logger.info("manual override room=%s objective=%s team=%s", lobby.room_code, objective_name, team)
    return True


# ---- Team chat ----

def post_team_message(lobby: Lobby, identity: str, team: str, message: str) -> dict:
    if not isinstance(message, str) or not message.strip():
        raise InvalidPayload('Message is empty.')
    entry = {'identity': identity, 'team': team, 'message': message.strip()}
    with lobby.lock:
        lobby.chat_log.append(entry)
    return dict(entry)
