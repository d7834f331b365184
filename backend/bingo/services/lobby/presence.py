"""Connection presence: which live socket belongs to which room and identity."""

import threading
import time
from typing import Dict, Iterable, Optional, Set

from .errors import DuplicateIdentity
from .lobby import Lobby, Participant

RETAIN_FOR_RECONNECT = 'retain'
REMOVE_PARTICIPANT = 'remove'
DISCONNECT_POLICIES = (RETAIN_FOR_RECONNECT, REMOVE_PARTICIPANT)


class Presence:
    __slots__ = ('sid', 'room_code', 'identity', 'is_admin')

    def __init__(self, sid: str, room_code: str, identity: Optional[str] = None, is_admin: bool = False):
        self.sid = sid
        self.room_code = room_code
        self.identity = identity
        self.is_admin = is_admin


class PresenceTracker:
    """Tracks sid -> room context and live connections per room.

    Also keeps disposal deadlines for rooms whose last connection left, so a
    deadline can be cancelled when someone comes back before it fires.
    """

    def __init__(self):
        self._by_sid: Dict[str, Presence] = {}
        self._rooms: Dict[str, Set[str]] = {}
        self._deadlines: Dict[str, float] = {}
        self._guard = threading.Lock()

    def bind(self, sid: str, room_code: str, is_admin: bool = False) -> Presence:
        with self._guard:
            current = self._by_sid.get(sid)
            if current is not None and current.room_code != room_code:
                self._discard(current)
                current = None
            if current is None:
                current = Presence(sid, room_code)
                self._by_sid[sid] = current
            current.is_admin = current.is_admin or is_admin
            self._rooms.setdefault(room_code, set()).add(sid)
            self._deadlines.pop(room_code, None)
            return current

    def set_identity(self, sid: str, identity: str) -> None:
        with self._guard:
            presence = self._by_sid.get(sid)
            if presence is not None:
                presence.identity = identity

    def get(self, sid: str) -> Optional[Presence]:
        return self._by_sid.get(sid)

    def is_admin(self, sid: str, room_code: str) -> bool:
        presence = self._by_sid.get(sid)
        return bool(presence and presence.is_admin and presence.room_code == room_code)

    def release(self, sid: str) -> Optional[Presence]:
        with self._guard:
            presence = self._by_sid.pop(sid, None)
            if presence is not None:
                self._discard(presence)
            return presence

    def _discard(self, presence: Presence) -> None:
        sids = self._rooms.get(presence.room_code)
        if sids is None:
            return
        sids.discard(presence.sid)
        if not sids:
            self._rooms.pop(presence.room_code, None)

    def connections(self, room_code: str) -> Set[str]:
        return set(self._rooms.get(room_code, ()))

    def connection_count(self, room_code: str) -> int:
        return len(self._rooms.get(room_code, ()))

    # ---- disposal deadlines ----

    def schedule_disposal(self, room_code: str, delay_sec: float) -> float:
        deadline = time.time() + delay_sec
        with self._guard:
            self._deadlines[room_code] = deadline
        return deadline

    def cancel_disposal(self, room_code: str) -> None:
        with self._guard:
            self._deadlines.pop(room_code, None)

    def disposal_due(self, room_code: str, deadline: float) -> bool:
        """True when ``deadline`` is still the live one and the room is empty."""
        with self._guard:
            return self._deadlines.get(room_code) == deadline and not self._rooms.get(room_code)

    def forget_room(self, room_code: str) -> Set[str]:
        with self._guard:
            self._deadlines.pop(room_code, None)
            sids = self._rooms.pop(room_code, set())
            for sid in sids:
                self._by_sid.pop(sid, None)
            return sids

    def clear(self) -> None:
        with self._guard:
            self._by_sid.clear()
            self._rooms.clear()
            self._deadlines.clear()


def release_connection(lobby: Lobby, sid: str, policy: str = RETAIN_FOR_RECONNECT) -> bool:
    """Detach ``sid`` from the lobby's records.

    Pending joins tied to the connection are always dropped. Participants are
    unlinked (``retain``) or deleted along with their review requests
    (``remove``).
    """
    if policy not in DISCONNECT_POLICIES:
        raise ValueError(f"unknown disconnect policy: {policy}")
    with lobby.lock:
        changed = False
        kept = [entry for entry in lobby.pending_joins if entry.connection != sid]
        if len(kept) != len(lobby.pending_joins):
            lobby.pending_joins = kept
            changed = True
        for participant in list(lobby.participants.values()):
            if participant.connection != sid:
                continue
            if policy == REMOVE_PARTICIPANT:
                del lobby.participants[participant.identity]
                lobby.pending_reviews = [
                    r for r in lobby.pending_reviews if r.identity != participant.identity
                ]
            else:
                participant.connection = None
            changed = True
        if changed:
            lobby.touch()
    return changed


def rebind(lobby: Lobby, identity: str, sid: str, live: Iterable[str] = ()) -> Optional[Participant]:
    """Attach a new connection to a retained participant record.

    A participant still held by another live connection (one of ``live``)
    cannot be taken over.
    """
    with lobby.lock:
        participant = lobby.participant(identity)
        if participant is None:
            return None
        if participant.connection not in (None, sid) and participant.connection in set(live):
            raise DuplicateIdentity('That participant is already connected.')
        participant.connection = sid
        lobby.touch()
    return participant
