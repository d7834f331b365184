class LobbyError(Exception):
    """Base class for lobby-domain errors.

    ``status`` is the HTTP status the transport layer answers with.
    """

    status = 400
    default_message = 'Lobby error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidBoardSize(LobbyError):
    status = 400
    default_message = 'Invalid board size.'


class InvalidPayload(LobbyError):
    status = 400
    default_message = 'Malformed request.'


class InsufficientObjectives(LobbyError):
    status = 500
    default_message = 'Not enough objectives to build the board.'


class CodeSpaceExhausted(LobbyError):
    status = 409
    default_message = 'Room code collision, please try again.'


class LobbyNotFound(LobbyError):
    status = 404
    default_message = 'Lobby not found.'


class InvalidCredential(LobbyError):
    status = 401
    default_message = 'Invalid credential.'


class DuplicateIdentity(LobbyError):
    status = 409
    default_message = 'Username already exists or is pending approval.'


class LobbyExists(LobbyError):
    status = 409
    default_message = 'A lobby with that room code already exists.'


class SnapshotError(LobbyError):
    status = 400
    default_message = 'Malformed lobby snapshot.'
