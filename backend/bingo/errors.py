"""Domain errors shared by the HTTP blueprints and the Socket.IO gateway.

HTTP entry points render these as ``{"error": message}`` with ``status_code``;
the realtime gateway turns them into a private ``error`` event instead.
"""


class BingoError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BingoError):
    """Bad input shape or length."""
    status_code = 400


class NotFound(BingoError):
    """Room, player, card or space does not exist."""
    status_code = 404


class InvalidState(BingoError):
    """Action attempted in the wrong room or card lifecycle phase."""
    status_code = 409


class InvalidOperation(InvalidState):
    """Action that is never allowed on its target, e.g. toggling a free space."""


class ServiceUnavailable(BingoError):
    """The external option generation service failed or timed out."""
    status_code = 503
