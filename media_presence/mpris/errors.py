from __future__ import annotations


class MprisError(RuntimeError):
    pass


class TransportError(MprisError):
    """A bus call (enumeration or remote method) did not complete."""

    def __init__(self, message: str, *, service_name: str | None = None, operation: str | None = None):
        super().__init__(message)
        self.service_name = service_name
        self.operation = operation


class PlayerUnavailable(TransportError):
    pass


class NoPlayersFound(MprisError):
    pass
