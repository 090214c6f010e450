"""Exception types raised by the scoreboard core."""


class ScoreboardError(Exception):
    """Base class for scoreboard errors."""


class PersistenceError(ScoreboardError):
    """The state file could not be written."""


class ControlError(ScoreboardError):
    """A control event was rejected; the message is shown to the client."""


class UnauthorizedEvent(ControlError):
    """A control event arrived on a connection without admin privilege."""


class UnknownEvent(ControlError):
    """The event name is not one the router handles."""


class MalformedMessage(ControlError):
    """A frame could not be decoded into an event."""
