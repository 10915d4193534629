"""Arena exception hierarchy.

Centralised base classes so failures in the game engine, the opponent and the
persistence layer can be caught narrowly.
"""


class ArenaError(Exception):
    """Root of all arena domain exceptions."""


class PersistenceError(ArenaError):
    """Errors while loading or saving the opponent's learned memory."""


class ConfigurationError(ArenaError):
    """Invalid or missing configuration."""


class ProtocolError(ArenaError):
    """A client message that cannot be interpreted."""
