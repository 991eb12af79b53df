"""Exception hierarchy for the turn engine.

Everything raised below the turn boundary derives from ReceptionistError
so the engine can recover from it locally and still produce a spoken reply.
"""


class ReceptionistError(Exception):
    """Base class for all turn-engine errors."""


class ConfigurationError(ReceptionistError):
    """Company configuration is incomplete or malformed."""


class CatalogConfigError(ConfigurationError):
    """A service catalog entry is malformed (duplicate key, bad routing)."""


class GeneratorError(ReceptionistError):
    """The text generator failed to return a usable response."""


class GeneratorTimeoutError(GeneratorError):
    """The text generator did not answer within its time budget."""


class InvalidTransitionError(ReceptionistError):
    """Raised when a mode transition is not valid from the current mode."""
