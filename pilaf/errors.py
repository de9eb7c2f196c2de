"""Exception hierarchy shared across Pilaf."""


class PilafError(Exception):
    """Base class for Pilaf errors."""


class TransportError(PilafError):
    """Raised when a socket or HTTP exchange fails."""


class ProtocolError(PilafError):
    """Raised when a peer speaks the wire protocol incorrectly."""


class MalformedPacketError(ProtocolError):
    """Raised when a console packet cannot be framed or decoded."""


class AuthenticationError(ProtocolError):
    """Raised when the console server rejects the shared secret."""


class NotAuthenticatedError(ProtocolError):
    """Raised when a console command is issued before authentication."""


class ConfigurationError(PilafError, ValueError):
    """Raised for malformed or missing configuration values."""


class UnknownBackendError(ConfigurationError):
    """Raised when a backend discriminator does not name a known variant."""


class BackendNotInitializedError(PilafError):
    """Raised when a backend or connection manager is used before initialize()."""


class UnsupportedOperationError(PilafError):
    """Raised when a backend variant cannot serve an operation."""


class ScenarioError(PilafError):
    """Raised when a scenario action cannot be executed."""


class UndefinedVariableError(ScenarioError):
    """Raised when a placeholder references a slot that was never stored."""

    def __init__(self, name: str) -> None:
        super().__init__(f"undefined variable '{name}'")
        self.name = name