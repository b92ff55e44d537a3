"""Custom exception classes for MCP Explorer."""

from typing import Optional


class ExplorerBaseError(Exception):
    """Base class for all custom exceptions in MCP Explorer."""

    pass


class ConfigurationError(ExplorerBaseError):
    """Raised when loading or validating the configuration file fails."""

    pass


class TransportError(ExplorerBaseError):
    """
    Raised when the tool server cannot be reached, the connection has not
    been established, or the MCP exchange itself fails.
    """

    def __init__(self, message: str, orig_exc: Optional[Exception] = None):
        self.orig_exc = orig_exc

        full_msg = f"Transport error: {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


class UnknownCapability(ExplorerBaseError):
    """Raised when a capability name is not present in the current catalog."""

    _label = "Unknown capability"

    def __init__(self, capability_name: str):
        self.capability_name = capability_name
        super().__init__(f"{self._label}: '{capability_name}'")


class OracleUnknownCapability(UnknownCapability):
    """Raised when the decision oracle names a capability absent from the catalog."""

    _label = "Oracle selected unknown capability"


class NoCandidates(ExplorerBaseError):
    """Raised when the catalog holds no capability of the wanted family."""

    def __init__(self, marker: Optional[str] = None):
        self.marker = marker
        if marker is None:
            super().__init__("The tool server exposes no capabilities.")
        else:
            super().__init__(f"No capabilities matching '{marker}' found in the catalog.")


class OracleDecodeError(ExplorerBaseError):
    """Raised when the oracle reply cannot be read as a tool decision."""

    def __init__(self, message: str, raw_reply: str):
        self.raw_reply = raw_reply
        super().__init__(f"{message} (raw reply: {raw_reply!r})")


class OracleError(ExplorerBaseError):
    """Raised when the call to the oracle's backing provider fails."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        orig_exc: Optional[Exception] = None,
    ):
        self.provider = provider
        self.orig_exc = orig_exc

        full_msg = "Oracle error"
        if provider:
            full_msg += f" (provider: {provider})"
        full_msg += f": {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


class RemoteToolError(ExplorerBaseError):
    """Raised when the tool server executed a call but reported a failure."""

    def __init__(self, capability_name: str, remote_message: str):
        self.capability_name = capability_name
        self.remote_message = remote_message
        super().__init__(f"Tool '{capability_name}' failed: {remote_message}")


class OperationCancelled(ExplorerBaseError):
    """Raised when the caller's cancellation signal fires during an operation."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Operation '{operation}' was cancelled.")
