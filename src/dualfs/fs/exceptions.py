"""Custom exception hierarchy for the dualfs filesystem layer."""


class DualFSError(Exception):
    """Base exception for all dualfs errors."""


class ConnectionFailureError(DualFSError):
    """Raised when the remote endpoint cannot be reached or rejects the login."""


class SessionClosedError(DualFSError):
    """Raised when a remote command is issued on a session that is not connected."""


class RemoteCommandError(DualFSError):
    """Raised when the remote server answers a command with an error reply."""

    def __init__(self, command: str, reply: str) -> None:
        super().__init__(f"{command} failed: {reply}")
        self.command = command
        self.reply = reply

    @property
    def code(self) -> str:
        """Three-digit reply code, or an empty string if the reply has none."""
        head = self.reply[:3]
        return head if head.isdigit() else ""


class ConfigurationError(DualFSError):
    """Raised when required configuration values are missing or invalid."""
