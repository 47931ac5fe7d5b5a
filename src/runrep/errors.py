"""Error taxonomy for runrep command building and remote execution."""


class RunrepError(Exception):
    """Base class for all runrep errors."""

    pass


class ValidationError(RunrepError, ValueError):
    """Caller-supplied parameters are malformed. Raised before any network activity."""

    pass


class DomainError(RunrepError):
    """The remote runrep utility reported an application-level problem on stderr."""

    def __init__(self, message: str, remote_error_line: str, redacted_command: str):
        super().__init__(message)
        self.message = message
        self.remote_error_line = remote_error_line
        self.redacted_command = redacted_command

    def detailed_report(self) -> str:
        return (
            f"Error occurred during command execution: {self.redacted_command}\n"
            f"Error Message: {self.remote_error_line}\n"
            f"Detailed Message: {self.message}"
        )

    def __str__(self) -> str:
        return f"{self.message}: {self.remote_error_line}"


class TransportError(RunrepError):
    """Connection, authentication, or protocol-level I/O failure."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.args[0]
        return f"{self.args[0]} ({self.cause})"


class RemoteFileError(RunrepError):
    """Classified SFTP failure on a remote file."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class ResourceNotFound(RemoteFileError):
    """The remote file does not exist."""

    pass


class PermissionDenied(RemoteFileError):
    """Insufficient permissions on the remote file."""

    pass
