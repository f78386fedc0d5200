"""Error taxonomy shared by the relay server and client."""


class CodeChatError(Exception):
    """Base class for codechat errors."""

    status_code = 500


class ValidationError(CodeChatError):
    """A request field is missing or invalid."""

    status_code = 400


class InvalidDirectory(ValidationError):
    """A working directory does not exist or is not a directory."""


class NotFoundError(CodeChatError):
    """An unknown session or path was requested."""

    status_code = 404


class PermissionDeniedError(CodeChatError):
    """Filesystem access was denied."""

    status_code = 403


class BackendError(CodeChatError):
    """The agent backend failed mid-stream."""


class PersistenceError(CodeChatError):
    """Reading or writing durable state failed."""
