"""
Error types and exit codes for SDD.

Library code raises these; command functions catch SddError, print
the message and return exit_code.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    VALIDATION_FAILED = 2
    CONSTITUTION_VIOLATION = 3
    FILE_SYSTEM_ERROR = 4
    USER_CANCELLED = 5


class ErrorCode:
    UNKNOWN = "E001"
    INVALID_ARGUMENT = "E002"
    NOT_INITIALIZED = "E003"

    FILE_NOT_FOUND = "E101"
    FILE_READ_ERROR = "E102"
    FILE_WRITE_ERROR = "E103"
    DIRECTORY_NOT_FOUND = "E104"
    DIRECTORY_EXISTS = "E105"

    SPEC_PARSE_ERROR = "E201"
    SPEC_INVALID_FORMAT = "E202"
    SPEC_MISSING_REQUIRED = "E203"
    RFC2119_VIOLATION = "E204"
    GWT_INVALID_FORMAT = "E205"

    CONSTITUTION_NOT_FOUND = "E301"
    CONSTITUTION_PARSE_ERROR = "E302"
    CONSTITUTION_VIOLATION = "E303"

    PROPOSAL_NOT_FOUND = "E401"
    PROPOSAL_INVALID = "E402"
    DELTA_CONFLICT = "E403"
    ARCHIVE_FAILED = "E404"

    ANALYSIS_FAILED = "E501"
    INSUFFICIENT_DATA = "E502"


class SddError(Exception):
    """Base error. Carries an error code and the exit code to use."""

    exit_code = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, code: str = ErrorCode.UNKNOWN):
        self.code = code
        self.message = message
        super().__init__(message)

    def to_user_message(self) -> str:
        return f"[{self.code}] {self.message}"


class NotInitializedError(SddError):
    def __init__(self, start: str = "."):
        super().__init__(
            f"No .sdd directory found from {start}. Run 'sdd init' first.",
            ErrorCode.NOT_INITIALIZED,
        )


class FileSystemError(SddError):
    exit_code = ExitCode.FILE_SYSTEM_ERROR

    def __init__(self, message: str, path, code: str = ErrorCode.FILE_READ_ERROR):
        self.path = str(path)
        super().__init__(f"{message}: {path}", code)


class SpecParseError(SddError):
    """Spec document could not be parsed (E201-E203)."""

    exit_code = ExitCode.VALIDATION_FAILED

    def __init__(self, message: str, code: str = ErrorCode.SPEC_PARSE_ERROR):
        super().__init__(message, code)


class SpecValidationError(SddError):
    exit_code = ExitCode.VALIDATION_FAILED

    def __init__(self, message: str, code: str = ErrorCode.SPEC_INVALID_FORMAT):
        super().__init__(message, code)


class ChangeError(SddError):
    """Change proposal, delta or archive failure."""

    def __init__(self, message: str, code: str = ErrorCode.PROPOSAL_INVALID):
        super().__init__(message, code)


class ConstitutionError(SddError):
    exit_code = ExitCode.CONSTITUTION_VIOLATION

    def __init__(self, message: str, code: str = ErrorCode.CONSTITUTION_PARSE_ERROR):
        super().__init__(message, code)


class GitError(SddError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.UNKNOWN)


class SerenaUnavailableError(SddError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.ANALYSIS_FAILED)


class ConfigError(SddError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_ARGUMENT)
