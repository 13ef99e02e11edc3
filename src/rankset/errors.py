"""Domain exceptions for ranked set persistence.

This module defines the exceptions raised when a save file cannot be
interpreted or written. Plain I/O failures are not wrapped: they surface
as the ``OSError`` raised by the filesystem call so the caller can tell a
missing file apart from a file that is not a recognized save file.
"""

from pathlib import Path


class RankSetError(Exception):
    """Base exception for all ranked set errors.

    All exceptions raised by the rankset package inherit from this class
    to enable consistent error handling at the CLI level.
    """


class FormatMismatchError(RankSetError):
    """Raised when a binary save file does not start with the magic prefix.

    The prefix is checked before any decoding is attempted, so this error
    means the file is not a save file at all rather than a damaged one.
    """

    def __init__(self, path: Path | str, prefix: bytes) -> None:
        """Initialize the error with the offending prefix.

        Args:
            path: File that was being read.
            prefix: Leading bytes actually found (may be shorter than two).
        """
        self.path = str(path)
        self.prefix = prefix
        super().__init__(
            f"Not a recognized save file: {self.path} "
            f"(prefix {prefix.hex() or '<empty>'})"
        )


class DecodeError(RankSetError):
    """Raised when a save file body is structurally invalid.

    The underlying parser exception, if any, is chained as ``__cause__``.
    """

    def __init__(self, path: Path | str, message: str) -> None:
        """Initialize the decode error.

        Args:
            path: File that was being read.
            message: Human-readable description of the problem.
        """
        self.path = str(path)
        self.message = message
        super().__init__(f"Failed to decode {self.path}: {message}")


class EncodeError(RankSetError):
    """Raised when entries cannot be written in the requested format.

    Counters are stored as unsigned 32-bit integers in both formats, so an
    entry whose wins or votes grew past that range cannot be saved.
    """

    def __init__(self, path: Path | str, message: str) -> None:
        """Initialize the encode error.

        Args:
            path: File that was being written.
            message: Human-readable description of the problem.
        """
        self.path = str(path)
        self.message = message
        super().__init__(f"Failed to encode {self.path}: {message}")
