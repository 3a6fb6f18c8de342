"""
Exception hierarchy for activPAL file decoding.

Every error raised while decoding a file derives from ActivpalError, so
callers converting many files can catch one type per file.
"""


class ActivpalError(Exception):
    """Base error for all activPAL decoding failures."""


# ---- Input errors (caller-correctable) ----
class MissingFileError(ActivpalError, FileNotFoundError):
    """Raised when the requested file does not exist."""


class UnsupportedExtensionError(ActivpalError, ValueError):
    """Raised when the file extension is not one of the accepted ones."""


class InvalidUnitsError(ActivpalError, ValueError):
    """Raised when an unknown unit selection is requested."""


# ---- Format errors (only the data owner can fix these) ----
class FormatError(ActivpalError, ValueError):
    """Base error for malformed or unsupported file contents."""


class HeaderError(FormatError):
    """Raised when a header field holds an unrecognised code."""


class TailNotFoundError(FormatError):
    """Raised when the end of the data body cannot be located."""


class UnsupportedAxesError(FormatError):
    """Raised for recordings with an axis count other than 3."""


class CompressionError(FormatError):
    """Raised when a run marker has no preceding data row."""


# ---- Integrity / data-quality errors ----
class SampleCountError(ActivpalError):
    """Raised when the decoded sample count disagrees with the header duration."""


class SentinelError(ActivpalError):
    """Raised when the first sample is invalid and cannot be carried forward."""
