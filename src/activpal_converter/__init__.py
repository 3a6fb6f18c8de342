"""
activPAL Converter - activPAL .datx/.dat accelerometer files to time series

Decodes the binary recordings of activPAL wearable accelerometers into a
timestamped pandas table of x, y, z samples with Pydantic metadata models.
"""

from .models import (
    Units,
    StartCondition,
    StopCondition,
    CompressionScheme,
    ReconcileOutcome,
    Metadata,
    ActivpalData,
    RecordingSummary,
)
from .exceptions import (
    ActivpalError,
    MissingFileError,
    UnsupportedExtensionError,
    InvalidUnitsError,
    FormatError,
    HeaderError,
    TailNotFoundError,
    UnsupportedAxesError,
    CompressionError,
    SampleCountError,
    SentinelError,
)
from .helpers import check_file, get_file_ext, repeat_row
from .decoder import (
    load_datx,
    read_header,
    decode_bytes,
    parse_header,
    locate_tail,
    decode_body,
    decompress,
    decompress_legacy,
    clean,
    check_length,
    convert_units,
)
from .converter import (
    convert_file,
    convert_all_files,
    validate_file,
)

__version__ = "0.1.0"
__all__ = [
    "Units",
    "StartCondition",
    "StopCondition",
    "CompressionScheme",
    "ReconcileOutcome",
    "Metadata",
    "ActivpalData",
    "RecordingSummary",
    "ActivpalError",
    "MissingFileError",
    "UnsupportedExtensionError",
    "InvalidUnitsError",
    "FormatError",
    "HeaderError",
    "TailNotFoundError",
    "UnsupportedAxesError",
    "CompressionError",
    "SampleCountError",
    "SentinelError",
    "check_file",
    "get_file_ext",
    "repeat_row",
    "load_datx",
    "read_header",
    "decode_bytes",
    "parse_header",
    "locate_tail",
    "decode_body",
    "decompress",
    "decompress_legacy",
    "clean",
    "check_length",
    "convert_units",
    "convert_file",
    "convert_all_files",
    "validate_file",
]
