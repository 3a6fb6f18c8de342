"""
Binary decoder for activPAL .datx and .dat accelerometer recordings.

A file is a fixed-length header, a variable-length body of (x, y, z) byte
triplets (optionally run-length compressed) and a trailer. There is no
length field: the end of the body is found heuristically.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from .exceptions import (
    CompressionError,
    HeaderError,
    InvalidUnitsError,
    SampleCountError,
    SentinelError,
    TailNotFoundError,
    UnsupportedAxesError,
    UnsupportedExtensionError,
)
from .helpers import check_file, get_file_ext, repeat_row
from .models import (
    ActivpalData,
    CompressionScheme,
    Metadata,
    ReconcileOutcome,
    StartCondition,
    StopCondition,
    Units,
)

logger = logging.getLogger(__name__)

# ==================== File Layout ====================

# Header length is determined by the extension alone
HEADER_END = {
    ".datx": 1024,
    ".dat": 1023,
}

# Header byte offsets (0-based)
FIRMWARE_LOW_OFFSET = 17
HZ_OFFSET = 35
COMPRESSION_OFFSET = 36
RESOLUTION_OFFSET = 38
FIRMWARE_HIGH_OFFSET = 39
START_TIME_OFFSET = 256  # hour, minute, second, day, month, year - 2000
STOP_TIME_OFFSET = 262  # same layout as start time
START_CONDITION_OFFSET = 268
STOP_CONDITION_OFFSET = 275
AXES_OFFSET = 280

BITDEPTH_10_FLAG = 128

RESOLUTION_G = {0: 2, 1: 4, 2: 8}
AXES = {0: 3, 1: 1}
START_CONDITIONS = {
    0: StartCondition.TRIGGER,
    1: StartCondition.IMMEDIATELY,
    2: StartCondition.SET_TIME,
}
STOP_CONDITIONS = {
    0: StopCondition.MEMORY_FULL,
    3: StopCondition.LOW_BATTERY,
    64: StopCondition.USB,
    128: StopCondition.PROGRAMMED_TIME,
}

# .datx trailer starts with this literal
TAIL_MARKER = b"tail"
# .dat trailer signature: True = byte >= 1, False = byte == 0
DAT_FOOTER_SIGNATURE = (False, False, True, False, False, True, True, False)

SUPPORTED_AXES = 3
# Firmware ids up to this value use the legacy run-length scheme
LEGACY_FIRMWARE_MAX = 217

# Rows containing these values are dropped samples, in cleaning order
SENTINEL_VALUES = (254, 255)

# Allowed mismatch between decoded and declared sample counts
SAMPLE_COUNT_TOLERANCE_S = 5 * 60

# ==================== Unit Conversion ====================

ZERO_G_COUNT = 127
COUNTS_PER_G = 63
STANDARD_GRAVITY = 9.81

SIGNAL_COLUMNS = ["timestamp", "x", "y", "z"]


def _in_file(source: Optional[str]) -> str:
    return f" in file: {source}" if source else ""


# ==================== Byte Source ====================


def read_bytes(file_path: Union[str, Path]) -> bytes:
    """Read a whole file into memory."""
    return Path(file_path).read_bytes()


def header_length(ext: str, source: Optional[str] = None) -> int:
    """Return the header length for a file extension (".datx" or ".dat")."""
    try:
        return HEADER_END[ext]
    except KeyError:
        raise UnsupportedExtensionError(
            f"File extension {ext!r} is not recognised{_in_file(source)}"
        ) from None


# ==================== Header Parser ====================


def _lookup(table: dict, code: int, field: str, offset: int, source: Optional[str]):
    try:
        return table[code]
    except KeyError:
        raise HeaderError(
            f"Unrecognised {field} code {code} at header byte {offset}{_in_file(source)}"
        ) from None


def _read_datetime(header: bytes, offset: int, field: str, source: Optional[str]) -> datetime:
    hour, minute, second, day, month, year = header[offset:offset + 6]
    try:
        return datetime(year + 2000, month, day, hour, minute, second)
    except ValueError as e:
        raise HeaderError(
            f"Invalid {field} at header bytes {offset}-{offset + 5}: {e}{_in_file(source)}"
        ) from e


def parse_header(header: bytes, source: Optional[str] = None) -> Metadata:
    """
    Decode the fixed-offset header fields.

    Args:
        header: Header bytes (at least up to the axis-count byte)
        source: File path used in error messages

    Returns:
        Parsed Metadata

    Raises:
        HeaderError: truncated header or unrecognised field code
    """
    if len(header) <= AXES_OFFSET:
        raise HeaderError(
            f"Header is truncated ({len(header)} bytes){_in_file(source)}"
        )

    resolution_byte = header[RESOLUTION_OFFSET]
    if resolution_byte < BITDEPTH_10_FLAG:
        bitdepth = 8
        resolution_code = resolution_byte
    else:
        bitdepth = 10
        resolution_code = resolution_byte - BITDEPTH_10_FLAG

    hz = header[HZ_OFFSET]
    if hz == 0:
        raise HeaderError(f"Sample rate at header byte {HZ_OFFSET} is zero{_in_file(source)}")

    return Metadata(
        bitdepth=bitdepth,
        resolution=_lookup(RESOLUTION_G, resolution_code, "resolution", RESOLUTION_OFFSET, source),
        hz=hz,
        axes=_lookup(AXES, header[AXES_OFFSET], "axis count", AXES_OFFSET, source),
        start_time=_read_datetime(header, START_TIME_OFFSET, "start time", source),
        stop_time=_read_datetime(header, STOP_TIME_OFFSET, "stop time", source),
        start_condition=_lookup(
            START_CONDITIONS, header[START_CONDITION_OFFSET], "start condition",
            START_CONDITION_OFFSET, source,
        ),
        stop_condition=_lookup(
            STOP_CONDITIONS, header[STOP_CONDITION_OFFSET], "stop condition",
            STOP_CONDITION_OFFSET, source,
        ),
        firmware=header[FIRMWARE_HIGH_OFFSET] * 255 + header[FIRMWARE_LOW_OFFSET],
        compression=header[COMPRESSION_OFFSET] != 0,
    )


# ==================== Tail Locator ====================


def _find_footer_signature(contents: bytes, header_end: int, source: Optional[str]) -> int:
    data = np.frombuffer(contents, dtype=np.uint8)[header_end:]
    n_windows = len(data) - len(DAT_FOOTER_SIGNATURE) + 1
    if n_windows <= 0:
        raise TailNotFoundError(f"Data body is too short to hold a file tail{_in_file(source)}")

    mask = np.ones(n_windows, dtype=bool)
    for pos, nonzero in enumerate(DAT_FOOTER_SIGNATURE):
        window = data[pos:pos + n_windows]
        mask &= (window >= 1) if nonzero else (window == 0)

    hits = np.flatnonzero(mask)
    if hits.size == 0:
        raise TailNotFoundError(f"Could not locate the file tail{_in_file(source)}")
    return header_end + int(hits[0])


def locate_tail(contents: bytes, header_end: int, ext: str, source: Optional[str] = None) -> int:
    """
    Find where the data body ends (exclusive byte index).

    .datx files end the body at the last "tail" marker. .dat files have no
    marker; the body ends at the first window after the header matching the
    trailer's zero/non-zero signature.
    """
    if ext == ".datx":
        tail_start = contents.rfind(TAIL_MARKER)
        if tail_start < header_end:
            raise TailNotFoundError(f"No 'tail' marker after the header{_in_file(source)}")
        return tail_start
    if ext == ".dat":
        return _find_footer_signature(contents, header_end, source)
    raise UnsupportedExtensionError(f"File extension {ext!r} is not recognised{_in_file(source)}")


# ==================== Body Decoder ====================


def select_compression_scheme(compression: bool, firmware: int) -> CompressionScheme:
    """Pick the run-length scheme from the header compression flag and firmware id."""
    if not compression:
        return CompressionScheme.NONE
    if firmware > LEGACY_FIRMWARE_MAX:
        return CompressionScheme.CURRENT
    return CompressionScheme.LEGACY


def _marker_rows(rows: np.ndarray, source: Optional[str]) -> np.ndarray:
    markers = np.flatnonzero((rows[:, 0] == 0) & (rows[:, 1] == 0))
    if markers.size and markers[0] == 0:
        raise CompressionError(f"Run marker in the first data row has nothing to repeat{_in_file(source)}")
    return markers


def decompress(rows: np.ndarray, source: Optional[str] = None) -> np.ndarray:
    """
    Expand run markers written by current firmware.

    A row (0, 0, n) means the row before it appears n + 1 times in total.
    Marker rows are dropped. A genuine sample with x == y == 0 is
    indistinguishable from a marker.
    """
    markers = _marker_rows(rows, source)
    multiplier = np.ones(len(rows), dtype=np.int64)
    multiplier[markers - 1] = rows[markers, 2].astype(np.int64) + 1
    # Markers always win over a repeat count set by a following marker
    multiplier[markers] = 0
    return repeat_row(rows, multiplier)


def decompress_legacy(rows: np.ndarray, source: Optional[str] = None) -> np.ndarray:
    """
    Expand run markers written by legacy firmware.

    Legacy firmware writes back-to-back markers for long runs: the counts of
    each cluster of adjacent markers are summed as sum(n_i + 1) and applied to
    the data row before the cluster.
    """
    markers = _marker_rows(rows, source)
    multiplier = np.ones(len(rows), dtype=np.int64)
    multiplier[markers] = 0

    if markers.size:
        counts = rows[markers, 2].astype(np.int64) + 1
        breaks = np.flatnonzero(np.diff(markers) > 1) + 1
        for cluster, cluster_counts in zip(np.split(markers, breaks), np.split(counts, breaks)):
            multiplier[cluster[0] - 1] = cluster_counts.sum()

    return repeat_row(rows, multiplier)


def decode_body(
    body: bytes,
    scheme: CompressionScheme,
    axes: int,
    source: Optional[str] = None,
) -> np.ndarray:
    """
    Decode the data body into an (n, 3) array of raw byte samples.

    Args:
        body: Bytes between the header and the tail
        scheme: Run-length scheme from select_compression_scheme
        axes: Axis count from the header; only 3 is supported
        source: File path used in messages

    Returns:
        Array of uint8 samples, one row per sample
    """
    if axes != SUPPORTED_AXES:
        raise UnsupportedAxesError(
            f"Reading data from {axes}-axis recordings is not supported{_in_file(source)}"
        )

    data = np.frombuffer(body, dtype=np.uint8)
    remainder = len(data) % axes
    if remainder:
        logger.warning(
            "Data length %d is not divisible by %d axes; dropping %d trailing bytes%s",
            len(data), axes, remainder, _in_file(source),
        )
        data = data[:len(data) - remainder]

    rows = data.reshape(-1, axes)

    if scheme is CompressionScheme.CURRENT:
        return decompress(rows, source)
    if scheme is CompressionScheme.LEGACY:
        return decompress_legacy(rows, source)
    return rows.copy()


# ==================== Sample Cleaner ====================


def clean(samples: np.ndarray, value: int, source: Optional[str] = None) -> np.ndarray:
    """
    Replace rows containing a sentinel value with the last valid row before them.

    Returns a new array; the input is not modified.
    """
    samples = np.asarray(samples)
    invalid = np.any(samples == value, axis=1)
    if not invalid.any():
        return samples.copy()
    if invalid[0]:
        raise SentinelError(
            f"First sample contains invalid value {value} and has no predecessor{_in_file(source)}"
        )

    # Index of the last valid row at or before each position
    fill_from = np.where(invalid, 0, np.arange(len(samples)))
    np.maximum.accumulate(fill_from, out=fill_from)

    logger.info("Replaced %d rows containing %d%s", int(invalid.sum()), value, _in_file(source))
    return samples[fill_from]


def clean_samples(samples: np.ndarray, source: Optional[str] = None) -> np.ndarray:
    """Apply clean() for every sentinel value in turn."""
    for value in SENTINEL_VALUES:
        samples = clean(samples, value, source)
    return samples


# ==================== Length Reconciler ====================


def expected_sample_count(meta: Metadata) -> float:
    """Samples implied by the header duration and sample rate."""
    return meta.duration.total_seconds() * meta.hz


def classify_sample_count(n_samples: int, expected: float, hz: int) -> ReconcileOutcome:
    """Classify the difference between decoded and expected sample counts."""
    if expected < 0:
        return ReconcileOutcome.FATAL
    diff = n_samples - expected
    threshold = SAMPLE_COUNT_TOLERANCE_S * hz
    if diff == 0:
        return ReconcileOutcome.EXACT
    if 0 < diff < threshold:
        return ReconcileOutcome.TRUNCATE
    if -threshold < diff < 0:
        return ReconcileOutcome.WARN_KEEP
    return ReconcileOutcome.FATAL


def check_length(
    samples: np.ndarray,
    meta: Metadata,
    source: Optional[str] = None,
    accept_exact: bool = False,
) -> np.ndarray:
    """
    Reconcile the decoded samples with the duration declared in the header.

    Spillover of less than five minutes is truncated, a shortfall of less
    than five minutes is kept with a warning, anything larger is an error.
    A stop time before the start time is always an error.

    An exact match is rejected unless accept_exact is True.
    """
    expected = expected_sample_count(meta)
    n_samples = len(samples)
    outcome = classify_sample_count(n_samples, expected, meta.hz)

    if outcome is ReconcileOutcome.TRUNCATE:
        logger.info(
            "Truncating %d samples to the %d declared by the header%s",
            n_samples, int(expected), _in_file(source),
        )
        return samples[:int(expected)]

    if outcome is ReconcileOutcome.WARN_KEEP:
        logger.warning(
            "There are fewer data points than expected (%d vs %d)%s",
            n_samples, int(expected), _in_file(source),
        )
        return samples

    if outcome is ReconcileOutcome.EXACT:
        if accept_exact:
            return samples
        raise SampleCountError(
            f"Sample count {n_samples} matches the header duration exactly, "
            f"which is rejected unless accept_exact is set{_in_file(source)}"
        )

    if expected < 0:
        raise SampleCountError(
            f"Header stop time {meta.stop_time} is before start time {meta.start_time}"
            f"{_in_file(source)}"
        )

    relation = "fewer" if n_samples < expected else "more"
    raise SampleCountError(
        f"There are far {relation} data points than expected "
        f"({n_samples} vs {expected:g}){_in_file(source)}"
    )


# ==================== Units & Timestamps ====================


def parse_units(units: Union[str, Units]) -> Units:
    """Validate a unit selection ("g", "ms-2" or "raw")."""
    try:
        return Units(units)
    except ValueError:
        valid = ", ".join(u.value for u in Units)
        raise InvalidUnitsError(f"Units must be one of {valid}, got {units!r}") from None


def convert_units(samples: np.ndarray, units: Union[str, Units] = Units.G) -> np.ndarray:
    """Convert raw byte samples to g or m/s^2. Raw samples are returned unchanged."""
    units = parse_units(units)
    if units is Units.RAW:
        return np.asarray(samples)

    values = (np.asarray(samples, dtype=np.float64) - ZERO_G_COUNT) / COUNTS_PER_G
    if units is Units.MS2:
        values = values * STANDARD_GRAVITY
    return values


def make_timestamps(start_time: datetime, hz: int, n_samples: int) -> pd.DatetimeIndex:
    """Timestamps start_time + i / hz for i = 1..n_samples."""
    offsets_ns = np.arange(1, n_samples + 1, dtype=np.int64) * 1_000_000_000 // hz
    return pd.Timestamp(start_time) + pd.to_timedelta(offsets_ns, unit="ns")


def to_signal_frame(
    samples: np.ndarray, timestamps: pd.DatetimeIndex, units: Units
) -> pd.DataFrame:
    """Build the timestamp, x, y, z table with per-column units in attrs."""
    df = pd.DataFrame(
        {
            "timestamp": timestamps,
            "x": samples[:, 0],
            "y": samples[:, 1],
            "z": samples[:, 2],
        },
        columns=SIGNAL_COLUMNS,
    )
    df.attrs["units"] = {
        "timestamp": "datetime",
        "x": units.value,
        "y": units.value,
        "z": units.value,
    }
    return df


# ==================== Entry Points ====================


def decode_bytes(
    contents: bytes,
    ext: str,
    units: Union[str, Units] = Units.G,
    accept_exact: bool = False,
    source: Optional[str] = None,
) -> ActivpalData:
    """
    Decode an in-memory activPAL file.

    Args:
        contents: Whole file contents
        ext: File extension (".datx" or ".dat")
        units: "g" (default), "ms-2" or "raw"
        accept_exact: Accept recordings whose sample count matches the header exactly
        source: File path used in messages and stored on the result

    Returns:
        Decoded ActivpalData
    """
    units = parse_units(units)
    header_end = header_length(ext, source)
    if len(contents) < header_end:
        raise HeaderError(
            f"File is shorter than its {header_end}-byte header{_in_file(source)}"
        )

    meta = parse_header(contents[:header_end], source)
    tail_start = locate_tail(contents, header_end, ext, source)
    scheme = select_compression_scheme(meta.compression, meta.firmware)

    samples = decode_body(contents[header_end:tail_start], scheme, meta.axes, source)
    samples = clean_samples(samples, source)
    samples = check_length(samples, meta, source, accept_exact)

    values = convert_units(samples, units)
    timestamps = make_timestamps(meta.start_time, meta.hz, len(values))

    return ActivpalData(
        signals=to_signal_frame(values, timestamps, units),
        meta=meta,
        units=units,
        source=source or "",
    )


def load_datx(
    file_path: Union[str, Path],
    units: Union[str, Units] = Units.G,
    accept_exact: bool = False,
) -> ActivpalData:
    """
    Load an activPAL .datx or .dat file.

    Args:
        file_path: Path to the recording
        units: "g" (default), "ms-2" or "raw"
        accept_exact: Accept recordings whose sample count matches the header exactly

    Returns:
        ActivpalData with the signals table and header metadata

    Example:
        >>> data = load_datx("PAL01.datx", units="ms-2")
        >>> data.signals.head()
        >>> data.meta.to_dict()["hz"]
    """
    units = parse_units(units)
    check_file(file_path, valid_ext=HEADER_END)
    source = str(file_path)
    return decode_bytes(
        read_bytes(file_path),
        get_file_ext(file_path),
        units=units,
        accept_exact=accept_exact,
        source=source,
    )


def read_header(file_path: Union[str, Path]) -> Metadata:
    """Parse only the header metadata of an activPAL file."""
    check_file(file_path, valid_ext=HEADER_END)
    source = str(file_path)
    header_end = HEADER_END[get_file_ext(file_path)]
    contents = read_bytes(file_path)
    if len(contents) < header_end:
        raise HeaderError(f"File is shorter than its {header_end}-byte header{_in_file(source)}")
    return parse_header(contents[:header_end], source)
