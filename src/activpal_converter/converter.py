"""
File conversion for activPAL recordings.

Decodes .datx / .dat files and writes one CSV of timestamped samples plus a
JSON metadata file per recording, and a recordings.csv summary for batches.
"""

import json
from pathlib import Path
from typing import Dict, List, Tuple, Union

import pandas as pd

from .decoder import (
    HEADER_END,
    check_length,
    classify_sample_count,
    clean_samples,
    decode_body,
    expected_sample_count,
    header_length,
    load_datx,
    locate_tail,
    parse_header,
    read_bytes,
    select_compression_scheme,
)
from .exceptions import ActivpalError
from .helpers import check_file, get_file_ext
from .models import ActivpalData, RecordingSummary, ReconcileOutcome, Units

SUMMARY_FILE_NAME = "recordings.csv"

# ==================== Output Writers ====================


def write_signals_csv(data: ActivpalData, csv_path: Path) -> Path:
    """Write the timestamp, x, y, z table to CSV."""
    data.signals.to_csv(csv_path, index=False)
    return csv_path


def write_metadata_json(data: ActivpalData, json_path: Path) -> Path:
    """
    Write recording metadata and column units to JSON.

    Datetimes are written in ISO format and the duration in seconds.
    """
    meta = data.meta.to_dict()
    meta["startTime"] = data.meta.start_time.isoformat()
    meta["stopTime"] = data.meta.stop_time.isoformat()
    meta["duration"] = data.meta.duration.total_seconds()
    meta["startCondition"] = data.meta.start_condition.value
    meta["stopCondition"] = data.meta.stop_condition.value

    payload = {
        "source": data.source,
        "meta": meta,
        "units": data.variable_units,
        "n_samples": len(data),
    }
    with open(json_path, "w") as f:
        json.dump(payload, f, indent=2)
    return json_path


def summarize(data: ActivpalData, output_file: str) -> RecordingSummary:
    """Build the summary row for a decoded recording."""
    meta = data.meta
    return RecordingSummary(
        file_name=Path(data.source).name,
        output_file=output_file,
        start_time=meta.start_time,
        stop_time=meta.stop_time,
        duration_s=meta.duration.total_seconds(),
        sampling_rate_hz=meta.hz,
        bitdepth=meta.bitdepth,
        resolution_g=meta.resolution,
        n_samples=len(data),
        units=data.units,
        firmware=meta.firmware,
        compression_scheme=select_compression_scheme(meta.compression, meta.firmware),
    )


# ==================== Main Conversion Functions ====================


def convert_file(
    file_path: Path,
    output_dir: Path,
    units: Union[str, Units] = Units.G,
    accept_exact: bool = False,
    verbose: bool = False,
) -> Tuple[Path, RecordingSummary]:
    """
    Convert a single activPAL file to CSV plus JSON metadata.

    Args:
        file_path: Path to a .datx or .dat file
        output_dir: Directory for <stem>.csv and <stem>_meta.json
        units: Units for the x, y and z columns
        accept_exact: Accept recordings whose sample count matches the header exactly
        verbose: Print progress messages

    Returns:
        Tuple of (csv_path, summary)
    """
    file_path = Path(file_path)
    output_dir = Path(output_dir)

    if verbose:
        print(f"Converting: {file_path.name}")

    data = load_datx(file_path, units=units, accept_exact=accept_exact)

    if verbose:
        meta = data.meta
        print(f"  {meta.hz} Hz, {meta.resolution} g, {meta.bitdepth}-bit, firmware {meta.firmware}")
        print(f"  {meta.start_time} -> {meta.stop_time}")

    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = write_signals_csv(data, output_dir / f"{file_path.stem}.csv")
    write_metadata_json(data, output_dir / f"{file_path.stem}_meta.json")

    if verbose:
        print(f"  Wrote {csv_path.name}: {len(data)} samples")

    return csv_path, summarize(data, csv_path.name)


def find_recordings(input_dir: Path) -> List[Path]:
    """Return the .datx and .dat files in a directory, sorted by name."""
    input_dir = Path(input_dir)
    return sorted(
        item for item in input_dir.iterdir()
        if item.is_file() and get_file_ext(item) in HEADER_END
    )


def convert_all_files(
    input_dir: Path,
    output_dir: Path,
    units: Union[str, Units] = Units.G,
    accept_exact: bool = False,
    verbose: bool = False,
) -> List[RecordingSummary]:
    """
    Convert every activPAL file found in a directory.

    Files that fail to decode are reported and skipped. A summary of the
    converted files is written to <output_dir>/metadata/recordings.csv.

    Args:
        input_dir: Directory containing .datx / .dat files
        output_dir: Base output directory
        units: Units for the x, y and z columns
        accept_exact: Accept recordings whose sample count matches the header exactly
        verbose: Print progress messages

    Returns:
        List of RecordingSummary objects for the converted files
    """
    input_dir = Path(input_dir)
    output_dir = Path(output_dir)
    summaries: List[RecordingSummary] = []

    recordings = find_recordings(input_dir)
    if verbose:
        print(f"Found {len(recordings)} recordings")

    for file_path in recordings:
        try:
            _, summary = convert_file(
                file_path=file_path,
                output_dir=output_dir / "data",
                units=units,
                accept_exact=accept_exact,
                verbose=verbose,
            )
            summaries.append(summary)
        except ActivpalError as e:
            print(f"Error converting {file_path.name}: {e}")

    if summaries:
        metadata_dir = output_dir / "metadata"
        metadata_dir.mkdir(parents=True, exist_ok=True)
        summary_csv = metadata_dir / SUMMARY_FILE_NAME

        summary_df = pd.DataFrame([s.to_csv_row() for s in summaries])
        summary_df.to_csv(summary_csv, index=False)
        if verbose:
            print(f"Wrote recordings summary: {summary_csv}")

    return summaries


def validate_file(file_path: Path, verbose: bool = False) -> Dict[str, any]:
    """
    Check an activPAL file without converting it.

    Runs the decode steps up to length reconciliation and reports what was
    found instead of raising.

    Args:
        file_path: Path to a .datx or .dat file
        verbose: Print detailed information

    Returns:
        Validation results dictionary
    """
    file_path = Path(file_path)
    source = str(file_path)
    results = {
        "valid": True,
        "errors": [],
        "warnings": [],
        "file": file_path.name,
    }

    try:
        check_file(file_path, valid_ext=HEADER_END)
        ext = get_file_ext(file_path)
        header_end = header_length(ext, source)
        contents = read_bytes(file_path)
        results["size_bytes"] = len(contents)

        meta = parse_header(contents[:header_end], source)
        results["metadata"] = meta.to_dict()
        if verbose:
            print(f"  header: {meta.hz} Hz, {meta.axes} axes, firmware {meta.firmware}")

        if meta.duration.total_seconds() < 0:
            results["warnings"].append("Stop time is before start time")

        tail_start = locate_tail(contents, header_end, ext, source)
        scheme = select_compression_scheme(meta.compression, meta.firmware)
        body_length = tail_start - header_end
        results["tail_offset"] = tail_start
        results["body_bytes"] = body_length
        results["compression_scheme"] = scheme.value
        if body_length % meta.axes:
            results["warnings"].append(
                f"Body length ({body_length}) not evenly divisible by {meta.axes} axes"
            )

        samples = decode_body(contents[header_end:tail_start], scheme, meta.axes, source)
        samples = clean_samples(samples, source)
        expected = expected_sample_count(meta)
        outcome = classify_sample_count(len(samples), expected, meta.hz)
        results["n_samples"] = len(samples)
        results["expected_samples"] = expected
        results["outcome"] = outcome.value
        if verbose:
            print(f"  samples: {len(samples)} decoded, {expected:g} expected ({outcome.value})")

        if outcome is ReconcileOutcome.WARN_KEEP:
            results["warnings"].append("There are fewer data points than expected")
        elif outcome is ReconcileOutcome.EXACT:
            results["warnings"].append("Sample count matches exactly; load with accept_exact")
        elif outcome is ReconcileOutcome.FATAL:
            check_length(samples, meta, source)
    except ActivpalError as e:
        results["errors"].append(str(e))
        results["valid"] = False

    return results
