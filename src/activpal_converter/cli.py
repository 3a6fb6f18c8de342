"""
Command-line interface for activPAL Converter.

Usage:
    python -m activpal_converter convert /path/to/PAL01.datx --output ./output
    python -m activpal_converter convert-all /path/to/recordings --output ./output
    python -m activpal_converter validate /path/to/PAL01.datx
    python -m activpal_converter header /path/to/PAL01.datx
"""

import logging
from pathlib import Path

import typer

from .converter import convert_all_files, convert_file, validate_file
from .decoder import (
    HEADER_END,
    LEGACY_FIRMWARE_MAX,
    SAMPLE_COUNT_TOLERANCE_S,
    SENTINEL_VALUES,
    read_header,
)
from .exceptions import ActivpalError
from .models import Units

app = typer.Typer(
    name="activpal-converter",
    help="activPAL .datx/.dat Accelerometer File to CSV Converter",
    add_completion=False,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


@app.command()
def convert(
    file_path: Path = typer.Argument(
        ...,
        help="Path to a .datx or .dat file",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    output: Path = typer.Option(
        Path("./output"),
        "--output", "-o",
        help="Output directory for the CSV and metadata files",
    ),
    units: Units = typer.Option(
        Units.G,
        "--units",
        help="Units for the x, y and z columns",
    ),
    accept_exact: bool = typer.Option(
        False,
        "--accept-exact",
        help="Accept recordings whose sample count matches the header duration exactly",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Print verbose output",
    ),
):
    """
    Convert a single activPAL file to CSV format.

    Writes <name>.csv with timestamp, x, y, z columns and <name>_meta.json
    with the header metadata.
    """
    _configure_logging(verbose)
    try:
        csv_path, summary = convert_file(
            file_path=file_path,
            output_dir=output,
            units=units,
            accept_exact=accept_exact,
            verbose=verbose,
        )
    except ActivpalError as e:
        typer.echo(typer.style(f"ERROR: {e}", fg=typer.colors.RED), err=True)
        raise typer.Exit(1)

    typer.echo(f"Converted {summary.n_samples} samples ({summary.units.value})")
    typer.echo(f"  {csv_path}")


@app.command("convert-all")
def convert_all(
    input_dir: Path = typer.Argument(
        ...,
        help="Directory containing .datx / .dat files",
        exists=True,
        dir_okay=True,
        file_okay=False,
    ),
    output: Path = typer.Option(
        Path("./output"),
        "--output", "-o",
        help="Output directory for CSV files and metadata",
    ),
    units: Units = typer.Option(
        Units.G,
        "--units",
        help="Units for the x, y and z columns",
    ),
    accept_exact: bool = typer.Option(
        False,
        "--accept-exact",
        help="Accept recordings whose sample count matches the header duration exactly",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Print verbose output",
    ),
):
    """
    Convert all activPAL files found in a directory.

    Outputs one CSV per recording and a combined recordings.csv summary.
    """
    _configure_logging(verbose)
    summaries = convert_all_files(
        input_dir=input_dir,
        output_dir=output,
        units=units,
        accept_exact=accept_exact,
        verbose=verbose,
    )

    typer.echo(f"Converted {len(summaries)} recordings")


@app.command()
def validate(
    file_path: Path = typer.Argument(
        ...,
        help="Path to the file to validate",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Print verbose output",
    ),
):
    """
    Validate an activPAL file.

    Checks the header, the file tail and the sample count against the
    recording duration.
    """
    _configure_logging(verbose)
    typer.echo(f"Validating: {file_path}")

    results = validate_file(file_path, verbose=verbose)

    if "metadata" in results:
        meta = results["metadata"]
        typer.echo(f"  header: {meta['hz']} Hz, {meta['axes']} axes, {meta['resolution']} g")
    if "tail_offset" in results:
        typer.echo(
            f"  body: {results['body_bytes']} bytes, compression={results['compression_scheme']}"
        )
    if "n_samples" in results:
        typer.echo(
            f"  samples: {results['n_samples']} decoded, "
            f"{results['expected_samples']:g} expected ({results['outcome']})"
        )

    for warning in results.get("warnings", []):
        typer.echo(typer.style(f"  WARNING: {warning}", fg=typer.colors.YELLOW))

    for error in results.get("errors", []):
        typer.echo(typer.style(f"  ERROR: {error}", fg=typer.colors.RED))

    if results["valid"]:
        typer.echo(typer.style("Validation passed", fg=typer.colors.GREEN))
    else:
        typer.echo(typer.style("Validation failed", fg=typer.colors.RED))
        raise typer.Exit(1)


@app.command()
def header(
    file_path: Path = typer.Argument(
        ...,
        help="Path to a .datx or .dat file",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
):
    """
    Print the header metadata of an activPAL file.
    """
    try:
        meta = read_header(file_path)
    except ActivpalError as e:
        typer.echo(typer.style(f"ERROR: {e}", fg=typer.colors.RED), err=True)
        raise typer.Exit(1)

    for key, value in meta.to_dict().items():
        typer.echo(f"  {key}: {value}")


@app.command()
def info():
    """
    Display binary format information.
    """
    typer.echo("activPAL File Formats:")
    typer.echo("")
    for ext, header_end in HEADER_END.items():
        typer.echo(f"{ext}: {header_end}-byte header")
    typer.echo("")
    typer.echo("Body: (x, y, z) uint8 triplets")
    typer.echo("  Units: g = (raw - 127) / 63, m/s^2 = g * 9.81")
    typer.echo(f"  Invalid samples: {', '.join(str(v) for v in SENTINEL_VALUES)} (carried forward)")
    typer.echo("")
    typer.echo("Compression: run marker rows (0, 0, n)")
    typer.echo(f"  firmware > {LEGACY_FIRMWARE_MAX}: previous row repeated n + 1 times")
    typer.echo(f"  firmware <= {LEGACY_FIRMWARE_MAX}: adjacent markers summed onto the previous row")
    typer.echo("")
    typer.echo("Tail:")
    typer.echo("  .datx: last 'tail' marker")
    typer.echo("  .dat: first [0, 0, >=1, 0, 0, >=1, >=1, 0] byte window after the header")
    typer.echo("")
    typer.echo(f"Sample count tolerance: {SAMPLE_COUNT_TOLERANCE_S} s of samples")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
