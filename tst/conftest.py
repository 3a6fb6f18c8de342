"""
Pytest fixtures for activpal_converter tests.

Provides synthetic .datx / .dat files built byte-by-byte.
"""

from datetime import datetime

import pytest

DATX_HEADER_END = 1024
DAT_HEADER_END = 1023

DAT_FOOTER = bytes([0, 0, 1, 0, 0, 1, 1, 0])

START = datetime(2021, 3, 14, 10, 0, 0)
STOP = datetime(2021, 3, 14, 10, 0, 10)  # 10 s at 20 Hz -> 200 samples

CURRENT_FIRMWARE = (1, 0)  # 1 * 255 + 0 = 255
LEGACY_FIRMWARE = (0, 200)  # 200


def _put_datetime(header: bytearray, offset: int, when: datetime) -> None:
    header[offset:offset + 6] = bytes(
        [when.hour, when.minute, when.second, when.day, when.month, when.year - 2000]
    )


@pytest.fixture
def make_header():
    """Factory for a synthetic header with known values at every documented offset."""

    def _make(
        length: int = DATX_HEADER_END,
        hz: int = 20,
        resolution_byte: int = 0,
        axes_code: int = 0,
        start: datetime = START,
        stop: datetime = STOP,
        start_condition: int = 1,
        stop_condition: int = 64,
        firmware: tuple = CURRENT_FIRMWARE,
        compression: int = 0,
    ) -> bytes:
        header = bytearray(length)
        header[17] = firmware[1]
        header[35] = hz
        header[36] = compression
        header[38] = resolution_byte
        header[39] = firmware[0]
        _put_datetime(header, 256, start)
        _put_datetime(header, 262, stop)
        header[268] = start_condition
        header[275] = stop_condition
        header[280] = axes_code
        return bytes(header)

    return _make


@pytest.fixture
def body_rows() -> list:
    """205 uncompressed rows: 5 more than the 200 declared by the default header."""
    return [(100 + i % 50, 127, 190) for i in range(205)]


def rows_to_bytes(rows) -> bytes:
    return bytes(value for row in rows for value in row)


@pytest.fixture
def make_datx(make_header):
    """Factory for .datx file contents: header + body + "tail" trailer."""

    def _make(rows, **header_kwargs) -> bytes:
        header = make_header(length=DATX_HEADER_END, **header_kwargs)
        return header + rows_to_bytes(rows) + b"tail" + bytes(16)

    return _make


@pytest.fixture
def make_dat(make_header):
    """Factory for .dat file contents: header + body + signature trailer."""

    def _make(rows, **header_kwargs) -> bytes:
        header = make_header(length=DAT_HEADER_END, **header_kwargs)
        return header + rows_to_bytes(rows) + DAT_FOOTER + bytes(8)

    return _make


@pytest.fixture
def datx_file(tmp_path, make_datx, body_rows):
    """A valid uncompressed .datx recording on disk."""
    file_path = tmp_path / "PAL01.datx"
    file_path.write_bytes(make_datx(body_rows))
    return file_path


@pytest.fixture
def dat_file(tmp_path, make_dat, body_rows):
    """A valid uncompressed .dat recording on disk."""
    file_path = tmp_path / "PAL02.dat"
    file_path.write_bytes(make_dat(body_rows))
    return file_path


@pytest.fixture
def output_directory(tmp_path):
    """Create an empty output directory."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir
