"""
Pydantic models for activPAL recording metadata and decode results.

Defines the header metadata record, the decoded recording returned by
load_datx, and the per-file summary rows written by batch conversion.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Dict

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, computed_field


class Units(str, Enum):
    """Units applied to the accelerometer channels."""
    G = "g"
    MS2 = "ms-2"
    RAW = "raw"


class StartCondition(str, Enum):
    """How the device was told to start recording."""
    TRIGGER = "Trigger"
    IMMEDIATELY = "Immediately"
    SET_TIME = "Set Time"


class StopCondition(str, Enum):
    """Why the device stopped recording."""
    MEMORY_FULL = "Memory Full"
    LOW_BATTERY = "Low Battery"
    USB = "USB"
    PROGRAMMED_TIME = "Programmed Time"


class CompressionScheme(str, Enum):
    """Run-length scheme used for the data body, selected from the header."""
    NONE = "none"
    CURRENT = "current"
    LEGACY = "legacy"


class ReconcileOutcome(str, Enum):
    """Result of comparing the decoded sample count with the header duration."""
    TRUNCATE = "truncate"
    WARN_KEEP = "warn_keep"
    EXACT = "exact"
    FATAL = "fatal"


# ==================== Header Metadata ====================


class Metadata(BaseModel):
    """
    Recording metadata decoded from the fixed-offset file header.

    Field aliases match the exported metadata names (startTime, stopCondition, ...).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bitdepth: int = Field(description="Sample bit depth (8 or 10)")
    resolution: int = Field(description="Full-scale range in g (2, 4 or 8)")
    hz: int = Field(gt=0, description="Sampling rate in Hz")
    axes: int = Field(description="Number of recorded axes (1 or 3)")
    start_time: datetime = Field(alias="startTime", description="Recording start time")
    stop_time: datetime = Field(alias="stopTime", description="Recording stop time")
    start_condition: StartCondition = Field(alias="startCondition")
    stop_condition: StopCondition = Field(alias="stopCondition")
    firmware: int = Field(description="Firmware discriminant derived from two header bytes")
    compression: bool = Field(description="True if the data body is run-length compressed")

    @computed_field
    @property
    def duration(self) -> timedelta:
        """Stop time minus start time. Negative for a malformed header."""
        return self.stop_time - self.start_time

    def to_dict(self) -> Dict:
        """Metadata keyed by the exported field names."""
        return self.model_dump(by_alias=True)


# ==================== Decode Result ====================


class ActivpalData(BaseModel):
    """
    A decoded recording: the timestamped signal table plus its metadata.

    signals has the columns timestamp, x, y, z; the unit of each column is
    stored in signals.attrs["units"].

    The model fields cannot be reassigned, but signals is a plain DataFrame
    handed over to the caller. Take a copy before changing it in place if
    the decoded values are still needed.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    signals: pd.DataFrame = Field(description="Columns timestamp, x, y, z")
    meta: Metadata = Field(description="Header metadata")
    units: Units = Field(description="Units of the x, y and z columns")
    source: str = Field(description="Path of the decoded file")

    @property
    def variable_units(self) -> Dict[str, str]:
        """Unit annotation for each signal column."""
        return dict(self.signals.attrs["units"])

    def __len__(self) -> int:
        return len(self.signals)


# ==================== Conversion Summary (Output) ====================


class RecordingSummary(BaseModel):
    """
    Summary of one converted recording.

    One record per input file, stored in recordings.csv.
    """
    file_name: str = Field(description="Input file name")
    output_file: str = Field(description="Output CSV file name")
    start_time: datetime = Field(description="Recording start time")
    stop_time: datetime = Field(description="Recording stop time")
    duration_s: float = Field(description="Declared recording duration in seconds")
    sampling_rate_hz: int = Field(description="Sampling rate in Hz")
    bitdepth: int = Field(description="Sample bit depth")
    resolution_g: int = Field(description="Full-scale range in g")
    n_samples: int = Field(description="Number of samples written")
    units: Units = Field(default=Units.G, description="Units of the x, y and z columns")
    firmware: int = Field(description="Firmware discriminant")
    compression_scheme: CompressionScheme = Field(description="Decompression scheme used")

    def to_csv_row(self) -> Dict:
        """Convert to dictionary for CSV export."""
        return {
            "file_name": self.file_name,
            "output_file": self.output_file,
            "start_time": self.start_time.isoformat(),
            "stop_time": self.stop_time.isoformat(),
            "duration_s": self.duration_s,
            "sampling_rate_hz": self.sampling_rate_hz,
            "bitdepth": self.bitdepth,
            "resolution_g": self.resolution_g,
            "n_samples": self.n_samples,
            "units": self.units.value,
            "firmware": self.firmware,
            "compression_scheme": self.compression_scheme.value,
        }
