"""Tests for Pydantic models."""

from datetime import datetime, timedelta

import pandas as pd
import pytest
from pydantic import ValidationError

from activpal_converter.models import (
    ActivpalData,
    CompressionScheme,
    Metadata,
    RecordingSummary,
    StartCondition,
    StopCondition,
    Units,
)

START = datetime(2021, 3, 14, 10, 0, 0)


def make_meta(**overrides) -> Metadata:
    fields = dict(
        bitdepth=10,
        resolution=4,
        hz=20,
        axes=3,
        start_time=START,
        stop_time=START + timedelta(hours=1),
        start_condition=StartCondition.TRIGGER,
        stop_condition=StopCondition.MEMORY_FULL,
        firmware=300,
        compression=True,
    )
    fields.update(overrides)
    return Metadata(**fields)


class TestUnits:
    def test_enum_values(self):
        assert Units.G == "g"
        assert Units.MS2 == "ms-2"
        assert Units.RAW == "raw"

    def test_enum_from_string(self):
        assert Units("ms-2") == Units.MS2


class TestConditions:
    def test_start_condition_values(self):
        assert StartCondition.TRIGGER == "Trigger"
        assert StartCondition.IMMEDIATELY == "Immediately"
        assert StartCondition.SET_TIME == "Set Time"

    def test_stop_condition_values(self):
        assert StopCondition.MEMORY_FULL == "Memory Full"
        assert StopCondition.LOW_BATTERY == "Low Battery"
        assert StopCondition.USB == "USB"
        assert StopCondition.PROGRAMMED_TIME == "Programmed Time"


class TestMetadata:
    def test_duration(self):
        assert make_meta().duration == timedelta(hours=1)

    def test_negative_duration_allowed(self):
        meta = make_meta(stop_time=START - timedelta(seconds=5))
        assert meta.duration == timedelta(seconds=-5)

    def test_to_dict_uses_exported_names(self):
        meta = make_meta().to_dict()

        assert meta["bitdepth"] == 10
        assert meta["resolution"] == 4
        assert meta["hz"] == 20
        assert meta["axes"] == 3
        assert meta["startTime"] == START
        assert meta["stopTime"] == START + timedelta(hours=1)
        assert meta["duration"] == timedelta(hours=1)
        assert meta["startCondition"] == StartCondition.TRIGGER
        assert meta["stopCondition"] == StopCondition.MEMORY_FULL

    def test_from_aliases(self):
        data = make_meta().to_dict()
        del data["duration"]
        meta = Metadata.model_validate(data)
        assert meta.start_time == START

    def test_condition_from_string(self):
        meta = make_meta(start_condition="Set Time", stop_condition="USB")
        assert meta.start_condition == StartCondition.SET_TIME
        assert meta.stop_condition == StopCondition.USB

    def test_zero_hz_rejected(self):
        with pytest.raises(ValidationError):
            make_meta(hz=0)

    def test_frozen(self):
        meta = make_meta()
        with pytest.raises(ValidationError):
            meta.hz = 40


class TestActivpalData:
    def test_variable_units(self):
        signals = pd.DataFrame({"timestamp": [], "x": [], "y": [], "z": []})
        signals.attrs["units"] = {"timestamp": "datetime", "x": "g", "y": "g", "z": "g"}

        data = ActivpalData(signals=signals, meta=make_meta(), units=Units.G, source="PAL01.datx")

        assert data.variable_units["timestamp"] == "datetime"
        assert len(data) == 0

    def test_fields_frozen_but_table_shared(self):
        signals = pd.DataFrame({"timestamp": [], "x": [], "y": [], "z": []})
        signals.attrs["units"] = {"timestamp": "datetime", "x": "g", "y": "g", "z": "g"}
        data = ActivpalData(signals=signals, meta=make_meta(), units=Units.G, source="PAL01.datx")

        with pytest.raises(ValidationError):
            data.source = "other.datx"
        assert data.signals is signals


class TestRecordingSummary:
    def test_to_csv_row(self):
        summary = RecordingSummary(
            file_name="PAL01.datx",
            output_file="PAL01.csv",
            start_time=START,
            stop_time=START + timedelta(hours=1),
            duration_s=3600.0,
            sampling_rate_hz=20,
            bitdepth=8,
            resolution_g=2,
            n_samples=72000,
            firmware=300,
            compression_scheme=CompressionScheme.CURRENT,
        )
        row = summary.to_csv_row()
        assert row["file_name"] == "PAL01.datx"
        assert row["start_time"] == "2021-03-14T10:00:00"
        assert row["units"] == "g"
        assert row["compression_scheme"] == "current"
        assert row["n_samples"] == 72000
        assert "note" not in row
