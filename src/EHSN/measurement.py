"""
Measurement domain model.

Defines the MeasurementRecord dataclass for time-stamped observations, the
EhsnMeasurement aggregate holding one field visit's records by category, and
the parameter/unit identifiers the downstream time-series store expects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import pandas as pd

DATAFRAME_COLUMNS = ["category", "start_time", "end_time", "parameter", "unit", "value", "remark"]


class Parameter(str, Enum):
    """Parameter identifiers of the time-series store."""

    STAGE_HG = "HG"
    AIR_TEMP = "TA"
    WATER_TEMP = "TW"
    RIVER_SECTION_WIDTH = "RiverSectionWidth"
    RIVER_SECTION_AREA = "RiverSectionArea"
    WATER_VELOCITY_WV = "WV"
    DISCHARGE_QR = "QR"
    VOLTAGE = "VB"
    HEAD_STAGE = "HD"


class Unit(str, Enum):
    """Unit identifiers of the time-series store."""

    DISTANCE = "m"
    TEMPERATURE = "degC"
    AREA = "m^2"
    VELOCITY = "m/s"
    DISCHARGE = "m^3/s"
    VOLTAGE = "V"


@dataclass(frozen=True)
class MeasurementRecord:
    """
    Represents one observation taken during a field visit.

    Attributes:
        start_time: Local start of the observation, or None when the source time did not resolve.
        end_time: Local end of the observation; equal to start_time for instantaneous readings.
        parameter: Parameter identifier (e.g. Parameter.STAGE_HG).
        unit: Unit identifier (e.g. Unit.DISTANCE).
        value: Numeric value of the observation.
        remark: Free-text comment, empty when there is nothing to say.
    """

    start_time: Optional[datetime]
    end_time: Optional[datetime]
    parameter: Parameter
    unit: Unit
    value: float
    remark: str = ""

    def __post_init__(self):
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time > self.end_time
        ):
            raise ValueError(
                f"start_time {self.start_time.isoformat()} is after end_time {self.end_time.isoformat()}"
            )

    @property
    def is_instantaneous(self) -> bool:
        return self.start_time == self.end_time


@dataclass(frozen=True)
class EhsnMeasurement:
    """
    All measurements extracted from one field visit, kept in four categories.
    Order inside each category follows the order of the source rows.
    """

    location_utc_offset: timedelta
    stage_measurements: Tuple[MeasurementRecord, ...] = ()
    discharge_measurements: Tuple[MeasurementRecord, ...] = ()
    environment_condition_measurements: Tuple[MeasurementRecord, ...] = ()
    sensor_stage_measurements: Tuple[MeasurementRecord, ...] = ()

    @property
    def location_timezone(self) -> timezone:
        return timezone(self.location_utc_offset)

    def categories(self) -> Iterator[Tuple[str, Tuple[MeasurementRecord, ...]]]:
        yield "stage", self.stage_measurements
        yield "discharge", self.discharge_measurements
        yield "environment", self.environment_condition_measurements
        yield "sensor", self.sensor_stage_measurements

    def counts(self) -> dict[str, int]:
        return {category: len(records) for category, records in self.categories()}

    def to_dataframe(self) -> pd.DataFrame:
        """
        Flatten the aggregate into one table, category by category.
        Timestamps are written as ISO-8601 with the location offset; unresolved times are empty.
        """
        tz = self.location_timezone
        rows: List[dict] = []
        for category, records in self.categories():
            for record in records:
                rows.append(
                    {
                        "category": category,
                        "start_time": _isoformat_local(record.start_time, tz),
                        "end_time": _isoformat_local(record.end_time, tz),
                        "parameter": record.parameter.value,
                        "unit": record.unit.value,
                        "value": record.value,
                        "remark": record.remark,
                    }
                )
        return pd.DataFrame(rows, columns=DATAFRAME_COLUMNS)


def _isoformat_local(value: Optional[datetime], tz: timezone) -> str:
    if value is None:
        return ""
    return value.replace(tzinfo=tz).isoformat()
