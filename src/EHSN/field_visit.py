"""
Field-visit domain model.

Defines the dataclasses a deserialized EHSN document is held in. Field names
follow the element names of the EHSN file so that the loader and the
measurement parser can refer to the same vocabulary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

_VISIT_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d")
_STATION_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


@dataclass
class StageMeasRow:
    """
    One row of the stage measurement table.

    Attributes:
        time: Local time of day, 'HH:MM' or 'HH:MM:SS'.
        WL1: Primary water level reading.
        HG1: Secondary gauge height reading, used when WL1 is empty.
        SRC: Sensor reset correction applied at this reading.
        SRCApp: Who or what applied the correction.
    """

    time: Optional[str] = None
    WL1: Optional[float] = None
    HG1: Optional[float] = None
    SRC: Optional[float] = None
    SRCApp: Optional[str] = None


@dataclass
class StageMeas:
    StageMeasTable: List[StageMeasRow] = field(default_factory=list)


@dataclass
class DisMeas:
    """
    Discharge computation summary. A complete EHSN file carries all seven
    scalars whenever this section is present.
    """

    startTime: Optional[str] = None
    endTime: Optional[str] = None
    airTemp: Optional[float] = None
    waterTemp: Optional[float] = None
    width: Optional[float] = None
    area: Optional[float] = None
    meanVel: Optional[float] = None
    mgh: Optional[float] = None
    discharge: Optional[float] = None


@dataclass
class EnvCond:
    batteryVolt: Optional[float] = None


@dataclass
class MeasResults:
    """
    Auxiliary sensor samples stored as three parallel sequences; index i
    across SensorRefs, Times and SensorVals describes one sample.
    """

    SensorRefs: List[Optional[str]] = field(default_factory=list)
    Times: List[Optional[str]] = field(default_factory=list)
    SensorVals: List[Optional[float]] = field(default_factory=list)

    def __post_init__(self):
        lengths = {len(self.SensorRefs), len(self.Times), len(self.SensorVals)}
        if len(lengths) > 1:
            raise ValueError(
                "MeasResults sequences must have equal lengths, got "
                f"SensorRefs={len(self.SensorRefs)}, Times={len(self.Times)}, "
                f"SensorVals={len(self.SensorVals)}"
            )

    def __len__(self) -> int:
        return len(self.SensorRefs)


@dataclass
class GenInfo:
    """
    General visit information.

    Attributes:
        station: Station number (e.g. '08MF005').
        date: Visit date as written in the file, 'YYYY-MM-DD' or 'YYYY/MM/DD'.
    """

    station: Optional[str] = None
    date: Optional[str] = None

    def __post_init__(self):
        if self.station is not None and not _STATION_PATTERN.match(self.station):
            raise ValueError(f"Invalid station number: {self.station!r}")

    def visit_date(self) -> Optional[date]:
        """Return the parsed visit date, or None when the file does not carry one."""
        if self.date is None or not self.date.strip():
            return None
        text = self.date.strip()
        for fmt in _VISIT_DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Invalid visit date: {self.date!r}")


@dataclass
class FieldVisit:
    """
    A whole EHSN document. Every section is optional.
    """

    GenInfo: Optional[GenInfo] = None
    StageMeas: Optional[StageMeas] = None
    DisMeas: Optional[DisMeas] = None
    EnvCond: Optional[EnvCond] = None
    MeasResults: Optional[MeasResults] = None

    @property
    def station(self) -> str:
        if self.GenInfo is None or not self.GenInfo.station:
            return "unknown"
        return self.GenInfo.station
