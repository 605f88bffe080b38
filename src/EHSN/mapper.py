import logging
import re

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from .field_visit import DisMeas, EnvCond, FieldVisit, MeasResults, StageMeas, StageMeasRow
from .measurement import EhsnMeasurement, MeasurementRecord, Parameter, Unit

LOGGER = logging.getLogger(__name__)

# 'HH:MM' or 'HH:MM:SS'; range checks are left to the datetime constructor
_TIME_OF_DAY = re.compile(r"^(?P<hour>\d{2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?$")

# Sensor channels we know how to map to a parameter. Other channels seen in
# EHSN files ("IQ Plus Discharge", "IQ Plus Velocity", "IQ Plus Temperature")
# are ignored until they get an entry here.
SENSOR_CHANNEL_MAP: dict[str, Tuple[Parameter, Unit]] = {
    "Head Stage (m)": (Parameter.HEAD_STAGE, Unit.DISTANCE),
}

# Discharge summary fields, in the order their records are emitted
DISCHARGE_FIELD_MAP: List[Tuple[str, Parameter, Unit]] = [
    ("airTemp", Parameter.AIR_TEMP, Unit.TEMPERATURE),
    ("waterTemp", Parameter.WATER_TEMP, Unit.TEMPERATURE),
    ("width", Parameter.RIVER_SECTION_WIDTH, Unit.DISTANCE),
    ("area", Parameter.RIVER_SECTION_AREA, Unit.AREA),
    ("meanVel", Parameter.WATER_VELOCITY_WV, Unit.VELOCITY),
    ("mgh", Parameter.STAGE_HG, Unit.DISTANCE),
    ("discharge", Parameter.DISCHARGE_QR, Unit.DISCHARGE),
]


class MissingRequiredFieldError(ValueError):
    """Raised when a section that is present lacks a value the EHSN format always supplies."""

    def __init__(self, section: str, field: str, detail: str = ""):
        self.section = section
        self.field = field
        message = f"Section {section!r}: missing required field {field!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


def parse_time(time_string: Optional[str], visit_date: date) -> Optional[datetime]:
    """
    Combine a local time of day with the visit date.
    Returns None when the string is empty or not shaped like 'HH:MM' / 'HH:MM:SS'.
    A single trailing newline is accepted; any other trailing character is not.
    """
    if time_string is None or not time_string.strip():
        return None
    m = _TIME_OF_DAY.match(time_string)
    if not m:
        return None
    second = int(m.group("second")) if m.group("second") is not None else 0
    return datetime(
        visit_date.year,
        visit_date.month,
        visit_date.day,
        int(m.group("hour")),
        int(m.group("minute")),
        second,
    )


def _format_number(value: float) -> str:
    # 1.0 -> '1', 0.015 -> '0.015', 1e-05 -> '1E-05'
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text.replace("e", "E")


class MeasurementParser:
    """
    Turns one field visit into an EhsnMeasurement.

    The visit date anchors every time-of-day string found in the file; the UTC
    offset is carried through to the result untouched.
    """

    def __init__(self, field_visit: FieldVisit, visit_date: date, location_utc_offset: timedelta):
        if field_visit is None:
            raise ValueError("field_visit must not be None")
        self._field_visit = field_visit
        self._visit_date = visit_date
        self._location_utc_offset = location_utc_offset

    def parse(self) -> EhsnMeasurement:
        field_visit = self._field_visit
        visit_date = self._visit_date
        mean_time = self.measurement_mean_time(field_visit.DisMeas, visit_date)

        return EhsnMeasurement(
            location_utc_offset=self._location_utc_offset,
            stage_measurements=tuple(self.parse_stage_measurements(field_visit.StageMeas, visit_date)),
            discharge_measurements=tuple(self.parse_discharge_measurements(field_visit.DisMeas, visit_date)),
            environment_condition_measurements=tuple(
                self.parse_environment_condition_measurements(field_visit.EnvCond, mean_time)
            ),
            sensor_stage_measurements=tuple(self.parse_sensor_results(field_visit.MeasResults, visit_date)),
        )

    @staticmethod
    def measurement_mean_time(dis_meas: Optional[DisMeas], visit_date: date) -> Optional[datetime]:
        """
        Midpoint of the discharge measurement window.
        None when there is no discharge section or either end of the window does not resolve.
        """
        if dis_meas is None:
            return None
        start = parse_time(dis_meas.startTime, visit_date)
        end = parse_time(dis_meas.endTime, visit_date)
        if start is None or end is None:
            return None
        return start + (end - start) / 2

    @staticmethod
    def _stage_reading(row: StageMeasRow) -> float:
        if row.WL1 is not None:
            return float(row.WL1)
        if row.HG1 is not None:
            return float(row.HG1)
        raise MissingRequiredFieldError("StageMeas", "WL1", f"neither WL1 nor HG1 given at {row.time!r}")

    @staticmethod
    def _stage_row_remark(row: StageMeasRow) -> str:
        if row.SRC is None:
            return ""
        return f"@{row.time} {row.SRCApp or ''}. Correction:{_format_number(row.SRC)}"

    @staticmethod
    def parse_stage_measurements(stage_meas: Optional[StageMeas], visit_date: date) -> List[MeasurementRecord]:
        """
        One instantaneous stage record per table row whose time resolves.
        Rows with an unreadable time are dropped.
        """
        records: List[MeasurementRecord] = []
        if stage_meas is None:
            return records

        for row in stage_meas.StageMeasTable:
            time = parse_time(row.time, visit_date)
            if time is None:
                continue
            records.append(
                MeasurementRecord(
                    start_time=time,
                    end_time=time,
                    parameter=Parameter.STAGE_HG,
                    unit=Unit.DISTANCE,
                    value=MeasurementParser._stage_reading(row),
                    remark=MeasurementParser._stage_row_remark(row),
                )
            )
        return records

    @staticmethod
    def parse_discharge_measurements(dis_meas: Optional[DisMeas], visit_date: date) -> List[MeasurementRecord]:
        """
        Seven records spanning the discharge measurement window, in DISCHARGE_FIELD_MAP order.
        Every scalar is required once the section exists.
        """
        records: List[MeasurementRecord] = []
        if dis_meas is None:
            return records

        start = parse_time(dis_meas.startTime, visit_date)
        end = parse_time(dis_meas.endTime, visit_date)
        if start is None or end is None:
            LOGGER.warning(
                "Discharge window %r-%r did not resolve; discharge records carry no timestamp",
                dis_meas.startTime,
                dis_meas.endTime,
            )

        for field_name, parameter, unit in DISCHARGE_FIELD_MAP:
            value = getattr(dis_meas, field_name)
            if value is None:
                raise MissingRequiredFieldError("DisMeas", field_name)
            records.append(MeasurementRecord(start, end, parameter, unit, float(value)))
        return records

    @staticmethod
    def parse_environment_condition_measurements(
            env_cond: Optional[EnvCond], measurement_time: Optional[datetime]
    ) -> List[MeasurementRecord]:
        records: List[MeasurementRecord] = []
        if env_cond is None or env_cond.batteryVolt is None:
            return records

        records.append(
            MeasurementRecord(
                measurement_time, measurement_time, Parameter.VOLTAGE, Unit.VOLTAGE, float(env_cond.batteryVolt)
            )
        )
        return records

    @staticmethod
    def parse_sensor_results(meas_results: Optional[MeasResults], visit_date: date) -> List[MeasurementRecord]:
        """
        Instantaneous records for samples of the channels listed in SENSOR_CHANNEL_MAP.
        Samples of other channels are ignored; samples with an unreadable time are dropped.
        """
        records: List[MeasurementRecord] = []
        if meas_results is None or not meas_results.SensorRefs:
            return records

        for index, sensor_ref in enumerate(meas_results.SensorRefs):
            channel = SENSOR_CHANNEL_MAP.get(sensor_ref.strip() if sensor_ref is not None else None)
            if channel is None:
                continue
            parameter, unit = channel

            time = parse_time(meas_results.Times[index], visit_date)
            if time is None:
                continue
            value = meas_results.SensorVals[index]
            if value is None:
                raise MissingRequiredFieldError("MeasResults", "SensorVal", f"sample {index} of {sensor_ref.strip()!r}")
            records.append(MeasurementRecord(time, time, parameter, unit, float(value)))
        return records
