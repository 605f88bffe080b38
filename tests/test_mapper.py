import pytest

from datetime import datetime, timedelta

from EHSN.field_visit import EnvCond, FieldVisit
from EHSN.mapper import MeasurementParser
from EHSN.measurement import EhsnMeasurement, Parameter, Unit


class TestMeasurementParser:
    @pytest.fixture
    def parser(self, field_visit: FieldVisit, visit_date) -> MeasurementParser:
        return MeasurementParser(field_visit, visit_date, timedelta(hours=-8))

    def test_parse_returns_all_categories(self, parser: MeasurementParser):
        measurement = parser.parse()

        assert isinstance(measurement, EhsnMeasurement)
        assert measurement.location_utc_offset == timedelta(hours=-8)
        assert measurement.counts() == {"stage": 2, "discharge": 7, "environment": 1, "sensor": 1}

    def test_parse_keeps_stage_row_order(self, parser: MeasurementParser):
        stage = parser.parse().stage_measurements
        assert [r.value for r in stage] == [1.23, 1.31]
        assert stage[1].remark == "@09:45:10 JS. Correction:0.01"

    def test_battery_voltage_anchored_at_discharge_midpoint(self, parser: MeasurementParser):
        (record,) = parser.parse().environment_condition_measurements
        assert record.parameter == Parameter.VOLTAGE
        assert record.unit == Unit.VOLTAGE
        assert record.value == 12.6
        assert record.start_time == record.end_time == datetime(2020, 6, 15, 9, 7, 30)

    def test_parse_is_repeatable(self, parser: MeasurementParser):
        assert parser.parse() == parser.parse()


def test_battery_voltage_without_discharge_section_has_no_timestamp(visit_date):
    visit = FieldVisit(EnvCond=EnvCond(batteryVolt=12.1))
    measurement = MeasurementParser(visit, visit_date, timedelta(0)).parse()

    assert measurement.discharge_measurements == ()
    (record,) = measurement.environment_condition_measurements
    assert record.start_time is None
    assert record.end_time is None
    assert record.value == 12.1


def test_no_battery_voltage_no_environment_record(field_visit, visit_date):
    field_visit.EnvCond = EnvCond()
    measurement = MeasurementParser(field_visit, visit_date, timedelta(0)).parse()
    assert measurement.environment_condition_measurements == ()


def test_empty_field_visit(visit_date):
    measurement = MeasurementParser(FieldVisit(), visit_date, timedelta(hours=5, minutes=30)).parse()
    assert measurement.counts() == {"stage": 0, "discharge": 0, "environment": 0, "sensor": 0}
    assert measurement.location_utc_offset == timedelta(hours=5, minutes=30)


def test_constructor_rejects_missing_field_visit(visit_date):
    with pytest.raises(ValueError):
        MeasurementParser(None, visit_date, timedelta(0))
