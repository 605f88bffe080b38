"""
Tests for loader.load_field_visit against the XML files in tests/data/.
"""

import pytest

from datetime import date
from stairval.notepad import create_notepad

from EHSN.loader import EhsnLoadError, load_field_visit


def test_load_sample_sections(fpath_sample_xml):
    notepad = create_notepad("sample")
    visit = load_field_visit(fpath_sample_xml, notepad)

    assert not notepad.has_errors(include_subsections=True)
    assert visit.station == "08MF005"
    assert visit.GenInfo.visit_date() == date(2020, 6, 15)

    rows = visit.StageMeas.StageMeasTable
    assert len(rows) == 3
    assert rows[0].time == "08:30"
    assert rows[0].WL1 == 1.23
    assert rows[0].HG1 is None
    assert rows[0].SRC is None
    assert rows[1].HG1 == 1.31
    assert rows[1].SRC == 0.01
    assert rows[1].SRCApp == "JS"
    assert rows[2].time is None

    assert visit.DisMeas.startTime == "09:00"
    assert visit.DisMeas.discharge == 7.6
    assert visit.EnvCond.batteryVolt == 12.6

    assert visit.MeasResults.SensorRefs == ["IQ Plus Velocity", " Head Stage (m) ", "Head Stage (m)"]
    assert visit.MeasResults.Times == ["10:00", "10:05", "late"]
    assert visit.MeasResults.SensorVals == [1.0, 2.0, 3.0]


def test_load_reports_non_numeric_value(fpath_missing_discharge_xml):
    notepad = create_notepad("missing")
    visit = load_field_visit(fpath_missing_discharge_xml, notepad)

    assert notepad.has_errors(include_subsections=True)
    assert visit.DisMeas.area is None
    assert visit.EnvCond is None
    assert visit.MeasResults is None
    assert visit.station == "05BB001"


def test_load_malformed_xml_raises(tmp_path):
    path = tmp_path / "broken.xml"
    path.write_text("<EHSN><StageMeas></EHSN>", encoding="utf-8")
    with pytest.raises(EhsnLoadError):
        load_field_visit(path, create_notepad("broken"))


def test_load_unequal_sensor_sequences_is_an_error(tmp_path):
    path = tmp_path / "sensors.xml"
    path.write_text(
        "<EHSN><MeasResults>"
        "<SensorRefs><SensorRef>Head Stage (m)</SensorRef></SensorRefs>"
        "<Times><Time>10:00</Time><Time>10:05</Time></Times>"
        "<SensorVals><SensorVal>1.0</SensorVal></SensorVals>"
        "</MeasResults></EHSN>",
        encoding="utf-8",
    )
    notepad = create_notepad("sensors")
    visit = load_field_visit(path, notepad)
    assert visit.MeasResults is None
    assert notepad.has_errors(include_subsections=True)


def test_load_unexpected_root_warns(tmp_path):
    path = tmp_path / "other.xml"
    path.write_text("<Survey/>", encoding="utf-8")
    notepad = create_notepad("other")
    visit = load_field_visit(path, notepad)
    assert visit.StageMeas is None
    assert notepad.has_warnings(include_subsections=True)
