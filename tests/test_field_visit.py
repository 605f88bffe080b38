import pytest

from datetime import date

from EHSN.field_visit import FieldVisit, GenInfo, MeasResults


def test_meas_results_with_equal_lengths():
    results = MeasResults(SensorRefs=["Head Stage (m)"], Times=["10:00"], SensorVals=[1.0])
    assert len(results) == 1


@pytest.mark.parametrize(
    "refs, times, values",
    [
        (["a", "b"], ["10:00"], [1.0, 2.0]),
        (["a"], ["10:00"], []),
    ],
)
def test_meas_results_unequal_lengths_raise(refs, times, values):
    """Parallel sequences must line up index by index."""
    with pytest.raises(ValueError):
        MeasResults(SensorRefs=refs, Times=times, SensorVals=values)


@pytest.mark.parametrize("text", ["2020-06-15", "2020/06/15", " 2020/06/15 "])
def test_gen_info_visit_date(text):
    assert GenInfo(date=text).visit_date() == date(2020, 6, 15)


@pytest.mark.parametrize("text", [None, "", "  "])
def test_gen_info_without_date(text):
    assert GenInfo(date=text).visit_date() is None


def test_gen_info_malformed_date_raises():
    with pytest.raises(ValueError):
        GenInfo(date="15 June 2020").visit_date()


@pytest.mark.parametrize("bad_station", ["08 MF 005", "08MF005!"])
def test_invalid_station_raises(bad_station):
    with pytest.raises(ValueError):
        GenInfo(station=bad_station)


def test_field_visit_station_fallback():
    assert FieldVisit().station == "unknown"
    assert FieldVisit(GenInfo=GenInfo(station="08MF005")).station == "08MF005"
