import os
import pytest

from datetime import date

from EHSN.field_visit import DisMeas, EnvCond, FieldVisit, GenInfo, MeasResults, StageMeas, StageMeasRow


@pytest.fixture(scope="session")
def fpath_test_dir() -> str:
    """
    Path to `tests/data/` folder.
    """
    return os.path.join(os.path.dirname(__file__), "data")


@pytest.fixture(scope="session")
def fpath_sample_xml(fpath_test_dir: str) -> str:
    return os.path.join(fpath_test_dir, "ehsn_sample.xml")


@pytest.fixture(scope="session")
def fpath_missing_discharge_xml(fpath_test_dir: str) -> str:
    return os.path.join(fpath_test_dir, "ehsn_missing_discharge.xml")


@pytest.fixture
def visit_date() -> date:
    return date(2020, 6, 15)


@pytest.fixture
def dis_meas() -> DisMeas:
    return DisMeas(
        startTime="09:00",
        endTime="09:15",
        airTemp=20.1,
        waterTemp=15.4,
        width=12.0,
        area=8.5,
        meanVel=0.9,
        mgh=1.1,
        discharge=7.6,
    )


@pytest.fixture
def field_visit(dis_meas: DisMeas) -> FieldVisit:
    """
    A complete visit: two usable stage rows and one with a blank time,
    a discharge summary, a battery reading and mixed sensor samples.
    """
    return FieldVisit(
        GenInfo=GenInfo(station="08MF005", date="2020/06/15"),
        StageMeas=StageMeas(
            StageMeasTable=[
                StageMeasRow(time="08:30", WL1=1.23),
                StageMeasRow(time="", WL1=1.40),
                StageMeasRow(time="09:45:10", HG1=1.31, SRC=0.01, SRCApp="JS"),
            ]
        ),
        DisMeas=dis_meas,
        EnvCond=EnvCond(batteryVolt=12.6),
        MeasResults=MeasResults(
            SensorRefs=["IQ Plus Velocity", "Head Stage (m)"],
            Times=["10:00", "10:05"],
            SensorVals=[1.0, 2.0],
        ),
    )
