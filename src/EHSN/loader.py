import xml.etree.ElementTree as ET  # nosec B405 - EHSN files come from field staff, not the network

from pathlib import Path
from typing import Optional

from stairval.notepad import Notepad

from .field_visit import DisMeas, EnvCond, FieldVisit, GenInfo, MeasResults, StageMeas, StageMeasRow

# Numeric fields per section; everything else is read as text
NUMERIC_FIELDS = {
    "StageMeasRow": ("WL1", "HG1", "SRC"),
    "DisMeas": ("airTemp", "waterTemp", "width", "area", "meanVel", "mgh", "discharge"),
    "EnvCond": ("batteryVolt",),
}


class EhsnLoadError(RuntimeError):
    """Raised when an EHSN file cannot be read as XML."""


def _strip_ns(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    for child in element:
        if _strip_ns(child.tag) == name:
            return child
    return None


def _children(element: Optional[ET.Element], name: str) -> list[ET.Element]:
    if element is None:
        return []
    return [child for child in element if _strip_ns(child.tag) == name]


def _text(element: Optional[ET.Element]) -> Optional[str]:
    """
    Element text with surrounding whitespace kept; None for a missing or empty element.
    """
    if element is None or element.text is None or not element.text.strip():
        return None
    return element.text


def _number(element: Optional[ET.Element], section: str, field: str, notepad: Notepad) -> Optional[float]:
    text = _text(element)
    if text is None:
        return None
    try:
        return float(text.strip())
    except ValueError:
        notepad.add_error(f"Section {section!r}: {field} is not a number: {text.strip()!r}")
        return None


def _read_numeric_fields(element: ET.Element, section: str, notepad: Notepad) -> dict[str, Optional[float]]:
    return {
        name: _number(_child(element, name), section, name, notepad)
        for name in NUMERIC_FIELDS[section]
    }


def _load_gen_info(element: Optional[ET.Element], notepad: Notepad) -> Optional[GenInfo]:
    if element is None:
        return None
    station_element = _child(element, "station")
    station = None
    if station_element is not None:
        # Either <station number="..."/> or <station>...</station>
        station = station_element.get("number") or _text(station_element)
        station = station.strip() if station else None
    try:
        return GenInfo(station=station, date=_text(_child(element, "date")))
    except ValueError as e:
        notepad.add_warning(f"Section 'GenInfo': {e}")
        return GenInfo(date=_text(_child(element, "date")))


def _load_stage_meas(element: Optional[ET.Element], notepad: Notepad) -> Optional[StageMeas]:
    if element is None:
        return None
    table = _child(element, "StageMeasTable")
    rows = []
    for row_element in _children(table, "StageMeasRow"):
        rows.append(
            StageMeasRow(
                time=_text(_child(row_element, "time")),
                SRCApp=_text(_child(row_element, "SRCApp")),
                **_read_numeric_fields(row_element, "StageMeasRow", notepad),
            )
        )
    return StageMeas(StageMeasTable=rows)


def _load_dis_meas(element: Optional[ET.Element], notepad: Notepad) -> Optional[DisMeas]:
    if element is None:
        return None
    return DisMeas(
        startTime=_text(_child(element, "startTime")),
        endTime=_text(_child(element, "endTime")),
        **_read_numeric_fields(element, "DisMeas", notepad),
    )


def _load_env_cond(element: Optional[ET.Element], notepad: Notepad) -> Optional[EnvCond]:
    if element is None:
        return None
    return EnvCond(**_read_numeric_fields(element, "EnvCond", notepad))


def _load_meas_results(element: Optional[ET.Element], notepad: Notepad) -> Optional[MeasResults]:
    if element is None:
        return None
    sensor_refs = [_text(e) for e in _children(_child(element, "SensorRefs"), "SensorRef")]
    times = [_text(e) for e in _children(_child(element, "Times"), "Time")]
    values = [
        _number(e, "MeasResults", "SensorVal", notepad)
        for e in _children(_child(element, "SensorVals"), "SensorVal")
    ]
    try:
        return MeasResults(SensorRefs=sensor_refs, Times=times, SensorVals=values)
    except ValueError as e:
        notepad.add_error(f"Section 'MeasResults': {e}")
        return None


def load_field_visit(xml_path: str | Path, notepad: Notepad) -> FieldVisit:
    """
    Read an EHSN XML file into a FieldVisit:
      - sections missing from the file stay None
      - empty numeric elements become None
      - unreadable numbers are reported on the notepad and become None
    """
    path = Path(xml_path)
    try:
        tree = ET.parse(str(path))  # nosec B314
    except ET.ParseError as exc:
        raise EhsnLoadError(f"Malformed EHSN XML in {path}: {exc}") from exc

    root = tree.getroot()
    if _strip_ns(root.tag) != "EHSN":
        notepad.add_warning(f"Root element is {_strip_ns(root.tag)!r}, expected 'EHSN'")

    return FieldVisit(
        GenInfo=_load_gen_info(_child(root, "GenInfo"), notepad),
        StageMeas=_load_stage_meas(_child(root, "StageMeas"), notepad),
        DisMeas=_load_dis_meas(_child(root, "DisMeas"), notepad),
        EnvCond=_load_env_cond(_child(root, "EnvCond"), notepad),
        MeasResults=_load_meas_results(_child(root, "MeasResults"), notepad),
    )
