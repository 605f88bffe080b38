"""
Command-line interface for the EHSN measurement toolkit.
Loads EHSN field-visit XML files, extracts their measurements and writes one
CSV table per visit.
"""

import click
import json
import logging
import pathlib
import re
import sys
import typing

from collections import namedtuple
from datetime import date, datetime, timedelta
from stairval.notepad import create_notepad

from .field_visit import FieldVisit
from .loader import EhsnLoadError, load_field_visit
from .mapper import DISCHARGE_FIELD_MAP, MeasurementParser, MissingRequiredFieldError
from .measurement import EhsnMeasurement

AuditEntry = namedtuple("AuditEntry", ["section", "present", "rows", "level", "message"])

_UTC_OFFSET = re.compile(r"^(?P<sign>[+-])?(?P<hours>\d{1,2}):(?P<minutes>\d{2})$")


@click.group()
def main():
    """EHSN: extract time-stamped measurements from hydrometric field-visit files."""
    pass


def _parse_utc_offset(ctx, param, value: str) -> timedelta:
    # click callback: '-08:00' -> timedelta(hours=-8)
    m = _UTC_OFFSET.match(value.strip())
    if not m:
        raise click.BadParameter(f"expected ±HH:MM, got {value!r}")
    offset = timedelta(hours=int(m.group("hours")), minutes=int(m.group("minutes")))
    if offset >= timedelta(hours=24):
        raise click.BadParameter(f"offset out of range: {value!r}")
    return -offset if m.group("sign") == "-" else offset


def _parse_visit_date(ctx, param, value: typing.Optional[str]) -> typing.Optional[date]:
    if value is None:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


def _configure_logging(verbose_logging: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose_logging else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


@main.command(name="parse-xml")
@click.argument(
    "xml_paths",
    nargs=-1,
    type=click.Path(exists=True, dir_okay=False),
)
@click.option(
    "-u",
    "--utc-offset",
    "utc_offset",
    default="+00:00",
    callback=_parse_utc_offset,
    help="UTC offset of the station, ±HH:MM (default: +00:00)",
)
@click.option(
    "-d",
    "--visit-date",
    "visit_date",
    default=None,
    callback=_parse_visit_date,
    help="visit date YYYY-MM-DD (default: the date in the file's GenInfo section)",
)
@click.option(
    "-o",
    "--output-dir",
    "output_dir",
    default=None,
    type=click.Path(file_okay=False),
    help="where to write CSV files (default: ./measurements_from_ehsn/<timestamp>/measurements)",
)
@click.option("--verbose-logging", is_flag=True, help="Also emit debug logs to stderr")
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def parse_xml(
    xml_paths: tuple[str, ...],
    utc_offset: timedelta,
    visit_date: typing.Optional[date],
    output_dir: typing.Optional[str],
    verbose_logging: bool,
    log_file_path: typing.Optional[str],
):
    """
    Parse one or more EHSN XML files. For each visit:
      - load the file into a FieldVisit
      - extract stage, discharge, environment and sensor measurements
      - write the measurements to <file stem>.csv
    A visit missing a required value or holding unreadable content is rejected;
    the others are still written.
    """
    if not xml_paths:
        click.echo("No input files specified.", err=True)
        sys.exit(1)

    _configure_logging(verbose_logging, log_file_path)

    out_dir = pathlib.Path(output_dir) if output_dir else _prepare_output_dir()
    out_dir.mkdir(parents=True, exist_ok=True)

    rejected = 0
    for xml_path in xml_paths:
        notepad = create_notepad(pathlib.Path(xml_path).name)
        logging.info(f"Beginning parse of '{xml_path}'")
        measurement = _extract_visit(xml_path, visit_date, utc_offset, notepad)
        _report_issues(notepad)
        if measurement is None:
            rejected += 1
            continue

        out_path = _write_measurements(measurement, out_dir / f"{pathlib.Path(xml_path).stem}.csv")
        counts = measurement.counts()
        click.echo(
            f"{xml_path}: {counts['stage']} stage, {counts['discharge']} discharge, "
            f"{counts['environment']} environment, {counts['sensor']} sensor measurements -> {out_path}"
        )

    if rejected:
        click.echo(f"Rejected {rejected} of {len(xml_paths)} field visits", err=True)
        sys.exit(1)


def _extract_visit(
    xml_path: str,
    visit_date: typing.Optional[date],
    utc_offset: timedelta,
    notepad,
) -> typing.Optional[EhsnMeasurement]:
    """
    Load and extract one visit. Returns None, with the reason on the notepad,
    when the visit has to be rejected.
    """
    try:
        field_visit = load_field_visit(xml_path, notepad)
    except EhsnLoadError as e:
        logging.error(f"Failed to read '{xml_path}': {e}")
        notepad.add_error(str(e))
        return None

    station = field_visit.station
    if notepad.has_errors(include_subsections=True):
        # a section that failed to load would otherwise be exported incomplete
        logging.error(f"Station {station}: rejected, '{xml_path}' has unreadable content")
        notepad.add_error(f"Station {station}: visit rejected, the file has unreadable content")
        return None

    try:
        anchor_date = visit_date or (field_visit.GenInfo.visit_date() if field_visit.GenInfo else None)
    except ValueError as e:
        notepad.add_error(f"Station {station}: {e}")
        return None
    if anchor_date is None:
        notepad.add_error(f"Station {station}: no visit date in file; pass --visit-date")
        return None

    try:
        measurement = MeasurementParser(field_visit, anchor_date, utc_offset).parse()
    except MissingRequiredFieldError as e:
        logging.error(f"Station {station}, visit {anchor_date.isoformat()}: {e}")
        notepad.add_error(f"Station {station}, visit {anchor_date.isoformat()}: {e}")
        return None
    except ValueError as e:
        # '25:00' matches HH:MM but is not a time of day; a window may also end before it starts
        notepad.add_error(f"Station {station}, visit {anchor_date.isoformat()}: {e}")
        return None

    logging.debug(f"Station {station}: {measurement.counts()}")
    return measurement


def _report_issues(notepad):
    # if there were errors, show them
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found in field visit:")
        for err in notepad.errors():
            click.echo(f"- {err.message}")
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found in field visit:")
        for w in notepad.warnings():
            click.echo(f"- {w.message}")


def _prepare_output_dir() -> pathlib.Path:
    # use YYYY-MM-DD_HH-MM-SS for human-readable timestamps
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    measurements_output_dir = pathlib.Path.cwd() / "measurements_from_ehsn" / timestamp / "measurements"
    measurements_output_dir.mkdir(parents=True, exist_ok=True)
    return measurements_output_dir


def _write_measurements(measurement: EhsnMeasurement, out_path: pathlib.Path) -> pathlib.Path:
    measurement.to_dataframe().to_csv(out_path, index=False)
    return out_path


def audit_field_visit(field_visit: FieldVisit) -> list[AuditEntry]:
    """
    Summarize which sections a field visit carries:
      - presence and row count per section
      - warnings for sections the extractor will not be able to use
    """
    entries: list[AuditEntry] = []

    stage = field_visit.StageMeas
    entries.append(AuditEntry(
        section="StageMeas",
        present=stage is not None,
        rows=len(stage.StageMeasTable) if stage else 0,
        level="info",
        message="stage table",
    ))

    dis = field_visit.DisMeas
    missing = [name for name, _, _ in DISCHARGE_FIELD_MAP if dis is not None and getattr(dis, name) is None]
    entries.append(AuditEntry(
        section="DisMeas",
        present=dis is not None,
        rows=1 if dis else 0,
        level="error" if missing else "info",
        message=f"missing {', '.join(missing)}" if missing else "discharge summary",
    ))

    env = field_visit.EnvCond
    entries.append(AuditEntry(
        section="EnvCond",
        present=env is not None,
        rows=1 if env is not None and env.batteryVolt is not None else 0,
        level="info",
        message="battery voltage",
    ))

    results = field_visit.MeasResults
    entries.append(AuditEntry(
        section="MeasResults",
        present=results is not None,
        rows=len(results) if results else 0,
        level="info",
        message="sensor samples",
    ))
    return entries


@main.command(name="audit-xml")
@click.option(
    "-x",
    "--xml-path",
    "xml_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to the EHSN XML file",
)
@click.option("-r", "--raw", "as_json", is_flag=True, help="Print the audit as JSON")
def audit_xml(xml_file: str, as_json: bool):
    """
    Show which sections of an EHSN file are present and how many rows they hold.
    """
    notepad = create_notepad(pathlib.Path(xml_file).name)
    try:
        field_visit = load_field_visit(xml_file, notepad)
    except EhsnLoadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    entries = audit_field_visit(field_visit)
    if as_json:
        click.echo(json.dumps([entry._asdict() for entry in entries], indent=2))
        return

    click.echo(f"{'SECTION':15}  {'PRESENT':7}  {'ROWS':5}  {'LEVEL':5}  MESSAGE")
    for entry in entries:
        line = f"{entry.section:15}  {str(entry.present):7}  {entry.rows:<5}  {entry.level:5}  {entry.message}"
        if entry.level == "error":
            click.echo(click.style(line, fg="red"))
        else:
            click.echo(line)
    _report_issues(notepad)


if __name__ == "__main__":
    main()
