"""
Append-only event log and the audit history derived from it.

Each event is one line: ``"<EVENT LABEL> - <datetime>"``, for example::

    TOGGLE DOOR - 2016-05-26 22:42:44.000000000 -0500 CDT

Only toggle events are surfaced as audit entries; every other line (version
requests, rejected signatures, driver errors) stays in the file for operators.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

TOGGLE_EVENT = "TOGGLE DOOR"
SEPARATOR = " - "


@dataclass(frozen=True)
class AuditEntry:
    date: str
    time: str
    kind: str

    def to_dict(self) -> Dict[str, str]:
        return {"date": self.date, "time": self.time, "type": self.kind}


def format_event_time(moment: datetime) -> str:
    """``2016-05-26 22:42:44.123456000 -0500 CDT``: nanosecond field, numeric offset, zone name."""
    return moment.strftime("%Y-%m-%d %H:%M:%S.%f") + "000" + moment.strftime(" %z %Z")


def parse_event_time(token: str) -> datetime:
    """
    Parse the datetime half of a log line.

    The wall-clock time is kept as written; the offset and zone name that
    follow it (and anything after those) do not change the displayed time.

    Raises:
        ValueError: If the date or clock part is malformed.
    """
    parts = token.split()
    if len(parts) < 2:
        raise ValueError(f"incomplete datetime {token!r}")
    day, clock = parts[0], parts[1].split(".", 1)[0]
    return datetime.strptime(f"{day} {clock}", "%Y-%m-%d %H:%M:%S")


def format_date(moment: datetime) -> str:
    return f"{moment:%a %b} {moment.day} {moment.year}"


def format_clock(moment: datetime) -> str:
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{moment.hour % 12 or 12}:{moment.minute:02d} {suffix}"


def parse_kind(label: str) -> str:
    """``"TOGGLE DOOR"`` -> ``"Toggle"``"""
    words = label.split()
    return words[0].capitalize() if words else ""


def parse_audit(text: str) -> List[AuditEntry]:
    """
    Turn raw event log text into audit entries, most recent first.

    Lines that are not toggle events are filtered out. A toggle line whose
    datetime cannot be parsed is skipped with a warning.
    """
    entries: List[AuditEntry] = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.startswith(TOGGLE_EVENT):
            continue
        fields = line.split(SEPARATOR)
        if len(fields) < 2:
            logger.warning(f"Skipping audit line {number}: no datetime")
            continue
        try:
            moment = parse_event_time(fields[1])
        except ValueError as exc:
            logger.warning(f"Skipping audit line {number}: {exc}")
            continue
        entries.append(AuditEntry(date=format_date(moment), time=format_clock(moment), kind=parse_kind(fields[0])))
    entries.reverse()
    return entries


def read_audit(path: Optional[Path]) -> List[AuditEntry]:
    """Audit entries from the log file at ``path``; empty if there is no file yet."""
    if path is None:
        return []
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return []
    return parse_audit(text)


class FileEventLog:
    """Appends events to the log file (or stdout when no path is configured)."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def record(self, event: str) -> None:
        # one event per line, whatever the message contains
        event = " ".join(event.splitlines())
        line = f"{event}{SEPARATOR}{format_event_time(datetime.now().astimezone())}\n"
        logger.info(event)
        if self.path is None:
            sys.stdout.write(line)
            sys.stdout.flush()
            return
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
