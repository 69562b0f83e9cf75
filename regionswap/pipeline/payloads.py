"""
Payload lists.

A payload list names the variants of a run, one `name,payload` record per
line. Blank lines are skipped. The first comma separates name from
payload, so payloads (URLs, text) may contain commas themselves.
"""

from pathlib import Path
from typing import Iterable, Optional

from loguru import logger
from pydantic import ValidationError

from ..config import settings
from ..errors import MalformedPayloadRecord, MediaIOError
from ..models import PayloadRecord

LIST_SUFFIXES = {".csv", ".txt"}


def _usable_as_filename(name: str) -> bool:
    return "/" not in name and "\\" not in name and name not in (".", "..")


def parse_payload_lines(lines: Iterable[str]) -> list[PayloadRecord]:
    """
    Parse payload records.

    Raises MalformedPayloadRecord for a line without a payload field or
    with an empty name. Duplicate names and names that are not a plain
    file name component are rejected as well, since each name maps to
    its own output file.
    """
    records = []
    seen = set()
    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue

        name, sep, payload = line.partition(",")
        if not sep:
            raise MalformedPayloadRecord(line, line_number)

        try:
            record = PayloadRecord(name=name.strip(), payload=payload.strip())
        except ValidationError as e:
            raise MalformedPayloadRecord(line, line_number) from e

        if not _usable_as_filename(record.name) or record.name in seen:
            raise MalformedPayloadRecord(line, line_number)
        seen.add(record.name)
        records.append(record)
    return records


def load_payloads(value: str, default_name: Optional[str] = None) -> list[PayloadRecord]:
    """
    Resolve a payload argument into records.

    An existing file is read as a payload list. A value that names a list
    file which does not exist is an error. Anything else is a single
    payload for one variant.
    """
    path = Path(value)
    if path.is_file():
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise MediaIOError(f"Cannot read payload list {path}: {e}") from e
        records = parse_payload_lines(text.splitlines())
        if not records:
            raise MalformedPayloadRecord(f"{path} (no records)")
        logger.info(f"Loaded {len(records)} variants from {path}")
        return records

    if path.suffix.lower() in LIST_SUFFIXES:
        raise MediaIOError(f"Payload list not found: {path}")

    name = default_name or settings.default_variant_name
    return [PayloadRecord(name=name, payload=value)]
