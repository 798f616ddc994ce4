"""
Ingest line parser

Plain CSV-ish text, one fact per line:

    alice,knows,bob
    bob, works_for , acme

Fields are split on "," and trimmed. A line needs a non-empty subject,
predicate and object; anything shorter is skipped without complaint.
Fields past the third are ignored.
"""
import logging
from dataclasses import dataclass
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ('csv',)


@dataclass(frozen=True)
class ParsedLine:
    """One accepted ingest line"""
    subject: str
    predicate: str
    object_value: str


def parse_line(line: str) -> Optional[ParsedLine]:
    """Parse a single line, None if it does not carry three fields"""
    fields = [part.strip() for part in line.split(',')]
    if len(fields) < 3:
        return None

    subject, predicate, object_value = fields[:3]
    if not subject or not predicate or not object_value:
        return None

    return ParsedLine(subject, predicate, object_value)


def parse_lines(data: str) -> Iterator[ParsedLine]:
    """
    Yield accepted lines in input order.

    Blank lines are dropped before parsing; malformed lines are logged at
    debug level and skipped.
    """
    for line_no, line in enumerate(data.split('\n'), start=1):
        if not line.strip():
            continue

        parsed = parse_line(line)
        if parsed is None:
            logger.debug(f"Skipping malformed ingest line {line_no}: {line!r}")
            continue

        yield parsed
