"""Dialect translation: rewrite a PostgreSQL data dump into SQLite-compatible SQL.

The translation is an ordered list of pure rules. Each rule takes one logical
line (a physical line, or several when a quoted literal spans newlines) and
returns the rewritten line, or ``None`` to drop it. Rules never look at other
lines, so they commute with line order; only ``iter_logical_lines`` and the
final join are aware of line boundaries.

Rule order is significant where one rule's output could re-trigger another:
unescaping runs first so an escaped keyword is seen in its final form by the
dropping rules.

Translation never fails. Anything the rules do not recognise is passed
through unchanged and surfaces as an import error on the destination side.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Collection, Iterable, Iterator
from datetime import datetime, timedelta, timezone

Rule = Callable[[str], "str | None"]

# ---------------------------------------------------------------------------
# Logical lines
# ---------------------------------------------------------------------------


def _open_quote(line: str) -> bool:
    """True if *line* leaves a single-quoted literal open ('' escapes count twice)."""
    return line.count("'") % 2 == 1


def iter_logical_lines(lines: Iterable[str]) -> Iterator[str]:
    """Group physical lines into logical lines.

    A line that leaves a string literal open is joined with the following lines
    until the literal closes. Comment lines outside a literal stand alone.
    Line endings are preserved inside the yielded text.
    """
    pending: list[str] = []
    inside = False
    for line in lines:
        if not pending and line.startswith("--"):
            yield line
            continue
        pending.append(line)
        if _open_quote(line):
            inside = not inside
        if not inside:
            yield "".join(pending)
            pending = []
    if pending:
        # Unterminated literal at EOF: pass through untouched
        yield "".join(pending)


# ---------------------------------------------------------------------------
# Rules (applied in RULES order)
# ---------------------------------------------------------------------------


def unescape(line: str) -> str:
    r"""Undo doubled escapes left by the dump format.

    Three substitutions in fixed order: ``\\:`` to ``:``, every ``\\`` pair
    removed, ``\\;`` to ``;``. The last one cannot match once pairs are gone;
    ``\\;`` still ends up as ``;`` through the second step.

    pre:  any line.
    post: no ``\\:`` and no ``\\`` pair remains; a line without backslashes
          is returned unchanged.
    """
    if "\\" not in line:
        return line
    line = line.replace("\\\\:", ":")
    line = line.replace("\\\\", "")
    return line.replace("\\\\;", ";")


_SESSION_SETTING = re.compile(r"^SET ")


def drop_session_settings(line: str) -> str | None:
    """Drop ``SET ...`` session directives; SQLite has no session settings.

    post: no returned line starts with ``SET ``.
    """
    return None if _SESSION_SETTING.match(line) else line


_SETVAL = re.compile(r"\bsetval\s*\(")


def drop_sequence_values(line: str) -> str | None:
    """Drop sequence seeding (``SELECT pg_catalog.setval(...)``); SQLite has no sequences.

    post: no returned line contains a ``setval(`` call.
    """
    return None if _SETVAL.search(line) else line


def rewrite_booleans(line: str) -> str:
    """Rewrite ``'true'``/``'false'`` literals to ``1``/``0``.

    post: the quoted forms are gone; every occurrence is replaced in place.
    """
    if "'true'" not in line and "'false'" not in line:
        return line
    return line.replace("'true'", "1").replace("'false'", "0")


_PUBLIC_QUALIFIER = re.compile(r"\bpublic\.")


def _outside_literal(line: str, pos: int) -> bool:
    return line.count("'", 0, pos) % 2 == 0


def strip_default_schema(line: str) -> str:
    """Remove ``public.`` identifier qualifiers; SQLite is schema-flat.

    Occurrences inside string literals are row data and are left alone, so a
    line already free of qualifiers is returned unchanged.
    """
    if "public." not in line:
        return line
    parts = []
    last = 0
    for m in _PUBLIC_QUALIFIER.finditer(line):
        if _outside_literal(line, m.start()):
            parts.append(line[last : m.start()])
            last = m.end()
    parts.append(line[last:])
    return "".join(parts)


_SELECT = re.compile(r"^\s*SELECT\b")


def drop_select_statements(line: str) -> str | None:
    """Drop standalone ``SELECT`` statements (catalog calls, verification queries).

    post: no returned line begins with ``SELECT``.
    """
    return None if _SELECT.match(line) else line


_OFFSET_TIMESTAMP = re.compile(
    r"'(\d{4}-\d{2}-\d{2})[ T](\d{2}:\d{2}:\d{2})(\.\d+)?([+-])(\d{2})(?::?(\d{2}))?'"
)


def _to_zulu(match: re.Match) -> str:
    date, clock, fraction, sign, hours, minutes = match.groups()
    offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
    if sign == "-":
        offset = -offset
    if offset:
        try:
            local = datetime.fromisoformat(f"{date}T{clock}").replace(tzinfo=timezone(offset))
            utc = local.astimezone(timezone.utc)
        except (ValueError, OverflowError):
            # Out-of-range values go through as-is
            return match.group(0)
        date, clock = utc.date().isoformat(), utc.time().isoformat(timespec="seconds")
    return f"'{date}T{clock}{fraction or ''}Z'"


def zulu_timestamps(line: str) -> str:
    """Rewrite offset-suffixed timestamp literals to canonical UTC ISO-8601 with ``Z``.

    D1 compares timestamps as strings, so every value must share one form.
    ``'2024-01-02 03:04:05.12+00'`` becomes ``'2024-01-02T03:04:05.12Z'``;
    non-zero offsets are shifted to UTC. Already-Zulu literals do not match.
    """
    return _OFFSET_TIMESTAMP.sub(_to_zulu, line)


RULES: list[Rule] = [
    unescape,
    drop_session_settings,
    drop_sequence_values,
    rewrite_booleans,
    strip_default_schema,
    drop_select_statements,
]

REMOTE_RULES: list[Rule] = RULES + [zulu_timestamps]


def rules_for(remote: bool) -> list[Rule]:
    return REMOTE_RULES if remote else RULES


# ---------------------------------------------------------------------------
# Exclusion filter
# ---------------------------------------------------------------------------

_INSERT_TARGET = re.compile(r'^\s*INSERT\s+INTO\s+(?:"?public"?\.)?"?([^\s"(]+)"?', re.IGNORECASE)


def insert_target(line: str) -> str | None:
    """Return the unqualified table name of an ``INSERT INTO`` line, else None."""
    m = _INSERT_TARGET.match(line)
    return m.group(1) if m else None


def drop_excluded_tables(line: str, excluded: Collection[str]) -> str | None:
    """Drop rows destined for a table in *excluded*."""
    table = insert_target(line)
    if table is not None and table in excluded:
        return None
    return line


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def translate_line(line: str, rules: Iterable[Rule] = RULES) -> str | None:
    """Apply *rules* in order; stop as soon as one drops the line."""
    for rule in rules:
        result = rule(line)
        if result is None:
            return None
        line = result
    return line


def translate_lines(
    lines: Iterable[str],
    *,
    remote: bool = False,
    excluded_tables: Iterable[str] = (),
) -> Iterator[str]:
    """Translate a stream of physical dump lines into SQLite-ready logical lines."""
    rules = rules_for(remote)
    excluded = frozenset(excluded_tables)
    for logical in iter_logical_lines(lines):
        translated = translate_line(logical, rules)
        if translated is None:
            continue
        if excluded and drop_excluded_tables(translated, excluded) is None:
            continue
        yield translated


def translate(text: str, *, remote: bool = False, excluded_tables: Iterable[str] = ()) -> str:
    """Translate a whole dump held in memory."""
    return "".join(
        translate_lines(text.splitlines(keepends=True), remote=remote, excluded_tables=excluded_tables)
    )
