"""
Lightweight CSV parsing for dashboard data files.

Handles:
- CR / LF / CRLF line splitting with blank-line removal
- Comma-delimited fields with double-quote quoting ("" escapes a quote)
- Whitespace trimming of every field

The first non-blank line is always the header. Malformed quoting never
raises: an unterminated quote simply runs to the end of the line.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass
class ParsedCsv:
    """Header row plus data rows, as produced by parse_csv()."""

    header: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    def column_index(self, name: str) -> Optional[int]:
        """Index of the first header cell exactly equal to ``name``."""
        try:
            return self.header.index(name)
        except ValueError:
            return None

    def get(self, row: List[str], column: str) -> Optional[str]:
        """
        Cell of ``row`` under header ``column``.

        Returns None when the column is absent or the row is too short.
        """
        idx = self.column_index(column)
        if idx is None or idx >= len(row):
            return None
        return row[idx]


def split_lines(text: str) -> List[str]:
    """Split on CR/LF boundaries and drop blank lines."""
    return [line for line in _LINE_BREAK.split(text or "") if line.strip()]


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into trimmed fields.

    Examples:
        >>> parse_csv_line('a, "b,c" ,d')
        ['a', 'b,c', 'd']
        >>> parse_csv_line('a,"x""y"')
        ['a', 'x"y']
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0

    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> ParsedCsv:
    """
    Parse raw CSV text into a header and data rows.

    Rows are kept even when their column count differs from the header;
    callers decide how to treat missing cells.

    Examples:
        >>> parsed = parse_csv("Month,Coal\\n01/2023,50\\n\\n02/2023")
        >>> parsed.header, parsed.rows
        (['Month', 'Coal'], [['01/2023', '50'], ['02/2023']])
    """
    lines = split_lines(text)
    if not lines:
        return ParsedCsv()

    return ParsedCsv(
        header=parse_csv_line(lines[0]),
        rows=[parse_csv_line(line) for line in lines[1:]],
    )
