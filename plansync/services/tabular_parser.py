"""
Tab-separated text parsing for the published sheet feeds.

Two flavours:

  parse_tsv()            primary plan feed. Rows split on \\n or \\r\\n,
                         cells split on tab, values used as-is.
  parse_quoted_tsv()     long-text feeds (documents). Cells may be wrapped
                         in double quotes, contain tabs/newlines, and escape
                         quotes by doubling them.

Empty trailing rows are returned as-is; downstream row filtering drops them.
"""

from __future__ import annotations

import re

_LINE_BREAK = re.compile(r"\r?\n")


def parse_tsv(text: str) -> list[list[str]]:
    """Split raw feed text into rows of cells."""
    if not text:
        return []
    return [line.split("\t") for line in _LINE_BREAK.split(text)]


def unquote_cell(value: str) -> str:
    """Strip one wrapping quote pair and collapse doubled quotes.

    >>> unquote_cell('"Say ""hi"" twice"')
    'Say "hi" twice'
    """
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value.replace('""', '"')


def parse_quoted_tsv(text: str) -> list[list[str]]:
    """Parse tab-separated text whose cells may be double-quoted.

    A quoted cell runs until a quote that is not doubled; tabs and line
    breaks inside it belong to the value. Unquoted cells are used as-is.
    """
    rows: list[list[str]] = []
    if not text:
        return rows

    row: list[str] = []
    cell: list[str] = []
    in_quotes = False
    at_cell_start = True
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    cell.append('"')
                    i += 2
                    continue
                in_quotes = False
            else:
                cell.append(ch)
            i += 1
            continue

        if ch == '"' and at_cell_start:
            in_quotes = True
            at_cell_start = False
        elif ch == "\t":
            row.append("".join(cell))
            cell = []
            at_cell_start = True
        elif ch == "\r" and i + 1 < n and text[i + 1] == "\n":
            i += 1
            continue
        elif ch == "\n":
            row.append("".join(cell))
            rows.append(row)
            row, cell = [], []
            at_cell_start = True
        else:
            cell.append(ch)
            at_cell_start = False
        i += 1

    row.append("".join(cell))
    rows.append(row)
    return rows
