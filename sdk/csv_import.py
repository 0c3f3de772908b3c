"""
CSV parsing for bulk client import.

Columns in order: name,email,phone,address. A first line matching
"name , email" (any case) is taken as a header and skipped. Quoted fields
may contain commas, also after a ", " separator; a doubled quote inside
quotes is a literal quote.
Blank lines are ignored and rows without a name or an email are dropped.
"""

import csv
import re

HEADER_PATTERN = re.compile(r"name\s*,\s*email", re.IGNORECASE)

COLUMNS = ("name", "email", "phone", "address")


def parse_client_csv(text: str) -> list[dict[str, str]]:
    """
    Parse pasted or uploaded CSV text into bulk-create rows.

    Returns:
        [{"name", "email", "phone"?, "address"?}, ...] in input order.
        Empty phone/address are omitted.
    """
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return []

    if HEADER_PATTERN.search(lines[0]):
        lines = lines[1:]

    rows = []
    for cols in csv.reader(lines, skipinitialspace=True):
        values = [c.strip() for c in cols] + [""] * len(COLUMNS)
        record = {
            column: value
            for column, value in zip(COLUMNS, values)
            if value
        }
        if record.get("name") and record.get("email"):
            rows.append(record)
    return rows
