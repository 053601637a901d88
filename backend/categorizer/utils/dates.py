"""Lenient parsing of bank statement dates.

Statement dates are stored as the text the bank exported. Most exports are
day-first (``15/06/2025``), some are ISO (``2025-06-15``), and a few carry a
time component. Anything else parses to ``None`` rather than raising, so
callers decide what an unknown date means for them.
"""

from datetime import date, datetime

DAY_FIRST_FORMATS = ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y", "%d.%m.%Y", "%d/%m/%y")


def parse_transaction_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    for fmt in DAY_FIRST_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    # "2025-06-15T10:30:00", "2025-06-15 10:30:00+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None
