"""CSV exports."""

from collections.abc import Sequence
from datetime import datetime

import pandas as pd

from opsdesk.models.texas_author import TexasAuthor

TEXAS_AUTHOR_COLUMNS = [
    "Name",
    "Email",
    "Phone",
    "Website",
    "City",
    "State",
    "Contacted",
    "Notes",
    "Source Ref",
    "Created",
    "Updated",
]


def _date(value: datetime | None) -> str:
    return value.date().isoformat() if value else ""


def texas_authors_csv(authors: Sequence[TexasAuthor]) -> str:
    """Directory rows as CSV (CRLF line endings, dates as YYYY-MM-DD)."""
    rows = [
        [
            a.name,
            a.email or "",
            a.phone or "",
            a.website or "",
            a.city or "",
            a.state or "",
            "Yes" if a.contacted else "No",
            a.notes or "",
            a.source_ref or "",
            _date(a.created_at),
            _date(a.updated_at),
        ]
        for a in authors
    ]
    df = pd.DataFrame(rows, columns=TEXAS_AUTHOR_COLUMNS)
    return df.to_csv(index=False, lineterminator="\r\n")
