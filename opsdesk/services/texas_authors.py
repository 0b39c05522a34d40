"""
Texas Authors directory sync from Google Sheets.

Flow:
    1. Cooldown: reject while the newest sync run is younger than the window
    2. Insert a RUNNING sync run and commit it (in-flight marker)
    3. Resolve spreadsheet/sheet/range and fetch values
    4. Skip upserts when the content hash matches the last successful sync
    5. Upsert each row by external key, one savepoint per row
    6. Mark the run SUCCESS, or roll back and mark it FAILED

Directory rows missing from the sheet are kept.
"""

import hashlib
import math
import re
from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.config import AppConfig, Settings
from opsdesk.core.datetime_utils import seconds_since, utc_now
from opsdesk.core.errors import RateLimited, UpstreamError, error_message
from opsdesk.core.logging import get_logger
from opsdesk.models.sync_run import SyncKind, SyncStatus
from opsdesk.models.texas_author import TexasAuthor
from opsdesk.repositories.sync_runs import SyncRunRepository
from opsdesk.services.sheets_client import SheetsSource

logger = get_logger(__name__)

DEFAULT_SHEET_NAME = "Sheet1"
DEFAULT_COLUMNS = "A:Z"

# Normalized header -> field. First matching column wins.
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("author", "name", "full name", "author name"),
    "email": ("email", "email address", "contact email"),
    "phone": ("phone", "phone number", "cell", "mobile"),
    "city": ("city", "town"),
    "state": ("state", "st"),
    "website": ("website", "website url", "site", "url"),
    "notes": ("notes", "note", "comments", "comment", "bio", "biography"),
}


class SheetsConfigError(UpstreamError):
    """The spreadsheet to sync from is not configured."""


@dataclass
class SheetConfig:
    spreadsheet_id: str
    sheet_name: str
    range_a1: str


@dataclass
class AuthorRow:
    """One mapped spreadsheet row, ready to upsert."""

    external_key: str
    name: str
    email: str | None
    phone: str | None
    website: str | None
    city: str | None
    state: str | None
    notes: str | None
    raw: dict[str, str]
    source_ref: str


@dataclass
class SyncSummary:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    rowCount: int = 0
    changed: bool = True
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Sheet configuration
# =============================================================================


def sheet_name_from_range(range_a1: str | None) -> str | None:
    """Sheet part of an A1 range ("'Authors 2024'!A:Z" -> "Authors 2024")."""
    if not range_a1 or "!" not in range_a1:
        return None
    name = range_a1.rsplit("!", 1)[0].strip()
    if len(name) >= 2 and name.startswith("'") and name.endswith("'"):
        name = name[1:-1].replace("''", "'")
    return name or None


def quote_sheet_name(sheet_name: str) -> str:
    if re.fullmatch(r"[A-Za-z0-9_]+", sheet_name):
        return sheet_name
    return "'" + sheet_name.replace("'", "''") + "'"


async def resolve_sheet_config(settings: Settings, sheets: SheetsSource) -> SheetConfig:
    """
    Work out which spreadsheet, sheet and range to read.

    Sheet name: explicit setting, else the sheet part of the configured range,
    else the spreadsheet's first sheet (falling back to "Sheet1"). Range:
    configured range, else every column A:Z of that sheet.
    """
    spreadsheet_id = (
        settings.google_sheets_texas_authors_spreadsheet_id
        or settings.google_sheets_spreadsheet_id
    ).strip()
    if not spreadsheet_id:
        raise SheetsConfigError(
            "Texas Authors spreadsheet is not configured "
            "(set GOOGLE_SHEETS_TEXAS_AUTHORS_SPREADSHEET_ID)"
        )

    range_a1 = (settings.google_sheets_texas_authors_range_a1 or settings.google_sheets_range).strip()
    sheet_name = settings.google_sheets_texas_authors_sheet_name.strip() or sheet_name_from_range(
        range_a1
    )

    if not sheet_name:
        sheet_name = await sheets.first_sheet_title(spreadsheet_id) or DEFAULT_SHEET_NAME

    if not range_a1:
        range_a1 = f"{quote_sheet_name(sheet_name)}!{DEFAULT_COLUMNS}"

    return SheetConfig(spreadsheet_id=spreadsheet_id, sheet_name=sheet_name, range_a1=range_a1)


# =============================================================================
# Row mapping
# =============================================================================


def normalize_header(header: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace ("E-mail  Address:" -> "e mail address")."""
    cleaned = re.sub(r"[^a-z0-9]+", " ", header.lower())
    return " ".join(cleaned.split())


def column_index(headers: list[str]) -> dict[str, int]:
    """Map each directory field to the first column whose header matches an alias."""
    normalized = [normalize_header(h) for h in headers]
    index: dict[str, int] = {}
    for field_name, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in normalized:
                index[field_name] = normalized.index(alias)
                break
    return index


def make_external_key(name: str, email: str | None, website: str | None) -> str:
    """Stable natural key: normalized name plus email (or website)."""
    name_key = "_".join(name.lower().split())
    contact = (email or website or "").strip().lower()
    return f"{name_key}::{contact}"


def _cell(row: list[str], idx: int | None) -> str | None:
    if idx is None or idx >= len(row):
        return None
    value = str(row[idx]).strip()
    return value or None


def map_row(
    headers: list[str],
    columns: dict[str, int],
    row: list[str],
    row_number: int,
    source: SheetConfig,
) -> AuthorRow | None:
    """Map a data row to an AuthorRow, or None when it has no name."""
    name = _cell(row, columns.get("name"))
    if not name:
        return None

    email = _cell(row, columns.get("email"))
    website = _cell(row, columns.get("website"))

    raw = {
        header.strip(): str(row[i]).strip() if i < len(row) else ""
        for i, header in enumerate(headers)
        if header.strip()
    }

    return AuthorRow(
        external_key=make_external_key(name, email, website),
        name=name,
        email=email.lower() if email else None,
        phone=_cell(row, columns.get("phone")),
        website=website,
        city=_cell(row, columns.get("city")),
        state=_cell(row, columns.get("state")),
        notes=_cell(row, columns.get("notes")),
        raw=raw,
        source_ref=f"{source.spreadsheet_id}:{source.sheet_name}:row={row_number}",
    )


def content_hash(values: list[list[str]]) -> str:
    """SHA-256 over trimmed, lowercased cells, so cosmetic edits don't count."""
    normalized = "\n".join(
        "|".join(str(cell).strip().lower() for cell in row) for row in values
    )
    return hashlib.sha256(normalized.encode()).hexdigest()


# =============================================================================
# Sync
# =============================================================================


async def check_cooldown(repo: SyncRunRepository, cooldown_seconds: float) -> None:
    """Raise RateLimited while the newest sync run is inside the cooldown window."""
    last = await repo.latest(SyncKind.TEXAS_AUTHORS)
    if last is None:
        return
    elapsed = seconds_since(last.created_at)
    if elapsed < cooldown_seconds:
        retry_after = max(1, math.ceil(cooldown_seconds - elapsed))
        logger.bind(retry_after=retry_after, last_status=last.status.value).info(
            "texas_authors_sync_rate_limited"
        )
        raise RateLimited(retry_after)


def row_error(e: SQLAlchemyError) -> str:
    """Short per-row error message: the driver error without the SQL statement."""
    orig = getattr(e, "orig", None)
    return f"{type(e).__name__}: {orig}" if orig is not None else type(e).__name__


async def _upsert(session: AsyncSession, row: AuthorRow) -> bool:
    """Insert or update one author. Returns True when a new row was created."""
    result = await session.execute(
        select(TexasAuthor).where(TexasAuthor.external_key == row.external_key)
    )
    author = result.scalar_one_or_none()
    created = author is None
    if author is None:
        author = TexasAuthor(external_key=row.external_key)
        session.add(author)

    author.name = row.name
    author.email = row.email
    author.phone = row.phone
    author.website = row.website
    author.city = row.city
    author.state = row.state
    author.notes = row.notes
    author.raw = row.raw
    author.source_ref = row.source_ref
    author.last_synced_at = utc_now()
    await session.flush()
    return created


async def sync_texas_authors(
    session: AsyncSession,
    settings: Settings,
    config: AppConfig,
    sheets: SheetsSource,
    force: bool = False,
) -> SyncSummary:
    """
    Sync the Texas Authors sheet into the directory table.

    force (admin import) ignores the cooldown and upserts every row even
    when the sheet is unchanged.

    Raises:
        RateLimited: A sync ran less than the cooldown window ago
        UpstreamError: Sheets config, credentials or API failure (run marked FAILED)
    """
    repo = SyncRunRepository(session)
    if not force:
        await check_cooldown(repo, config.sync.cooldown_seconds)

    run = await repo.start(SyncKind.TEXAS_AUTHORS)
    run_id = run.id
    await session.commit()

    try:
        source = await resolve_sheet_config(settings, sheets)
        run.spreadsheet_id = source.spreadsheet_id
        run.range_a1 = source.range_a1
        await session.flush()

        values = await sheets.get_values(source.spreadsheet_id, source.range_a1)
        if not values:
            raise UpstreamError("Sheet returned no data")

        digest = content_hash(values)
        headers = [str(h) for h in values[0]]
        data_rows = values[1:]
        summary = SyncSummary(rowCount=len(data_rows))

        last_success = (
            None if force else await repo.latest(SyncKind.TEXAS_AUTHORS, status=SyncStatus.SUCCESS)
        )
        if last_success is not None and last_success.content_hash == digest:
            summary.changed = False
            summary.skipped = len(data_rows)
        else:
            columns = column_index(headers)
            if "name" not in columns:
                raise UpstreamError(
                    "Sheet header has no name column (expected one of: "
                    + ", ".join(HEADER_ALIASES["name"])
                    + ")"
                )

            for offset, row in enumerate(data_rows):
                row_number = offset + 2  # 1-based, after the header row
                mapped = map_row(headers, columns, row, row_number, source)
                if mapped is None:
                    summary.skipped += 1
                    continue
                try:
                    async with session.begin_nested():
                        created = await _upsert(session, mapped)
                except SQLAlchemyError as e:
                    summary.skipped += 1
                    summary.errors.append({"row": row_number, "error": row_error(e)})
                    logger.bind(row=row_number, error=str(e)).warning("texas_author_row_failed")
                    continue
                if created:
                    summary.created += 1
                else:
                    summary.updated += 1

        run.status = SyncStatus.SUCCESS
        # A partial sync must not let the next run skip the rows that failed
        run.content_hash = None if summary.errors else digest
        run.row_count = summary.rowCount
        run.created_count = summary.created
        run.updated_count = summary.updated
        run.skipped_count = summary.skipped
        run.changed = summary.changed
        run.finished_at = utc_now()
        await session.commit()
    except Exception as e:
        await session.rollback()
        await repo.mark_failed(run_id, error_message(e))
        await session.commit()
        logger.bind(error=str(e)).error("texas_authors_sync_failed")
        raise

    logger.bind(**summary.to_dict()).info("texas_authors_sync_completed")
    return summary
