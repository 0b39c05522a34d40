"""Google Sheets read access using the Sheets API v4 with a service account."""

import asyncio
import base64
import binascii
import json
from pathlib import Path
from typing import Any, Protocol

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from opsdesk.config import Settings
from opsdesk.core.errors import UpstreamError
from opsdesk.core.logging import get_logger

logger = get_logger(__name__)

SHEETS_API_SERVICE_NAME = "sheets"
SHEETS_API_VERSION = "v4"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


class SheetsCredentialsError(UpstreamError):
    """Service-account credentials are missing or unreadable."""


class SheetsSource(Protocol):
    """Anything that can return tabular string data for a spreadsheet + range."""

    async def get_values(self, spreadsheet_id: str, range_a1: str) -> list[list[str]]: ...

    async def first_sheet_title(self, spreadsheet_id: str) -> str | None: ...


def load_service_account_info(settings: Settings) -> dict[str, Any]:
    """
    Load service-account JSON from settings.

    Precedence: inline JSON, then base64-encoded JSON, then a file path.
    """
    try:
        if settings.google_service_account_json.strip():
            return json.loads(settings.google_service_account_json)
        if settings.google_service_account_json_base64.strip():
            decoded = base64.b64decode(settings.google_service_account_json_base64, validate=True)
            return json.loads(decoded)
        if settings.google_service_account_file.strip():
            return json.loads(Path(settings.google_service_account_file).read_text())
    except (ValueError, binascii.Error) as e:
        raise SheetsCredentialsError(f"Invalid Google service account JSON: {e}") from e
    except OSError as e:
        raise SheetsCredentialsError(f"Cannot read Google service account file: {e}") from e

    raise SheetsCredentialsError(
        "Google service account credentials are not configured "
        "(set GOOGLE_SERVICE_ACCOUNT_JSON, GOOGLE_SERVICE_ACCOUNT_JSON_BASE64 "
        "or GOOGLE_SERVICE_ACCOUNT_FILE)"
    )


class GoogleSheetsClient:
    """Read-only Sheets client. Blocking API calls run in the default executor.

    Built from settings, credentials are only loaded on the first API call, so
    a credentials problem surfaces as a failed sync rather than before it.
    """

    def __init__(
        self,
        credentials_info: dict[str, Any] | None = None,
        timeout: float = 30.0,
        settings: Settings | None = None,
    ) -> None:
        self.credentials_info = credentials_info
        self.timeout = timeout
        self._settings = settings
        self._service = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleSheetsClient":
        return cls(timeout=settings.external_timeout_seconds, settings=settings)

    def _get_service(self):
        """Get authenticated Sheets API service."""
        if self._service:
            return self._service

        if self.credentials_info is None:
            if self._settings is None:
                raise SheetsCredentialsError("Google service account credentials are not configured")
            self.credentials_info = load_service_account_info(self._settings)

        try:
            credentials = service_account.Credentials.from_service_account_info(
                self.credentials_info, scopes=SCOPES
            )
        except (ValueError, GoogleAuthError) as e:
            raise SheetsCredentialsError(f"Invalid Google service account: {e}") from e

        self._service = build(
            SHEETS_API_SERVICE_NAME,
            SHEETS_API_VERSION,
            credentials=credentials,
            cache_discovery=False,
        )
        return self._service

    async def _call(self, operation: str, fn) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(loop.run_in_executor(None, fn), timeout=self.timeout)
        except TimeoutError as e:
            raise UpstreamError(
                f"Google Sheets {operation} timed out after {self.timeout:g}s"
            ) from e
        except HttpError as e:
            status = getattr(e.resp, "status", "?")
            raise UpstreamError(f"Google Sheets {operation} failed ({status}): {e.reason}") from e
        except GoogleAuthError as e:
            raise SheetsCredentialsError(f"Google authentication failed: {e}") from e
        except OSError as e:
            raise UpstreamError(f"Google Sheets {operation} failed: {e}") from e

    async def get_values(self, spreadsheet_id: str, range_a1: str) -> list[list[str]]:
        """Fetch cell values as strings; ragged rows are returned as-is."""

        def _fetch() -> dict[str, Any]:
            request = (
                self._get_service()
                .spreadsheets()
                .values()
                .get(spreadsheetId=spreadsheet_id, range=range_a1)
            )
            return request.execute()

        response = await self._call("values.get", _fetch)
        values = response.get("values", [])
        logger.bind(spreadsheet_id=spreadsheet_id, range=range_a1, rows=len(values)).info(
            "sheets_values_fetched"
        )
        return [[str(cell) for cell in row] for row in values]

    async def first_sheet_title(self, spreadsheet_id: str) -> str | None:
        def _fetch() -> dict[str, Any]:
            request = self._get_service().spreadsheets().get(
                spreadsheetId=spreadsheet_id, fields="sheets.properties.title"
            )
            return request.execute()

        response = await self._call("spreadsheets.get", _fetch)
        sheets = response.get("sheets") or []
        if not sheets:
            return None
        return sheets[0].get("properties", {}).get("title")
