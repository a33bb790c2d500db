"""Google Drive/Sheets calls made on a tenant's behalf."""

import asyncio
import logging

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from leadsheets.schemas.grant import OAuthGrant

logger = logging.getLogger(__name__)

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
HEADER_RANGE = "A1:F1"
# Appends land below the header row
APPEND_RANGE = "A2"


class SheetsApiError(Exception):
    """Raised when a Drive/Sheets call fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def _http_error_detail(exc: HttpError) -> tuple[str, int | None]:
    status = getattr(exc, "status_code", None) or getattr(exc.resp, "status", None)
    reason = getattr(exc, "reason", None) or str(exc)
    return f"{status} {reason}", int(status) if status else None


class GoogleSheetsClient:
    """
    Thin wrapper around googleapiclient services.

    Credentials carry the access token only, so an expired token fails the
    call instead of being renewed silently.
    """

    def _service(self, name: str, version: str, grant: OAuthGrant):
        creds = Credentials(token=grant.access_token)
        return build(name, version, credentials=creds, cache_discovery=False)

    async def _execute(self, kind: str, call) -> dict:
        try:
            return await asyncio.to_thread(call)
        except HttpError as exc:
            detail, status = _http_error_detail(exc)
            raise SheetsApiError(f"[{kind}] {detail}", status=status) from exc
        except GoogleAuthError as exc:
            raise SheetsApiError(f"[{kind}] access token rejected: {exc}", status=401) from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            raise SheetsApiError(f"[{kind}] transport error: {exc}") from exc

    async def create_spreadsheet(self, grant: OAuthGrant, title: str) -> str:
        """Create an empty spreadsheet through Drive; returns its file id."""

        def call():
            drive = self._service("drive", "v3", grant)
            return (
                drive.files()
                .create(body={"name": title, "mimeType": SPREADSHEET_MIME_TYPE}, fields="id")
                .execute()
            )

        data = await self._execute("drive.files.create", call)
        sheet_id = (data or {}).get("id")
        if not sheet_id:
            raise SheetsApiError("[drive.files.create] response carried no file id")
        return sheet_id

    async def write_header(self, grant: OAuthGrant, sheet_id: str, header: list[str]) -> None:
        def call():
            sheets = self._service("sheets", "v4", grant)
            return (
                sheets.spreadsheets()
                .values()
                .update(
                    spreadsheetId=sheet_id,
                    range=HEADER_RANGE,
                    valueInputOption="RAW",
                    body={"values": [header]},
                )
                .execute()
            )

        await self._execute("values.update", call)

    async def append_row(self, grant: OAuthGrant, sheet_id: str, row: list[str]) -> None:
        def call():
            sheets = self._service("sheets", "v4", grant)
            return (
                sheets.spreadsheets()
                .values()
                .append(
                    spreadsheetId=sheet_id,
                    range=APPEND_RANGE,
                    valueInputOption="RAW",
                    insertDataOption="INSERT_ROWS",
                    body={"values": [row]},
                )
                .execute()
            )

        await self._execute("values.append", call)
