"""Off-site backup of uploads to Google Drive."""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from event_gift.core.settings import settings

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive.file"]


class BackupUploadError(RuntimeError):
    """Raised when an off-site upload fails."""


@dataclass(frozen=True)
class UploadedFile:
    """Identifiers of an uploaded backup copy."""

    file_id: str
    preview_url: str | None = None


class BackupUploader(Protocol):
    """Uploads bytes to off-site storage and returns the external identifier."""

    def upload(self, data: bytes, filename: str, mime_type: str) -> UploadedFile:
        ...


def drive_preview_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/preview"


class GoogleDriveUploader:
    """Service-account uploader writing into a single Drive folder."""

    def __init__(self, service_account_info: dict[str, Any], folder_id: str) -> None:
        self.folder_id = folder_id
        self._service_account_info = service_account_info
        self._service: Any | None = None

    @classmethod
    def from_settings(cls) -> GoogleDriveUploader | None:
        """Build an uploader from settings, or return None when Drive is not configured."""
        if not settings.drive_enabled:
            return None
        try:
            info = json.loads(settings.gdrive_service_account_json or "")
        except json.JSONDecodeError as exc:
            logger.error("GDRIVE_SERVICE_ACCOUNT_JSON is not valid JSON: %s", exc)
            return None
        return cls(info, settings.gdrive_root_folder_id or "")

    def _drive(self) -> Any:
        if self._service is None:
            try:
                credentials = service_account.Credentials.from_service_account_info(
                    self._service_account_info,
                    scopes=SCOPES,
                )
            except (GoogleAuthError, ValueError) as exc:
                raise BackupUploadError(f"Invalid Drive credentials: {exc}") from exc
            self._service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    def upload(self, data: bytes, filename: str, mime_type: str) -> UploadedFile:
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)
        metadata = {"name": filename, "parents": [self.folder_id]}
        try:
            created = (
                self._drive()
                .files()
                .create(body=metadata, media_body=media, fields="id")
                .execute()
            )
        except (HttpError, GoogleAuthError, OSError) as exc:
            raise BackupUploadError(f"Drive upload failed: {exc}") from exc

        file_id = created["id"]
        return UploadedFile(file_id=file_id, preview_url=drive_preview_url(file_id))


_uploader: BackupUploader | None = None
_uploader_loaded = False


def get_backup_uploader() -> BackupUploader | None:
    """Return the shared uploader, or None when Drive is not configured."""
    global _uploader, _uploader_loaded
    if not _uploader_loaded:
        _uploader = GoogleDriveUploader.from_settings()
        _uploader_loaded = True
    return _uploader
