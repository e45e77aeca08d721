"""Error taxonomy for shared-report operations."""

from __future__ import annotations

from typing import Optional


class ShareError(Exception):
    """Base class; carries the HTTP status and the user-facing message."""

    status_code = 500
    message = "Shared report operation failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(ShareError):
    status_code = 400
    message = "Missing required report data."


class ExhaustedRetries(ShareError):
    """No unique short ID could be found within the attempt budget."""

    status_code = 500
    message = "Failed to generate unique short ID after maximum attempts."

    def __init__(self, attempts: int):
        super().__init__(f"Failed to generate unique short ID after {attempts} attempts.")
        self.attempts = attempts


class NotFound(ShareError):
    status_code = 404
    message = "Invalid share link."


class Expired(ShareError):
    status_code = 410
    message = "This report has expired."


class StoreError(ShareError):
    """Any failure talking to the report store."""

    status_code = 500
    message = "Report store unavailable."

    def __init__(self, operation: str, short_id: Optional[str] = None, message: Optional[str] = None):
        detail = message or f"Report store operation '{operation}' failed"
        if short_id:
            detail = f"{detail} (short_id={short_id})"
        super().__init__(detail)
        self.operation = operation
        self.short_id = short_id


class DuplicateShortId(StoreError):
    """Insert hit an existing primary key; issuance treats it as a collision."""

    def __init__(self, short_id: str):
        super().__init__("insert", short_id=short_id, message="Short ID already taken")
