"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from datetime import date

from fastapi import File, HTTPException, Query, UploadFile, status

from app.domain.adsense import DateFilterParams, DateRangeValidationError

CREDENTIALS_CONTENT_TYPES = {
    "application/json",
    "text/json",
}


def get_credentials_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded OAuth client secrets file is JSON by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_json_filename = filename.endswith(".json")
    is_json_content_type = content_type in CREDENTIALS_CONTENT_TYPES

    if not is_json_filename and not is_json_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only JSON credential files are allowed.",
        )

    return file


def get_date_filter_params(
    date_filter: str | None = Query(default=None, description="today, yesterday, custom or range"),
    custom_date: date | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> DateFilterParams:
    """
    Build and validate date filter parameters before any backend call.
    """

    params = DateFilterParams(
        date_filter=date_filter,
        custom_date=custom_date,
        start_date=start_date,
        end_date=end_date,
    )
    try:
        params.validate()
    except DateRangeValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return params
