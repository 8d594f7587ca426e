"""
Entity guid helpers.

An APM entity guid is an unpadded base64 token that decodes to a
pipe-delimited string: ``<accountId>|APM|APPLICATION|<applicationId>``.
"""
from __future__ import annotations

import base64
import binascii
import re

from config.constants import REGIONS

APPLICATION_ID_FIELD = 3

_ASCII_DIGITS = re.compile(r"[0-9]+")


def _pad_base64(token: str) -> str:
    missing = len(token) % 4
    if missing:
        token += "=" * (4 - missing)
    return token


def decode_application_id(guid: str | None) -> int | None:
    """Extract the numeric application id from an entity guid.

    Any deviation from the format (bad base64, non-UTF-8 payload, fewer than
    four fields, fourth field that is not plain ASCII digits) yields None.
    """
    if not guid:
        return None
    try:
        decoded = base64.b64decode(_pad_base64(guid.strip()), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    fields = decoded.split("|")
    if len(fields) <= APPLICATION_ID_FIELD:
        return None
    candidate = fields[APPLICATION_ID_FIELD].strip()
    if not _ASCII_DIGITS.fullmatch(candidate):
        return None
    return int(candidate)


def build_reporting_url(
    account_id: int | None,
    application_id: int | None,
    region: str = "us",
) -> str:
    """Return the APM environment page for an application, or "" when unknown."""
    if account_id is None or application_id is None:
        return ""
    ui_base = REGIONS.get(region, REGIONS["us"])["ui"]
    return f"{ui_base}/accounts/{account_id}/applications/{application_id}/environment"
