"""Shared validation helpers for case fields."""

import re
from datetime import date, datetime, time, timezone
from typing import Any

from ..errors import PreconditionFailed
from .models import GovernmentIdType, PartyIdentity

GOVERNMENT_ID_PATTERNS: dict[str, re.Pattern[str]] = {
    GovernmentIdType.AADHAR.value: re.compile(r"^\d{12}$"),
    GovernmentIdType.PASSPORT.value: re.compile(r"^[A-Z]\d{7}$"),
    GovernmentIdType.DRIVING_LICENSE.value: re.compile(r"^[A-Z]{2}-[A-Z0-9]{2}-\d{4}-\d{7}$"),
    GovernmentIdType.VOTER_ID.value: re.compile(r"^[A-Z]{3}\d{7}$"),
    GovernmentIdType.PAN.value: re.compile(r"^[A-Z]{5}\d{4}[A-Z]$"),
}

GOVERNMENT_ID_HINTS: dict[str, str] = {
    GovernmentIdType.AADHAR.value: "12 digits",
    GovernmentIdType.PASSPORT.value: "1 letter followed by 7 digits",
    GovernmentIdType.DRIVING_LICENSE.value: "SS-RR-YYYY-NNNNNNN",
    GovernmentIdType.VOTER_ID.value: "3 letters followed by 7 digits",
    GovernmentIdType.PAN.value: "5 letters, 4 digits, 1 letter",
    GovernmentIdType.OTHER.value: "at least 4 characters",
}


def validate_government_id(id_type: GovernmentIdType | str, number: str) -> bool:
    """Check an ID number against the format of its document type.

    Letters are compared upper-cased, so ``abcde1234f`` is a valid PAN.
    """
    try:
        id_type = GovernmentIdType(id_type).value
    except ValueError:
        return False
    number = (number or "").strip().upper()
    if id_type == GovernmentIdType.OTHER.value:
        return len(number) > 3
    return bool(GOVERNMENT_ID_PATTERNS[id_type].match(number))


def check_party_identity(party: PartyIdentity, role: str) -> None:
    """Raise PreconditionFailed when a party's government ID is malformed.

    A party with no ID type is accepted as-is; the defendant is often named
    before their documents are known.
    """
    if party.government_id_type is None:
        return
    if not validate_government_id(party.government_id_type, party.government_id_number):
        raise PreconditionFailed(
            f"Invalid {party.government_id_type} number for {role}: expected "
            f"{GOVERNMENT_ID_HINTS[party.government_id_type]}",
            party=role,
            government_id_type=party.government_id_type,
        )


def coerce_datetime(value: Any) -> datetime | None:
    """Normalise a date-like value to an aware datetime.

    Accepts datetimes, dates, ISO-8601 strings and epoch seconds. Naive
    values are taken as UTC. Returns None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
