"""Identity validation and normalization.

Mailbox and trustee identities are compared as lower-cased SMTP addresses.
"""

import re
from typing import Iterable, Optional

from email_validator import EmailNotValidError, validate_email

from ..errors import ValidationError

_SEED_SEPARATORS = re.compile(r"[,;\s]+")


def normalize_identity(value: Optional[str]) -> str:
    """Normalize an identity for comparison (lowercase, stripped)."""
    if not value:
        return ""
    return value.strip().lower()


def validate_identity(value: Optional[str], context: Optional[str] = None) -> str:
    """Validate an address-shaped identity and return it normalized.

    Args:
        value: Raw identity (e.g. "Jane.Doe@Contoso.com ")
        context: Optional description included in the error message

    Returns:
        Lower-cased address

    Raises:
        ValidationError: If value is empty or not an address
    """
    where = f" for {context}" if context else ""
    if not value or not value.strip():
        raise ValidationError(f"Empty identity{where}")

    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid identity '{value}'{where}: {e}") from e
    return result.normalized.lower()


def parse_seed_identities(values: Iterable[str]) -> list[str]:
    """Parse seed identities from CLI/GUI input.

    Each value may hold several identities separated by commas, semicolons
    or whitespace. Duplicates are dropped, keeping first-seen order.

    Raises:
        ValidationError: If any identity is malformed or none are given
    """
    seeds = []
    seen = set()
    for value in values or []:
        for part in _SEED_SEPARATORS.split(value or ""):
            if not part:
                continue
            identity = validate_identity(part, context="seed")
            if identity not in seen:
                seen.add(identity)
                seeds.append(identity)

    if not seeds:
        raise ValidationError("At least one seed identity is required")
    return seeds
