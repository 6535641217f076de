import re
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError

from .errors import InvalidCriteriaError, InvalidDecisionError
from .models import DeduplicationCriteria, DeduplicationDecision
from .normalize import blank_to_none, digits_only

# Five letters, four digits, one letter (e.g. ABCDE1234F)
NATIONAL_ID_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
MIN_PHONE_DIGITS = 10


def parse_criteria(payload: Any) -> DeduplicationCriteria:
    """Build criteria from a mapping or pass a model through; unknown keys are ignored."""
    if isinstance(payload, DeduplicationCriteria):
        return payload
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise InvalidCriteriaError("Search criteria must be an object")
    try:
        return DeduplicationCriteria.model_validate(dict(payload))
    except ValidationError as e:
        raise InvalidCriteriaError(f"Invalid search criteria: {e.error_count()} field error(s)") from e


def clean_criteria(payload: Any) -> DeduplicationCriteria:
    """
    Parse criteria the way the case-intake form submits them.

    Trims every field, upper-cases the national id and reduces phone
    numbers to their digits. Blank fields are dropped.
    """
    criteria = parse_criteria(payload)
    if criteria.phone:
        phone = blank_to_none(digits_only(criteria.phone))
        criteria = criteria.model_copy(update={"phone": phone})
    return criteria


def validate_identity_formats(criteria: DeduplicationCriteria) -> List[str]:
    """
    Returns a list of format error messages. Empty list means valid.
    Only fields that are present are checked.
    """
    errors: List[str] = []

    if criteria.national_id and not NATIONAL_ID_PATTERN.match(criteria.national_id):
        errors.append("Field 'nationalId' must be 5 letters, 4 digits and 1 letter")

    if criteria.phone and len(digits_only(criteria.phone)) < MIN_PHONE_DIGITS:
        errors.append(f"Field 'phone' must contain at least {MIN_PHONE_DIGITS} digits")

    if criteria.email:
        local, _, domain = criteria.email.partition("@")
        if not local or "." not in domain:
            errors.append("Field 'email' must be a valid address")

    return errors


def parse_decision(payload: Any) -> DeduplicationDecision:
    """Build a decision from a mapping or pass a model through."""
    if isinstance(payload, DeduplicationDecision):
        return payload
    if not isinstance(payload, Mapping):
        raise InvalidDecisionError("Decision must be an object")
    try:
        return DeduplicationDecision.model_validate(dict(payload))
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise InvalidDecisionError(f"Invalid decision fields: {', '.join(fields)}") from e


def describe_criteria(criteria: DeduplicationCriteria) -> Dict[str, Any]:
    """Loggable summary of criteria: field names only, never values."""
    return {"fields": criteria.present_fields(), "count": len(criteria.present_fields())}
