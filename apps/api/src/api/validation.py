"""Request body validation.

Turns an arbitrary JSON body into a typed CallRequest, or raises a
ValidationError with a field-keyed error map like:

    {"phone": ["Phone must be in E.164 format (e.g., +14155551234)"]}
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError
from shared.schemas import CallRequest, VoiceLineup

from api.errors import ValidationError

# Shown instead of pydantic's generic "Field required"
REQUIRED_MESSAGES = {
    "name": "Name is required",
    "email": "Email is required",
    "phone": "Phone is required",
    "niche": "Please select a niche",
    "voice": "Please select a voice",
    "consent": "You must consent to receive a call",
}

# email-validator produces long, variable messages
FIELD_MESSAGES = {
    "email": "Invalid email address",
}


def flatten_errors(exc: PydanticValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by top-level field name."""
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "body"
        if error["type"] == "missing":
            message = REQUIRED_MESSAGES.get(field, error["msg"])
        else:
            message = FIELD_MESSAGES.get(field, error["msg"])
        messages = details.setdefault(field, [])
        if message not in messages:
            messages.append(message)
    return details


def validate_call_request(
    body: Any, lineup: VoiceLineup = VoiceLineup.CLASSIC
) -> CallRequest:
    """Validate a raw request body against the call request schema.

    Args:
        body: Decoded JSON body, any type.
        lineup: Which niche/voice enumeration is accepted.

    Returns:
        The validated, immutable CallRequest.

    Raises:
        ValidationError: With a field-keyed error map. Nothing else happens
            on failure.
    """
    if not isinstance(body, dict):
        raise ValidationError({"body": ["Request body must be a JSON object"]})

    try:
        return CallRequest.model_validate(body, context={"lineup": lineup})
    except PydanticValidationError as e:
        raise ValidationError(flatten_errors(e)) from e
