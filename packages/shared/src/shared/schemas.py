"""Pydantic schemas for the Lead Call Gateway.

No accounts, no call history, no persistent storage.
Any visitor can submit the demo form and have an AI consultant call them.

These schemas are provider-agnostic apart from the outbound payload, which
mirrors the batch-calling body the voice platform expects.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

# =============================================================================
# Constants
# =============================================================================

# E.164: "+", first digit 1-9, at most 15 digits in total
E164_REGEX = re.compile(r"^\+[1-9]\d{1,14}$")


def validate_phone_e164(phone: str) -> bool:
    """Validate phone number is in E.164 format."""
    return bool(E164_REGEX.fullmatch(phone))


# =============================================================================
# Form Field Enums
# =============================================================================


class Niche(str, Enum):
    """Which AI consultant persona should call the lead."""

    PROPERTY = "property"
    EDU_CONSULTANT = "edu_consultant"


class Voice(str, Enum):
    """Voice used by the agent. Which values are accepted depends on the lineup."""

    # Classic lineup
    MALE = "male"
    FEMALE = "female"

    # Persona lineup
    ERIC = "eric"
    ALEXIS = "alexis"
    SALMA = "salma"
    MEHMUD = "mehmud"


class VoiceLineup(str, Enum):
    """Named set of niches and voices a deployment accepts."""

    CLASSIC = "classic"
    PERSONA = "persona"


@dataclass(frozen=True)
class Lineup:
    """Allowed niche and voice values for one VoiceLineup."""

    niches: tuple[Niche, ...]
    voices: tuple[Voice, ...]

    def combinations(self) -> list[tuple[Niche, Voice]]:
        """Every (niche, voice) pair an agent must be configured for."""
        return [(niche, voice) for niche in self.niches for voice in self.voices]


LINEUPS: dict[VoiceLineup, Lineup] = {
    VoiceLineup.CLASSIC: Lineup(
        niches=(Niche.PROPERTY, Niche.EDU_CONSULTANT),
        voices=(Voice.MALE, Voice.FEMALE),
    ),
    VoiceLineup.PERSONA: Lineup(
        niches=(Niche.PROPERTY,),
        voices=(Voice.ERIC, Voice.ALEXIS, Voice.SALMA, Voice.MEHMUD),
    ),
}


class CallStage(str, Enum):
    """Per-request state machine of the call pipeline."""

    RECEIVED = "received"
    VALIDATED = "validated"
    IP_OK = "ip_ok"
    PHONE_OK = "phone_ok"
    AGENT_RESOLVED = "agent_resolved"
    DISPATCHED = "dispatched"
    SUCCESS = "success"
    UPSTREAM_ERROR = "upstream_error"
    REJECTED = "rejected"


def _lineup_from(info: ValidationInfo) -> Lineup:
    context = info.context or {}
    return LINEUPS[VoiceLineup(context.get("lineup", VoiceLineup.CLASSIC))]


def _check_choice(value: Any, allowed: tuple[Enum, ...], field_name: str) -> Any:
    choices = [choice.value for choice in allowed]
    if value not in choices:
        raise PydanticCustomError(
            "invalid_choice",
            "Invalid {field} '{received}'. Expected one of: {expected}",
            {
                "field": field_name,
                "received": value,
                "expected": ", ".join(choices),
            },
        )
    return value


# =============================================================================
# Call Request (Input from Web)
# =============================================================================


class CallRequest(BaseModel):
    """Demo form submission from a web visitor.

    Validated at the API boundary. Immutable once validated. Unknown fields
    are ignored so the form can send extras without breaking the gateway.

    Pass ``context={"lineup": VoiceLineup.PERSONA}`` to ``model_validate``
    to validate against a lineup other than the classic one.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    email: EmailStr
    phone: str  # E.164, kept verbatim
    niche: Niche
    voice: Voice
    consent: bool  # Must be literally True
    company: str = ""  # Optional, not part of the strict form

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("name_required", "Name is required")
        return value.strip()

    @field_validator("phone")
    @classmethod
    def _phone_is_e164(cls, value: str) -> str:
        if not validate_phone_e164(value):
            raise PydanticCustomError(
                "phone_format",
                "Phone must be in E.164 format (e.g., +14155551234)",
            )
        return value

    @field_validator("niche", mode="before")
    @classmethod
    def _niche_in_lineup(cls, value: Any, info: ValidationInfo) -> Any:
        return _check_choice(value, _lineup_from(info).niches, "niche")

    @field_validator("voice", mode="before")
    @classmethod
    def _voice_in_lineup(cls, value: Any, info: ValidationInfo) -> Any:
        return _check_choice(value, _lineup_from(info).voices, "voice")

    @field_validator("consent", mode="before")
    @classmethod
    def _consent_is_true(cls, value: Any) -> bool:
        # Only the JSON literal true counts; "true", 1 and friends do not
        if value is not True:
            raise PydanticCustomError(
                "consent_required", "You must consent to receive a call"
            )
        return value

    @field_validator("company", mode="before")
    @classmethod
    def _company_or_empty(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""


# =============================================================================
# Agent Directive (Resolved from Configuration)
# =============================================================================


class AgentDirective(BaseModel):
    """External identifiers the voice platform needs to place a call."""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    phone_number_id: str


# =============================================================================
# Outbound Call Payload (Sent to the Voice Platform)
# =============================================================================


class ConversationInitiationClientData(BaseModel):
    """Per-recipient data the agent can reference in its script."""

    dynamic_variables: dict[str, str] = Field(default_factory=dict)


class Recipient(BaseModel):
    """A single person to call."""

    phone_number: str
    conversation_initiation_client_data: ConversationInitiationClientData = Field(
        default_factory=ConversationInitiationClientData
    )


class OutboundCallPayload(BaseModel):
    """Batch-calling request body with exactly one recipient."""

    agent_id: str
    agent_phone_number_id: str
    recipients: list[Recipient]
    call_name: str  # Advisory, not a dedup key
    scheduled_time_unix: int  # Always "now"

    @property
    def recipient_phone(self) -> str:
        """Phone number of the (only) recipient."""
        return self.recipients[0].phone_number
