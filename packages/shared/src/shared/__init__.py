"""Shared schemas for the Lead Call Gateway."""

from shared.schemas import (
    E164_REGEX,
    LINEUPS,
    AgentDirective,
    CallRequest,
    CallStage,
    ConversationInitiationClientData,
    Lineup,
    Niche,
    OutboundCallPayload,
    Recipient,
    Voice,
    VoiceLineup,
    validate_phone_e164,
)

__all__ = [
    "E164_REGEX",
    "LINEUPS",
    "AgentDirective",
    "CallRequest",
    "CallStage",
    "ConversationInitiationClientData",
    "Lineup",
    "Niche",
    "OutboundCallPayload",
    "Recipient",
    "Voice",
    "VoiceLineup",
    "validate_phone_e164",
]
