"""Agent resolution.

Maps a (niche, voice) pair to the external agent that should place the
call. The table is built once at startup from AGENT_ID_<NICHE>_<VOICE>
environment variables, e.g.:

    AGENT_ID_PROPERTY_MALE=agent_abc123
    AGENT_ID_EDU_CONSULTANT_FEMALE=agent_def456
    AGENT_ID_PROPERTY_ERIC=agent_ghi789
"""

import logging
import os
from collections.abc import Mapping
from enum import Enum

from shared.schemas import LINEUPS, AgentDirective, CallRequest, VoiceLineup

from api.errors import ConfigurationError

logger = logging.getLogger("call-gateway-agents")


def _value(choice: Enum | str) -> str:
    return choice.value if isinstance(choice, Enum) else choice


def agent_key(niche: Enum | str, voice: Enum | str) -> str:
    """Lookup key for the agent table ("property_male")."""
    return f"{_value(niche)}_{_value(voice)}"


def agent_env_var(niche: Enum | str, voice: Enum | str) -> str:
    """Environment variable holding the agent id ("AGENT_ID_PROPERTY_MALE")."""
    return f"AGENT_ID_{agent_key(niche, voice)}".upper()


def load_agent_table(
    lineup: VoiceLineup, environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Read one agent id per (niche, voice) combination of the lineup.

    Combinations without a value are left out and logged; requesting them
    later fails with a ConfigurationError.
    """
    environ = os.environ if environ is None else environ
    table: dict[str, str] = {}
    for niche, voice in LINEUPS[lineup].combinations():
        env_var = agent_env_var(niche, voice)
        agent_id = environ.get(env_var, "").strip()
        if agent_id:
            table[agent_key(niche, voice)] = agent_id
        else:
            logger.warning(f"{env_var} not set - {niche.value}/{voice.value} calls will fail")
    return table


class AgentResolver:
    """Deterministic (niche, voice) -> agent id lookup over a fixed table."""

    def __init__(self, agent_ids: Mapping[str, str], phone_number_id: str = ""):
        self._agent_ids = dict(agent_ids)
        self._phone_number_id = phone_number_id

    def resolve(self, niche: Enum | str, voice: Enum | str) -> str:
        """Return the agent id or raise ConfigurationError."""
        agent_id = self._agent_ids.get(agent_key(niche, voice))
        if not agent_id:
            raise ConfigurationError(
                f"Agent ID not configured for {_value(niche)} - {_value(voice)}"
            )
        return agent_id

    def resolve_directive(self, request: CallRequest) -> AgentDirective:
        """Agent id plus the phone number id the agent calls from."""
        agent_id = self.resolve(request.niche, request.voice)
        if not self._phone_number_id:
            raise ConfigurationError("Voice platform phone number ID not configured")
        return AgentDirective(agent_id=agent_id, phone_number_id=self._phone_number_id)

    @property
    def configured_keys(self) -> list[str]:
        """Agent table keys that have an id (for health checks)."""
        return sorted(self._agent_ids)
