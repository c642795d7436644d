"""Gateway configuration.

Loaded once from environment variables at startup and passed by reference
into the resolver and dispatcher. Missing optional values only log a
warning; the request that needs them fails later with a ConfigurationError.
"""

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from shared.schemas import VoiceLineup

from api.agents import load_agent_table
from api.errors import ConfigurationError
from api.rate_limit import IP_COOLDOWN_SECONDS, PHONE_COOLDOWN_SECONDS

logger = logging.getLogger("call-gateway-config")

ELEVENLABS_BATCH_CALL_URL = "https://api.elevenlabs.io/v1/convai/batch-calling/submit"
DEFAULT_DISPATCH_TIMEOUT_SECONDS = 15.0


def _float_env(environ: Mapping[str, str], key: str, default: float) -> float:
    """Read a positive, finite number or raise a clear error."""
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid value for {key}: {raw!r} (expected a number of seconds)"
        ) from None
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(
            f"Invalid value for {key}: must be a positive, finite number"
        )
    return value


def _lineup_env(environ: Mapping[str, str]) -> VoiceLineup:
    raw = environ.get("VOICE_LINEUP", "").strip().lower()
    if not raw:
        return VoiceLineup.CLASSIC
    try:
        return VoiceLineup(raw)
    except ValueError:
        expected = ", ".join(lineup.value for lineup in VoiceLineup)
        raise ConfigurationError(
            f"Invalid value for VOICE_LINEUP: {raw!r} (expected one of: {expected})"
        ) from None


@dataclass
class GatewayConfig:
    """Configuration for validation, rate limiting and call dispatch."""

    base_url: str = ""
    lineup: VoiceLineup = VoiceLineup.CLASSIC
    agent_ids: dict[str, str] = field(default_factory=dict)
    phone_number_id: str = ""
    api_key: str = ""
    api_url: str = ELEVENLABS_BATCH_CALL_URL
    webhook_url: str = ""
    ip_cooldown_seconds: float = IP_COOLDOWN_SECONDS
    phone_cooldown_seconds: float = PHONE_COOLDOWN_SECONDS
    dispatch_timeout_seconds: float = DEFAULT_DISPATCH_TIMEOUT_SECONDS
    cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])

    @property
    def dispatch_mode(self) -> str:
        """Either webhook (CALL_WEBHOOK_URL set) or direct."""
        return "webhook" if self.webhook_url else "direct"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GatewayConfig":
        """Load gateway config from environment variables."""
        environ = os.environ if environ is None else environ

        base_url = environ.get("BASE_URL", "").strip().rstrip("/")
        webhook_url = environ.get("CALL_WEBHOOK_URL", "").strip()
        phone_number_id = environ.get("ELEVENLABS_PHONE_NUMBER_ID", "").strip()
        api_key = environ.get("ELEVENLABS_API_KEY", "").strip()
        api_url = (
            environ.get("ELEVENLABS_API_URL", "").strip() or ELEVENLABS_BATCH_CALL_URL
        )
        lineup = _lineup_env(environ)

        cors_raw = environ.get("CORS_ALLOW_ORIGINS", "").strip()
        if cors_raw:
            cors_allow_origins = [o.strip() for o in cors_raw.split(",") if o.strip()]
        elif base_url:
            cors_allow_origins = [base_url]
        else:
            cors_allow_origins = ["*"]

        if not base_url:
            logger.warning("BASE_URL not set")
        if not phone_number_id:
            logger.warning("ELEVENLABS_PHONE_NUMBER_ID not set - calls will fail")
        if webhook_url:
            logger.info(f"Dispatching calls through webhook {webhook_url}")
        elif not api_key:
            logger.warning("ELEVENLABS_API_KEY not set - calls will fail")

        return cls(
            base_url=base_url,
            lineup=lineup,
            agent_ids=load_agent_table(lineup, environ),
            phone_number_id=phone_number_id,
            api_key=api_key,
            api_url=api_url,
            webhook_url=webhook_url,
            ip_cooldown_seconds=_float_env(
                environ, "IP_COOLDOWN_SECONDS", IP_COOLDOWN_SECONDS
            ),
            phone_cooldown_seconds=_float_env(
                environ, "PHONE_COOLDOWN_SECONDS", PHONE_COOLDOWN_SECONDS
            ),
            dispatch_timeout_seconds=_float_env(
                environ,
                "CALL_DISPATCH_TIMEOUT_SECONDS",
                DEFAULT_DISPATCH_TIMEOUT_SECONDS,
            ),
            cors_allow_origins=cors_allow_origins,
        )
