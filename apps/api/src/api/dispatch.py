"""Outbound call dispatch.

Builds the batch-calling payload and hands it to a CallPlacer, which
performs exactly one HTTP POST:
- ElevenLabsCallPlacer: straight to the voice platform's batch-calling API
- WebhookCallPlacer: to a workflow-automation webhook that places the call

No retries, no backoff. Any upstream failure is final for the request.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx
from shared.schemas import (
    AgentDirective,
    CallRequest,
    ConversationInitiationClientData,
    OutboundCallPayload,
    Recipient,
)

from api.config import GatewayConfig
from api.errors import ConfigurationError, UpstreamError

logger = logging.getLogger("call-gateway-dispatch")

CALL_NAME_PREFIX = "Outbound"


# =============================================================================
# Payload
# =============================================================================


def generate_call_name(now: datetime) -> str:
    """Readable, sortable call name at second granularity."""
    return f"{CALL_NAME_PREFIX} {now.astimezone(timezone.utc):%Y-%m-%dT%H:%M:%SZ}"


def build_dynamic_variables(request: CallRequest) -> dict[str, str]:
    """Variables the agent script can reference, e.g. "Hi {{user_name}}"."""
    return {
        "user_name": request.name,
        "company_name": request.company,
        "user_email": request.email,
        "niche": request.niche.value,
        "voice": request.voice.value,
    }


def build_outbound_payload(
    request: CallRequest,
    directive: AgentDirective,
    now: datetime,
) -> OutboundCallPayload:
    """Build a single-recipient batch call scheduled for right now."""
    return OutboundCallPayload(
        agent_id=directive.agent_id,
        agent_phone_number_id=directive.phone_number_id,
        recipients=[
            Recipient(
                phone_number=request.phone,
                conversation_initiation_client_data=ConversationInitiationClientData(
                    dynamic_variables=build_dynamic_variables(request),
                ),
            )
        ],
        call_name=generate_call_name(now),
        scheduled_time_unix=int(now.timestamp()),
    )


def parse_response_body(text: str) -> Any:
    """JSON when the body is JSON, otherwise the raw text."""
    try:
        return json.loads(text)
    except ValueError:
        return text


# =============================================================================
# Call Placers
# =============================================================================


class CallPlacer(Protocol):
    """Tells an external platform to place one call."""

    async def place_call(
        self, payload: OutboundCallPayload, request: CallRequest
    ) -> Any: ...


class HTTPCallPlacer:
    """Shared POST-and-interpret logic for HTTP call placers."""

    label = "Call platform"

    def __init__(
        self,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the placer.

        Args:
            timeout_seconds: Total time allowed for the outbound request. Also
                used as httpx's per-phase (connect/read/write/pool) timeout.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def _send(
        self, url: str, body: dict[str, Any], headers: dict[str, str]
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            transport=self.transport, timeout=self.timeout_seconds
        ) as client:
            return await client.post(url, json=body, headers=headers)

    async def _post(self, url: str, body: dict[str, Any], headers: dict[str, str]) -> Any:
        try:
            # httpx only bounds each phase; a slow-dripping server needs a total cap
            response = await asyncio.wait_for(
                self._send(url, body, headers), timeout=self.timeout_seconds
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.error(f"{self.label} timed out after {self.timeout_seconds}s")
            raise UpstreamError(
                f"{self.label} timed out after {self.timeout_seconds:g} seconds"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"{self.label} request error: {e!s}")
            raise UpstreamError(f"{self.label} request failed: {e!s}") from e

        text = response.text
        if not response.is_success:
            logger.error(f"{self.label} error: {response.status_code} {text}")
            raise UpstreamError(
                f"{self.label} failed: {text}",
                upstream_status=response.status_code,
                upstream_body=text,
            )

        parsed = parse_response_body(text)
        logger.info(f"{self.label} success: {parsed}")
        return parsed


class ElevenLabsCallPlacer(HTTPCallPlacer):
    """Submits the call straight to the ElevenLabs batch-calling API."""

    label = "ElevenLabs API"

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout_seconds, transport)
        self.api_url = api_url
        self.api_key = api_key

    async def place_call(
        self, payload: OutboundCallPayload, request: CallRequest
    ) -> Any:
        if not self.api_key:
            raise ConfigurationError("ELEVENLABS_API_KEY not configured")

        return await self._post(
            self.api_url,
            payload.model_dump(mode="json"),
            {"Content-Type": "application/json", "xi-api-key": self.api_key},
        )


class WebhookCallPlacer(HTTPCallPlacer):
    """Hands the call to a workflow-automation webhook (e.g. n8n).

    The webhook receives the lead's details next to the ready-made payload
    and is responsible for talking to the voice platform.
    """

    label = "Call webhook"

    def __init__(
        self,
        webhook_url: str,
        source: str = "",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout_seconds, transport)
        self.webhook_url = webhook_url
        self.source = source

    async def place_call(
        self, payload: OutboundCallPayload, request: CallRequest
    ) -> Any:
        body = {
            "lead": request.model_dump(mode="json", exclude={"consent"}),
            "call": payload.model_dump(mode="json"),
            "source": self.source,
        }
        return await self._post(
            self.webhook_url, body, {"Content-Type": "application/json"}
        )


def create_call_placer(
    config: GatewayConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CallPlacer:
    """Pick the placer matching the configured dispatch mode."""
    if config.dispatch_mode == "webhook":
        return WebhookCallPlacer(
            config.webhook_url,
            source=config.base_url,
            timeout_seconds=config.dispatch_timeout_seconds,
            transport=transport,
        )
    return ElevenLabsCallPlacer(
        config.api_url,
        config.api_key,
        timeout_seconds=config.dispatch_timeout_seconds,
        transport=transport,
    )
