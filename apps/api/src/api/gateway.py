"""Call gateway: the validate → rate limit → resolve → dispatch pipeline.

Flow for one request:
1. Validate the body (no side effects on failure)
2. IP cooldown gate (60s)
3. Phone cooldown gate (1h)
4. Resolve the agent for (niche, voice)
5. Place the call, exactly once
"""

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import httpx
from shared.schemas import CallStage

from api.agents import AgentResolver
from api.config import GatewayConfig
from api.dispatch import CallPlacer, build_outbound_payload, create_call_placer
from api.errors import UpstreamError
from api.rate_limit import Clock, CooldownStore, RateLimiter, client_ip
from api.validation import validate_call_request

logger = logging.getLogger("call-gateway")


class CallGateway:
    """Runs each call request through every gate before dispatching it."""

    def __init__(
        self,
        config: GatewayConfig,
        placer: CallPlacer,
        rate_limiter: RateLimiter,
        resolver: AgentResolver,
        clock: Clock = time.time,
    ):
        self.config = config
        self.placer = placer
        self.rate_limiter = rate_limiter
        self.resolver = resolver
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        placer: CallPlacer | None = None,
        ip_store: CooldownStore | None = None,
        phone_store: CooldownStore | None = None,
        clock: Clock = time.time,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "CallGateway":
        """Wire a gateway from config, with optional test doubles."""
        return cls(
            config=config,
            placer=placer if placer is not None else create_call_placer(config, transport=transport),
            rate_limiter=RateLimiter(
                ip_window_seconds=config.ip_cooldown_seconds,
                phone_window_seconds=config.phone_cooldown_seconds,
                ip_store=ip_store,
                phone_store=phone_store,
                clock=clock,
            ),
            resolver=AgentResolver(config.agent_ids, config.phone_number_id),
            clock=clock,
        )

    async def start_call(self, body: Any, headers: Mapping[str, str]) -> dict[str, Any]:
        """Validate, rate limit, resolve and dispatch one call.

        Args:
            body: Decoded JSON request body.
            headers: Request headers (used for the client IP).

        Returns:
            {"success": True, "call": <upstream response body>}

        Raises:
            GatewayError: Any subclass, when a stage rejects the request or
                the upstream call fails.
        """
        stage = CallStage.RECEIVED
        try:
            request = validate_call_request(body, self.config.lineup)
            stage = CallStage.VALIDATED

            ip = client_ip(headers)
            await self.rate_limiter.check_ip(ip)
            stage = CallStage.IP_OK

            await self.rate_limiter.check_phone(request.phone)
            stage = CallStage.PHONE_OK

            directive = self.resolver.resolve_directive(request)
            stage = CallStage.AGENT_RESOLVED
        except Exception:
            logger.info(f"Call request {CallStage.REJECTED.value} after stage {stage.value}")
            raise

        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        payload = build_outbound_payload(request, directive, now)
        logger.debug(f"Outbound call payload: {payload.model_dump_json(indent=2)}")

        stage = CallStage.DISPATCHED
        logger.info(
            f"Call to {request.phone} {stage.value}: "
            f"{request.niche.value}/{request.voice.value} via {self.config.dispatch_mode}"
        )
        try:
            upstream = await self.placer.place_call(payload, request)
        except UpstreamError:
            stage = CallStage.UPSTREAM_ERROR
            logger.error(f"Call to {request.phone} ended in {stage.value}")
            raise

        stage = CallStage.SUCCESS
        logger.info(f"Call to {request.phone} ended in {stage.value}")
        return {"success": True, "call": upstream}
