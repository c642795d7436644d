"""FastAPI application for the Lead Call Gateway.

Provides:
- POST /api/start-call - Validate the demo form and have an AI agent call the lead
- GET /health - Dispatch mode, lineup and configured agents

Flow:
1. Validate body (name, email, E.164 phone, niche, voice, consent)
2. IP cooldown (60s), then phone cooldown (1h)
3. Resolve agent for (niche, voice)
4. Place the call via the voice platform or a webhook

Every error is turned into a JSON response here; none crash the process.
"""

import logging

# Load environment variables from project root
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.config import GatewayConfig
from api.errors import GatewayError, UnexpectedError, ValidationError
from api.gateway import CallGateway

_project_root = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
)
load_dotenv(os.path.join(_project_root, ".env.local"))
load_dotenv()  # Also try default .env

logger = logging.getLogger("call-gateway-api")

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    dispatch_mode: str
    lineup: str
    configured_agents: list[str]


def _error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_response_body(),
        headers=error.headers,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(http_request: Request):
    """Health check endpoint."""
    gateway: CallGateway = http_request.app.state.gateway

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        dispatch_mode=gateway.config.dispatch_mode,
        lineup=gateway.config.lineup.value,
        configured_agents=gateway.resolver.configured_keys,
    )


@router.post("/api/start-call")
async def start_call(http_request: Request):
    """Submit the demo form and have an AI agent call the lead.

    Returns:
    - 200 {"success": true, "call": <platform response>}
    - 400 validation failure, keyed by field
    - 429 IP or phone cooldown still running
    - 500 missing configuration, upstream failure or unexpected error
    """
    gateway: CallGateway = http_request.app.state.gateway

    try:
        try:
            body = await http_request.json()
        except ValueError as e:
            raise ValidationError({"body": ["Request body must be valid JSON"]}) from e

        return await gateway.start_call(body, http_request.headers)

    except GatewayError as e:
        if e.status_code >= 500:
            logger.error(f"Error in start-call API: {e.message}")
        return _error_response(e)

    except Exception:
        logger.exception("Unexpected error in start-call API")
        return _error_response(UnexpectedError())


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    config: GatewayConfig | None = None,
    gateway: CallGateway | None = None,
) -> FastAPI:
    """Build the app. Tests pass their own gateway (fake placer, manual clock)."""
    if gateway is None:
        gateway = CallGateway.from_config(config or GatewayConfig.from_env())

    app = FastAPI(
        title="Lead Call Gateway",
        description="Validates demo form leads and has an AI agent call them",
        version="0.1.0",
    )
    app.state.gateway = gateway

    # CORS middleware for web frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=gateway.config.cors_allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
