"""API package for the Lead Call Gateway.

This FastAPI application orchestrates:
- Lead validation (POST /api/start-call)
- IP and phone cooldowns
- Agent resolution and outbound call dispatch
"""

from api.main import app, create_app

__all__ = ["app", "create_app"]
