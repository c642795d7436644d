"""Test doubles for the call gateway tests."""

from typing import Any

AGENT_IDS = {
    "property_male": "agent_property_male",
    "property_female": "agent_property_female",
    "edu_consultant_male": "agent_edu_male",
    "edu_consultant_female": "agent_edu_female",
}


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_760_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCallPlacer:
    """Records payloads instead of calling the voice platform."""

    def __init__(self, response: Any = None, error: Exception | None = None):
        self.response = response if response is not None else {"batch_id": "batch_123"}
        self.error = error
        self.calls = []

    async def place_call(self, payload, request):
        self.calls.append((payload, request))
        if self.error:
            raise self.error
        return self.response
