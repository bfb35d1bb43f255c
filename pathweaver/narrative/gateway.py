"""
Narrative Gateway - Provider-agnostic interface to the remote narrative,
quest-hint and item-fusion services.

Every response is validated against a JSON schema before it reaches the game.
"""

import asyncio
import json
import logging
import os
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
import jsonschema

from ..config import get_api_key

logger = logging.getLogger(__name__)

SERVICES = ("narrative", "quest_hint", "fusion")

SERVICE_SCHEMAS = {
    "narrative": "narrative_response",
    "quest_hint": "quest_hint_response",
    "fusion": "fusion_response",
}


@dataclass
class ServiceResponse:
    """Validated response from a narrative service."""
    content: dict
    service: str
    latency_ms: float


@dataclass
class ServiceError:
    """One failed attempt."""
    error_type: str
    message: str
    retryable: bool


class NarrativeServiceError(Exception):
    """Raised once a request has failed after all retries."""

    def __init__(self, service: str, error: ServiceError, attempts: int):
        self.service = service
        self.error = error
        self.attempts = attempts
        super().__init__(f"{service} call failed after {attempts} attempts: {error.message}")


class NarrativeGateway(ABC):
    """Abstract base class for narrative providers."""

    @abstractmethod
    async def request(self, service: str, payload: dict, schema: dict) -> ServiceResponse:
        """
        Send a request to a narrative service.

        Args:
            service: One of "narrative", "quest_hint", "fusion"
            payload: JSON-serializable request body
            schema: JSON schema the response must satisfy

        Returns:
            ServiceResponse with validated content

        Raises:
            NarrativeServiceError: If the call fails after retries
        """

    def _validate_output(self, output: dict, schema: dict) -> None:
        jsonschema.validate(instance=output, schema=schema)

    async def aclose(self) -> None:
        pass


def _extract_json(text: str) -> dict:
    """Pull a JSON object out of text that may be wrapped in markdown."""
    patterns = [
        r"```json\s*([\s\S]*?)\s*```",
        r"```\s*([\s\S]*?)\s*```",
        r"\{[\s\S]*\}",
    ]
    for pattern in patterns:
        match = re.search(pattern, text)
        if match:
            try:
                json_str = match.group(1) if "```" in pattern else match.group(0)
                return json.loads(json_str)
            except (json.JSONDecodeError, IndexError):
                continue
    raise json.JSONDecodeError("No valid JSON found in response", text, 0)


class _RetryingGateway(NarrativeGateway):
    """Shared retry loop: linear backoff, retry only retryable errors."""

    max_retries: int = 3
    retry_delay: float = 1.0

    @abstractmethod
    async def _attempt(self, service: str, payload: dict, schema: dict) -> dict:
        """One request; return the decoded response body."""

    def _classify(self, exc: Exception) -> ServiceError:
        error_str = str(exc)
        retryable = "rate_limit" in error_str.lower() or "timeout" in error_str.lower()
        return ServiceError("api_error", error_str, retryable)

    async def request(self, service: str, payload: dict, schema: dict) -> ServiceResponse:
        if service not in SERVICES:
            raise ValueError(f"Unknown service: {service}")

        last_error = None
        for attempt in range(self.max_retries):
            start_time = time.monotonic()
            try:
                content = await self._attempt(service, payload, schema)
                self._validate_output(content, schema)
                return ServiceResponse(
                    content=content,
                    service=service,
                    latency_ms=(time.monotonic() - start_time) * 1000,
                )
            except jsonschema.ValidationError as e:
                last_error = ServiceError(
                    "validation_error",
                    f"Output failed schema validation: {e.message}",
                    True,
                )
            except json.JSONDecodeError as e:
                last_error = ServiceError("parse_error", f"Failed to parse JSON: {e}", True)
            except Exception as e:
                last_error = self._classify(e)

            logger.warning("%s attempt %d/%d failed: %s", service, attempt + 1,
                           self.max_retries, last_error.message)
            if not last_error.retryable:
                break
            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise NarrativeServiceError(service, last_error, attempt + 1)


class HttpNarrativeGateway(_RetryingGateway):
    """JSON over HTTP: POST {base_url}/{service}."""

    def __init__(
        self,
        base_url: str = "http://localhost:8787",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    def _classify(self, exc: Exception) -> ServiceError:
        if isinstance(exc, httpx.TimeoutException):
            return ServiceError("timeout", str(exc) or "request timed out", True)
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            retryable = status == 429 or status >= 500
            return ServiceError("http_error", f"HTTP {status} from {exc.request.url}", retryable)
        if isinstance(exc, httpx.TransportError):
            return ServiceError("connection_error", str(exc), True)
        return super()._classify(exc)

    async def _attempt(self, service: str, payload: dict, schema: dict) -> dict:
        response = await self.client.post(f"{self.base_url}/{service}", json=payload)
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        await self.client.aclose()


class ClaudeNarrativeGateway(_RetryingGateway):
    """Anthropic API implementation: the model writes the JSON response."""

    SYSTEM_PROMPTS = {
        "narrative": (
            "You narrate a survival role-playing game. Describe the player's action "
            "and its result in second person, matching the dice outcome."
        ),
        "quest_hint": "You give a short, in-world hint toward the player's quest.",
        "fusion": "You invent the single item produced by fusing the given items.",
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        max_tokens: int = 1024,
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.max_tokens = max_tokens

        # Import anthropic lazily to allow module to load without it installed
        try:
            import anthropic
            self.client = anthropic.AsyncAnthropic(api_key=self.api_key)
        except ImportError:
            raise ImportError("anthropic package not installed. Run: pip install anthropic")

    async def _attempt(self, service: str, payload: dict, schema: dict) -> dict:
        system_prompt = (
            self.SYSTEM_PROMPTS[service]
            + " Output valid JSON only, with no text before or after the object."
        )
        prompt = (
            f"Request:\n{json.dumps(payload, indent=2)}\n\n"
            f"Your output must conform to this JSON schema:\n{json.dumps(schema, indent=2)}"
        )
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": prompt}],
        )
        raw_text = response.content[0].text
        try:
            return json.loads(raw_text)
        except json.JSONDecodeError:
            return _extract_json(raw_text)


class MockNarrativeGateway(NarrativeGateway):
    """Mock gateway for testing without network calls."""

    def __init__(self, responses: Optional[dict] = None, fail: bool = False):
        """
        Args:
            responses: Dict mapping service name to a response dict
            fail: Raise NarrativeServiceError on every request
        """
        self.responses = responses or {}
        self.fail = fail
        self.call_log: list[dict] = []
        self._gates: dict[str, asyncio.Event] = {}

    def set_response(self, service: str, response: dict) -> None:
        self.responses[service] = response

    def hold(self, service: str) -> asyncio.Event:
        """Block requests to service until the returned event is set."""
        gate = asyncio.Event()
        self._gates[service] = gate
        return gate

    async def request(self, service: str, payload: dict, schema: dict) -> ServiceResponse:
        self.call_log.append({"service": service, "payload": payload, "schema": schema})

        gate = self._gates.get(service)
        if gate is not None:
            await gate.wait()

        if self.fail or service not in self.responses:
            raise NarrativeServiceError(
                service, ServiceError("api_error", f"No mock response for {service}", False), 1
            )
        response = self.responses[service]
        self._validate_output(response, schema)
        return ServiceResponse(content=response, service=service, latency_ms=0)


def load_schema(schema_name: str) -> dict:
    """Load a JSON schema from the schemas directory."""
    schema_path = Path(__file__).parent.parent / "schemas" / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")

    with open(schema_path) as f:
        return json.load(f)


def schema_for(service: str) -> dict:
    return load_schema(SERVICE_SCHEMAS[service])


def create_gateway(provider: str = "http", **kwargs) -> NarrativeGateway:
    """Factory function to create a narrative gateway."""
    if provider == "http":
        return HttpNarrativeGateway(**kwargs)
    elif provider == "claude":
        return ClaudeNarrativeGateway(**kwargs)
    elif provider == "mock":
        return MockNarrativeGateway(**kwargs)
    else:
        raise ValueError(f"Unknown provider: {provider}")


def gateway_from_settings(settings) -> Optional[NarrativeGateway]:
    """Build the gateway named by settings.narrative_provider.

    "offline" gives None, which keeps every remote handler on its offline path.
    """
    provider = settings.narrative_provider
    if provider == "offline":
        return None
    if provider == "http":
        return HttpNarrativeGateway(
            base_url=settings.narrative_url,
            api_key=get_api_key(),
            timeout=settings.narrative_timeout,
        )
    if provider == "claude":
        return ClaudeNarrativeGateway(api_key=get_api_key())
    return create_gateway(provider)
