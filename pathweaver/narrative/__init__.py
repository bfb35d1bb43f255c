"""Remote narrative services and the offline fallback."""

from .gateway import (
    ClaudeNarrativeGateway,
    HttpNarrativeGateway,
    MockNarrativeGateway,
    NarrativeGateway,
    NarrativeServiceError,
    ServiceResponse,
    create_gateway,
    gateway_from_settings,
    load_schema,
    schema_for,
)
from .offline import offline_fusion, offline_narrative, offline_quest_hint

__all__ = [
    "NarrativeGateway",
    "HttpNarrativeGateway",
    "ClaudeNarrativeGateway",
    "MockNarrativeGateway",
    "NarrativeServiceError",
    "ServiceResponse",
    "create_gateway",
    "gateway_from_settings",
    "load_schema",
    "schema_for",
    "offline_narrative",
    "offline_quest_hint",
    "offline_fusion",
]
