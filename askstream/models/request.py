from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

RoutingMode = Literal["direct", "relay"]
ReasoningEffort = Literal["none", "low", "medium", "high", "xhigh"]


class GenerationOptions(BaseModel):
    """
    Generation controls for one provider call.

    `reasoning_effort` is kept raw here; the payload builders normalize it
    and drop it when it is not recognised.
    """

    model: str
    temperature: Optional[float] = None
    max_output_tokens: Optional[PositiveInt] = None
    reasoning_effort: Optional[str] = None
    routing: RoutingMode = "direct"


class ModelInfo(BaseModel):
    """Active model selection returned by the model/credential resolver."""

    model_config = ConfigDict(populate_by_name=True)

    provider: str
    model: str
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class UpstreamRequest(BaseModel):
    """Transport-ready request descriptor produced by a dialect."""

    label: str = Field(..., description="Provider label used in error messages")
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Dict[str, Any] = Field(default_factory=dict)


class ProviderResponse(BaseModel):
    text: str
    raw: Any = None


__all__ = [
    "GenerationOptions",
    "ModelInfo",
    "ProviderResponse",
    "ReasoningEffort",
    "RoutingMode",
    "UpstreamRequest",
]
