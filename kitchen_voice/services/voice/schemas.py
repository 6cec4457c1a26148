"""
Voice Command Schemas

Pydantic models for the command pipeline. Wire names are camelCase
(`orderNumber`, `suggestedAction`, `executionResult`) so responses match
what staff clients already consume; Python code uses snake_case.

The executor does not read the loose `entities`/`parameters` bags
directly. `CommandAnalysis.to_request()` turns them into one of the typed
request classes below, and the executor dispatches on that type.

Version: 4.0.0
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from kitchen_voice.models import OrderStatus
from kitchen_voice.services.voice.normalizer import normalize_status


# =============================================================================
# ENUMS
# =============================================================================

class Intent(str, Enum):
    """Closed set of command intents."""
    ORDER_STATUS = "order_status"
    ORDER_QUERY = "order_query"
    MENU_QUERY = "menu_query"
    HELP = "help"
    UNKNOWN = "unknown"


class AnalysisSource(str, Enum):
    """Which path produced an analysis."""
    MODEL = "model"
    FALLBACK = "fallback"


# =============================================================================
# TYPED REQUESTS
# =============================================================================

@dataclass(frozen=True)
class OrderStatusRequest:
    order_number: Optional[int]
    status: Optional[OrderStatus]


@dataclass(frozen=True)
class OrderQueryRequest:
    filter: Optional[OrderStatus] = None


@dataclass(frozen=True)
class MenuQueryRequest:
    sort_by_popularity: bool = False


@dataclass(frozen=True)
class HelpRequest:
    pass


@dataclass(frozen=True)
class UnknownRequest:
    pass


CommandRequest = Union[
    OrderStatusRequest,
    OrderQueryRequest,
    MenuQueryRequest,
    HelpRequest,
    UnknownRequest,
]

# "preparing"/"in progress" orders are pending ones when asking about orders
_QUERY_FILTER_ALIASES = {
    "preparing": OrderStatus.PENDING,
    "in progress": OrderStatus.PENDING,
    "in-progress": OrderStatus.PENDING,
}


def _query_filter(value: Any) -> Optional[OrderStatus]:
    if not isinstance(value, str):
        return None
    text = value.strip().lower()
    if text in _QUERY_FILTER_ALIASES:
        return _QUERY_FILTER_ALIASES[text]
    return normalize_status(text)


# =============================================================================
# ANALYSIS
# =============================================================================

class CommandEntities(BaseModel):
    """Structured values extracted from a command."""
    model_config = ConfigDict(populate_by_name=True)

    order_number: Optional[int] = Field(None, alias="orderNumber")
    status: Optional[OrderStatus] = None
    quantity: Optional[int] = None
    menu_item: Optional[str] = Field(None, alias="menuItem")
    timeframe: Optional[str] = None


class CommandAnalysis(BaseModel):
    """
    Result of classifying one command.

    Attributes:
        intent: One of the closed intent set
        entities: Extracted order number, status, etc.
        confidence: Self-reported certainty in [0, 1]
        suggested_action: Human-readable description of what to do
        parameters: Extra hints (`filter`, `sortBy`)
        source: Whether the model or the fallback heuristics produced it
    """
    model_config = ConfigDict(populate_by_name=True)

    intent: Intent = Intent.UNKNOWN
    entities: CommandEntities = Field(default_factory=CommandEntities)
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    suggested_action: str = Field("Unable to determine action", alias="suggestedAction")
    parameters: dict[str, Any] = Field(default_factory=dict)
    source: AnalysisSource = AnalysisSource.FALLBACK

    def to_request(self) -> CommandRequest:
        """Build the typed request the executor dispatches on."""
        if self.intent == Intent.ORDER_STATUS:
            return OrderStatusRequest(
                order_number=self.entities.order_number,
                status=self.entities.status,
            )

        if self.intent == Intent.ORDER_QUERY:
            return OrderQueryRequest(filter=_query_filter(self.parameters.get("filter")))

        if self.intent == Intent.MENU_QUERY:
            popular = (
                self.parameters.get("sortBy") == "popularity"
                or "popular" in self.suggested_action.lower()
            )
            return MenuQueryRequest(sort_by_popularity=popular)

        if self.intent == Intent.HELP:
            return HelpRequest()

        return UnknownRequest()

    def to_payload(self) -> dict[str, Any]:
        """camelCase dictionary for JSON responses."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=False)


# =============================================================================
# EXECUTION
# =============================================================================

class ExecutionResult(BaseModel):
    """Outcome of executing one request against the data store."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    @classmethod
    def ok(cls, message: str, data: Optional[dict[str, Any]] = None) -> "ExecutionResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: str, data: Optional[dict[str, Any]] = None) -> "ExecutionResult":
        return cls(success=False, error=error, data=data)

    @property
    def text(self) -> str:
        return (self.message if self.success else self.error) or ""

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CommandOutcome(BaseModel):
    """Everything produced while processing one command."""
    transcript: str
    normalized: str
    analysis: CommandAnalysis
    execution_result: ExecutionResult
    response: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "analysis": self.analysis.to_payload(),
            "executionResult": self.execution_result.to_payload(),
            "response": self.response,
            "transcript": self.transcript,
        }
