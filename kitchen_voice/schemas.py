"""
Pydantic Schemas for Request/Response Validation

Wire format of the HTTP API. Command payloads use camelCase keys
(`executionResult`, `suggestedAction`) to match existing staff clients.

Version: 4.0.0
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatusEnum(str, Enum):
    PENDING = "pending"
    DONE = "done"
    CANCELLED = "cancelled"


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class CommandRequest(BaseModel):
    """A spoken or typed staff command."""
    command: Optional[str] = Field(
        None,
        max_length=1000,
        examples=["mark order 7 as done"],
    )


class StatusUpdateRequest(BaseModel):
    """Direct status change from the dashboard."""
    status: OrderStatusEnum = Field(..., examples=["done"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CommandResponse(BaseModel):
    """Result of processing one command."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    analysis: dict[str, Any]
    execution_result: dict[str, Any] = Field(..., alias="executionResult")
    response: str
    transcript: str


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    order_id: int
    order_number: int
    total_amount: float
    status: str
    customer_note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class MenuItemResponse(BaseModel):
    menu_id: int
    name: str
    price: float
    availability: bool
    total_ordered: int


class MenuListResponse(BaseModel):
    total: int
    items: List[MenuItemResponse]


class AIStatusResponse(BaseModel):
    """Language model availability."""
    configured: bool
    working: bool
    status: str
    provider: str
    model: Optional[str] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    data_store: str
    language_model: str
    redis: str
    timestamp: datetime
