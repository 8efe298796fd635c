"""
Pydantic schemas for channel records and request/response validation.

This module contains:
- Record models returned by channel methods (messages, conversations)
- Argument models for channel methods that take structured input
- Response envelopes for the HTTP transport
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, StrictInt, field_validator


# =============================================================================
# Channel Records
# =============================================================================

class MessageRecord(BaseModel):
    """
    One SMS as returned to channel callers.

    Serialized with camelCase keys (`dateSent`, `threadId`). `threadId` is
    only populated by thread queries and is left out of the wire form
    otherwise.
    """
    id: str = Field(..., description="Store-assigned identifier")
    address: Optional[str] = Field(None, description="Counterparty address")
    body: Optional[str] = Field(None, description="Message text")
    date: int = Field(..., description="Receipt timestamp, epoch millis")
    date_sent: int = Field(..., alias="dateSent", description="Origin timestamp, epoch millis")
    type: int = Field(..., description="1 = received, 2 = sent")
    read: int = Field(..., description="0 = unread, 1 = read")
    thread_id: Optional[int] = Field(None, alias="threadId", description="Thread identifier")

    model_config = {
        "populate_by_name": True,
    }

    @classmethod
    def from_row(cls, row, include_thread: bool = False) -> "MessageRecord":
        return cls(
            id=str(row.id),
            address=row.address,
            body=row.body,
            date=row.date or 0,
            date_sent=row.date_sent or 0,
            type=row.type or 0,
            read=row.read or 0,
            thread_id=row.thread_id if include_thread else None,
        )

    def to_wire(self) -> dict[str, Any]:
        exclude = None if self.thread_id is not None else {"thread_id"}
        return self.model_dump(by_alias=True, exclude=exclude)


class ConversationRecord(BaseModel):
    """
    One conversation summary.

    `address` and `snippet` come from the newest message in the thread and
    are never null.
    """
    conversation_id: int = Field(..., alias="_id", description="Conversation row identifier")
    thread_id: int = Field(..., description="Thread identifier")
    address: str = Field("", description="Address of the newest message")
    date: int = Field(..., description="Newest message date, epoch millis")
    snippet: str = Field("", description="Body of the newest message")

    model_config = {
        "populate_by_name": True,
    }

    @field_validator("address", "snippet", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# =============================================================================
# Channel Arguments
# =============================================================================

STORE_INT_MAX = 2**63 - 1


class ConversationsArguments(BaseModel):
    """
    Arguments for getConversations.

    A missing or null value means 0. limit = 0 is unbounded, and offset
    only applies inside a bounded limit. Booleans, strings and values outside
    the store's 64-bit integer range are rejected.
    """
    limit: StrictInt = Field(default=0, ge=0, le=STORE_INT_MAX, description="Maximum conversations to return")
    offset: StrictInt = Field(default=0, ge=0, le=STORE_INT_MAX, description="Conversations to skip")

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def none_to_zero(cls, v):
        return 0 if v is None else v


class ActivityRequest(BaseModel):
    """Body for attaching a foreground context."""
    name: str = Field(default="main", min_length=1, description="Context name")


class PermissionResultRequest(BaseModel):
    """Body for delivering the host's asynchronous permission result."""
    request_code: int = Field(..., alias="requestCode", description="Code the prompt was issued with")
    granted: bool = Field(..., description="Whether the user granted the capability")

    model_config = {"populate_by_name": True}


# =============================================================================
# Response Envelopes
# =============================================================================

class ChannelResponse(BaseModel):
    """Successful channel call."""
    result: Any = Field(None, description="Method payload")


class ErrorResponse(BaseModel):
    """Typed failure of a channel call."""
    code: str = Field(..., description="Stable error code")
    message: str = Field(..., description="Error description")
    details: Optional[Any] = Field(None, description="Reserved")


class NotImplementedResponse(BaseModel):
    """Signal for an unknown channel method."""
    status: str = Field(default="not_implemented")
    method: str = Field(..., description="The method that was requested")


class StatusResponse(BaseModel):
    status: str = Field(default="ok", description="Operation status")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
