"""LINE Messaging API webhook payload models.

Only the fields the ingestion pipeline reads are declared; everything else
in the payload is ignored.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class LineSource(BaseModel):
    """Event source (user, group or room)."""

    type: str = Field("user", description="user | group | room")
    user_id: Optional[str] = Field(None, alias="userId")
    group_id: Optional[str] = Field(None, alias="groupId")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class LineMessage(BaseModel):
    """Message content of a message event."""

    id: Optional[str] = None
    type: str
    text: Optional[str] = None

    model_config = {"extra": "ignore"}


class LineEvent(BaseModel):
    """Single webhook event."""

    type: str
    reply_token: Optional[str] = Field(None, alias="replyToken")
    source: LineSource = Field(default_factory=LineSource)
    message: Optional[LineMessage] = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def is_text_message(self) -> bool:
        """Whether this is a text message event."""
        return (
            self.type == "message"
            and self.message is not None
            and self.message.type == "text"
            and bool(self.message.text)
        )


class LineWebhookPayload(BaseModel):
    """Webhook request body."""

    destination: Optional[str] = None
    events: List[LineEvent] = Field(default_factory=list)

    model_config = {"extra": "ignore"}
