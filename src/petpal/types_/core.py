from __future__ import annotations

from typing import Any, Literal, Self, Union

from pydantic import BaseModel, Field, SerializeAsAny

from ..utilities import format_json

Role = Literal["assistant", "system", "tool", "user"]


class Message(BaseModel):
    role: Role = Field(description="The role of the message author.", min_length=1)
    content: str = Field(description="The contents of the message.", min_length=1)

    def __repr__(self):
        return format_json(self.model_dump())


# These messages are for composing Conversations (i.e., inputs to the LLM)
class SystemMessage(Message):
    role: Literal["system"] = "system"


class UserMessage(Message):
    role: Literal["user"] = "user"


class ToolResultMessage(Message):
    role: Literal["tool"] = "tool"
    content: str = Field(description="The result of the tool call.")
    tool_call_id: str = Field(description="The tool_call.id that requested this response")


class TextContentPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    url: str = Field(description="The image, as an http(s) url or a base64 data uri.")


class ImageContentPart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


ContentPart = Union[TextContentPart, ImageContentPart]


class MultimodalUserMessage(Message):
    """User message carrying ordered text and image parts."""

    role: Literal["user"] = "user"
    content: list[ContentPart] = Field(description="Ordered content parts.", min_length=1)  # type: ignore[assignment]

    def __repr__(self):
        # data uris make for unreadable logs
        parts = [
            part.model_dump() if isinstance(part, TextContentPart) else {"type": part.type, "image_url": "<data>"}
            for part in self.content
        ]
        return format_json({"role": self.role, "content": parts})


class ConversationBuilder:
    def __init__(self):
        self.messages: list[Message] = []

    def add_system(self, content: str) -> Self:
        """Append a system message to the conversation."""
        self.messages.append(SystemMessage(content=content))
        return self

    def add_user(self, content: str | list[ContentPart]) -> Self:
        """Append a user message to the conversation.

        A list of content parts produces a multimodal message.
        """
        if isinstance(content, str):
            self.messages.append(UserMessage(content=content))
        else:
            self.messages.append(MultimodalUserMessage(content=content))
        return self

    def build(self) -> Conversation:
        """Build and return a Conversation from the added messages."""
        return Conversation(messages=self.messages)


class Conversation(BaseModel):
    # SerializeAsAny keeps subclass fields (tool_calls, tool_call_id) when dumping
    messages: list[SerializeAsAny[Message]] = Field(description="The messages of the conversation.", min_length=1)

    def __repr__(self):
        """Return a JSON-formatted string representation of the conversation."""
        return "\n".join(repr(m) for m in self.messages)

    def to_messages(self) -> list[dict[str, Any]]:
        """Serialize to the messages array expected by chat completion APIs."""
        return [message.model_dump(exclude_none=True) for message in self.messages]

    @classmethod
    def builder(cls) -> ConversationBuilder:
        """Obtain a ConversationBuilder for constructing a Conversation.

        Examples
        --------
        >>> conversation = Conversation.builder().add_system("System message").add_user("User message").build()
        """
        return ConversationBuilder()
