"""Stream message models — what a query producer yields during one run.

Producers translate their native objects into these variants so the run
executor only ever sees a closed set of shapes:

    assistant — an incremental fragment made of content parts
    result    — the completed answer plus a success flag
    other     — anything else, reduced to a tag and subtype for logging
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TextPart(BaseModel):
    """A plain-text content part."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class OtherPart(BaseModel):
    """A structured, non-text content part (tool use, thinking, ...)."""

    model_config = ConfigDict(frozen=True)

    type: str  # the producer's block kind, e.g. "tool_use"


class AssistantFragment(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["assistant"] = "assistant"
    parts: list[Union[TextPart, OtherPart]] = []

    @property
    def text(self) -> str:
        """Concatenated text of all plain-text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))


class FinalResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["result"] = "result"
    subtype: str = "success"
    text: str = ""
    success: bool = True


class OtherMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["other"] = "other"
    tag: str
    subtype: str | None = None


StreamMessage = Annotated[
    Union[AssistantFragment, FinalResult, OtherMessage],
    Field(discriminator="type"),
]


class QueryRequest(BaseModel):
    """Everything a producer needs to open one streaming session."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    output_format: str = "stream-json"
    permission_mode: str = "bypassPermissions"
    cwd: str = "/tmp"
    model: str | None = None
