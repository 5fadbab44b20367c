"""
Data models for notesync.

Contains pydantic models for cached notes and root path expressions, plus the
enums driving the view-state coordinator.
"""

from enum import Enum, IntEnum
from pathlib import Path
from typing import Annotated, Literal, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field


class CachedNote(BaseModel):
    """Model for one cached note. Replaced as a whole on every refresh."""

    model_config = ConfigDict(frozen=True)

    path: Path
    mtime: float
    title: str | None = None
    summary: str | None = None
    keywords: str | None = None
    blob: str


class ParsedNote(NamedTuple):
    """Title, summary and keywords extracted from note text."""

    title: str | None
    summary: str | None
    keywords: str | None


class UpdateLevel(IntEnum):
    """How much work is owed before the next render.

    Totally ordered; merging two levels keeps the larger one.
    """

    NONE = 0
    REDRAW = 1
    RECOMPUTE = 2

    def merge(self, other: "UpdateLevel") -> "UpdateLevel":
        return max(self, other)


class ChangeEvent(str, Enum):
    """Sources of change notifications."""

    FILESYSTEM = "filesystem"
    QUERY = "query"
    FILTER = "filter"
    RESIZE = "resize"


# ============== Root path expressions ==============

class LiteralSpec(BaseModel):
    """A literal directory path."""

    kind: Literal["literal"] = "literal"
    value: str


class ListSpec(BaseModel):
    """A list of expressions, each yielding one directory."""

    kind: Literal["list"] = "list"
    items: list[Union[str, "PathSpec"]]


class CallSpec(BaseModel):
    """A call to one of the allow-listed resolver functions."""

    kind: Literal["call"] = "call"
    function: str
    args: list[Union[str, "PathSpec"]] = Field(default_factory=list)


PathSpec = Annotated[Union[LiteralSpec, ListSpec, CallSpec], Field(discriminator="kind")]

ListSpec.model_rebuild()
CallSpec.model_rebuild()
