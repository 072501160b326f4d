from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Mapping, MutableMapping

from pydantic import BaseModel, Field, field_validator

from .imaging import sniff_mime_type, to_data_uri

AspectRatio = Literal["original", "portrait", "story", "video"]

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


class EntryStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True)
class GenerationResult:
    """Image returned by the generative API for one request."""

    image_bytes: bytes
    mime_type: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def data_uri(self) -> str:
        return to_data_uri(self.image_bytes, self.mime_type)

    def mutable_metadata(self) -> MutableMapping[str, Any]:
        """Return a mutable copy of the metadata payload."""
        return dict(self.metadata)


@dataclass(frozen=True, slots=True)
class BaseImage:
    """Source image shared by every unit of work in a batch."""

    content: bytes
    mime_type: str
    display_ref: str

    @classmethod
    def from_bytes(cls, content: bytes, display_ref: str | None = None) -> "BaseImage":
        mime_type = sniff_mime_type(content)
        return cls(
            content=content,
            mime_type=mime_type,
            display_ref=display_ref or to_data_uri(content, mime_type),
        )

    @classmethod
    def from_path(cls, path: str | Path) -> "BaseImage":
        file_path = Path(path)
        if not file_path.exists():
            raise RuntimeError(f"Base image file not found: {file_path}")
        return cls.from_bytes(file_path.read_bytes(), display_ref=str(file_path))


class StyleOptions(BaseModel):
    """Style settings applied identically to every instruction in a batch."""

    brand_color: str = Field(
        default="#6366F1",
        description="Hex color subtly worked into each variation; empty disables it",
    )
    use_texture: bool = Field(default=False, description="Overlay a subtle film grain or canvas texture")
    aspect_ratio: AspectRatio = Field(default="original", description="Target framing of the output")

    model_config = {"frozen": True}

    @field_validator("brand_color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        value = value.strip()
        if value and not _HEX_COLOR.match(value):
            raise ValueError(f"brand_color must look like #RRGGBB, got {value!r}")
        return value


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    """Settled result of one unit of work, keyed by its batch position."""

    position: int
    instruction: str
    result: GenerationResult | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, position: int, instruction: str, result: GenerationResult) -> "TaskOutcome":
        return cls(position=position, instruction=instruction, result=result)

    @classmethod
    def failure(cls, position: int, instruction: str, reason: str) -> "TaskOutcome":
        return cls(position=position, instruction=instruction, reason=reason)


@dataclass(frozen=True, slots=True)
class ResultEntry:
    """One row of the results collection."""

    id: str
    instruction: str
    payload: str = ""
    status: EntryStatus = EntryStatus.PENDING
    source_id: str | None = None
    mime_type: str | None = None
    error: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is EntryStatus.PENDING
