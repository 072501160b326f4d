from __future__ import annotations

import json
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..types import StyleOptions


class EditPlan(BaseModel):
    """Batch of edit instructions applied to one base image."""

    image_path: str = Field(..., description="Path to the base image that will be edited")
    instructions: List[str] = Field(..., min_length=1, description="Edit instructions, one variation each")
    style: StyleOptions = Field(default_factory=StyleOptions)
    remove_background: List[int] = Field(
        default_factory=list,
        description="Instruction positions whose successful result also gets a background-removed copy",
    )

    @model_validator(mode="after")
    def _check_positions(self) -> "EditPlan":
        out_of_range = [p for p in self.remove_background if not 0 <= p < len(self.instructions)]
        if out_of_range:
            raise ValueError(
                f"remove_background positions out of range for {len(self.instructions)} instructions: "
                f"{out_of_range}"
            )
        return self

    def resolve_image_path(self, base_dir: Path) -> Path:
        path = Path(self.image_path)
        return path if path.is_absolute() else base_dir / path


def load_edit_plan(path: str | Path) -> EditPlan:
    """Load and validate an edit plan file."""
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    if not isinstance(data, dict):
        raise RuntimeError(f"Unsupported edit plan structure at {path}; expected a JSON object.")

    try:
        return EditPlan.model_validate(data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid edit plan at {path}") from exc
