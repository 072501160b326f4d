from __future__ import annotations

import asyncio
import io
from typing import Callable

import pytest
from PIL import Image

from image_multi_editor.errors import GenerationError
from image_multi_editor.types import BaseImage, GenerationResult, StyleOptions


def png_bytes(color: str = "red", size: tuple[int, int] = (4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeImageClient:
    """In-memory stand-in for the Gemini client.

    Instructions listed in ``failures`` raise; when ``gated`` is set every call
    waits on a per-instruction event so tests control completion order.
    """

    def __init__(
        self,
        results: dict[str, bytes] | None = None,
        failures: set[str] | None = None,
        gated: bool = False,
        background_fails: bool = False,
    ) -> None:
        self.results = results or {}
        self.failures = failures or set()
        self.gates: dict[str, asyncio.Event] | None = {} if gated else None
        self.background_fails = background_fails
        self.calls: list[str] = []
        self.background_calls: list[bytes] = []
        self.options: list[StyleOptions] = []

    def gate(self, instruction: str) -> asyncio.Event:
        assert self.gates is not None
        return self.gates.setdefault(instruction, asyncio.Event())

    async def generate(
        self, image_bytes: bytes, mime_type: str, instruction: str, options: StyleOptions
    ) -> GenerationResult:
        self.calls.append(instruction)
        self.options.append(options)
        if self.gates is not None:
            await self.gate(instruction).wait()
        if instruction in self.failures:
            raise GenerationError(f"failed: {instruction}")
        data = self.results.get(instruction, f"image:{instruction}".encode())
        return GenerationResult(image_bytes=data, mime_type="image/png", metadata={"instruction": instruction})

    async def remove_background(self, image_bytes: bytes, mime_type: str) -> GenerationResult:
        self.background_calls.append(image_bytes)
        if self.gates is not None:
            await self.gate("__background__").wait()
        if self.background_fails:
            raise GenerationError("background removal failed")
        return GenerationResult(image_bytes=b"no-background:" + image_bytes, mime_type="image/png")

    async def __aenter__(self) -> "FakeImageClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        return None


async def wait_until(predicate: Callable[[], bool], attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def base_image() -> BaseImage:
    return BaseImage.from_bytes(png_bytes())
