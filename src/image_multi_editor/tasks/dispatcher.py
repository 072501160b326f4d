from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Sequence

from ..errors import BatchValidationError
from ..types import BaseImage, GenerationResult, StyleOptions, TaskOutcome

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[TaskOutcome], None]

POST_PROCESSING_OPERATIONS = ("remove_background",)


class ImageEditClient(Protocol):
    async def generate(
        self, image_bytes: bytes, mime_type: str, instruction: str, options: StyleOptions
    ) -> GenerationResult: ...

    async def remove_background(self, image_bytes: bytes, mime_type: str) -> GenerationResult: ...


class RequestDispatcher:
    """
    Fan edit instructions out to the image API concurrently.

    Every unit of work settles into a ``TaskOutcome`` tagged with its batch
    position. A failing unit never cancels or delays its siblings, and the
    dispatcher never touches the result collection: the caller maps positions
    back to the entry ids it minted before dispatch.
    """

    def __init__(self, client: ImageEditClient, task_timeout: float | None = None) -> None:
        self._client = client
        self._task_timeout = task_timeout

    @staticmethod
    def validate_batch(
        base_image: BaseImage | None, instructions: Sequence[str] | None
    ) -> tuple[BaseImage, list[str]]:
        """Check batch inputs and return the image with a snapshot of the instructions."""
        if base_image is None or not base_image.content:
            raise BatchValidationError("A non-empty base image is required.")
        if not instructions:
            raise BatchValidationError("At least one edit instruction is required.")
        return base_image, list(instructions)

    async def dispatch_batch(
        self,
        base_image: BaseImage | None,
        instructions: Sequence[str] | None,
        options: StyleOptions | None = None,
        on_outcome: OutcomeCallback | None = None,
    ) -> list[TaskOutcome]:
        """
        Run one generation per instruction and return outcomes ordered by position.

        ``on_outcome`` is called as each unit settles, in completion order.
        Validation happens before any unit is created; a ``BatchValidationError``
        means nothing was sent.
        """
        image, snapshot = self.validate_batch(base_image, instructions)
        options = options or StyleOptions()
        content, mime_type = image.content, image.mime_type

        def unit(instruction: str) -> Callable[[], Awaitable[GenerationResult]]:
            return lambda: self._client.generate(content, mime_type, instruction, options)

        logger.info("Dispatching %d edit(s) (aspect ratio %s)", len(snapshot), options.aspect_ratio)
        settled = await asyncio.gather(
            *(
                self._run_unit(position, instruction, unit(instruction), on_outcome)
                for position, instruction in enumerate(snapshot)
            ),
            return_exceptions=True,
        )
        return self._collect(settled)

    async def dispatch_single(
        self,
        image: BaseImage | None,
        instruction: str,
        operation: str = "remove_background",
        on_outcome: OutcomeCallback | None = None,
    ) -> TaskOutcome:
        """Run one post-processing call with the same failure isolation as a batch."""
        if image is None or not image.content:
            raise BatchValidationError("A non-empty image is required for post-processing.")
        if operation not in POST_PROCESSING_OPERATIONS:
            raise BatchValidationError(f"Unknown post-processing operation: {operation}")

        content, mime_type = image.content, image.mime_type
        settled = await asyncio.gather(
            self._run_unit(
                0,
                instruction,
                lambda: self._client.remove_background(content, mime_type),
                on_outcome,
            ),
            return_exceptions=True,
        )
        return self._collect(settled)[0]

    async def _run_unit(
        self,
        position: int,
        instruction: str,
        call: Callable[[], Awaitable[GenerationResult]],
        on_outcome: OutcomeCallback | None,
    ) -> TaskOutcome:
        try:
            result = await asyncio.wait_for(call(), timeout=self._task_timeout)
        except asyncio.TimeoutError:
            logger.error("Edit %d (%r) timed out after %ss", position, instruction, self._task_timeout)
            outcome = TaskOutcome.failure(position, instruction, f"Timed out after {self._task_timeout}s")
        except Exception as exc:
            logger.error("Edit %d (%r) failed: %s", position, instruction, exc)
            outcome = TaskOutcome.failure(position, instruction, str(exc) or type(exc).__name__)
        else:
            outcome = TaskOutcome.success(position, instruction, result)

        if on_outcome is not None:
            on_outcome(outcome)
        return outcome

    @staticmethod
    def _collect(settled: list[TaskOutcome | BaseException]) -> list[TaskOutcome]:
        # Only the outcome callback can raise here; re-raise once every unit has settled.
        for item in settled:
            if isinstance(item, BaseException):
                raise item
        return list(settled)  # type: ignore[arg-type]
