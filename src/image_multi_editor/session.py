from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .errors import BatchValidationError, EditorError
from .imaging import from_data_uri
from .prompts import derived_label
from .tasks.dispatcher import ImageEditClient, RequestDispatcher
from .tasks.reconciler import ResultReconciler
from .types import BaseImage, EntryStatus, ResultEntry, StyleOptions, TaskOutcome

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS = ("swap burger with sushi", "change background to a red gradient")

VALIDATION_MESSAGE = "Please upload a base image and add at least one prompt."
BACKGROUND_REMOVAL_FAILED = "Failed to remove background from the image."


class EditorSession:
    """
    State behind one editing session: the base image, the instruction list,
    style options and the reconciled results.

    ``error`` holds the last user-facing message; per-entry failures are only
    visible through the entry's status.
    """

    def __init__(
        self,
        client: ImageEditClient,
        *,
        task_timeout: float | None = None,
        instructions: Sequence[str] | None = None,
        style: StyleOptions | None = None,
    ) -> None:
        self.dispatcher = RequestDispatcher(client, task_timeout=task_timeout)
        self.reconciler = ResultReconciler()
        self.base_image: BaseImage | None = None
        self.instructions: list[str] = list(DEFAULT_INSTRUCTIONS if instructions is None else instructions)
        self.style = style or StyleOptions()
        self.is_loading = False
        self.error: str | None = None
        self._current_batch: list[str] | None = None

    @property
    def entries(self) -> tuple[ResultEntry, ...]:
        return self.reconciler.entries

    def load_base_image(self, path: str | Path) -> BaseImage:
        self.base_image = BaseImage.from_path(path)
        return self.base_image

    def clear_error(self) -> None:
        self.error = None

    async def generate(self) -> tuple[ResultEntry, ...]:
        """Start a new batch, replacing all previous results."""
        try:
            _, instructions = self.dispatcher.validate_batch(self.base_image, self.instructions)
        except BatchValidationError:
            self.error = VALIDATION_MESSAGE
            raise

        self.error = None
        self.is_loading = True
        ids = self.reconciler.begin_batch(instructions)
        self._current_batch = ids

        def settle(outcome: TaskOutcome) -> None:
            self.reconciler.apply_outcome(ids[outcome.position], outcome)

        try:
            await self.dispatcher.dispatch_batch(self.base_image, instructions, self.style, on_outcome=settle)
        finally:
            # A newer batch owns the loading flag once it has replaced this one.
            if self._current_batch is ids:
                self.is_loading = False
                self._current_batch = None
        return self.entries

    async def remove_background(self, entry_id: str) -> str:
        """Add a background-removed copy of a successful entry right after it."""
        source = self.reconciler.get(entry_id)
        if source.status is not EntryStatus.SUCCESS:
            raise EditorError(f"Entry {entry_id} has no image to post-process (status {source.status.value}).")

        label = derived_label(source.instruction)
        derived_id = self.reconciler.insert_derived(entry_id, label)

        def settle(outcome: TaskOutcome) -> None:
            self.reconciler.apply_outcome(derived_id, outcome)

        try:
            content, mime_type = from_data_uri(source.payload)
        except ValueError as exc:
            logger.error("Could not decode image of entry %s: %s", entry_id, exc)
            settle(TaskOutcome.failure(0, label, str(exc)))
            self.error = BACKGROUND_REMOVAL_FAILED
            return derived_id
        if not content:
            logger.error("Entry %s holds an empty image", entry_id)
            settle(TaskOutcome.failure(0, label, "Source image is empty"))
            self.error = BACKGROUND_REMOVAL_FAILED
            return derived_id

        image = BaseImage(content=content, mime_type=mime_type, display_ref=source.payload)
        outcome = await self.dispatcher.dispatch_single(image, label, on_outcome=settle)
        if not outcome.ok:
            self.error = BACKGROUND_REMOVAL_FAILED
        return derived_id

    def remove_entry(self, entry_id: str) -> bool:
        return self.reconciler.remove_entry(entry_id)
