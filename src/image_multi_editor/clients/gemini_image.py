from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..config import GeminiConfig
from ..errors import GenerationError
from ..prompts import BACKGROUND_REMOVAL_PROMPT, build_edit_prompt
from ..types import GenerationResult, StyleOptions

logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class GeminiImageClient:
    """Async client for Gemini image editing through the generateContent endpoint."""

    def __init__(
        self,
        config: GeminiConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._config = config
        url = httpx.URL(config.api_url)
        self._session = httpx.AsyncClient(
            base_url=str(url),
            headers={
                "x-goog-api-key": config.api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.request_timeout_seconds),
            transport=transport,
        )
        self._generate_path = f"models/{config.model}:generateContent"
        self._retry_wait = retry_wait or wait_exponential(multiplier=2, min=1, max=20)

    async def aclose(self) -> None:
        await self._session.aclose()

    async def generate(
        self,
        image_bytes: bytes,
        mime_type: str,
        instruction: str,
        options: StyleOptions,
    ) -> GenerationResult:
        """Apply one edit instruction to the image and return the edited image."""
        prompt = build_edit_prompt(instruction, options)
        result = await self._generate_content(image_bytes, mime_type, prompt)
        metadata = result.mutable_metadata()
        metadata.update(
            {
                "instruction": instruction,
                "style": options.model_dump(mode="json"),
            }
        )
        return GenerationResult(image_bytes=result.image_bytes, mime_type=result.mime_type, metadata=metadata)

    async def remove_background(self, image_bytes: bytes, mime_type: str) -> GenerationResult:
        """Return a copy of the image with its background made transparent."""
        result = await self._generate_content(image_bytes, mime_type, BACKGROUND_REMOVAL_PROMPT)
        metadata = result.mutable_metadata()
        metadata["operation"] = "remove_background"
        return GenerationResult(image_bytes=result.image_bytes, mime_type=result.mime_type, metadata=metadata)

    async def _generate_content(self, image_bytes: bytes, mime_type: str, prompt: str) -> GenerationResult:
        body: Dict[str, Any] = {
            "contents": [
                {
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image_bytes).decode("utf-8"),
                            }
                        },
                        {"text": prompt},
                    ]
                }
            ],
            "generationConfig": {"responseModalities": ["IMAGE"]},
        }

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                response = await self._session.post(self._generate_path, json=body)
                try:
                    response.raise_for_status()
                except httpx.HTTPStatusError as exc:
                    if _is_transient(exc):
                        logger.warning(
                            "Gemini returned %s (attempt %d/%d)",
                            exc.response.status_code,
                            attempt.retry_state.attempt_number,
                            self._config.max_attempts,
                        )
                        raise
                    raise GenerationError(
                        f"Gemini request failed with status {exc.response.status_code}: "
                        f"{self._error_message(exc.response)}"
                    ) from exc

        return self._extract_image(response.json())

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200]
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return response.text[:200]

    def _extract_image(self, data: Dict[str, Any]) -> GenerationResult:
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback") or {}
            block_reason = feedback.get("blockReason")
            if block_reason:
                raise GenerationError(f"Gemini blocked the request: {block_reason}")
            raise GenerationError(f"Gemini response missing candidates: {list(data.keys())}")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if not inline or not inline.get("data"):
                continue
            try:
                image_bytes = base64.b64decode(inline["data"])
            except (binascii.Error, ValueError) as exc:
                raise GenerationError(f"Failed to decode base64 image data: {exc}") from exc
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            metadata = {
                "provider": "gemini",
                "model": data.get("modelVersion") or self._config.model,
                "finish_reason": candidate.get("finishReason"),
                "usage": data.get("usageMetadata"),
            }
            return GenerationResult(image_bytes=image_bytes, mime_type=mime_type, metadata=metadata)

        raise GenerationError(
            f"No image data found in the API response (finish reason: {candidate.get('finishReason')})."
        )

    async def __aenter__(self) -> "GeminiImageClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()
