"""Image captioning used to give image files searchable text."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Any

import openai

from commonbase.core.config import Settings
from commonbase.core.errors import EmbeddingProviderError, EmbeddingUnavailable

DESCRIBE_PROMPT = (
    "Please provide a detailed description of this image, including any text, objects, "
    "people, scenes, or other relevant details that would be useful for semantic search "
    "and knowledge management."
)
FALLBACK_DESCRIPTION = "Unable to describe image."


class ImageDescriber:
    """Produces a text description for an image file."""

    def describe(self, path: Path, mime_type: str | None = None) -> str:  # pragma: no cover - interface
        raise NotImplementedError


class OpenAIImageDescriber(ImageDescriber):
    """Describe images with an OpenAI vision-capable chat model."""

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        max_retries: int = 0,
        client: Any | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise EmbeddingUnavailable("No API key configured for image description")
            self._client = openai.OpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._client

    def describe(self, path: Path, mime_type: str | None = None) -> str:
        mime = mime_type or mimetypes.guess_type(path.name)[0] or "image/jpeg"
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
        client = self.client
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": DESCRIBE_PROMPT},
                            {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{encoded}"}},
                        ],
                    }
                ],
            )
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(f"Image description failed: {exc}") from exc
        if not response.choices:
            return FALLBACK_DESCRIPTION
        return response.choices[0].message.content or FALLBACK_DESCRIPTION


def build_image_describer(settings: Settings) -> ImageDescriber:
    return OpenAIImageDescriber(
        api_key=settings.embedding_api_key,
        model=settings.vision_model,
        timeout=settings.embedding_timeout,
        max_retries=settings.embedding_max_retries,
    )


__all__ = ["ImageDescriber", "OpenAIImageDescriber", "build_image_describer"]
