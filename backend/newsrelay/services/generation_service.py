"""Gemini generation client using the `google-generativeai` SDK."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import google.generativeai as genai

from newsrelay.config import Settings
from newsrelay.errors import EmptyGenerationError, RemoteServiceError
from newsrelay.models.schemas import PromptSpec
from newsrelay.services.prompting import render_prompt_body

logger = logging.getLogger(__name__)

SERVICE_NAME = "gemini"


class GeminiGenerationClient:
    """Send an assembled prompt to Gemini and return the first candidate's text."""

    def __init__(self, api_key: str, model_name: str, timeout: float = 10.0) -> None:
        genai.configure(api_key=api_key)
        self._model_name = model_name
        self._timeout = timeout
        self._models: dict[str, Any] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiGenerationClient":
        return cls(
            api_key=settings.gemini_api_key.get_secret_value(),
            model_name=settings.gemini_model,
            timeout=settings.request_timeout_seconds,
        )

    @property
    def model_name(self) -> str:
        return self._model_name

    def _model_for(self, system_instruction: str) -> Any:
        model = self._models.get(system_instruction)
        if model is None:
            model = genai.GenerativeModel(
                model_name=self._model_name,
                system_instruction=system_instruction or None,
            )
            self._models[system_instruction] = model
        return model

    async def generate(self, prompt: PromptSpec) -> str:
        model = self._model_for(prompt.system_instruction)
        body = render_prompt_body(prompt)

        def _sync_generate() -> Any:
            return model.generate_content(body, request_options={"timeout": self._timeout})

        try:
            response = await asyncio.to_thread(_sync_generate)
        except Exception as exc:
            logger.error("Gemini request failed: %s: %s", type(exc).__name__, exc)
            raise RemoteServiceError(SERVICE_NAME, "generation request failed") from exc

        text = self._first_candidate_text(response)
        if not text.strip():
            raise EmptyGenerationError(SERVICE_NAME)
        return text

    @staticmethod
    def _first_candidate_text(response: Any) -> str:
        candidates = getattr(response, "candidates", None)
        if not candidates:
            raise RemoteServiceError(SERVICE_NAME, "response contained no candidates")

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        return "".join(str(getattr(part, "text", "") or "") for part in parts)
