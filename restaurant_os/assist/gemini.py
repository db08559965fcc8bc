"""Gemini API assist backend."""

from __future__ import annotations

from . import AssistBackend


class GeminiAssistant(AssistBackend):
    """Menu copy and costing advice from Google Gemini."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.5-flash",
        language: str = "Thai",
        currency: str = "THB",
    ) -> None:
        super().__init__(api_key, model, language, currency)

    async def _complete(self, prompt: str, *, json_output: bool = False) -> str:
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        generation_config = (
            {"response_mime_type": "application/json"} if json_output else None
        )
        model = genai.GenerativeModel(
            self._model, generation_config=generation_config
        )
        response = await model.generate_content_async(prompt)
        return response.text or ""
