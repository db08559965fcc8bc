"""Claude API assist backend."""

from __future__ import annotations

from . import AssistBackend


class ClaudeAssistant(AssistBackend):
    """Menu copy and costing advice from Claude."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
        language: str = "Thai",
        currency: str = "THB",
    ) -> None:
        super().__init__(api_key, model, language, currency)

    async def _complete(self, prompt: str, *, json_output: bool = False) -> str:
        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        # JSON shape is requested in the prompt itself
        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=2048,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.content:
            return ""
        return response.content[0].text
