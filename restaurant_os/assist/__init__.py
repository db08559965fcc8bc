"""AI assist base class, data types, and factory.

Every public assist call is best-effort: a missing key or a failed request
yields a fallback string (or ``None`` for recipe suggestions) instead of an
exception, so menu editing never depends on the AI service.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..costing import margin_pct

if TYPE_CHECKING:
    from ..config import AppConfig
    from ..models import MenuItem

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Set an AI API key to use the AI assist features."
DESCRIPTION_FAILED_MESSAGE = "Could not generate a description."
ANALYSIS_FAILED_MESSAGE = "Could not analyze this menu item."
CONNECTION_FAILED_MESSAGE = "Could not connect to the AI service."

_DESCRIPTION_PROMPT = """\
You are a Michelin-level chef and a professional food marketer.
Write a short, appetizing menu description (at most 2 lines) that draws customers in.
Dish name: {dish_name}
Main ingredients: {ingredients}
Language: {language}
Tone: premium and inviting
"""

_RECIPE_PROMPT = """\
Create a recipe for the Thai dish or general dish named: "{dish_name}".

1. Provide a short, appetizing description in {language}.
2. List the main ingredients needed.
3. For each ingredient, estimate the quantity needed for ONE serving of this dish.
4. Estimate the market price per unit for that ingredient in {currency} (e.g. if using pork, the price for 1 kg).
5. Use standard units like 'kg', 'g', 'ml', 'l', 'pcs'. Convert small amounts like tablespoons to grams or ml if possible.

Return only JSON in this shape (no other text):
{{
  "description": "...",
  "ingredients": [
    {{"name": "...", "quantityForDish": 0.0, "unit": "kg", "marketPricePerUnit": 0.0}}
  ]
}}
"""

_PROFITABILITY_PROMPT = """\
Analyze the value and pricing of this menu item:
Name: {name}
Selling price: {price:.2f} {currency}
Ingredient cost: {cost:.2f} {currency}
Gross margin: {margin:.2f}%

Please assess:
1. Whether the price is appropriate (typical food cost should be 30-35% of price).
2. One short suggestion to increase profit.
Answer briefly and concisely in {language}.
"""


@dataclass
class SuggestedIngredient:
    name: str
    quantity: float  # for one serving
    unit: str
    market_price: float  # per one `unit`


@dataclass
class RecipeSuggestion:
    description: str
    ingredients: list[SuggestedIngredient] = field(default_factory=list)


def strip_fences(text: str) -> str:
    """Remove surrounding markdown code fences from a model reply."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


def parse_recipe_suggestion(text: str) -> RecipeSuggestion:
    """Parse the recipe JSON object returned by the model.

    Raises:
        ValueError: If the reply is not the expected JSON object.
    """
    data = json.loads(strip_fences(text))
    if not isinstance(data, dict):
        raise ValueError("recipe suggestion must be a JSON object")
    ingredients = []
    for item in data.get("ingredients") or []:
        ingredients.append(
            SuggestedIngredient(
                name=item["name"],
                quantity=float(item.get("quantityForDish", item.get("quantity", 0)) or 0),
                unit=item.get("unit", "pcs") or "pcs",
                market_price=float(
                    item.get("marketPricePerUnit", item.get("marketPrice", 0)) or 0
                ),
            )
        )
    return RecipeSuggestion(
        description=data.get("description", "") or "",
        ingredients=ingredients,
    )


class AssistBackend(ABC):
    """Abstract base for text generation used by the menu editor."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "",
        language: str = "Thai",
        currency: str = "THB",
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language
        self._currency = currency

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    @abstractmethod
    async def _complete(self, prompt: str, *, json_output: bool = False) -> str:
        """Send one prompt and return the raw reply text ("" if none)."""
        ...

    async def generate_description(
        self, dish_name: str, ingredient_names: list[str]
    ) -> str:
        if not self.available:
            return MISSING_KEY_MESSAGE

        prompt = _DESCRIPTION_PROMPT.format(
            dish_name=dish_name,
            ingredients=", ".join(ingredient_names),
            language=self._language,
        )
        try:
            text = await self._complete(prompt)
        except Exception:
            logger.exception("Description request failed for %r", dish_name)
            return CONNECTION_FAILED_MESSAGE
        return text.strip() or DESCRIPTION_FAILED_MESSAGE

    async def suggest_recipe(self, dish_name: str) -> RecipeSuggestion | None:
        if not self.available:
            logger.warning("AI API key missing; recipe suggestion skipped")
            return None

        prompt = _RECIPE_PROMPT.format(
            dish_name=dish_name,
            language=self._language,
            currency=self._currency,
        )
        try:
            text = await self._complete(prompt, json_output=True)
            if not text:
                return None
            return parse_recipe_suggestion(text)
        except Exception:
            logger.exception("Recipe suggestion failed for %r", dish_name)
            return None

    async def analyze_profitability(self, menu_item: MenuItem) -> str:
        if not self.available:
            return MISSING_KEY_MESSAGE

        prompt = _PROFITABILITY_PROMPT.format(
            name=menu_item.name,
            price=menu_item.price,
            cost=menu_item.total_cost,
            margin=margin_pct(menu_item.price, menu_item.total_cost),
            currency=self._currency,
            language=self._language,
        )
        try:
            text = await self._complete(prompt)
        except Exception:
            logger.exception("Profitability analysis failed for %r", menu_item.name)
            return CONNECTION_FAILED_MESSAGE
        return text.strip() or ANALYSIS_FAILED_MESSAGE


class AssistRequestTracker:
    """Tells whether a finished AI request is still the latest for its key.

    AI calls cannot be cancelled, so a reply for a menu item the operator has
    already moved away from must be dropped by the caller::

        token = tracker.begin(item.id)
        text = await assistant.generate_description(...)
        if tracker.is_current(item.id, token):
            item.description = text
    """

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}
        self._counter = 0

    def begin(self, key: str) -> int:
        self._counter += 1
        self._latest[key] = self._counter
        return self._counter

    def is_current(self, key: str, token: int) -> bool:
        return self._latest.get(key) == token

    def invalidate(self, key: str) -> None:
        self._latest.pop(key, None)


def create_assistant(config: AppConfig) -> AssistBackend:
    """Create an AI assist backend based on configuration."""
    assist = config.assist
    backend_name = assist.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiAssistant

            return GeminiAssistant(
                api_key=assist.gemini.api_key,
                model=assist.gemini.model,
                language=assist.language,
                currency=config.shop.currency,
            )
        case "claude":
            from .claude import ClaudeAssistant

            return ClaudeAssistant(
                api_key=assist.claude.api_key,
                model=assist.claude.model,
                language=assist.language,
                currency=config.shop.currency,
            )
        case _:
            raise ValueError(
                f"Unknown assist backend: {backend_name!r} "
                f"(choose gemini or claude)"
            )


__all__ = [
    "AssistBackend",
    "AssistRequestTracker",
    "RecipeSuggestion",
    "SuggestedIngredient",
    "create_assistant",
    "parse_recipe_suggestion",
    "strip_fences",
]
