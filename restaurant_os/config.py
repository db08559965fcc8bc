"""TOML configuration loader for restaurant_os."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class FirestoreConfig:
    project_id: str = ""
    credentials_path: str = ""


@dataclass
class StoreConfig:
    backend: str = "sqlite"
    path: str = "~/.config/restaurant_os/store.db"
    firestore: FirestoreConfig = field(default_factory=FirestoreConfig)

    @property
    def is_configured(self) -> bool:
        """Whether enough settings exist to attempt any data operation."""
        match self.backend:
            case "sqlite":
                return bool(self.path)
            case "firestore":
                return bool(self.firestore.project_id)
            case _:
                return False


@dataclass
class GeminiAssistConfig:
    api_key: str = ""
    model: str = "gemini-2.5-flash"


@dataclass
class ClaudeAssistConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class AssistConfig:
    backend: str = "gemini"
    language: str = "Thai"
    gemini: GeminiAssistConfig = field(default_factory=GeminiAssistConfig)
    claude: ClaudeAssistConfig = field(default_factory=ClaudeAssistConfig)

    @property
    def api_key(self) -> str:
        """API key of the selected backend ("" if unknown or unset)."""
        match self.backend:
            case "gemini":
                return self.gemini.api_key
            case "claude":
                return self.claude.api_key
            case _:
                return ""


@dataclass
class ShopConfig:
    currency: str = "THB"
    language: str = "Thai"  # dashboard labels
    trend_label_format: str = ""  # strftime; empty = localized weekday + day


@dataclass
class AppConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    assist: AssistConfig = field(default_factory=AssistConfig)
    shop: ShopConfig = field(default_factory=ShopConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys and store credentials can be supplied via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    sto = raw.get("store", {})
    ast = raw.get("assist", {})
    shp = raw.get("shop", {})

    fs_cfg = sto.get("firestore", {})
    gemini_cfg = ast.get("gemini", {})
    claude_cfg = ast.get("claude", {})

    # Resolve secrets: config file → environment variable
    gemini_api_key = (
        gemini_cfg.get("api_key", "")
        or os.environ.get("GEMINI_API_KEY", "")
        or os.environ.get("API_KEY", "")
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    project_id = (
        fs_cfg.get("project_id", "")
        or os.environ.get("FIRESTORE_PROJECT_ID", "")
        or os.environ.get("GOOGLE_CLOUD_PROJECT", "")
    )
    credentials_path = fs_cfg.get("credentials_path", "") or os.environ.get(
        "GOOGLE_APPLICATION_CREDENTIALS", ""
    )

    return AppConfig(
        store=StoreConfig(
            backend=sto.get("backend", "sqlite"),
            path=sto.get("path", "~/.config/restaurant_os/store.db"),
            firestore=FirestoreConfig(
                project_id=project_id,
                credentials_path=credentials_path,
            ),
        ),
        assist=AssistConfig(
            backend=ast.get("backend", "gemini"),
            language=ast.get("language", "Thai"),
            gemini=GeminiAssistConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.5-flash"),
            ),
            claude=ClaudeAssistConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        shop=ShopConfig(
            currency=shp.get("currency", "THB"),
            language=shp.get("language", "Thai"),
            trend_label_format=shp.get("trend_label_format", ""),
        ),
    )
