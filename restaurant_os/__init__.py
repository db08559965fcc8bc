"""Menu costing, point-of-sale checkout and sales dashboards for small restaurants."""

from .app import AppState, RestaurantApp
from .assist import AssistBackend, AssistRequestTracker, RecipeSuggestion, create_assistant
from .cart import Cart, filter_menu
from .config import AppConfig, AssistConfig, ShopConfig, StoreConfig, load_config
from .context import DataContext, WriteResult
from .costing import compute_total_cost, margin_pct
from .errors import ConfigurationError, StoreError, StoreErrorKind
from .models import (
    CartItem,
    Category,
    Ingredient,
    MenuItem,
    PaymentMethod,
    RecipeItem,
    Sale,
    SalesSummary,
    Unit,
)
from .sales import DashboardSummary, TrendPoint, summarize
from .store import StoreBackend, create_store

__all__ = [
    "RestaurantApp",
    "AppState",
    "AppConfig",
    "StoreConfig",
    "AssistConfig",
    "ShopConfig",
    "load_config",
    "DataContext",
    "WriteResult",
    "StoreBackend",
    "create_store",
    "AssistBackend",
    "AssistRequestTracker",
    "RecipeSuggestion",
    "create_assistant",
    "Cart",
    "filter_menu",
    "compute_total_cost",
    "margin_pct",
    "summarize",
    "DashboardSummary",
    "TrendPoint",
    "Ingredient",
    "RecipeItem",
    "MenuItem",
    "CartItem",
    "Sale",
    "SalesSummary",
    "Unit",
    "Category",
    "PaymentMethod",
    "ConfigurationError",
    "StoreError",
    "StoreErrorKind",
]
