"""Launcher search engine: query classification, ranking and result aggregation."""

from .aggregator import DebouncedScheduler, SearchGeneration, SearchSession
from .best_match import BEST_MATCH_PRIORITY, resolve_best_match
from .config import Config
from .events import Event, EventBus
from .executor import ActionExecutor, UriActionGateway
from .filters import FilterState, toggle
from .models import ActionResult, AppResult, SearchResults, ShortcutResult
from .store import SQLiteItemIndex
from .weights import WeightStore

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "AppResult",
    "BEST_MATCH_PRIORITY",
    "Config",
    "DebouncedScheduler",
    "Event",
    "EventBus",
    "FilterState",
    "SQLiteItemIndex",
    "SearchGeneration",
    "SearchResults",
    "SearchSession",
    "ShortcutResult",
    "UriActionGateway",
    "WeightStore",
    "resolve_best_match",
    "toggle",
]
