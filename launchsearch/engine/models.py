"""Data models for the launcher search engine."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union


SHORTCUT_KEY_PREFIX = "shortcut"


class ItemKind(Enum):
    """Kinds of launchable items that carry a usage weight."""
    APP = "app"
    SHORTCUT = "shortcut"


class ActionType(Enum):
    """Side-effecting actions a search result can trigger."""
    CALL = "call"
    MESSAGE = "message"
    CREATE_CONTACT = "createContact"
    EMAIL = "email"
    SCHEDULE_EVENT = "scheduleEvent"
    SET_ALARM = "setAlarm"
    TIMER = "timer"
    OPEN_URL = "openUrl"
    WEB_SEARCH = "webSearch"
    SHARE = "share"
    SEARCH_FILES = "searchFiles"
    SEARCH_WIKIPEDIA = "searchWikipedia"
    SEARCH_PLACES = "searchPlaces"


class ActionSource(Enum):
    """Bucket an action result belongs to."""
    CONTACTS = "contacts"
    CALENDAR = "calendar"
    FILES = "files"
    TOOLS = "tools"
    WEBSITES = "websites"
    ARTICLES = "articles"
    PLACES = "places"
    ACTIONS = "actions"


BUCKETS = (
    "apps",
    "shortcuts",
    "contacts",
    "calendar",
    "files",
    "tools",
    "websites",
    "articles",
    "places",
    "actions",
)


def shortcut_key(owner_key: str, shortcut_id: str) -> str:
    """Synthetic searchable key for an app shortcut."""
    return f"{SHORTCUT_KEY_PREFIX}:{owner_key}:{shortcut_id}"


@dataclass
class SearchableItem:
    """A launchable entity as persisted by the item index."""
    key: str
    kind: ItemKind
    hidden: bool = False
    weight: float = 0.0
    launch_count: int = 0
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AppInfo:
    """Display form of an installed app."""
    key: str
    label: str


@dataclass(frozen=True)
class ShortcutRef:
    """A shortcut published by an installed app."""
    owner_key: str
    shortcut_id: str
    short_label: str
    long_label: Optional[str] = None

    @property
    def key(self) -> str:
        return shortcut_key(self.owner_key, self.shortcut_id)


@dataclass(frozen=True)
class AppResult:
    app: AppInfo
    total_score: float


@dataclass(frozen=True)
class ShortcutResult:
    key: str
    shortcut: ShortcutRef
    app_label: str
    total_score: float


@dataclass(frozen=True)
class ActionResult:
    """A heuristic action offered for the current query."""
    id: str
    source: ActionSource
    action_type: ActionType
    title: str
    value: str
    subtitle: Optional[str] = None
    total_score: float = 1.0


SearchResult = Union[AppResult, ShortcutResult, ActionResult]


@dataclass(frozen=True)
class SearchResults:
    """
    Merged result set, one ranked bucket per source.

    Instances are never mutated; committing a bucket produces a new envelope
    so readers always see a consistent snapshot.
    """
    apps: List[AppResult] = field(default_factory=list)
    shortcuts: List[ShortcutResult] = field(default_factory=list)
    contacts: List[ActionResult] = field(default_factory=list)
    calendar: List[ActionResult] = field(default_factory=list)
    files: List[ActionResult] = field(default_factory=list)
    tools: List[ActionResult] = field(default_factory=list)
    websites: List[ActionResult] = field(default_factory=list)
    articles: List[ActionResult] = field(default_factory=list)
    places: List[ActionResult] = field(default_factory=list)
    actions: List[ActionResult] = field(default_factory=list)

    def with_bucket(self, bucket: str, entries: List[SearchResult]) -> "SearchResults":
        if bucket not in BUCKETS:
            raise KeyError(f"Unknown result bucket: {bucket}")
        return replace(self, **{bucket: list(entries)})

    def bucket(self, name: str) -> List[SearchResult]:
        if name not in BUCKETS:
            raise KeyError(f"Unknown result bucket: {name}")
        return getattr(self, name)

    @property
    def total(self) -> int:
        return sum(len(getattr(self, name)) for name in BUCKETS)

    def is_empty(self) -> bool:
        return self.total == 0

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: [result_to_dict(r) for r in getattr(self, name)] for name in BUCKETS}


EMPTY_RESULTS = SearchResults()


def result_to_dict(result: SearchResult) -> Dict[str, Any]:
    """Flatten a result into a JSON-friendly dict."""
    if isinstance(result, AppResult):
        return {
            'kind': 'app',
            'key': result.app.key,
            'title': result.app.label,
            'score': result.total_score,
        }
    if isinstance(result, ShortcutResult):
        return {
            'kind': 'shortcut',
            'key': result.key,
            'title': result.shortcut.short_label,
            'subtitle': result.app_label,
            'score': result.total_score,
        }
    return {
        'kind': 'action',
        'key': result.id,
        'title': result.title,
        'subtitle': result.subtitle,
        'action': result.action_type.value,
        'source': result.source.value,
        'value': result.value,
        'score': result.total_score,
    }
