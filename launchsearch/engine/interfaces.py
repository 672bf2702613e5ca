"""Collaborator boundaries consumed by the search engine.

Platform integrations (app enumeration, shortcut lookup, launching, dialing,
browsing) live outside the engine and are handed in as implementations of
these base classes.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .models import AppInfo, SearchableItem, ShortcutRef


class ItemIndex(ABC):
    """Persistent catalog of launchable items and their usage records."""

    @abstractmethod
    def list_apps(self) -> List[AppInfo]:
        """All installed apps, hidden ones included."""

    @abstractmethod
    def hidden_keys(self) -> Set[str]:
        ...

    @abstractmethod
    def load_weights(self) -> Dict[str, Any]:
        """Raw stored weights by key; values may be malformed."""

    @abstractmethod
    def get_record(self, key: str) -> Optional[SearchableItem]:
        ...

    @abstractmethod
    def insert_record(self, item: SearchableItem) -> None:
        ...

    @abstractmethod
    def update_record(self, key: str, launch_count: int, weight: float) -> None:
        ...


class ShortcutProvider(ABC):
    @abstractmethod
    async def list_shortcuts(self, owner_key: str) -> List[ShortcutRef]:
        """Shortcuts published by one app. May raise; callers treat that as none."""


class LaunchGateway(ABC):
    @abstractmethod
    async def launch_item(self, key: str) -> None:
        ...

    @abstractmethod
    async def launch_shortcut(self, owner_key: str, shortcut_id: str) -> None:
        ...


class ActionGateway(ABC):
    """One side effect per action type; every method may fail independently."""

    @abstractmethod
    async def dial(self, number: str) -> None:
        ...

    @abstractmethod
    async def message(self, number: str) -> None:
        ...

    @abstractmethod
    async def compose_email(self, address: str) -> None:
        ...

    @abstractmethod
    async def create_contact(self, value: str) -> None:
        ...

    @abstractmethod
    async def schedule_event(self, text: str) -> None:
        ...

    @abstractmethod
    async def set_alarm(self, text: str) -> None:
        ...

    @abstractmethod
    async def start_timer(self, text: str) -> None:
        ...

    @abstractmethod
    async def open_url(self, url: str) -> None:
        ...

    @abstractmethod
    async def web_search(self, text: str) -> None:
        ...

    @abstractmethod
    async def share(self, text: str) -> None:
        ...

    @abstractmethod
    async def search_files(self, text: str) -> None:
        ...

    @abstractmethod
    async def search_wikipedia(self, text: str) -> None:
        ...

    @abstractmethod
    async def search_places(self, text: str) -> None:
        ...


class TagIndex(ABC):
    """Favorites and tag membership for the empty-query view."""

    @abstractmethod
    def favorites(self) -> List[str]:
        """Favorite item keys in display order."""

    @abstractmethod
    def tag_rows(self) -> Iterable[Tuple[int, str, Optional[str]]]:
        """(tag_id, tag_name, item_key) rows; item_key is None for empty tags."""
