"""Shared fixtures and in-memory collaborators."""

import asyncio
from typing import Dict, List, Optional

import pytest

from launchsearch.engine.config import Config, TuningConfig
from launchsearch.engine.interfaces import ItemIndex, LaunchGateway, ShortcutProvider, TagIndex
from launchsearch.engine.models import AppInfo, SearchableItem, ShortcutRef


APPS = [
    AppInfo(key="org.mozilla.firefox", label="Firefox"),
    AppInfo(key="com.android.chrome", label="Chrome"),
    AppInfo(key="org.fdroid.fdroid", label="F-Droid"),
    AppInfo(key="com.android.deskclock", label="Clock"),
    AppInfo(key="com.secret.vault", label="Fire Vault"),
]


class MemoryIndex(ItemIndex, TagIndex):
    def __init__(self, apps=None, hidden=None, records=None, favorites=None, tags=None):
        self.apps = list(apps if apps is not None else APPS)
        self.hidden = set(hidden or ())
        self.records: Dict[str, SearchableItem] = dict(records or {})
        self.favorite_keys = list(favorites or [])
        self.tags = list(tags or [])

    def list_apps(self) -> List[AppInfo]:
        return list(self.apps)

    def hidden_keys(self):
        return set(self.hidden)

    def load_weights(self):
        return {key: record.weight for key, record in self.records.items()}

    def get_record(self, key: str) -> Optional[SearchableItem]:
        return self.records.get(key)

    def insert_record(self, item: SearchableItem) -> None:
        self.records[item.key] = item

    def update_record(self, key: str, launch_count: int, weight: float) -> None:
        record = self.records[key]
        record.launch_count = launch_count
        record.weight = weight

    def favorites(self) -> List[str]:
        return list(self.favorite_keys)

    def tag_rows(self):
        return list(self.tags)


class StaticShortcuts(ShortcutProvider):
    def __init__(self, shortcuts: Dict[str, List[ShortcutRef]], failing=()):
        self.shortcuts = shortcuts
        self.failing = set(failing)
        self.calls: List[str] = []

    async def list_shortcuts(self, owner_key: str) -> List[ShortcutRef]:
        self.calls.append(owner_key)
        if owner_key in self.failing:
            raise PermissionError(f"shortcuts of {owner_key} are not accessible")
        return list(self.shortcuts.get(owner_key, []))


class GatedShortcuts(ShortcutProvider):
    """Each call waits on the next gate and returns the matching canned answer."""

    def __init__(self, answers: List[List[ShortcutRef]]):
        self.answers = list(answers)
        self.gates = [asyncio.Event() for _ in answers]
        self.calls = 0

    async def list_shortcuts(self, owner_key: str) -> List[ShortcutRef]:
        index = self.calls
        self.calls += 1
        await self.gates[index].wait()
        return self.answers[index]


class RecordingLauncher(LaunchGateway):
    def __init__(self):
        self.launched: List[str] = []

    async def launch_item(self, key: str) -> None:
        self.launched.append(key)

    async def launch_shortcut(self, owner_key: str, shortcut_id: str) -> None:
        self.launched.append(f"{owner_key}/{shortcut_id}")


@pytest.fixture
def index():
    return MemoryIndex()


@pytest.fixture
def fast_config():
    """Config with short debounce delays so tests settle quickly."""
    return Config(
        database_path=':memory:',
        tuning=TuningConfig(articles_delay_ms=20, places_delay_ms=10),
    )


@pytest.fixture
def catalog():
    return {
        'apps': [
            {
                'key': 'org.mozilla.firefox',
                'label': 'Firefox',
                'shortcuts': [
                    {'id': 'private', 'short_label': 'Private tab', 'long_label': 'New private tab'},
                    {'id': 'new', 'short_label': 'New tab'},
                ],
            },
            {'key': 'com.android.chrome', 'label': 'Chrome'},
            {'key': 'com.secret.vault', 'label': 'Fire Vault'},
        ],
        'hidden': ['com.secret.vault'],
        'favorites': ['com.android.chrome', 'org.mozilla.firefox'],
        'tags': [
            {'name': 'Web', 'items': ['org.mozilla.firefox', 'com.android.chrome']},
            {'name': 'Empty', 'items': []},
        ],
    }
