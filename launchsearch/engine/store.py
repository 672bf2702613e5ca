"""SQLite-backed item index.

One database holds the app catalog, published shortcuts, usage records,
tags and favorites. The same object serves as ``ItemIndex``, ``TagIndex``
and ``ShortcutProvider`` for the session.
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from loguru import logger

from .errors import StoreError
from .interfaces import ItemIndex, ShortcutProvider, TagIndex
from .models import AppInfo, ItemKind, SearchableItem, ShortcutRef
from .scoring import clamp_weight


SCHEMA = """
    CREATE TABLE IF NOT EXISTS searchables (
        key TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        data TEXT,
        launch_count INTEGER DEFAULT 0,
        pin_position INTEGER,
        hidden INTEGER DEFAULT 0,
        weight REAL DEFAULT 0
    );
    CREATE TABLE IF NOT EXISTS shortcuts (
        owner_key TEXT NOT NULL,
        shortcut_id TEXT NOT NULL,
        short_label TEXT NOT NULL,
        long_label TEXT,
        PRIMARY KEY (owner_key, shortcut_id)
    );
    CREATE TABLE IF NOT EXISTS tags (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL
    );
    CREATE TABLE IF NOT EXISTS tag_items (
        tag_id INTEGER NOT NULL,
        item_key TEXT NOT NULL,
        PRIMARY KEY (tag_id, item_key)
    );
    CREATE TABLE IF NOT EXISTS favorites (
        item_key TEXT PRIMARY KEY,
        position INTEGER NOT NULL
    );
"""


class SQLiteItemIndex(ItemIndex, TagIndex, ShortcutProvider):
    """Item catalog and usage records in a single SQLite file."""

    def __init__(self, db_path: Union[str, Path] = ':memory:'):
        self.db_path = str(db_path)
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.lock = threading.Lock()
        try:
            self.db = sqlite3.connect(self.db_path, check_same_thread=False)
            self.db.executescript(SCHEMA)
            self.db.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open item index at {self.db_path}: {e}") from e
        logger.debug(f"Opened item index at {self.db_path}")

    def _query(self, sql: str, params: Tuple = ()) -> List[Tuple]:
        try:
            with self.lock:
                return self.db.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Query failed: {e}") from e

    def _write(self, sql: str, params: Tuple = ()) -> None:
        try:
            with self.lock:
                self.db.execute(sql, params)
                self.db.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Write failed: {e}") from e

    @staticmethod
    def _decode(data: Optional[str]) -> Dict[str, Any]:
        if not data:
            return {}
        try:
            decoded = json.loads(data)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}

    # ItemIndex

    def list_apps(self) -> List[AppInfo]:
        rows = self._query("SELECT key, data FROM searchables WHERE type = ? ORDER BY key", (ItemKind.APP.value,))
        apps = []
        for key, data in rows:
            label = self._decode(data).get('label') or key
            apps.append(AppInfo(key=key, label=str(label)))
        return apps

    def hidden_keys(self) -> Set[str]:
        return {row[0] for row in self._query("SELECT key FROM searchables WHERE hidden = 1")}

    def load_weights(self) -> Dict[str, Any]:
        return {key: weight for key, weight in self._query("SELECT key, weight FROM searchables")}

    def get_record(self, key: str) -> Optional[SearchableItem]:
        rows = self._query(
            "SELECT key, type, data, launch_count, hidden, weight FROM searchables WHERE key = ?",
            (key,)
        )
        if not rows:
            return None

        key, kind, data, launch_count, hidden, weight = rows[0]
        try:
            item_kind = ItemKind(kind)
        except ValueError:
            item_kind = ItemKind.APP
        return SearchableItem(
            key=key,
            kind=item_kind,
            hidden=bool(hidden),
            weight=clamp_weight(weight),
            launch_count=launch_count if isinstance(launch_count, int) else 0,
            data=self._decode(data),
        )

    def insert_record(self, item: SearchableItem) -> None:
        self._write(
            """
            INSERT INTO searchables (key, type, data, launch_count, hidden, weight)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (item.key, item.kind.value, json.dumps(item.data), item.launch_count, int(item.hidden), item.weight)
        )

    def update_record(self, key: str, launch_count: int, weight: float) -> None:
        self._write(
            "UPDATE searchables SET launch_count = ?, weight = ? WHERE key = ?",
            (launch_count, weight, key)
        )

    def set_hidden(self, key: str, hidden: bool = True) -> bool:
        """Mark an item hidden; returns False if the key is unknown."""
        if not self._query("SELECT 1 FROM searchables WHERE key = ?", (key,)):
            return False
        self._write("UPDATE searchables SET hidden = ? WHERE key = ?", (int(hidden), key))
        return True

    def launch_counts(self) -> List[Tuple[str, int, Any]]:
        """(key, launch_count, weight) for every launched item, heaviest first."""
        return self._query(
            "SELECT key, launch_count, weight FROM searchables WHERE launch_count > 0 "
            "ORDER BY weight DESC, key"
        )

    # ShortcutProvider

    async def list_shortcuts(self, owner_key: str) -> List[ShortcutRef]:
        rows = self._query(
            "SELECT owner_key, shortcut_id, short_label, long_label FROM shortcuts "
            "WHERE owner_key = ? ORDER BY shortcut_id",
            (owner_key,)
        )
        return [ShortcutRef(*row) for row in rows]

    # TagIndex

    def favorites(self) -> List[str]:
        return [row[0] for row in self._query("SELECT item_key FROM favorites ORDER BY position")]

    def tag_rows(self) -> Iterable[Tuple[int, str, Optional[str]]]:
        return self._query(
            "SELECT tags.id, tags.name, tag_items.item_key FROM tags "
            "LEFT JOIN tag_items ON tag_items.tag_id = tags.id"
        )

    def add_favorite(self, key: str) -> None:
        self._write(
            "INSERT OR IGNORE INTO favorites (item_key, position) "
            "VALUES (?, (SELECT COALESCE(MAX(position), -1) + 1 FROM favorites))",
            (key,)
        )

    # Catalog import

    def import_catalog(self, catalog: Mapping[str, Any]) -> Dict[str, int]:
        """
        Load apps, shortcuts, tags, favorites and hidden keys from a mapping.

        Existing usage records are kept; app labels and shortcuts are replaced.

        Expected shape:

            apps:
              - key: org.mozilla.firefox
                label: Firefox
                shortcuts:
                  - id: private
                    short_label: New private tab
            favorites: [org.mozilla.firefox]
            hidden: []
            tags:
              - name: Web
                items: [org.mozilla.firefox]

        Returns:
            Counts of imported apps, shortcuts, tags and favorites
        """
        counts = {'apps': 0, 'shortcuts': 0, 'tags': 0, 'favorites': 0}

        try:
            with self.lock:
                for app in catalog.get('apps') or []:
                    key = app['key']
                    self.db.execute(
                        """
                        INSERT INTO searchables (key, type, data) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET data = excluded.data
                        """,
                        (key, ItemKind.APP.value, json.dumps({'label': app.get('label') or key}))
                    )
                    counts['apps'] += 1

                    self.db.execute("DELETE FROM shortcuts WHERE owner_key = ?", (key,))
                    for shortcut in app.get('shortcuts') or []:
                        self.db.execute(
                            "INSERT INTO shortcuts (owner_key, shortcut_id, short_label, long_label) "
                            "VALUES (?, ?, ?, ?)",
                            (key, str(shortcut['id']), shortcut['short_label'], shortcut.get('long_label'))
                        )
                        counts['shortcuts'] += 1

                for key in catalog.get('hidden') or []:
                    self.db.execute("UPDATE searchables SET hidden = 1 WHERE key = ?", (key,))

                favorites = catalog.get('favorites')
                if favorites is not None:
                    self.db.execute("DELETE FROM favorites")
                    for position, key in enumerate(favorites):
                        self.db.execute(
                            "INSERT OR IGNORE INTO favorites (item_key, position) VALUES (?, ?)",
                            (key, position)
                        )
                        counts['favorites'] += 1

                for tag in catalog.get('tags') or []:
                    self.db.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (tag['name'],))
                    tag_id = self.db.execute("SELECT id FROM tags WHERE name = ?", (tag['name'],)).fetchone()[0]
                    self.db.execute("DELETE FROM tag_items WHERE tag_id = ?", (tag_id,))
                    for key in tag.get('items') or []:
                        self.db.execute(
                            "INSERT OR IGNORE INTO tag_items (tag_id, item_key) VALUES (?, ?)",
                            (tag_id, key)
                        )
                    counts['tags'] += 1

                self.db.commit()
        except (sqlite3.Error, KeyError, TypeError) as e:
            self.db.rollback()
            raise StoreError(f"Catalog import failed: {e}") from e

        logger.info(
            f"Imported {counts['apps']} apps, {counts['shortcuts']} shortcuts, "
            f"{counts['tags']} tags, {counts['favorites']} favorites"
        )
        return counts

    def close(self) -> None:
        with self.lock:
            self.db.close()
