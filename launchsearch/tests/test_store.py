"""Tests for the SQLite item index."""

import pytest

from launchsearch.engine.aggregator import SearchSession
from launchsearch.engine.config import Config
from launchsearch.engine.errors import StoreError
from launchsearch.engine.models import AppInfo, ItemKind, SearchableItem, ShortcutRef
from launchsearch.engine.store import SQLiteItemIndex
from launchsearch.engine.weights import WeightStore


@pytest.fixture
def store(tmp_path, catalog):
    index = SQLiteItemIndex(tmp_path / "data" / "items.db")
    index.import_catalog(catalog)
    yield index
    index.close()


class TestCatalogImport:
    def test_counts(self, tmp_path, catalog):
        index = SQLiteItemIndex(tmp_path / "items.db")

        counts = index.import_catalog(catalog)

        assert counts == {'apps': 3, 'shortcuts': 2, 'tags': 2, 'favorites': 2}
        index.close()

    def test_apps_and_hidden(self, store):
        assert store.list_apps() == [
            AppInfo("com.android.chrome", "Chrome"),
            AppInfo("com.secret.vault", "Fire Vault"),
            AppInfo("org.mozilla.firefox", "Firefox"),
        ]
        assert store.hidden_keys() == {"com.secret.vault"}

    @pytest.mark.asyncio
    async def test_shortcuts(self, store):
        shortcuts = await store.list_shortcuts("org.mozilla.firefox")

        assert shortcuts == [
            ShortcutRef("org.mozilla.firefox", "new", "New tab", None),
            ShortcutRef("org.mozilla.firefox", "private", "Private tab", "New private tab"),
        ]
        assert await store.list_shortcuts("com.android.chrome") == []

    def test_favorites_and_tags(self, store):
        assert store.favorites() == ["com.android.chrome", "org.mozilla.firefox"]
        rows = sorted(store.tag_rows(), key=lambda row: (row[1], row[2] or ""))
        assert [(name, key) for _, name, key in rows] == [
            ("Empty", None),
            ("Web", "com.android.chrome"),
            ("Web", "org.mozilla.firefox"),
        ]

    def test_reimport_keeps_usage(self, store, catalog):
        WeightStore(store).record_launch("org.mozilla.firefox", ItemKind.APP)

        catalog['apps'][0]['label'] = 'Firefox Nightly'
        store.import_catalog(catalog)

        record = store.get_record("org.mozilla.firefox")
        assert record.launch_count == 1
        assert record.weight == pytest.approx(0.15)
        assert AppInfo("org.mozilla.firefox", "Firefox Nightly") in store.list_apps()

    def test_invalid_catalog_is_rolled_back(self, tmp_path):
        index = SQLiteItemIndex(tmp_path / "items.db")

        with pytest.raises(StoreError):
            index.import_catalog({'apps': [{'key': 'a.b', 'label': 'A'}, {'label': 'no key'}]})

        assert index.list_apps() == []
        index.close()


class TestRecords:
    def test_insert_and_update(self, store):
        store.insert_record(SearchableItem(
            key="shortcut:org.mozilla.firefox:private",
            kind=ItemKind.SHORTCUT,
            weight=0.15,
            launch_count=1,
            data={'label': 'Private tab'},
        ))
        store.update_record("shortcut:org.mozilla.firefox:private", 2, 0.2775)

        record = store.get_record("shortcut:org.mozilla.firefox:private")
        assert record.kind == ItemKind.SHORTCUT
        assert record.launch_count == 2
        assert record.weight == pytest.approx(0.2775)
        assert record.data == {'label': 'Private tab'}

    def test_unknown_record(self, store):
        assert store.get_record("nope") is None

    def test_malformed_weight_reads_as_zero(self, store):
        store.db.execute("UPDATE searchables SET weight = 'corrupt' WHERE key = 'com.android.chrome'")
        store.db.commit()

        assert store.get_record("com.android.chrome").weight == 0.0
        assert WeightStore(store).get("com.android.chrome") == 0.0

    def test_set_hidden(self, store):
        assert store.set_hidden("com.android.chrome")
        assert "com.android.chrome" in store.hidden_keys()
        assert store.set_hidden("com.android.chrome", False)
        assert "com.android.chrome" not in store.hidden_keys()
        assert not store.set_hidden("missing")

    def test_add_favorite_appends(self, store):
        store.add_favorite("com.secret.vault")
        store.add_favorite("com.android.chrome")

        assert store.favorites() == ["com.android.chrome", "org.mozilla.firefox", "com.secret.vault"]

    def test_launch_counts(self, store):
        weights = WeightStore(store)
        weights.record_launch("com.android.chrome", ItemKind.APP)
        weights.record_launch("org.mozilla.firefox", ItemKind.APP)
        weights.record_launch("org.mozilla.firefox", ItemKind.APP)

        rows = store.launch_counts()

        assert [(key, count) for key, count, _ in rows] == [
            ("org.mozilla.firefox", 2),
            ("com.android.chrome", 1),
        ]

    def test_closed_store_raises_store_error(self, tmp_path):
        index = SQLiteItemIndex(tmp_path / "items.db")
        index.close()

        with pytest.raises(StoreError):
            index.list_apps()


class TestSessionOverStore:
    @pytest.mark.asyncio
    async def test_end_to_end_search(self, store):
        config = Config(database_path=store.db_path)
        session = SearchSession(config, store, shortcut_provider=store, tag_index=store)

        session.set_query("private")
        await session.settle()

        assert session.results.apps == []

        session.set_query("firefox")
        await session.settle()

        assert [r.app.key for r in session.results.apps] == ["org.mozilla.firefox"]
        assert {r.shortcut.shortcut_id for r in session.results.shortcuts} == {"new", "private"}
        assert [app.key for app in session.favorite_apps()] == ["com.android.chrome", "org.mozilla.firefox"]
