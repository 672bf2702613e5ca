"""Search session: fans a query out to every result source and merges the buckets.

Each query change starts a new generation. Synchronous sources (installed
apps and the heuristic action generators) run inline and commit at once.
Shortcut lookup and the network-backed sources run as asyncio tasks carrying
the generation token they were dispatched with; a task whose token is no
longer current when it finishes is dropped at commit time. Nothing is
cancelled to achieve this, so collaborators need no cancellation support.
The debounce timers of network sources are the one exception: they are
cancelled when a newer generation starts so superseded requests never fire.

All methods must be called from the event loop that runs the tasks.
"""

import asyncio
import time
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Set

from loguru import logger

from .best_match import resolve_best_match
from .config import Config
from .errors import HealthTracker
from .events import Event, EventBus
from .filters import FilterState, all_categories_enabled, enabled_categories_count, toggle
from .interfaces import ItemIndex, ShortcutProvider, TagIndex
from .models import EMPTY_RESULTS, AppInfo, AppResult, SearchResult, SearchResults
from .scoring import maybe_reverse
from .sources import (
    SearchContext,
    SyncSource,
    article_actions,
    articles_enabled,
    default_sync_sources,
    place_actions,
    places_enabled,
    rank_apps,
    search_shortcuts,
    shortcuts_enabled,
)
from .views import ALL_TAGS, FavoriteTag, TagSelection, all_apps, favorite_apps, group_favorite_tags, resolve_tag_selection
from .weights import WeightStore

if TYPE_CHECKING:
    from .executor import ActionExecutor


class SearchGeneration:
    """Monotonic counter identifying the current query attempt."""

    def __init__(self):
        self._value = 0

    @property
    def current(self) -> int:
        return self._value

    def advance(self) -> int:
        self._value += 1
        return self._value

    def is_current(self, token: int) -> bool:
        return token == self._value


class DebouncedScheduler:
    """
    Delayed tasks keyed by source name.

    A task re-checks its generation after the delay and does nothing if it
    was superseded; scheduling a new generation also cancels pending timers.
    """

    def __init__(self, generation: SearchGeneration):
        self.generation = generation
        self._pending: Dict[str, asyncio.Task] = {}

    def schedule(
        self,
        name: str,
        token: int,
        delay: float,
        callback: Callable[[], Awaitable[Any]]
    ) -> asyncio.Task:
        self.cancel(name)

        async def fire():
            await asyncio.sleep(delay)
            if not self.generation.is_current(token):
                logger.debug(f"Debounced {name} for generation {token} superseded before firing")
                return
            await callback()

        task = asyncio.get_running_loop().create_task(fire())
        self._pending[name] = task
        task.add_done_callback(lambda done, key=name: self._forget(key, done))
        return task

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._pending.get(name) is task:
            del self._pending[name]

    def cancel(self, name: str) -> bool:
        task = self._pending.pop(name, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        cancelled = 0
        for name in list(self._pending):
            if self.cancel(name):
                cancelled += 1
        return cancelled

    @property
    def pending(self) -> List[asyncio.Task]:
        return [task for task in self._pending.values() if not task.done()]


class SearchSession:
    """
    Query-time state for the launcher search bar.

    Holds the query, filter state, merged results and per-bucket loading
    markers. ``results`` is replaced, never mutated, so a reader always sees
    a consistent envelope.
    """

    def __init__(
        self,
        config: Config,
        index: ItemIndex,
        shortcut_provider: Optional[ShortcutProvider] = None,
        weights: Optional[WeightStore] = None,
        tag_index: Optional[TagIndex] = None,
        sync_sources: Optional[Mapping[str, SyncSource]] = None,
        event_bus: Optional[EventBus] = None,
        executor: Optional["ActionExecutor"] = None
    ):
        """
        Initialize a search session.

        Args:
            config: Settings snapshot (source switches, behavior, tuning)
            index: Installed item catalog
            shortcut_provider: Shortcut lookup; shortcuts are skipped without one
            weights: Shared weight store; created over the index when omitted
            tag_index: Favorites and tags for the empty-query view
            sync_sources: Heuristic action sources by bucket name
            event_bus: Optional bus receiving search.* events
            executor: ActionExecutor used by ``launch_best_match``
        """
        self.config = config
        self.index = index
        self.shortcut_provider = shortcut_provider
        self.weights = weights if weights is not None else WeightStore(index)
        self.tag_index = tag_index
        self.sync_sources: Dict[str, SyncSource] = dict(
            sync_sources if sync_sources is not None else default_sync_sources()
        )
        self.event_bus = event_bus
        self.executor = executor

        self.generation = SearchGeneration()
        self.health = HealthTracker()
        self._scheduler = DebouncedScheduler(self.generation)
        self._inflight: Set[asyncio.Task] = set()

        self._query = ''
        self._filters = config.default_filters
        self._results: SearchResults = EMPTY_RESULTS
        self._loading: Set[str] = set()
        self._apps: List[AppInfo] = []
        self._hidden: FrozenSet[str] = frozenset()
        self._stats = defaultdict(int)

        self.refresh_metadata()

    # State

    @property
    def query(self) -> str:
        return self._query

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def results(self) -> SearchResults:
        return self._results

    @property
    def loading_sources(self) -> FrozenSet[str]:
        return frozenset(self._loading)

    @property
    def all_categories_enabled(self) -> bool:
        return all_categories_enabled(self._filters)

    @property
    def enabled_categories(self) -> int:
        return enabled_categories_count(self._filters)

    @property
    def bottom_up(self) -> bool:
        return self.config.behavior.results_bottom_up

    @property
    def best_match(self) -> Optional[SearchResult]:
        return resolve_best_match(
            self._results,
            self._query,
            launch_on_enter=self.config.behavior.launch_on_enter,
            bottom_up=self.bottom_up
        )

    def refresh_metadata(self) -> None:
        """Reload installed apps, hidden keys and weights from the index."""
        try:
            self._apps = list(self.index.list_apps())
            self._hidden = frozenset(self.index.hidden_keys())
        except Exception as e:
            logger.error(f"Failed to load searchable metadata: {e}")
        self.weights.reload()

    # Inputs

    def set_query(self, query: str) -> int:
        """
        Replace the query and start a new search pass.

        Returns:
            The generation token of the new pass
        """
        previous = self._query
        self._query = query or ''
        if previous.strip() and not self._query.strip():
            self._filters = self.config.default_filters
        return self._run_search()

    def toggle_filter(self, key: str) -> FilterState:
        """Apply a filter chip tap and re-run the current query."""
        self._filters = toggle(self._filters, key)
        self._run_search()
        return self._filters

    def apply_settings(self, config: Config) -> None:
        self.config = config
        if not self._query.strip():
            self._filters = config.default_filters
        self._run_search()

    # Search pass

    def _run_search(self) -> int:
        token = self.generation.advance()
        cancelled = self._scheduler.cancel_all()
        if cancelled:
            logger.debug(f"Cancelled {cancelled} debounced lookups for generation {token}")

        text = self._query.strip()
        self._results = EMPTY_RESULTS
        self._loading = set()
        if not text:
            return token

        self._stats['searches'] += 1
        start = time.perf_counter()

        ctx = self._build_context(text, token)
        self._publish('search.started', token, query=text)

        ranked_apps = self._run_sync('apps', token, lambda: rank_apps(ctx, self._apps))
        for bucket, source in self.sync_sources.items():
            self._run_sync(bucket, token, lambda source=source: source(ctx))

        self._dispatch_shortcuts(ctx, token, ranked_apps)
        self._dispatch_debounced(
            'articles', ctx, token, articles_enabled(ctx),
            self.config.tuning.articles_delay_ms, article_actions
        )
        self._dispatch_debounced(
            'places', ctx, token, places_enabled(ctx),
            self.config.tuning.places_delay_ms, place_actions
        )

        latency = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Search pass {token} for '{text}': {self._results.total} inline results "
            f"in {latency:.1f}ms, pending={sorted(self._loading)}"
        )
        return token

    def _build_context(self, text: str, token: int) -> SearchContext:
        weights = self.weights.snapshot()
        try:
            return SearchContext.build(
                text, self._filters, self.config.sources, weights=weights, hidden=self._hidden
            )
        except Exception as e:
            # Apps and shortcuts still match by name
            self._record_failure('context', token, e)
            return SearchContext.unclassified(
                text, self._filters, self.config.sources, weights=weights, hidden=self._hidden
            )

    def _run_sync(self, bucket: str, token: int, producer: Callable[[], List[Any]]) -> List[Any]:
        try:
            entries = producer()
            self.health.record_success(bucket)
        except Exception as e:
            entries = []
            self._record_failure(bucket, token, e)
        self._commit(bucket, entries, token)
        return entries

    def _dispatch_shortcuts(self, ctx: SearchContext, token: int, ranked_apps: Sequence[AppResult]) -> None:
        if self.shortcut_provider is None or not shortcuts_enabled(ctx, ranked_apps):
            self._commit('shortcuts', [], token)
            return

        candidates = list(ranked_apps[:self.config.tuning.shortcut_candidates])
        provider = self.shortcut_provider
        self._loading.add('shortcuts')
        self._spawn(self._run_async(
            'shortcuts', token, lambda: search_shortcuts(ctx, candidates, provider)
        ))

    def _dispatch_debounced(
        self,
        bucket: str,
        ctx: SearchContext,
        token: int,
        enabled: bool,
        delay_ms: int,
        producer: Callable[[SearchContext], List[Any]]
    ) -> None:
        if not enabled:
            self._commit(bucket, [], token)
            return

        async def produce():
            return producer(ctx)

        self._loading.add(bucket)
        self._scheduler.schedule(
            bucket, token, delay_ms / 1000.0,
            lambda: self._run_async(bucket, token, produce)
        )

    async def _run_async(
        self,
        bucket: str,
        token: int,
        factory: Callable[[], Awaitable[List[Any]]]
    ) -> None:
        try:
            entries = await factory()
            self.health.record_success(bucket)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            entries = []
            self._record_failure(bucket, token, e)
        self._commit(bucket, entries, token)

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def _commit(self, bucket: str, entries: Sequence[Any], token: int) -> bool:
        """Write a bucket if the token is still current; otherwise drop it."""
        if not self.generation.is_current(token):
            self._stats['discarded'] += 1
            logger.debug(
                f"Discarding stale {bucket} results from generation {token} "
                f"(current {self.generation.current})"
            )
            self._publish('search.discarded', token, bucket=bucket)
            return False

        self._results = self._results.with_bucket(bucket, maybe_reverse(entries, self.bottom_up))
        self._loading.discard(bucket)
        self._publish('search.committed', token, bucket=bucket, count=len(entries))
        return True

    def _record_failure(self, bucket: str, token: int, error: Exception) -> None:
        logger.error(f"Search source {bucket} failed: {error}")
        self.health.record_failure(bucket, error, query=self._query, generation=token)
        self._publish('search.failed', token, bucket=bucket, error=str(error))

    def _publish(self, event_type: str, token: int, **data) -> None:
        if self.event_bus is None:
            return
        self.event_bus.publish(Event(type=event_type, data=data, generation=token))

    async def settle(self) -> SearchResults:
        """Wait for every outstanding lookup and debounce timer, then return the results."""
        while True:
            pending = [task for task in self._inflight if not task.done()]
            pending.extend(self._scheduler.pending)
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        return self._results

    async def close(self) -> None:
        """Cancel every outstanding task; results stay as they are."""
        self._scheduler.cancel_all()
        tasks = [task for task in self._inflight if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._loading = set()

    # Launching

    async def launch_best_match(self) -> Optional[SearchResult]:
        """Launch or execute the current best match, if any."""
        match = self.best_match
        if match is None:
            return None
        if self.executor is None:
            logger.warning("No executor configured; best match not launched")
            return match
        await self.executor.launch(match)
        return match

    # Empty-query views

    @property
    def all_apps(self) -> List[AppInfo]:
        return all_apps(self._apps, self._hidden, self._filters.hidden_items, self.bottom_up)

    def favorite_tags(self) -> List[FavoriteTag]:
        if self.tag_index is None or not self.config.sources.search_favorites:
            return []
        try:
            return group_favorite_tags(self.tag_index.tag_rows(), self.tag_index.favorites())
        except Exception as e:
            logger.error(f"Failed to load favorite tags: {e}")
            return []

    def favorite_apps(self, selected: TagSelection = ALL_TAGS) -> List[AppInfo]:
        if self.tag_index is None or not self.config.sources.search_favorites:
            return []
        try:
            favorites = self.tag_index.favorites()
        except Exception as e:
            logger.error(f"Failed to load favorites: {e}")
            return []
        tags = self.favorite_tags() if selected != ALL_TAGS else []
        return favorite_apps(
            favorites,
            self._apps,
            self._hidden,
            show_hidden=self._filters.hidden_items,
            tags=tags,
            selected=resolve_tag_selection(selected, tags)
        )

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'generation': self.generation.current,
            'searches': self._stats['searches'],
            'discarded': self._stats['discarded'],
            'loading': sorted(self._loading),
            'pending_timers': len(self._scheduler.pending),
            'inflight': len([task for task in self._inflight if not task.done()]),
            'sources': self.health.summary(),
        }
