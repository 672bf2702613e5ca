"""Result sources: installed-app ranking, shortcut lookup and heuristic actions.

Every source is a function of a ``SearchContext`` snapshot. Synchronous
sources are registered in ``default_sync_sources()``; the session runs them
inline. Shortcut, article and place lookups are driven asynchronously by the
session and only use the gating and building helpers defined here.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence

from loguru import logger

from .calculator import CalculatorResult, calculate, format_number
from .classifier import QueryClassification, classify, to_url
from .config import SourcesConfig
from .filters import FilterState
from .interfaces import ShortcutProvider
from .models import (
    ActionResult,
    ActionSource,
    ActionType,
    AppInfo,
    AppResult,
    ShortcutRef,
    ShortcutResult,
)
from .scoring import field_score, rank, total_score


MIN_CONTACT_QUERY = 2
MIN_CALENDAR_QUERY = 2
MIN_FILES_QUERY = 2
MIN_SHORTCUT_QUERY = 3
MIN_ARTICLE_QUERY = 4
MIN_PLACE_QUERY = 2


@dataclass(frozen=True)
class SearchContext:
    """Everything a source may read during one search pass."""
    query: str
    filters: FilterState
    sources: SourcesConfig
    classification: QueryClassification
    calculator: CalculatorResult
    weights: Mapping[str, float] = field(default_factory=dict)
    hidden: FrozenSet[str] = frozenset()

    @classmethod
    def build(
        cls,
        query: str,
        filters: FilterState,
        sources: SourcesConfig,
        weights: Optional[Mapping[str, float]] = None,
        hidden: Optional[FrozenSet[str]] = None
    ) -> "SearchContext":
        text = query.strip()
        return cls(
            query=text,
            filters=filters,
            sources=sources,
            classification=classify(text),
            calculator=calculate(text),
            weights=weights if weights is not None else {},
            hidden=frozenset(hidden or ()),
        )

    @classmethod
    def unclassified(
        cls,
        query: str,
        filters: FilterState,
        sources: SourcesConfig,
        weights: Optional[Mapping[str, float]] = None,
        hidden: Optional[FrozenSet[str]] = None
    ) -> "SearchContext":
        """Context with no shape flags and no calculation, for name matching only."""
        text = query.strip()
        return cls(
            query=text,
            filters=filters,
            sources=sources,
            classification=QueryClassification(),
            calculator=CalculatorResult(expression=text, result=None),
            weights=weights if weights is not None else {},
            hidden=frozenset(hidden or ()),
        )

    def score(self, fields: Sequence[Optional[str]]) -> float:
        return field_score(self.query, fields)

    def is_visible(self, key: str) -> bool:
        return self.filters.hidden_items or key not in self.hidden


def build_action(
    source: ActionSource,
    action_type: ActionType,
    title: str,
    value: str,
    subtitle: Optional[str] = None,
    total_score: float = 1.0
) -> ActionResult:
    return ActionResult(
        id=f"{source.value}:{action_type.value}:{value}",
        source=source,
        action_type=action_type,
        title=title,
        value=value,
        subtitle=subtitle,
        total_score=total_score,
    )


def unique_actions(actions: Sequence[ActionResult]) -> List[ActionResult]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for action in actions:
        if action.id in seen:
            continue
        seen.add(action.id)
        unique.append(action)
    return unique


def finalize_actions(actions: Sequence[ActionResult]) -> List[ActionResult]:
    return rank(unique_actions(actions))


# Installed apps

def rank_apps(ctx: SearchContext, apps: Sequence[AppInfo]) -> List[AppResult]:
    """Score apps on label and key, blended with their usage weight."""
    if not ctx.sources.search_apps or not ctx.filters.apps:
        return []

    matches = []
    for app in apps:
        score = ctx.score([app.label, app.key])
        if score <= 0:
            continue
        if not ctx.is_visible(app.key):
            continue
        matches.append(AppResult(
            app=app,
            total_score=total_score(score, ctx.weights.get(app.key, 0.0))
        ))

    return rank(matches)


# Heuristic action generators

def _contact_style_actions(ctx: SearchContext, source: ActionSource) -> List[ActionResult]:
    text = ctx.query
    actions = []
    if ctx.classification.is_phone:
        actions.extend([
            build_action(source, ActionType.CALL, f"Call {text}", text, total_score=1.0),
            build_action(source, ActionType.MESSAGE, f"Message {text}", text, total_score=0.95),
            build_action(source, ActionType.CREATE_CONTACT, f"Create contact for {text}", text, total_score=0.9),
        ])
    if ctx.classification.is_email:
        actions.extend([
            build_action(source, ActionType.EMAIL, f"Email {text}", text, total_score=1.0),
            build_action(source, ActionType.CREATE_CONTACT, f"Create contact for {text}", text, total_score=0.9),
        ])
    return actions


def contact_actions(ctx: SearchContext) -> List[ActionResult]:
    if not ctx.sources.search_contacts or not ctx.filters.contacts:
        return []
    if len(ctx.query) < MIN_CONTACT_QUERY:
        return []
    return finalize_actions(_contact_style_actions(ctx, ActionSource.CONTACTS))


def calendar_actions(ctx: SearchContext) -> List[ActionResult]:
    if not ctx.sources.search_calendar or not ctx.filters.events:
        return []
    if len(ctx.query) < MIN_CALENDAR_QUERY or not ctx.classification.has_date_time_hint:
        return []
    return [build_action(
        ActionSource.CALENDAR, ActionType.SCHEDULE_EVENT,
        f"Schedule event: {ctx.query}", ctx.query, total_score=0.85
    )]


def file_actions(ctx: SearchContext) -> List[ActionResult]:
    if not ctx.sources.search_files or not ctx.filters.files:
        return []
    if len(ctx.query) < MIN_FILES_QUERY:
        return []
    return [build_action(
        ActionSource.FILES, ActionType.SEARCH_FILES,
        f"Search files for “{ctx.query}”", ctx.query, total_score=0.8
    )]


def tool_actions(ctx: SearchContext) -> List[ActionResult]:
    """Calculator result and timer shortcut."""
    sources = ctx.sources
    if not (sources.search_calculator and sources.search_unit_converter and ctx.filters.tools):
        return []

    actions = []
    if ctx.calculator.result is not None:
        display = format_number(ctx.calculator.result)
        actions.append(build_action(
            ActionSource.TOOLS, ActionType.SHARE,
            f"Copy result {display}", display,
            subtitle=ctx.calculator.expression, total_score=1.0
        ))
    if ctx.classification.duration_minutes is not None:
        actions.append(build_action(
            ActionSource.TOOLS, ActionType.TIMER,
            f"Start timer for {ctx.query}", ctx.query, total_score=0.9
        ))
    return finalize_actions(actions)


def website_actions(ctx: SearchContext) -> List[ActionResult]:
    if not ctx.sources.search_websites or not ctx.filters.websites:
        return []
    if not ctx.query or not ctx.filters.allow_network:
        return []

    if ctx.classification.is_url:
        return [build_action(
            ActionSource.WEBSITES, ActionType.OPEN_URL,
            f"Open {to_url(ctx.query)}", ctx.query, total_score=0.9
        )]
    return [build_action(
        ActionSource.WEBSITES, ActionType.WEB_SEARCH,
        f"Search websites for “{ctx.query}”", ctx.query, total_score=0.7
    )]


def generic_actions(ctx: SearchContext) -> List[ActionResult]:
    """Fallback actions offered for any query; not tied to a filter category."""
    text = ctx.query
    if not text:
        return []

    actions = []
    if ctx.classification.is_url:
        actions.append(build_action(
            ActionSource.ACTIONS, ActionType.OPEN_URL, f"Open {to_url(text)}", text, total_score=0.95
        ))
    actions.extend(_contact_style_actions(ctx, ActionSource.ACTIONS))
    if ctx.classification.has_date_time_hint:
        actions.append(build_action(
            ActionSource.ACTIONS, ActionType.SCHEDULE_EVENT, f"Schedule event: {text}", text, total_score=0.8
        ))
    actions.extend([
        build_action(
            ActionSource.ACTIONS, ActionType.WEB_SEARCH, f"Search web for “{text}”", text, total_score=0.65
        ),
        build_action(ActionSource.ACTIONS, ActionType.SHARE, f"Share “{text}”", text, total_score=0.5),
    ])
    if ctx.classification.duration_minutes is not None:
        actions.extend([
            build_action(ActionSource.ACTIONS, ActionType.TIMER, f"Set timer for {text}", text, total_score=0.85),
            build_action(
                ActionSource.ACTIONS, ActionType.SET_ALARM, f"Set alarm using {text}", text, total_score=0.8
            ),
        ])
    return finalize_actions(actions)


SyncSource = Callable[[SearchContext], List[ActionResult]]


def default_sync_sources() -> Dict[str, SyncSource]:
    """Heuristic action sources by bucket name, in commit order."""
    return {
        'contacts': contact_actions,
        'calendar': calendar_actions,
        'files': file_actions,
        'tools': tool_actions,
        'websites': website_actions,
        'actions': generic_actions,
    }


# Asynchronous sources

def shortcuts_enabled(ctx: SearchContext, ranked_apps: Sequence[AppResult]) -> bool:
    return (
        ctx.sources.search_app_shortcuts
        and ctx.filters.shortcuts
        and len(ctx.query) >= MIN_SHORTCUT_QUERY
        and len(ranked_apps) > 0
    )


async def _fetch_shortcuts(provider: ShortcutProvider, owner_key: str) -> List[ShortcutRef]:
    return await provider.list_shortcuts(owner_key)


async def search_shortcuts(
    ctx: SearchContext,
    candidates: Sequence[AppResult],
    provider: ShortcutProvider
) -> List[ShortcutResult]:
    """
    Score the shortcuts of already-matched apps.

    Args:
        ctx: Search pass snapshot
        candidates: Ranked app matches whose shortcuts are looked up
        provider: Shortcut collaborator; a failing owner contributes nothing

    Returns:
        Shortcut matches sorted by total score
    """
    fetched = await asyncio.gather(
        *(_fetch_shortcuts(provider, result.app.key) for result in candidates),
        return_exceptions=True
    )

    matches = []
    for app_result, shortcuts in zip(candidates, fetched):
        if isinstance(shortcuts, BaseException):
            logger.debug(f"Shortcut lookup failed for {app_result.app.key}: {shortcuts}")
            continue

        for shortcut in shortcuts or []:
            key = shortcut.key
            if not ctx.is_visible(key):
                continue

            score = ctx.score([shortcut.short_label, shortcut.long_label, app_result.app.label])
            if score <= 0:
                continue

            weight = ctx.weights.get(key, ctx.weights.get(shortcut.owner_key, 0.0))
            matches.append(ShortcutResult(
                key=key,
                shortcut=shortcut,
                app_label=app_result.app.label,
                total_score=total_score(score, weight)
            ))

    return rank(matches)


def articles_enabled(ctx: SearchContext) -> bool:
    return (
        ctx.sources.search_wikipedia
        and ctx.filters.articles
        and ctx.filters.allow_network
        and len(ctx.query) >= MIN_ARTICLE_QUERY
    )


def article_actions(ctx: SearchContext) -> List[ActionResult]:
    return [build_action(
        ActionSource.ARTICLES, ActionType.SEARCH_WIKIPEDIA,
        f"Search Wikipedia for “{ctx.query}”", ctx.query, total_score=0.7
    )]


def places_enabled(ctx: SearchContext) -> bool:
    return (
        ctx.sources.search_locations
        and ctx.filters.places
        and ctx.filters.allow_network
        and len(ctx.query) >= MIN_PLACE_QUERY
    )


def place_actions(ctx: SearchContext) -> List[ActionResult]:
    return [build_action(
        ActionSource.PLACES, ActionType.SEARCH_PLACES,
        f"Search places for “{ctx.query}”", ctx.query, total_score=0.75
    )]
