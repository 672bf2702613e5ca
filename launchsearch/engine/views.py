"""Unranked collections shown while the query is empty.

These never go through scoring; they only apply visibility rules and the
favorites tag selection.
"""

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .models import AppInfo
from .scoring import maybe_reverse


ALL_TAGS = 'all'

TagSelection = Union[int, str]


@dataclass
class FavoriteTag:
    id: int
    name: str
    keys: Set[str] = field(default_factory=set)


def visible_apps(apps: Iterable[AppInfo], hidden: AbstractSet[str], show_hidden: bool) -> List[AppInfo]:
    return [app for app in apps if show_hidden or app.key not in hidden]


def all_apps(
    apps: Iterable[AppInfo],
    hidden: AbstractSet[str],
    show_hidden: bool = False,
    bottom_up: bool = False
) -> List[AppInfo]:
    """Visible apps in label order."""
    ordered = sorted(visible_apps(apps, hidden, show_hidden), key=lambda app: app.label.casefold())
    return maybe_reverse(ordered, bottom_up)


def group_favorite_tags(
    rows: Iterable[Tuple[int, str, Optional[str]]],
    favorites: Sequence[str]
) -> List[FavoriteTag]:
    """
    Group tag membership rows into tags that contain at least one favorite.

    Args:
        rows: (tag_id, tag_name, item_key) rows; item_key may be None
        favorites: Favorite item keys

    Returns:
        Non-empty tags sorted by name
    """
    favorite_set = set(favorites)
    grouped: Dict[int, FavoriteTag] = {}

    for tag_id, name, key in rows:
        tag = grouped.get(tag_id)
        if tag is None:
            tag = FavoriteTag(id=tag_id, name=name)
            grouped[tag_id] = tag
        if key and key in favorite_set:
            tag.keys.add(key)

    tags = [tag for tag in grouped.values() if tag.keys]
    tags.sort(key=lambda tag: tag.name.casefold())
    return tags


def resolve_tag_selection(selected: TagSelection, tags: Sequence[FavoriteTag]) -> TagSelection:
    """Fall back to all favorites when the selected tag no longer exists."""
    if selected == ALL_TAGS:
        return ALL_TAGS
    if any(tag.id == selected for tag in tags):
        return selected
    return ALL_TAGS


def favorite_apps(
    favorites: Sequence[str],
    apps: Iterable[AppInfo],
    hidden: AbstractSet[str],
    show_hidden: bool = False,
    tags: Sequence[FavoriteTag] = (),
    selected: TagSelection = ALL_TAGS
) -> List[AppInfo]:
    """Favorite apps in favorites order, narrowed to the selected tag."""
    by_key = {app.key: app for app in apps}
    visible = [
        by_key[key] for key in favorites
        if key in by_key and (show_hidden or key not in hidden)
    ]

    if selected == ALL_TAGS:
        return visible

    active = next((tag for tag in tags if tag.id == selected), None)
    if active is None:
        return visible

    return [app for app in visible if app.key in active.keys]
