"""Filter bar state: nine category chips plus network and hidden-item switches.

The categories behave as a single-select-or-all group without an explicit
"All" chip:

- all enabled, tap a category   -> only that category
- only X enabled, tap X         -> all enabled again
- otherwise                     -> flip the tapped category
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import InvalidFilterKey


CATEGORIES: Tuple[str, ...] = (
    'apps',
    'shortcuts',
    'contacts',
    'events',
    'files',
    'tools',
    'websites',
    'articles',
    'places',
)

FLAGS: Tuple[str, ...] = ('allow_network', 'hidden_items')

# Persisted launcher settings use camelCase names
KEY_ALIASES = {
    'allowNetwork': 'allow_network',
    'hiddenItems': 'hidden_items',
}


@dataclass(frozen=True)
class FilterState:
    allow_network: bool = False
    hidden_items: bool = False
    apps: bool = True
    shortcuts: bool = True
    contacts: bool = True
    events: bool = True
    files: bool = True
    tools: bool = True
    websites: bool = True
    articles: bool = True
    places: bool = True

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]] = None) -> "FilterState":
        """Build a state from a partial mapping, defaulting missing keys."""
        if not values:
            return cls()
        known = {}
        for key, value in values.items():
            name = KEY_ALIASES.get(key, key)
            if name in CATEGORIES or name in FLAGS:
                known[name] = bool(value)
        return cls(**known)

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    def enabled_categories(self) -> Tuple[str, ...]:
        return tuple(key for key in CATEGORIES if getattr(self, key))


def resolve_key(key: str) -> str:
    name = KEY_ALIASES.get(key, key)
    if name not in CATEGORIES and name not in FLAGS:
        raise InvalidFilterKey(f"Unknown filter key: {key}")
    return name


def all_categories_enabled(state: FilterState) -> bool:
    return all(getattr(state, key) for key in CATEGORIES)


def enabled_categories_count(state: FilterState) -> int:
    return len(state.enabled_categories())


def toggle(state: FilterState, key: str) -> FilterState:
    """
    Apply a filter chip tap.

    Args:
        state: Current filter state
        key: A category name, or one of the standalone flags

    Returns:
        The new state; the input is not modified

    Raises:
        InvalidFilterKey: If the key is not a known flag or category
    """
    name = resolve_key(key)

    if name in FLAGS:
        return replace(state, **{name: not getattr(state, name)})

    if all_categories_enabled(state):
        narrowed = {category: False for category in CATEGORIES}
        narrowed[name] = True
        return replace(state, **narrowed)

    if getattr(state, name) and enabled_categories_count(state) == 1:
        return replace(state, **{category: True for category in CATEGORIES})

    return replace(state, **{name: not getattr(state, name)})
