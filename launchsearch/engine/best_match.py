"""Single-key confirmation: pick the one result Enter should launch."""

from typing import Optional, Tuple

from .models import SearchResult, SearchResults


# Structured, addressable things beat generic text actions
BEST_MATCH_PRIORITY: Tuple[str, ...] = (
    'apps',
    'shortcuts',
    'calendar',
    'places',
    'contacts',
    'articles',
    'websites',
    'files',
    'actions',
)


def resolve_best_match(
    results: SearchResults,
    query: str,
    launch_on_enter: bool = True,
    bottom_up: bool = False
) -> Optional[SearchResult]:
    """
    Return the top entry of the first non-empty bucket in priority order.

    Args:
        results: Merged result set for the query
        query: Current query text; nothing is resolved for an empty query
        launch_on_enter: The confirm-launches-best-match setting
        bottom_up: Buckets are stored reversed, so the top entry is the last one

    Returns:
        The best match, or None
    """
    if not launch_on_enter or not query.strip():
        return None

    for name in BEST_MATCH_PRIORITY:
        bucket = results.bucket(name)
        if bucket:
            return bucket[-1] if bottom_up else bucket[0]

    return None
