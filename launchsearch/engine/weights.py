"""Usage weights: a per-item affinity in [0, 1] reinforced on every launch.

    first launch:   weight = 0.15
    later launches: weight = min(1, weight * 0.85 + 0.15)

The update is an exponential approach to 1: 0.15, 0.2775, 0.385875, ...
Old behaviour decays geometrically. The weight approaches 1 and ``min`` caps
it at 1 once float rounding closes the gap.
"""

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from .errors import StoreError
from .interfaces import ItemIndex
from .models import ItemKind, SearchableItem
from .scoring import clamp_weight


INITIAL_WEIGHT = 0.15
DECAY = 0.85
REINFORCEMENT = 0.15


def next_weight(current: Any) -> float:
    return min(1.0, clamp_weight(current) * DECAY + REINFORCEMENT)


class WeightStore:
    """
    Sole writer of usage weights.

    Reads are served from an in-memory cache loaded from the item index;
    each write goes to the index first and then refreshes the cache entry.
    """

    def __init__(self, index: ItemIndex):
        self.index = index
        self._weights: Dict[str, float] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read every weight from the index. Malformed values load as 0."""
        try:
            raw = self.index.load_weights()
        except Exception as e:
            logger.error(f"Failed to load item weights: {e}")
            raw = {}
        self._weights = {key: clamp_weight(value) for key, value in raw.items()}
        logger.debug(f"Loaded {len(self._weights)} item weights")

    def get(self, key: str) -> float:
        return self._weights.get(key, 0.0)

    def __contains__(self, key: str) -> bool:
        return key in self._weights

    def snapshot(self) -> Mapping[str, float]:
        """Read-only copy taken at the start of a search pass."""
        return MappingProxyType(dict(self._weights))

    def record_launch(
        self,
        key: str,
        kind: ItemKind,
        data: Optional[Dict[str, Any]] = None
    ) -> float:
        """
        Reinforce an item after it was launched.

        Args:
            key: Searchable key of the launched item
            kind: App or shortcut; used when the record is created
            data: Display payload stored with a new record

        Returns:
            The new weight

        Raises:
            StoreError: If the index rejects the write
        """
        try:
            existing = self.index.get_record(key)

            if existing is not None:
                weight = next_weight(existing.weight)
                launch_count = (existing.launch_count or 0) + 1
                self.index.update_record(key, launch_count, weight)
            else:
                weight = INITIAL_WEIGHT
                launch_count = 1
                self.index.insert_record(SearchableItem(
                    key=key,
                    kind=kind,
                    weight=weight,
                    launch_count=launch_count,
                    data=dict(data or {})
                ))
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to record launch for {key}: {e}") from e

        self._weights[key] = weight
        logger.debug(f"Recorded launch of {key}: count={launch_count} weight={weight:.4f}")
        return weight
