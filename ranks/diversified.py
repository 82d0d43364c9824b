"""
Diversity-Constrained Ranker

Pure final-score ordering lets a viewer's own network fill every visible
position. This ranker sorts by final score but guarantees each page window a
minimum share of discovery content (posts from authors the viewer does not
follow):

Phase 1 — Sort:
    All candidates by final_score desc, then created_at desc, then id asc.

Phase 2 — Window fill (per page of size N):
    Take the next N candidates. While the window holds fewer than
    ceil(DISCOVERY_MIN_RATIO * N) discovery posts and discovery candidates
    remain outside the window, swap in the best outside discovery post and
    push out the lowest-scoring network post. Displaced posts return to the
    pool and compete for the next window. The window is then re-sorted.

Phase 3 — Pagination:
    Windows are concatenated into one deterministic permutation of the
    candidate set; a page is the slice at the cursor offset.

When the pool lacks enough discovery posts the window keeps what exists;
this is never an error.
"""

import math

from dataclasses import dataclass
from tclogger import logger

from ranks.aggregator import RankedItem
from ranks.constants import DISCOVERY_MIN_RATIO, FEED_PAGE_SIZE
from ranks.cursor import encode_cursor, decode_cursor


@dataclass(frozen=True)
class RankedPage:
    """One page of the ranked feed. Immutable: cached pages are shared.

    Attributes:
        results: Ordered (post, breakdown) items on this page.
        has_more: Whether candidates remain after this page.
        next_cursor: Opaque cursor for the next page, or None.
        total_candidates: Size of the candidate set.
        discovery_count: Discovery posts on this page.
    """

    results: tuple[RankedItem, ...] = ()
    has_more: bool = False
    next_cursor: str = None
    total_candidates: int = 0
    discovery_count: int = 0

    def to_dict(self) -> dict:
        return {
            "results": [item.to_dict() for item in self.results],
            "has_more": self.has_more,
            "next_cursor": self.next_cursor,
            "total_candidates": self.total_candidates,
            "discovery_count": self.discovery_count,
        }


def required_discovery(window_size: int, ratio: float = DISCOVERY_MIN_RATIO) -> int:
    # round first: 0.3 * 10 is 3.0000000000000004 in floating point
    return math.ceil(round(ratio * window_size, 9))


class DiversityRanker:
    """Final-score ranking with a discovery floor per window.

    Example:
        >>> ranker = DiversityRanker()
        >>> page = ranker.rank(scored_items, limit=10)
        >>> sum(item.breakdown.is_discovery for item in page.results) >= 3
        True  # when the pool holds at least 3 discovery posts
    """

    def __init__(self, min_discovery_ratio: float = DISCOVERY_MIN_RATIO):
        self.min_discovery_ratio = min_discovery_ratio

    @staticmethod
    def sort_items(items: list[RankedItem]) -> list[RankedItem]:
        return sorted(items, key=RankedItem.sort_key)

    def _fill_window(
        self, pool: list[RankedItem], window_size: int, verbose: bool = False
    ) -> tuple[list[RankedItem], list[RankedItem]]:
        """Select one window from a sorted pool.

        Returns:
            Tuple of (sorted window, sorted remaining pool).
        """
        window = pool[:window_size]
        outside = pool[window_size:]
        required = required_discovery(len(window), self.min_discovery_ratio)
        discovery_count = sum(item.breakdown.is_discovery for item in window)

        outside_discovery = [item for item in outside if item.breakdown.is_discovery]
        swapped_in = []
        displaced = []
        while discovery_count < required and outside_discovery:
            # window is sorted, so the last network item scores lowest
            network_idx = next(
                (
                    idx
                    for idx in range(len(window) - 1, -1, -1)
                    if not window[idx].breakdown.is_discovery
                ),
                None,
            )
            if network_idx is None:
                break
            displaced.append(window.pop(network_idx))
            incoming = outside_discovery.pop(0)
            swapped_in.append(incoming)
            window.append(incoming)
            discovery_count += 1

        if discovery_count < required and verbose:
            logger.warn(
                f"× Discovery floor unreachable: {discovery_count}/{required} "
                f"in window of {len(window)}"
            )

        if swapped_in:
            swapped_ids = {id(item) for item in swapped_in}
            outside = [item for item in outside if id(item) not in swapped_ids]
            outside = self.sort_items(outside + displaced)
            window = self.sort_items(window)
        return window, outside

    def diversify(
        self, items: list[RankedItem], window_size: int, verbose: bool = False
    ) -> list[RankedItem]:
        """Full diversified ordering: consecutive windows of `window_size`."""
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        pool = self.sort_items(items)
        ordered = []
        while pool:
            window, pool = self._fill_window(pool, window_size, verbose=verbose)
            ordered.extend(window)
        return ordered

    def rank(
        self,
        items: list[RankedItem],
        limit: int = FEED_PAGE_SIZE,
        cursor: str = None,
        verbose: bool = False,
    ) -> RankedPage:
        """Rank scored items and return the page at `cursor`.

        Raises:
            InvalidCursorError: if `cursor` cannot be decoded.
        """
        offset = decode_cursor(cursor)
        ordered = self.diversify(items, window_size=limit, verbose=verbose)
        results = ordered[offset : offset + limit]
        next_offset = offset + len(results)
        has_more = next_offset < len(ordered)
        page = RankedPage(
            results=tuple(results),
            has_more=has_more,
            next_cursor=encode_cursor(next_offset) if has_more else None,
            total_candidates=len(ordered),
            discovery_count=sum(item.breakdown.is_discovery for item in results),
        )
        if verbose:
            logger.mesg(
                f"  Ranked page: {len(results)} of {len(ordered)} candidates "
                f"(offset={offset}, discovery={page.discovery_count})"
            )
        return page
