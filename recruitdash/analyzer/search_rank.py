"""RecruitDash — Search Rank Resolver."""

from typing import Any, Iterable, Optional


def get_latest_search_rank(rows: Iterable[Any]) -> Optional[int]:
    """Rank recorded on the most recent date, or None.

    ISO date strings compare correctly as text. The latest row wins even when
    its rank is None; earlier non-null ranks are not used as a fallback. On a
    date tie the first row seen is kept.
    """
    latest = None
    for row in rows or []:
        if latest is None or row.date > latest.date:
            latest = row
    if latest is None:
        return None
    return latest.search_rank
