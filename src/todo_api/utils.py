from __future__ import annotations

from typing import Tuple


# PUBLIC_INTERFACE
def page_bounds(page: int, per_page: int) -> Tuple[int, int]:
    """
    Translate a 1-indexed page number into slice bounds.

    Args:
        page: Page number, starting at 1.
        per_page: Number of items per page.

    Returns:
        (start, end) suitable for `items[start:end]`.
    """
    start = (max(page, 1) - 1) * max(per_page, 0)
    return start, start + max(per_page, 0)
