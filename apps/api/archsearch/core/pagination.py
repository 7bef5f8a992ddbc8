from typing import Tuple


def page_bounds(page: int, page_size: int) -> Tuple[int, int]:
    """ Return (offset, limit) for a 1-based page number. """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return (page - 1) * page_size, page_size

def compute_has_more(returned: int, page: int, page_size: int, total: int) -> bool:
    """ A full page that has not yet reached the total implies another page. """
    return returned == page_size and page * page_size < total
