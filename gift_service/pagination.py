"""
Pagination over ranked candidates

Page state is never stored on the server. The current page travels with the
client inside a signed cursor, so concurrent sessions cannot move each
other's page.
"""
from typing import Optional, Sequence
import logging
import math

from jose import jwt, JWTError

from .config import settings
from .domain.models import Candidate, Navigation, PageState, PageView
from .exceptions import InvalidCursorError

logger = logging.getLogger(__name__)


def total_page_count(count: int, page_size: int, max_pages: int) -> int:
    """Number of pages for count items, capped at max_pages"""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return min(math.ceil(count / page_size), max_pages)


def paginate(
    ranked: Sequence[Candidate],
    page_size: int,
    current_page: int = 1,
    navigation: Optional[Navigation] = None,
    max_pages: int = 5,
) -> PageView:
    """
    Apply navigation and slice the ranked set

    Args:
        ranked: Candidates ordered neediest first
        page_size: Items per page
        current_page: Page the client was on (1-indexed)
        navigation: Optional move relative to current_page
        max_pages: Upper bound on the page count

    Returns:
        PageView with the visible items and the resulting page state
    """
    total_pages = total_page_count(len(ranked), page_size, max_pages)

    # The ranked set may have shrunk since the cursor was issued
    page = min(max(current_page, 1), max(total_pages, 1))

    if navigation == Navigation.NEXT and page < total_pages:
        page += 1
    elif navigation == Navigation.BACK and page > 1:
        page -= 1

    start = (page - 1) * page_size
    end = min(start + page_size, len(ranked))
    items = list(ranked[start:end])

    return PageView(items=items, state=PageState(current_page=page, total_pages=total_pages))


class PageCursorCodec:
    """Sign and verify pagination cursors"""

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret_key = secret_key or settings.CURSOR_SECRET_KEY
        self.algorithm = algorithm or settings.CURSOR_ALGORITHM

    def encode(self, account_id: int, page: int) -> str:
        return jwt.encode(
            {"sub": str(account_id), "page": page},
            self.secret_key,
            algorithm=self.algorithm,
        )

    def decode(self, token: str, account_id: int) -> int:
        """
        Get the page carried by a cursor

        Raises:
            InvalidCursorError: If the signature or claims do not verify, or
                the cursor belongs to another account
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Rejected pagination cursor: {e}")
            raise InvalidCursorError("Invalid pagination cursor")

        page = payload.get("page")
        if payload.get("sub") != str(account_id):
            raise InvalidCursorError("Pagination cursor belongs to another account")
        if not isinstance(page, int) or isinstance(page, bool) or page < 1:
            raise InvalidCursorError("Invalid pagination cursor")
        return page
