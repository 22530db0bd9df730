"""
Storage Gift Service business logic
"""
from typing import Optional
import logging

from .config import settings
from .domain.models import Account, Navigation, Selection
from .domain.sources import ISocialGraphSource, IAccountLookup
from .exceptions import AccountNotFoundError
from .fetcher import BatchedUsageFetcher
from .pagination import PageCursorCodec, paginate
from .ranking import rank_candidates

logger = logging.getLogger(__name__)


class SelectionService:
    """Selects the followed account most in need of storage"""

    def __init__(
        self,
        graph_source: ISocialGraphSource,
        account_lookup: IAccountLookup,
        fetcher: BatchedUsageFetcher,
        cursor_codec: PageCursorCodec,
        following_limit: int = 100,
        default_page_size: int = 1,
        max_pages: int = 5,
    ):
        self.graph_source = graph_source
        self.account_lookup = account_lookup
        self.fetcher = fetcher
        self.cursor_codec = cursor_codec
        self.following_limit = following_limit
        self.default_page_size = default_page_size
        self.max_pages = max_pages

    async def select_candidate(
        self,
        account_id: int,
        navigation: Optional[Navigation] = None,
        page_size: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Selection:
        """
        Select a gift candidate among the accounts followed by account_id

        Args:
            account_id: Account whose following list is searched
            navigation: Optional next/back move from the cursor's page
            page_size: Candidates per page, defaults to the configured size
            cursor: Cursor returned by the previous selection, if any

        Returns:
            Selection with the head of the current page and a new cursor

        Raises:
            InvalidCursorError: If the cursor does not verify
            UpstreamUnavailableError: If the social graph cannot be fetched
        """
        page_size = page_size or self.default_page_size
        current_page = self.cursor_codec.decode(cursor, account_id) if cursor else 1

        following = await self.graph_source.get_following(account_id, self.following_limit)
        entries = await self.fetcher.fetch(following)
        ranked = rank_candidates(entries)

        view = paginate(
            ranked,
            page_size,
            current_page=current_page,
            navigation=navigation,
            max_pages=self.max_pages,
        )
        state = view.state
        candidate = view.items[0] if view.items else None

        logger.info(
            f"Account {account_id}: {len(ranked)} ranked candidates, "
            f"page {state.current_page}/{state.total_pages}"
        )

        return Selection(
            candidate=candidate,
            state=state,
            cursor=self.cursor_codec.encode(account_id, state.current_page),
        )

    async def lookup_account(self, account_id: int) -> Account:
        """
        Get display information for one account

        Raises:
            AccountNotFoundError: If the lookup returns no matching account
        """
        accounts = await self.account_lookup.get_accounts([account_id])
        for account in accounts:
            if account.account_id == account_id:
                return account
        raise AccountNotFoundError(f"Account {account_id} not found")


def build_selection_service(client, cache) -> SelectionService:
    """Wire a SelectionService from settings"""
    return SelectionService(
        graph_source=client,
        account_lookup=client,
        fetcher=BatchedUsageFetcher.from_settings(client, cache),
        cursor_codec=PageCursorCodec(),
        following_limit=settings.FOLLOWING_LIMIT,
        default_page_size=settings.DEFAULT_PAGE_SIZE,
        max_pages=settings.MAX_PAGES,
    )
