"""
Neynar API client implementing the social graph, usage and account sources
"""
import httpx
from typing import Optional, List, Dict, Any, Sequence
import logging

from ..config import settings
from ..domain.models import Account, ResourceUsage, UsageRecord, RESOURCE_CLASSES
from ..domain.sources import ISocialGraphSource, IUsageSource, IAccountLookup
from ..exceptions import UpstreamUnavailableError, MalformedRecordError

logger = logging.getLogger(__name__)


def parse_account(payload: Any) -> Account:
    """Convert a Neynar user object into an Account, keeping missing fields as None"""
    if not isinstance(payload, dict):
        return Account(account_id=None)

    fid = payload.get("fid")
    return Account(
        account_id=fid if isinstance(fid, int) and not isinstance(fid, bool) else None,
        display_name=payload.get("display_name") or None,
        username=payload.get("username") or None,
        avatar_url=payload.get("pfp_url") or None,
    )


def _parse_resource(payload: Any) -> Optional[ResourceUsage]:
    if not isinstance(payload, dict):
        return None
    capacity = payload.get("capacity")
    used = payload.get("used")
    if not isinstance(capacity, int) or not isinstance(used, int):
        return None
    return ResourceUsage(capacity=capacity, used=used)


def parse_usage(payload: Any) -> UsageRecord:
    """Convert a storage usage response into a UsageRecord

    Resource classes that are missing or malformed are left as None, which
    makes the record incomplete.
    """
    if not isinstance(payload, dict):
        raise MalformedRecordError("Storage usage response is not an object")

    units = payload.get("total_active_units")
    return UsageRecord(
        total_active_units=units if isinstance(units, int) else None,
        **{name: _parse_resource(payload.get(name)) for name in RESOURCE_CLASSES},
    )


class NeynarClient(ISocialGraphSource, IUsageSource, IAccountLookup):
    """HTTP client for the Neynar v2 Farcaster API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.NEYNAR_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.NEYNAR_API_KEY
        self.timeout = httpx.Timeout(timeout or settings.NEYNAR_TIMEOUT, connect=5.0)
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def start(self):
        """Initialize HTTP client"""
        self.client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        logger.info("Neynar client initialized")

    async def stop(self):
        """Close HTTP client"""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("Neynar client closed")

    async def _make_request(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Make a GET request and return the decoded JSON object"""
        if not self.client:
            raise UpstreamUnavailableError("Neynar client not initialized")

        url = f"{self.base_url}{path}"
        headers = {"accept": "application/json", "api_key": self.api_key}

        try:
            response = await self.client.get(url, headers=headers, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error {e.response.status_code} for {url}")
            raise UpstreamUnavailableError(f"Upstream answered {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Request failed for {url}: {e!r}")
            raise UpstreamUnavailableError("Upstream unreachable") from e

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedRecordError(f"Non-JSON response from {url}") from e

        if not isinstance(data, dict):
            raise MalformedRecordError(f"Unexpected response shape from {url}")
        return data

    async def get_following(self, account_id: int, limit: int) -> List[Account]:
        """Get accounts followed by the given account"""
        data = await self._make_request("/following", {"fid": account_id, "limit": limit})

        users = data.get("users")
        if not isinstance(users, list):
            logger.error(f"Following response for account {account_id} has no users list")
            raise UpstreamUnavailableError("Social graph response is missing users")

        following = [
            parse_account(item.get("user") if isinstance(item, dict) else None)
            for item in users
        ]
        logger.info(f"Fetched {len(following)} following accounts for account {account_id}")
        return following

    async def get_usage(self, account_id: int) -> UsageRecord:
        """Get storage usage for an account"""
        data = await self._make_request("/storage/usage", {"fid": account_id})
        return parse_usage(data)

    async def get_accounts(self, account_ids: Sequence[int]) -> List[Account]:
        """Get display information for accounts"""
        if not account_ids:
            return []

        fids = ",".join(str(account_id) for account_id in account_ids)
        data = await self._make_request("/user/bulk", {"fids": fids})

        users = data.get("users")
        if not isinstance(users, list):
            raise MalformedRecordError("Bulk user response is missing users")
        return [parse_account(user) for user in users]


# Global client instance
neynar_client = NeynarClient()


async def get_neynar_client() -> NeynarClient:
    """Dependency for getting Neynar client instance"""
    return neynar_client
