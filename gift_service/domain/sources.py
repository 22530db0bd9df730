"""
Source interfaces - Define contracts for upstream data access
"""
from abc import ABC, abstractmethod
from typing import List, Sequence

from .models import Account, UsageRecord


class ISocialGraphSource(ABC):
    """Social graph source interface"""

    @abstractmethod
    async def get_following(self, account_id: int, limit: int) -> List[Account]:
        """Get accounts followed by the given account"""
        pass


class IUsageSource(ABC):
    """Storage usage source interface"""

    @abstractmethod
    async def get_usage(self, account_id: int) -> UsageRecord:
        """Get storage usage for an account"""
        pass


class IAccountLookup(ABC):
    """Account bulk lookup interface"""

    @abstractmethod
    async def get_accounts(self, account_ids: Sequence[int]) -> List[Account]:
        """Get display information for accounts"""
        pass
