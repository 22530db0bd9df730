"""
Domain models - Core business entities
"""
from dataclasses import dataclass
from typing import Optional, List, Dict, Any
from enum import Enum


RESOURCE_CLASSES = ("casts", "reactions", "links")


class Navigation(str, Enum):
    """Pagination navigation signal"""
    NONE = "none"
    NEXT = "next"
    BACK = "back"


class CapacityStatus(str, Enum):
    """How a candidate's remaining capacity should be presented"""
    AVAILABLE = "available"
    EXHAUSTED = "exhausted"
    OVER_CAPACITY = "over_capacity"


@dataclass(frozen=True)
class Account:
    """Account in the social graph"""
    account_id: Optional[int]
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """Check that every field needed for ranking and display is present"""
        return (
            self.account_id is not None
            and bool(self.display_name)
            and bool(self.username)
            and bool(self.avatar_url)
        )


@dataclass(frozen=True)
class ResourceUsage:
    """Capacity and consumption of one resource class"""
    capacity: int
    used: int


@dataclass(frozen=True)
class UsageRecord:
    """Storage usage of an account across resource classes"""
    casts: Optional[ResourceUsage] = None
    reactions: Optional[ResourceUsage] = None
    links: Optional[ResourceUsage] = None
    total_active_units: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return all(getattr(self, name) is not None for name in RESOURCE_CLASSES)

    def resources(self) -> List[ResourceUsage]:
        return [getattr(self, name) for name in RESOURCE_CLASSES if getattr(self, name) is not None]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"total_active_units": self.total_active_units}
        for name in RESOURCE_CLASSES:
            usage = getattr(self, name)
            data[name] = None if usage is None else {"capacity": usage.capacity, "used": usage.used}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageRecord":
        kwargs: Dict[str, Any] = {"total_active_units": data.get("total_active_units")}
        for name in RESOURCE_CLASSES:
            usage = data.get(name)
            if usage is not None:
                kwargs[name] = ResourceUsage(capacity=usage["capacity"], used=usage["used"])
        return cls(**kwargs)


@dataclass(frozen=True)
class UsageEntry:
    """Usage lookup result for one account, usage is None when the fetch failed"""
    account: Account
    usage: Optional[UsageRecord]


@dataclass(frozen=True)
class Candidate:
    """Gift candidate ranked by remaining capacity"""
    account_id: int
    remaining_capacity: int
    account: Optional[Account] = None

    @property
    def capacity_status(self) -> CapacityStatus:
        if self.remaining_capacity < 0:
            return CapacityStatus.OVER_CAPACITY
        if self.remaining_capacity == 0:
            return CapacityStatus.EXHAUSTED
        return CapacityStatus.AVAILABLE


@dataclass(frozen=True)
class PageState:
    """Request scoped pagination state"""
    current_page: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_back(self) -> bool:
        return self.current_page > 1


@dataclass(frozen=True)
class PageView:
    """Visible slice of a ranked set"""
    items: List[Candidate]
    state: PageState


@dataclass(frozen=True)
class Selection:
    """Top candidate of the current page with pagination affordances"""
    candidate: Optional[Candidate]
    state: PageState
    cursor: str
