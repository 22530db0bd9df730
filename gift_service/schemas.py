"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel
from typing import Optional

from .domain.models import Account, CapacityStatus, Candidate, Selection


class ErrorResponse(BaseModel):
    """Generic failure response"""

    code: str
    message: str
    retryable: bool = True


class AccountResponse(BaseModel):
    """Account display information"""

    account_id: int
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.account_id,
            display_name=account.display_name,
            username=account.username,
            avatar_url=account.avatar_url,
        )


class CandidateResponse(AccountResponse):
    """Gift candidate with its remaining storage"""

    remaining_capacity: int
    capacity_status: CapacityStatus

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "CandidateResponse":
        account = candidate.account
        return cls(
            account_id=candidate.account_id,
            display_name=account.display_name if account else None,
            username=account.username if account else None,
            avatar_url=account.avatar_url if account else None,
            remaining_capacity=candidate.remaining_capacity,
            capacity_status=candidate.capacity_status,
        )


class SelectionResponse(BaseModel):
    """Selected candidate with pagination affordances"""

    candidate: Optional[CandidateResponse] = None
    has_next: bool
    has_back: bool
    current_page: int
    total_pages: int
    cursor: str

    @classmethod
    def from_selection(cls, selection: Selection) -> "SelectionResponse":
        state = selection.state
        return cls(
            candidate=(
                CandidateResponse.from_candidate(selection.candidate)
                if selection.candidate
                else None
            ),
            has_next=state.has_next,
            has_back=state.has_back,
            current_page=state.current_page,
            total_pages=state.total_pages,
            cursor=selection.cursor,
        )
