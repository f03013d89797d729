# =====================================
# backend/models/schemas.py - Pydantic Models
# =====================================
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

MIN_OPTIONS = 2
MAX_OPTIONS = 10


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class BetStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    FINALIZED = "finalized"
    DELETED = "deleted"


class CurrentUser(BaseModel):
    """Identidade vinda do Supabase Auth (Google OAuth)"""
    id: Optional[str] = None
    email: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


class BetCreate(BaseModel):
    title: str
    description: Optional[str] = None
    options: List[str]
    closing_at: datetime
    stake_amount: str
    creator_name: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC
    allow_anonymous_voting: bool = False

    @field_validator('title', 'stake_amount')
    @classmethod
    def validate_required_text(cls, v):
        if not v or not v.strip():
            raise ValueError('Field is required')
        return v.strip()

    @field_validator('options')
    @classmethod
    def validate_options(cls, v):
        if len(v) < MIN_OPTIONS or len(v) > MAX_OPTIONS:
            raise ValueError(f'Number of options must be between {MIN_OPTIONS} and {MAX_OPTIONS}')
        options = [option.strip() for option in v]
        if any(not option for option in options):
            raise ValueError('Options must be non-empty')
        if len(set(options)) != len(options):
            raise ValueError('Options must be unique')
        return options


class Bet(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    options: List[str]
    stake_amount: str
    closing_at: datetime
    creator_name: str
    creator_email: str
    visibility: Visibility = Visibility.PUBLIC
    allow_anonymous_voting: bool = False
    final_result: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime

    @property
    def is_finalized(self) -> bool:
        return self.final_result is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class VoteCreate(BaseModel):
    chosen_option: str = Field(..., alias='option')
    voter_name: Optional[str] = Field(None, alias='voterName')

    model_config = ConfigDict(populate_by_name=True)


class Vote(BaseModel):
    id: str
    bet_id: str
    voter_identifier: str
    chosen_option: str
    created_at: datetime
    considered_in_tally: bool = True


class FinalizeRequest(BaseModel):
    result: str


class VoteToggleResponse(BaseModel):
    vote_id: str
    considered_in_tally: bool


class Settlement(BaseModel):
    tally: Dict[str, int]
    total_votes: int
    stake_amount: Decimal
    total_pool: Decimal
    winners: List[Vote]
    prize_per_winner: Decimal
    is_finalized: bool


class BetSummary(Bet):
    status: BetStatus


class BetDetailResponse(BaseModel):
    bet: Bet
    status: BetStatus
    votes: List[Vote]
    settlement: Settlement
