from enum import Enum
from typing import Annotated, Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict


Amount = Annotated[int, Field(ge=0)]
Address = Annotated[str, Field(min_length=1)]


class EventType(str, Enum):
    REWARDS_ADDED = "RewardsAdded"
    REWARDS_CLAIMED = "RewardsClaimed"
    KEEPER_SET = "KeeperSet"
    BLACKLIST_SET = "BlacklistSet"
    REWARDS_WITHDRAWN = "RewardsWithdrawn"
    WINNERS_ADDED = "WinnersAdded"


class LedgerPhase(str, Enum):
    REGISTRATION = "REGISTRATION"
    CLAIM_OPEN = "CLAIM_OPEN"
    CLOSED = "CLOSED"


class LedgerEvent(BaseModel):
    id: UUID
    event_type: EventType
    emitted_at: int
    address: Optional[str] = None
    amount: Optional[int] = None
    enabled: Optional[bool] = None
    asset: Optional[str] = None


class SetRoleRequest(BaseModel):
    enabled: bool = Field(..., description="Grant (true) or revoke (false) the role")


class TopUpRequest(BaseModel):
    amount: Amount


class AddWinnersRequest(BaseModel):
    addresses: list[Address] = Field(default_factory=list)
    amounts: list[Amount] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "addresses": ["user-a", "user-b"],
            "amounts": [100, 50],
        }
    })


class WithdrawRequest(BaseModel):
    asset: str = Field(..., description="Asset to sweep; need not be the reward asset")


class ApproveRequest(BaseModel):
    amount: Amount


class PendingRewards(BaseModel):
    address: str
    amount: int


class ClaimResponse(BaseModel):
    address: str
    amount: int
    event: LedgerEvent


class LedgerResponse(BaseModel):
    event: LedgerEvent
    message: str


class LedgerStatus(BaseModel):
    owner: str
    ledger_address: str
    reward_asset: str
    phase: LedgerPhase
    now: int
    claim_opens_at: int
    claim_ends_at: int
    cooldown_seconds: int
    last_winner_update: int
    total_claimable_rewards: int
    contract_reward_balance: int
    is_claiming_live: bool
    time_to_claim: int
    keepers: list[str]
    blacklist: list[str]


class EventHistoryResponse(BaseModel):
    events: list[LedgerEvent]
    total_count: int


class CustodianBalance(BaseModel):
    asset: str
    holder: str
    balance: int


class RewardBalance(BaseModel):
    asset: str
    balance: int


class ClaimingLive(BaseModel):
    live: bool


class TimeToClaim(BaseModel):
    seconds: int
