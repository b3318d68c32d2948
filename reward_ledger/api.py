import logging
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .clock import SystemClock
from .config import Settings, get_settings
from .custodian import (
    CustodianError,
    CustodianRegistry,
    InMemoryCustodian,
    UnknownAssetError,
)
from .models import (
    SetRoleRequest, TopUpRequest, AddWinnersRequest, WithdrawRequest, ApproveRequest,
    LedgerResponse, ClaimResponse, PendingRewards, LedgerStatus,
    EventHistoryResponse, CustodianBalance, RewardBalance, ClaimingLive, TimeToClaim,
)
from .service import (
    RewardLedgerService, LedgerServiceError, AuthorizationError, BlacklistedError,
    TimingError, FundsError,
)

logger = logging.getLogger(__name__)


def _http_error(error: Exception) -> HTTPException:
    if isinstance(error, (AuthorizationError, BlacklistedError)):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, (TimingError, FundsError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, UnknownAssetError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail={"error": type(error).__name__, "message": str(error)})


def build_service(settings: Settings) -> RewardLedgerService:
    clock = SystemClock()
    custodian = InMemoryCustodian(settings.REWARD_ASSET)
    if settings.SEED_OWNER_BALANCE:
        custodian.mint(settings.OWNER_ADDRESS, settings.SEED_OWNER_BALANCE)
    claim_opens_at = settings.CLAIM_OPENS_AT
    if claim_opens_at is None:
        claim_opens_at = clock.now() + settings.CLAIM_OPENS_IN
    logger.info(f"Claim window opens at {claim_opens_at} for {settings.REWARD_ASSET}")
    return RewardLedgerService(
        owner=settings.OWNER_ADDRESS,
        custodians=CustodianRegistry([custodian]),
        reward_asset=settings.REWARD_ASSET,
        claim_opens_at=claim_opens_at,
        ledger_address=settings.LEDGER_ADDRESS,
        clock=clock,
    )


def create_app(
    service: Optional[RewardLedgerService] = None,
    settings: Optional[Settings] = None,
    root_path: str = "",
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    ledger_service = service or build_service(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Time-windowed reward distribution ledger with keeper roles and a claim blacklist",
        version="1.0.0",
        root_path=root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.ledger_service = ledger_service

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "reward-ledger"}

    @app.get("/status", response_model=LedgerStatus, tags=["System"])
    def get_status() -> LedgerStatus:
        return ledger_service.get_status()

    @app.put("/keepers/{address}", response_model=LedgerResponse, tags=["Roles"])
    def set_keeper(address: str, request: SetRoleRequest, caller: str = Header(alias="X-Caller-Address")) -> LedgerResponse:
        try:
            event = ledger_service.set_keeper(caller, address, request.enabled)
        except LedgerServiceError as e:
            raise _http_error(e)
        return LedgerResponse(event=event, message="Keeper updated")

    @app.put("/blacklist/{address}", response_model=LedgerResponse, tags=["Roles"])
    def set_blacklisted(address: str, request: SetRoleRequest, caller: str = Header(alias="X-Caller-Address")) -> LedgerResponse:
        try:
            event = ledger_service.set_blacklisted(caller, address, request.enabled)
        except LedgerServiceError as e:
            raise _http_error(e)
        return LedgerResponse(event=event, message="Blacklist updated")

    @app.post("/funds/top-up", response_model=LedgerResponse, tags=["Funds"])
    def top_up_funds(request: TopUpRequest, caller: str = Header(alias="X-Caller-Address")) -> LedgerResponse:
        try:
            event = ledger_service.top_up_funds(caller, request.amount)
        except (LedgerServiceError, CustodianError) as e:
            raise _http_error(e)
        return LedgerResponse(event=event, message="Rewards added")

    @app.get("/funds/balance", response_model=RewardBalance, tags=["Funds"])
    def get_contract_reward_balance() -> RewardBalance:
        return RewardBalance(asset=ledger_service.reward_asset, balance=ledger_service.get_contract_reward_balance())

    @app.post("/winners", response_model=LedgerResponse, status_code=status.HTTP_201_CREATED, tags=["Rewards"])
    def add_winners(request: AddWinnersRequest, caller: str = Header(alias="X-Caller-Address")) -> LedgerResponse:
        try:
            event = ledger_service.add_winners(caller, request.addresses, request.amounts)
        except LedgerServiceError as e:
            raise _http_error(e)
        return LedgerResponse(event=event, message="Winners added")

    @app.post("/claims", response_model=ClaimResponse, tags=["Rewards"])
    def claim_rewards(caller: str = Header(alias="X-Caller-Address")) -> ClaimResponse:
        try:
            event = ledger_service.claim_rewards(caller)
        except (LedgerServiceError, CustodianError) as e:
            raise _http_error(e)
        return ClaimResponse(address=caller, amount=event.amount, event=event)

    @app.post("/withdrawals", response_model=LedgerResponse, tags=["Funds"])
    def withdraw_all(request: WithdrawRequest, caller: str = Header(alias="X-Caller-Address")) -> LedgerResponse:
        try:
            event = ledger_service.withdraw_all(caller, request.asset)
        except (LedgerServiceError, CustodianError) as e:
            raise _http_error(e)
        return LedgerResponse(event=event, message="Rewards withdrawn")

    @app.get("/rewards/{address}", response_model=PendingRewards, tags=["Rewards"])
    def get_pending_rewards(address: str) -> PendingRewards:
        return PendingRewards(address=address, amount=ledger_service.get_pending_rewards(address))

    @app.get("/claiming/live", response_model=ClaimingLive, tags=["Rewards"])
    def get_is_claiming_live() -> ClaimingLive:
        return ClaimingLive(live=ledger_service.get_is_claiming_live())

    @app.get("/claiming/time-to-claim", response_model=TimeToClaim, tags=["Rewards"])
    def get_time_to_claim() -> TimeToClaim:
        return TimeToClaim(seconds=ledger_service.get_time_to_claim())

    @app.get("/events", response_model=EventHistoryResponse, tags=["Audit"])
    def get_events(limit: int = 50, offset: int = 0) -> EventHistoryResponse:
        return ledger_service.get_events(limit, offset)

    @app.post("/custodian/{asset}/approve", response_model=CustodianBalance, tags=["Custodian"])
    def approve_ledger(asset: str, request: ApproveRequest, caller: str = Header(alias="X-Caller-Address")) -> CustodianBalance:
        try:
            custodian = ledger_service.custodians.get(asset)
        except UnknownAssetError as e:
            raise _http_error(e)
        custodian.approve(caller, ledger_service.ledger_address, request.amount)
        return CustodianBalance(asset=asset, holder=caller, balance=custodian.balance_of(caller))

    @app.get("/custodian/{asset}/balances/{holder}", response_model=CustodianBalance, tags=["Custodian"])
    def get_custodian_balance(asset: str, holder: str) -> CustodianBalance:
        try:
            custodian = ledger_service.custodians.get(asset)
        except UnknownAssetError as e:
            raise _http_error(e)
        return CustodianBalance(asset=asset, holder=holder, balance=custodian.balance_of(holder))

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
