import logging
import threading
from typing import Optional, Sequence
from uuid import uuid4

from .clock import Clock, SystemClock
from .custodian import CustodianRegistry, FundsCustodian
from .models import (
    EventType,
    LedgerPhase,
    LedgerEvent,
    LedgerStatus,
    EventHistoryResponse,
)

logger = logging.getLogger(__name__)

COOLDOWN_SECONDS = 300
CLAIM_WINDOW_SECONDS = 7 * 24 * 60 * 60


class LedgerServiceError(Exception):
    pass


class AuthorizationError(LedgerServiceError):
    pass


class UnauthorizedError(AuthorizationError):
    pass


class TimingError(LedgerServiceError):
    pass


class CooldownActiveError(TimingError):
    pass


class ClaimAlreadyOpenError(TimingError):
    pass


class ClaimWindowClosedError(TimingError):
    pass


class ClaimingNotOverError(TimingError):
    pass


class InputValidationError(LedgerServiceError):
    pass


class ArrayLengthMismatchError(InputValidationError):
    pass


class EmptyInputError(InputValidationError):
    pass


class InvalidAmountError(InputValidationError):
    pass


class InvalidAddressError(InputValidationError):
    pass


class FundsError(LedgerServiceError):
    pass


class InsufficientFundsError(FundsError):
    pass


class ContractEmptyError(FundsError):
    pass


class NoRewardsOwedError(FundsError):
    pass


class BlacklistedError(LedgerServiceError):
    pass


class LedgerState:
    def __init__(self, owner: str, claim_opens_at: int):
        self.owner = owner
        self.keepers: set[str] = set()
        self.blacklist: set[str] = set()
        self.rewards: dict[str, int] = {}
        self.total_claimable_rewards = 0
        self.last_winner_update = 0
        self.claim_opens_at = claim_opens_at
        self.claim_ends_at = claim_opens_at + CLAIM_WINDOW_SECONDS
        self.events: list[LedgerEvent] = []


class RewardLedgerService:
    """
    Time-windowed reward distribution ledger.

    Winners are credited before the claim window opens, claim their whole
    balance once while it is open, and the owner sweeps whatever is left
    after it closes. The phase is always derived from the clock; no call
    moves the ledger between phases.

    Every public mutator runs under a single lock, so the balance check and
    transfer inside a claim can never interleave with another operation.
    """

    def __init__(
        self,
        owner: str,
        custodians: CustodianRegistry,
        reward_asset: str,
        claim_opens_at: int,
        ledger_address: str = "reward-ledger",
        clock: Optional[Clock] = None,
    ):
        self.state = LedgerState(owner, claim_opens_at)
        self.custodians = custodians
        self.reward_asset = reward_asset
        self.ledger_address = ledger_address
        self.clock = clock or SystemClock()
        self._lock = threading.RLock()
        # fail fast on a misconfigured reward asset
        self.custodians.get(reward_asset)

    @property
    def owner(self) -> str:
        return self.state.owner

    @property
    def claim_opens_at(self) -> int:
        return self.state.claim_opens_at

    @property
    def claim_ends_at(self) -> int:
        return self.state.claim_ends_at

    @property
    def reward_custodian(self) -> FundsCustodian:
        return self.custodians.get(self.reward_asset)

    # Roles

    def set_keeper(self, caller: str, target: str, enabled: bool) -> LedgerEvent:
        with self._lock:
            self._require_owner(caller, "set_keeper")
            if enabled:
                self.state.keepers.add(target)
            else:
                self.state.keepers.discard(target)
            logger.info(f"Keeper {target} set to {enabled} by {caller}")
            return self._emit(EventType.KEEPER_SET, address=target, enabled=enabled)

    def set_blacklisted(self, caller: str, target: str, enabled: bool) -> LedgerEvent:
        with self._lock:
            self._require_owner_or_keeper(caller, "set_blacklisted")
            if enabled:
                self.state.blacklist.add(target)
            else:
                self.state.blacklist.discard(target)
            logger.info(f"Blacklist entry {target} set to {enabled} by {caller}")
            return self._emit(EventType.BLACKLIST_SET, address=target, enabled=enabled)

    # Funding and registration

    def top_up_funds(self, caller: str, amount: int) -> LedgerEvent:
        with self._lock:
            self._require_owner_or_keeper(caller, "top_up_funds")
            if amount < 0:
                self._reject(InvalidAmountError(f"Top-up amount must be non-negative, got {amount}"))

            custodian = self.reward_custodian
            available = custodian.balance_of(caller)
            if available < amount:
                self._reject(InsufficientFundsError(
                    f"{caller} holds {available} {self.reward_asset}, cannot top up {amount}"
                ))

            custodian.transfer_from(self.ledger_address, caller, self.ledger_address, amount)
            logger.info(f"{caller} topped up {amount} {self.reward_asset}")
            return self._emit(EventType.REWARDS_ADDED, address=caller, amount=amount)

    def add_winners(self, caller: str, addresses: Sequence[str], amounts: Sequence[int]) -> LedgerEvent:
        with self._lock:
            self._require_owner_or_keeper(caller, "add_winners")
            now = self.clock.now()
            state = self.state

            if now < state.last_winner_update + COOLDOWN_SECONDS:
                wait = state.last_winner_update + COOLDOWN_SECONDS - now
                self._reject(CooldownActiveError(f"Winners were updated recently, retry in {wait}s"))
            if len(addresses) != len(amounts):
                self._reject(ArrayLengthMismatchError(
                    f"Got {len(addresses)} addresses but {len(amounts)} amounts"
                ))
            if len(addresses) == 0:
                self._reject(EmptyInputError("No winners supplied"))
            if now > state.claim_opens_at:
                self._reject(ClaimAlreadyOpenError(
                    f"Winner registration closed at {state.claim_opens_at}"
                ))
            negative = [a for a in amounts if a < 0]
            if negative:
                self._reject(InvalidAmountError(f"Reward amounts must be non-negative, got {negative[0]}"))
            if any(not address for address in addresses):
                self._reject(InvalidAddressError("Winner addresses must be non-empty"))

            state.last_winner_update = now
            added_rewards = 0
            for address, amount in zip(addresses, amounts):
                state.rewards[address] = state.rewards.get(address, 0) + amount
                added_rewards += amount
            state.total_claimable_rewards += added_rewards

            logger.info(f"{caller} registered {len(addresses)} winners for {added_rewards} at {now}")
            return self._emit(EventType.WINNERS_ADDED, amount=added_rewards, emitted_at=now)

    # Claiming

    def claim_rewards(self, caller: str) -> LedgerEvent:
        with self._lock:
            state = self.state
            if caller in state.blacklist:
                self._reject(BlacklistedError(f"{caller} is blacklisted"))
            if not self.get_is_claiming_live():
                self._reject(ClaimWindowClosedError(
                    f"Claiming is open from {state.claim_opens_at} to {state.claim_ends_at}"
                ))
            reward = state.rewards.get(caller, 0)
            if reward <= 0:
                self._reject(NoRewardsOwedError(f"No rewards owed to {caller}"))
            custodian = self.reward_custodian
            pool = custodian.balance_of(self.ledger_address)
            if pool < reward:
                self._reject(InsufficientFundsError(
                    f"Ledger holds {pool} {self.reward_asset}, {caller} is owed {reward}"
                ))

            # zero the credit before paying out; restore it if the payout fails
            state.rewards[caller] = 0
            state.total_claimable_rewards -= reward
            try:
                custodian.transfer(self.ledger_address, caller, reward)
            except Exception:
                state.rewards[caller] = reward
                state.total_claimable_rewards += reward
                logger.error(f"Payout of {reward} to {caller} failed, claim rolled back")
                raise

            logger.info(f"{caller} claimed {reward} {self.reward_asset}")
            return self._emit(EventType.REWARDS_CLAIMED, address=caller, amount=reward)

    def withdraw_all(self, caller: str, asset: str) -> LedgerEvent:
        with self._lock:
            self._require_owner(caller, "withdraw_all")
            if self.clock.now() <= self.state.claim_ends_at:
                self._reject(ClaimingNotOverError(
                    f"Claiming runs until {self.state.claim_ends_at}"
                ))
            custodian = self.custodians.get(asset)
            balance = custodian.balance_of(self.ledger_address)
            if balance == 0:
                self._reject(ContractEmptyError(f"Ledger holds no {asset}"))

            custodian.transfer(self.ledger_address, caller, balance)
            logger.info(f"{caller} withdrew {balance} {asset}")
            return self._emit(EventType.REWARDS_WITHDRAWN, address=caller, amount=balance, asset=asset)

    # Reads

    def get_pending_rewards(self, address: str) -> int:
        return self.state.rewards.get(address, 0)

    def get_total_claimable_rewards(self) -> int:
        return self.state.total_claimable_rewards

    def get_is_claiming_live(self) -> bool:
        return self.state.claim_opens_at <= self.clock.now() <= self.state.claim_ends_at

    def get_contract_reward_balance(self) -> int:
        return self.reward_custodian.balance_of(self.ledger_address)

    def get_time_to_claim(self) -> int:
        return max(0, self.state.claim_opens_at - self.clock.now())

    def get_phase(self) -> LedgerPhase:
        now = self.clock.now()
        if now < self.state.claim_opens_at:
            return LedgerPhase.REGISTRATION
        if now <= self.state.claim_ends_at:
            return LedgerPhase.CLAIM_OPEN
        return LedgerPhase.CLOSED

    def is_keeper(self, address: str) -> bool:
        return address in self.state.keepers

    def is_blacklisted(self, address: str) -> bool:
        return address in self.state.blacklist

    def get_status(self) -> LedgerStatus:
        with self._lock:
            state = self.state
            return LedgerStatus(
                owner=state.owner,
                ledger_address=self.ledger_address,
                reward_asset=self.reward_asset,
                phase=self.get_phase(),
                now=self.clock.now(),
                claim_opens_at=state.claim_opens_at,
                claim_ends_at=state.claim_ends_at,
                cooldown_seconds=COOLDOWN_SECONDS,
                last_winner_update=state.last_winner_update,
                total_claimable_rewards=state.total_claimable_rewards,
                contract_reward_balance=self.get_contract_reward_balance(),
                is_claiming_live=self.get_is_claiming_live(),
                time_to_claim=self.get_time_to_claim(),
                keepers=sorted(state.keepers),
                blacklist=sorted(state.blacklist),
            )

    def get_events(self, limit: int = 50, offset: int = 0) -> EventHistoryResponse:
        events = list(reversed(self.state.events))
        return EventHistoryResponse(
            events=events[offset:offset + limit],
            total_count=len(events),
        )

    def _require_owner(self, caller: str, operation: str) -> None:
        if caller != self.state.owner:
            self._reject(UnauthorizedError(f"{caller} is not allowed to call {operation}"))

    def _require_owner_or_keeper(self, caller: str, operation: str) -> None:
        if caller != self.state.owner and caller not in self.state.keepers:
            self._reject(UnauthorizedError(f"{caller} is not allowed to call {operation}"))

    def _reject(self, error: LedgerServiceError) -> None:
        logger.warning(f"{type(error).__name__}: {error}")
        raise error

    def _emit(self, event_type: EventType, emitted_at: Optional[int] = None, **fields) -> LedgerEvent:
        event = LedgerEvent(
            id=uuid4(),
            event_type=event_type,
            emitted_at=self.clock.now() if emitted_at is None else emitted_at,
            **fields,
        )
        self.state.events.append(event)
        return event
