import logging
import threading
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class CustodianError(Exception):
    pass


class InsufficientBalanceError(CustodianError):
    pass


class InsufficientAllowanceError(CustodianError):
    pass


class UnknownAssetError(CustodianError):
    pass


class FundsCustodian(Protocol):
    asset: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, holder: str, recipient: str, amount: int) -> None: ...


class InMemoryCustodian:
    """
    Account balances for a single fungible asset.

    Mirrors the usual token contract surface: holders approve a spender,
    which can then pull funds with transfer_from. Every call either applies
    fully or raises without touching any balance.
    """

    def __init__(self, asset: str, balances: Optional[dict[str, int]] = None):
        self.asset = asset
        self.balances: dict[str, int] = dict(balances or {})
        self.allowances: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def allowance(self, holder: str, spender: str) -> int:
        return self.allowances.get((holder, spender), 0)

    def mint(self, holder: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._lock:
            self.balances[holder] = self.balance_of(holder) + amount

    def approve(self, holder: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._lock:
            self.allowances[(holder, spender)] = amount
        logger.info(f"{self.asset}: {holder} approved {spender} for {amount}")

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        with self._lock:
            self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, holder: str, recipient: str, amount: int) -> None:
        with self._lock:
            allowed = self.allowance(holder, spender)
            if allowed < amount:
                raise InsufficientAllowanceError(
                    f"{spender} may move {allowed} {self.asset} from {holder}, requested {amount}"
                )
            self._move(holder, recipient, amount)
            self.allowances[(holder, spender)] = allowed - amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {available} {self.asset}, cannot send {amount}"
            )
        self.balances[sender] = available - amount
        self.balances[recipient] = self.balance_of(recipient) + amount


class CustodianRegistry:
    """Resolves an asset identifier to the custodian that keeps its balances."""

    def __init__(self, custodians: Optional[list[FundsCustodian]] = None):
        self.custodians: dict[str, FundsCustodian] = {}
        for custodian in custodians or []:
            self.register(custodian)

    def register(self, custodian: FundsCustodian) -> None:
        self.custodians[custodian.asset] = custodian

    def get(self, asset: str) -> FundsCustodian:
        custodian = self.custodians.get(asset)
        if custodian is None:
            raise UnknownAssetError(f"Asset {asset} not found")
        return custodian

    def assets(self) -> list[str]:
        return sorted(self.custodians)
