"""
Unit Tests for the In-Memory Custodian

Tests cover:
1. Direct transfers and overdraft protection
2. Approvals and transfer_from allowance accounting
3. Asset lookup through the registry
"""

import pytest

from reward_ledger.custodian import (
    CustodianRegistry,
    InMemoryCustodian,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    UnknownAssetError,
)


class TestInMemoryCustodian:
    """Tests for the in-memory single-asset custodian."""

    def test_transfer_moves_balance(self):
        """A transfer debits the sender and credits the recipient."""
        custodian = InMemoryCustodian("REWARD", {"alice": 100})

        custodian.transfer("alice", "bob", 40)

        assert custodian.balance_of("alice") == 60
        assert custodian.balance_of("bob") == 40

    def test_overdraft_changes_nothing(self):
        """An overdraft raises and leaves balances untouched."""
        custodian = InMemoryCustodian("REWARD", {"alice": 10})

        with pytest.raises(InsufficientBalanceError):
            custodian.transfer("alice", "bob", 11)

        assert custodian.balance_of("alice") == 10
        assert custodian.balance_of("bob") == 0

    def test_transfer_from_spends_allowance(self):
        """Pulled funds are deducted from the allowance."""
        custodian = InMemoryCustodian("REWARD", {"alice": 100})
        custodian.approve("alice", "ledger", 70)

        custodian.transfer_from("ledger", "alice", "ledger", 50)

        assert custodian.balance_of("ledger") == 50
        assert custodian.allowance("alice", "ledger") == 20

    def test_transfer_from_requires_approval(self):
        """A spender without approval cannot pull funds."""
        custodian = InMemoryCustodian("REWARD", {"alice": 100})

        with pytest.raises(InsufficientAllowanceError):
            custodian.transfer_from("ledger", "alice", "ledger", 1)

        assert custodian.balance_of("alice") == 100

    def test_transfer_from_overdraft_keeps_allowance(self):
        """A failed pull does not consume the allowance."""
        custodian = InMemoryCustodian("REWARD", {"alice": 5})
        custodian.approve("alice", "ledger", 50)

        with pytest.raises(InsufficientBalanceError):
            custodian.transfer_from("ledger", "alice", "ledger", 10)

        assert custodian.allowance("alice", "ledger") == 50

    def test_negative_amounts_rejected(self):
        """Amounts are unsigned."""
        custodian = InMemoryCustodian("REWARD", {"alice": 5})

        with pytest.raises(ValueError):
            custodian.transfer("alice", "bob", -1)
        with pytest.raises(ValueError):
            custodian.mint("alice", -1)


class TestCustodianRegistry:
    """Tests for resolving assets to custodians."""

    def test_lookup_by_asset(self):
        """Registered custodians are found by asset id."""
        reward = InMemoryCustodian("REWARD")
        stray = InMemoryCustodian("STRAY")
        registry = CustodianRegistry([reward, stray])

        assert registry.get("STRAY") is stray
        assert registry.assets() == ["REWARD", "STRAY"]

    def test_unknown_asset(self):
        """Unregistered assets raise."""
        registry = CustodianRegistry()

        with pytest.raises(UnknownAssetError):
            registry.get("REWARD")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
