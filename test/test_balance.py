"""Unit tests for the BalanceGuard."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gas_relayer.balance import BalanceGuard
from gas_relayer.lifecycle import Lifecycle

from conftest import RELAYER_ACCOUNT

THRESHOLD = 100000


@pytest.fixture
def subscriptions():
    mock = MagicMock()
    mock.clear = AsyncMock()
    return mock


@pytest.fixture
def lifecycle(subscriptions):
    return Lifecycle(subscriptions)


def make_guard(mock_w3, subscriptions, lifecycle, balance):
    mock_w3.eth.get_balance = AsyncMock(return_value=balance)
    return BalanceGuard(mock_w3, RELAYER_ACCOUNT, THRESHOLD, subscriptions, lifecycle)


class TestBalanceGuard:
    """Test suite for BalanceGuard."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("balance", [THRESHOLD + 1, 10**18, 2**256 - 1])
    async def test_sufficient_balance_is_a_no_op(self, mock_w3, subscriptions, lifecycle, balance, caplog):
        """Test that a funded account passes silently."""
        guard = make_guard(mock_w3, subscriptions, lifecycle, balance)

        assert await guard.check_balance(halt_subscriptions_on_failure=True) is True

        assert not lifecycle.stopping
        assert lifecycle.exit_code is None
        subscriptions.clear.assert_not_awaited()
        assert "Not enough balance" not in caplog.text
        mock_w3.eth.get_balance.assert_awaited_once_with(RELAYER_ACCOUNT)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("balance", [0, 1, THRESHOLD - 1, THRESHOLD])
    async def test_insufficient_balance_stops_cleanly(self, mock_w3, subscriptions, lifecycle, balance, caplog):
        """Test that balance at or below the threshold stops with status 0."""
        guard = make_guard(mock_w3, subscriptions, lifecycle, balance)

        assert await guard.check_balance() is False

        assert lifecycle.stopping
        assert lifecycle.exit_code == 0
        subscriptions.clear.assert_not_awaited()
        assert "Not enough balance" in caplog.text
        assert RELAYER_ACCOUNT in caplog.text
        assert f"> Balance: {balance}" in caplog.text

    @pytest.mark.asyncio
    async def test_insufficient_balance_halts_subscriptions_on_request(self, mock_w3, subscriptions, lifecycle):
        """Test the mid-operation variant that tears the subscriptions down."""
        guard = make_guard(mock_w3, subscriptions, lifecycle, THRESHOLD)

        assert await guard.check_balance(halt_subscriptions_on_failure=True) is False

        subscriptions.clear.assert_awaited_once()
        assert lifecycle.exit_code == 0

    @pytest.mark.asyncio
    async def test_balance_is_read_on_every_check(self, mock_w3, subscriptions, lifecycle):
        """Test that balances are never cached between checks."""
        guard = make_guard(mock_w3, subscriptions, lifecycle, 10**18)
        mock_w3.eth.get_balance.side_effect = [10**18, THRESHOLD]

        assert await guard.check_balance() is True
        assert await guard.check_balance() is False
        assert mock_w3.eth.get_balance.await_count == 2
