"""Client-side pre-flight gate run before calling a protected resource.

A payer needs a non-zero token balance and a standing allowance for the
spender contract. The gate checks both and submits one approval when the
allowance is not comfortably above the threshold, waiting for it to be
mined before the protected call goes out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3

from ..errors import ApprovalFailedError, InsufficientBalanceError
from ..mechanisms.evm.constants import ERC20_ABI, TX_STATUS_SUCCESS

logger = logging.getLogger(__name__)

# 1,000,000 tokens with 18 decimals
DEFAULT_ALLOWANCE_THRESHOLD = 1_000_000 * 10**18

DEFAULT_FAUCET_URL = "http://localhost:3001"


# ============================================================================
# Ledger Access Protocol
# ============================================================================


class LedgerAccess(Protocol):
    """Reads and writes the token ledger on behalf of one wallet."""

    async def get_balance(self, token: str, owner: str) -> int:
        ...

    async def get_allowance(self, token: str, owner: str, spender: str) -> int:
        ...

    async def approve(self, token: str, spender: str, amount: int) -> str:
        """Submit an approval and return its transaction hash."""
        ...

    async def wait_for_confirmation(self, tx_hash: str) -> bool:
        """Wait until the transaction is mined. True if it succeeded."""
        ...


# ============================================================================
# Gate
# ============================================================================


class PreflightOutcome(str, Enum):
    ALREADY_APPROVED = "already_approved"
    APPROVED = "approved"


@dataclass
class PreflightResult:
    outcome: PreflightOutcome
    balance: int
    allowance: int
    approval_tx: str | None = None


class PreflightGate:
    """Balance and allowance check in front of a protected call.

    Args:
        ledger: Ledger access for the paying wallet.
        owner: Paying wallet address.
        token: ERC-20 token the payment is made in.
        spender: Contract that pulls the payment.
        threshold: Allowance to approve, and the level it must exceed.
        faucet_url: Where an empty wallet can get tokens.
    """

    def __init__(
        self,
        ledger: LedgerAccess,
        owner: str,
        token: str,
        spender: str,
        threshold: int = DEFAULT_ALLOWANCE_THRESHOLD,
        faucet_url: str | None = DEFAULT_FAUCET_URL,
    ) -> None:
        self._ledger = ledger
        self._owner = owner
        self._token = token
        self._spender = spender
        self._threshold = threshold
        self._faucet_url = faucet_url

    @property
    def threshold(self) -> int:
        return self._threshold

    async def check(self) -> PreflightResult:
        """Make sure the wallet can pay, approving if needed.

        Returns:
            PreflightResult once the protected call may proceed.

        Raises:
            InsufficientBalanceError: Balance is zero. Nothing was approved.
            ApprovalFailedError: The approval was rejected or reverted.
        """
        balance = await self._ledger.get_balance(self._token, self._owner)
        if balance == 0:
            logger.info("Wallet %s has no tokens, faucet: %s", self._owner, self._faucet_url)
            raise InsufficientBalanceError(self._owner, self._faucet_url)

        allowance = await self._ledger.get_allowance(self._token, self._owner, self._spender)
        if allowance > self._threshold:
            logger.debug("Allowance %s above threshold, no approval needed", allowance)
            return PreflightResult(PreflightOutcome.ALREADY_APPROVED, balance, allowance)

        logger.info("Approving %s for spender %s", self._threshold, self._spender)
        try:
            tx_hash = await self._ledger.approve(self._token, self._spender, self._threshold)
        except ApprovalFailedError:
            raise
        except Exception as e:
            raise ApprovalFailedError(f"Approval was not submitted: {e}") from e

        if not await self._ledger.wait_for_confirmation(tx_hash):
            raise ApprovalFailedError(f"Approval transaction {tx_hash} reverted")

        logger.info("Approval %s confirmed", tx_hash)
        return PreflightResult(
            PreflightOutcome.APPROVED, balance, allowance, approval_tx=tx_hash
        )


# ============================================================================
# web3 Implementation
# ============================================================================


class Web3LedgerAccess:
    """LedgerAccess over an ERC-20 contract through web3's async API.

    Example:
        ```python
        from eth_account import Account
        from web3 import AsyncWeb3

        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider("https://sepolia.base.org"))
        ledger = Web3LedgerAccess(w3, Account.from_key(private_key))
        ```
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        account: LocalAccount,
        receipt_timeout: float = 120.0,
    ) -> None:
        self._web3 = web3
        self._account = account
        self._receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        return self._account.address

    def _contract(self, token: str) -> Any:
        return self._web3.eth.contract(
            address=self._web3.to_checksum_address(token),
            abi=ERC20_ABI,
        )

    async def get_balance(self, token: str, owner: str) -> int:
        balance = await self._contract(token).functions.balanceOf(
            self._web3.to_checksum_address(owner)
        ).call()
        return int(balance)

    async def get_allowance(self, token: str, owner: str, spender: str) -> int:
        allowance = await self._contract(token).functions.allowance(
            self._web3.to_checksum_address(owner),
            self._web3.to_checksum_address(spender),
        ).call()
        return int(allowance)

    async def approve(self, token: str, spender: str, amount: int) -> str:
        tx = await self._contract(token).functions.approve(
            self._web3.to_checksum_address(spender),
            amount,
        ).build_transaction(
            {
                "from": self._account.address,
                "nonce": await self._web3.eth.get_transaction_count(self._account.address),
            }
        )

        signed = self._account.sign_transaction(tx)
        tx_hash = await self._web3.eth.send_raw_transaction(signed.raw_transaction)
        return self._web3.to_hex(tx_hash)

    async def wait_for_confirmation(self, tx_hash: str) -> bool:
        receipt = await self._web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._receipt_timeout
        )
        return receipt["status"] == TX_STATUS_SUCCESS
