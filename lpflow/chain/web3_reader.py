"""Allowance reads over JSON-RPC via web3.py."""

from __future__ import annotations

import asyncio

import structlog

from lpflow.constants import PERMIT2_ADDRESS

from .encoding import ERC20_ABI, PERMIT2_ABI

logger = structlog.get_logger()


class Web3AllowanceReader:
    """AllowanceReader backed by eth_call against a web3 HTTP provider.

    web3's HTTP provider is synchronous, so each call runs in a worker thread
    to keep the executor's event loop responsive.
    """

    def __init__(self, web3_provider: str, permit2_address: str = PERMIT2_ADDRESS):
        """Initialize the reader.

        Args:
            web3_provider: HTTP RPC URL
            permit2_address: Permit2 contract address
        """
        try:
            from web3 import Web3
        except ImportError as e:
            raise ImportError(
                "web3 package required for Web3AllowanceReader. Install with: pip install web3"
            ) from e

        self.w3 = Web3(Web3.HTTPProvider(web3_provider))
        self.permit2 = self.w3.eth.contract(
            address=Web3.to_checksum_address(permit2_address),
            abi=PERMIT2_ABI,
        )

    def _erc20_allowance(self, owner: str, token: str, spender: str) -> int:
        from web3 import Web3

        contract = self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)
        return int(
            contract.functions.allowance(
                Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
            ).call()
        )

    def _permit2_allowance(self, owner: str, token: str, spender: str) -> tuple[int, int, int]:
        from web3 import Web3

        amount, expiration, nonce = self.permit2.functions.allowance(
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(token),
            Web3.to_checksum_address(spender),
        ).call()
        return int(amount), int(expiration), int(nonce)

    async def get_erc20_allowance(self, owner: str, token: str, spender: str) -> int:
        """ERC20 allowance of `owner` to `spender`."""
        try:
            return await asyncio.to_thread(self._erc20_allowance, owner, token, spender)
        except Exception as e:
            logger.warning(
                "erc20_allowance_read_failed",
                owner=owner,
                token=token,
                spender=spender,
                error=str(e),
            )
            raise

    async def get_permit2_allowance(
        self, owner: str, token: str, spender: str
    ) -> tuple[int, int, int]:
        """Permit2 (amount, expiration, nonce) of `owner` for `token` to `spender`."""
        try:
            return await asyncio.to_thread(self._permit2_allowance, owner, token, spender)
        except Exception as e:
            logger.warning(
                "permit2_allowance_read_failed",
                owner=owner,
                token=token,
                spender=spender,
                error=str(e),
            )
            raise


__all__ = ["Web3AllowanceReader"]
