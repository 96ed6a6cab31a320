"""Chain adapters: calldata encoding, allowance reads and calldata services."""

from lpflow.chain.encoding import build_approve_transaction, encode_erc20_approve
from lpflow.chain.http_builder import HttpTransactionBuilder
from lpflow.chain.mocks import (
    MockAllowanceReader,
    MockPoolDataSource,
    MockTransactionBuilder,
    MockWalletSigner,
)
from lpflow.chain.web3_reader import Web3AllowanceReader

__all__ = [
    "encode_erc20_approve",
    "build_approve_transaction",
    "HttpTransactionBuilder",
    "Web3AllowanceReader",
    "MockAllowanceReader",
    "MockPoolDataSource",
    "MockTransactionBuilder",
    "MockWalletSigner",
]
