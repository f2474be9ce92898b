"""LedgerClient: Reads and writes the on-chain price relay contract.

The relay contract wraps a Pyth deployment: it accepts signed price updates
(VAAs) together with an update fee, verifies them through Pyth and keeps the
latest price of a single configured feed.

All methods are blocking web3 calls; the scheduler runs them in a worker
thread so the event loop keeps serving the health probe.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from web3 import Web3
from web3.types import TxParams

from .ContractUtility import ContractUtility
from .errors import InitializationError
from .PriceQuote import ContractConfig, OnChainPrice, OracleParams, PriceFeed, PriceQuote
from .TxSubmitter import TxSubmitter
from .validation import validate_address, validate_fee_amount

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount
    from web3.contract import Contract

    from .config import RelayerConfig

logger = logging.getLogger(__name__)

RELAY_CONTRACT_NAME = "PythPriceRelay"


class LedgerClient:
    """Client for the price relay contract.

    :ivar w3: Web3 instance.
    :ivar contract: Relay contract instance.
    :ivar submitter: Transaction submitter, or None for read-only use.
    :ivar sender_address: Address of the signing account, if any.
    """

    def __init__(
        self,
        w3: Web3,
        contract_address: str,
        submitter: TxSubmitter | None = None,
        sender_address: str | None = None,
    ) -> None:
        """Initialize the ledger client.

        :param w3: Configured Web3 instance.
        :param contract_address: Relay contract address.
        :param submitter: Optional transaction submitter.
        :param sender_address: Address of the signing account.
        """
        self.w3 = w3
        self.submitter = submitter
        self.sender_address = sender_address

        abi = ContractUtility.get_contract(RELAY_CONTRACT_NAME)
        self.contract: Contract = self.w3.eth.contract(
            address=validate_address(contract_address, "contract address"), abi=abi
        )

    @classmethod
    def from_config(cls, config: RelayerConfig) -> LedgerClient:
        """Build a ledger client from the relayer configuration.

        No network traffic happens here; see :meth:`connect`.

        :param config: Validated relayer configuration.
        :returns: Ledger client, signing if a wallet secret is configured.
        """
        account: LocalAccount | None = None
        if config.wallet_secret is not None:
            account = ContractUtility.load_account(config.wallet_secret)

        contract_utility = ContractUtility(
            config.network, account=account, rpc_url=config.rpc_url
        )
        w3 = contract_utility.w3
        submitter = TxSubmitter(w3) if account is not None else None
        return cls(
            w3,
            config.contract_address,
            submitter=submitter,
            sender_address=account.address if account is not None else None,
        )

    def connect(self) -> None:
        """Check that the RPC endpoint is reachable.

        :raises InitializationError: If the node does not answer.
        """
        if not self.w3.is_connected():
            raise InitializationError("Cannot connect to the RPC endpoint")
        chain_id = self.w3.eth.chain_id
        logger.info(f"Connected to chain {chain_id}")
        if self.sender_address:
            logger.info(f"Using address: {self.sender_address}")

    def query_price(self) -> OnChainPrice:
        """Query the current price from the contract."""
        price, conf, expo, publish_time = self.contract.functions.getPrice().call()
        return OnChainPrice(price=price, conf=conf, expo=expo, publish_time=publish_time)

    def query_price_feed(self) -> PriceFeed:
        """Query the current price feed with metadata from the contract."""
        (
            symbol,
            price,
            conf,
            expo,
            publish_time,
            prev_publish_time,
        ) = self.contract.functions.getPriceFeed().call()
        return PriceFeed(
            price=price,
            conf=conf,
            expo=expo,
            publish_time=publish_time,
            symbol=symbol,
            prev_publish_time=prev_publish_time,
        )

    def query_config(self) -> ContractConfig:
        """Query the contract configuration (admin, fee, feed ID)."""
        admin, pyth_contract, update_fee, price_feed_id = (
            self.contract.functions.getConfig().call()
        )
        return ContractConfig(
            admin=admin,
            pyth_contract=pyth_contract,
            update_fee=int(update_fee),
            price_feed_id=Web3.to_hex(price_feed_id),
        )

    def query_oracle_params(self) -> OracleParams:
        """Query the oracle parameters cached by the contract."""
        values = self.contract.functions.getOracleParams().call()
        return OracleParams(*(int(v) for v in values))

    def submit_price_update(self, quote: PriceQuote, fee: int) -> str:
        """Submit a signed price update to the contract.

        :param quote: Quote whose ``update_data`` carries the VAA.
        :param fee: Update fee in wei attached as value.
        :returns: Transaction hash.
        :raises ValueError: If the quote carries no update data.
        :raises RuntimeError: If the client cannot sign.
        """
        if not quote.update_data:
            raise ValueError("Quote carries no update data")
        tx_params = self.contract.functions.updatePriceFeed(quote.update_data).build_transaction(
            {"gasPrice": self.w3.eth.gas_price, "value": fee}
        )
        return self._submit(tx_params)

    def refresh_oracle_params(self) -> str:
        """Refresh the cached oracle parameters (admin only)."""
        tx_params = self.contract.functions.refreshOracleParams().build_transaction(
            {"gasPrice": self.w3.eth.gas_price}
        )
        return self._submit(tx_params)

    def update_fee(self, new_fee: str) -> str:
        """Update the price update fee (admin only).

        :param new_fee: New fee in wei, as integer string.
        :returns: Transaction hash.
        """
        validate_fee_amount(new_fee)
        tx_params = self.contract.functions.updateFee(int(new_fee)).build_transaction(
            {"gasPrice": self.w3.eth.gas_price}
        )
        return self._submit(tx_params)

    def transfer_admin(self, new_admin: str) -> str:
        """Transfer admin rights to a new address (admin only).

        :param new_admin: New admin address.
        :returns: Transaction hash.
        """
        address = validate_address(new_admin, "admin address")
        tx_params = self.contract.functions.transferAdmin(address).build_transaction(
            {"gasPrice": self.w3.eth.gas_price}
        )
        return self._submit(tx_params)

    def _submit(self, tx_params: TxParams) -> str:
        """Hand a built transaction to the submitter."""
        if self.submitter is None:
            raise RuntimeError("Client not initialized for signing (WALLET_SECRET missing)")
        return self.submitter.submit_tx(tx_params)
