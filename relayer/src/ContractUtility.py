"""ContractUtility: Web3 initialization, signer setup and contract ABI loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from eth_account import Account
from eth_account.signers.local import LocalAccount
from sapphirepy import sapphire
from web3 import Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder

if TYPE_CHECKING:
    from .config import WalletSecret

# RPC endpoints of the networks the relayer knows by name.
NETWORKS: dict[str, str] = {
    "sapphire": "https://sapphire.oasis.io",
    "sapphire-testnet": "https://testnet.sapphire.oasis.io",
    "sapphire-localnet": "http://localhost:8545",
}

# Networks whose transactions and calls are end-to-end encrypted.
SAPPHIRE_NETWORKS = frozenset(NETWORKS)

DEFAULT_REQUEST_TIMEOUT = 30


class ContractUtility:
    """Utility for Web3 connection and contract ABI loading.

    :ivar network: Network RPC URL.
    :ivar w3: Configured Web3 instance, signing with the relayer account and
        Sapphire-wrapped on Sapphire networks.
    """

    def __init__(
        self,
        network_name: str,
        account: LocalAccount | None = None,
        rpc_url: str | None = None,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the contract utility.

        :param network_name: Name of the network, or a raw RPC URL.
        :param account: Optional signing account; read-only without it.
        :param rpc_url: Optional RPC URL overriding the network default.
        :param request_timeout: Per-request RPC timeout in seconds.
        """
        self.network = rpc_url or NETWORKS.get(network_name, network_name)

        self.w3 = Web3(
            Web3.HTTPProvider(self.network, request_kwargs={"timeout": request_timeout})
        )
        if account is not None:
            self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(account))
            self.w3.eth.default_account = account.address
        if network_name in SAPPHIRE_NETWORKS:
            self.w3 = sapphire.wrap(self.w3)

    @staticmethod
    def load_account(secret: WalletSecret) -> LocalAccount:
        """Derive the signing account from a wallet secret.

        Failures are reported with a generic message so the secret never
        appears in logs.

        :param secret: Mnemonic or private key secret.
        :returns: Local signing account.
        :raises ValueError: If the account cannot be derived.
        """
        try:
            if secret.type == "mnemonic":
                Account.enable_unaudited_hdwallet_features()
                return Account.from_mnemonic(secret.value)
            return Account.from_key(secret.value)
        except Exception:
            raise ValueError("Failed to initialize wallet. Check your wallet secret.") from None

    @staticmethod
    def get_contract(contract_name: str) -> list:
        """Fetch the ABI of a contract from the bundled abi folder.

        :param contract_name: Name of the contract (e.g., "PythPriceRelay").
        :returns: Contract ABI.
        """
        output_path = (Path(__file__).parent / "abi" / f"{contract_name}.json").resolve()

        with open(output_path, "r") as file:
            contract_data = json.load(file)

        return contract_data["abi"]
