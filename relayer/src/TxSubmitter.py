"""TxSubmitter: Sign, broadcast and confirm relayer transactions."""

import logging

from web3 import Web3
from web3.types import TxParams

from .errors import TxSubmitError

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_TIMEOUT = 120


class TxSubmitter:
    """Submits transactions through a Web3 instance with a signing middleware.

    :ivar w3: Web3 instance whose default account signs transactions.
    :ivar receipt_timeout: Seconds to wait for the transaction receipt.
    """

    def __init__(self, w3: Web3, receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT) -> None:
        """Initialize the submitter.

        :param w3: Configured Web3 instance.
        :param receipt_timeout: Seconds to wait for inclusion.
        """
        self.w3 = w3
        self.receipt_timeout = receipt_timeout

    def submit_tx(self, tx: TxParams) -> str:
        """Sign and send a transaction, then wait for its receipt.

        :param tx: Transaction parameters.
        :returns: Transaction hash as ``0x`` hex string.
        :raises TxSubmitError: If the transaction reverted.
        """
        tx_hash = self.w3.eth.send_transaction(tx)
        tx_ref = Web3.to_hex(tx_hash)
        logger.debug(f"Transaction {tx_ref} sent, waiting for receipt")

        tx_receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.receipt_timeout
        )

        if tx_receipt["status"] != 1:
            raise TxSubmitError(f"Transaction {tx_ref} reverted", tx_hash=tx_ref)

        logger.debug(f"Transaction {tx_ref} included, gas used: {tx_receipt['gasUsed']}")
        return tx_ref
