from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Set, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from web3 import Web3

DEFAULT_TRANSFER_GAS = 21000


class Web3FundsTransfer:
    """Holds the raffle pool in an externally owned account.

    Entry payments are plain value transfers into the pool account; they are
    accepted once the referenced transaction is confirmed on chain. Refunds and
    payouts are signed value transfers out of the pool account.
    """

    def __init__(
        self,
        web3: "Web3",
        private_key: str,
        chain_id: Optional[int] = None,
        confirmations: int = 1,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._web3 = web3
        self._account = web3.eth.account.from_key(private_key)
        self._chain_id = chain_id
        self._confirmations = max(int(confirmations), 1)
        self._logger = logger or logging.getLogger("chainraffle.funds")
        self._consumed: Set[str] = set()

    @classmethod
    def from_rpc(
        cls,
        rpc_url: str,
        private_key: str,
        chain_id: Optional[int] = None,
        confirmations: int = 1,
    ) -> "Web3FundsTransfer":
        from web3 import Web3
        from web3.middleware import ExtraDataToPOAMiddleware

        web3 = Web3(Web3.HTTPProvider(rpc_url))
        if not web3.is_connected():
            raise ConnectionError(f"Cannot connect to RPC endpoint: {rpc_url}")

        # Inject PoA middleware to support networks such as Hardhat or Polygon.
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        return cls(web3, private_key, chain_id=chain_id, confirmations=confirmations)

    @property
    def address(self) -> str:
        return self._account.address

    def balance(self) -> int:
        return int(self._web3.eth.get_balance(self._account.address))

    def collect(self, sender: str, amount: int, reference: Optional[str] = None) -> bool:
        if not reference:
            self._logger.warning("Entry from %s has no payment transaction", sender)
            return False
        key = reference.lower()
        if key in self._consumed:
            self._logger.warning("Payment %s was already used for an entry", reference)
            return False

        from requests import RequestException
        from web3 import Web3
        from web3.exceptions import Web3Exception

        try:
            tx = self._web3.eth.get_transaction(reference)
            receipt = self._web3.eth.get_transaction_receipt(reference)
            latest_block = int(self._web3.eth.block_number)
            expected_sender = Web3.to_checksum_address(sender)
        except (Web3Exception, RequestException, OSError, ValueError) as exc:
            self._logger.warning("Unable to verify payment %s: %s", reference, exc)
            return False

        if getattr(receipt, "status", 0) != 1:
            self._logger.warning("Payment %s reverted", reference)
            return False
        if latest_block - int(receipt["blockNumber"]) + 1 < self._confirmations:
            self._logger.info("Payment %s does not have enough confirmations yet", reference)
            return False
        if tx["to"] is None or Web3.to_checksum_address(tx["to"]) != self._account.address:
            self._logger.warning("Payment %s was not sent to the pool", reference)
            return False
        if Web3.to_checksum_address(tx["from"]) != expected_sender:
            self._logger.warning("Payment %s was not sent by %s", reference, sender)
            return False
        if int(tx["value"]) < amount:
            self._logger.warning("Payment %s carries %s, expected %s", reference, tx["value"], amount)
            return False

        self._consumed.add(key)
        return True

    def transfer(self, recipient: str, amount: int) -> bool:
        from requests import RequestException
        from web3 import Web3
        from web3.exceptions import Web3Exception

        try:
            tx_hash, sent = self._send_value(Web3.to_checksum_address(recipient), int(amount))
        except (Web3Exception, RequestException, OSError, ValueError) as exc:
            self._logger.error("Transfer of %s to %s failed: %s", amount, recipient, exc)
            return False
        self._logger.info("Transferred %s to %s in %s (requested %s)", sent, recipient, tx_hash, amount)
        return True

    # --------------------------------------------------------------------- #
    # Internal helpers
    # --------------------------------------------------------------------- #

    def _send_value(self, recipient: str, amount: int) -> Tuple[str, int]:
        web3 = self._web3
        account = self._account
        gas_price = int(web3.eth.gas_price)
        fee = DEFAULT_TRANSFER_GAS * gas_price
        available = int(web3.eth.get_balance(account.address))
        # The pool pays its own gas; a transfer of the whole pool is sent net of the fee.
        value = min(amount, available - fee)
        if value <= 0:
            raise ValueError(f"Pool balance {available} cannot cover {amount} plus gas {fee}")
        tx: Dict[str, Any] = {
            "from": account.address,
            "to": recipient,
            "value": value,
            "nonce": web3.eth.get_transaction_count(account.address),
            "gas": DEFAULT_TRANSFER_GAS,
            "gasPrice": gas_price,
        }
        if self._chain_id is not None:
            tx["chainId"] = self._chain_id

        signed = account.sign_transaction(tx)
        tx_hash = web3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = web3.eth.wait_for_transaction_receipt(tx_hash, timeout=180, poll_latency=2)
        if getattr(receipt, "status", 0) != 1:
            raise ValueError(f"Transfer reverted: {tx_hash.hex()}")
        return tx_hash.hex(), value
