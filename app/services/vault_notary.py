import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from web3 import Web3

from app.config import settings

logger = logging.getLogger(__name__)


class NotarizationError(Exception):
    pass


class Notarizer(Protocol):
    def notarize(self, storage_address: str, content_hash: str, title: str) -> str: ...


@dataclass(frozen=True)
class NotarizationResult:
    reference: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.reference is not None


class DisabledNotarizer:
    """Used when no chain is configured; every attempt reports a failure."""

    def notarize(self, storage_address: str, content_hash: str, title: str) -> str:
        raise NotarizationError("Notarization is not configured")


def load_contract_abi(path: str) -> list:
    """Load an ABI from a raw ABI array or a deploy artifact with an 'abi' field."""
    with open(Path(path), encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and "abi" in data:
        return data["abi"]
    if isinstance(data, list):
        return data
    raise NotarizationError(f"No contract ABI found in {path}")


class Web3Notarizer:
    """Registers (storage address, content hash, title) with the registry contract."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        abi: list,
        private_key: str,
        timeout: int = 120,
    ):
        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        self.account = self.w3.eth.account.from_key(private_key)
        self.contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(contract_address), abi=abi
        )
        self.timeout = timeout

    def notarize(self, storage_address: str, content_hash: str, title: str) -> str:
        tx = self.contract.functions.addDocument(
            storage_address, content_hash, title
        ).build_transaction(
            {
                "from": self.account.address,
                "nonce": self.w3.eth.get_transaction_count(self.account.address),
            }
        )
        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.timeout
        )
        if receipt.get("status") != 1:
            raise NotarizationError("Notarization transaction reverted")
        return Web3.to_hex(tx_hash)


def build_notarizer() -> Notarizer:
    if not (
        settings.rpc_url and settings.contract_address and settings.notary_private_key
    ):
        return DisabledNotarizer()
    try:
        abi = load_contract_abi(settings.contract_abi_path)
    except (OSError, ValueError, NotarizationError) as e:
        logger.warning("Notarization disabled, contract ABI unavailable: %s", e)
        return DisabledNotarizer()
    try:
        return Web3Notarizer(
            rpc_url=settings.rpc_url,
            contract_address=settings.contract_address,
            abi=abi,
            private_key=settings.notary_private_key,
            timeout=settings.notary_timeout_seconds,
        )
    except (ValueError, TypeError) as e:
        logger.warning("Notarization disabled, invalid chain settings: %s", e)
        return DisabledNotarizer()


def attempt_notarization(
    notarizer: Notarizer, storage_address: str, content_hash: str, title: str
) -> NotarizationResult:
    """Best-effort notarization.

    Never raises: a failed or unreachable chain leaves the document without a
    reference and the upload proceeds.
    """
    try:
        reference = notarizer.notarize(storage_address, content_hash, title)
    except Exception as e:
        logger.warning("Notarization of %s failed: %s", content_hash, e)
        return NotarizationResult(error=str(e) or e.__class__.__name__)
    logger.info("Notarized %s in %s", content_hash, reference)
    return NotarizationResult(reference=reference)
