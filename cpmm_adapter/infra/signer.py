"""
Transaction signing abstractions

Provides a signing interface for local keypair signing. Key custody and
wallet UIs live outside this package; anything implementing Signer can be
plugged into the client.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional, Protocol, Tuple, runtime_checkable

import base58
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ..errors import ConfigurationError, ErrorCode, OperationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """
    Protocol for transaction signers

    Implementations must provide:
    - pubkey: The signer's public key (base58)
    - sign(): Sign raw message bytes
    - sign_transaction(): Sign a serialized versioned transaction
    """

    @property
    def pubkey(self) -> str:
        """Signer's public key (base58)"""
        ...

    def sign(self, message: bytes) -> bytes:
        """Sign message bytes, returning a 64-byte signature"""
        ...

    def sign_transaction(self, unsigned_tx: bytes) -> Tuple[bytes, str]:
        """Sign a transaction, returning (signed_tx_bytes, signature_base58)"""
        ...


def message_bytes_for_signing(message) -> bytes:
    """
    Bytes covered by transaction signatures

    MessageV0 is signed together with its 0x80 version prefix.
    """
    data = bytes(message)
    if isinstance(message, MessageV0):
        data = bytes([0x80]) + data
    return data


class LocalSigner:
    """
    Local signer using a Solana keypair

    Usage:
        signer = LocalSigner(Keypair())
        signed_tx, sig = signer.sign_transaction(unsigned_tx_bytes)
    """

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @property
    def pubkey(self) -> str:
        """Public key as base58 string"""
        return str(self._keypair.pubkey())

    def sign(self, message: bytes) -> bytes:
        """Sign message bytes"""
        return bytes(self._keypair.sign_message(message))

    def sign_transaction(self, unsigned_tx: bytes) -> Tuple[bytes, str]:
        """
        Sign versioned transaction

        Args:
            unsigned_tx: Unsigned VersionedTransaction bytes

        Returns:
            (signed_tx_bytes, signature_base58)
        """
        tx = VersionedTransaction.from_bytes(unsigned_tx)
        message = tx.message
        signature = self._keypair.sign_message(message_bytes_for_signing(message))

        num_required_signatures = message.header.num_required_signatures
        account_keys = list(message.account_keys)
        our_pubkey = self._keypair.pubkey()

        signer_index = None
        for i in range(min(num_required_signatures, len(account_keys))):
            if account_keys[i] == our_pubkey:
                signer_index = i
                break

        if signer_index is None:
            expected = [str(k) for k in account_keys[:num_required_signatures]]
            raise OperationError(
                f"Wallet {our_pubkey} is not in the required signers list. Expected signers: {expected}",
                ErrorCode.TRANSACTION_EXECUTION_FAILED,
            )

        # Keep any signatures already present for other signers
        signatures = list(tx.signatures) or [Signature.default()] * num_required_signatures
        signatures[signer_index] = signature

        signed_tx = VersionedTransaction.populate(message, signatures)
        return bytes(signed_tx), str(signature)

    @classmethod
    def from_bytes(cls, secret_key: bytes) -> "LocalSigner":
        """Create signer from secret key bytes (64 bytes)"""
        return cls(Keypair.from_bytes(secret_key))

    @classmethod
    def from_base58(cls, secret_key: str) -> "LocalSigner":
        """Create signer from base58 secret key"""
        return cls.from_bytes(base58.b58decode(secret_key))

    @classmethod
    def from_file(cls, path: str) -> "LocalSigner":
        """
        Create signer from keypair file

        Supports:
        - JSON array format (Solana CLI): [1,2,3,...]
        - Raw bytes file (64 bytes)
        """
        with open(path, "rb") as f:
            content = f.read()

        try:
            data = json.loads(content.decode("utf-8"))
            if isinstance(data, list):
                return cls.from_bytes(bytes(data))
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass

        if len(content) == 64:
            return cls.from_bytes(content)

        raise ConfigurationError.invalid("keypair_file", f"Cannot parse keypair file: {path}")


def create_signer(
    keypair: Optional[Keypair] = None,
    keypair_path: Optional[str] = None,
    required: bool = False,
) -> Optional[Signer]:
    """
    Create signer based on configuration

    Priority:
    1. keypair: Use LocalSigner with provided keypair
    2. keypair_path: Load keypair from file
    3. Environment: SOLANA_KEYPAIR_PATH

    Args:
        keypair: Optional Keypair instance
        keypair_path: Optional path to keypair file
        required: Raise instead of returning None when nothing is configured

    Returns:
        Signer instance, or None for a read-only client
    """
    if keypair is not None:
        return LocalSigner(keypair)

    if keypair_path is not None:
        return LocalSigner.from_file(keypair_path)

    if global_config.signer.keypair_path and os.path.isfile(global_config.signer.keypair_path):
        return LocalSigner.from_file(global_config.signer.keypair_path)

    if required:
        raise OperationError("No signer configured", ErrorCode.MISSING_SIGNER)
    logger.info("No signer configured, client is read-only")
    return None
