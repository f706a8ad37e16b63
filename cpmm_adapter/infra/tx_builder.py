"""
Transaction builder and sender

Provides utilities for:
- Building versioned transactions
- Adding compute budget, priority fee and tip instructions
- Multi-signer signing
- Sending and confirming transactions
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .rpc import RpcClient
from .signer import Signer, message_bytes_for_signing
from .priority_fee import PriorityFeeEstimator, writable_accounts
from ..cpmm.instructions import build_transfer_instruction
from ..types import TxResult, TxStatus
from ..errors import ErrorCode, OperationError
from ..config import config as global_config

logger = logging.getLogger(__name__)

# Compute units assumed when simulation does not report consumption
DEFAULT_SIMULATED_UNITS = 800_000
SIMULATION_MARGIN = 1.1


def _tx_error(message: str, cause: Optional[Exception] = None, **details) -> OperationError:
    return OperationError(
        message,
        ErrorCode.TRANSACTION_EXECUTION_FAILED,
        cause=cause,
        details=details or None,
    )


@dataclass
class TxBuilderConfig:
    """
    Transaction builder runtime configuration

    Allows per-builder overrides while pulling defaults from the global
    config (cpmm_adapter.config.TxConfig).

    Usage:
        config = TxBuilderConfig(compute_units=400_000, skip_preflight=True)
        builder = TxBuilder(rpc, signer, config=config)
    """
    compute_units: int = None
    compute_unit_price: int = None
    dynamic_priority_fee: bool = None
    tip_lamports: int = None
    tip_address: str = None
    skip_preflight: bool = None
    preflight_commitment: str = None
    confirmation_timeout: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.compute_units is None:
            self.compute_units = global_config.tx.compute_units
        if self.compute_unit_price is None:
            self.compute_unit_price = global_config.tx.compute_unit_price
        if self.dynamic_priority_fee is None:
            self.dynamic_priority_fee = global_config.tx.dynamic_priority_fee
        if self.tip_lamports is None:
            self.tip_lamports = global_config.tx.tip_lamports
        if self.tip_address is None:
            self.tip_address = global_config.tx.tip_address
        if self.skip_preflight is None:
            self.skip_preflight = global_config.tx.skip_preflight
        if self.preflight_commitment is None:
            self.preflight_commitment = global_config.tx.preflight_commitment
        if self.confirmation_timeout is None:
            self.confirmation_timeout = global_config.tx.confirmation_timeout


class TxBuilder:
    """
    Transaction builder and sender

    Usage:
        builder = TxBuilder(rpc, signer)

        result = await builder.build_and_send(instructions)

        # Or step by step
        tx_bytes = await builder.build(instructions)
        signed_bytes, sig = builder.sign(tx_bytes)
        result = await builder.send(signed_bytes)
    """

    def __init__(
        self,
        rpc: RpcClient,
        signer: Signer,
        config: Optional[TxBuilderConfig] = None,
        fee_estimator: Optional[PriorityFeeEstimator] = None,
    ):
        self._rpc = rpc
        self._signer = signer
        self._config = config or TxBuilderConfig()
        self._fee_estimator = fee_estimator or PriorityFeeEstimator(rpc)

    @property
    def pubkey(self) -> str:
        """Signer's public key"""
        return self._signer.pubkey

    @property
    def config(self) -> TxBuilderConfig:
        return self._config

    async def resolve_compute_unit_price(self, instructions: List[Instruction]) -> int:
        """
        Compute-unit price for a transaction

        Uses the recent-fee estimate when dynamic fees are enabled and the
        estimate is non-zero, otherwise the configured price.
        """
        if self._config.dynamic_priority_fee:
            estimate = await self._fee_estimator.estimate_fee(writable_accounts(instructions))
            if estimate > 0:
                return estimate
        return self._config.compute_unit_price

    async def build(
        self,
        instructions: List[Instruction],
        payer: Optional[str] = None,
        compute_units: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        recent_blockhash: Optional[str] = None,
    ) -> bytes:
        """
        Build unsigned versioned transaction

        Args:
            instructions: List of instructions
            payer: Fee payer pubkey (defaults to signer)
            compute_units: Compute unit limit
            compute_unit_price: Priority fee in microlamports per CU
            recent_blockhash: Optional blockhash (fetched if not provided)

        Returns:
            Unsigned transaction bytes
        """
        all_instructions = []

        cu_limit = compute_units or self._config.compute_units
        if compute_unit_price is None:
            compute_unit_price = await self.resolve_compute_unit_price(instructions)

        if cu_limit > 0:
            all_instructions.append(set_compute_unit_limit(cu_limit))
        if compute_unit_price > 0:
            all_instructions.append(set_compute_unit_price(compute_unit_price))

        all_instructions.extend(instructions)

        payer_pubkey = Pubkey.from_string(payer or self.pubkey)
        if self._config.tip_lamports > 0:
            all_instructions.append(build_transfer_instruction(
                payer_pubkey,
                Pubkey.from_string(self._config.tip_address),
                self._config.tip_lamports,
            ))

        if recent_blockhash is None:
            blockhash_info = await self._rpc.get_latest_blockhash()
            recent_blockhash = blockhash_info.get("blockhash")

        if not recent_blockhash:
            raise _tx_error("Failed to get recent blockhash")

        message = MessageV0.try_compile(
            payer_pubkey,
            all_instructions,
            [],  # Address lookup tables
            Hash.from_string(recent_blockhash),
        )

        num_signers = message.header.num_required_signatures
        tx = VersionedTransaction.populate(message, [Signature.default()] * num_signers)
        return bytes(tx)

    def sign(
        self,
        unsigned_tx: bytes,
        additional_signers: Optional[List[Keypair]] = None,
    ) -> Tuple[bytes, str]:
        """
        Sign transaction with the wallet and any additional keypairs

        Returns:
            (signed_tx_bytes, wallet_signature_base58)
        """
        if not additional_signers:
            return self._signer.sign_transaction(unsigned_tx)

        tx = VersionedTransaction.from_bytes(unsigned_tx)
        message = tx.message
        message_bytes = message_bytes_for_signing(message)

        account_keys = [str(k) for k in message.account_keys]
        num_required_signatures = message.header.num_required_signatures
        signer_keys = account_keys[:num_required_signatures]

        null_sig = Signature.default()
        signatures = [null_sig] * num_required_signatures

        if self._signer.pubkey not in signer_keys:
            logger.error(f"Wallet pubkey {self._signer.pubkey} not in signers: {signer_keys}")
            raise _tx_error(
                f"Wallet pubkey {self._signer.pubkey} not found in transaction signers",
                required_signers=signer_keys,
            )
        wallet_index = signer_keys.index(self._signer.pubkey)
        wallet_signature = Signature.from_bytes(self._signer.sign(message_bytes))
        signatures[wallet_index] = wallet_signature

        for keypair in additional_signers:
            key = str(keypair.pubkey())
            if key in signer_keys:
                signatures[signer_keys.index(key)] = keypair.sign_message(message_bytes)
                logger.debug(f"Additional signer {key[:16]}... signed")
            else:
                logger.warning(f"Additional signer {key} not found in required signers")

        missing = [signer_keys[i] for i, sig in enumerate(signatures) if sig == null_sig]
        if missing:
            raise _tx_error(f"Missing signatures for required signers: {', '.join(missing)}")

        signed_tx = VersionedTransaction.populate(message, signatures)
        return bytes(signed_tx), str(wallet_signature)

    async def send(
        self,
        signed_tx: bytes,
        skip_preflight: Optional[bool] = None,
        wait_confirmation: bool = True,
        commitment: Optional[str] = None,
    ) -> TxResult:
        """
        Send signed transaction once and optionally wait for confirmation

        Returns:
            TxResult with status and signature
        """
        skip = skip_preflight if skip_preflight is not None else self._config.skip_preflight

        signature = await self._rpc.send_transaction(
            signed_tx,
            skip_preflight=skip,
            preflight_commitment=self._config.preflight_commitment,
        )
        logger.info(f"Transaction sent: {signature}")

        if not wait_confirmation:
            return TxResult(status=TxStatus.PENDING, signature=signature)

        confirmed = await self._rpc.confirm_transaction(
            signature,
            commitment=commitment or self._config.preflight_commitment,
            timeout_seconds=self._config.confirmation_timeout,
        )
        if confirmed is True:
            return TxResult.success(signature)
        if confirmed is False:
            return TxResult.failed(
                "Transaction failed on-chain (check explorer for details)",
                signature=signature,
            )
        return TxResult.timeout(signature)

    async def simulate(self, unsigned_tx: bytes) -> dict:
        """Simulate transaction execution"""
        return await self._rpc.simulate_transaction(unsigned_tx)

    async def estimate_compute_units(self, unsigned_tx: bytes) -> int:
        """
        Compute units consumed in simulation plus a 10% margin

        Raises:
            OperationError: If the simulation reports an error
        """
        sim_result = await self.simulate(unsigned_tx)
        value = (sim_result or {}).get("value") or {}
        if value.get("err"):
            raise _tx_error(
                f"Simulation failed: {value['err']}",
                logs=value.get("logs", []),
            )
        units = value.get("unitsConsumed") or DEFAULT_SIMULATED_UNITS
        return math.ceil(units * SIMULATION_MARGIN)

    async def build_and_send(
        self,
        instructions: List[Instruction],
        compute_units: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        skip_preflight: Optional[bool] = None,
        wait_confirmation: bool = True,
        simulate_first: bool = False,
        additional_signers: Optional[List[Keypair]] = None,
        commitment: Optional[str] = None,
    ) -> TxResult:
        """
        Build, sign, and send transaction in one call

        Args:
            instructions: List of instructions
            compute_units: Compute unit limit
            compute_unit_price: Priority fee
            skip_preflight: Skip preflight simulation on send
            wait_confirmation: Wait for confirmation
            simulate_first: Simulate and size the compute budget from the result
            additional_signers: Extra keypairs that must co-sign
            commitment: Confirmation commitment level

        Returns:
            TxResult
        """
        if compute_unit_price is None:
            compute_unit_price = await self.resolve_compute_unit_price(instructions)

        unsigned_tx = await self.build(
            instructions,
            compute_units=compute_units,
            compute_unit_price=compute_unit_price,
        )

        if simulate_first:
            units = await self.estimate_compute_units(unsigned_tx)
            logger.debug(f"Simulation sized compute budget at {units} units")
            unsigned_tx = await self.build(
                instructions,
                compute_units=units,
                compute_unit_price=compute_unit_price,
            )

        signed_tx, _ = self.sign(unsigned_tx, additional_signers)

        return await self.send(
            signed_tx,
            skip_preflight=skip_preflight,
            wait_confirmation=wait_confirmation,
            commitment=commitment,
        )
