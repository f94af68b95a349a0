"""
Ghost Pool Address Deriver

Named program-derived addresses for the pool program and the computation
network. Seed tables:

    pool         = pool_label    || owner                         (pool program)
    vault        = vault_label   || pool                          (pool program)
    signer       = signer_label                                   (pool program)
    comp_def     = comp_def_label || program id || u32LE(circuit offset)  (network program)
    cluster      = cluster_label  || u32LE(cluster offset)        (network program)
    mempool      = mempool_label  || u32LE(cluster offset)        (network program)
    execpool     = execpool_label || u32LE(cluster offset)        (network program)
    computation  = computation_label || u32LE(cluster) || u64LE(computation offset)
    mxe          = mxe_label || pool program id                   (network program)

Every address is recomputed on demand. Nothing here is authoritative state.
"""

from __future__ import annotations
import logging
from typing import List, Sequence, Tuple, Union

from ghostpool.config import ProtocolConfig
from ghostpool.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID, U64_MAX
from ghostpool.core.serialization import serialize_u32, serialize_u64
from ghostpool.core.types import DerivedAddresses, Pubkey
from ghostpool.crypto.hash import comp_def_offset
from ghostpool.crypto.pda import find_program_address
from ghostpool.errors import ValidationError, Stage

logger = logging.getLogger(__name__)

Seed = Union[bytes, str, Pubkey]


def _seed_bytes(seed: Seed) -> bytes:
    if isinstance(seed, Pubkey):
        return seed.data
    if isinstance(seed, str):
        return seed.encode("utf-8")
    return bytes(seed)


class AddressDeriver:
    """Deterministic account addresses for one protocol deployment."""

    def __init__(self, config: ProtocolConfig):
        self.config = config
        self.labels = config.labels

    # ==========================================================================
    # Generic derivation
    # ==========================================================================

    def derive(self, seeds: Sequence[Seed], owner: Pubkey) -> Pubkey:
        """
        Off-curve address for ordered seeds under an owning program.

        Raises:
            ValidationError: Too many seeds or a seed longer than 32 bytes
        """
        address, _ = self.derive_with_bump(seeds, owner)
        return address

    def derive_with_bump(self, seeds: Sequence[Seed], owner: Pubkey) -> Tuple[Pubkey, int]:
        return find_program_address([_seed_bytes(s) for s in seeds], owner)

    # ==========================================================================
    # Pool program accounts
    # ==========================================================================

    def pool_address(self, owner: Pubkey) -> Pubkey:
        return self.derive([self.labels.pool, owner], self.config.program_id)

    def vault_address(self, pool: Pubkey) -> Pubkey:
        return self.derive([self.labels.vault, pool], self.config.program_id)

    def signer_address(self) -> Pubkey:
        return self.derive([self.labels.signer], self.config.program_id)

    # ==========================================================================
    # Computation network accounts
    # ==========================================================================

    def _cluster_seed(self) -> bytes:
        return serialize_u32(self.config.cluster_offset)

    def cluster_address(self) -> Pubkey:
        return self.derive([self.labels.cluster, self._cluster_seed()], self.config.arcium_program_id)

    def mempool_address(self) -> Pubkey:
        return self.derive([self.labels.mempool, self._cluster_seed()], self.config.arcium_program_id)

    def executing_pool_address(self) -> Pubkey:
        return self.derive([self.labels.execpool, self._cluster_seed()], self.config.arcium_program_id)

    def computation_address(self, computation_offset: int) -> Pubkey:
        if not 0 <= computation_offset <= U64_MAX:
            raise ValidationError("computation_offset", "must fit in 64 bits", Stage.BUILD)
        return self.derive(
            [self.labels.computation, self._cluster_seed(), serialize_u64(computation_offset)],
            self.config.arcium_program_id,
        )

    def mxe_address(self) -> Pubkey:
        """Configured MXE account, or the one derived from the program id."""
        if self.config.mxe_account is not None:
            return self.config.mxe_account
        return self.derive([self.labels.mxe, self.config.program_id], self.config.arcium_program_id)

    def comp_def_address(self, circuit_offset: int) -> Pubkey:
        return self.derive(self.config.comp_def_seeds(circuit_offset), self.config.arcium_program_id)

    def comp_def_for_circuit(self, name: str) -> Pubkey:
        """Deployed definition account of a circuit, derived when not configured."""
        account = self.config.comp_def_accounts.get(name)
        if account is not None:
            return account
        return self.comp_def_address(self.offset_for_circuit_name(name))

    # ==========================================================================
    # Token accounts
    # ==========================================================================

    def associated_token_address(self, wallet: Pubkey, mint: Pubkey) -> Pubkey:
        """Canonical token account of `wallet` for `mint`."""
        return self.derive(
            [wallet, Pubkey.from_base58(TOKEN_PROGRAM_ID), mint],
            Pubkey.from_base58(ASSOCIATED_TOKEN_PROGRAM_ID),
        )

    # ==========================================================================
    # Circuits
    # ==========================================================================

    def offset_for_circuit_name(self, name: str) -> int:
        """
        Registered offset of a circuit.

        The registry was checked against sha256(name)[:4] when the config was
        loaded, so this is also the hash-derived value.

        Raises:
            ValidationError: If the circuit is not registered
        """
        try:
            return self.config.circuit_registry[name]
        except KeyError:
            raise ValidationError(
                "circuit", f"'{name}' is not in the circuit registry", Stage.BUILD
            ) from None

    @staticmethod
    def hash_circuit_name(name: str) -> int:
        """Unregistered hash of a circuit name."""
        return comp_def_offset(name)

    def known_circuits(self) -> List[str]:
        return sorted(self.config.circuit_registry)

    # ==========================================================================
    # Per-request bundle
    # ==========================================================================

    def derive_request_addresses(
        self,
        pool_owner: Pubkey,
        circuit_name: str,
        computation_offset: int,
    ) -> DerivedAddresses:
        """All addresses that route one computation request."""
        pool = self.pool_address(pool_owner)
        addresses = DerivedAddresses(
            pool=pool,
            vault=self.vault_address(pool),
            signer=self.signer_address(),
            mxe=self.mxe_address(),
            cluster=self.cluster_address(),
            mempool=self.mempool_address(),
            executing_pool=self.executing_pool_address(),
            computation=self.computation_address(computation_offset),
            comp_def=self.comp_def_for_circuit(circuit_name),
            computation_offset=computation_offset,
        )
        logger.debug(
            f"Derived addresses for {circuit_name} offset {computation_offset}: "
            f"pool={pool} computation={addresses.computation}"
        )
        return addresses
