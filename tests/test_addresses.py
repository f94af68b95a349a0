"""
Tests for program-derived addresses and the AddressDeriver.
"""

import base58
import pytest
import nacl.signing

from ghostpool import constants
from ghostpool.config import ProtocolConfig
from ghostpool.constants import (
    CIRCUIT_DEPOSIT,
    DEFAULT_ARCIUM_PROGRAM_ID,
    DEFAULT_MXE_ACCOUNT,
    DEFAULT_PROGRAM_ID,
    KNOWN_CIRCUIT_OFFSETS,
    KNOWN_COMP_DEF_ACCOUNTS,
    TOKEN_PROGRAM_ID,
)
from ghostpool.core.types import Pubkey
from ghostpool.crypto.pda import create_program_address, find_program_address, is_on_curve
from ghostpool.errors import InvalidSeedError, ValidationError
from ghostpool.protocol.addresses import AddressDeriver

OWNER = Pubkey(bytes([1] * 32))


class TestCurveCheck:
    """Tests for is_on_curve."""

    def test_basepoint(self):
        """The Ed25519 base point is on the curve."""
        basepoint = bytes.fromhex("58" + "66" * 31)
        assert is_on_curve(basepoint)

    def test_identity(self):
        """The identity (y = 1) is on the curve."""
        assert is_on_curve(b"\x01" + bytes(31))

    def test_real_public_keys(self):
        """Signing keys are curve points."""
        for seed in range(5):
            key = nacl.signing.SigningKey(bytes([seed] * 32)).verify_key
            assert is_on_curve(bytes(key))

    def test_wrong_length(self):
        """Non-32-byte input is never a point."""
        assert not is_on_curve(bytes(31))


class TestProgramAddress:
    """Tests for find/create_program_address."""

    def test_off_curve_and_deterministic(self):
        """Derived addresses are off-curve and stable."""
        address, bump = find_program_address([b"ghost_pool", OWNER.data], OWNER)
        assert not is_on_curve(address.data)
        assert 0 <= bump <= 255
        assert find_program_address([b"ghost_pool", OWNER.data], OWNER) == (address, bump)

    def test_create_with_bump_matches(self):
        """Appending the bump reproduces the address."""
        address, bump = find_program_address([b"vault"], OWNER)
        assert create_program_address([b"vault", bytes([bump])], OWNER) == address

    def test_seed_order_matters(self):
        """Seeds are not commutative."""
        a, _ = find_program_address([b"a", b"b"], OWNER)
        b, _ = find_program_address([b"b", b"a"], OWNER)
        assert a != b

    def test_seed_too_long(self):
        """A 33-byte seed is refused."""
        with pytest.raises(InvalidSeedError):
            find_program_address([bytes(33)], OWNER)

    def test_seed_limit_leaves_room_for_bump(self):
        """15 seeds are allowed, 16 are not."""
        find_program_address([b"x"] * 15, OWNER)
        with pytest.raises(InvalidSeedError):
            find_program_address([b"x"] * 16, OWNER)

    def test_seed_error_is_validation_error(self):
        """Seed errors share the validation taxonomy."""
        with pytest.raises(ValidationError):
            find_program_address(["text"], OWNER)


class TestAddressDeriver:
    """Tests for AddressDeriver."""

    def test_pool_per_owner(self, protocol):
        """Each owner has its own pool."""
        deriver = AddressDeriver(protocol)
        assert deriver.pool_address(OWNER) == deriver.pool_address(OWNER)
        assert deriver.pool_address(OWNER) != deriver.pool_address(Pubkey(bytes([2] * 32)))

    def test_computation_per_offset(self, protocol):
        """Computation accounts differ by offset."""
        deriver = AddressDeriver(protocol)
        assert deriver.computation_address(1) != deriver.computation_address(2)

    def test_computation_offset_range(self, protocol):
        """Offsets are u64."""
        deriver = AddressDeriver(protocol)
        deriver.computation_address(2**64 - 1)
        with pytest.raises(ValidationError):
            deriver.computation_address(2**64)

    def test_cluster_accounts_distinct(self, protocol):
        """Cluster, mempool and executing pool are separate accounts."""
        deriver = AddressDeriver(protocol)
        addresses = {
            deriver.cluster_address(),
            deriver.mempool_address(),
            deriver.executing_pool_address(),
        }
        assert len(addresses) == 3

    def test_cluster_offset_changes_addresses(self, protocol):
        """A different cluster routes to different accounts."""
        other = ProtocolConfig.default_devnet(cluster_offset=protocol.cluster_offset + 1)
        assert AddressDeriver(other).cluster_address() != AddressDeriver(protocol).cluster_address()

    def test_configured_mxe_account(self, protocol):
        """A configured MXE account is used as-is."""
        assert AddressDeriver(protocol).mxe_address() == Pubkey.from_base58(DEFAULT_MXE_ACCOUNT)

    def test_derived_mxe_account(self):
        """Without configuration the MXE account is derived."""
        deriver = AddressDeriver(ProtocolConfig.default_devnet(mxe_account=None))
        mxe = deriver.mxe_address()
        assert not is_on_curve(mxe.data)
        assert mxe == deriver.mxe_address()

    def test_registered_circuit_offset(self, protocol):
        """Registered circuits resolve to their hash-derived offset."""
        deriver = AddressDeriver(protocol)
        assert deriver.offset_for_circuit_name(CIRCUIT_DEPOSIT) == KNOWN_CIRCUIT_OFFSETS[CIRCUIT_DEPOSIT]
        assert deriver.hash_circuit_name(CIRCUIT_DEPOSIT) == KNOWN_CIRCUIT_OFFSETS[CIRCUIT_DEPOSIT]
        assert CIRCUIT_DEPOSIT in deriver.known_circuits()

    def test_unregistered_circuit(self, protocol):
        """Unknown circuits are a validation error naming the circuit."""
        with pytest.raises(ValidationError) as exc_info:
            AddressDeriver(protocol).offset_for_circuit_name("mint_free_money")
        assert exc_info.value.field == "circuit"

    def test_associated_token_address(self, protocol):
        """Token accounts are per wallet and per mint."""
        deriver = AddressDeriver(protocol)
        mint_a, mint_b = Pubkey(bytes([7] * 32)), Pubkey(bytes([8] * 32))
        assert deriver.associated_token_address(OWNER, mint_a) != deriver.associated_token_address(OWNER, mint_b)
        assert not is_on_curve(deriver.associated_token_address(OWNER, mint_a).data)

    def test_request_bundle(self, protocol):
        """The bundle is consistent with the individual derivations."""
        deriver = AddressDeriver(protocol)
        bundle = deriver.derive_request_addresses(OWNER, CIRCUIT_DEPOSIT, 77)
        assert bundle.pool == deriver.pool_address(OWNER)
        assert bundle.vault == deriver.vault_address(bundle.pool)
        assert bundle.computation == deriver.computation_address(77)
        assert bundle.comp_def == deriver.comp_def_address(KNOWN_CIRCUIT_OFFSETS[CIRCUIT_DEPOSIT])
        assert bundle.computation_offset == 77
        assert deriver.derive_request_addresses(OWNER, CIRCUIT_DEPOSIT, 77) == bundle


class TestDeployedAddresses:
    """Derivations checked against the live devnet deployment."""

    ADDRESS_CONSTANTS = (
        "DEFAULT_PROGRAM_ID",
        "DEFAULT_ARCIUM_PROGRAM_ID",
        "DEFAULT_FEE_POOL_ACCOUNT",
        "DEFAULT_CLOCK_ACCOUNT",
        "DEFAULT_MXE_ACCOUNT",
        "SYSTEM_PROGRAM_ID",
        "TOKEN_PROGRAM_ID",
        "ASSOCIATED_TOKEN_PROGRAM_ID",
    )

    @pytest.mark.parametrize("name", ADDRESS_CONSTANTS)
    def test_address_constants_are_32_bytes(self, name):
        """Every shipped base58 address decodes to a 32-byte key."""
        assert len(base58.b58decode(getattr(constants, name))) == 32

    def test_comp_def_table_is_32_bytes(self):
        """Every deployed circuit definition address decodes to 32 bytes."""
        for name, address in KNOWN_COMP_DEF_ACCOUNTS.items():
            assert len(base58.b58decode(address)) == 32, name

    def test_token_program_bytes(self):
        """The token program id is the well-known 06ddf6e1... key."""
        assert base58.b58decode(TOKEN_PROGRAM_ID)[:8].hex() == "06ddf6e1d765a193"

    def test_comp_def_derivation_matches_deployment(self):
        """Each circuit's derived definition account is the deployed one."""
        deriver = AddressDeriver(ProtocolConfig.default_devnet(comp_def_accounts={}))
        for name, offset in KNOWN_CIRCUIT_OFFSETS.items():
            expected = Pubkey.from_base58(KNOWN_COMP_DEF_ACCOUNTS[name])
            assert deriver.comp_def_address(offset) == expected, name

    def test_comp_def_seed_layout(self, protocol):
        """Seeds are the label, the program id and the u32 offset."""
        offset = KNOWN_CIRCUIT_OFFSETS[CIRCUIT_DEPOSIT]
        expected, _ = find_program_address(
            [
                b"ComputationDefinitionAccount",
                Pubkey.from_base58(DEFAULT_PROGRAM_ID).data,
                offset.to_bytes(4, "little"),
            ],
            Pubkey.from_base58(DEFAULT_ARCIUM_PROGRAM_ID),
        )
        assert AddressDeriver(protocol).comp_def_address(offset) == expected

    def test_configured_table_used(self, protocol):
        """Request bundles use the configured definition account."""
        bundle = AddressDeriver(protocol).derive_request_addresses(OWNER, CIRCUIT_DEPOSIT, 3)
        assert bundle.comp_def == Pubkey.from_base58(KNOWN_COMP_DEF_ACCOUNTS[CIRCUIT_DEPOSIT])

    def test_mxe_derivation_matches_deployment(self):
        """The derived MXE account is the deployed one."""
        deriver = AddressDeriver(ProtocolConfig.default_devnet(mxe_account=None))
        assert deriver.mxe_address() == Pubkey.from_base58(DEFAULT_MXE_ACCOUNT)
