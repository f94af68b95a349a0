"""
Ghost Pool Client Test Fixtures
"""

import base64
import dataclasses
from typing import Callable, Dict, List, Optional

import base58
import pytest

from ghostpool.config import ClientConfig, ProtocolConfig, SimulationPolicy
from ghostpool.constants import CIPHERTEXT_BLOCK_SIZE, ENCRYPTED_STATE_BLOCKS
from ghostpool.core.types import PoolState, Pubkey
from ghostpool.crypto import x25519
from ghostpool.crypto.rescue import initialize_cipher
from ghostpool.errors import GhostPoolError
from ghostpool.orchestrator.journal import MemoryJournal
from ghostpool.orchestrator.request import RequestOrchestrator
from ghostpool.protocol import codec
from ghostpool.protocol.credential import CredentialCipher
from ghostpool.protocol.transaction import split_transaction
from ghostpool.wallet import KeypairSigner


class FakeLedger:
    """
    In-memory ledger with the LedgerClient surface.

    Records every call by RPC method name so tests can assert how much
    network traffic an operation caused.
    """

    commitment = "confirmed"

    def __init__(self):
        self.accounts: Dict[Pubkey, bytes] = {}
        self.calls: List[str] = []
        self.sent: List[bytes] = []
        self.statuses: Dict[str, dict] = {}
        self.address_signatures: Dict[Pubkey, List[dict]] = {}
        self.simulation: dict = {"err": None, "logs": [], "unitsConsumed": 4200}
        self.send_errors: List[GhostPoolError] = []
        self.drop_sends = 0
        self.blockhash = base58.b58encode(bytes([9] * 32)).decode("ascii")
        self.block_height = 100
        self.last_valid_height = 250
        self.on_send: Optional[Callable[[bytes], None]] = None

    async def get_account_info(self, address, stage=None):
        self.calls.append("getAccountInfo")
        return self.accounts.get(address)

    async def get_latest_blockhash(self, stage=None):
        self.calls.append("getLatestBlockhash")
        return self.blockhash, self.last_valid_height

    async def get_block_height(self, stage=None):
        self.calls.append("getBlockHeight")
        return self.block_height

    async def simulate_transaction(self, tx_base64, stage=None):
        self.calls.append("simulateTransaction")
        return dict(self.simulation)

    async def send_transaction(self, tx_base64, stage=None):
        self.calls.append("sendTransaction")
        if self.send_errors:
            raise self.send_errors.pop(0)
        raw = base64.b64decode(tx_base64)
        signatures, _ = split_transaction(raw)
        signature = base58.b58encode(signatures[0]).decode("ascii")
        self.sent.append(raw)
        if self.drop_sends:
            self.drop_sends -= 1
            return signature
        self.statuses[signature] = {"slot": 42, "confirmationStatus": "confirmed", "err": None}
        if self.on_send is not None:
            self.on_send(raw)
        return signature

    async def get_signature_statuses(self, signatures, stage=None):
        self.calls.append("getSignatureStatuses")
        return [self.statuses.get(s) for s in signatures]

    async def get_signatures_for_address(self, address, limit=20, stage=None):
        self.calls.append("getSignaturesForAddress")
        return list(self.address_signatures.get(address, []))

    def count(self, method: str) -> int:
        return self.calls.count(method)

    def bump_pool(self, pool: Pubkey, **increments) -> None:
        """Apply a callback's effect: add `increments` to pool counters."""
        state = codec.decode(self.accounts[pool])
        changes = {name: getattr(state, name) + delta for name, delta in increments.items()}
        changes["state_nonce"] = state.state_nonce + 1
        self.accounts[pool] = codec.encode(dataclasses.replace(state, **changes))

    def land_callback(
        self, computation: Pubkey, pool: Optional[Pubkey] = None, err=None, **increments
    ) -> None:
        """Apply a callback: a transaction on the computation account, and its counter changes."""
        history = self.address_signatures.setdefault(computation, [])
        history.insert(0, {"signature": f"callback-{computation}-{len(history)}", "err": err})
        if pool is not None and err is None:
            self.bump_pool(pool, **increments)


@pytest.fixture(scope="session")
def rescue_params():
    """Cipher parameters, built once."""
    return initialize_cipher()


@pytest.fixture
def cipher(rescue_params) -> CredentialCipher:
    return CredentialCipher(rescue_params)


@pytest.fixture
def mxe_keypair():
    """Stand-in for the network's X25519 key pair."""
    return x25519.generate_keypair()


@pytest.fixture
def protocol(mxe_keypair) -> ProtocolConfig:
    return ProtocolConfig.default_devnet(mxe_public_key=mxe_keypair[1])


@pytest.fixture
def signer() -> KeypairSigner:
    """Deterministic wallet."""
    return KeypairSigner(bytes(range(32)))


@pytest.fixture
def mint() -> Pubkey:
    return Pubkey(bytes([7] * 32))


@pytest.fixture
def pool_state_factory(signer, mint) -> Callable[..., PoolState]:
    """Build initialized pool records with overridable fields."""

    def make(**overrides) -> PoolState:
        values = dict(
            bump=254,
            owner=signer.public_key,
            mint=mint,
            vault_bump=253,
            investment_threshold=10_000_000,
            last_investment_time=1_700_000_000,
            state_nonce=5,
            encrypted_state=tuple(
                bytes([i + 1] * CIPHERTEXT_BLOCK_SIZE) for i in range(ENCRYPTED_STATE_BLOCKS)
            ),
            total_deposits=3,
            total_withdrawals=1,
            total_invested=0,
            pending_investment_amount=0,
            collateral_account=Pubkey.zero(),
            total_collateral_received=0,
        )
        values.update(overrides)
        return PoolState(**values)

    return make


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def client_config() -> ClientConfig:
    """Fast polling, no backoff delay."""
    config = ClientConfig()
    config.retry.base_delay_sec = 0.0
    config.retry.max_delay_sec = 0.0
    config.poll.confirm_interval_sec = 0.01
    config.poll.callback_interval_sec = 0.01
    config.poll.callback_timeout_sec = 0.0
    config.simulation_policy = SimulationPolicy.ADVISORY
    return config


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def orchestrator(protocol, ledger, signer, cipher, client_config, sleeps) -> RequestOrchestrator:
    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RequestOrchestrator(
        protocol,
        ledger,
        signer,
        journal=MemoryJournal(),
        cipher=cipher,
        config=client_config,
        sleep=record_sleep,
    )


@pytest.fixture
def pool(orchestrator, ledger, pool_state_factory) -> Pubkey:
    """Existing, initialized pool owned by the signer."""
    address = orchestrator.pool_address
    ledger.accounts[address] = codec.encode(pool_state_factory())
    return address
