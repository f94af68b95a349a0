"""
Ghost Pool Client Configuration

ProtocolConfig holds the deployment identities (program ids, seed labels,
circuit registry). It is immutable and validated once when loaded; a
registry entry that disagrees with its hash is a startup error.

ClientConfig holds the tunables of this process (RPC endpoint, retry and
polling policy, simulation policy, journal, logging).
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from ghostpool.constants import (
    DEFAULT_PROGRAM_ID,
    DEFAULT_ARCIUM_PROGRAM_ID,
    DEFAULT_FEE_POOL_ACCOUNT,
    DEFAULT_CLOCK_ACCOUNT,
    DEFAULT_MXE_ACCOUNT,
    DEFAULT_CLUSTER_OFFSET,
    DEFAULT_RPC_URL,
    DEFAULT_COMMITMENT,
    DEFAULT_RPC_TIMEOUT_SEC,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SEC,
    DEFAULT_RETRY_MAX_DELAY_SEC,
    DEFAULT_CONFIRM_INTERVAL_SEC,
    DEFAULT_CALLBACK_INTERVAL_SEC,
    DEFAULT_CALLBACK_TIMEOUT_SEC,
    KNOWN_CIRCUIT_OFFSETS,
    KNOWN_COMP_DEF_ACCOUNTS,
    KNOWN_INSTRUCTION_DISCRIMINATORS,
    POOL_ACCOUNT_DISCRIMINATOR,
    POOL_ACCOUNT_NAME,
    SEED_POOL,
    SEED_VAULT,
    SEED_SIGNER,
    SEED_CLUSTER,
    SEED_MEMPOOL,
    SEED_EXECPOOL,
    SEED_COMPUTATION,
    SEED_COMP_DEF,
    SEED_MXE,
    MAX_SEED_LENGTH,
    U32_MAX,
    X25519_KEY_SIZE,
)
from ghostpool.core.serialization import serialize_u32
from ghostpool.core.types import Pubkey
from ghostpool.crypto.hash import (
    comp_def_offset,
    instruction_discriminator,
    account_discriminator,
)
from ghostpool.crypto.pda import find_program_address
from ghostpool.errors import ConfigurationError, GhostPoolError

logger = logging.getLogger(__name__)


# ==============================================================================
# PROTOCOL CONFIGURATION (immutable)
# ==============================================================================

@dataclass(frozen=True)
class SeedLabels:
    """Seed label strings. Any deviation breaks address agreement."""
    pool: str = SEED_POOL
    vault: str = SEED_VAULT
    signer: str = SEED_SIGNER
    cluster: str = SEED_CLUSTER
    mempool: str = SEED_MEMPOOL
    execpool: str = SEED_EXECPOOL
    computation: str = SEED_COMPUTATION
    comp_def: str = SEED_COMP_DEF
    mxe: str = SEED_MXE


@dataclass(frozen=True)
class ProtocolConfig:
    """
    Deployment identities, loaded once at process start.

    Use ProtocolConfig.load() or ProtocolConfig.default_devnet(); both
    validate before returning.
    """
    program_id: Pubkey
    arcium_program_id: Pubkey
    fee_pool_account: Pubkey
    clock_account: Pubkey
    cluster_offset: int = DEFAULT_CLUSTER_OFFSET
    mxe_account: Optional[Pubkey] = None
    mxe_public_key: Optional[bytes] = None
    labels: SeedLabels = field(default_factory=SeedLabels)
    circuit_registry: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(KNOWN_CIRCUIT_OFFSETS))
    )
    instruction_tags: Mapping[str, bytes] = field(
        default_factory=lambda: MappingProxyType(dict(KNOWN_INSTRUCTION_DISCRIMINATORS))
    )
    comp_def_accounts: Mapping[str, Pubkey] = field(default_factory=lambda: MappingProxyType({}))
    pool_account_tag: bytes = POOL_ACCOUNT_DISCRIMINATOR

    def __post_init__(self):
        # Freeze caller-supplied dicts
        if not isinstance(self.circuit_registry, MappingProxyType):
            object.__setattr__(self, "circuit_registry", MappingProxyType(dict(self.circuit_registry)))
        if not isinstance(self.instruction_tags, MappingProxyType):
            object.__setattr__(self, "instruction_tags", MappingProxyType(dict(self.instruction_tags)))
        if not isinstance(self.comp_def_accounts, MappingProxyType):
            object.__setattr__(self, "comp_def_accounts", MappingProxyType(dict(self.comp_def_accounts)))

    def validate(self) -> List[str]:
        """
        Check internal consistency.

        Returns:
            List of problems (empty if valid)
        """
        problems = []
        labels_ok = True

        if not 0 <= self.cluster_offset <= U32_MAX:
            problems.append(f"cluster_offset out of u32 range: {self.cluster_offset}")

        for name, value in asdict(self.labels).items():
            encoded = value.encode("utf-8")
            if not encoded:
                problems.append(f"seed label '{name}' is empty")
                labels_ok = False
            elif len(encoded) > MAX_SEED_LENGTH:
                problems.append(f"seed label '{name}' longer than {MAX_SEED_LENGTH} bytes")
                labels_ok = False

        seen: Dict[int, str] = {}
        for name, offset in self.circuit_registry.items():
            derived = comp_def_offset(name)
            if derived != offset:
                problems.append(
                    f"circuit '{name}' registered as {offset:#010x} but hashes to {derived:#010x}"
                )
            if offset in seen:
                problems.append(f"circuits '{seen[offset]}' and '{name}' share offset {offset:#010x}")
            seen[offset] = name

        for name, tag in self.instruction_tags.items():
            derived_tag = instruction_discriminator(name)
            if derived_tag != tag:
                problems.append(
                    f"instruction '{name}' tag {tag.hex()} disagrees with {derived_tag.hex()}"
                )

        if account_discriminator(POOL_ACCOUNT_NAME) != self.pool_account_tag:
            problems.append(f"pool account tag {self.pool_account_tag.hex()} disagrees with its hash")

        if self.mxe_public_key is not None and len(self.mxe_public_key) != X25519_KEY_SIZE:
            problems.append(f"mxe_public_key must be {X25519_KEY_SIZE} bytes")

        if labels_ok:
            problems.extend(self._comp_def_problems())

        return problems

    def _comp_def_problems(self) -> List[str]:
        problems = []
        for name, account in self.comp_def_accounts.items():
            offset = self.circuit_registry.get(name)
            if offset is None:
                problems.append(f"comp def account given for unregistered circuit '{name}'")
                continue
            if offset != comp_def_offset(name):
                continue
            derived, _ = find_program_address(self.comp_def_seeds(offset), self.arcium_program_id)
            if derived != account:
                problems.append(
                    f"comp def account for '{name}' is {account} but derives to {derived}"
                )
        return problems

    def comp_def_seeds(self, circuit_offset: int) -> List[bytes]:
        """Seeds of a circuit definition account, owned by the network program."""
        return [
            self.labels.comp_def.encode("utf-8"),
            self.program_id.data,
            serialize_u32(circuit_offset),
        ]

    def ensure_valid(self) -> ProtocolConfig:
        problems = self.validate()
        if problems:
            for problem in problems:
                logger.error(f"Protocol configuration: {problem}")
            raise ConfigurationError(problems)
        return self

    def instruction_tag(self, name: str) -> bytes:
        """Registered tag, or the derived one for instructions not pinned."""
        tag = self.instruction_tags.get(name)
        return tag if tag is not None else instruction_discriminator(name)

    @classmethod
    def default_devnet(cls, **overrides) -> ProtocolConfig:
        """Devnet deployment of the pool program."""
        values = dict(
            program_id=Pubkey.from_base58(DEFAULT_PROGRAM_ID),
            arcium_program_id=Pubkey.from_base58(DEFAULT_ARCIUM_PROGRAM_ID),
            fee_pool_account=Pubkey.from_base58(DEFAULT_FEE_POOL_ACCOUNT),
            clock_account=Pubkey.from_base58(DEFAULT_CLOCK_ACCOUNT),
            mxe_account=Pubkey.from_base58(DEFAULT_MXE_ACCOUNT),
        )
        values.update(overrides)
        values.setdefault(
            "comp_def_accounts",
            _devnet_comp_defs(values["program_id"], values["arcium_program_id"]),
        )
        return cls(**values).ensure_valid()

    @classmethod
    def from_dict(cls, data: dict) -> ProtocolConfig:
        """Build and validate from a JSON-style dict (base58 / hex strings)."""
        try:
            program_id = Pubkey.from_base58(data.get("program_id", DEFAULT_PROGRAM_ID), "program_id")
            arcium_program_id = Pubkey.from_base58(
                data.get("arcium_program_id", DEFAULT_ARCIUM_PROGRAM_ID), "arcium_program_id"
            )
            comp_defs = data.get("comp_def_accounts")
            if comp_defs is None:
                comp_def_accounts = _devnet_comp_defs(program_id, arcium_program_id)
            else:
                comp_def_accounts = {
                    name: Pubkey.from_base58(address, f"comp_def_accounts.{name}")
                    for name, address in comp_defs.items()
                }
            config = cls(
                program_id=program_id,
                arcium_program_id=arcium_program_id,
                fee_pool_account=Pubkey.from_base58(
                    data.get("fee_pool_account", DEFAULT_FEE_POOL_ACCOUNT), "fee_pool_account"
                ),
                clock_account=Pubkey.from_base58(
                    data.get("clock_account", DEFAULT_CLOCK_ACCOUNT), "clock_account"
                ),
                cluster_offset=int(data.get("cluster_offset", DEFAULT_CLUSTER_OFFSET)),
                mxe_account=(
                    Pubkey.from_base58(data["mxe_account"], "mxe_account")
                    if data.get("mxe_account") else None
                ),
                mxe_public_key=(
                    bytes.fromhex(data["mxe_public_key"]) if data.get("mxe_public_key") else None
                ),
                labels=SeedLabels(**data.get("labels", {})),
                circuit_registry={
                    name: int(offset) for name, offset in
                    data.get("circuit_registry", KNOWN_CIRCUIT_OFFSETS).items()
                },
                instruction_tags={
                    name: bytes.fromhex(tag) if isinstance(tag, str) else bytes(tag)
                    for name, tag in
                    data.get("instruction_tags", KNOWN_INSTRUCTION_DISCRIMINATORS).items()
                },
                comp_def_accounts=comp_def_accounts,
            )
        except GhostPoolError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigurationError([str(exc)]) from exc
        return config.ensure_valid()

    def to_dict(self) -> dict:
        return {
            "program_id": str(self.program_id),
            "arcium_program_id": str(self.arcium_program_id),
            "fee_pool_account": str(self.fee_pool_account),
            "clock_account": str(self.clock_account),
            "cluster_offset": self.cluster_offset,
            "mxe_account": str(self.mxe_account) if self.mxe_account else None,
            "mxe_public_key": self.mxe_public_key.hex() if self.mxe_public_key else None,
            "labels": asdict(self.labels),
            "circuit_registry": dict(self.circuit_registry),
            "instruction_tags": {name: tag.hex() for name, tag in self.instruction_tags.items()},
            "comp_def_accounts": {name: str(account) for name, account in self.comp_def_accounts.items()},
        }


def _devnet_comp_defs(program_id: Pubkey, arcium_program_id: Pubkey) -> Dict[str, Pubkey]:
    """Deployed comp def table, only for the devnet program pair it belongs to."""
    if (str(program_id), str(arcium_program_id)) != (DEFAULT_PROGRAM_ID, DEFAULT_ARCIUM_PROGRAM_ID):
        return {}
    return {name: Pubkey.from_base58(address) for name, address in KNOWN_COMP_DEF_ACCOUNTS.items()}


# ==============================================================================
# CLIENT CONFIGURATION
# ==============================================================================

class SimulationPolicy(str, Enum):
    """
    What a failed pre-flight simulation does.

    ADVISORY: log it and still submit.
    GATING: stop with a ProtocolError before submission.
    """
    ADVISORY = "advisory"
    GATING = "gating"


@dataclass
class RpcConfig:
    """Ledger RPC endpoint."""
    url: str = DEFAULT_RPC_URL
    timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    commitment: str = DEFAULT_COMMITMENT


@dataclass
class RetryConfig:
    """Bounded exponential backoff for transient failures."""
    max_attempts: int = DEFAULT_RETRY_ATTEMPTS
    base_delay_sec: float = DEFAULT_RETRY_BASE_DELAY_SEC
    max_delay_sec: float = DEFAULT_RETRY_MAX_DELAY_SEC


@dataclass
class PollConfig:
    """Confirmation and callback polling."""
    confirm_interval_sec: float = DEFAULT_CONFIRM_INTERVAL_SEC
    callback_interval_sec: float = DEFAULT_CALLBACK_INTERVAL_SEC
    callback_timeout_sec: float = DEFAULT_CALLBACK_TIMEOUT_SEC


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_size_mb: int = 10
    backup_count: int = 3


@dataclass
class ClientConfig:
    """
    Complete client configuration.

    All settings for running deposits and withdrawals from this process.
    """
    rpc: RpcConfig = field(default_factory=RpcConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    log: LogConfig = field(default_factory=LogConfig)
    simulation_policy: SimulationPolicy = SimulationPolicy.ADVISORY
    journal_path: Optional[str] = None
    keyfile: Optional[str] = None

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.rpc.url.startswith(("http://", "https://")):
            errors.append(f"Invalid RPC url: {self.rpc.url}")
        if self.rpc.timeout_sec <= 0:
            errors.append("rpc.timeout_sec must be positive")
        if self.rpc.commitment not in ("processed", "confirmed", "finalized"):
            errors.append(f"Unknown commitment: {self.rpc.commitment}")

        if self.retry.max_attempts < 1:
            errors.append("retry.max_attempts must be at least 1")
        if self.retry.base_delay_sec < 0 or self.retry.max_delay_sec < self.retry.base_delay_sec:
            errors.append("retry delays must satisfy 0 <= base_delay_sec <= max_delay_sec")

        if self.poll.confirm_interval_sec <= 0 or self.poll.callback_interval_sec <= 0:
            errors.append("poll intervals must be positive")
        if self.poll.callback_timeout_sec < 0:
            errors.append("poll.callback_timeout_sec cannot be negative")

        return errors

    def save(self, path: str) -> None:
        """Save configuration to file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: str) -> ClientConfig:
        """Load configuration from file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(
            simulation_policy=SimulationPolicy(data.get("simulation_policy", "advisory")),
            journal_path=data.get("journal_path"),
            keyfile=data.get("keyfile"),
        )

        if "rpc" in data:
            config.rpc = RpcConfig(**data["rpc"])

        if "retry" in data:
            config.retry = RetryConfig(**data["retry"])

        if "poll" in data:
            config.poll = PollConfig(**data["poll"])

        if "log" in data:
            config.log = LogConfig(**data["log"])

        logger.info(f"Configuration loaded from {path}")
        return config

    def to_dict(self) -> dict:
        """Export configuration as dictionary."""
        return {
            "rpc": asdict(self.rpc),
            "retry": asdict(self.retry),
            "poll": asdict(self.poll),
            "log": asdict(self.log),
            "simulation_policy": self.simulation_policy.value,
            "journal_path": self.journal_path,
            "keyfile": self.keyfile,
        }


def load_protocol_config(path: Optional[str]) -> ProtocolConfig:
    """Protocol config from a JSON file, or the devnet defaults."""
    if path is None:
        return ProtocolConfig.default_devnet()
    data = json.loads(Path(path).read_text())
    config = ProtocolConfig.from_dict(data)
    logger.info(f"Protocol configuration loaded from {path}")
    return config


def setup_logging(config: LogConfig) -> None:
    """Configure logging based on config."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )
