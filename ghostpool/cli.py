"""
Ghost Pool command line.

    ghostpool [options] status
    ghostpool [options] pool
    ghostpool [options] addresses [--offset N]
    ghostpool [options] deposit AMOUNT
    ghostpool [options] withdraw AMOUNT
    ghostpool [options] check REQUEST_ID
    ghostpool [options] requests
    ghostpool [options] init-pool --mint MINT --threshold N
    ghostpool config-init PATH

Secrets are read from GHOSTPOOL_SECRET or prompted for; never from argv.
Output is JSON on stdout; errors are JSON on stderr.
"""

from __future__ import annotations
import argparse
import asyncio
import getpass
import json
import logging
import os
import sys
from typing import List, Optional

from ghostpool.config import (
    ClientConfig,
    SimulationPolicy,
    load_protocol_config,
    setup_logging,
)
from ghostpool.core.types import Pubkey
from ghostpool.crypto.rescue import initialize_cipher
from ghostpool.errors import (
    CallbackTimeoutError,
    ConfigurationError,
    GhostPoolError,
    ValidationError,
)
from ghostpool.network.retry import RetryPolicy
from ghostpool.network.rpc import LedgerClient
from ghostpool.orchestrator.journal import open_journal
from ghostpool.orchestrator.request import RequestOrchestrator
from ghostpool.protocol.credential import CredentialCipher
from ghostpool.wallet import KeypairSigner

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNKNOWN_OUTCOME = 3

SECRET_ENV = "GHOSTPOOL_SECRET"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ghostpool", description="Ghost Pool client")
    parser.add_argument("--config", help="Client config JSON")
    parser.add_argument("--protocol", help="Protocol config JSON (default: devnet)")
    parser.add_argument("--keyfile", help="Wallet keyfile (JSON array of 64 ints)")
    parser.add_argument("--rpc-url", help="Override the RPC endpoint")
    parser.add_argument("--pool-owner", help="Pool authority (default: wallet)")
    parser.add_argument("--mxe-key", help="Network X25519 public key, hex")
    parser.add_argument("--policy", choices=[p.value for p in SimulationPolicy],
                        help="Simulation policy")
    parser.add_argument("--journal", help="Sqlite request journal path")
    parser.add_argument("--timeout", type=float, help="Callback timeout in seconds")
    parser.add_argument("--log-level", help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Network and pool readiness")
    sub.add_parser("pool", help="Decoded pool record")

    addresses = sub.add_parser("addresses", help="Derived addresses for a request")
    addresses.add_argument("--offset", type=int, default=0, help="Computation offset")
    addresses.add_argument("--circuit", default="process_deposit")

    for name in ("deposit", "withdraw"):
        transfer = sub.add_parser(name, help=f"{name.capitalize()} AMOUNT smallest units")
        transfer.add_argument("amount", type=int)

    check = sub.add_parser("check", help="Poll a submitted request once")
    check.add_argument("request_id", type=int)

    requests = sub.add_parser("requests", help="Recent journal entries")
    requests.add_argument("--limit", type=int, default=20)

    init = sub.add_parser("init-pool", help="Initialize the wallet's pool")
    init.add_argument("--mint", required=True)
    init.add_argument("--threshold", type=int, required=True)

    config_init = sub.add_parser("config-init", help="Write a default client config")
    config_init.add_argument("path")
    return parser


def load_client_config(args: argparse.Namespace) -> ClientConfig:
    config = ClientConfig.load(args.config) if args.config else ClientConfig()
    if args.rpc_url:
        config.rpc.url = args.rpc_url
    if args.policy:
        config.simulation_policy = SimulationPolicy(args.policy)
    if args.journal:
        config.journal_path = args.journal
    if args.keyfile:
        config.keyfile = args.keyfile
    if args.log_level:
        config.log.level = args.log_level

    problems = config.validate()
    if problems:
        raise ConfigurationError(problems)
    return config


def read_secret() -> str:
    secret = os.environ.get(SECRET_ENV)
    if secret is None:
        secret = getpass.getpass("Secret: ")
    if not secret:
        raise ValidationError("secret", "must not be empty")
    return secret


def _emit(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run(args: argparse.Namespace) -> int:
    if args.command == "config-init":
        ClientConfig().save(args.path)
        return EXIT_OK

    config = load_client_config(args)
    setup_logging(config.log)
    protocol = load_protocol_config(args.protocol)
    initialize_cipher()

    if config.keyfile:
        signer = KeypairSigner.from_keyfile(config.keyfile)
    else:
        signer = KeypairSigner.generate()
        logger.warning(f"No keyfile given; using throwaway wallet {signer.public_key}")

    pool_owner = Pubkey.from_base58(args.pool_owner, "pool_owner") if args.pool_owner else None
    mxe_key = None
    if args.mxe_key:
        try:
            mxe_key = bytes.fromhex(args.mxe_key)
        except ValueError:
            raise ValidationError("mxe_key", "must be hex") from None

    retry = RetryPolicy.from_config(config.retry)
    journal = open_journal(config.journal_path)
    async with LedgerClient.from_config(config.rpc, retry) as ledger:
        orchestrator = RequestOrchestrator(
            protocol,
            ledger,
            signer,
            pool_owner=pool_owner,
            journal=journal,
            cipher=CredentialCipher(),
            config=config,
            mxe_public_key=mxe_key,
        )

        if args.command == "status":
            _emit(await orchestrator.mxe_status())
        elif args.command == "pool":
            state = await orchestrator.fetch_pool_state()
            _emit({"pool": str(orchestrator.pool_address),
                   "state": state.to_dict() if state else None})
        elif args.command == "addresses":
            derived = orchestrator.deriver.derive_request_addresses(
                orchestrator.pool_owner, args.circuit, args.offset
            )
            _emit({name: str(getattr(derived, name)) for name in derived.__dataclass_fields__})
        elif args.command in ("deposit", "withdraw"):
            secret = read_secret()
            if args.command == "deposit":
                outcome = await orchestrator.deposit(args.amount, secret, args.timeout)
            else:
                outcome = await orchestrator.withdraw(args.amount, secret, args.timeout)
            _emit(outcome.to_dict())
        elif args.command == "check":
            _emit((await orchestrator.check_status(args.request_id)).to_dict())
        elif args.command == "requests":
            _emit([record.to_dict() for record in await journal.recent(args.limit)])
        elif args.command == "init-pool":
            outcome = await orchestrator.initialize_pool(
                Pubkey.from_base58(args.mint, "mint"), args.threshold, args.timeout
            )
            _emit(outcome.to_dict())
    await journal.close()
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except CallbackTimeoutError as exc:
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return EXIT_UNKNOWN_OUTCOME
    except GhostPoolError as exc:
        print(json.dumps(exc.to_dict(), default=str), file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
