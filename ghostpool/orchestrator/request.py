"""
Ghost Pool Request Orchestrator

Drives one deposit, withdrawal or pool initialization through:

    ENCRYPTING -> BUILT -> SIMULATED -> SUBMITTED -> AWAITING_CALLBACK
               -> FINALIZED | FAILED | TIMED_OUT

Submission only proves the ledger accepted the request for asynchronous
processing. The outcome is observed later on the request's own computation
account: a successful callback transaction there, corroborated by the pool
counters, finalizes it; a failed one fails it. Counter movement alone never
finalizes a request, since other users' callbacks move the same counters.

Every attempt uses a fresh computation offset, ephemeral key and nonce. A
transient failure before the request can have landed restarts the attempt;
a transient failure after that leaves the request in the journal for polling.
"""

from __future__ import annotations
import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ghostpool.config import ClientConfig, ProtocolConfig, SimulationPolicy
from ghostpool.constants import (
    CIRCUIT_AUTHORIZE_WITHDRAWAL,
    CIRCUIT_DEPOSIT,
    CIRCUIT_INIT_POOL,
    U64_MAX,
)
from ghostpool.core.types import (
    DerivedAddresses,
    EncryptedCredential,
    PoolState,
    Pubkey,
    RequestKind,
)
from ghostpool.errors import (
    CallbackFailedError,
    CallbackTimeoutError,
    ConfigurationError,
    GhostPoolError,
    NetworkError,
    ProtocolError,
    RateLimitedError,
    SimulationRejectedError,
    StaleBlockhashError,
    Stage,
    ValidationError,
)
from ghostpool.network.retry import RetryPolicy
from ghostpool.network.rpc import LedgerClient, classify_transaction_error, describe_transaction_error
from ghostpool.orchestrator.journal import MemoryJournal, RequestJournal
from ghostpool.orchestrator.state import (
    CallbackOutcome,
    Outcome,
    RequestRecord,
    RequestState,
)
from ghostpool.protocol import codec
from ghostpool.protocol.addresses import AddressDeriver
from ghostpool.protocol.credential import CredentialCipher
from ghostpool.protocol.instructions import (
    Instruction,
    deposit_instruction,
    initialize_pool_instruction,
    validate_amount,
    withdraw_instruction,
)
from ghostpool.protocol.transaction import Transaction, compile_message
from ghostpool.wallet import WalletSigner

logger = logging.getLogger(__name__)

CIRCUIT_FOR_KIND: Dict[RequestKind, str] = {
    RequestKind.DEPOSIT: CIRCUIT_DEPOSIT,
    RequestKind.WITHDRAW: CIRCUIT_AUTHORIZE_WITHDRAWAL,
    RequestKind.INIT_POOL: CIRCUIT_INIT_POOL,
}

COMMITMENT_RANK: Dict[str, int] = {"processed": 0, "confirmed": 1, "finalized": 2}


# ==============================================================================
# RESULTS
# ==============================================================================

@dataclass(frozen=True)
class RequestPayload:
    """Built, unsigned request. Carries no secret material."""
    kind: RequestKind
    request_id: int
    amount: int
    addresses: DerivedAddresses
    instruction: Instruction
    payer: Pubkey


@dataclass(frozen=True)
class SimulationResult:
    ok: bool
    err: Any = None
    logs: Tuple[str, ...] = ()
    units_consumed: Optional[int] = None

    def describe(self) -> str:
        return "ok" if self.ok else describe_transaction_error(self.err)


@dataclass(frozen=True)
class SubmissionReceipt:
    """Ledger accepted the request for asynchronous processing."""
    request_id: int
    signature: str
    slot: Optional[int]
    confirmation_status: str


# ==============================================================================
# ORCHESTRATOR
# ==============================================================================

class RequestOrchestrator:
    """
    Request/confirmation state machine for one wallet and one pool.

    Args:
        protocol: Validated deployment identities
        ledger: Ledger client
        signer: Wallet that signs and pays
        pool_owner: Authority whose pool the requests target
        journal: Where submitted requests are recorded
        cipher: Credential cipher (initialized)
        config: Client tunables
        mxe_public_key: Network X25519 key, overriding the protocol config
    """

    def __init__(
        self,
        protocol: ProtocolConfig,
        ledger: LedgerClient,
        signer: WalletSigner,
        pool_owner: Optional[Pubkey] = None,
        journal: Optional[RequestJournal] = None,
        cipher: Optional[CredentialCipher] = None,
        config: Optional[ClientConfig] = None,
        mxe_public_key: Optional[bytes] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.protocol = protocol
        self.ledger = ledger
        self.signer = signer
        self.pool_owner = pool_owner or signer.public_key
        self.journal = journal or MemoryJournal()
        self.cipher = cipher or CredentialCipher()
        self.config = config or ClientConfig()
        self.mxe_public_key = mxe_public_key or protocol.mxe_public_key
        self.deriver = AddressDeriver(protocol)
        self.retry = RetryPolicy.from_config(self.config.retry)
        self.retry.sleep = sleep
        self._sleep = sleep
        self._clock = clock
        self._inflight: Dict[int, RequestRecord] = {}
        self._mint: Optional[Pubkey] = None

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def pool_address(self) -> Pubkey:
        return self.deriver.pool_address(self.pool_owner)

    async def fetch_pool_state(
        self, pool: Optional[Pubkey] = None, stage: Stage = Stage.AWAIT_CALLBACK
    ) -> Optional[PoolState]:
        """Decoded pool record, or None if the account does not exist yet."""
        raw = await self.ledger.get_account_info(pool or self.pool_address, stage)
        if raw is None:
            return None
        return codec.decode(raw, self.protocol.pool_account_tag)

    async def _fresh_offset(self) -> int:
        """Unused random u64 computation offset."""
        while True:
            offset = secrets.randbits(64)
            if offset in self._inflight or await self.journal.contains(offset):
                continue
            return offset

    def _require_mxe_key(self) -> bytes:
        if self.mxe_public_key is None:
            raise ConfigurationError(["mxe_public_key is not configured"])
        return self.mxe_public_key

    def _begin(self, kind: RequestKind, addresses: DerivedAddresses, amount: int) -> RequestRecord:
        record = RequestRecord(
            request_id=addresses.computation_offset,
            kind=kind,
            pool=str(addresses.pool),
            computation=str(addresses.computation),
            amount=amount,
            baseline_deposits=0,
            baseline_withdrawals=0,
            baseline_state_nonce=0,
        ).advance(RequestState.ENCRYPTING)
        self._inflight[record.request_id] = record
        return record

    def _advance(self, request_id: int, target: RequestState, **changes) -> RequestRecord:
        record = self._inflight[request_id].advance(target, **changes)
        self._inflight[request_id] = record
        return record

    async def _fail(self, request_id: int, exc: GhostPoolError) -> None:
        record = self._inflight.pop(request_id, None)
        if record is None or record.is_terminal:
            return
        failed = record.fail(exc.stage, exc.message)
        if failed.signature is not None:
            await self.journal.save(failed)
        logger.warning(f"Request {request_id} failed at {exc.stage.value if exc.stage else '?'}: {exc.message}")

    # ==========================================================================
    # Build
    # ==========================================================================

    def build_request(
        self,
        kind: RequestKind,
        amount: int,
        credential: EncryptedCredential,
        addresses: DerivedAddresses,
        mint: Optional[Pubkey] = None,
    ) -> RequestPayload:
        """
        Build a deposit or withdraw request. No network access.

        Raises:
            ValidationError: Non-positive or oversized amount, unknown kind,
                or no mint to derive the token account from (stage BUILD)
        """
        amount = validate_amount(amount)
        if kind not in (RequestKind.DEPOSIT, RequestKind.WITHDRAW):
            raise ValidationError("kind", f"{kind!r} is not a transfer request", Stage.BUILD)
        mint = mint or self._mint
        if mint is None:
            raise ValidationError("mint", "pool mint unknown; fetch the pool first", Stage.BUILD)

        user = self.signer.public_key
        token_account = self.deriver.associated_token_address(user, mint)
        if kind is RequestKind.DEPOSIT:
            instruction = deposit_instruction(
                self.protocol, user, token_account, mint, addresses, amount, credential
            )
        else:
            instruction = withdraw_instruction(
                self.protocol, user, token_account, addresses, amount, credential
            )

        request_id = addresses.computation_offset
        if request_id not in self._inflight:
            self._begin(kind, addresses, amount)
        self._advance(request_id, RequestState.BUILT)
        logger.info(f"Built {kind.value} request {request_id} for {amount} units")
        return RequestPayload(kind, request_id, amount, addresses, instruction, user)

    def build_init_request(
        self,
        mint: Pubkey,
        investment_threshold: int,
        addresses: DerivedAddresses,
        nonce: Optional[int] = None,
    ) -> RequestPayload:
        """Pool-initialization request signed by the pool authority."""
        if self.signer.public_key != self.pool_owner:
            raise ValidationError("authority", "only the pool owner can initialize the pool", Stage.BUILD)
        if nonce is None:
            nonce = self.cipher.generate_nonce()
        instruction = initialize_pool_instruction(
            self.protocol, self.signer.public_key, mint, addresses, nonce, investment_threshold
        )
        request_id = addresses.computation_offset
        if request_id not in self._inflight:
            self._begin(RequestKind.INIT_POOL, addresses, investment_threshold)
        self._advance(request_id, RequestState.BUILT)
        return RequestPayload(
            RequestKind.INIT_POOL, request_id, investment_threshold, addresses,
            instruction, self.signer.public_key,
        )

    async def _compile(self, payload: RequestPayload, stage: Stage) -> Tuple[Transaction, int]:
        blockhash, last_valid_height = await self.ledger.get_latest_blockhash(stage)
        message = compile_message([payload.instruction], payload.payer, blockhash)
        return Transaction(message), last_valid_height

    # ==========================================================================
    # Simulate
    # ==========================================================================

    async def simulate(self, payload: RequestPayload) -> SimulationResult:
        """
        Pre-flight the request.

        ADVISORY policy: a failed simulation is logged and returned.
        GATING policy: a failed simulation raises (ProtocolError subclass,
        or the retryable error it maps to).
        """
        policy = self.config.simulation_policy
        try:
            tx, _ = await self._compile(payload, Stage.SIMULATE)
            value = await self.ledger.simulate_transaction(tx.to_base64(), Stage.SIMULATE)
        except NetworkError as exc:
            if policy is SimulationPolicy.GATING:
                await self._fail(payload.request_id, exc)
                raise
            logger.warning(f"Simulation unavailable for {payload.request_id}: {exc.message}")
            result = SimulationResult(ok=False, err=exc.message)
            self._advance(payload.request_id, RequestState.SIMULATED)
            return result

        result = SimulationResult(
            ok=value.get("err") is None,
            err=value.get("err"),
            logs=tuple(value.get("logs") or ()),
            units_consumed=value.get("unitsConsumed"),
        )
        if not result.ok:
            if policy is SimulationPolicy.GATING:
                error = classify_transaction_error(result.err, list(result.logs), Stage.SIMULATE)
                if type(error) is ProtocolError:
                    error = SimulationRejectedError(result.err, list(result.logs))
                await self._fail(payload.request_id, error)
                raise error
            logger.warning(
                f"Simulation of {payload.request_id} failed ({result.describe()}); "
                f"submitting anyway under advisory policy"
            )
        self._advance(payload.request_id, RequestState.SIMULATED)
        return result

    # ==========================================================================
    # Submit
    # ==========================================================================

    async def submit_and_confirm(self, payload: RequestPayload) -> SubmissionReceipt:
        """
        Sign, send, and wait for the configured commitment.

        Records the request (with its baseline counters) in the journal
        before sending, so it can be polled even if this process dies.

        Raises:
            StaleBlockhashError: The transaction expired unconfirmed (safe to
                retry with a fresh request)
            ProtocolError: The ledger executed and rejected it
            NetworkError: Transport failure; outcome may still be pending
        """
        request_id = payload.request_id
        try:
            baseline = await self.fetch_pool_state(payload.addresses.pool, Stage.SUBMIT)
            tx, last_valid_height = await self._compile(payload, Stage.SUBMIT)
            message = tx.message_bytes()
            signature = await self.signer.sign(message)
            tx.add_signature(payload.payer, signature)
        except GhostPoolError as exc:
            exc.at_stage(Stage.SUBMIT)
            await self._fail(request_id, exc)
            raise

        record = self._advance(
            request_id,
            RequestState.SUBMITTED,
            signature=tx.signature,
            last_valid_height=last_valid_height,
            baseline_deposits=baseline.total_deposits if baseline else 0,
            baseline_withdrawals=baseline.total_withdrawals if baseline else 0,
            baseline_state_nonce=baseline.state_nonce if baseline else 0,
        )
        await self.journal.save(record)

        try:
            sent = await self.ledger.send_transaction(tx.to_base64(), Stage.SUBMIT)
        except GhostPoolError as exc:
            exc.at_stage(Stage.SUBMIT)
            if not exc.retryable:
                await self._fail(request_id, exc)
            raise
        if sent != tx.signature:
            logger.warning(f"Node returned signature {sent}, expected {tx.signature}")

        status = await self._confirm(request_id, tx.signature, last_valid_height)
        record = self._advance(request_id, RequestState.AWAITING_CALLBACK)
        await self.journal.save(record)
        logger.info(f"Request {request_id} accepted in {tx.signature}")
        return SubmissionReceipt(
            request_id=request_id,
            signature=tx.signature,
            slot=status.get("slot"),
            confirmation_status=status.get("confirmationStatus") or self.ledger.commitment,
        )

    async def _confirm(self, request_id: int, signature: str, last_valid_height: int) -> dict:
        wanted = COMMITMENT_RANK.get(self.ledger.commitment, 1)
        while True:
            statuses = await self.ledger.get_signature_statuses([signature], Stage.CONFIRM)
            status = statuses[0] if statuses else None
            if status is not None:
                if status.get("err") is not None:
                    error = classify_transaction_error(status["err"], None, Stage.CONFIRM)
                    await self._fail(request_id, error)
                    raise error
                reached = COMMITMENT_RANK.get(status.get("confirmationStatus") or "", -1)
                if reached >= wanted:
                    return status
            else:
                height = await self.ledger.get_block_height(Stage.CONFIRM)
                if height > last_valid_height:
                    error = StaleBlockhashError(
                        f"Transaction {signature} expired: block height exceeded", Stage.CONFIRM
                    )
                    await self._fail(request_id, error)
                    raise error
            await self._sleep(self.config.poll.confirm_interval_sec)

    # ==========================================================================
    # Await callback
    # ==========================================================================

    async def _load(self, request_id: int) -> RequestRecord:
        record = self._inflight.get(request_id)
        if record is None:
            record = await self.journal.get(request_id)
        return record

    async def _save(self, record: RequestRecord) -> RequestRecord:
        if record.is_terminal:
            self._inflight.pop(record.request_id, None)
        elif record.request_id in self._inflight:
            self._inflight[record.request_id] = record
        await self.journal.save(record)
        return record

    def _counters_moved(self, record: RequestRecord, state: PoolState) -> bool:
        if record.kind is RequestKind.DEPOSIT:
            return state.total_deposits > record.baseline_deposits
        if record.kind is RequestKind.WITHDRAW:
            return state.total_withdrawals > record.baseline_withdrawals
        return state.is_initialized

    async def _check_expiry(self, record: RequestRecord) -> Tuple[RequestRecord, CallbackOutcome]:
        """A SUBMITTED request the ledger never saw fails once its blockhash expires."""
        request_id = record.request_id
        if record.last_valid_height is not None:
            height = await self.ledger.get_block_height(Stage.AWAIT_CALLBACK)
            if height > record.last_valid_height:
                error = StaleBlockhashError(
                    f"Transaction {record.signature} expired: block height exceeded", Stage.CONFIRM
                )
                record = await self._save(record.fail(Stage.CONFIRM, error.message))
                logger.warning(f"Request {request_id}: {error.message}")
                return record, CallbackOutcome(request_id, Outcome.FAILED, error=error.message)
        return record, CallbackOutcome(request_id, Outcome.UNKNOWN)

    async def _check_once(self, record: RequestRecord) -> Tuple[RequestRecord, CallbackOutcome]:
        """One status check: submission status if needed, the callback, pool counters."""
        request_id = record.request_id
        stage = Stage.AWAIT_CALLBACK

        if record.state is RequestState.SUBMITTED:
            statuses = await self.ledger.get_signature_statuses([record.signature], stage)
            status = statuses[0] if statuses else None
            if status is None:
                return await self._check_expiry(record)
            if status.get("err") is not None:
                error = describe_transaction_error(status["err"])
                record = await self._save(record.fail(Stage.CONFIRM, error))
                return record, CallbackOutcome(request_id, Outcome.FAILED, error=error)
            record = record.advance(RequestState.AWAITING_CALLBACK)

        callback_seen = False
        for entry in await self.ledger.get_signatures_for_address(
            Pubkey.from_base58(record.computation), stage=stage
        ):
            if entry.get("signature") == record.signature:
                continue
            if entry.get("err") is not None:
                error = describe_transaction_error(entry["err"])
                record = await self._save(record.fail(stage, error))
                return record, CallbackOutcome(request_id, Outcome.FAILED, error=error)
            callback_seen = True

        state = await self.fetch_pool_state(Pubkey.from_base58(record.pool), stage)
        if callback_seen and state is not None and self._counters_moved(record, state):
            record = await self._save(record.advance(RequestState.FINALIZED))
            return record, CallbackOutcome(request_id, Outcome.FINALIZED, pool_state=state)
        return record, CallbackOutcome(request_id, Outcome.UNKNOWN, pool_state=state)

    async def await_callback(
        self, request_id: int, timeout: Optional[float] = None
    ) -> CallbackOutcome:
        """
        Poll until the callback outcome is known.

        Args:
            request_id: Computation offset of the request
            timeout: Seconds to poll; 0 makes exactly one check. Defaults to
                the configured callback timeout.

        Returns:
            CallbackOutcome with outcome FINALIZED or FAILED

        Raises:
            CallbackTimeoutError: Outcome still unknown at the deadline
            UnknownRequestError: Nothing recorded under request_id
        """
        if timeout is None:
            timeout = self.config.poll.callback_timeout_sec
        record = await self._load(request_id)

        if record.state is RequestState.FINALIZED:
            return CallbackOutcome(request_id, Outcome.FINALIZED)
        if record.state is RequestState.FAILED:
            return CallbackOutcome(request_id, Outcome.FAILED, error=record.error)
        if record.signature is None:
            raise ValidationError("request_id", f"{request_id} was never submitted", Stage.AWAIT_CALLBACK)

        deadline = self._clock() + timeout
        checks = 0
        while True:
            record, outcome = await self._check_once(record)
            checks += 1
            if outcome.outcome is not Outcome.UNKNOWN:
                logger.info(f"Request {request_id}: {outcome.outcome.value} after {checks} checks")
                return CallbackOutcome(
                    request_id, outcome.outcome, checks, outcome.pool_state, outcome.error
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                if record.state is RequestState.AWAITING_CALLBACK:
                    record = record.advance(RequestState.TIMED_OUT)
                await self._save(record)
                logger.warning(f"Request {request_id}: outcome unknown after {timeout}s")
                raise CallbackTimeoutError(request_id, timeout)

            await self._sleep(min(self.config.poll.callback_interval_sec, remaining))

    async def check_status(self, request_id: int) -> CallbackOutcome:
        """Single non-raising status check; UNKNOWN while still pending."""
        try:
            return await self.await_callback(request_id, timeout=0)
        except CallbackTimeoutError:
            return CallbackOutcome(request_id, Outcome.UNKNOWN, checks=1)

    # ==========================================================================
    # Full flows
    # ==========================================================================

    def _may_restart(self, request_id: int, exc: GhostPoolError) -> bool:
        """Transient failure where the request provably did not land."""
        if not exc.retryable:
            return False
        record = self._inflight.get(request_id)
        if record is None or record.signature is None:
            return True
        if exc.stage is Stage.SUBMIT:
            # The node refused the transaction outright
            return isinstance(exc, (StaleBlockhashError, RateLimitedError))
        return isinstance(exc, StaleBlockhashError) and exc.stage is Stage.CONFIRM

    async def _attempts(self, run_attempt: Callable[[int], Awaitable[SubmissionReceipt]]) -> SubmissionReceipt:
        attempt = 1
        while True:
            request_id = await self._fresh_offset()
            try:
                return await run_attempt(request_id)
            except GhostPoolError as exc:
                if not self._may_restart(request_id, exc) or attempt >= self.retry.max_attempts:
                    raise
                await self._fail(request_id, exc)
                wait = self.retry.delay(attempt)
                logger.warning(
                    f"Attempt {attempt} failed at {exc.stage.value if exc.stage else '?'} "
                    f"({exc.message}); restarting with a fresh request in {wait:.1f}s"
                )
                await self._sleep(wait)
                attempt += 1

    async def execute(
        self,
        kind: RequestKind,
        amount: int,
        secret: str,
        timeout: Optional[float] = None,
    ) -> CallbackOutcome:
        """
        Deposit or withdraw end to end.

        Raises:
            ValidationError: Bad amount or kind, before any network call
            CallbackFailedError: The network rejected the request
            CallbackTimeoutError: Submitted, outcome unknown; poll again
        """
        amount = validate_amount(amount)
        if kind not in (RequestKind.DEPOSIT, RequestKind.WITHDRAW):
            raise ValidationError("kind", f"{kind!r} is not a transfer request", Stage.BUILD)
        # Rejects an empty secret before any network call
        CredentialCipher.validate_secret(secret)
        mxe_key = self._require_mxe_key()

        pool = await self.fetch_pool_state(stage=Stage.BUILD)
        if pool is None:
            raise ProtocolError(f"Pool {self.pool_address} does not exist", stage=Stage.BUILD)
        self._mint = pool.mint

        async def run_attempt(request_id: int) -> SubmissionReceipt:
            addresses = self.deriver.derive_request_addresses(
                self.pool_owner, CIRCUIT_FOR_KIND[kind], request_id
            )
            self._begin(kind, addresses, amount)
            try:
                credential = self.cipher.encrypt_credential(secret, mxe_key)
            except GhostPoolError as exc:
                exc.at_stage(Stage.ENCRYPT)
                await self._fail(request_id, exc)
                raise
            payload = self.build_request(kind, amount, credential, addresses, pool.mint)
            await self.simulate(payload)
            return await self.submit_and_confirm(payload)

        receipt = await self._attempts(run_attempt)
        outcome = await self.await_callback(receipt.request_id, timeout)
        if outcome.outcome is Outcome.FAILED:
            raise CallbackFailedError(receipt.request_id, outcome.error)
        return outcome

    async def deposit(self, amount: int, secret: str, timeout: Optional[float] = None) -> CallbackOutcome:
        return await self.execute(RequestKind.DEPOSIT, amount, secret, timeout)

    async def withdraw(self, amount: int, secret: str, timeout: Optional[float] = None) -> CallbackOutcome:
        return await self.execute(RequestKind.WITHDRAW, amount, secret, timeout)

    async def initialize_pool(
        self,
        mint: Pubkey,
        investment_threshold: int,
        timeout: Optional[float] = None,
    ) -> CallbackOutcome:
        """Create the pool owned by the signer and wait for its encrypted state."""
        if not 0 <= investment_threshold <= U64_MAX:
            raise ValidationError("investment_threshold", "must fit in 64 bits", Stage.BUILD)

        async def run_attempt(request_id: int) -> SubmissionReceipt:
            addresses = self.deriver.derive_request_addresses(
                self.pool_owner, CIRCUIT_INIT_POOL, request_id
            )
            self._begin(RequestKind.INIT_POOL, addresses, investment_threshold)
            payload = self.build_init_request(mint, investment_threshold, addresses)
            await self.simulate(payload)
            return await self.submit_and_confirm(payload)

        receipt = await self._attempts(run_attempt)
        outcome = await self.await_callback(receipt.request_id, timeout)
        if outcome.outcome is Outcome.FAILED:
            raise CallbackFailedError(receipt.request_id, outcome.error)
        return outcome

    # ==========================================================================
    # Readiness
    # ==========================================================================

    async def mxe_status(self) -> dict:
        """Whether the network accounts this client routes through exist."""
        mxe = self.deriver.mxe_address()
        cluster = self.deriver.cluster_address()
        mxe_data = await self.ledger.get_account_info(mxe)
        cluster_data = await self.ledger.get_account_info(cluster)
        pool_data = await self.ledger.get_account_info(self.pool_address)
        status = {
            "mxe": str(mxe),
            "mxe_exists": mxe_data is not None,
            "cluster": str(cluster),
            "cluster_exists": cluster_data is not None,
            "pool": str(self.pool_address),
            "pool_exists": pool_data is not None,
            "mxe_public_key_configured": self.mxe_public_key is not None,
        }
        status["ready"] = (
            status["mxe_exists"] and status["cluster_exists"] and status["mxe_public_key_configured"]
        )
        return status
