"""
Tests for request states and the request journal.
"""

import pytest

from ghostpool.core.types import RequestKind
from ghostpool.errors import InternalError, Stage, UnknownRequestError
from ghostpool.orchestrator.journal import MemoryJournal, SqliteJournal, open_journal
from ghostpool.orchestrator.state import RequestRecord, RequestState, can_transition


def make_record(request_id=2**64 - 1, **changes) -> RequestRecord:
    values = dict(
        request_id=request_id,
        kind=RequestKind.DEPOSIT,
        pool="PooL1111111111111111111111111111",
        computation="Comp1111111111111111111111111111",
        amount=2**64 - 1,
        baseline_deposits=4,
        baseline_withdrawals=2,
        baseline_state_nonce=2**127 + 9,
    )
    values.update(changes)
    return RequestRecord(**values)


class TestTransitions:
    """Tests for the request state machine."""

    def test_happy_path(self):
        """IDLE through FINALIZED in order."""
        record = make_record()
        for state in (
            RequestState.ENCRYPTING,
            RequestState.BUILT,
            RequestState.SIMULATED,
            RequestState.SUBMITTED,
            RequestState.AWAITING_CALLBACK,
            RequestState.FINALIZED,
        ):
            record = record.advance(state)
        assert record.is_terminal

    def test_simulation_optional(self):
        """BUILT may go straight to SUBMITTED."""
        assert can_transition(RequestState.BUILT, RequestState.SUBMITTED)

    def test_skipping_rejected(self):
        """States cannot be skipped."""
        with pytest.raises(InternalError):
            make_record().advance(RequestState.SUBMITTED)

    def test_failed_from_any_live_state(self):
        """Every non-terminal state can fail."""
        for state in RequestState:
            if state in (RequestState.FINALIZED, RequestState.FAILED):
                assert not can_transition(state, RequestState.FAILED)
            else:
                assert can_transition(state, RequestState.FAILED)

    def test_timed_out_not_terminal(self):
        """A timed-out request can still finalize or fail."""
        record = make_record(state=RequestState.AWAITING_CALLBACK).advance(RequestState.TIMED_OUT)
        assert not record.is_terminal
        assert record.advance(RequestState.FINALIZED).is_terminal
        failed = record.fail(Stage.AWAIT_CALLBACK, "callback error")
        assert failed.failed_stage == Stage.AWAIT_CALLBACK
        assert failed.error == "callback error"

    def test_terminal_is_final(self):
        """Nothing leaves FINALIZED."""
        record = make_record(state=RequestState.FINALIZED)
        with pytest.raises(InternalError):
            record.fail(Stage.CONFIRM, "late")

    def test_to_dict_has_no_secrets(self):
        """The record exposes ids and counters only."""
        data = make_record().to_dict()
        assert data["request_id"] == str(2**64 - 1)
        assert "secret" not in " ".join(data)


async def exercise_journal(journal):
    record = make_record(signature="sig", state=RequestState.SUBMITTED, last_valid_height=2**40 + 3)
    await journal.save(record)
    assert await journal.contains(record.request_id)
    assert await journal.get(record.request_id) == record
    assert (await journal.get(record.request_id)).last_valid_height == 2**40 + 3

    updated = record.advance(RequestState.AWAITING_CALLBACK)
    await journal.save(updated)
    assert (await journal.get(record.request_id)).state == RequestState.AWAITING_CALLBACK

    other = make_record(request_id=7, signature="sig2", state=RequestState.SUBMITTED,
                        updated_at=updated.updated_at + 10)
    await journal.save(other)
    recent = await journal.recent(10)
    assert [r.request_id for r in recent] == [7, record.request_id]
    assert len(await journal.recent(1)) == 1

    with pytest.raises(UnknownRequestError):
        await journal.get(12345)
    assert await journal.find(12345) is None


class TestMemoryJournal:
    """Tests for MemoryJournal."""

    @pytest.mark.asyncio
    async def test_save_and_query(self):
        """Records are stored, replaced and listed newest first."""
        await exercise_journal(MemoryJournal())


class TestSqliteJournal:
    """Tests for SqliteJournal."""

    @pytest.mark.asyncio
    async def test_save_and_query(self, tmp_path):
        """Same behaviour as the memory journal."""
        await exercise_journal(SqliteJournal(str(tmp_path / "requests.db")))

    @pytest.mark.asyncio
    async def test_large_values_survive(self, tmp_path):
        """u64 ids and amounts and u128 nonces round-trip exactly."""
        path = str(tmp_path / "requests.db")
        record = make_record(state=RequestState.FAILED, failed_stage=Stage.SUBMIT, error="boom")
        await SqliteJournal(path).save(record)

        reopened = await SqliteJournal(path).get(record.request_id)
        assert reopened.request_id == 2**64 - 1
        assert reopened.amount == 2**64 - 1
        assert reopened.baseline_state_nonce == 2**127 + 9
        assert reopened.failed_stage == Stage.SUBMIT
        assert reopened == record

    def test_open_journal(self, tmp_path):
        """A path selects sqlite, no path selects memory."""
        assert isinstance(open_journal(str(tmp_path / "j.db")), SqliteJournal)
        assert isinstance(open_journal(None), MemoryJournal)
