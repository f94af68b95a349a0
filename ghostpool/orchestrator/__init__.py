"""
Ghost Pool Request Orchestration
"""

from ghostpool.orchestrator.state import RequestState, Outcome, CallbackOutcome, RequestRecord
from ghostpool.orchestrator.journal import MemoryJournal, SqliteJournal, open_journal
from ghostpool.orchestrator.request import RequestOrchestrator

__all__ = [
    "RequestState",
    "Outcome",
    "CallbackOutcome",
    "RequestRecord",
    "MemoryJournal",
    "SqliteJournal",
    "open_journal",
    "RequestOrchestrator",
]
