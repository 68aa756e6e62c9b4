"""
Ledger synchronization engine: KeyIndex management, record persistence and
the submission lifecycle.
"""

from fareledger.sync.key_index import KEY_INDEX_KEY, KeyIndexManager
from fareledger.sync.lifecycle import Submission, SubmissionController, validate_query
from fareledger.sync.record_store import RECORD_PREFIX, RecordStore

__all__ = [
    "KEY_INDEX_KEY",
    "KeyIndexManager",
    "RECORD_PREFIX",
    "RecordStore",
    "Submission",
    "SubmissionController",
    "validate_query",
]
