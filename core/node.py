# core/node.py
from __future__ import annotations

import copy
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from .crypto import canonical_call, verify_signature, hash_public_key
from .errors import InvalidCall, InvalidSignature, InvalidNonce, JournalCorrupted, LedgerError
from .journal import Journal, Entry
from .ledger import ElectionLedger, tally_view
from config import DEFAULT_DATA_DIR, JOURNAL_FILE_TEMPLATE

logger = logging.getLogger(__name__)

# state-changing actions and the (name, type) of each argument they take
ACTIONS: Dict[str, Tuple[Tuple[str, type], ...]] = {
    "start_election": (),
    "end_election": (),
    "add_candidate": (("name", str),),
    "register_voter": (("identity", str),),
    "vote": (("candidate_index", int),),
}

READ_OPERATIONS = [
    "get_candidate",
    "get_results",
    "is_registered_voter",
    "has_voter_voted",
    "candidates_count",
    "election_active",
]


def validate_call(action: str, args: Any) -> None:
    """
    Reject unknown actions and argument sets that don't match the action.
    """
    if action not in ACTIONS:
        raise InvalidCall(f"Unknown action: {action!r}")
    if not isinstance(args, dict):
        raise InvalidCall("Arguments must be an object")

    expected = ACTIONS[action]
    names = {name for name, _ in expected}
    if set(args) != names:
        raise InvalidCall(f"{action} takes arguments {sorted(names)}, got {sorted(args)}")

    for name, arg_type in expected:
        value = args[name]
        # bool is an int subclass; a candidate index of True is still malformed
        if isinstance(value, bool) or not isinstance(value, arg_type):
            raise InvalidCall(f"{action}: {name} must be of type {arg_type.__name__}")


@dataclass
class Receipt:
    """
    Outcome of an admitted call: its journal position, and either the
    events it produced or the code of the error the ledger raised.
    """
    entry: int
    caller: str
    action: str
    error: Optional[str] = None
    events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "entry": self.entry,
            "caller": self.caller,
            "action": self.action,
            "error": self.error,
            "events": self.events,
        }


class LedgerNode:
    """
    Hosts one election ledger and decides the order calls are applied in.

    Calls are admitted one at a time under a lock, journaled, and persisted
    before the receipt is returned. On startup the journal is replayed to
    rebuild the ledger.
    """

    def __init__(
        self,
        node_id: str,
        data_dir: str = DEFAULT_DATA_DIR,
        administrator: Optional[str] = None,
    ) -> None:
        self.node_id = node_id
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)

        self.journal_path = os.path.join(
            self.data_dir, JOURNAL_FILE_TEMPLATE.format(node_id=self.node_id)
        )
        self._lock = threading.RLock()

        journal = Journal.load_from_file(self.journal_path)
        if journal is None:
            if administrator is None:
                raise ValueError(
                    f"No journal at {self.journal_path}; an administrator is required to deploy a new ledger"
                )
            journal = Journal.create(administrator)
            journal.save_to_file(self.journal_path)
            logger.info(f"[{self.node_id}] Deployed new ledger {journal.ledger_id[:16]}... administrator={administrator}")

        self._replay(journal)

        if administrator is not None and administrator != self.journal.administrator:
            logger.warning(
                f"[{self.node_id}] Ignoring administrator {administrator}; "
                f"journal already names {self.journal.administrator}"
            )

    # journal replay

    @staticmethod
    def _apply(ledger: ElectionLedger, caller: str, action: str, args: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        method = getattr(ledger, action)
        try:
            events = method(caller, **args)
        except LedgerError as e:
            return [], e.code
        return [event.to_dict() for event in events], None

    def _replay(self, journal: Journal) -> None:
        if not journal.is_valid():
            raise JournalCorrupted(f"Journal at {self.journal_path} failed validation")

        ledger = ElectionLedger(journal.administrator)
        nonces: Dict[str, int] = {}
        event_feed: List[Dict[str, Any]] = []

        for entry in journal.entries[1:]:
            try:
                validate_call(entry.action, entry.args)
            except InvalidCall as e:
                raise JournalCorrupted(f"Entry #{entry.index}: {e}")
            events, error = self._apply(ledger, entry.caller, entry.action, entry.args)
            if error != entry.error or events != entry.events:
                raise JournalCorrupted(f"Entry #{entry.index} does not replay to its recorded outcome")
            nonces[entry.caller] = entry.nonce + 1
            event_feed.extend(self._feed_items(entry, len(event_feed)))

        self.journal = journal
        self.ledger = ledger
        self._nonces = nonces
        self._event_feed = event_feed
        logger.info(f"[{self.node_id}] Replayed {len(journal) - 1} calls. Events: {len(event_feed)}")

    @staticmethod
    def _feed_items(entry: Entry, start: int) -> List[Dict[str, Any]]:
        return [
            {"sequence": start + offset, "entry": entry.index, **event}
            for offset, event in enumerate(entry.events)
        ]

    def save_journal(self) -> None:
        self.journal.save_to_file(self.journal_path)

    # calls

    def next_nonce(self, identity: str) -> int:
        with self._lock:
            return self._nonces.get(identity, 0)

    def submit(
        self,
        action: str,
        args: Dict[str, Any],
        nonce: int,
        public_key: str,
        signature: str,
    ) -> Receipt:
        """
        Admit a signed call.

        Raises a CallError if the call is malformed, badly signed, or out of
        nonce order; nothing is journaled in that case. Otherwise the call is
        applied, journaled and persisted, and the receipt says whether the
        ledger accepted it.
        """
        validate_call(action, args)
        caller = hash_public_key(public_key)
        if not verify_signature(canonical_call(action, args, nonce), signature, public_key):
            logger.warning(f"[{self.node_id}] Rejected {action} from {caller}: bad signature")
            raise InvalidSignature()

        with self._lock:
            expected = self._nonces.get(caller, 0)
            if nonce != expected:
                logger.warning(f"[{self.node_id}] Rejected {action} from {caller}: nonce {nonce}, expected {expected}")
                raise InvalidNonce(f"Expected nonce {expected}, got {nonce}")

            # apply to a copy; nothing becomes visible until the journal is on disk
            staged = copy.deepcopy(self.ledger)
            events, error = self._apply(staged, caller, action, args)
            entry = self.journal.append(
                action=action,
                caller=caller,
                args=args,
                nonce=nonce,
                public_key=public_key,
                signature=signature,
                error=error,
                events=events,
            )
            try:
                self.save_journal()
            except Exception:
                self.journal.entries.pop()
                logger.error(f"[{self.node_id}] Could not persist {action} from {caller}; call dropped")
                raise

            self.ledger = staged
            self._nonces[caller] = nonce + 1
            self._event_feed.extend(self._feed_items(entry, len(self._event_feed)))

        if error is None:
            logger.info(f"[{self.node_id}] Entry #{entry.index}: {action} by {caller} applied")
        else:
            logger.info(f"[{self.node_id}] Entry #{entry.index}: {action} by {caller} rejected ({error})")
        return Receipt(entry=entry.index, caller=caller, action=action, error=error, events=events)

    # views

    def get_election(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "active": self.ledger.election_active(),
                "candidates_count": self.ledger.candidates_count(),
                "administrator": self.ledger.administrator,
            }

    def get_candidate(self, index: int) -> Dict[str, Any]:
        with self._lock:
            candidate = self.ledger.get_candidate(index)
        return {"index": index, **candidate}

    def get_results(self) -> Dict[str, Any]:
        """
        Tallies in insertion order, with vote shares for display.
        """
        with self._lock:
            return tally_view(self.ledger.get_results())

    def get_voter(self, identity: str) -> Dict[str, Any]:
        with self._lock:
            return {
                "identity": identity,
                "is_registered": self.ledger.is_registered_voter(identity),
                "has_voted": self.ledger.has_voter_voted(identity),
                "nonce": self._nonces.get(identity, 0),
            }

    def get_events(self, since: int = 0) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._event_feed[max(since, 0):])

    def get_journal_view(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [entry.to_dict() for entry in self.journal.entries]

    def is_journal_valid(self) -> bool:
        with self._lock:
            return self.journal.is_valid()

    def get_stats(self) -> Dict[str, Any]:
        """
        Basic stats useful for UI/status displays.
        """
        with self._lock:
            registered = sum(1 for r in self.ledger.voters.values() if r.is_registered)
            voted = sum(1 for r in self.ledger.voters.values() if r.has_voted)
            return {
                "node_id": self.node_id,
                "ledger_id": self.journal.ledger_id,
                "entries": len(self.journal),
                "active": self.ledger.election_active(),
                "candidates": self.ledger.candidates_count(),
                "registered_voters": registered,
                "voters_voted": voted,
                "total_votes": self.ledger.total_votes(),
            }

    def get_info(self) -> Dict[str, Any]:
        """
        What the display layer needs to talk to this ledger: its id,
        administrator, and the call schema.
        """
        return {
            "ledger_id": self.journal.ledger_id,
            "administrator": self.journal.administrator,
            "node_id": self.node_id,
            "actions": {action: [name for name, _ in params] for action, params in ACTIONS.items()},
            "reads": READ_OPERATIONS,
        }
