# core/ledger.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Dict, Any

from .errors import (
    Unauthorized,
    AlreadyActive,
    ElectionActive,
    ElectionNotActive,
    AlreadyRegistered,
    NotRegistered,
    AlreadyVoted,
    InvalidCandidate,
)
from .events import Event, CandidateAdded, VoterRegistered, VoteCast


@dataclass
class Candidate:
    """
    A named option on the ballot with its running tally.
    """
    name: str
    vote_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "vote_count": self.vote_count}


@dataclass
class VoterRecord:
    is_registered: bool = False
    has_voted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"is_registered": self.is_registered, "has_voted": self.has_voted}


class ElectionLedger:
    """
    State machine for a single election.

    - One administrator, fixed at construction.
    - Candidates are appended by the administrator while the election is inactive.
    - Voters are allowlisted by the administrator and may vote at most once,
      across every run of the election.

    Every mutating method either applies fully and returns the list of events
    it produced, or raises a LedgerError and leaves the state untouched.
    """

    def __init__(self, administrator: str) -> None:
        self._administrator = administrator
        self.active = False
        self.candidates: List[Candidate] = []
        self.voters: Dict[str, VoterRecord] = {}

    @property
    def administrator(self) -> str:
        return self._administrator

    def _require_administrator(self, caller: str) -> None:
        if caller != self._administrator:
            raise Unauthorized()

    # election lifecycle

    def start_election(self, caller: str) -> List[Event]:
        self._require_administrator(caller)
        if self.active:
            raise AlreadyActive()
        self.active = True
        return []

    def end_election(self, caller: str) -> List[Event]:
        # ending an inactive election is a no-op, not an error
        self._require_administrator(caller)
        self.active = False
        return []

    # roster and registry

    def add_candidate(self, caller: str, name: str) -> List[Event]:
        self._require_administrator(caller)
        if self.active:
            raise ElectionActive()
        index = len(self.candidates)
        self.candidates.append(Candidate(name=name))
        return [CandidateAdded(index=index, name=name)]

    def register_voter(self, caller: str, identity: str) -> List[Event]:
        self._require_administrator(caller)
        if self.is_registered_voter(identity):
            raise AlreadyRegistered()
        self.voters[identity] = VoterRecord(is_registered=True, has_voted=False)
        return [VoterRegistered(identity=identity)]

    # voting

    def vote(self, caller: str, candidate_index: int) -> List[Event]:
        """
        Record one vote from `caller`.

        Checks run in a fixed order so that a call breaking several rules
        always reports the same error: registration, prior vote, phase, index.
        """
        record = self.voters.get(caller)
        if record is None or not record.is_registered:
            raise NotRegistered()
        if record.has_voted:
            raise AlreadyVoted()
        if not self.active:
            raise ElectionNotActive()
        if not self._valid_index(candidate_index):
            raise InvalidCandidate()

        self.candidates[candidate_index].vote_count += 1
        record.has_voted = True
        return [VoteCast(voter=caller, candidate_index=candidate_index)]

    # read-only accessors

    def _valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.candidates)

    def get_candidate(self, index: int) -> Dict[str, Any]:
        if not self._valid_index(index):
            raise InvalidCandidate()
        return self.candidates[index].to_dict()

    def get_results(self) -> List[Dict[str, Any]]:
        """
        All candidates with their tallies, in insertion order.
        No winner is picked; ranking is left to the caller.
        """
        return [candidate.to_dict() for candidate in self.candidates]

    def is_registered_voter(self, identity: str) -> bool:
        record = self.voters.get(identity)
        return record is not None and record.is_registered

    def has_voter_voted(self, identity: str) -> bool:
        record = self.voters.get(identity)
        return record is not None and record.has_voted

    def candidates_count(self) -> int:
        return len(self.candidates)

    def election_active(self) -> bool:
        return self.active

    def total_votes(self) -> int:
        return sum(candidate.vote_count for candidate in self.candidates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "administrator": self._administrator,
            "active": self.active,
            "candidates": self.get_results(),
            "voters": {identity: record.to_dict() for identity, record in self.voters.items()},
        }


def tally_view(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Shape `get_results()` output for display: ballot index and vote share
    per candidate, plus the total. Order is kept as given.
    """
    total_votes = sum(r["vote_count"] for r in results)
    return {
        "total_votes": total_votes,
        "results": [
            {
                "index": index,
                "name": r["name"],
                "vote_count": r["vote_count"],
                "percentage": (r["vote_count"] / total_votes) * 100 if total_votes else 0.0,
            }
            for index, r in enumerate(results)
        ],
    }
