# core/events.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Any, Union


@dataclass(frozen=True)
class CandidateAdded:
    index: int
    name: str

    kind = "CandidateAdded"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, **asdict(self)}


@dataclass(frozen=True)
class VoterRegistered:
    identity: str

    kind = "VoterRegistered"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, **asdict(self)}


@dataclass(frozen=True)
class VoteCast:
    voter: str
    candidate_index: int

    kind = "VoteCast"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, **asdict(self)}


Event = Union[CandidateAdded, VoterRegistered, VoteCast]
