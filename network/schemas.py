# network/schemas.py
from __future__ import annotations

from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field


class SignedCall(BaseModel):
    """
    A state-changing call as sent by a client.

    action:
      - "start_election"
      - "end_election"
      - "add_candidate"   args: {"name": str}
      - "register_voter"  args: {"identity": str}
      - "vote"            args: {"candidate_index": int}
    nonce:
      - the caller's next nonce, see GET /voters/{identity}
    signature:
      - hex RSA-PSS signature over the canonical call body
    """

    action: str
    args: Dict[str, Any] = Field(default_factory=dict)
    nonce: int = Field(ge=0)
    public_key: str
    signature: str


class CallResponse(BaseModel):
    ok: bool
    entry: int
    caller: str
    action: str
    error: Optional[str] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)


class ElectionResponse(BaseModel):
    active: bool
    candidates_count: int
    administrator: str


class CandidateResponse(BaseModel):
    index: int
    name: str
    vote_count: int


class ResultItem(BaseModel):
    index: int
    name: str
    vote_count: int
    percentage: float


class ResultsResponse(BaseModel):
    total_votes: int
    results: List[ResultItem]


class VoterResponse(BaseModel):
    identity: str
    is_registered: bool
    has_voted: bool
    nonce: int


class InfoResponse(BaseModel):
    ledger_id: str
    administrator: str
    node_id: str
    actions: Dict[str, List[str]]
    reads: List[str]


class StatsResponse(BaseModel):
    node_id: str
    ledger_id: str
    entries: int
    active: bool
    candidates: int
    registered_voters: int
    voters_voted: int
    total_votes: int
