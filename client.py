# client.py
"""
Client for a ledger node's HTTP API, plus console display helpers.

Plays the part of the display layer: it polls election state and submits
signed calls. Rejections come back as the matching exception from
core.errors so callers can show the exact reason.
"""

from __future__ import annotations

import logging
from typing import Dict, Any, List, Optional

import requests

from config import DEFAULT_API_URL, REQUEST_TIMEOUT, RESULT_BAR_WIDTH
from core.crypto import hash_public_key, sign_call
from core.errors import LEDGER_ERRORS, CALL_ERRORS, error_from_code

logger = logging.getLogger(__name__)


def _raise_for_detail(resp: Any) -> None:
    """
    Raise the domain error named by an error response, if it names one.
    Bodies that are not JSON are left to raise_for_status().
    """
    try:
        body = resp.json()
    except ValueError:
        return
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str) and (detail in LEDGER_ERRORS or detail in CALL_ERRORS):
        raise error_from_code(detail)


class ElectionClient:

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        private_key: Optional[str] = None,
        public_key: Optional[str] = None,
        session: Optional[Any] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.private_key = private_key
        self.public_key = public_key
        # anything with requests-style get/post works, e.g. a FastAPI TestClient
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def identity(self) -> Optional[str]:
        if self.public_key is None:
            return None
        return hash_public_key(self.public_key)

    # transport

    def _get(self, path: str, **params: Any) -> Any:
        resp = self.session.get(f"{self.base_url}{path}", params=params or None, timeout=self.timeout)
        if resp.status_code == 404:
            _raise_for_detail(resp)
        resp.raise_for_status()
        return resp.json()

    def _call(self, action: str, **args: Any) -> Dict[str, Any]:
        """
        Sign and submit a call with the caller's current nonce.
        Returns the receipt; raises the ledger or boundary error otherwise.
        """
        if self.private_key is None or self.public_key is None:
            raise ValueError("A keypair is required to submit calls")

        nonce = self.get_voter(self.identity)["nonce"]
        payload = {
            "action": action,
            "args": args,
            "nonce": nonce,
            "public_key": self.public_key,
            "signature": sign_call(action, args, nonce, self.private_key),
        }
        resp = self.session.post(f"{self.base_url}/call", json=payload, timeout=self.timeout)
        if resp.status_code in (400, 401, 409):
            _raise_for_detail(resp)
        resp.raise_for_status()

        receipt = resp.json()
        if not receipt["ok"]:
            logger.info(f"{action} rejected by ledger: {receipt['error']}")
            raise error_from_code(receipt["error"])
        return receipt

    # reads

    def get_info(self) -> Dict[str, Any]:
        return self._get("/info")

    def election_active(self) -> bool:
        return self._get("/election")["active"]

    def candidates_count(self) -> int:
        return self._get("/election")["candidates_count"]

    def get_candidate(self, index: int) -> Dict[str, Any]:
        return self._get(f"/candidates/{index}")

    def get_results(self) -> Dict[str, Any]:
        return self._get("/results")

    def get_voter(self, identity: str) -> Dict[str, Any]:
        return self._get(f"/voters/{identity}")

    def is_registered_voter(self, identity: str) -> bool:
        return self.get_voter(identity)["is_registered"]

    def has_voter_voted(self, identity: str) -> bool:
        return self.get_voter(identity)["has_voted"]

    def get_events(self, since: int = 0) -> List[Dict[str, Any]]:
        return self._get("/events", since=since)

    def is_administrator(self) -> bool:
        return self.identity is not None and self.identity == self.get_info()["administrator"]

    # calls

    def start_election(self) -> Dict[str, Any]:
        return self._call("start_election")

    def end_election(self) -> Dict[str, Any]:
        return self._call("end_election")

    def add_candidate(self, name: str) -> Dict[str, Any]:
        return self._call("add_candidate", name=name)

    def register_voter(self, identity: str) -> Dict[str, Any]:
        return self._call("register_voter", identity=identity)

    def vote(self, candidate_index: int) -> Dict[str, Any]:
        return self._call("vote", candidate_index=candidate_index)


def format_results(results: Dict[str, Any]) -> str:
    """
    Render tallies as text progress bars, in ballot order.
    """
    lines = ["=" * 60, "Election Results", "=" * 60]
    items = results.get("results", [])

    if not items:
        lines.append("No candidates yet.")
    else:
        lines.append(f"Total votes: {results['total_votes']}\n")
        for item in items:
            bar = "█" * int(item["percentage"] * RESULT_BAR_WIDTH / 100)
            lines.append(
                f"{item['index']:>2}. {item['name']:15} | {bar} "
                f"{item['vote_count']} votes ({item['percentage']:.1f}%)"
            )

    lines.append("=" * 60)
    return "\n".join(lines)


def display_results(results: Dict[str, Any]) -> None:
    print("\n" + format_results(results) + "\n")
