# core/journal.py
from __future__ import annotations

import hashlib
import json
import os
import time
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from .crypto import canonical_call, verify_signature, hash_public_key
from .errors import JournalCorrupted

GENESIS_ACTION = "deploy"


@dataclass
class Entry:
    """
    One admitted call, linked to the entry before it by hash.

    Rejected calls are journaled too (with their error code and no events),
    so the journal replays to exactly the same ledger and nonces.
    """
    index: int
    action: str
    caller: str
    args: Dict[str, Any]
    previous_hash: str
    nonce: int = 0
    public_key: str = ""
    signature: str = ""
    error: Optional[str] = None
    events: List[Dict[str, Any]] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)
    hash: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def compute_hash(self) -> str:
        # note: self.hash is not part of the hashed data
        entry_data = self.to_dict()
        entry_data.pop("hash")
        entry_string = json.dumps(entry_data, sort_keys=True).encode()
        return hashlib.sha256(entry_string).hexdigest()

    def seal(self) -> None:
        self.hash = self.compute_hash()

    def has_valid_signature(self) -> bool:
        if hash_public_key(self.public_key) != self.caller:
            return False
        message = canonical_call(self.action, self.args, self.nonce)
        return verify_signature(message, self.signature, self.public_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "action": self.action,
            "caller": self.caller,
            "args": self.args,
            "nonce": self.nonce,
            "public_key": self.public_key,
            "signature": self.signature,
            "error": self.error,
            "events": self.events,
            "previous_hash": self.previous_hash,
            "timestamp": self.timestamp,
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entry":
        entry = cls(
            index=data["index"],
            action=data["action"],
            caller=data["caller"],
            args=data.get("args", {}),
            previous_hash=data["previous_hash"],
            nonce=data.get("nonce", 0),
            public_key=data.get("public_key", ""),
            signature=data.get("signature", ""),
            error=data.get("error"),
            events=data.get("events", []),
            timestamp=data.get("timestamp", time.time()),
        )
        # keep a stored hash so tampering shows up in is_valid()
        stored_hash = data.get("hash")
        entry.hash = stored_hash or entry.compute_hash()
        return entry


class Journal:
    """
    Append-only, hash-linked record of every call admitted to a ledger.

    The genesis entry names the administrator; its hash identifies the ledger.
    """

    def __init__(self, entries: Optional[List[Entry]] = None) -> None:
        self.entries: List[Entry] = entries or []

    @classmethod
    def create(cls, administrator: str) -> "Journal":
        genesis = Entry(
            index=0,
            action=GENESIS_ACTION,
            caller=administrator,
            args={"administrator": administrator},
            previous_hash="0",
        )
        genesis.seal()
        return cls([genesis])

    @property
    def genesis(self) -> Entry:
        return self.entries[0]

    @property
    def last_entry(self) -> Entry:
        return self.entries[-1]

    @property
    def ledger_id(self) -> str:
        return self.genesis.hash

    @property
    def administrator(self) -> str:
        return self.genesis.args["administrator"]

    def __len__(self) -> int:
        return len(self.entries)

    def append(
        self,
        action: str,
        caller: str,
        args: Dict[str, Any],
        nonce: int,
        public_key: str,
        signature: str,
        error: Optional[str] = None,
        events: Optional[List[Dict[str, Any]]] = None,
    ) -> Entry:
        entry = Entry(
            index=len(self.entries),
            action=action,
            caller=caller,
            args=args,
            previous_hash=self.last_entry.hash,
            nonce=nonce,
            public_key=public_key,
            signature=signature,
            error=error,
            events=events or [],
        )
        entry.seal()
        self.entries.append(entry)
        return entry

    def is_valid(self) -> bool:
        """
        Verify that:
        - the genesis entry is well formed
        - the hash of each entry is correct
        - indexes are contiguous and previous_hash links are consistent
        - every call entry is signed by the key its caller identity derives from
        """
        if not self.entries:
            return False

        genesis = self.genesis
        if (
            genesis.index != 0
            or genesis.action != GENESIS_ACTION
            or genesis.previous_hash != "0"
            or "administrator" not in genesis.args
            or genesis.hash != genesis.compute_hash()
        ):
            return False

        for i in range(1, len(self.entries)):
            current = self.entries[i]
            previous = self.entries[i - 1]

            if current.index != i:
                return False
            if current.hash != current.compute_hash():
                return False
            if current.previous_hash != previous.hash:
                return False
            if not current.has_valid_signature():
                return False

        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"entries": [entry.to_dict() for entry in self.entries]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Journal":
        return cls([Entry.from_dict(e) for e in data.get("entries", [])])

    def save_to_file(self, path: str) -> None:
        # write then rename so a crash never leaves a half-written journal
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        os.replace(tmp_path, path)

    @classmethod
    def load_from_file(cls, path: str) -> Optional["Journal"]:
        """
        Load a journal from disk, or None when there is no journal yet.
        Raises JournalCorrupted when the file is not a readable journal.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            raise JournalCorrupted(f"Journal at {path} is not valid JSON: {e}")

        try:
            return cls.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise JournalCorrupted(f"Journal at {path} is malformed: {e!r}")
