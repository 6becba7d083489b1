# core/errors.py
"""
Error taxonomy for the voting ledger.

Every error carries a stable machine-readable `code` so the API and the
display layer can tell rejections apart without parsing messages.
"""

from __future__ import annotations

from typing import Dict, Type


class VotingError(Exception):
    code = "voting_error"
    message = "Voting error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.message)


# ledger rejections (state is left unchanged)

class LedgerError(VotingError):
    code = "ledger_error"


class Unauthorized(LedgerError):
    code = "unauthorized"
    message = "Only the administrator can perform this action"


class AlreadyActive(LedgerError):
    code = "already_active"
    message = "Election is already active"


class ElectionActive(LedgerError):
    code = "election_active"
    message = "Cannot add candidates during active election"


class ElectionNotActive(LedgerError):
    code = "election_not_active"
    message = "Election is not active"


class AlreadyRegistered(LedgerError):
    code = "already_registered"
    message = "Voter is already registered"


class NotRegistered(LedgerError):
    code = "not_registered"
    message = "Only registered voters can vote"


class AlreadyVoted(LedgerError):
    code = "already_voted"
    message = "You have already voted"


class InvalidCandidate(LedgerError):
    code = "invalid_candidate"
    message = "Invalid candidate ID"


# boundary rejections (the call never reaches the ledger)

class CallError(VotingError):
    code = "call_error"


class InvalidCall(CallError):
    code = "invalid_call"
    message = "Unknown action or malformed arguments"


class InvalidSignature(CallError):
    code = "invalid_signature"
    message = "Signature does not match the call"


class InvalidNonce(CallError):
    code = "invalid_nonce"
    message = "Nonce does not match the caller's next nonce"


class JournalCorrupted(VotingError):
    code = "journal_corrupted"
    message = "Stored journal failed validation"


LEDGER_ERRORS: Dict[str, Type[LedgerError]] = {
    cls.code: cls
    for cls in (
        Unauthorized,
        AlreadyActive,
        ElectionActive,
        ElectionNotActive,
        AlreadyRegistered,
        NotRegistered,
        AlreadyVoted,
        InvalidCandidate,
    )
}

CALL_ERRORS: Dict[str, Type[CallError]] = {
    cls.code: cls for cls in (InvalidCall, InvalidSignature, InvalidNonce)
}


def error_from_code(code: str, message: str = "") -> VotingError:
    """
    Rebuild an error instance from its code, e.g. from an API response.
    Unknown codes come back as a plain VotingError.
    """
    cls = LEDGER_ERRORS.get(code) or CALL_ERRORS.get(code)
    if cls is None:
        return VotingError(message or code)
    return cls(message)
