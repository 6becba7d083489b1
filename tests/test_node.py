import json

import pytest

from core.errors import InvalidCall, InvalidNonce, InvalidSignature, JournalCorrupted
from core.crypto import sign_call
from core.journal import Journal
from core.node import LedgerNode, validate_call


def setup_election(submit, admin, voter1, voter2):
    submit(admin, "add_candidate", name="Alice")
    submit(admin, "add_candidate", name="Bob")
    submit(admin, "register_voter", identity=voter1.identity)
    submit(admin, "register_voter", identity=voter2.identity)
    submit(admin, "start_election")


def test_new_node_needs_administrator(tmp_path):
    with pytest.raises(ValueError):
        LedgerNode(node_id="fresh", data_dir=str(tmp_path))


def test_new_node_writes_genesis(node, admin):
    assert node.journal.administrator == admin.identity
    assert node.ledger.administrator == admin.identity
    with open(node.journal_path, "r", encoding="utf-8") as f:
        assert len(json.load(f)["entries"]) == 1


def test_accepted_call_returns_events(submit, admin):
    receipt = submit(admin, "add_candidate", name="Alice")
    assert receipt.ok
    assert receipt.entry == 1
    assert receipt.caller == admin.identity
    assert receipt.events == [{"type": "CandidateAdded", "index": 0, "name": "Alice"}]


def test_rejected_call_is_journaled_and_consumes_nonce(node, submit, voter1):
    receipt = submit(voter1, "start_election")
    assert not receipt.ok
    assert receipt.error == "unauthorized"
    assert receipt.events == []
    assert len(node.journal) == 2
    assert node.next_nonce(voter1.identity) == 1
    assert node.get_election()["active"] is False


def test_full_election_over_signed_calls(node, submit, admin, voter1, voter2):
    setup_election(submit, admin, voter1, voter2)
    assert submit(voter1, "vote", candidate_index=0).ok
    assert submit(voter2, "vote", candidate_index=1).ok

    results = node.get_results()
    assert results["total_votes"] == 2
    assert [(r["index"], r["name"], r["vote_count"]) for r in results["results"]] == [
        (0, "Alice", 1),
        (1, "Bob", 1),
    ]
    assert [r["percentage"] for r in results["results"]] == [50.0, 50.0]


def test_double_vote_rejected(node, submit, admin, voter1, voter2):
    setup_election(submit, admin, voter1, voter2)
    submit(voter1, "vote", candidate_index=0)
    receipt = submit(voter1, "vote", candidate_index=1)
    assert receipt.error == "already_voted"
    assert node.get_results()["total_votes"] == 1


def test_wrong_nonce_is_not_journaled(node, admin):
    call = admin.signed("start_election", 5)
    with pytest.raises(InvalidNonce):
        node.submit(**call)
    assert len(node.journal) == 1
    assert node.next_nonce(admin.identity) == 0


def test_replayed_call_is_rejected(node, admin):
    call = admin.signed("add_candidate", 0, name="Alice")
    assert node.submit(**call).ok
    with pytest.raises(InvalidNonce):
        node.submit(**call)
    assert node.ledger.candidates_count() == 1


def test_bad_signature_is_rejected(node, admin, voter1):
    call = admin.signed("start_election", 0)
    call["signature"] = voter1.signed("start_election", 0)["signature"]
    with pytest.raises(InvalidSignature):
        node.submit(**call)
    assert node.get_election()["active"] is False


def test_caller_is_derived_from_key(node, admin, voter1):
    # voter1 signs correctly with their own key; they cannot claim to be admin
    receipt = node.submit(**voter1.signed("start_election", 0))
    assert receipt.caller == voter1.identity
    assert receipt.error == "unauthorized"


@pytest.mark.parametrize("action, args", [
    ("transfer_admin", {}),
    ("add_candidate", {}),
    ("add_candidate", {"name": 3}),
    ("vote", {"candidate_index": "0"}),
    ("vote", {"candidate_index": True}),
    ("vote", {"candidate_index": 0, "extra": 1}),
    ("start_election", []),
])
def test_validate_call_rejects_malformed(action, args):
    with pytest.raises(InvalidCall):
        validate_call(action, args)


def test_state_survives_restart(tmp_path, node, submit, admin, voter1, voter2):
    setup_election(submit, admin, voter1, voter2)
    submit(voter1, "vote", candidate_index=1)
    submit(voter2, "vote", candidate_index=9)

    reloaded = LedgerNode(node_id="test", data_dir=str(tmp_path))
    assert reloaded.ledger.to_dict() == node.ledger.to_dict()
    assert reloaded.next_nonce(admin.identity) == 5
    assert reloaded.next_nonce(voter2.identity) == 1
    assert reloaded.get_events() == node.get_events()
    assert reloaded.journal.ledger_id == node.journal.ledger_id


def test_tampered_journal_refuses_to_load(tmp_path, node, submit, admin):
    submit(admin, "add_candidate", name="Alice")
    with open(node.journal_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    data["entries"][1]["args"]["name"] = "Mallory"
    with open(node.journal_path, "w", encoding="utf-8") as f:
        json.dump(data, f)

    with pytest.raises(JournalCorrupted):
        LedgerNode(node_id="test", data_dir=str(tmp_path))


def test_existing_journal_keeps_its_administrator(tmp_path, node, voter1, admin):
    reloaded = LedgerNode(node_id="test", data_dir=str(tmp_path), administrator=voter1.identity)
    assert reloaded.ledger.administrator == admin.identity


def test_event_feed(node, submit, admin, voter1, voter2):
    setup_election(submit, admin, voter1, voter2)
    submit(voter1, "vote", candidate_index=0)

    events = node.get_events()
    assert [e["type"] for e in events] == [
        "CandidateAdded", "CandidateAdded", "VoterRegistered", "VoterRegistered", "VoteCast",
    ]
    assert [e["sequence"] for e in events] == [0, 1, 2, 3, 4]
    assert events[-1] == {
        "sequence": 4, "entry": 6, "type": "VoteCast",
        "voter": voter1.identity, "candidate_index": 0,
    }
    assert node.get_events(since=4) == events[4:]


def test_voter_view(node, submit, admin, voter1):
    submit(admin, "register_voter", identity=voter1.identity)
    assert node.get_voter(voter1.identity) == {
        "identity": voter1.identity, "is_registered": True, "has_voted": False, "nonce": 0,
    }


def test_stats_and_info(node, submit, admin, voter1):
    submit(admin, "add_candidate", name="Alice")
    submit(admin, "register_voter", identity=voter1.identity)

    stats = node.get_stats()
    assert stats["entries"] == 3
    assert stats["candidates"] == 1
    assert stats["registered_voters"] == 1
    assert stats["voters_voted"] == 0

    info = node.get_info()
    assert info["administrator"] == admin.identity
    assert info["actions"]["vote"] == ["candidate_index"]
    assert node.is_journal_valid()


def fail_save(self, path):
    raise OSError("disk full")


def test_failed_save_leaves_no_trace(tmp_path, node, admin, monkeypatch):
    with monkeypatch.context() as m:
        m.setattr(Journal, "save_to_file", fail_save)
        with pytest.raises(OSError):
            node.submit(**admin.signed("start_election", 0))

    assert node.get_election()["active"] is False
    assert len(node.journal) == 1
    assert node.next_nonce(admin.identity) == 0
    assert node.get_events() == []

    # the same call goes through once the disk recovers
    assert node.submit(**admin.signed("start_election", 0)).ok
    reloaded = LedgerNode(node_id="test", data_dir=str(tmp_path))
    assert reloaded.get_election()["active"] is True
    assert len(reloaded.journal) == 2


def test_failed_save_keeps_earlier_state(node, submit, admin, monkeypatch):
    submit(admin, "add_candidate", name="Alice")
    monkeypatch.setattr(Journal, "save_to_file", fail_save)
    with pytest.raises(OSError):
        node.submit(**admin.signed("add_candidate", 1, name="Bob"))
    assert [r["name"] for r in node.ledger.get_results()] == ["Alice"]
    assert [e["type"] for e in node.get_events()] == ["CandidateAdded"]


@pytest.mark.parametrize("content", [
    "{not json",
    '{"entries": [{"action": "deploy"}]}',
    '{"entries": []}',
    '["not", "a", "journal"]',
])
def test_unreadable_journal_is_corrupted(tmp_path, content):
    with open(tmp_path / "ledger_broken.json", "w", encoding="utf-8") as f:
        f.write(content)
    with pytest.raises(JournalCorrupted):
        LedgerNode(node_id="broken", data_dir=str(tmp_path))


def test_journal_with_malformed_call_args_is_corrupted(tmp_path, node, admin):
    # validly signed, but the arguments don't fit the action
    node.journal.append(
        action="vote",
        caller=admin.identity,
        args={"candidate": 0},
        nonce=0,
        public_key=admin.public_key,
        signature=sign_call("vote", {"candidate": 0}, 0, admin.private_key),
    )
    node.save_journal()
    with pytest.raises(JournalCorrupted):
        LedgerNode(node_id="test", data_dir=str(tmp_path))
