#!/usr/bin/env python3
"""
Quick Demo Script - walk an election ledger through a full run
"""

from client import display_results
from config import DEFAULT_CANDIDATES
from core.errors import LedgerError
from core.ledger import ElectionLedger, tally_view


def attempt(label, operation, *args):
    try:
        events = operation(*args)
    except LedgerError as e:
        print(f"✗ {label}: {e.code} ({e})")
        return
    print(f"✓ {label}" + "".join(f"\n    {event.to_dict()}" for event in events))


def demo():
    print("\n" + "="*60)
    print("Election Ledger - Automatic Demo")
    print("="*60)

    admin = "admin"
    voters = ["alice", "bob", "charlie", "dave", "eve"]

    print("\n1. Creating ledger...")
    ledger = ElectionLedger(administrator=admin)

    print("\n2. Adding candidates...")
    for name in DEFAULT_CANDIDATES[:3]:
        attempt(f"add {name}", ledger.add_candidate, admin, name)
    attempt("add candidate as non-admin", ledger.add_candidate, "mallory", "Mallory")

    print("\n3. Registering voters...")
    for voter in voters:
        attempt(f"register {voter}", ledger.register_voter, admin, voter)

    print("\n4. Voting before the election starts...")
    attempt("alice votes", ledger.vote, "alice", 0)

    print("\n5. Starting the election and voting...")
    attempt("start election", ledger.start_election, admin)
    for voter, index in zip(voters, [0, 1, 0, 2, 0]):
        attempt(f"{voter} votes for #{index}", ledger.vote, voter, index)

    print("\n6. Testing the guards...")
    attempt("alice votes again", ledger.vote, "alice", 1)
    attempt("mallory votes", ledger.vote, "mallory", 0)
    attempt("add candidate mid-election", ledger.add_candidate, admin, "Late")

    display_results(tally_view(ledger.get_results()))

    print("\n7. Ending and restarting the election...")
    attempt("end election", ledger.end_election, admin)
    attempt("start election", ledger.start_election, admin)
    attempt("bob votes again after restart", ledger.vote, "bob", 2)

    display_results(tally_view(ledger.get_results()))

    print("="*60)
    print("Demo complete!")
    print("="*60)
    print("\nTip: Run 'python deploy.py --seed' then 'python run_node.py' to serve a ledger\n")


if __name__ == "__main__":
    demo()
