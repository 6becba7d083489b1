#!/usr/bin/env python3
"""
Interactive console for an election ledger node.
"""

import json
import logging
import os
import sys

import requests

from client import ElectionClient, display_results
from config import DEFAULT_API_URL, DEFAULT_LOG_LEVEL, LOG_FORMAT
from core.crypto import generate_keypair
from core.errors import VotingError

# What to tell the user for each error code
MESSAGES = {
    "unauthorized": "Only the administrator can do that.",
    "already_active": "The election is already running.",
    "election_active": "Candidates can't be added while the election is running.",
    "election_not_active": "The election is not running.",
    "already_registered": "That voter is already registered.",
    "not_registered": "You are not a registered voter.",
    "already_voted": "You have already voted.",
    "invalid_candidate": "There is no candidate with that number.",
    "invalid_signature": "The node could not verify your signature.",
    "invalid_nonce": "Another call from this identity got in first, please retry.",
    "invalid_call": "The node did not understand that request.",
}


def load_keys(path):
    """
    Load a keypair file written by deploy.py, or make a fresh one.
    """
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data["private_key"], data["public_key"]
    return generate_keypair()


def print_menu(client, is_admin):
    print("\n" + "="*60)
    print("Election Ledger")
    print(f"Identity: {client.identity}" + ("  (administrator)" if is_admin else ""))
    print("="*60)
    print("1. Show election status")
    print("2. Show results")
    print("3. Vote")
    if is_admin:
        print("4. Add candidate")
        print("5. Register voter")
        print("6. Start election")
        print("7. End election")
    print("0. Exit")
    print("="*60)


def show_status(client):
    voter = client.get_voter(client.identity)
    active = client.election_active()
    print(f"\nElection is {'ACTIVE' if active else 'not active'}.")
    print(f"Candidates: {client.candidates_count()}")
    print(f"Registered: {'yes' if voter['is_registered'] else 'no'}")
    print(f"Voted:      {'yes' if voter['has_voted'] else 'no'}")


def vote(client):
    results = client.get_results()
    if not results["results"]:
        print("No candidates yet!")
        return
    print("\nCandidates:")
    for item in results["results"]:
        print(f"  {item['index']}. {item['name']}")

    selection = input("\nSelect your candidate number: ").strip()
    if not selection.isdigit():
        print("Invalid selection!")
        return
    client.vote(int(selection))
    print("\n✓ Vote recorded!")


def main():
    base_url = os.getenv("LEDGER_API_URL", DEFAULT_API_URL)
    private_key, public_key = load_keys(os.getenv("LEDGER_KEY_FILE"))
    client = ElectionClient(base_url, private_key=private_key, public_key=public_key)
    is_admin = client.is_administrator()

    print(f"\nConnected to {base_url}")

    while True:
        print_menu(client, is_admin)
        choice = input("\nPlease select an option: ").strip()

        try:
            if choice == '1':
                show_status(client)
            elif choice == '2':
                display_results(client.get_results())
            elif choice == '3':
                vote(client)
            elif choice == '4' and is_admin:
                name = input("Candidate name: ").strip()
                if not name:
                    print("Name cannot be empty!")
                    continue
                receipt = client.add_candidate(name)
                print(f"\n✓ Added candidate #{receipt['events'][0]['index']}: {name}")
            elif choice == '5' and is_admin:
                identity = input("Voter identity: ").strip()
                if not identity:
                    print("Identity cannot be empty!")
                    continue
                client.register_voter(identity)
                print(f"\n✓ Registered {identity}")
            elif choice == '6' and is_admin:
                client.start_election()
                print("\n✓ Election started.")
            elif choice == '7' and is_admin:
                client.end_election()
                print("\n✓ Election ended.")
            elif choice == '0':
                print("\nGoodbye!")
                sys.exit(0)
            else:
                print("\nInvalid selection, please try again.")
        except VotingError as e:
            print(f"\n✗ {MESSAGES.get(e.code, str(e))}")
        except requests.RequestException as e:
            print(f"\n✗ Could not reach the node: {e}")


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL), format=LOG_FORMAT)
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nProgram exited.")
        sys.exit(0)
