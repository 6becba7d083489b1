#!/usr/bin/env python3
"""
Deploy a new election ledger.

Creates (or reuses) the administrator keypair, writes the node's genesis
journal, optionally seeds candidates, and publishes ledger_info.json for
the display layer.
"""

import json
import logging
import os
import sys

from config import (
    ADMIN_KEY_FILE,
    DEFAULT_API_URL,
    DEFAULT_CANDIDATES,
    DEFAULT_DATA_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_NODE_ID,
    LEDGER_INFO_FILE,
    LOG_FORMAT,
)
from core.crypto import generate_keypair, hash_public_key, sign_call
from core.node import LedgerNode

logger = logging.getLogger(__name__)


def load_or_create_admin_keys(path):
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Reusing administrator key from {path}")
        return data["private_key"], data["public_key"]

    private_key, public_key = generate_keypair()
    with open(path, "w", encoding="utf-8") as f:
        json.dump({
            "private_key": private_key,
            "public_key": public_key,
            "identity": hash_public_key(public_key),
        }, f, indent=2)
    logger.info(f"Administrator key written to {path}")
    return private_key, public_key


def seed_candidates(node, private_key, public_key, names):
    identity = hash_public_key(public_key)
    for name in names:
        args = {"name": name}
        nonce = node.next_nonce(identity)
        receipt = node.submit(
            action="add_candidate",
            args=args,
            nonce=nonce,
            public_key=public_key,
            signature=sign_call("add_candidate", args, nonce, private_key),
        )
        if not receipt.ok:
            logger.warning(f"Could not add candidate {name}: {receipt.error}")


def deploy(node_id=DEFAULT_NODE_ID, data_dir=DEFAULT_DATA_DIR, api_url=DEFAULT_API_URL, candidates=None):
    """
    Instantiate the ledger once and write the info file the display layer reads.
    Returns the info dict.
    """
    os.makedirs(data_dir, exist_ok=True)
    private_key, public_key = load_or_create_admin_keys(os.path.join(data_dir, ADMIN_KEY_FILE))
    administrator = hash_public_key(public_key)

    node = LedgerNode(node_id=node_id, data_dir=data_dir, administrator=administrator)
    if node.journal.administrator != administrator:
        raise SystemExit(
            f"Journal for {node_id} belongs to {node.journal.administrator}, not {administrator}"
        )

    if candidates and node.ledger.candidates_count() == 0:
        seed_candidates(node, private_key, public_key, candidates)

    info = {**node.get_info(), "api_url": api_url}
    info_path = os.path.join(data_dir, LEDGER_INFO_FILE)
    with open(info_path, "w", encoding="utf-8") as f:
        json.dump(info, f, indent=2)

    logger.info(f"Ledger {info['ledger_id'][:16]}... deployed, administrator {administrator}")
    logger.info(f"Ledger info saved to {info_path}")
    return info


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL), format=LOG_FORMAT)
    seed = "--seed" in sys.argv[1:]
    deploy(
        node_id=os.getenv("NODE_ID", DEFAULT_NODE_ID),
        data_dir=os.getenv("LEDGER_DATA_DIR", DEFAULT_DATA_DIR),
        api_url=os.getenv("LEDGER_API_URL", DEFAULT_API_URL),
        candidates=DEFAULT_CANDIDATES if seed else None,
    )
