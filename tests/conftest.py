from typing import Any, Dict, Tuple

import pytest

from core.crypto import generate_keypair, hash_public_key, sign_call
from core.node import LedgerNode


class Account:
    """A keypair and the identity it maps to."""

    def __init__(self, keys: Tuple[str, str]) -> None:
        self.private_key, self.public_key = keys
        self.identity = hash_public_key(self.public_key)

    def signed(self, action: str, nonce: int, **args: Any) -> Dict[str, Any]:
        return {
            "action": action,
            "args": args,
            "nonce": nonce,
            "public_key": self.public_key,
            "signature": sign_call(action, args, nonce, self.private_key),
        }


@pytest.fixture(scope="session")
def admin() -> Account:
    return Account(generate_keypair())


@pytest.fixture(scope="session")
def voter1() -> Account:
    return Account(generate_keypair())


@pytest.fixture(scope="session")
def voter2() -> Account:
    return Account(generate_keypair())


@pytest.fixture(scope="session")
def outsider() -> Account:
    return Account(generate_keypair())


@pytest.fixture
def node(tmp_path, admin) -> LedgerNode:
    return LedgerNode(node_id="test", data_dir=str(tmp_path), administrator=admin.identity)


@pytest.fixture
def submit(node):
    """Sign a call as `account` with its current nonce and submit it to the node."""

    def _submit(account: Account, action: str, **args: Any):
        nonce = node.next_nonce(account.identity)
        return node.submit(**account.signed(action, nonce, **args))

    return _submit
