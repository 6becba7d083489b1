import json
import os

from config import ADMIN_KEY_FILE, LEDGER_INFO_FILE
from core.node import LedgerNode
from deploy import deploy


def test_deploy_writes_info_and_keys(tmp_path):
    info = deploy(node_id="n1", data_dir=str(tmp_path), api_url="http://node:8000")

    with open(os.path.join(tmp_path, LEDGER_INFO_FILE), "r", encoding="utf-8") as f:
        published = json.load(f)
    with open(os.path.join(tmp_path, ADMIN_KEY_FILE), "r", encoding="utf-8") as f:
        keys = json.load(f)

    assert published == info
    assert published["api_url"] == "http://node:8000"
    assert published["administrator"] == keys["identity"]
    assert "vote" in published["actions"]


def test_deploy_seeds_candidates_once(tmp_path):
    first = deploy(node_id="n1", data_dir=str(tmp_path), candidates=["Alice", "Bob"])
    second = deploy(node_id="n1", data_dir=str(tmp_path), candidates=["Alice", "Bob"])

    assert first["ledger_id"] == second["ledger_id"]
    node = LedgerNode(node_id="n1", data_dir=str(tmp_path))
    assert [r["name"] for r in node.ledger.get_results()] == ["Alice", "Bob"]
