import os
import subprocess
import sys

from config import DEFAULT_DATA_DIR, DEFAULT_HOST, DEFAULT_NODE_ID, DEFAULT_PORT, LEDGER_INFO_FILE
from deploy import deploy

# Configuration
PYTHON_EXEC = sys.executable
NODE_ID = os.getenv("NODE_ID", DEFAULT_NODE_ID)
HOST = os.getenv("NODE_HOST", DEFAULT_HOST)
PORT = int(os.getenv("NODE_PORT", str(DEFAULT_PORT)))
DATA_DIR = os.getenv("LEDGER_DATA_DIR", DEFAULT_DATA_DIR)


def start_node():
    print(f"Starting {NODE_ID} on {HOST}:{PORT}...")

    env = os.environ.copy()
    env["NODE_ID"] = NODE_ID
    env["LEDGER_DATA_DIR"] = DATA_DIR

    return subprocess.Popen(
        [PYTHON_EXEC, "-m", "uvicorn", "api.server:app", "--host", HOST, "--port", str(PORT)],
        env=env,
        cwd=os.getcwd()
    )


def main():
    # 1. Deploy once, if this node has no ledger yet
    if not os.path.exists(os.path.join(DATA_DIR, LEDGER_INFO_FILE)):
        deploy(node_id=NODE_ID, data_dir=DATA_DIR, api_url=f"http://{HOST}:{PORT}")

    # 2. Serve it
    process = start_node()
    print("\nNode is running! Press Ctrl+C to stop.\n")

    try:
        process.wait()
    except KeyboardInterrupt:
        print("\nShutting down node...")
        process.terminate()
        process.wait()
        print("Goodbye!")


if __name__ == "__main__":
    main()
