# config.py
"""
Configuration file for the voting ledger.
Centralizes all system parameters for easy management and tuning.
Per-process settings (node id, port, data dir) come from environment
variables read at the entry points.
"""

# Storage Configuration
# Directory holding journals, keys and the published ledger info
DEFAULT_DATA_DIR = "data"

# Journal file name pattern, formatted with the node id
JOURNAL_FILE_TEMPLATE = "ledger_{node_id}.json"

# File the deploy step writes for the display layer
LEDGER_INFO_FILE = "ledger_info.json"

# Where the deploy step keeps the administrator's keypair
ADMIN_KEY_FILE = "admin_key.json"

# Node Configuration
DEFAULT_NODE_ID = "ledger-1"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_API_URL = "http://127.0.0.1:8000"

# Identity Configuration
# RSA modulus size for caller keypairs
RSA_KEY_SIZE = 2048

# Number of hex characters of the public key hash used as identity
IDENTITY_LENGTH = 16

# Client Configuration
# Timeout for HTTP calls from the client in seconds
REQUEST_TIMEOUT = 5

# Display Configuration
# Width in characters of a 100% result bar
RESULT_BAR_WIDTH = 50

# Voting Configuration
# Default candidates for the deploy script and demo
DEFAULT_CANDIDATES = ["Alice", "Bob", "Charlie", "Dave"]

# Logging Configuration
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LOG_LEVEL = "INFO"
