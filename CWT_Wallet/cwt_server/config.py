import os

from CWT_Wallet.cwt_shared import config as shared_config

# HTTP Server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))

# Payments
PAY_COOLDOWN_MINUTES = float(os.environ.get("PAY_COOLDOWN_MINUTES", "4"))

# Wallet File (required to serve)
SOLANA_FILE_PATH = os.environ.get("SOLANA_FILE_PATH", "")

# Solana RPC
SOLANA_RPC_URL = os.environ.get("SOLANA_RPC_URL", shared_config.DEFAULT_RPC_URL)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
