import os
from dotenv import load_dotenv

# Load .env file from parent directory
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Upper bound for a whole HTTP exchange, in seconds
RPC_TIMEOUT_SECONDS = float(os.getenv("RPC_TIMEOUT_SECONDS", "30"))

RPC_USER_AGENT = os.getenv("RPC_USER_AGENT", "rpcfetch/1.0")

# Diagnostic prints from the fetcher and client
RPC_VERBOSE = _env_flag("RPC_VERBOSE")
