"""
Application constants.

Centralized constants for the donation ledger.
"""

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

# Blockchain operation timeouts (in seconds)
BLOCKCHAIN_TIMEOUT = 30.0  # Standard RPC calls (block number, decimals, nonce)
BLOCKCHAIN_LONG_TIMEOUT = 120.0  # Log queries over the history window
CONFIRMATION_TIMEOUT = 120.0  # Waiting for a transaction receipt

# History window
HISTORY_WINDOW_BLOCKS = 50000  # Blocks refetched back from the chain head on every resync

# Polling
BLOCKCHAIN_POLL_INTERVAL = 3  # Seconds between new-event polls

# Gas
GAS_LIMIT_MULTIPLIER = 1.2  # Safety buffer for gas estimation

# ========================================================================
# LEDGER CONSTANTS
# ========================================================================

NATIVE_DECIMALS = 18
DEFAULT_TOKEN_DECIMALS = 18  # Used when a token does not answer decimals()
DECIMAL_PRECISION = 80  # uint256 needs up to 78 significant digits

NATIVE_ASSET_LABEL = "native"
GENERAL_CAMPAIGN_NAME = "General native-currency Donation"
UNKNOWN_CAMPAIGN_NAME = "Unknown"
NO_CAMPAIGN_ID = 0

RECENT_DONATIONS_LIMIT = 5  # Records shown in the recent donations list

# ========================================================================
# DISPLAY CONSTANTS
# ========================================================================

AMOUNT_DISPLAY_PLACES = 4
