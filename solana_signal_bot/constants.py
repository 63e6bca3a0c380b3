# ============================================
# MINTS & ENDPOINTS
# ============================================
WSOL_MINT = "So11111111111111111111111111111111111111112"
LAMPORTS_PER_SOL = 1_000_000_000

JUPITER_API_BASE = "https://quote-api.jup.ag/v6"
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
TELEGRAM_API_BASE = "https://api.telegram.org"
SOLSCAN_TX_URL = "https://solscan.io/tx/"

# ============================================
# ADDRESS EXTRACTION
# ============================================
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
ADDRESS_MIN_LEN = 32
ADDRESS_MAX_LEN = 44
# pump.fun mints end with this marker
ADDRESS_SUFFIX = "pump"
DEFAULT_LINK_HOSTS = ["dexscreener.com"]

# ============================================
# EXIT RULES
# ============================================
QUICK_EXIT_RATIO = 1.5
LOOKBACK_SHORT_SEC = 5 * 60
LOOKBACK_MID_SEC = 10 * 60
LOOKBACK_LONG_SEC = 20 * 60

REASON_QUICK_GAIN = "quick gain"
REASON_SHORT_TERM_DROP = "short-term drop"
REASON_PRE_DROP_20M = "pre-drop from 20m"
