# Network

NETWORK_SOLANA          = "solana"

# Currencies (decimal places of the smallest unit)

SOL_DECIMALS            = 9             # 1 SOL = 1_000_000_000 lamports
USDC_DECIMALS           = 6             # 1 USDC = 1_000_000 micro

CURRENCY_SOL            = "SOL"
CURRENCY_USDC           = "USDC"

CURRENCY_DECIMALS = {
    CURRENCY_SOL:  SOL_DECIMALS,
    CURRENCY_USDC: USDC_DECIMALS,
}

VALID_CURRENCIES        = set(CURRENCY_DECIMALS)

MAX_U64                 = 2**64 - 1

# Solana Programs & Mints

DEFAULT_RPC_URL                 = "https://api.mainnet-beta.solana.com"
USDC_MINT                       = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"   # mainnet only
TOKEN_ACCOUNT_SIZE              = 165           # bytes, for rent-exempt lookup
SOL_FEE_LAMPORTS                = 5_000         # flat signature fee (0.000005 SOL)
SIGNATURE_LIMIT                 = 100           # per address, most recent first
MAX_SUPPORTED_TX_VERSION        = 0

# Vault File

VAULT_EXTENSION         = ".cwt"
VAULT_FILE_MODE         = 0o600
UTF8_BOM                = b"\xef\xbb\xbf"
PRIVATE_KEY_SIZE        = 64            # 32-byte seed + 32-byte public key

# Key Derivation (Argon2id via libsodium)
# MODERATE ~ 256 MiB working set, well under a few seconds on a desktop.

KDF_SALT_SIZE           = 16            # nacl.pwhash.argon2id.SALTBYTES
KDF_KEY_SIZE            = 32            # nacl.secret.SecretBox.KEY_SIZE
KDF_OPSLIMIT            = 3             # nacl.pwhash.argon2id.OPSLIMIT_MODERATE
KDF_MEMLIMIT            = 268_435_456   # nacl.pwhash.argon2id.MEMLIMIT_MODERATE
AEAD_NONCE_SIZE         = 24            # XSalsa20-Poly1305

# Ledger

DIRECTION_INCOMING      = "incoming"
DIRECTION_OUTGOING      = "outgoing"
VALID_DIRECTIONS        = {DIRECTION_INCOMING, DIRECTION_OUTGOING}

STATUS_SUCCESS          = "success"
STATUS_FAILED           = "failed"

# Price Feed

COINGECKO_API           = "https://api.coingecko.com/api/v3"
COINGECKO_COIN_ID       = "usd-coin"
FIAT_CURRENCY           = "rub"
HTTP_TIMEOUT_SECONDS    = 15
