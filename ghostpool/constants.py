"""
Ghost Pool Client Constants

Wire sizes, layout offsets and the default protocol identities of the
deployed devnet pool. Everything that varies between deployments is carried
by ProtocolConfig; the values here are its defaults.
"""

from typing import Final, Dict

# ==============================================================================
# FIELD SIZES
# ==============================================================================

PUBKEY_SIZE: Final[int] = 32
SIGNATURE_SIZE: Final[int] = 64
BLOCKHASH_SIZE: Final[int] = 32
DISCRIMINATOR_SIZE: Final[int] = 8
CIPHERTEXT_BLOCK_SIZE: Final[int] = 32          # One encrypted field element
X25519_KEY_SIZE: Final[int] = 32
NONCE_SIZE: Final[int] = 16                     # u128

U8_MAX: Final[int] = 0xFF
U32_MAX: Final[int] = 0xFFFFFFFF
U64_MAX: Final[int] = 0xFFFFFFFFFFFFFFFF
U128_MAX: Final[int] = (1 << 128) - 1
I64_MIN: Final[int] = -(1 << 63)
I64_MAX: Final[int] = (1 << 63) - 1

# Byte order
LITTLE_ENDIAN: Final[str] = "little"

# ==============================================================================
# POOL RECORD LAYOUT
# ==============================================================================

ENCRYPTED_STATE_BLOCKS: Final[int] = 13         # 2 deposits x 4 FE + 5 globals
ENCRYPTED_STATE_SIZE: Final[int] = ENCRYPTED_STATE_BLOCKS * CIPHERTEXT_BLOCK_SIZE

# tag | bump | owner | mint | vault_bump | threshold | last_time | state_nonce
ENCRYPTED_STATE_OFFSET: Final[int] = 8 + 1 + 32 + 32 + 1 + 8 + 8 + 16

POOL_STATE_SIZE: Final[int] = (
    ENCRYPTED_STATE_OFFSET
    + ENCRYPTED_STATE_SIZE
    + 8 + 8 + 8 + 8        # deposits, withdrawals, invested, pending
    + PUBKEY_SIZE          # collateral account
    + 8                    # collateral received
)

# ==============================================================================
# INSTRUCTION PAYLOADS
# ==============================================================================

# tag | computation_offset | amount | ciphertext | ephemeral pubkey | nonce
TRANSFER_PAYLOAD_SIZE: Final[int] = (
    DISCRIMINATOR_SIZE + 8 + 8 + CIPHERTEXT_BLOCK_SIZE + X25519_KEY_SIZE + NONCE_SIZE
)

# tag | computation_offset | nonce | investment_threshold
INIT_POOL_PAYLOAD_SIZE: Final[int] = DISCRIMINATOR_SIZE + 8 + NONCE_SIZE + 8

# Anchor discriminators of the deployed program (sha256("global:<ix>")[:8])
KNOWN_INSTRUCTION_DISCRIMINATORS: Final[Dict[str, bytes]] = {
    "deposit": bytes([242, 35, 198, 137, 82, 225, 242, 182]),
    "withdraw": bytes([183, 18, 70, 156, 148, 109, 161, 34]),
}

# sha256("account:GhostPool")[:8]
POOL_ACCOUNT_DISCRIMINATOR: Final[bytes] = bytes([67, 130, 47, 98, 25, 201, 9, 246])
POOL_ACCOUNT_NAME: Final[str] = "GhostPool"

# ==============================================================================
# ADDRESS DERIVATION
# ==============================================================================

PDA_MARKER: Final[bytes] = b"ProgramDerivedAddress"
MAX_SEEDS: Final[int] = 16
MAX_SEED_LENGTH: Final[int] = 32

SEED_POOL: Final[str] = "ghost_pool"
SEED_VAULT: Final[str] = "vault"
SEED_SIGNER: Final[str] = "ArciumSignerAccount"
SEED_CLUSTER: Final[str] = "Cluster"
SEED_MEMPOOL: Final[str] = "Mempool"
SEED_EXECPOOL: Final[str] = "Execpool"
SEED_COMPUTATION: Final[str] = "ComputationAccount"
SEED_COMP_DEF: Final[str] = "ComputationDefinitionAccount"
SEED_MXE: Final[str] = "MXEAccount"

# ==============================================================================
# CIRCUITS
# ==============================================================================

CIRCUIT_INIT_POOL: Final[str] = "init_pool_state"
CIRCUIT_DEPOSIT: Final[str] = "process_deposit"
CIRCUIT_CHECK_INVESTMENT: Final[str] = "check_investment_needed"
CIRCUIT_RECORD_INVESTMENT: Final[str] = "record_investment"
CIRCUIT_RECORD_YIELD: Final[str] = "record_yield"
CIRCUIT_AUTHORIZE_WITHDRAWAL: Final[str] = "authorize_withdrawal"
CIRCUIT_PROCESS_WITHDRAWAL: Final[str] = "process_withdrawal"

# sha256(name)[:4] as little-endian u32
KNOWN_CIRCUIT_OFFSETS: Final[Dict[str, int]] = {
    CIRCUIT_INIT_POOL: 0xFA38B400,
    CIRCUIT_DEPOSIT: 0x3F0101EB,
    CIRCUIT_CHECK_INVESTMENT: 0x914FD06B,
    CIRCUIT_RECORD_INVESTMENT: 0x543AE6BF,
    CIRCUIT_RECORD_YIELD: 0x9BCEB826,
    CIRCUIT_AUTHORIZE_WITHDRAWAL: 0x1448933B,
    CIRCUIT_PROCESS_WITHDRAWAL: 0xE6BEABA6,
}

# ==============================================================================
# DEVNET DEPLOYMENT
# ==============================================================================

DEFAULT_PROGRAM_ID: Final[str] = "JDCZqN5FRigifouF9PsNMQRt3MxdsVTqYcbaHxS9Y3D3"
DEFAULT_ARCIUM_PROGRAM_ID: Final[str] = "Arcj82pX7HxYKLR92qvgZUAd7vGS1k4hQvAFcPATFdEQ"
DEFAULT_FEE_POOL_ACCOUNT: Final[str] = "G2sRWJvi3xoyh5k2gY49eG9L8YhAEWQPtNb1zb1GXTtC"
DEFAULT_CLOCK_ACCOUNT: Final[str] = "7EbMUTLo5DjdzbN7s8BXeZwXzEwNQb1hScfRvWg8a6ot"
DEFAULT_MXE_ACCOUNT: Final[str] = "HbxVudVx6za9RQsxuKPanGMJS6KYXigGXTwbMeiotw7f"
DEFAULT_CLUSTER_OFFSET: Final[int] = 456

# Deployed circuit definition accounts:
# "ComputationDefinitionAccount" || program id || u32LE(offset) under the network program
KNOWN_COMP_DEF_ACCOUNTS: Final[Dict[str, str]] = {
    CIRCUIT_INIT_POOL: "78g6xnwaZsw14MXKCG7rNaKu5zePxqjcXU1TpLuhCL7Z",
    CIRCUIT_DEPOSIT: "73DERH4q8viKTMWMAqnNrak3zGK9tdAAd6JyqPwrqNS6",
    CIRCUIT_CHECK_INVESTMENT: "AZ8uobmHdNrTGfjQnhNU4Q8oQP8EysUMbRZp9PSQdMfw",
    CIRCUIT_RECORD_INVESTMENT: "951gctFEZ4vvkzKyV7ieg7H1mk2gCZxe8Y5k7m6vaGjA",
    CIRCUIT_RECORD_YIELD: "CjdFt9paYimiVSe3F4QdrubGtPA3P46QsG87ys2fPGQe",
    CIRCUIT_AUTHORIZE_WITHDRAWAL: "23UGJLXTDew9QGPCjhSBnfuLCWT5x6cKNmFyv9MhrKYh",
    CIRCUIT_PROCESS_WITHDRAWAL: "BkXBMd73CUAzZZ9KguGa7qL9HYqf5PTzzwaaCbj76wvq",
}
DEFAULT_RPC_URL: Final[str] = "https://api.devnet.solana.com"

SYSTEM_PROGRAM_ID: Final[str] = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID: Final[str] = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID: Final[str] = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# Anchor custom error codes of the pool program (6000 + variant index)
PROGRAM_ERRORS: Final[Dict[int, str]] = {
    6000: "AbortedComputation",
    6001: "ClusterNotSet",
    6002: "WithdrawalUnauthorized",
    6003: "NoPendingInvestment",
    6004: "Unauthorized",
}

# ==============================================================================
# CLIENT DEFAULTS
# ==============================================================================

DEFAULT_COMMITMENT: Final[str] = "confirmed"
DEFAULT_RPC_TIMEOUT_SEC: Final[float] = 30.0
DEFAULT_RETRY_ATTEMPTS: Final[int] = 5
DEFAULT_RETRY_BASE_DELAY_SEC: Final[float] = 1.0
DEFAULT_RETRY_MAX_DELAY_SEC: Final[float] = 16.0
DEFAULT_CONFIRM_INTERVAL_SEC: Final[float] = 1.0
DEFAULT_CALLBACK_INTERVAL_SEC: Final[float] = 2.0
DEFAULT_CALLBACK_TIMEOUT_SEC: Final[float] = 90.0
AMOUNT_DECIMALS: Final[int] = 6                 # USDC
