"""
Ghost Pool Client
Password-authenticated deposits and unlinkable withdrawals

Client-side protocol core: credential encryption, address derivation,
pool record codec and the request/confirmation state machine.
"""

__version__ = "0.3.0"
__author__ = "Ghost Pool"

from ghostpool.errors import GhostPoolError, ErrorCode, Stage
from ghostpool.config import ProtocolConfig, ClientConfig, SimulationPolicy
from ghostpool.core.types import Pubkey, PoolState, EncryptedCredential, RequestKind

__all__ = [
    "GhostPoolError",
    "ErrorCode",
    "Stage",
    "ProtocolConfig",
    "ClientConfig",
    "SimulationPolicy",
    "Pubkey",
    "PoolState",
    "EncryptedCredential",
    "RequestKind",
    "__version__",
]
