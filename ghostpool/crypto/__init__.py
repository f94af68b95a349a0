"""
Ghost Pool Cryptographic Primitives
"""

from ghostpool.crypto.hash import sha256, hash_secret, comp_def_offset
from ghostpool.crypto.pda import find_program_address, create_program_address, is_on_curve
from ghostpool.crypto.rescue import initialize_cipher, RescueCipher, RescueDesc, RescueParameters

__all__ = [
    # Hash functions
    "sha256",
    "hash_secret",
    "comp_def_offset",
    # Program-derived addresses
    "find_program_address",
    "create_program_address",
    "is_on_curve",
    # Rescue cipher
    "initialize_cipher",
    "RescueCipher",
    "RescueDesc",
    "RescueParameters",
]
