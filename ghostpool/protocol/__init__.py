"""
Ghost Pool Protocol Components
"""

from ghostpool.protocol.credential import CredentialCipher
from ghostpool.protocol.addresses import AddressDeriver

__all__ = [
    "CredentialCipher",
    "AddressDeriver",
]
