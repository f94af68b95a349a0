"""
Ghost Pool Rescue Cipher

Field-element cipher over GF(2^255 - 19) compatible with the confidential
computation network's RescueCipher.

- Rescue-Prime hash (width 12, capacity 5) derives the cipher key from the
  X25519 shared secret: key = H(1, secret, 5)
- Rescue block cipher (width 5) with a key schedule run through the same
  permutation as the data
- Counter mode: block i of the keystream is E_K(nonce, i, 0, 0, 0);
  ciphertext element = plaintext + keystream element (mod p)

Both round-constant sets come from SHAKE256. The cipher constants follow an
affine recurrence seeded by "encrypt everything, compute anything"; the hash
constants are drawn directly under the Rescue-XLIX domain string.

Parameters are built once by initialize_cipher() at process start. Nothing in
this module retries or substitutes a weaker construction if that fails.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from Crypto.Hash import SHAKE256

from ghostpool.constants import CIPHERTEXT_BLOCK_SIZE, LITTLE_ENDIAN
from ghostpool.errors import CryptoError

logger = logging.getLogger(__name__)

# ==============================================================================
# PARAMETERS
# ==============================================================================

FIELD_PRIME = 2**255 - 19
STATE_WIDTH = 5
SBOX_ALPHA = 5

CIPHER_SECURITY_LEVEL = 128
CIPHER_SEED = b"encrypt everything, compute anything"

HASH_WIDTH = 12
HASH_CAPACITY = 5
HASH_DIGEST_LENGTH = 5
HASH_SECURITY_LEVEL = 256

# Key derivation input is (counter, shared secret, output length)
KDF_COUNTER = 1

_ALPHA_CANDIDATES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47)

Vector = Tuple[int, ...]
Matrix = Tuple[Vector, ...]


class _ElementStream:
    """Sequential field elements read from one SHAKE256 stream."""

    def __init__(self, seed: bytes, prime: int):
        self._shake = SHAKE256.new(seed)
        self._prime = prime
        # ceil(bits / 8) plus 16 bytes so the reduction is close to uniform
        self._size = (prime.bit_length() + 7) // 8 + 16

    def element(self) -> int:
        return int.from_bytes(self._shake.read(self._size), LITTLE_ENDIAN) % self._prime

    def vector(self, length: int) -> Vector:
        return tuple(self.element() for _ in range(length))


def _cauchy_mds(width: int, prime: int) -> Matrix:
    return tuple(
        tuple(pow(i + j, -1, prime) for j in range(1, width + 1))
        for i in range(1, width + 1)
    )


def _determinant(matrix: Sequence[Sequence[int]], prime: int) -> int:
    rows = [list(row) for row in matrix]
    size = len(rows)
    det = 1
    for col in range(size):
        pivot = next((r for r in range(col, size) if rows[r][col]), None)
        if pivot is None:
            return 0
        if pivot != col:
            rows[col], rows[pivot] = rows[pivot], rows[col]
            det = -det
        det = det * rows[col][col] % prime
        inverse = pow(rows[col][col], -1, prime)
        for r in range(col + 1, size):
            factor = rows[r][col] * inverse % prime
            for k in range(col, size):
                rows[r][k] = (rows[r][k] - factor * rows[col][k]) % prime
    return det % prime


def _mat_vec(matrix: Matrix, vector: Sequence[int], prime: int) -> List[int]:
    return [sum(m * v for m, v in zip(row, vector)) % prime for row in matrix]


def _add(a: Sequence[int], b: Sequence[int], prime: int) -> List[int]:
    return [(x + y) % prime for x, y in zip(a, b)]


def _select_alpha(prime: int) -> int:
    for candidate in _ALPHA_CANDIDATES:
        if math.gcd(candidate, prime - 1) == 1:
            return candidate
    raise CryptoError(f"No S-box exponent found for GF({prime})")


def _cipher_rounds(prime: int, width: int, alpha: int) -> int:
    level = CIPHER_SECURITY_LEVEL
    l0 = math.ceil(2 * level / ((width + 1) * (math.log2(prime) - math.log2(alpha - 1))))
    if alpha == 3:
        l1 = math.ceil((level + 2) / (4 * width))
    else:
        l1 = math.ceil((level + 3) / (5.5 * width))
    return 2 * max(l0, l1, 5)


def _hash_rounds(width: int, rate: int, alpha: int) -> int:
    # Groebner-basis attack bound
    target = 2**HASH_SECURITY_LEVEL

    def dcon(n: int) -> int:
        return math.floor(0.5 * (alpha - 1) * width * (n - 1) + 2)

    def v(n: int) -> int:
        return width * (n - 1) + rate

    l1 = 1
    while math.comb(v(l1) + dcon(l1), v(l1)) ** 2 <= target and l1 <= 23:
        l1 += 1
    return math.ceil(1.5 * max(5, l1))


@dataclass(frozen=True)
class RescueDesc:
    """
    One Rescue instance: field, width, S-box, MDS and round constants.

    round_constants holds 2 * rounds + 1 vectors; the first is added before
    the first round.
    """
    prime: int
    width: int
    alpha: int
    alpha_inv: int
    rounds: int
    mds: Matrix
    round_constants: Tuple[Vector, ...]
    # Exponent applied on even steps; odd steps use the other one
    inverse_first: bool


@dataclass(frozen=True)
class RescueParameters:
    """Complete, validated parameter set for the hash and the block cipher."""
    prime: int
    alpha: int
    alpha_inv: int
    cipher: RescueDesc
    hash: RescueDesc
    capacity: int
    digest_length: int

    @property
    def rate(self) -> int:
        return self.hash.width - self.capacity

    @classmethod
    def generate(
        cls,
        prime: int = FIELD_PRIME,
        alpha: Optional[int] = None,
        width: int = STATE_WIDTH,
        hash_width: int = HASH_WIDTH,
        capacity: int = HASH_CAPACITY,
        digest_length: int = HASH_DIGEST_LENGTH,
    ) -> RescueParameters:
        """
        Derive every constant from the parameter description.

        Raises:
            CryptoError: If the description does not give a valid permutation
        """
        if width < 2:
            raise CryptoError(f"Rescue cipher width must be at least 2, got {width}")
        if not 0 < capacity < hash_width or digest_length > hash_width:
            raise CryptoError(
                f"Invalid Rescue hash shape: width={hash_width}, capacity={capacity}"
            )
        if alpha is None:
            alpha = _select_alpha(prime)
        if alpha < 3 or math.gcd(alpha, prime - 1) != 1:
            raise CryptoError(f"S-box exponent {alpha} is not a permutation of GF({prime})")

        alpha_inv = pow(alpha, -1, prime - 1)
        if pow(pow(3, alpha, prime), alpha_inv, prime) != 3:
            raise CryptoError("Rescue inverse S-box self-check failed")

        cipher_rounds = _cipher_rounds(prime, width, alpha)
        hash_rounds = _hash_rounds(hash_width, hash_width - capacity, alpha)

        return cls(
            prime=prime,
            alpha=alpha,
            alpha_inv=alpha_inv,
            cipher=RescueDesc(
                prime=prime,
                width=width,
                alpha=alpha,
                alpha_inv=alpha_inv,
                rounds=cipher_rounds,
                mds=_cauchy_mds(width, prime),
                round_constants=_cipher_constants(prime, width, cipher_rounds),
                inverse_first=True,
            ),
            hash=RescueDesc(
                prime=prime,
                width=hash_width,
                alpha=alpha,
                alpha_inv=alpha_inv,
                rounds=hash_rounds,
                mds=_cauchy_mds(hash_width, prime),
                round_constants=_hash_constants(prime, hash_width, capacity, hash_rounds),
                inverse_first=False,
            ),
            capacity=capacity,
            digest_length=digest_length,
        )


def _cipher_constants(prime: int, width: int, rounds: int) -> Tuple[Vector, ...]:
    stream = _ElementStream(CIPHER_SEED, prime)

    def sample_matrix() -> Matrix:
        return tuple(stream.vector(width) for _ in range(width))

    matrix = sample_matrix()
    while _determinant(matrix, prime) == 0:
        matrix = sample_matrix()
    constants = [stream.vector(width)]
    affine = stream.vector(width)
    for r in range(2 * rounds):
        constants.append(tuple(_add(_mat_vec(matrix, constants[r], prime), affine, prime)))
    return tuple(constants)


def _hash_constants(prime: int, width: int, capacity: int, rounds: int) -> Tuple[Vector, ...]:
    seed = f"Rescue-XLIX({prime},{width},{capacity},{HASH_SECURITY_LEVEL})".encode("ascii")
    stream = _ElementStream(seed, prime)
    return ((0,) * width,) + tuple(stream.vector(width) for _ in range(2 * rounds))


_PARAMETERS: Optional[RescueParameters] = None


def initialize_cipher(**overrides) -> RescueParameters:
    """
    One-time startup initialization of the cipher primitive.

    Calling it again returns the already built parameters unless overrides
    are passed, which rebuilds them.

    Raises:
        CryptoError: If the parameters cannot be built
    """
    global _PARAMETERS
    if _PARAMETERS is not None and not overrides:
        return _PARAMETERS
    try:
        params = RescueParameters.generate(**overrides)
    except CryptoError:
        logger.error("Rescue cipher initialization failed")
        raise
    except (ValueError, TypeError) as exc:
        logger.error(f"Rescue cipher initialization failed: {exc}")
        raise CryptoError(f"Rescue cipher initialization failed: {exc}") from exc
    _PARAMETERS = params
    logger.info(
        f"Rescue cipher initialized (cipher rounds={params.cipher.rounds}, "
        f"hash rounds={params.hash.rounds}, alpha={params.alpha})"
    )
    return params


def get_parameters() -> RescueParameters:
    """Return the initialized parameters; never initializes on demand."""
    if _PARAMETERS is None:
        raise CryptoError("Rescue cipher used before initialize_cipher()")
    return _PARAMETERS


# ==============================================================================
# PERMUTATION
# ==============================================================================

def _permutation_states(
    desc: RescueDesc, round_keys: Sequence[Sequence[int]], state: Sequence[int]
) -> List[List[int]]:
    p = desc.prime
    even, odd = (desc.alpha_inv, desc.alpha) if desc.inverse_first else (desc.alpha, desc.alpha_inv)
    state = _add(state, round_keys[0], p)
    states = [state]
    for step in range(len(round_keys) - 1):
        exponent = even if step % 2 == 0 else odd
        state = _mat_vec(desc.mds, [pow(s, exponent, p) for s in state], p)
        state = _add(state, round_keys[step + 1], p)
        states.append(state)
    return states


def rescue_permutation(
    desc: RescueDesc, state: Sequence[int], round_keys: Optional[Sequence[Sequence[int]]] = None
) -> List[int]:
    """Rescue permutation of one state; round_keys default to the round constants."""
    if len(state) != desc.width:
        raise CryptoError(f"Rescue state must hold {desc.width} elements")
    if round_keys is None:
        round_keys = desc.round_constants
    return _permutation_states(desc, round_keys, state)[-1]


def rescue_prime_hash(params: RescueParameters, elements: Sequence[int]) -> List[int]:
    """
    Rescue-Prime sponge over field elements.

    Input is padded with a single 1 followed by zeros to a multiple of the
    rate. Returns digest_length elements.
    """
    desc = params.hash
    p = desc.prime
    rate = params.rate
    padded = [e % p for e in elements] + [1]
    while len(padded) % rate:
        padded.append(0)

    state = [0] * desc.width
    for start in range(0, len(padded), rate):
        for i, value in enumerate(padded[start:start + rate]):
            state[i] = (state[i] + value) % p
        state = rescue_permutation(desc, state)
    return state[:params.digest_length]


# ==============================================================================
# BLOCK CIPHER
# ==============================================================================

class RescueCipher:
    """
    Rescue block cipher in counter mode, keyed by an X25519 shared secret.

    Encryption only. Decryption happens inside the network.
    """

    def __init__(self, shared_secret: bytes, params: Optional[RescueParameters] = None):
        if len(shared_secret) != 32:
            raise CryptoError(f"Shared secret must be 32 bytes, got {len(shared_secret)}")
        self.params = params or get_parameters()
        self.key = self.derive_key(shared_secret, self.params)
        self._round_keys = _permutation_states(
            self.params.cipher, self.params.cipher.round_constants, self.key
        )

    @staticmethod
    def derive_key(shared_secret: bytes, params: RescueParameters) -> List[int]:
        """Cipher key: H(counter, secret, key length) with the Rescue-Prime hash."""
        secret = int.from_bytes(shared_secret, LITTLE_ENDIAN) % params.prime
        return rescue_prime_hash(params, [KDF_COUNTER, secret, params.cipher.width])

    def encrypt_block(self, block: Sequence[int]) -> List[int]:
        return rescue_permutation(self.params.cipher, block, self._round_keys)

    def keystream(self, nonce: int, length: int) -> List[int]:
        width = self.params.cipher.width
        stream: List[int] = []
        counter = 0
        while len(stream) < length:
            stream.extend(self.encrypt_block([nonce, counter] + [0] * (width - 2)))
            counter += 1
        return stream[:length]

    def encrypt(self, plaintext: Sequence[int], nonce: int) -> List[bytes]:
        """
        Encrypt field elements under a nonce.

        Args:
            plaintext: Field elements, each in [0, p)
            nonce: 128-bit nonce, fresh per call

        Returns:
            One 32-byte little-endian ciphertext per element
        """
        p = self.params.prime
        for value in plaintext:
            if not 0 <= value < p:
                raise CryptoError("Plaintext element outside the field")
        stream = self.keystream(nonce, len(plaintext))
        return [
            ((value + ks) % p).to_bytes(CIPHERTEXT_BLOCK_SIZE, LITTLE_ENDIAN)
            for value, ks in zip(plaintext, stream)
        ]
