"""
Ghost Pool Transactions

Legacy ledger transaction format:

    Transaction = compact(n) || signature[n] || Message
    Message     = header(3) || compact(k) || key[k] || blockhash(32) ||
                  compact(m) || CompiledInstruction[m]
    CompiledInstruction = program_index u8 || compact(a) || index[a] ||
                          compact(d) || data[d]

Keys are ordered: writable signers (fee payer first), read-only signers,
writable non-signers, read-only non-signers.
"""

from __future__ import annotations
import base64
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import base58

from ghostpool.constants import BLOCKHASH_SIZE, SIGNATURE_SIZE, U8_MAX
from ghostpool.core.serialization import (
    deserialize_compact_u16,
    serialize_compact_u16,
    serialize_u8,
)
from ghostpool.core.types import Pubkey
from ghostpool.errors import InternalError, ValidationError, Stage
from ghostpool.protocol.instructions import Instruction


@dataclass(frozen=True, slots=True)
class MessageHeader:
    num_required_signatures: int
    num_readonly_signed: int
    num_readonly_unsigned: int

    def serialize(self) -> bytes:
        return bytes([
            self.num_required_signatures,
            self.num_readonly_signed,
            self.num_readonly_unsigned,
        ])


@dataclass(frozen=True)
class Message:
    """Compiled message: the bytes every signer signs."""
    header: MessageHeader
    account_keys: Tuple[Pubkey, ...]
    recent_blockhash: bytes
    instructions: Tuple[Tuple[int, Tuple[int, ...], bytes], ...]

    @property
    def signers(self) -> Tuple[Pubkey, ...]:
        return self.account_keys[:self.header.num_required_signatures]

    def serialize(self) -> bytes:
        parts = [
            self.header.serialize(),
            serialize_compact_u16(len(self.account_keys)),
            b"".join(key.data for key in self.account_keys),
            self.recent_blockhash,
            serialize_compact_u16(len(self.instructions)),
        ]
        for program_index, indexes, data in self.instructions:
            parts.append(serialize_u8(program_index))
            parts.append(serialize_compact_u16(len(indexes)))
            parts.append(bytes(indexes))
            parts.append(serialize_compact_u16(len(data)))
            parts.append(data)
        return b"".join(parts)


def compile_message(
    instructions: Sequence[Instruction],
    payer: Pubkey,
    recent_blockhash: str,
) -> Message:
    """
    Compile instructions into a legacy message.

    Args:
        instructions: Instructions in execution order
        payer: Fee payer, always the first signer
        recent_blockhash: Base58 blockhash from getLatestBlockhash

    Returns:
        Compiled Message
    """
    if not instructions:
        raise ValidationError("instructions", "at least one instruction required", Stage.BUILD)
    blockhash = base58.b58decode(recent_blockhash)
    if len(blockhash) != BLOCKHASH_SIZE:
        raise ValidationError("recent_blockhash", f"must decode to {BLOCKHASH_SIZE} bytes", Stage.BUILD)

    # key -> [is_signer, is_writable], first-seen order kept
    flags: Dict[Pubkey, List[bool]] = {payer: [True, True]}
    for ix in instructions:
        for meta in ix.accounts:
            entry = flags.setdefault(meta.pubkey, [False, False])
            entry[0] = entry[0] or meta.is_signer
            entry[1] = entry[1] or meta.is_writable
        flags.setdefault(ix.program_id, [False, False])

    def bucket(signer: bool, writable: bool) -> List[Pubkey]:
        return [k for k, (s, w) in flags.items() if s == signer and w == writable]

    writable_signed = bucket(True, True)
    readonly_signed = bucket(True, False)
    writable_unsigned = bucket(False, True)
    readonly_unsigned = bucket(False, False)
    keys = writable_signed + readonly_signed + writable_unsigned + readonly_unsigned
    if len(keys) > U8_MAX:
        raise ValidationError("accounts", f"too many accounts: {len(keys)}", Stage.BUILD)

    index = {key: i for i, key in enumerate(keys)}
    compiled = tuple(
        (
            index[ix.program_id],
            tuple(index[meta.pubkey] for meta in ix.accounts),
            ix.data,
        )
        for ix in instructions
    )

    header = MessageHeader(
        num_required_signatures=len(writable_signed) + len(readonly_signed),
        num_readonly_signed=len(readonly_signed),
        num_readonly_unsigned=len(readonly_unsigned),
    )
    return Message(header, tuple(keys), blockhash, compiled)


@dataclass
class Transaction:
    """Message plus one signature slot per required signer."""
    message: Message
    signatures: List[bytes] = field(default_factory=list)

    def __post_init__(self):
        if not self.signatures:
            self.signatures = [bytes(SIGNATURE_SIZE)] * self.message.header.num_required_signatures

    def message_bytes(self) -> bytes:
        return self.message.serialize()

    def add_signature(self, signer: Pubkey, signature: bytes) -> None:
        """Place a signature in the slot of `signer`."""
        if len(signature) != SIGNATURE_SIZE:
            raise ValidationError("signature", f"must be {SIGNATURE_SIZE} bytes", Stage.SUBMIT)
        try:
            slot = self.message.signers.index(signer)
        except ValueError:
            raise InternalError(f"{signer} is not a required signer") from None
        self.signatures[slot] = signature

    @property
    def is_signed(self) -> bool:
        return all(any(sig) for sig in self.signatures)

    @property
    def signature(self) -> str:
        """Transaction id: base58 of the fee payer's signature."""
        return base58.b58encode(self.signatures[0]).decode("ascii")

    def serialize(self) -> bytes:
        return b"".join([
            serialize_compact_u16(len(self.signatures)),
            *self.signatures,
            self.message_bytes(),
        ])

    def to_base64(self) -> str:
        return base64.b64encode(self.serialize()).decode("ascii")


def split_transaction(raw: bytes) -> Tuple[List[bytes], bytes]:
    """Signatures and message bytes of a serialized transaction."""
    count, offset = deserialize_compact_u16(raw, 0)
    signatures = [
        raw[offset + i * SIGNATURE_SIZE:offset + (i + 1) * SIGNATURE_SIZE] for i in range(count)
    ]
    return signatures, raw[offset + count * SIGNATURE_SIZE:]
