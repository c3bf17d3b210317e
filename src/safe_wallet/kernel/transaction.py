"""Transaction model and binary codec.

Provides the kernel transaction types and a deterministic codec:
- InputRef / Output / WithdrawalData / InputSignature data classes
- RawTransaction, immutable once assembled
- encode / decode to raw bytes, payload hashing
- ``Codec`` protocol so another wire codec can be plugged in

Layout (big-endian): magic ``77 77``, u16 version, 32-byte asset, inputs,
outputs, extra, signatures. An absent signature section is ``ff ff``.
"""

from __future__ import annotations

import dataclasses
import struct
from dataclasses import dataclass
from io import BytesIO
from typing import Protocol

from safe_wallet.kernel.keys import KEY_SIZE, SIGNATURE_SIZE
from safe_wallet.kernel.script import OutputType
from safe_wallet.utils.crypto import sha3_256

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAGIC = b"\x77\x77"
TX_VERSION = 5
EXTRA_SIZE_LIMIT = 512
ZERO_KEY = b"\x00" * KEY_SIZE

_NO_SIGNATURES = 0xFFFF


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InputRef:
    """Reference to an unspent output: source transaction hash + index."""

    hash: bytes
    index: int


@dataclass(frozen=True)
class WithdrawalData:
    """External destination of a withdrawal output."""

    address: str
    tag: str = ""


@dataclass(frozen=True)
class Output:
    """A transaction output.

    Attributes:
        type: Output type byte.
        amount: Amount in 10^-8 units.
        keys: One-time public keys, one per address member.
        mask: Public mask key ``r*G`` of the ghost keys.
        script: Spending policy script.
        withdrawal: Destination of a withdrawal output.
    """

    type: OutputType
    amount: int
    keys: tuple[bytes, ...] = ()
    mask: bytes = ZERO_KEY
    script: bytes = b""
    withdrawal: WithdrawalData | None = None


@dataclass(frozen=True)
class InputSignature:
    """Signature authorising one input, recorded in a signer slot."""

    signature: bytes
    slot: int = 0


@dataclass(frozen=True)
class RawTransaction:
    """A kernel transaction.

    ``signatures`` is ``None`` until signed; afterwards it holds exactly one
    entry per input, in input order.
    """

    asset: bytes
    inputs: tuple[InputRef, ...] = ()
    outputs: tuple[Output, ...] = ()
    extra: bytes = b""
    signatures: tuple[InputSignature, ...] | None = None
    version: int = TX_VERSION

    @property
    def is_signed(self) -> bool:
        return self.signatures is not None

    def unsigned(self) -> RawTransaction:
        """Return this transaction without signatures."""
        return dataclasses.replace(self, signatures=None)

    def with_signatures(self, signatures: tuple[InputSignature, ...]) -> RawTransaction:
        """Return a copy carrying *signatures*, one per input.

        Raises:
            ValueError: If the signature count differs from the input count.
        """
        if len(signatures) != len(self.inputs):
            msg = f"Signature count {len(signatures)} does not match inputs {len(self.inputs)}"
            raise ValueError(msg)
        return dataclasses.replace(self, signatures=tuple(signatures))

    def marshal(self) -> bytes:
        return encode_transaction(self)

    def payload_hash(self) -> bytes:
        return payload_hash(self)


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------


def _read_exact(stream: BytesIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        msg = f"Unexpected end of stream reading {what}"
        raise ValueError(msg)
    return data


def _read_u16(stream: BytesIO, what: str) -> int:
    return struct.unpack(">H", _read_exact(stream, 2, what))[0]


def _write_u16(n: int, what: str) -> bytes:
    if not 0 <= n <= 0xFFFF:
        msg = f"{what} out of range: {n}"
        raise ValueError(msg)
    return struct.pack(">H", n)


def _write_key(key: bytes, what: str) -> bytes:
    if len(key) != KEY_SIZE:
        msg = f"Invalid {what} length: {len(key)}"
        raise ValueError(msg)
    return key


def _write_bytes(data: bytes) -> bytes:
    if len(data) > 0xFFFF:
        msg = f"Field too long: {len(data)} bytes"
        raise ValueError(msg)
    return struct.pack(">H", len(data)) + data


def _read_bytes(stream: BytesIO, what: str) -> bytes:
    return _read_exact(stream, _read_u16(stream, what), what)


def _encode_integer(n: int) -> bytes:
    if n < 0:
        msg = f"Negative amount: {n}"
        raise ValueError(msg)
    return _write_bytes(n.to_bytes((n.bit_length() + 7) // 8, "big"))


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _encode_output(out: Output) -> bytes:
    result = bytes([out.type])
    result += _encode_integer(out.amount)
    result += _write_u16(len(out.keys), "Key count")
    for key in out.keys:
        result += _write_key(key, "key")
    result += _write_key(out.mask, "mask")
    result += _write_bytes(out.script)
    if out.type == OutputType.WITHDRAWAL_SUBMIT:
        withdrawal = out.withdrawal or WithdrawalData(address="")
        result += _write_bytes(withdrawal.address.encode("utf-8"))
        result += _write_bytes(withdrawal.tag.encode("utf-8"))
    return result


def encode_transaction(tx: RawTransaction) -> bytes:
    """Serialize *tx* to raw bytes, signatures included when present."""
    if len(tx.extra) > EXTRA_SIZE_LIMIT:
        msg = f"Extra too long: {len(tx.extra)} bytes"
        raise ValueError(msg)
    result = MAGIC + _write_u16(tx.version, "Version") + _write_key(tx.asset, "asset")
    result += _write_u16(len(tx.inputs), "Input count")
    for inp in tx.inputs:
        result += _write_key(inp.hash, "input hash") + _write_u16(inp.index, "Input index")
    result += _write_u16(len(tx.outputs), "Output count")
    for out in tx.outputs:
        result += _encode_output(out)
    result += _write_bytes(tx.extra)
    if tx.signatures is None:
        result += struct.pack(">H", _NO_SIGNATURES)
    else:
        result += _write_u16(len(tx.signatures), "Signature count")
        for sig in tx.signatures:
            if len(sig.signature) != SIGNATURE_SIZE:
                msg = f"Invalid signature length: {len(sig.signature)}"
                raise ValueError(msg)
            # One populated slot per input
            result += struct.pack(">H", 1) + _write_u16(sig.slot, "Signature slot") + sig.signature
    return result


def payload_hash(tx: RawTransaction) -> bytes:
    """Hash of the unsigned payload; this is what every input signs."""
    return sha3_256(encode_transaction(tx.unsigned()))


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _decode_output(stream: BytesIO) -> Output:
    type_byte = _read_exact(stream, 1, "output type")[0]
    try:
        out_type = OutputType(type_byte)
    except ValueError as exc:
        msg = f"Unknown output type {type_byte:#x}"
        raise ValueError(msg) from exc
    amount = int.from_bytes(_read_bytes(stream, "amount"), "big")
    n_keys = _read_u16(stream, "key count")
    keys = tuple(_read_exact(stream, KEY_SIZE, "key") for _ in range(n_keys))
    mask = _read_exact(stream, KEY_SIZE, "mask")
    script = _read_bytes(stream, "script")
    withdrawal = None
    if out_type == OutputType.WITHDRAWAL_SUBMIT:
        address = _read_bytes(stream, "withdrawal address").decode("utf-8")
        tag = _read_bytes(stream, "withdrawal tag").decode("utf-8")
        withdrawal = WithdrawalData(address=address, tag=tag)
    return Output(
        type=out_type,
        amount=amount,
        keys=keys,
        mask=mask,
        script=script,
        withdrawal=withdrawal,
    )


def decode_transaction(data: bytes) -> RawTransaction:
    """Deserialize raw bytes produced by :func:`encode_transaction`.

    Raises:
        ValueError: On malformed or trailing data.
    """
    stream = BytesIO(data)
    if _read_exact(stream, 2, "magic") != MAGIC:
        msg = "Invalid transaction magic"
        raise ValueError(msg)
    version = _read_u16(stream, "version")
    asset = _read_exact(stream, KEY_SIZE, "asset")
    n_inputs = _read_u16(stream, "input count")
    inputs = []
    for _ in range(n_inputs):
        h = _read_exact(stream, KEY_SIZE, "input hash")
        inputs.append(InputRef(hash=h, index=_read_u16(stream, "input index")))
    n_outputs = _read_u16(stream, "output count")
    outputs = tuple(_decode_output(stream) for _ in range(n_outputs))
    extra = _read_bytes(stream, "extra")
    n_sigs = _read_u16(stream, "signature count")
    signatures = None
    if n_sigs != _NO_SIGNATURES:
        sigs = []
        for _ in range(n_sigs):
            count, slot = struct.unpack(">HH", _read_exact(stream, 4, "signature slot"))
            if count != 1:
                msg = f"Unsupported signature count {count} per input"
                raise ValueError(msg)
            sigs.append(InputSignature(_read_exact(stream, SIGNATURE_SIZE, "signature"), slot))
        signatures = tuple(sigs)
    if stream.read(1):
        msg = "Trailing data after transaction"
        raise ValueError(msg)
    return RawTransaction(
        asset=asset,
        inputs=tuple(inputs),
        outputs=outputs,
        extra=extra,
        signatures=signatures,
        version=version,
    )


# ---------------------------------------------------------------------------
# Codec protocol
# ---------------------------------------------------------------------------


class Codec(Protocol):
    """Wire codec for raw transactions."""

    def marshal(self, tx: RawTransaction) -> bytes: ...

    def payload_hash(self, tx: RawTransaction) -> bytes: ...


class KernelCodec:
    """Default codec backed by :func:`encode_transaction`."""

    def marshal(self, tx: RawTransaction) -> bytes:
        return encode_transaction(tx)

    def payload_hash(self, tx: RawTransaction) -> bytes:
        return payload_hash(tx)
