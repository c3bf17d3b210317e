"""Tests for the transaction model, codec and threshold scripts."""

from __future__ import annotations

import hashlib

import pytest

from safe_wallet.kernel.script import OutputType, parse_threshold_script, threshold_script
from safe_wallet.kernel.transaction import (
    MAGIC,
    InputRef,
    InputSignature,
    KernelCodec,
    Output,
    RawTransaction,
    WithdrawalData,
    decode_transaction,
    encode_transaction,
    payload_hash,
)

_ASSET = bytes.fromhex("ab" * 32)


def _tx(**overrides) -> RawTransaction:
    defaults = {
        "asset": _ASSET,
        "inputs": (InputRef(b"\x01" * 32, 0), InputRef(b"\x02" * 32, 5)),
        "outputs": (
            Output(
                type=OutputType.SCRIPT,
                amount=150_000_000,
                keys=(b"\x03" * 32, b"\x04" * 32),
                mask=b"\x05" * 32,
                script=threshold_script(2),
            ),
            Output(
                type=OutputType.WITHDRAWAL_SUBMIT,
                amount=1,
                withdrawal=WithdrawalData(address="bc1qexample", tag="memo-tag"),
            ),
        ),
        "extra": b"hello",
    }
    defaults.update(overrides)
    return RawTransaction(**defaults)


class TestThresholdScript:
    def test_bytes(self) -> None:
        assert threshold_script(1) == b"\xff\xfe\x01"

    def test_parse(self) -> None:
        assert parse_threshold_script(threshold_script(7)) == 7

    def test_parse_rejects_other(self) -> None:
        with pytest.raises(ValueError, match="Not a threshold script"):
            parse_threshold_script(b"\x00\x01")

    @pytest.mark.parametrize("threshold", [0, 256])
    def test_invalid_threshold(self, threshold: int) -> None:
        with pytest.raises(ValueError, match="threshold"):
            threshold_script(threshold)


class TestEncoding:
    def test_starts_with_magic_and_version(self) -> None:
        raw = encode_transaction(_tx())
        assert raw[:2] == MAGIC
        assert raw[2:4] == b"\x00\x05"
        assert raw[4:36] == _ASSET

    def test_decode_restores_structure(self) -> None:
        tx = _tx()
        assert decode_transaction(encode_transaction(tx)) == tx

    def test_decode_signed(self) -> None:
        tx = _tx().with_signatures(
            (InputSignature(b"\x11" * 64), InputSignature(b"\x22" * 64))
        )
        decoded = decode_transaction(tx.marshal())
        assert decoded.signatures == tx.signatures
        assert decoded.is_signed

    def test_extra_limit_enforced(self) -> None:
        with pytest.raises(ValueError, match="Extra too long"):
            encode_transaction(_tx(extra=b"x" * 513))

    def test_truncated(self) -> None:
        raw = encode_transaction(_tx())
        with pytest.raises(ValueError, match="end of stream"):
            decode_transaction(raw[:-3])

    def test_trailing_data(self) -> None:
        with pytest.raises(ValueError, match="Trailing"):
            decode_transaction(encode_transaction(_tx()) + b"\x00")

    def test_bad_magic(self) -> None:
        with pytest.raises(ValueError, match="magic"):
            decode_transaction(b"\x00\x00" + encode_transaction(_tx())[2:])

    @pytest.mark.parametrize("index", [-1, 0x10000])
    def test_input_index_out_of_range(self, index: int) -> None:
        with pytest.raises(ValueError, match="Input index out of range"):
            encode_transaction(_tx(inputs=(InputRef(b"\x01" * 32, index),)))

    def test_largest_input_index(self) -> None:
        tx = _tx(inputs=(InputRef(b"\x01" * 32, 0xFFFF),))
        assert decode_transaction(encode_transaction(tx)).inputs[0].index == 0xFFFF

    def test_short_output_key(self) -> None:
        output = Output(type=OutputType.SCRIPT, amount=1, keys=(b"\xbb",), mask=b"\x05" * 32)
        with pytest.raises(ValueError, match="Invalid key length"):
            encode_transaction(_tx(outputs=(output,)))

    def test_short_mask(self) -> None:
        output = Output(type=OutputType.SCRIPT, amount=1, mask=b"\xaa")
        with pytest.raises(ValueError, match="Invalid mask length"):
            encode_transaction(_tx(outputs=(output,)))

    def test_short_signature(self) -> None:
        tx = _tx(inputs=(InputRef(b"\x01" * 32, 0),)).with_signatures((InputSignature(b"\x11" * 63),))
        with pytest.raises(ValueError, match="Invalid signature length"):
            encode_transaction(tx)


class TestPayloadHash:
    def test_ignores_signatures(self) -> None:
        tx = _tx()
        signed = tx.with_signatures((InputSignature(b"\x11" * 64), InputSignature(b"\x22" * 64)))
        assert payload_hash(signed) == payload_hash(tx)
        assert signed.marshal() != tx.marshal()

    def test_is_sha3_of_unsigned(self) -> None:
        tx = _tx()
        assert payload_hash(tx) == hashlib.sha3_256(encode_transaction(tx)).digest()

    def test_codec_delegates(self) -> None:
        tx = _tx()
        codec = KernelCodec()
        assert codec.marshal(tx) == tx.marshal()
        assert codec.payload_hash(tx) == tx.payload_hash()


class TestSignatures:
    def test_count_must_match_inputs(self) -> None:
        with pytest.raises(ValueError, match="Signature count"):
            _tx().with_signatures((InputSignature(b"\x11" * 64),))

    def test_unsigned_strips(self) -> None:
        signed = _tx().with_signatures((InputSignature(b"\x11" * 64), InputSignature(b"\x22" * 64)))
        assert signed.unsigned().signatures is None
