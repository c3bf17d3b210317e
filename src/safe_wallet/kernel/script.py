"""Output scripts and output types.

Script outputs carry a threshold script: ``OP_FETCH OP_GTE <threshold>``,
meaning "at least *threshold* of the output keys must sign".
"""

from __future__ import annotations

import enum

# ---------------------------------------------------------------------------
# Opcodes
# ---------------------------------------------------------------------------


class OpCode(int, enum.Enum):
    """Script operators used by threshold scripts."""

    OP_FETCH = 0xFF
    OP_GTE = 0xFE


# ---------------------------------------------------------------------------
# Output types
# ---------------------------------------------------------------------------


class OutputType(int, enum.Enum):
    """Kernel output type byte."""

    SCRIPT = 0x00
    WITHDRAWAL_SUBMIT = 0xA1


# ---------------------------------------------------------------------------
# Threshold scripts
# ---------------------------------------------------------------------------


def threshold_script(threshold: int) -> bytes:
    """Build the script requiring *threshold* signatures.

    Raises:
        ValueError: If the threshold does not fit a single byte.
    """
    if not 0 < threshold <= 0xFF:
        msg = f"Invalid script threshold: {threshold}"
        raise ValueError(msg)
    return bytes([OpCode.OP_FETCH, OpCode.OP_GTE, threshold])


def parse_threshold_script(script: bytes) -> int:
    """Extract the threshold from a threshold script.

    Raises:
        ValueError: If *script* is not a threshold script.
    """
    if len(script) != 3 or script[0] != OpCode.OP_FETCH or script[1] != OpCode.OP_GTE:
        msg = f"Not a threshold script: {script.hex()}"
        raise ValueError(msg)
    return script[2]
