"""Asset ids: account-level UUIDs and kernel asset hashes."""

from __future__ import annotations

from safe_wallet.errors.definitions import InvalidAssetId
from safe_wallet.utils.crypto import is_uuid, sha3_256


def normalize_asset_id(asset_id: str) -> str:
    """Return the hex kernel asset hash for *asset_id*.

    A UUID asset id maps to ``sha3_256(uuid)``; a 64-char hex hash is
    returned lowercased.

    Raises:
        InvalidAssetId: For anything else.
    """
    if is_uuid(asset_id):
        return sha3_256(asset_id.encode("ascii")).hex()
    try:
        raw = bytes.fromhex(asset_id)
    except ValueError as exc:
        raise InvalidAssetId(asset_id) from exc
    if len(raw) != 32:
        raise InvalidAssetId(asset_id)
    return raw.hex()
