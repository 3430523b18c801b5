from __future__ import annotations

import re

from web3 import Web3

from arc_governance.errors import ValidationError
from arc_governance.types import Address, Hash

ZERO_ADDRESS: Address = "0x0000000000000000000000000000000000000000"

_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def normalize_address(raw_value: str, *, field_name: str) -> Address:
    candidate = str(raw_value or "").strip()
    if not candidate:
        raise ValidationError(f"{field_name} is required")
    if not Web3.is_address(candidate):
        raise ValidationError(f"{field_name} must be a valid Ethereum address")
    return Web3.to_checksum_address(candidate)


def normalize_hash(raw_value: str, *, field_name: str) -> Hash:
    candidate = str(raw_value or "").strip()
    if not candidate:
        raise ValidationError(f"{field_name} is required")
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"
    if not _HASH_PATTERN.match(candidate):
        raise ValidationError(f"{field_name} must be a 32-byte hex string")
    return candidate.lower()


def same_address(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return left.lower() == right.lower()
