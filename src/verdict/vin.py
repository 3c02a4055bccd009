from __future__ import annotations

import re


_VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

# Model-year codes repeat on a 30-year cycle; the first cycle starts at 1980.
_YEAR_CODES = "ABCDEFGHJKLMNPRSTVWXY123456789"
_YEAR_CODE_MAP = {code: 1980 + offset for offset, code in enumerate(_YEAR_CODES)}


class InvalidVinError(ValueError):
    """Raised for a VIN that cannot belong to any vehicle."""

    def __init__(self, vin: str, reason: str) -> None:
        super().__init__(
            f"Invalid VIN: {reason}. Please check that your VIN is exactly 17 characters "
            "and contains only valid characters (no I, O, or Q)."
        )
        self.vin = vin
        self.reason = reason


def normalize_vin(vin: str) -> str:
    return vin.strip().upper()


def validate_vin(vin: str) -> str:
    normalized = normalize_vin(vin)
    if len(normalized) != 17:
        raise InvalidVinError(vin, f"VIN must be 17 characters, got {len(normalized)}")
    if not _VIN_PATTERN.match(normalized):
        raise InvalidVinError(vin, "VIN contains invalid characters")
    return normalized


def year_from_vin(vin: str, current_year: int) -> int | None:
    if not vin or len(vin) < 10:
        return None
    year = _YEAR_CODE_MAP.get(vin[9].upper())
    if year is None:
        return None
    # pick the most recent cycle that is not in the future
    while year + 30 <= current_year + 1:
        year += 30
    return year
