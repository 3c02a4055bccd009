from __future__ import annotations

import re


_STATES = {
    "AL": "ALABAMA", "AK": "ALASKA", "AZ": "ARIZONA", "AR": "ARKANSAS", "CA": "CALIFORNIA",
    "CO": "COLORADO", "CT": "CONNECTICUT", "DE": "DELAWARE", "FL": "FLORIDA", "GA": "GEORGIA",
    "HI": "HAWAII", "ID": "IDAHO", "IL": "ILLINOIS", "IN": "INDIANA", "IA": "IOWA",
    "KS": "KANSAS", "KY": "KENTUCKY", "LA": "LOUISIANA", "ME": "MAINE", "MD": "MARYLAND",
    "MA": "MASSACHUSETTS", "MI": "MICHIGAN", "MN": "MINNESOTA", "MS": "MISSISSIPPI", "MO": "MISSOURI",
    "MT": "MONTANA", "NE": "NEBRASKA", "NV": "NEVADA", "NH": "NEW HAMPSHIRE", "NJ": "NEW JERSEY",
    "NM": "NEW MEXICO", "NY": "NEW YORK", "NC": "NORTH CAROLINA", "ND": "NORTH DAKOTA", "OH": "OHIO",
    "OK": "OKLAHOMA", "OR": "OREGON", "PA": "PENNSYLVANIA", "RI": "RHODE ISLAND", "SC": "SOUTH CAROLINA",
    "SD": "SOUTH DAKOTA", "TN": "TENNESSEE", "TX": "TEXAS", "UT": "UTAH", "VT": "VERMONT",
    "VA": "VIRGINIA", "WA": "WASHINGTON", "WV": "WEST VIRGINIA", "WI": "WISCONSIN", "WY": "WYOMING",
}
_COUNTY_PATTERN = re.compile(r"([A-Za-z]+(?:\s+[A-Za-z]+)?\s+County)\b", re.IGNORECASE)


def extract_state(location: str | None) -> str | None:
    """Two-letter state code from a free-form location such as "Tampa, FL 33601"."""
    if not location:
        return None
    upper = location.upper()
    tokens = re.findall(r"\b[A-Z]{2}\b", upper)
    # the state code is usually the last two-letter token
    for token in reversed(tokens):
        if token in _STATES:
            return token
    # longer names first so "WEST VIRGINIA" wins over "VIRGINIA"
    for code, name in sorted(_STATES.items(), key=lambda item: -len(item[1])):
        if re.search(rf"\b{name}\b", upper):
            return code
    return None


def extract_county(location: str | None) -> str | None:
    if not location:
        return None
    match = _COUNTY_PATTERN.search(location)
    return match.group(1) if match else None
