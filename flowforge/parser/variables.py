"""
Variable String Decoder
=======================
Turns the CSV "variables" column into a key/value mapping.

Three formats are accepted, checked in this order:
    1. "KEY1=v1:KEY2=v2"   colon-separated (current format)
    2. "KEY1=v1,KEY2=v2"   comma-separated (legacy format)
    3. "KEY=v"             single pair

The order matters: a colon-separated string may hold commas inside its
values, so the colon check must win.

Deterministic:
    Pure functions, no logging, no I/O.
"""
from typing import Dict, List, Mapping, Optional

PAIR_DELIMITERS = (":", ",")


def _split_pairs(raw: str) -> List[str]:
    for delimiter in PAIR_DELIMITERS:
        if delimiter in raw:
            return raw.split(delimiter)
    if "=" in raw:
        return [raw]
    return []


def decode_variables(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse a delimited key=value string into a dict.

    Each pair is split on its first "=" only. Pairs without "=" or with an
    empty key are dropped. Keys and values are trimmed.
    """
    variables: Dict[str, str] = {}
    if raw is None or not raw.strip():
        return variables

    for pair in _split_pairs(raw):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            continue
        variables[key] = value.strip()
    return variables


def encode_variables(variables: Mapping[str, str]) -> str:
    """
    Inverse of decode_variables using the colon-separated format.

    A lone pair whose value holds a comma gets a trailing ":" so it is not
    read back as the comma-separated format.
    """
    encoded = ":".join(f"{key}={value}" for key, value in variables.items())
    if len(variables) == 1 and "," in encoded:
        encoded += ":"
    return encoded
