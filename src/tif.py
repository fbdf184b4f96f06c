"""
SQRL Transaction Information Flags

Registry of the TIF bits a server reports in every cli response, and the
comparison used by tests to check a response against the expected flags.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

TIF_ID_MATCH = 0x01
TIF_PREVIOUS_ID_MATCH = 0x02
TIF_IP_MATCHED = 0x04
TIF_SQRL_DISABLED = 0x08
TIF_FUNCTION_NOT_SUPPORTED = 0x10
TIF_TRANSIENT_ERROR = 0x20
TIF_COMMAND_FAILED = 0x40
TIF_CLIENT_FAILURE = 0x80
TIF_BAD_ID_ASSOCIATION = 0x100
TIF_IDENTITY_SUPERSEDED = 0x200

TIF_DESC: Dict[int, str] = {
    TIF_ID_MATCH: "ID Matched",
    TIF_PREVIOUS_ID_MATCH: "Previous ID Matched",
    TIF_IP_MATCHED: "IP Matched",
    TIF_SQRL_DISABLED: "SQRL Disabled",
    TIF_FUNCTION_NOT_SUPPORTED: "Function Not Supported",
    TIF_TRANSIENT_ERROR: "Transient Error",
    TIF_COMMAND_FAILED: "Command Failed",
    TIF_CLIENT_FAILURE: "Client Failure",
    TIF_BAD_ID_ASSOCIATION: "Bad ID Association",
    TIF_IDENTITY_SUPERSEDED: "Identity Superseded",
}


@dataclass(frozen=True)
class TIFMismatch:
    """A single flag whose value differs from what was expected"""
    description: str
    actual: bool
    expected: bool

    def __str__(self) -> str:
        return f"{self.description} is {self.actual} expected {self.expected}"


def tif_compare(expected: int, actual: int) -> Optional[List[TIFMismatch]]:
    """
    Compare expected and actual TIF masks bit by bit.

    Returns one mismatch per differing registered bit in ascending bit
    order, or None when the masks agree on every registered bit.
    """
    diff = expected ^ actual
    mismatches = []
    for i in range(32):
        single = diff & (1 << i)
        desc = TIF_DESC.get(single)
        if desc:
            mismatches.append(TIFMismatch(
                description=desc,
                actual=bool(actual & single),
                expected=bool(expected & single),
            ))
    if not mismatches:
        return None
    return mismatches


def describe_tif(mask: int) -> List[str]:
    """Descriptions of the registered bits set in mask"""
    return [desc for bit, desc in sorted(TIF_DESC.items()) if mask & bit]
