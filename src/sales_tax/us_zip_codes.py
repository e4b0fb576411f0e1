"""
Resolve US ZIP codes to state codes using the USPS three-digit prefix ranges.
"""

import bisect
import re
from typing import List, Optional, Tuple

ZIP_CODE_PATTERN = re.compile(r"^(\d{5})(?:-?\d{4})?$")

# (first prefix, last prefix, state), inclusive, sorted by first prefix.
_PREFIX_RANGES: List[Tuple[int, int, str]] = [
    (5, 5, "NY"),
    (6, 9, "PR"),
    (10, 27, "MA"),
    (28, 29, "RI"),
    (30, 38, "NH"),
    (39, 49, "ME"),
    (50, 54, "VT"),
    (55, 55, "MA"),
    (56, 59, "VT"),
    (60, 69, "CT"),
    (70, 89, "NJ"),
    (90, 99, "AE"),
    (100, 149, "NY"),
    (150, 196, "PA"),
    (197, 199, "DE"),
    (200, 200, "DC"),
    (201, 201, "VA"),
    (202, 205, "DC"),
    (206, 219, "MD"),
    (220, 246, "VA"),
    (247, 268, "WV"),
    (270, 289, "NC"),
    (290, 299, "SC"),
    (300, 319, "GA"),
    (320, 339, "FL"),
    (340, 340, "AA"),
    (341, 349, "FL"),
    (350, 369, "AL"),
    (370, 385, "TN"),
    (386, 397, "MS"),
    (398, 399, "GA"),
    (400, 427, "KY"),
    (430, 459, "OH"),
    (460, 479, "IN"),
    (480, 499, "MI"),
    (500, 528, "IA"),
    (530, 549, "WI"),
    (550, 567, "MN"),
    (569, 569, "DC"),
    (570, 577, "SD"),
    (580, 588, "ND"),
    (590, 599, "MT"),
    (600, 629, "IL"),
    (630, 658, "MO"),
    (660, 679, "KS"),
    (680, 693, "NE"),
    (700, 714, "LA"),
    (716, 729, "AR"),
    (730, 732, "OK"),
    (733, 733, "TX"),
    (734, 749, "OK"),
    (750, 799, "TX"),
    (800, 816, "CO"),
    (820, 831, "WY"),
    (832, 838, "ID"),
    (840, 847, "UT"),
    (850, 865, "AZ"),
    (870, 884, "NM"),
    (885, 885, "TX"),
    (889, 898, "NV"),
    (900, 961, "CA"),
    (962, 966, "AP"),
    (967, 968, "HI"),
    (969, 969, "GU"),
    (970, 979, "OR"),
    (980, 994, "WA"),
    (995, 999, "AK"),
]

_RANGE_STARTS = [start for start, _, _ in _PREFIX_RANGES]


def identify_state_code(postal_code: Optional[str]) -> Optional[str]:
    """Return the two-letter state code for a ZIP or ZIP+4 code, or None."""
    if not postal_code:
        return None
    match = ZIP_CODE_PATTERN.match(str(postal_code).strip())
    if not match:
        return None

    prefix = int(match.group(1)[:3])
    index = bisect.bisect_right(_RANGE_STARTS, prefix) - 1
    if index < 0:
        return None
    start, end, state = _PREFIX_RANGES[index]
    if start <= prefix <= end:
        return state
    return None
