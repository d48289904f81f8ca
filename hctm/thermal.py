#!/usr/bin/env python3
"""
HCTM feature word and temperature helpers

The Host Controlled Thermal Management feature (FID 0x10) stores two
thresholds in one 32-bit dword:

    31            16 15             0
    |     TMT1      |      TMT2     |

Both values are whole Kelvin; 0 disables the threshold.
"""

from typing import Tuple

HCTM_FEATURE_ID = 0x10

# Get Features select field
SEL_CURRENT = 0
SEL_DEFAULT = 1
SEL_SAVED = 2

KELVIN_OFFSET = 273
TMT_MASK = 0xFFFF
CHANGE_BOTH_TMT2_MARGIN = 2


def kelvin_to_celsius(kelvin: int) -> int:
    return kelvin - KELVIN_OFFSET


def celsius_to_kelvin(celsius: int) -> int:
    return celsius + KELVIN_OFFSET


def format_temperature(kelvin: int) -> str:
    """Render a Kelvin value as e.g. '300K / 27°C'."""
    return f"{kelvin}K / {kelvin_to_celsius(kelvin)}°C"


def pack_tmt(tmt1: int, tmt2: int) -> int:
    """
    Pack TMT1 and TMT2 into the HCTM feature dword.

    Args:
        tmt1: Light throttling threshold in Kelvin (bits 31:16)
        tmt2: Heavy throttling threshold in Kelvin (bits 15:0)

    Returns:
        The 32-bit feature value

    Raises:
        ValueError: If a value does not fit into 16 bits
    """
    for name, value in (('TMT1', tmt1), ('TMT2', tmt2)):
        if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= TMT_MASK:
            raise ValueError(f"{name} must be an integer between 0 and {TMT_MASK}, got {value!r}")
    return (tmt1 << 16) | tmt2


def unpack_tmt(dw0: int) -> Tuple[int, int]:
    """
    Split the HCTM feature dword into (TMT1, TMT2).

    Raises:
        ValueError: If dw0 is not a 32-bit unsigned value
    """
    if not 0 <= dw0 <= 0xFFFFFFFF:
        raise ValueError(f"Feature value out of 32-bit range: {dw0:#x}")
    return (dw0 >> 16) & TMT_MASK, dw0 & TMT_MASK


def parse_bool(text: str) -> bool:
    """Parse 'true'/'false' in any letter case."""
    value = str(text).strip().lower()
    if value == 'true':
        return True
    if value == 'false':
        return False
    raise ValueError(f"Expected 'true' or 'false', but got '{text}'")


def validate_thresholds(tmt1: int, tmt2: int, mntmt: int = 0, mxtmt: int = 0) -> None:
    """
    Check new thresholds against the controller's settable range.

    A threshold of 0 is always accepted. A bound of 0 means the controller
    did not report it and the check against it is skipped.

    Raises:
        ValueError: If a threshold is out of range or TMT1 is not below TMT2
    """
    for name, value in (('TMT1', tmt1), ('TMT2', tmt2)):
        if value == 0:
            continue
        if mxtmt and value > mxtmt:
            raise ValueError(
                f"Calculated {name} ({value}K) exceeds drive's maximum ({mxtmt}K)"
            )
        if mntmt and value < mntmt:
            raise ValueError(
                f"Calculated {name} ({value}K) is below drive's minimum ({mntmt}K)"
            )

    if tmt1 and tmt2 and tmt1 >= tmt2:
        raise ValueError(f"TMT1 ({tmt1}K) must be lower than TMT2 ({tmt2}K)")
