"""
Utility functions for PCR value handling.
"""

from typing import List


def compare_pcr_values(value1: str, value2: str) -> bool:
    """
    Compare two PCR values for equality.

    Args:
        value1: First PCR value as a hex string
        value2: Second PCR value as a hex string

    Returns:
        True if the values match, False otherwise
    """
    return value1.lower() == value2.lower()


def hexdump(data: bytes, limit: int = 64) -> List[str]:
    """Return hex dump lines (offset, hex bytes, ASCII) for the first limit bytes of data."""
    lines = []
    for i in range(0, min(limit, len(data)), 16):
        chunk = data[i:i + 16]
        hex_data = ' '.join(f"{b:02x}" for b in chunk)
        ascii_data = ''.join(chr(b) if 32 <= b < 127 else '.' for b in chunk)
        lines.append(f"{i:04x}: {hex_data:48s}  {ascii_data}")
    return lines
