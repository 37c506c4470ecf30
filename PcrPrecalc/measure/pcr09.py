"""
PCR 9 prediction: Linux LOAD_FILE2 protocol.

The kernel EFI stub measures the command line it receives from systemd-stub
and the initrd it loads through LOAD_FILE2 into PCR 9.
"""

import hashlib
import re
from typing import TextIO

from .simulator import PcrBank

PCR_INDEX = 9

# Lone surrogates left by surrogateescape, one per undecodable byte
INVALID_BYTE = re.compile("[\udc80-\udcff]")
REPLACEMENT_CHARACTER = "\ufffd"


def terminate_cmdline(cmdline: bytes) -> bytes:
    """
    Return the command line with a trailing NUL.

    Some UKI builders do not NUL-terminate the .cmdline section, while the
    stub always passes a terminated string to the kernel.
    """
    if not cmdline or cmdline[-1] != 0:
        return cmdline + b'\0'
    return cmdline


def encode_cmdline(cmdline: bytes) -> bytes:
    """
    Return the NUL-terminated command line as UTF-16LE without a byte-order mark.

    Every byte that is not part of a valid UTF-8 sequence becomes one U+FFFD.
    """
    text = terminate_cmdline(cmdline).decode('utf-8', errors='surrogateescape')
    return INVALID_BYTE.sub(REPLACEMENT_CHARACTER, text).encode('utf-16-le')


def describe_linux_load2(sink: TextIO, cmdline: bytes, initrd_digest: bytes) -> None:
    """Write the command line and initrd passed through LOAD_FILE2."""
    sink.write("Linux LOAD_FILE2 protocol:\n")
    sink.write(f"  cmdline: {cmdline!r}\n")
    sink.write(f"  initrd (digest {initrd_digest.hex()})\n")


def predict_pcr9(bank: PcrBank, cmdline: bytes, initrd_digest: bytes) -> None:
    """
    Extend PCR 9 with the kernel command line and the initrd digest.

    Args:
        bank: PCR bank to measure into
        cmdline: Raw contents of the .cmdline section
        initrd_digest: SHA-256 digest of the .initrd section, extended as-is
    """
    cmdline = terminate_cmdline(cmdline)
    cmdline_utf16 = encode_cmdline(cmdline)
    bank.extend_pcr(PCR_INDEX, hashlib.sha256(cmdline_utf16).digest(), cmdline_utf16,
                    f"EV_EVENT_TAG: Linux LOAD_FILE2 protocol: cmdline {cmdline!r}")

    # The kernel hashes the initrd once while loading it
    bank.extend_pcr(PCR_INDEX, initrd_digest, None,
                    f"EV_EVENT_TAG: Linux LOAD_FILE2 protocol: initrd (digest {initrd_digest.hex()})")
