"""
PCR 4 prediction: EFI boot applications.

Each EFI application started during boot is measured into PCR 4. For a UKI
this is the UKI itself, followed by the Linux kernel image that systemd-stub
loads from its .linux section.
"""

import hashlib
from typing import List, TextIO

from tabulate import tabulate

from ..core.models import EFIBootStage
from .simulator import PcrBank

PCR_INDEX = 4


def pcr256(authenticode_digest: bytes) -> bytes:
    """Return the PCR 4 event digest for an Authenticode digest: SHA256(authentihash)."""
    return hashlib.sha256(authenticode_digest).digest()


def describe_boot_stages(sink: TextIO, boot_stages: List[EFIBootStage]) -> None:
    """Write the EFI boot stages that will be measured into PCR 4."""
    rows = [[i + 1, stage.name, stage.digest.hex()] for i, stage in enumerate(boot_stages)]
    sink.write("EFI boot stages:\n")
    sink.write(tabulate(rows, headers=["#", "Stage", "Digest"], tablefmt="simple") + "\n")


def predict_pcr4(bank: PcrBank, boot_stages: List[EFIBootStage]) -> None:
    """
    Extend PCR 4 with each boot stage, in boot order.

    Args:
        bank: PCR bank to measure into
        boot_stages: EFI applications in the order they are started
    """
    for stage in boot_stages:
        bank.extend_pcr(PCR_INDEX, stage.digest, None,
                        f"EV_EFI_BOOT_SERVICES_APPLICATION: {stage.name}")
