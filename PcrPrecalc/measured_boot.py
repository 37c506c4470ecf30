"""
Measured boot PCR precalculation

This module predicts the PCR 4, 9 and 11 values a machine produces when it
boots the Unified Kernel Image (UKI) stored in a raw disk image. The UKI is
copied out of the image, its sections are hashed, and the three predictors
are run in boot order against one simulated PCR bank.

PCRs 12, 13 and 15 are not computed. They are reported at their baseline
value because the image is expected to boot without credentials, system
extensions or userspace measurements.

Example usage:
    toolchain = load_toolchain()
    simulator = precalculate_pcrs(toolchain, UKI_PATH, "image.raw")
    print(simulator.to_measurements())
"""

import hashlib
import logging
import os
import sys
import tempfile
from typing import Optional, Sequence, TextIO

from cryptography.hazmat.primitives import hashes
from tabulate import tabulate

from .core.errors import ExtractionFailed, ToolchainUnavailable
from .core.models import EFIBootStage, SectionDigest
from .extract.dissect import DissectExtractor, Extractor
from .measure.pcr04 import describe_boot_stages, pcr256, predict_pcr4
from .measure.pcr09 import describe_linux_load2, predict_pcr9
from .measure.pcr11 import describe_uki_sections, predict_pcr11
from .measure.simulator import Simulator
from .parsers.authenticode import authentihash
from .parsers.pe_parser import CHUNK_SIZE, section_digests, section_reader

logger = logging.getLogger(__name__)

# Path of the UKI in the raw image
UKI_PATH = "/boot/EFI/BOOT/BOOTX64.EFI"

PREDICTED_PCRS = (4, 9, 11)
BASELINE_PCRS = {
    12: "kernel command line, credentials and system extensions (expected unused)",
    13: "initrd extension images (expected absent)",
    15: "userspace measurements (expected none at boot)",
}


def precalculate_pcr4(simulator: Simulator, uki_file: str, sink: TextIO) -> None:
    """Measure the UKI and its embedded kernel image into PCR 4."""
    with open(uki_file, 'rb') as f:
        uki_measurement = authentihash(f, hashes.SHA256())

    with open(uki_file, 'rb') as f:
        linux_section = section_reader(f, ".linux")
        linux_measurement = authentihash(linux_section, hashes.SHA256())

    boot_stages = [
        EFIBootStage(name="Unified Kernel Image (UKI)", digest=pcr256(uki_measurement)),
        EFIBootStage(name="Linux", digest=pcr256(linux_measurement)),
    ]
    describe_boot_stages(sink, boot_stages)
    predict_pcr4(simulator, boot_stages)


def precalculate_pcr9(simulator: Simulator, uki_file: str, sink: TextIO) -> None:
    """Measure the kernel command line and the initrd into PCR 9."""
    with open(uki_file, 'rb') as f:
        cmdline = section_reader(f, ".cmdline").read()

        initrd_section = section_reader(f, ".initrd")
        initrd_digest = hashlib.sha256()
        while True:
            chunk = initrd_section.read(CHUNK_SIZE)
            if not chunk:
                break
            initrd_digest.update(chunk)

    describe_linux_load2(sink, cmdline, initrd_digest.digest())
    predict_pcr9(simulator, cmdline, initrd_digest.digest())


def precalculate_pcr11(simulator: Simulator, uki_sections: Sequence[SectionDigest], sink: TextIO,
                       section_order: Optional[Sequence[str]] = None) -> None:
    """Measure the UKI sections into PCR 11."""
    describe_uki_sections(sink, uki_sections, section_order)
    predict_pcr11(simulator, uki_sections, section_order)


def describe_bank(sink: TextIO, simulator: Simulator) -> None:
    """Write the predicted PCRs and the PCRs expected to stay at baseline."""
    rows = [[f"PCR[{index:2d}]", simulator.read_pcr(index).hex(), "predicted"] for index in PREDICTED_PCRS]
    rows += [[f"PCR[{index:2d}]", simulator.read_pcr(index).hex(), f"baseline: {note}"]
             for index, note in BASELINE_PCRS.items()]
    sink.write(tabulate(rows, headers=["PCR", "Value", "Source"], tablefmt="simple") + "\n")


def precalculate_uki_pcrs(uki_file: str, sink: Optional[TextIO] = None,
                          section_order: Optional[Sequence[str]] = None) -> Simulator:
    """
    Precalculate PCR 4, 9 and 11 for an extracted UKI file.

    Args:
        uki_file: Path to the UKI EFI binary
        sink: Stream receiving the diagnostic description (defaults to stderr)
        section_order: PCR 11 section order override

    Returns:
        The simulator holding the predicted bank and its event log
    """
    if sink is None:
        sink = sys.stderr

    simulator = Simulator()

    with open(uki_file, 'rb') as f:
        uki_sections = section_digests(f)
    logger.info(f"UKI {uki_file} has {len(uki_sections)} sections")

    precalculate_pcr4(simulator, uki_file, sink)
    precalculate_pcr9(simulator, uki_file, sink)
    precalculate_pcr11(simulator, uki_sections, sink, section_order)

    describe_bank(sink, simulator)
    return simulator


def precalculate_pcrs(toolchain: Optional[str], uki_path: str, image_file: str,
                      sink: Optional[TextIO] = None, extractor: Optional[Extractor] = None,
                      section_order: Optional[Sequence[str]] = None,
                      timeout: Optional[float] = None) -> Simulator:
    """
    Precalculate PCR 4, 9 and 11 for the UKI inside a raw disk image.

    Args:
        toolchain: Absolute path of the dissection executable
        uki_path: Path of the UKI inside the image
        image_file: Path to the raw disk image
        sink: Stream receiving the diagnostic description (defaults to stderr)
        extractor: Callable (image_file, path_in_image) -> bytes replacing the
                   dissection executable
        section_order: PCR 11 section order override
        timeout: Timeout in seconds for the dissection executable

    Returns:
        The simulator holding the predicted bank and its event log

    Raises:
        ToolchainUnavailable: If neither a toolchain nor an extractor is given
        ExtractionFailed: If the UKI cannot be copied out of the image
        SectionNotFound: If a section required by a predictor is missing
        MalformedBinary: If the UKI cannot be parsed
    """
    if extractor is None:
        if not toolchain:
            raise ToolchainUnavailable("no disk dissection toolchain available")
        extractor = DissectExtractor(toolchain, timeout=timeout)

    with tempfile.TemporaryDirectory(prefix="con-measure") as workdir:
        uki_file = os.path.join(workdir, "uki.efi")

        logger.info(f"Extracting {uki_path} from {image_file}")
        uki_data = extractor(image_file, uki_path)
        if not isinstance(uki_data, (bytes, bytearray)):
            raise ExtractionFailed(f"extractor returned {type(uki_data).__name__} instead of bytes")
        with open(uki_file, 'wb') as f:
            f.write(uki_data)

        return precalculate_uki_pcrs(uki_file, sink=sink, section_order=section_order)
