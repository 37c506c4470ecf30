"""
PCR 11 prediction: UKI sections.

systemd-stub measures the UKI sections it knows about into PCR 11, in the
order of its own section enumeration rather than the order of the PE section
table. .pcrsig is never measured because it carries signatures over PCR 11.
"""

from typing import Iterable, List, Optional, Sequence, TextIO

from tabulate import tabulate

from ..core.models import SectionDigest
from .simulator import PcrBank

PCR_INDEX = 11

# Enumeration order of systemd-stub (systemd v254). Replace as a whole when
# modelling a different stub version.
UKI_SECTION_ORDER = (
    ".linux",
    ".osrel",
    ".cmdline",
    ".initrd",
    ".splash",
    ".dtb",
    ".uname",
    ".sbat",
    ".pcrpkey",
)


def measured_sections(sections: Iterable[SectionDigest],
                      section_order: Optional[Sequence[str]] = None) -> List[SectionDigest]:
    """
    Return the sections systemd-stub measures, in measurement order.

    Sections missing from the binary are skipped. When a name appears more
    than once, the first section with that name is used.
    """
    if section_order is None:
        section_order = UKI_SECTION_ORDER
    by_name = {}
    for section in sections:
        by_name.setdefault(section.name, section)
    return [by_name[name] for name in section_order if name in by_name]


def describe_uki_sections(sink: TextIO, sections: Iterable[SectionDigest],
                          section_order: Optional[Sequence[str]] = None) -> None:
    """Write the UKI sections that will be measured into PCR 11."""
    rows = [[section.name, section.size, section.digest.hex()]
            for section in measured_sections(sections, section_order)]
    sink.write("UKI sections:\n")
    sink.write(tabulate(rows, headers=["Section", "Size", "Digest"], tablefmt="simple") + "\n")


def predict_pcr11(bank: PcrBank, sections: Iterable[SectionDigest],
                  section_order: Optional[Sequence[str]] = None) -> None:
    """
    Extend PCR 11 with the digest of each measured UKI section.

    Args:
        bank: PCR bank to measure into
        sections: Section digests of the UKI
        section_order: Section names in measurement order (defaults to UKI_SECTION_ORDER)
    """
    for section in measured_sections(sections, section_order):
        bank.extend_pcr(PCR_INDEX, section.digest, None,
                        f"EV_IPL: Unified Kernel Image section {section.name}")
