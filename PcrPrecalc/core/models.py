"""
Data models for measured-boot PCR precalculation.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MeasurementEvent:
    """Class representing a single extend recorded in the simulator event log."""
    pcr_index: int
    digest: bytes
    raw_payload: Optional[bytes]
    description: str

    def to_dict(self) -> dict:
        """Return a JSON-friendly representation of the event."""
        entry = {
            'pcr': self.pcr_index,
            'digest': self.digest.hex(),
            'description': self.description,
        }
        if self.raw_payload is not None:
            entry['raw_payload'] = self.raw_payload.hex()
        return entry


@dataclass(frozen=True)
class PESection:
    """Class representing one entry of a PE/COFF section table."""
    name: str
    raw_name: bytes
    virtual_size: int
    virtual_address: int
    size_of_raw_data: int
    pointer_to_raw_data: int

    @property
    def end_of_raw_data(self) -> int:
        """Return the file offset just past the section's on-disk bytes."""
        return self.pointer_to_raw_data + self.size_of_raw_data


@dataclass(frozen=True)
class SectionDigest:
    """Class representing the SHA-256 digest of a section's on-disk bytes."""
    name: str
    size: int
    digest: bytes


@dataclass(frozen=True)
class EFIBootStage:
    """Class representing an EFI application measured into PCR 4."""
    name: str
    digest: bytes
