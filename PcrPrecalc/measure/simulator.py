"""
Software PCR bank.

The simulator holds 24 SHA-256 PCRs, all starting at the zero baseline, and
records every extend in an append-only event log.
"""

import abc
import hashlib
import logging
from typing import Dict, Iterable, List, Optional

from ..core.errors import PcrIndexError
from ..core.models import MeasurementEvent

logger = logging.getLogger(__name__)

PCR_COUNT = 24
DIGEST_SIZE = hashlib.sha256().digest_size
ZERO_DIGEST = bytes(DIGEST_SIZE)


class PcrBank(abc.ABC):
    """Capability implemented by anything predictors can measure into."""

    @abc.abstractmethod
    def extend_pcr(self, pcr_index: int, digest: bytes, raw_payload: Optional[bytes] = None,
                   description: str = "") -> None:
        """Extend a PCR with an event digest."""

    @abc.abstractmethod
    def read_pcr(self, pcr_index: int) -> bytes:
        """Return the current value of a PCR."""


def _check_index(pcr_index: int) -> None:
    if isinstance(pcr_index, bool) or not isinstance(pcr_index, int) or not 0 <= pcr_index < PCR_COUNT:
        raise PcrIndexError(f"PCR index {pcr_index!r} out of range [0, {PCR_COUNT})")


class Simulator(PcrBank):
    """
    Emulated SHA-256 PCR bank.

    extend_pcr is the only way to change a register, so the event log and the
    register values always agree.
    """

    def __init__(self):
        self.bank: Dict[int, bytes] = {index: ZERO_DIGEST for index in range(PCR_COUNT)}
        self.event_log: List[MeasurementEvent] = []

    def extend_pcr(self, pcr_index: int, digest: bytes, raw_payload: Optional[bytes] = None,
                   description: str = "") -> None:
        """
        Extend a PCR: PCR_new = SHA256(PCR_old || digest).

        Args:
            pcr_index: PCR index to extend
            digest: 32-byte event digest
            raw_payload: Optional measured data, kept for diagnostics only
            description: Human-readable description of the event

        Raises:
            PcrIndexError: If the index is outside the bank
            ValueError: If the digest is not a SHA-256 digest
        """
        _check_index(pcr_index)
        digest = bytes(digest)
        if len(digest) != DIGEST_SIZE:
            raise ValueError(f"event digest must be {DIGEST_SIZE} bytes, got {len(digest)}")

        self.bank[pcr_index] = hashlib.sha256(self.bank[pcr_index] + digest).digest()
        self.event_log.append(MeasurementEvent(
            pcr_index=pcr_index,
            digest=digest,
            raw_payload=bytes(raw_payload) if raw_payload is not None else None,
            description=description,
        ))
        logger.debug(f"PCR[{pcr_index}] extended with {digest.hex()} ({description})")

    def read_pcr(self, pcr_index: int) -> bytes:
        _check_index(pcr_index)
        return self.bank[pcr_index]

    def written_indices(self) -> List[int]:
        """Return the sorted PCR indices that received at least one event."""
        return sorted({event.pcr_index for event in self.event_log})

    def get_events_by_pcr(self, pcr_index: int) -> List[MeasurementEvent]:
        """Return all logged events for a specific PCR index."""
        return [event for event in self.event_log if event.pcr_index == pcr_index]

    def to_measurements(self, indices: Optional[Iterable[int]] = None) -> Dict[str, str]:
        """
        Return the measurements document for the simulated bank.

        Args:
            indices: PCR indices to include. Defaults to the written registers.

        Returns:
            A mapping of the decimal PCR index to the lower-case hex value
        """
        if indices is None:
            indices = self.written_indices()
        selected = sorted(set(indices))
        for index in selected:
            _check_index(index)
        return {str(index): self.bank[index].hex() for index in selected}

    def event_log_entries(self) -> List[dict]:
        """Return the event log as a list of JSON-friendly dictionaries."""
        return [event.to_dict() for event in self.event_log]
