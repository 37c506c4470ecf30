"""
Exceptions raised while precalculating PCR values.

Every error is terminal for a precalculation run: callers must treat any of
them as "no prediction available".
"""


class PrecalculationError(Exception):
    """Base class for all precalculation failures."""


class ToolchainUnavailable(PrecalculationError):
    """The disk dissection executable could not be resolved."""


class ExtractionFailed(PrecalculationError):
    """Copying the boot binary out of the disk image failed."""


class SectionNotFound(PrecalculationError):
    """A PE section required by a predictor is absent."""

    def __init__(self, name: str):
        super().__init__(f"section {name!r} not found")
        self.name = name


class MalformedBinary(PrecalculationError, ValueError):
    """The PE/COFF headers or section table could not be parsed."""


class PcrIndexError(PrecalculationError, IndexError):
    """A PCR index outside the simulated bank was used."""
