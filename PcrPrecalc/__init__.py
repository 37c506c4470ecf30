"""
PCR Precalculator Package

This package predicts the measured-boot PCR values (PCR 4, 9 and 11) a
machine produces when booting a Unified Kernel Image from a raw disk image,
without access to TPM hardware.
"""

__version__ = "1.0.0"

from .core.models import EFIBootStage, MeasurementEvent, PESection, SectionDigest
from .measure.simulator import PcrBank, Simulator
from .measure.pcr04 import predict_pcr4
from .measure.pcr09 import predict_pcr9
from .measure.pcr11 import predict_pcr11
from .parsers.pe_parser import section_digests, section_reader
from .parsers.authenticode import authentihash
from .extract.dissect import load_toolchain
from .measured_boot import precalculate_pcrs, precalculate_uki_pcrs

__all__ = [
    # Core models
    'MeasurementEvent', 'PESection', 'SectionDigest', 'EFIBootStage',

    # Simulator and predictors
    'Simulator', 'PcrBank', 'predict_pcr4', 'predict_pcr9', 'predict_pcr11',

    # PE/COFF
    'section_digests', 'section_reader', 'authentihash',

    # Orchestration
    'precalculate_pcrs', 'precalculate_uki_pcrs', 'load_toolchain',
]
