#!/usr/bin/env python3

"""
TPM ESAPI Interface Module

This module provides a read-only wrapper around the TPM2 ESAPI interface so
that predicted PCR values can be compared with the PCRs of a booted machine.
"""

import logging
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

# Set a flag to check if tpm2_pytss is available
TPM2_PYTSS_AVAILABLE = False

try:
    from tpm2_pytss import ESAPI, TPML_PCR_SELECTION
    TPM2_PYTSS_AVAILABLE = True
except ImportError as e:
    logger.debug(f"tpm2_pytss import failed: {e}")


class ESAPIInterface:
    """
    Interface to the TPM ESAPI for reading SHA-256 PCRs.
    """

    def __init__(self, tcti_connection: Optional[str] = None):
        """
        Initialize the ESAPI interface.

        Args:
            tcti_connection: TPM connection string (e.g., "swtpm:host=localhost,port=2321")
                            If None, will try to use the default TCTI.
        """
        self.tcti_connection = tcti_connection
        self.ctx = None
        self.connected = False

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def connect(self) -> bool:
        """
        Connect to the TPM using ESAPI.

        Returns:
            bool: True if connection successful, False otherwise.
        """
        if not TPM2_PYTSS_AVAILABLE:
            logger.error("tpm2_pytss not available, can't connect to TPM")
            return False

        try:
            if self.tcti_connection:
                self.ctx = ESAPI(tcti=self.tcti_connection)
                logger.info(f"Connected to TPM via ESAPI with TCTI {self.tcti_connection}")
            else:
                self.ctx = ESAPI()
                logger.info("Connected to TPM via ESAPI with default TCTI")
            self.connected = True
        except Exception as e:
            logger.error(f"Error connecting to TPM: {e}")
            self.ctx = None
            self.connected = False
        return self.connected

    def close(self):
        """Close the TPM connection."""
        if self.ctx is not None:
            self.ctx.close()
        self.ctx = None
        self.connected = False

    def read_pcr(self, pcr_index: int) -> Optional[str]:
        """
        Read the current SHA-256 value of a PCR.

        Args:
            pcr_index: PCR index to read

        Returns:
            str: Hex string of the PCR value, or None if error
        """
        if not self.connected:
            logger.error("Not connected to TPM")
            return None

        try:
            pcr_select = TPML_PCR_SELECTION.parse(f"sha256:{pcr_index}")
            # pcr_read returns (update_counter, pcr_selection, pcr_values)
            _, _, pcr_values = self.ctx.pcr_read(pcr_select)
            if pcr_values is not None and pcr_values.count > 0:
                return bytes(pcr_values[0]).hex()
            return None
        except Exception as e:
            logger.error(f"Error reading PCR {pcr_index}: {e}")
            return None

    def read_pcrs(self, pcr_indices: Iterable[int]) -> Dict[int, Optional[str]]:
        """Read several PCRs, mapping each index to its hex value or None."""
        return {index: self.read_pcr(index) for index in pcr_indices}
