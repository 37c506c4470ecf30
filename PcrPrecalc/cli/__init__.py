#!/usr/bin/env python3

"""
PCR Precalculator CLI Module

This module contains the command-line interfaces of the PcrPrecalc package.
"""

import logging


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for a command-line run."""
    log_level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=log_level, format='%(levelname)s: %(message)s')


__all__ = ['configure_logging', 'precalculate_cli', 'pe_tools_cli', 'compare_cli']
