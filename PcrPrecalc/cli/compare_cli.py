#!/usr/bin/env python3
"""
Measurements Comparison CLI

Compare a precalculated measurements document with another document (for
example one collected from a booted machine) or with the live PCRs of the
local TPM.

Usage:
    python -m PcrPrecalc.cli.compare_cli MEASUREMENTS --expected FILE
    python -m PcrPrecalc.cli.compare_cli MEASUREMENTS --tpm [--tcti TCTI]
"""

import argparse
import sys
from typing import Dict, List, Optional

from tabulate import tabulate

from . import configure_logging
from ..database.measurements import compare_measurements, load_measurements
from ..tpm.esapi_interface import ESAPIInterface


def read_tpm_measurements(pcr_indices: List[int], tcti_connection: Optional[str] = None) -> Optional[Dict[int, Optional[str]]]:
    """Read the given PCRs from the TPM, or return None if the TPM is unavailable."""
    with ESAPIInterface(tcti_connection) as esapi:
        if not esapi.connected:
            return None
        return esapi.read_pcrs(pcr_indices)


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Compare precalculated PCR measurements')
    parser.add_argument('measurements', help='Precalculated measurements JSON file')
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--expected', help='Measurements JSON file to compare against')
    source.add_argument('--tpm', action='store_true', help='Compare against the PCRs of the local TPM')
    parser.add_argument('--tcti', help='TCTI connection string (e.g., "swtpm:host=localhost,port=2321")')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show verbose output')
    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the comparison command."""
    args = parse_args(args)
    configure_logging(args.verbose)

    try:
        predicted = load_measurements(args.measurements)
        if args.tpm:
            actual = read_tpm_measurements(sorted(predicted), args.tcti)
            if actual is None:
                print("Error: could not connect to the TPM", file=sys.stderr)
                return 1
        else:
            actual = load_measurements(args.expected)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    mismatches = {m['pcr_index']: m for m in compare_measurements(predicted, actual)}
    rows = []
    for index in sorted(predicted):
        status = mismatches[index]['status'] if index in mismatches else 'match'
        rows.append([f"PCR[{index:2d}]", predicted[index], actual.get(index) or "N/A", status])
    print(tabulate(rows, headers=["PCR", "Predicted", "Actual", "Status"], tablefmt="simple"))

    if mismatches:
        print(f"\n❌ MISMATCH: {len(mismatches)} of {len(predicted)} PCRs differ")
        return 1
    print(f"\n✅ SUCCESS: all {len(predicted)} PCRs match")
    return 0


if __name__ == '__main__':
    sys.exit(main())
