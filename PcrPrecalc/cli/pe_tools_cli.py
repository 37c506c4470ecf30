#!/usr/bin/env python3
"""
PE/COFF inspection CLI

Print the section table of a PE binary with per-section SHA-256 digests, or
its Authenticode digest.

Usage:
    python -m PcrPrecalc.cli.pe_tools_cli sections UKI_FILE
    python -m PcrPrecalc.cli.pe_tools_cli authentihash PE_FILE [--algorithm sha256]
"""

import argparse
import sys
from typing import List, Optional

from tabulate import tabulate

from . import configure_logging
from ..core.errors import PrecalculationError
from ..measure.pcr11 import UKI_SECTION_ORDER
from ..parsers.authenticode import HASH_ALGORITHMS, authentihash
from ..parsers.pe_parser import parse_pe_headers, section_digests


def sections_main(args: Optional[List[str]] = None) -> int:
    """List the sections of a PE binary with their digests."""
    parser = argparse.ArgumentParser(description='List PE sections and their SHA-256 digests')
    parser.add_argument('pe_file', help='Path to the PE binary')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show verbose output')
    args = parser.parse_args(args)
    configure_logging(args.verbose)

    try:
        with open(args.pe_file, 'rb') as f:
            headers = parse_pe_headers(f)
            digests = section_digests(f)
    except (PrecalculationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    rows = []
    for section, digest in zip(headers.sections, digests):
        rows.append([
            section.name,
            f"{section.pointer_to_raw_data:#x}",
            section.size_of_raw_data,
            section.virtual_size,
            "yes" if section.name in UKI_SECTION_ORDER else "",
            digest.digest.hex(),
        ])

    print(f"{args.pe_file}: PE{'32+' if headers.is_pe32_plus else '32'}, {len(rows)} sections")
    print(tabulate(rows, headers=["Section", "Offset", "Raw size", "Virtual size", "PCR 11", "SHA-256"],
                   tablefmt="simple"))
    return 0


def authentihash_main(args: Optional[List[str]] = None) -> int:
    """Print the Authenticode digest of a PE binary."""
    parser = argparse.ArgumentParser(description='Calculate the Authenticode digest of a PE binary')
    parser.add_argument('pe_file', help='Path to the PE binary')
    parser.add_argument('--algorithm', '-a', default='sha256', choices=sorted(HASH_ALGORITHMS),
                        help='Hash algorithm (default: sha256)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show verbose output')
    args = parser.parse_args(args)
    configure_logging(args.verbose)

    try:
        with open(args.pe_file, 'rb') as f:
            digest = authentihash(f, args.algorithm)
    except (PrecalculationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(digest.hex())
    return 0


def main(args: Optional[List[str]] = None) -> int:
    if args is None:
        args = sys.argv[1:]
    commands = {'sections': sections_main, 'authentihash': authentihash_main}
    if not args or args[0] not in commands:
        print(f"Usage: {sys.argv[0]} {{{','.join(commands)}}} ...", file=sys.stderr)
        return 2
    return commands[args[0]](args[1:])


if __name__ == '__main__':
    sys.exit(main())
