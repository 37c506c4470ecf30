"""
PCR Precalculator Main Entry Point

This script provides a unified entry point to the commands of the PcrPrecalc
package.

Usage:
    python -m PcrPrecalc.main precalculate IMAGE [-o OUTPUT] [-u UKI_PATH] [--event-log FILE] [--config FILE]
    python -m PcrPrecalc.main predict-uki UKI_FILE [-o OUTPUT] [--event-log FILE] [--config FILE]
    python -m PcrPrecalc.main sections UKI_FILE
    python -m PcrPrecalc.main authentihash PE_FILE [--algorithm sha256]
    python -m PcrPrecalc.main compare MEASUREMENTS (--expected FILE | --tpm [--tcti TCTI])

Example:
    # Precalculate PCRs for an image, using systemd-dissect from PATH
    python -m PcrPrecalc.main precalculate image.raw -o measurements.json

    # Use a specific dissection executable
    DISSECT_TOOLCHAIN=/opt/systemd/bin/systemd-dissect python -m PcrPrecalc.main precalculate image.raw

    # Compare the prediction with the PCRs of the booted machine
    python -m PcrPrecalc.main compare measurements.json --tpm

Note:
    Only PCRs 4, 9 and 11 are predicted. PCRs 12, 13 and 15 are reported at
    their all-zero baseline, which is what an image booting without
    credentials, system extensions or userspace measurements shows.
"""

import sys
from typing import List, Optional

from .cli.compare_cli import main as compare_main
from .cli.pe_tools_cli import authentihash_main, sections_main
from .cli.precalculate_cli import main as precalculate_main, uki_main

COMMANDS = {
    'precalculate': (precalculate_main, 'Precalculate PCR measurements for a raw disk image'),
    'predict-uki': (uki_main, 'Precalculate PCR measurements for an extracted UKI'),
    'sections': (sections_main, 'List PE sections and their SHA-256 digests'),
    'authentihash': (authentihash_main, 'Calculate the Authenticode digest of a PE binary'),
    'compare': (compare_main, 'Compare measurements with expected or live TPM values'),
}


def print_help() -> None:
    print("usage: python -m PcrPrecalc.main <command> [options]\n")
    print("commands:")
    for name, (_, help_text) in COMMANDS.items():
        print(f"  {name:14s} {help_text}")


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the PCR precalculator.

    Args:
        args: Command line arguments (defaults to sys.argv if None)
    """
    if args is None:
        args = sys.argv[1:]

    if not args or args[0] in ('-h', '--help'):
        print_help()
        return 0

    command = COMMANDS.get(args[0])
    if command is None:
        print(f"Error: unknown command '{args[0]}'", file=sys.stderr)
        print_help()
        return 2

    return command[0](args[1:])


if __name__ == '__main__':
    sys.exit(main())
