#!/usr/bin/env python3
"""
PCR Precalculation CLI

Precalculate the PCR 4, 9 and 11 values for the UKI inside a raw disk image,
or for an already extracted UKI file.

Usage:
    python -m PcrPrecalc.cli.precalculate_cli IMAGE [options]

Options:
    --output-file, -o FILE  Write the measurements document to FILE
    --uki-path, -u PATH     Path of the UKI inside the image
    --event-log FILE        Write the simulated event log to FILE
    --config FILE           YAML configuration file
    --toolchain PATH        Disk dissection executable (overrides DISSECT_TOOLCHAIN)
    --timeout SECONDS       Timeout for the disk dissection executable
    --verbose, -v           Show verbose output
"""

import argparse
import json
import sys
from typing import List, Optional

import yaml

from . import configure_logging
from ..core.config import PrecalcConfig, load_config
from ..core.errors import PrecalculationError
from ..database.measurements import write_event_log, write_measurements
from ..extract.dissect import DEFAULT_DISSECT_TOOLCHAIN, load_toolchain
from ..measure.simulator import Simulator
from ..measured_boot import precalculate_pcrs, precalculate_uki_pcrs
from ..utils.utils import hexdump


def _load_config(config_file: Optional[str]) -> PrecalcConfig:
    if config_file:
        return load_config(config_file)
    return PrecalcConfig()


def _write_outputs(simulator: Simulator, output_file: Optional[str], event_log_file: Optional[str],
                   verbose: bool) -> None:
    if verbose:
        print("\nEvent log:", file=sys.stderr)
        for pcr_index in simulator.written_indices():
            events = simulator.get_events_by_pcr(pcr_index)
            print(f"  PCR[{pcr_index:2d}] ({len(events)} events)", file=sys.stderr)
            for event in events:
                print(f"    {event.digest.hex()}  {event.description}", file=sys.stderr)
                if event.raw_payload is not None:
                    for line in hexdump(event.raw_payload):
                        print(f"        {line}", file=sys.stderr)

    if output_file:
        write_measurements(simulator, output_file)
        print(f"Wrote precalculated measurements to {output_file}")
    else:
        print(json.dumps(simulator.to_measurements(), indent=2))

    if event_log_file:
        write_event_log(simulator, event_log_file)
        print(f"Wrote event log to {event_log_file}")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--output-file', '-o', help='Output file for the precalculated measurements')
    parser.add_argument('--event-log', help='Output file for the simulated event log')
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show verbose output')


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Precalculate TPM PCR measurements for an image')
    parser.add_argument('image', help='Path to the raw disk image')
    parser.add_argument('--uki-path', '-u', help='Path to the UKI file in the image')
    parser.add_argument('--toolchain', help='Disk dissection executable (default: $DISSECT_TOOLCHAIN '
                                            f'or {DEFAULT_DISSECT_TOOLCHAIN})')
    parser.add_argument('--timeout', type=float, help='Timeout in seconds for the dissection executable')
    _add_common_arguments(parser)
    return parser.parse_args(args)


def parse_uki_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Precalculate TPM PCR measurements for an extracted UKI')
    parser.add_argument('uki', help='Path to the UKI EFI binary')
    _add_common_arguments(parser)
    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for precalculating the PCRs of a disk image."""
    args = parse_args(args)
    configure_logging(args.verbose)

    try:
        config = _load_config(args.config).merged(
            uki_path=args.uki_path,
            dissect_toolchain=args.toolchain,
            timeout=args.timeout,
            output_file=args.output_file,
        )

        if args.toolchain:
            toolchain = load_toolchain(fallback=args.toolchain, environ={})
        else:
            toolchain = load_toolchain(fallback=config.dissect_toolchain or DEFAULT_DISSECT_TOOLCHAIN)

        simulator = precalculate_pcrs(
            toolchain,
            config.uki_path,
            args.image,
            sink=sys.stderr,
            section_order=config.section_order,
            timeout=config.timeout,
        )
        _write_outputs(simulator, config.output_file, args.event_log, args.verbose)
    except (PrecalculationError, OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def uki_main(args: Optional[List[str]] = None) -> int:
    """Main entry point for precalculating the PCRs of an extracted UKI."""
    args = parse_uki_args(args)
    configure_logging(args.verbose)

    try:
        config = _load_config(args.config).merged(output_file=args.output_file)
        simulator = precalculate_uki_pcrs(args.uki, sink=sys.stderr, section_order=config.section_order)
        _write_outputs(simulator, config.output_file, args.event_log, args.verbose)
    except (PrecalculationError, OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
