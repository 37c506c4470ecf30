"""
Measurements document storage.

The measurements document maps each predicted PCR index to its lower-case hex
SHA-256 value:

    {
      "4": "…",
      "9": "…",
      "11": "…"
    }
"""

import json
import os
import re
from typing import Dict, List, Optional, Any

from ..measure.simulator import DIGEST_SIZE, PCR_COUNT, Simulator
from ..utils.utils import compare_pcr_values

_HEX_DIGEST = re.compile(r'^[0-9a-fA-F]{%d}$' % (DIGEST_SIZE * 2))


def _write_json(path: str, data: Any) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
        f.write('\n')


def write_measurements(simulator: Simulator, output_file: str) -> Dict[str, str]:
    """
    Save the predicted PCRs of a simulator to a JSON file.

    Returns:
        The document that was written
    """
    measurements = simulator.to_measurements()
    _write_json(output_file, measurements)
    return measurements


def write_event_log(simulator: Simulator, output_file: str) -> List[dict]:
    """Save the simulator event log to a JSON file."""
    entries = simulator.event_log_entries()
    _write_json(output_file, entries)
    return entries


def parse_measurements(data: Any, source: str = "<measurements>") -> Dict[int, str]:
    """
    Validate a measurements document.

    Returns:
        A mapping of PCR index to lower-case hex value

    Raises:
        ValueError: If the document is not a mapping of PCR index to SHA-256 hex digest
    """
    if not isinstance(data, dict):
        raise ValueError(f"{source}: measurements must be a JSON object")

    measurements = {}
    for key, value in data.items():
        try:
            index = int(key)
        except (TypeError, ValueError):
            raise ValueError(f"{source}: invalid PCR index {key!r}") from None
        if not 0 <= index < PCR_COUNT:
            raise ValueError(f"{source}: PCR index {index} out of range")
        if not isinstance(value, str) or not _HEX_DIGEST.match(value):
            raise ValueError(f"{source}: PCR {index} value is not a SHA-256 hex digest")
        measurements[index] = value.lower()
    return measurements


def load_measurements(measurements_file: str) -> Dict[int, str]:
    """Load and validate a measurements document from a JSON file."""
    with open(measurements_file, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{measurements_file}: invalid JSON: {e}") from e
    return parse_measurements(data, measurements_file)


def compare_measurements(predicted: Dict[int, str], actual: Dict[int, Optional[str]]) -> List[Dict[str, Any]]:
    """
    Find the PCRs whose predicted value differs from the actual value.

    Args:
        predicted: Predicted PCR values
        actual: Actual PCR values; a missing or None value counts as a mismatch

    Returns:
        One entry per mismatching PCR, in index order
    """
    mismatches = []
    for index in sorted(predicted):
        actual_value = actual.get(index)
        if actual_value is None:
            mismatches.append({'pcr_index': index, 'predicted': predicted[index], 'actual': None,
                               'status': 'missing'})
        elif not compare_pcr_values(predicted[index], actual_value):
            mismatches.append({'pcr_index': index, 'predicted': predicted[index],
                               'actual': actual_value.lower(), 'status': 'mismatch'})
    return mismatches
