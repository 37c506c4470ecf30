"""
Configuration for PCR precalculation runs.

Values come from built-in defaults, an optional YAML file and finally the
command line. Example config.yaml:

    uki_path: /boot/EFI/BOOT/BOOTX64.EFI
    dissect_toolchain: /usr/bin/systemd-dissect
    timeout: 300
    output_file: measurements.json
    section_order: [.linux, .osrel, .cmdline, .initrd, .uname, .sbat]
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple

import yaml

DEFAULT_UKI_PATH = "/boot/EFI/BOOT/BOOTX64.EFI"


@dataclass(frozen=True)
class PrecalcConfig:
    """Settings for one precalculation run."""
    uki_path: str = DEFAULT_UKI_PATH
    dissect_toolchain: Optional[str] = None
    section_order: Optional[Tuple[str, ...]] = None
    timeout: Optional[float] = None
    output_file: Optional[str] = None

    def merged(self, **overrides: Any) -> 'PrecalcConfig':
        """Return a copy with every override that is not None applied."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


def _validate(data: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(PrecalcConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    for key in ('uki_path', 'dissect_toolchain', 'output_file'):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValueError(f"'{key}' must be a string")

    if data.get('timeout') is not None:
        timeout = data['timeout']
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("'timeout' must be a positive number of seconds")
        data['timeout'] = float(timeout)

    if data.get('section_order') is not None:
        order = data['section_order']
        if not isinstance(order, list) or not all(isinstance(name, str) for name in order):
            raise ValueError("'section_order' must be a list of section names")
        if len(set(order)) != len(order):
            raise ValueError("'section_order' contains duplicate section names")
        data['section_order'] = tuple(order)

    return data


def load_config(config_file: str) -> PrecalcConfig:
    """
    Load a precalculation configuration from a YAML file.

    Raises:
        OSError: If the file cannot be read
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the document has unknown keys or invalid values
    """
    with open(config_file, 'r') as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file '{config_file}' must contain a mapping")

    return PrecalcConfig(**_validate(dict(data)))
