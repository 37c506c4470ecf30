"""
Disk image dissection

This module copies a file out of a raw disk image with systemd-dissect (or a
compatible executable). Partition and filesystem handling is left entirely to
the external tool.
"""

import os
import shutil
import subprocess
import tempfile
import logging
from typing import Callable, Mapping, Optional

from ..core.errors import ExtractionFailed, ToolchainUnavailable

logger = logging.getLogger(__name__)

DISSECT_TOOLCHAIN_ENV = "DISSECT_TOOLCHAIN"
DEFAULT_DISSECT_TOOLCHAIN = "systemd-dissect"

# (image_file, path_in_image) -> file contents
Extractor = Callable[[str, str], bytes]


def load_toolchain(env_key: str = DISSECT_TOOLCHAIN_ENV, fallback: str = DEFAULT_DISSECT_TOOLCHAIN,
                   environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    Resolve the dissection executable.

    Args:
        env_key: Environment variable that overrides the executable
        fallback: Executable name used when the variable is unset or empty
        environ: Environment to read (defaults to os.environ)

    Returns:
        The absolute path of the executable, or None if it cannot be found
    """
    if environ is None:
        environ = os.environ
    toolchain = environ.get(env_key) or fallback
    resolved = shutil.which(toolchain)
    if resolved is None:
        logger.warning(f"Dissection toolchain {toolchain!r} not found")
        return None
    return os.path.abspath(resolved)


def copy_from(toolchain: str, image_file: str, path_in_image: str, output_file: str,
              timeout: Optional[float] = None) -> None:
    """
    Copy a file out of a raw disk image.

    Runs: <toolchain> --copy-from <image_file> <path_in_image> <output_file>

    Raises:
        ToolchainUnavailable: If no toolchain is given or it cannot be executed
        ExtractionFailed: If the tool fails, times out or produces no output
    """
    if not toolchain:
        raise ToolchainUnavailable("no disk dissection toolchain available "
                                   f"(install {DEFAULT_DISSECT_TOOLCHAIN} or set {DISSECT_TOOLCHAIN_ENV})")

    command = [toolchain, "--copy-from", image_file, path_in_image, output_file]
    logger.info(f"Running: {' '.join(command)}")
    try:
        subprocess.run(command, capture_output=True, text=True, check=True, timeout=timeout)
    except FileNotFoundError as e:
        raise ToolchainUnavailable(f"cannot execute {toolchain}: {e}") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise ExtractionFailed(f"{os.path.basename(toolchain)} exited with status {e.returncode} "
                               f"copying {path_in_image} from {image_file}: {stderr}") from e
    except subprocess.TimeoutExpired as e:
        raise ExtractionFailed(f"{os.path.basename(toolchain)} timed out after {timeout}s "
                               f"copying {path_in_image} from {image_file}") from e

    if not os.path.isfile(output_file):
        raise ExtractionFailed(f"{path_in_image} was not extracted from {image_file}")


class DissectExtractor:
    """Extractor backed by an external dissection executable."""

    def __init__(self, toolchain: Optional[str], timeout: Optional[float] = None):
        self.toolchain = toolchain
        self.timeout = timeout

    def __call__(self, image_file: str, path_in_image: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="pcr-dissect-") as workdir:
            output_file = os.path.join(workdir, os.path.basename(path_in_image) or "extracted")
            copy_from(self.toolchain, image_file, path_in_image, output_file, timeout=self.timeout)
            with open(output_file, 'rb') as f:
                return f.read()
