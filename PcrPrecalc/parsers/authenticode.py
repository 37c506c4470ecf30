"""
Authenticode image hash

Firmware identifies an EFI application by its Authenticode digest before any
signature is checked. The digest covers the whole image except the checksum
field, the certificate table directory entry and the attached certificate
table, so it does not change when an image is signed, re-signed or has its
signature stripped.
"""

import logging
from typing import BinaryIO, Union

from cryptography.hazmat.primitives import hashes

from ..core.errors import MalformedBinary
from .pe_parser import DATA_DIRECTORY_SIZE, hash_range, parse_pe_headers

logger = logging.getLogger(__name__)

CHECKSUM_SIZE = 4

HASH_ALGORITHMS = {
    'sha1': hashes.SHA1,
    'sha256': hashes.SHA256,
    'sha384': hashes.SHA384,
    'sha512': hashes.SHA512,
}


def get_hash_algorithm(algorithm: Union[str, hashes.HashAlgorithm]) -> hashes.HashAlgorithm:
    """Return a cryptography hash algorithm for a name or algorithm instance."""
    if isinstance(algorithm, hashes.HashAlgorithm):
        return algorithm
    try:
        return HASH_ALGORITHMS[algorithm.lower()]()
    except (KeyError, AttributeError):
        raise ValueError(f"Unsupported hash algorithm: {algorithm!r}. "
                         f"Choose one of {', '.join(sorted(HASH_ALGORITHMS))}") from None


def authentihash(stream: BinaryIO, hash_algorithm: Union[str, hashes.HashAlgorithm] = 'sha256') -> bytes:
    """
    Compute the Authenticode digest of a PE/COFF image.

    Args:
        stream: Seekable binary stream over the image (a file or a section reader)
        hash_algorithm: cryptography hash algorithm or its name

    Returns:
        The raw digest bytes

    Raises:
        MalformedBinary: If the headers cannot be parsed or the hashed regions
                         do not fit in the file
    """
    algorithm = get_hash_algorithm(hash_algorithm)
    headers = parse_pe_headers(stream)
    digest = hashes.Hash(algorithm)

    checksum_end = headers.checksum_offset + CHECKSUM_SIZE
    if headers.cert_dir_offset is not None:
        header_skip_start = headers.cert_dir_offset
        header_skip_end = headers.cert_dir_offset + DATA_DIRECTORY_SIZE
    else:
        header_skip_start = header_skip_end = checksum_end
    if header_skip_end > headers.size_of_headers:
        raise MalformedBinary(f"SizeOfHeaders {headers.size_of_headers:#x} does not cover the optional header")

    # Header, minus the checksum and the certificate table directory entry
    hash_range(stream, digest, 0, headers.checksum_offset)
    hash_range(stream, digest, checksum_end, header_skip_start - checksum_end)
    hash_range(stream, digest, header_skip_end, headers.size_of_headers - header_skip_end)

    # Sections in file order, which may differ from the section table order
    sections = sorted((s for s in headers.sections if s.size_of_raw_data > 0),
                      key=lambda s: s.pointer_to_raw_data)
    end_of_data = headers.size_of_headers
    for section in sections:
        hash_range(stream, digest, section.pointer_to_raw_data, section.size_of_raw_data)
        end_of_data = max(end_of_data, section.end_of_raw_data)

    # Trailing data, minus the attached certificate table
    if headers.has_certificate_table:
        cert_start = headers.cert_table_address
        cert_end = cert_start + headers.cert_table_size
        if cert_start < end_of_data:
            raise MalformedBinary("certificate table overlaps section data")
        hash_range(stream, digest, end_of_data, cert_start - end_of_data)
        hash_range(stream, digest, cert_end, headers.file_size - cert_end)
    else:
        hash_range(stream, digest, end_of_data, headers.file_size - end_of_data)

    result = digest.finalize()
    logger.debug(f"Authenticode {algorithm.name} digest: {result.hex()}")
    return result
