"""
PE/COFF Section Extractor

This module parses the headers and section table of a Portable Executable and
exposes its sections as digests and as bounded byte streams. It is written for
attacker-controlled input: every header field that is used to address the file
is bounds-checked and every failure is reported as MalformedBinary.

Example usage:
    with open("uki.efi", "rb") as f:
        for section in section_digests(f):
            print(section.name, section.digest.hex())

        cmdline = section_reader(f, ".cmdline").read()
"""

import hashlib
import io
import logging
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from ..core.errors import MalformedBinary, SectionNotFound
from ..core.models import PESection, SectionDigest

logger = logging.getLogger(__name__)

DOS_HEADER_SIZE = 64
DOS_MAGIC = b'MZ'
E_LFANEW_OFFSET = 0x3C
PE_SIGNATURE = b'PE\0\0'
COFF_HEADER_SIZE = 20
SECTION_HEADER_SIZE = 40
SECTION_NAME_SIZE = 8

PE32_MAGIC = 0x10B
PE32_PLUS_MAGIC = 0x20B

# Offsets relative to the start of the optional header
CHECKSUM_OFFSET = 64
SIZE_OF_HEADERS_OFFSET = 60
NUMBER_OF_RVA_AND_SIZES_OFFSET = {PE32_MAGIC: 92, PE32_PLUS_MAGIC: 108}
DATA_DIRECTORY_OFFSET = {PE32_MAGIC: 96, PE32_PLUS_MAGIC: 112}

DATA_DIRECTORY_SIZE = 8
IMAGE_DIRECTORY_ENTRY_SECURITY = 4

CHUNK_SIZE = 1024 * 1024


@dataclass
class PEHeaders:
    """Parsed layout of a PE/COFF file."""
    file_size: int
    pe_offset: int
    optional_header_offset: int
    magic: int
    checksum_offset: int
    size_of_headers: int
    cert_dir_offset: Optional[int] = None
    cert_table_address: int = 0
    cert_table_size: int = 0
    sections: List[PESection] = field(default_factory=list)

    @property
    def is_pe32_plus(self) -> bool:
        return self.magic == PE32_PLUS_MAGIC

    @property
    def has_certificate_table(self) -> bool:
        return self.cert_table_address != 0 and self.cert_table_size != 0

    def find_section(self, name: str) -> Optional[PESection]:
        """
        Return the first section whose name matches exactly.

        The name is compared as ASCII, right-padded with NUL to 8 bytes.
        """
        try:
            raw_name = name.encode('ascii')
        except UnicodeEncodeError:
            return None
        if len(raw_name) > SECTION_NAME_SIZE:
            return None
        raw_name = raw_name.ljust(SECTION_NAME_SIZE, b'\0')
        for section in self.sections:
            if section.raw_name == raw_name:
                return section
        return None


def stream_size(stream: BinaryIO) -> int:
    """Return the size of a seekable stream."""
    position = stream.tell()
    size = stream.seek(0, io.SEEK_END)
    stream.seek(position)
    return size


def read_at(stream: BinaryIO, offset: int, size: int) -> bytes:
    """Read exactly size bytes at offset, or raise MalformedBinary."""
    stream.seek(offset)
    data = stream.read(size)
    if data is None or len(data) != size:
        raise MalformedBinary(f"truncated read of {size} bytes at offset {offset:#x}")
    return data


def hash_range(stream: BinaryIO, hasher, offset: int, size: int) -> None:
    """Feed size bytes starting at offset into hasher, reading in chunks."""
    stream.seek(offset)
    remaining = size
    while remaining > 0:
        chunk = stream.read(min(CHUNK_SIZE, remaining))
        if not chunk:
            raise MalformedBinary(f"unexpected end of file at offset {offset + size - remaining:#x}")
        hasher.update(chunk)
        remaining -= len(chunk)


def _parse_section_table(data: bytes, count: int) -> List[PESection]:
    sections = []
    for i in range(count):
        (raw_name, virtual_size, virtual_address, size_of_raw_data,
         pointer_to_raw_data) = struct.unpack_from('<8sIIII', data, i * SECTION_HEADER_SIZE)
        sections.append(PESection(
            name=raw_name.rstrip(b'\0').decode('ascii', errors='replace'),
            raw_name=raw_name,
            virtual_size=virtual_size,
            virtual_address=virtual_address,
            size_of_raw_data=size_of_raw_data,
            pointer_to_raw_data=pointer_to_raw_data,
        ))
    return sections


def parse_pe_headers(stream: BinaryIO) -> PEHeaders:
    """
    Parse the MS-DOS stub, PE signature, COFF header, optional header and
    section table of a PE/COFF binary.

    Args:
        stream: Seekable binary stream positioned anywhere

    Returns:
        PEHeaders describing the file layout

    Raises:
        MalformedBinary: If the headers are truncated, carry an unknown
                         signature or magic, or address bytes outside the file
    """
    file_size = stream_size(stream)

    dos_header = read_at(stream, 0, DOS_HEADER_SIZE)
    if dos_header[:2] != DOS_MAGIC:
        raise MalformedBinary("missing MS-DOS header signature")
    pe_offset = struct.unpack_from('<I', dos_header, E_LFANEW_OFFSET)[0]
    if pe_offset + len(PE_SIGNATURE) + COFF_HEADER_SIZE > file_size:
        raise MalformedBinary(f"PE header offset {pe_offset:#x} beyond end of file")

    if read_at(stream, pe_offset, len(PE_SIGNATURE)) != PE_SIGNATURE:
        raise MalformedBinary("missing PE signature")

    coff_header = read_at(stream, pe_offset + len(PE_SIGNATURE), COFF_HEADER_SIZE)
    _, number_of_sections, _, _, _, size_of_optional_header, _ = struct.unpack('<HHIIIHH', coff_header)

    optional_header_offset = pe_offset + len(PE_SIGNATURE) + COFF_HEADER_SIZE
    if size_of_optional_header < 2:
        raise MalformedBinary("optional header missing")
    optional_header = read_at(stream, optional_header_offset, size_of_optional_header)

    magic = struct.unpack_from('<H', optional_header, 0)[0]
    if magic not in DATA_DIRECTORY_OFFSET:
        raise MalformedBinary(f"unknown optional header magic {magic:#x}")
    data_directory_offset = DATA_DIRECTORY_OFFSET[magic]
    if size_of_optional_header < data_directory_offset:
        raise MalformedBinary(f"optional header too small ({size_of_optional_header} bytes)")

    size_of_headers = struct.unpack_from('<I', optional_header, SIZE_OF_HEADERS_OFFSET)[0]
    number_of_rva_and_sizes = struct.unpack_from('<I', optional_header, NUMBER_OF_RVA_AND_SIZES_OFFSET[magic])[0]

    headers = PEHeaders(
        file_size=file_size,
        pe_offset=pe_offset,
        optional_header_offset=optional_header_offset,
        magic=magic,
        checksum_offset=optional_header_offset + CHECKSUM_OFFSET,
        size_of_headers=size_of_headers,
    )

    if number_of_rva_and_sizes > IMAGE_DIRECTORY_ENTRY_SECURITY:
        cert_entry = data_directory_offset + IMAGE_DIRECTORY_ENTRY_SECURITY * DATA_DIRECTORY_SIZE
        if cert_entry + DATA_DIRECTORY_SIZE > size_of_optional_header:
            raise MalformedBinary("certificate table directory outside the optional header")
        headers.cert_dir_offset = optional_header_offset + cert_entry
        headers.cert_table_address, headers.cert_table_size = struct.unpack_from('<II', optional_header, cert_entry)
        if headers.has_certificate_table and \
                headers.cert_table_address + headers.cert_table_size > file_size:
            raise MalformedBinary("certificate table extends beyond end of file")

    section_table_offset = optional_header_offset + size_of_optional_header
    section_table_size = number_of_sections * SECTION_HEADER_SIZE
    if section_table_offset + section_table_size > file_size:
        raise MalformedBinary("section table extends beyond end of file")
    section_table = read_at(stream, section_table_offset, section_table_size)
    headers.sections = _parse_section_table(section_table, number_of_sections)

    for section in headers.sections:
        if section.size_of_raw_data and section.end_of_raw_data > file_size:
            raise MalformedBinary(f"section {section.name!r} raw data extends beyond end of file")

    if size_of_headers > file_size:
        raise MalformedBinary(f"SizeOfHeaders {size_of_headers:#x} beyond end of file")

    logger.debug(f"Parsed PE{'32+' if headers.is_pe32_plus else '32'} with {number_of_sections} sections")
    return headers


def section_digests(stream: BinaryIO) -> List[SectionDigest]:
    """
    Return the SHA-256 digest of every section's on-disk bytes.

    Args:
        stream: Seekable binary stream over a PE/COFF file

    Returns:
        Section digests in section table order
    """
    headers = parse_pe_headers(stream)
    digests = []
    for section in headers.sections:
        hasher = hashlib.sha256()
        hash_range(stream, hasher, section.pointer_to_raw_data, section.size_of_raw_data)
        digests.append(SectionDigest(name=section.name, size=section.size_of_raw_data,
                                     digest=hasher.digest()))
    return digests


class SectionReader(io.RawIOBase):
    """Read-only, seekable view bounded to a byte range of another stream."""

    def __init__(self, stream: BinaryIO, offset: int, size: int):
        super().__init__()
        self._stream = stream
        self._offset = offset
        self._size = size
        self._position = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        elif whence == io.SEEK_END:
            position = self._size + offset
        else:
            raise ValueError(f"invalid whence {whence}")
        if position < 0:
            raise ValueError(f"negative seek position {position}")
        self._position = position
        return position

    def readinto(self, buffer) -> int:
        remaining = self._size - self._position
        if remaining <= 0:
            return 0
        size = min(len(buffer), remaining)
        self._stream.seek(self._offset + self._position)
        data = self._stream.read(size)
        buffer[:len(data)] = data
        self._position += len(data)
        return len(data)


def section_reader(stream: BinaryIO, name: str) -> SectionReader:
    """
    Return a stream bounded to the on-disk bytes of the named section.

    Args:
        stream: Seekable binary stream over a PE/COFF file
        name: Exact section name, e.g. ".linux"

    Raises:
        SectionNotFound: If no section has that name
    """
    headers = parse_pe_headers(stream)
    section = headers.find_section(name)
    if section is None:
        raise SectionNotFound(name)
    return SectionReader(stream, section.pointer_to_raw_data, section.size_of_raw_data)
