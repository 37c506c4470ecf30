"""
Builders for small synthetic PE/COFF binaries used by the tests.
"""

import struct
from typing import List, Optional, Sequence, Tuple

DOS_HEADER_SIZE = 64
PE_OFFSET = 0x40
PE32_MAGIC = 0x10B
PE32_PLUS_MAGIC = 0x20B
NUMBER_OF_DATA_DIRECTORIES = 16
ALIGNMENT = 8

KERNEL_TEXT = bytes(range(256)) * 8
INITRD_DATA = b"initrd-cpio-archive" * 100
CMDLINE = b"console=ttyS0"


def _align(value: int, alignment: int = ALIGNMENT) -> int:
    return (value + alignment - 1) // alignment * alignment


def build_pe(sections: Sequence[Tuple[str, bytes]], pe32_plus: bool = True, checksum: int = 0,
             certificate: Optional[bytes] = None, trailing: bytes = b'',
             layout_order: Optional[Sequence[int]] = None) -> bytes:
    """
    Build a minimal PE/COFF image.

    Args:
        sections: (name, raw data) in section table order
        pe32_plus: Build a PE32+ (True) or PE32 (False) optional header
        checksum: Value of the optional header checksum field
        certificate: Certificate bytes to attach as a WIN_CERTIFICATE table
        trailing: Bytes appended after the last section (before any certificate)
        layout_order: On-disk order of the sections as indices into sections
    """
    magic = PE32_PLUS_MAGIC if pe32_plus else PE32_MAGIC
    data_directory_offset = 112 if pe32_plus else 96
    optional_header_size = data_directory_offset + NUMBER_OF_DATA_DIRECTORIES * 8
    section_table_offset = PE_OFFSET + 4 + 20 + optional_header_size
    size_of_headers = _align(section_table_offset + 40 * len(sections))

    if layout_order is None:
        layout_order = list(range(len(sections)))

    offsets = [0] * len(sections)
    position = size_of_headers
    for index in layout_order:
        offsets[index] = position
        position = _align(position + len(sections[index][1]))

    body = bytearray(position)
    struct.pack_into('<2s', body, 0, b'MZ')
    struct.pack_into('<I', body, 0x3C, PE_OFFSET)
    struct.pack_into('<4s', body, PE_OFFSET, b'PE\0\0')
    struct.pack_into('<HHIIIHH', body, PE_OFFSET + 4, 0x8664, len(sections), 0, 0, 0,
                     optional_header_size, 0x22)

    optional_header_offset = PE_OFFSET + 24
    struct.pack_into('<H', body, optional_header_offset, magic)
    struct.pack_into('<I', body, optional_header_offset + 60, size_of_headers)
    struct.pack_into('<I', body, optional_header_offset + 64, checksum)
    struct.pack_into('<I', body, optional_header_offset + (108 if pe32_plus else 92), NUMBER_OF_DATA_DIRECTORIES)

    for i, (name, data) in enumerate(sections):
        struct.pack_into('<8sIIII', body, section_table_offset + 40 * i, name.encode('ascii'),
                         len(data), 0x1000 * (i + 1), len(data), offsets[i])
        body[offsets[i]:offsets[i] + len(data)] = data

    image = bytes(body[:max(size_of_headers, max((o + len(d) for o, (_, d) in zip(offsets, sections)),
                                                 default=0))]) + trailing

    if certificate is not None:
        image = attach_certificate(image, certificate)
    return image


def _cert_dir_offset(image: bytes) -> int:
    magic = struct.unpack_from('<H', image, PE_OFFSET + 24)[0]
    return PE_OFFSET + 24 + (112 if magic == PE32_PLUS_MAGIC else 96) + 4 * 8


def attach_certificate(image: bytes, certificate: bytes) -> bytes:
    """Append a WIN_CERTIFICATE table the way signing tools do."""
    image = bytearray(image)
    image += bytes(_align(len(image)) - len(image))
    cert_address = len(image)
    table = struct.pack('<IHH', 8 + len(certificate), 0x0200, 0x0002) + certificate
    table += bytes(_align(len(table)) - len(table))
    image += table
    struct.pack_into('<II', image, _cert_dir_offset(image), cert_address, len(table))
    return bytes(image)


def strip_certificate(image: bytes) -> bytes:
    """Remove an attached certificate table and clear its directory entry."""
    image = bytearray(image)
    cert_dir = _cert_dir_offset(image)
    cert_address, _ = struct.unpack_from('<II', image, cert_dir)
    struct.pack_into('<II', image, cert_dir, 0, 0)
    return bytes(image[:cert_address])


def set_checksum(image: bytes, checksum: int) -> bytes:
    image = bytearray(image)
    struct.pack_into('<I', image, PE_OFFSET + 24 + 64, checksum)
    return bytes(image)


def build_kernel() -> bytes:
    return build_pe([(".text", KERNEL_TEXT), (".data", b"kernel-data" * 10)])


def build_uki(cmdline: Optional[bytes] = CMDLINE, initrd: Optional[bytes] = INITRD_DATA,
              linux=None, extra: Optional[List[Tuple[str, bytes]]] = None,
              certificate: Optional[bytes] = None) -> bytes:
    """
    Build a synthetic Unified Kernel Image.

    Passing None for cmdline or initrd omits that section; passing
    linux=False omits the .linux section.
    """
    if linux is None:
        linux = build_kernel()
    sections = [(".text", b"stub-code" * 32), (".sbat", b"sbat,1,SBAT Version\n")]
    sections.append((".osrel", b'ID=test\nVERSION_ID=1\n'))
    if cmdline is not None:
        sections.append((".cmdline", cmdline))
    if linux is not False:
        sections.append((".linux", linux))
    if initrd is not None:
        sections.append((".initrd", initrd))
    sections.extend(extra or [])
    return build_pe(sections, certificate=certificate)
