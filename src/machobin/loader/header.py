"""Mach-O header decoding and code tables."""

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import BinaryIO, Union

from machobin.loader.errors import FormatError
from machobin.loader.reader import make_reader


logger = logging.getLogger(__name__)

# Mach-O magic numbers, as read big-endian from offset 0
MH_MAGIC = 0xFEEDFACE
MH_CIGAM = 0xCEFAEDFE  # Byte-swapped
MH_MAGIC_64 = 0xFEEDFACF
MH_CIGAM_64 = 0xCFFAEDFE  # Byte-swapped

MAGICS = {
    MH_MAGIC: (False, False),
    MH_CIGAM: (False, True),
    MH_MAGIC_64: (True, False),
    MH_CIGAM_64: (True, True),
}

HEADER_SIZE = 28
HEADER_SIZE_64 = 32

CPU_SUBTYPE_MASK = 0xFF000000


class CPUType(IntEnum):
    """CPU type codes."""

    ANY = -1
    VAX = 1
    MC680x0 = 6
    X86 = 7
    MIPS = 8
    MC98000 = 10
    HPPA = 11
    ARM = 12
    MC88000 = 13
    SPARC = 14
    I860 = 15
    POWERPC = 18
    X86_64 = 0x01000007
    ARM64 = 0x0100000C
    POWERPC64 = 0x01000012


class X86SubType(IntEnum):
    ALL = 3
    ARCH1 = 4
    X86_64_H = 8  # Haswell


class ARMSubType(IntEnum):
    ALL = 0
    V4T = 5
    V6 = 6
    V5TEJ = 7
    XSCALE = 8
    V7 = 9
    V7F = 10
    V7S = 11
    V7K = 12
    V6M = 14
    V7M = 15
    V7EM = 16


class ARM64SubType(IntEnum):
    ALL = 0
    V8 = 1
    E = 2


class PowerPCSubType(IntEnum):
    ALL = 0
    PPC601 = 1
    PPC750 = 9
    PPC7400 = 10
    PPC970 = 100


CPU_SUBTYPES: dict[CPUType, type[IntEnum]] = {
    CPUType.X86: X86SubType,
    CPUType.X86_64: X86SubType,
    CPUType.ARM: ARMSubType,
    CPUType.ARM64: ARM64SubType,
    CPUType.POWERPC: PowerPCSubType,
    CPUType.POWERPC64: PowerPCSubType,
}


class FileType(IntEnum):
    """Mach-O file types."""

    OBJECT = 0x1  # Relocatable object file
    EXECUTE = 0x2  # Demand paged executable
    FVMLIB = 0x3  # Fixed VM shared library
    CORE = 0x4
    PRELOAD = 0x5  # Preloaded executable
    DYLIB = 0x6
    DYLINKER = 0x7
    BUNDLE = 0x8
    DYLIB_STUB = 0x9  # Stub for static linking only, no section contents
    DSYM = 0xA  # Companion file with only debug sections
    KEXT_BUNDLE = 0xB
    FILESET = 0xC


class HeaderFlags(IntFlag):
    """Mach-O header flag bits."""

    NOUNDEFS = 0x1
    INCRLINK = 0x2
    DYLDLINK = 0x4
    BINDATLOAD = 0x8
    PREBOUND = 0x10
    SPLIT_SEGS = 0x20
    LAZY_INIT = 0x40
    TWOLEVEL = 0x80
    FORCE_FLAT = 0x100
    NOMULTIDEFS = 0x200
    NOFIXPREBINDING = 0x400
    PREBINDABLE = 0x800
    ALLMODSBOUND = 0x1000
    SUBSECTIONS_VIA_SYMBOLS = 0x2000
    CANONICAL = 0x4000
    WEAK_DEFINES = 0x8000
    BINDS_TO_WEAK = 0x10000
    ALLOW_STACK_EXECUTION = 0x20000
    ROOT_SAFE = 0x40000
    SETUID_SAFE = 0x80000
    NO_REEXPORTED_DYLIBS = 0x100000
    PIE = 0x200000
    DEAD_STRIPPABLE_DYLIB = 0x400000
    HAS_TLV_DESCRIPTORS = 0x800000
    NO_HEAP_EXECUTION = 0x1000000
    APP_EXTENSION_SAFE = 0x2000000


@dataclass(frozen=True)
class UnknownCode:
    """A code with no entry in its lookup table."""

    value: int

    @property
    def name(self) -> str:
        return f"UNKNOWN({self.value})"

    def __str__(self) -> str:
        return self.name


Code = Union[IntEnum, UnknownCode]


def lookup(table: type[IntEnum], value: int) -> Code:
    """Map ``value`` onto ``table``, or wrap it in :class:`UnknownCode`."""
    try:
        return table(value)
    except ValueError:
        return UnknownCode(value)


def lookup_subtype(cputype: Code, value: int) -> Code:
    """Resolve a CPU subtype within its CPU family, ignoring capability bits."""
    table = CPU_SUBTYPES.get(cputype) if isinstance(cputype, CPUType) else None
    if table is None:
        return UnknownCode(value)
    return lookup(table, value & ~CPU_SUBTYPE_MASK)


def read_magic(stream: BinaryIO) -> int | None:
    """Read the big-endian magic at offset 0, or None if the file is too short."""
    stream.seek(0)
    data = stream.read(4)
    if len(data) < 4:
        return None
    return struct.unpack(">I", data)[0]


def is_supported_magic(magic: int | None) -> bool:
    return magic in MAGICS


@dataclass(frozen=True)
class MachOHeader:
    """Decoded Mach-O header."""

    magic: int
    is_64bit: bool
    little_endian: bool
    cputype: Code
    cpusubtype: Code
    filetype: Code
    ncmds: int
    sizeofcmds: int
    flags: int
    reserved: int = 0

    @classmethod
    def read(cls, stream: BinaryIO) -> "MachOHeader":
        """Decode the header from the start of ``stream``.

        Leaves the stream positioned at the first load command.
        """
        magic = read_magic(stream)
        if magic is None:
            raise EOFError("Unexpected end of file at 0x0: wanted 4 bytes of magic")
        if not is_supported_magic(magic):
            raise FormatError(f"unexpected magic value {magic:#010x}")

        is_64bit, little_endian = MAGICS[magic]
        reader = make_reader(stream, little_endian)

        cputype = lookup(CPUType, reader.read_i32())
        cpusubtype = lookup_subtype(cputype, reader.read_u32())
        filetype = lookup(FileType, reader.read_u32())
        ncmds = reader.read_u32()
        sizeofcmds = reader.read_u32()
        flags = reader.read_u32()
        reserved = reader.read_u32() if is_64bit else 0

        header = cls(
            magic=magic,
            is_64bit=is_64bit,
            little_endian=little_endian,
            cputype=cputype,
            cpusubtype=cpusubtype,
            filetype=filetype,
            ncmds=ncmds,
            sizeofcmds=sizeofcmds,
            flags=flags,
            reserved=reserved,
        )
        logger.debug(
            "Mach-O header: %s-bit %s-endian, %s/%s %s, %d commands (%d bytes)",
            64 if is_64bit else 32,
            "little" if little_endian else "big",
            cputype.name,
            cpusubtype.name,
            filetype.name,
            ncmds,
            sizeofcmds,
        )
        return header

    @property
    def size(self) -> int:
        return HEADER_SIZE_64 if self.is_64bit else HEADER_SIZE

    @property
    def header_flags(self) -> HeaderFlags:
        return HeaderFlags(self.flags)

    @property
    def flag_names(self) -> list[str]:
        return [flag.name for flag in HeaderFlags if flag in self.header_flags]
