"""Shared fixtures: a builder for synthetic Mach-O images."""

import struct

import pytest


MH_MAGIC = 0xFEEDFACE
MH_MAGIC_64 = 0xFEEDFACF

CPU_TYPE_X86 = 7
CPU_SUBTYPE_X86_ALL = 3
MH_EXECUTE = 0x2


class MachOBuilder:
    """Assembles a Mach-O image command by command.

    Blobs (symbol tables, strings, symbol contents) are placed at absolute
    file offsets after the command table.
    """

    def __init__(
        self,
        is_64bit=False,
        little_endian=True,
        cputype=CPU_TYPE_X86,
        cpusubtype=CPU_SUBTYPE_X86_ALL,
        filetype=MH_EXECUTE,
        flags=0,
    ):
        self.is_64bit = is_64bit
        self.order = "<" if little_endian else ">"
        self.cputype = cputype
        self.cpusubtype = cpusubtype
        self.filetype = filetype
        self.flags = flags
        self.commands: list[bytes] = []
        self.blobs: dict[int, bytes] = {}

    def pack(self, fmt, *values) -> bytes:
        return struct.pack(self.order + fmt, *values)

    @property
    def header_size(self) -> int:
        return 32 if self.is_64bit else 28

    def command_offset(self, index: int) -> int:
        return self.header_size + sum(len(c) for c in self.commands[:index])

    def add_raw_command(self, data: bytes) -> "MachOBuilder":
        self.commands.append(data)
        return self

    def add_command(self, cmd: int, payload: bytes = b"", padding: int = 0) -> "MachOBuilder":
        cmdsize = 8 + len(payload) + padding
        return self.add_raw_command(
            self.pack("II", cmd, cmdsize) + payload + b"\x00" * padding
        )

    def add_segment(
        self,
        name,
        vmaddr=0,
        vmsize=0,
        fileoff=0,
        filesize=0,
        maxprot=7,
        initprot=5,
        nsects=0,
        flags=0,
    ) -> "MachOBuilder":
        word = "Q" if self.is_64bit else "I"
        cmd = 0x19 if self.is_64bit else 0x1
        payload = name.encode().ljust(16, b"\x00") + self.pack(
            word * 4 + "iiII",
            vmaddr,
            vmsize,
            fileoff,
            filesize,
            maxprot,
            initprot,
            nsects,
            flags,
        )
        return self.add_command(cmd, payload)

    def add_dylib(
        self,
        name,
        timestamp=2,
        current_version=0x10000,
        compatibility_version=0x10000,
        cmd=0xC,
    ) -> "MachOBuilder":
        fields = self.pack("IIII", 24, timestamp, current_version, compatibility_version)
        payload = fields + name.encode() + b"\x00"
        padding = -(8 + len(payload)) % 8
        return self.add_command(cmd, payload, padding)

    def add_symtab(self, symoff, nsyms, stroff, strsize) -> "MachOBuilder":
        return self.add_command(0x2, self.pack("IIII", symoff, nsyms, stroff, strsize))

    def nlist(self, name_offset, n_type=0x0F, value=0, n_sect=1, n_desc=0) -> bytes:
        return self.pack("iBBHI", name_offset, n_type, n_sect, n_desc, value)

    def add_blob(self, offset: int, data: bytes) -> "MachOBuilder":
        self.blobs[offset] = data
        return self

    def build(self, ncmds=None) -> bytes:
        table = b"".join(self.commands)
        magic = MH_MAGIC_64 if self.is_64bit else MH_MAGIC
        header = self.pack("I", magic) + self.pack(
            "iIIIII",
            self.cputype,
            self.cpusubtype,
            self.filetype,
            len(self.commands) if ncmds is None else ncmds,
            len(table),
            self.flags,
        )
        if self.is_64bit:
            header += self.pack("I", 0)

        data = bytearray(header + table)
        for offset, blob in sorted(self.blobs.items()):
            if len(data) < offset + len(blob):
                data.extend(b"\x00" * (offset + len(blob) - len(data)))
            data[offset : offset + len(blob)] = blob
        return bytes(data)


@pytest.fixture
def macho_builder():
    """The builder class, so tests can pick width and byte order."""
    return MachOBuilder


@pytest.fixture
def symbol_image():
    """A 32-bit little-endian image with one symbol ``main`` at 0x1000."""
    builder = MachOBuilder()
    builder.add_segment("__TEXT", vmaddr=0x1000, vmsize=0x1000, fileoff=0, filesize=0x1004)
    builder.add_dylib("/usr/lib/libSystem.B.dylib", current_version=0x4C90102)
    builder.add_symtab(symoff=0x200, nsyms=1, stroff=0x300, strsize=8)
    builder.add_command(0x1B, bytes(range(16)))
    builder.add_blob(0x200, builder.nlist(0, n_type=0x0F, value=0x1000))
    builder.add_blob(0x300, b"main\x00\x00\x00\x00")
    builder.add_blob(0x1000, b"\xde\xad\xbe\xef")
    return builder.build()


@pytest.fixture
def write_image(tmp_path):
    """Write image bytes to a file and return its path."""

    def write(data: bytes, name: str = "a.out"):
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return write
