"""Mach-O binary format parser."""

import io
import logging
import mmap
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, TextIO, Union

from machobin.loader.commands import (
    DataInCodeCommand,
    DyldInfoCommand,
    DylibCommand,
    DysymtabCommand,
    FunctionStartsCommand,
    LoadCommand,
    LoadCommandType,
    SourceVersionCommand,
    UuidCommand,
    VersionMinCommand,
)
from machobin.loader.errors import FormatError
from machobin.loader.header import MachOHeader, is_supported_magic, read_magic
from machobin.loader.reader import make_reader, read_c_string_at
from machobin.loader.segments import SegmentCommand
from machobin.loader.symbols import Symbol, SymtabCommand


logger = logging.getLogger(__name__)

AnyLoadCommand = Union[
    SegmentCommand,
    DylibCommand,
    DyldInfoCommand,
    SymtabCommand,
    DysymtabCommand,
    UuidCommand,
    VersionMinCommand,
    SourceVersionCommand,
    FunctionStartsCommand,
    DataInCodeCommand,
]

COMMAND_TYPES: dict[int, type[LoadCommand]] = {
    LoadCommandType.LC_SEGMENT: SegmentCommand,
    LoadCommandType.LC_SEGMENT_64: SegmentCommand,
    LoadCommandType.LC_ID_DYLIB: DylibCommand,
    LoadCommandType.LC_LOAD_DYLIB: DylibCommand,
    LoadCommandType.LC_DYLD_INFO_ONLY: DyldInfoCommand,
    LoadCommandType.LC_SYMTAB: SymtabCommand,
    LoadCommandType.LC_DYSYMTAB: DysymtabCommand,
    LoadCommandType.LC_UUID: UuidCommand,
    LoadCommandType.LC_VERSION_MIN_MACOSX: VersionMinCommand,
    LoadCommandType.LC_SOURCE_VERSION: SourceVersionCommand,
    LoadCommandType.LC_FUNCTION_STARTS: FunctionStartsCommand,
    LoadCommandType.LC_DATA_IN_CODE: DataInCodeCommand,
}


def read_load_command(reader, stream: BinaryIO) -> AnyLoadCommand:
    """Decode one load command starting at the stream's current offset.

    The stream is left wherever the command's parser stopped; callers
    reposition it using ``cmdsize``.
    """
    offset = stream.tell()
    cmd = reader.read_u32()
    cmdsize = reader.read_u32()

    command_type = COMMAND_TYPES.get(cmd)
    if command_type is None:
        raise FormatError(f"unexpected load command {cmd:#010x} at {offset:#x}")

    return command_type.parse(cmd, cmdsize, reader, stream, offset)


def read_load_commands(stream: BinaryIO, header: MachOHeader) -> list[AnyLoadCommand]:
    """Decode ``header.ncmds`` load commands from the stream's current offset."""
    reader = make_reader(stream, header.little_endian)
    commands = []

    for index in range(header.ncmds):
        offset = stream.tell()
        command = read_load_command(reader, stream)
        consumed = stream.tell() - offset
        if consumed > command.cmdsize:
            logger.warning(
                "%s at %#x read %d bytes past its declared size %d",
                command.name,
                offset,
                consumed - command.cmdsize,
                command.cmdsize,
            )
        logger.debug(
            "load command %d: %s at %#x, %d bytes",
            index,
            command.name,
            offset,
            command.cmdsize,
        )
        commands.append(command)
        stream.seek(offset + command.cmdsize)

    return commands


def map_stream(stream: BinaryIO):
    """Map the whole stream read-only, or copy it if it has no file descriptor."""
    try:
        fileno = stream.fileno()
    except (AttributeError, io.UnsupportedOperation):
        stream.seek(0)
        return stream.read()
    return mmap.mmap(fileno, 0, access=mmap.ACCESS_READ)


class MachOBinary:
    """Parsed Mach-O binary representation."""

    def __init__(
        self,
        header: MachOHeader,
        commands: list[AnyLoadCommand],
        mapping,
        path: Path | None = None,
    ) -> None:
        self.header = header
        self.commands: tuple[AnyLoadCommand, ...] = tuple(commands)
        self.path = path or Path("<memory>")
        self._mapping = mapping

    @classmethod
    def load(cls, path: str | Path) -> "MachOBinary":
        """Load and parse a Mach-O binary from disk."""
        path = Path(path)
        with open(path, "rb") as f:
            return cls.parse(f, path)

    @classmethod
    def parse(cls, stream: BinaryIO, path: Path | None = None) -> "MachOBinary":
        """Parse a Mach-O binary from an open, seekable binary stream."""
        header = MachOHeader.read(stream)
        commands = read_load_commands(stream, header)
        return cls(header, commands, map_stream(stream), path)

    def close(self) -> None:
        """Release the file mapping.

        If views returned by :meth:`get_symbol` are still alive the mapping
        stays open and is unmapped once the last view is gone.
        """
        if not isinstance(self._mapping, mmap.mmap):
            return
        try:
            self._mapping.close()
        except BufferError:
            logger.debug("%s: symbol views still exported, leaving mapping to GC", self.path)

    def __enter__(self) -> "MachOBinary":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def size(self) -> int:
        return len(self._mapping)

    # Public API methods

    def segments(self) -> tuple[AnyLoadCommand, ...]:
        """All decoded load commands, in file order."""
        return self.commands

    def segment_commands(self) -> list[SegmentCommand]:
        return [c for c in self.commands if isinstance(c, SegmentCommand)]

    def get_segment(self, name: str) -> SegmentCommand | None:
        """Get segment by name."""
        for seg in self.segment_commands():
            if seg.segment_name == name:
                return seg
        return None

    def symtabs(self) -> list[SymtabCommand]:
        return [c for c in self.commands if isinstance(c, SymtabCommand)]

    @property
    def dylibs(self) -> list[DylibCommand]:
        return [c for c in self.commands if isinstance(c, DylibCommand)]

    def disassemble(self, writer: TextIO) -> None:
        for command in self.commands:
            command.disassemble(writer)

    def iter_symbols(self) -> Iterator[Symbol]:
        """Resolve every symbol table entry, in table then entry order."""
        for symtab in self.symtabs():
            for entry in symtab.entries:
                name = read_c_string_at(self._mapping, symtab.name_position(entry))
                yield Symbol(name=name, entry=entry)

    def symbols(self) -> list[str]:
        """Names of all symbols, duplicates included."""
        return [sym.name for sym in self.iter_symbols()]

    def find_symbol(self, name: str) -> Symbol | None:
        for sym in self.iter_symbols():
            if sym.name == name:
                return sym
        return None

    def get_symbol(self, name: str) -> memoryview | None:
        """Bytes from the symbol's file offset to the end of the file.

        The view is unbounded; callers decide how much of it to read.
        """
        sym = self.find_symbol(name)
        if sym is None:
            return None
        return memoryview(self._mapping)[sym.value :]


class MachOFormat:
    """Detects and loads thin Mach-O files."""

    name = "Mach-O"

    def supported(self, stream: BinaryIO) -> bool:
        magic = read_magic(stream)
        stream.seek(0)
        return is_supported_magic(magic)

    def load(self, stream: BinaryIO) -> MachOBinary:
        return MachOBinary.parse(stream, _stream_path(stream))


def _stream_path(stream: BinaryIO) -> Path | None:
    name = getattr(stream, "name", None)
    return Path(name) if isinstance(name, str) else None
