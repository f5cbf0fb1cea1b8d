"""Segment load commands."""

from dataclasses import dataclass
from typing import BinaryIO

from machobin.loader.commands import LoadCommand, LoadCommandType


SEGNAME_SIZE = 16


@dataclass(frozen=True)
class SegmentCommand(LoadCommand):
    """LC_SEGMENT / LC_SEGMENT_64.

    ``segname`` keeps the raw 16-byte field including NUL padding; use
    ``segment_name`` for the trimmed text.
    """

    segname: bytes
    vmaddr: int
    vmsize: int
    fileoff: int
    filesize: int
    maxprot: int
    initprot: int
    nsects: int
    flags: int

    @classmethod
    def parse(cls, cmd: int, cmdsize: int, reader, stream: BinaryIO, offset: int) -> "SegmentCommand":
        segname = reader.read_bytes(SEGNAME_SIZE)
        if cmd == LoadCommandType.LC_SEGMENT_64:
            read_word = reader.read_u64
        else:
            read_word = reader.read_u32

        vmaddr = read_word()
        vmsize = read_word()
        fileoff = read_word()
        filesize = read_word()

        return cls(
            cmd=cmd,
            cmdsize=cmdsize,
            offset=offset,
            segname=segname,
            vmaddr=vmaddr,
            vmsize=vmsize,
            fileoff=fileoff,
            filesize=filesize,
            maxprot=reader.read_i32(),
            initprot=reader.read_i32(),
            nsects=reader.read_u32(),
            flags=reader.read_u32(),
        )

    @property
    def segment_name(self) -> str:
        return self.segname.rstrip(b"\x00").decode("utf-8", errors="replace")

    @property
    def is_64bit(self) -> bool:
        return self.cmd == LoadCommandType.LC_SEGMENT_64

    @property
    def end_address(self) -> int:
        return self.vmaddr + self.vmsize

    def contains_address(self, addr: int) -> bool:
        return self.vmaddr <= addr < self.end_address

    def render(self) -> list[str]:
        width = 16 if self.is_64bit else 8
        return [
            f"{self.name:<22} {self.segment_name:<16} "
            f"vm {self.vmaddr:0{width}x}-{self.end_address:0{width}x} "
            f"file {self.fileoff:#x}+{self.filesize:#x} "
            f"prot {format_prot(self.initprot)}/{format_prot(self.maxprot)} "
            f"nsects {self.nsects}"
        ]


def format_prot(prot: int) -> str:
    """Render VM protection bits as rwx."""
    return "".join(
        char if prot & bit else "-"
        for char, bit in (("r", 0x1), ("w", 0x2), ("x", 0x4))
    )
