"""Exceptions raised while decoding Mach-O files."""


class MachOError(ValueError):
    """Base class for Mach-O decoding errors."""


class FormatError(MachOError):
    """The input is not a Mach-O file this loader understands."""
