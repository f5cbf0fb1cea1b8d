"""Command-line interface for machobin."""

import io
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from machobin import __version__
from machobin.loader import MachOBinary, MachOError, SymbolType

console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _load(binary: str) -> MachOBinary:
    try:
        return MachOBinary.load(binary)
    except (MachOError, EOFError, OSError) as e:
        console.print(f"[red]Failed to load {escape(binary)}: {escape(str(e))}[/red]", soft_wrap=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    envvar="MACHOBIN_LOG_LEVEL",
    show_default=True,
    help="Logging level.",
)
def main(verbose: bool, log_level: str) -> None:
    """machobin - inspect Mach-O load commands and symbols."""
    level = logging.DEBUG if verbose else getattr(logging, log_level.upper())
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@main.command()
@click.argument("binary", type=click.Path(exists=True, dir_okay=False))
def info(binary: str) -> None:
    """Display header information and the load command table."""
    with _load(binary) as b:
        h = b.header

        console.print(Panel.fit(f"[bold]{b.path.name}[/bold]", title="Mach-O Header"))

        table = Table(show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value")

        table.add_row("Path", str(b.path))
        table.add_row("Magic", f"{h.magic:#010x}")
        table.add_row("Format", f"{64 if h.is_64bit else 32}-bit")
        table.add_row("Byte Order", "little-endian" if h.little_endian else "big-endian")
        table.add_row("CPU", f"{h.cputype.name} / {h.cpusubtype.name}")
        table.add_row("File Type", h.filetype.name)
        table.add_row("Commands", f"{h.ncmds} ({h.sizeofcmds} bytes)")
        table.add_row("Flags", " ".join(h.flag_names) or f"{h.flags:#x}")

        console.print(table)

        console.print("\n[bold]Load Commands:[/bold]")
        cmd_table = Table()
        cmd_table.add_column("#", justify="right")
        cmd_table.add_column("Offset", style="green")
        cmd_table.add_column("Command", style="cyan")
        cmd_table.add_column("Size", justify="right")

        for index, command in enumerate(b.segments()):
            cmd_table.add_row(
                str(index),
                f"{command.offset:#x}",
                command.name,
                str(command.cmdsize),
            )

        console.print(cmd_table)


@main.command()
@click.argument("binary", type=click.Path(exists=True, dir_okay=False))
def commands(binary: str) -> None:
    """Print each load command's own description."""
    with _load(binary) as b:
        out = io.StringIO()
        b.disassemble(out)
        click.echo(out.getvalue(), nl=False)


@main.command()
@click.argument("binary", type=click.Path(exists=True, dir_okay=False))
@click.option("--debug/--no-debug", "show_debug", default=False, help="Include debug (stab) symbols.")
def symbols(binary: str, show_debug: bool) -> None:
    """List symbols in binary."""
    with _load(binary) as b:
        table = Table(title="Symbols")
        table.add_column("Value", style="green")
        table.add_column("Type", style="cyan")
        table.add_column("Name")

        for sym in b.iter_symbols():
            if sym.symbol_type == SymbolType.DEBUG and not show_debug:
                continue

            type_style = {
                SymbolType.GLOBAL: "green",
                SymbolType.LOCAL: "yellow",
                SymbolType.UNDEFINED: "red",
            }.get(sym.symbol_type, "white")

            table.add_row(
                f"{sym.value:#x}" if sym.value else "--------",
                f"[{type_style}]{sym.symbol_type.name}[/{type_style}]",
                sym.name,
            )

        console.print(table)


@main.command()
@click.argument("binary", type=click.Path(exists=True, dir_okay=False))
@click.argument("symbol")
@click.option("-n", "--count", default=64, show_default=True, help="Number of bytes")
def dump(binary: str, symbol: str, count: int) -> None:
    """Hex dump the bytes a symbol points at."""
    with _load(binary) as b:
        sym = b.find_symbol(symbol)
        if sym is None:
            console.print(f"[red]Symbol not found: {escape(symbol)}[/red]", soft_wrap=True)
            sys.exit(1)

        view = b.get_symbol(symbol)
        data = bytes(view[:count])
        view.release()

        for line in hexdump(data, sym.value):
            click.echo(line)


def hexdump(data: bytes, base: int, width: int = 16) -> list[str]:
    """Format ``data`` as offset, hex bytes and printable ASCII."""
    lines = []
    for i in range(0, len(data), width):
        chunk = data[i : i + width]
        hex_bytes = " ".join(f"{b:02x}" for b in chunk)
        ascii_str = "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in chunk)
        lines.append(f"{base + i:08x}  {hex_bytes:<{width * 3 - 1}}  {ascii_str}")
    return lines


if __name__ == "__main__":
    main()
