"""
HC11 SDB — Target State (registers + 64K memory)

The expression core only needs two capabilities from the machine:

    reg_str2val(name)     -> (value, found)
    mem.read(addr, width) -> value

This module provides them for an HC11F1 target so the monitor can run on
its own (loading a ROM image and inspecting it) and so that an execution
engine can share the same state objects.

Register names accepted by ``$name`` (case-insensitive):
  a, b       8-bit accumulators
  d          16-bit A:B (A high)
  x, y       16-bit index registers
  sp, pc     16-bit stack pointer / program counter
  cc, ccr    8-bit condition codes (S X H I N Z V C)

Memory is big-endian, the HC11's native byte order, so a 4-byte read at
$0100 returns (m[$0100] << 24) | ... | m[$0103]. Addresses wrap at $FFFF.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .config import (
    ADDR_MASK, MEMORY_REGIONS, DEFAULT_LOAD_ADDR, RESET_SP, RESET_CCR,
)


class Registers:
    """68HC11 CPU register set."""

    __slots__ = ('A', 'B', 'X', 'Y', 'SP', 'PC', 'CC')

    # $name -> (attribute, width mask)
    NAMES: Dict[str, Tuple[str, int]] = {
        'a':   ('A', 0xFF),
        'b':   ('B', 0xFF),
        'd':   ('D', 0xFFFF),
        'x':   ('X', 0xFFFF),
        'y':   ('Y', 0xFFFF),
        'sp':  ('SP', 0xFFFF),
        'pc':  ('PC', 0xFFFF),
        'cc':  ('CC', 0xFF),
        'ccr': ('CC', 0xFF),
    }

    def __init__(self):
        self.reset()

    @property
    def D(self) -> int:
        return (self.A << 8) | self.B

    @D.setter
    def D(self, value: int):
        value &= 0xFFFF
        self.A = (value >> 8) & 0xFF
        self.B = value & 0xFF

    def str2val(self, name: str) -> Tuple[int, bool]:
        """Look up a register by monitor name. Returns (value, found)."""
        entry = self.NAMES.get(name.lower())
        if entry is None:
            return 0, False
        attr, mask = entry
        return getattr(self, attr) & mask, True

    def set(self, name: str, value: int):
        entry = self.NAMES.get(name.lower())
        if entry is None:
            raise KeyError(name)
        attr, mask = entry
        setattr(self, attr, value & mask)

    def display(self) -> str:
        ccr_str = ''.join(
            c if self.CC & (0x80 >> i) else '.'
            for i, c in enumerate('SXHINZVC'))
        return (f"PC={self.PC:04X} A={self.A:02X} B={self.B:02X} "
                f"D={self.D:04X} X={self.X:04X} Y={self.Y:04X} "
                f"SP={self.SP:04X} CCR={self.CC:02X} [{ccr_str}]")

    def reset(self):
        self.A = 0
        self.B = 0
        self.X = 0
        self.Y = 0
        self.SP = RESET_SP
        self.PC = 0
        self.CC = RESET_CCR


class Memory:
    """Flat 64K byte-addressable memory, initialised per region.

    Unlike the CPU view there is no ROM write protection: the monitor and
    the loaders write wherever they are told to.
    """

    def __init__(self, regions=MEMORY_REGIONS):
        self._mem = bytearray(ADDR_MASK + 1)
        self.regions = list(regions)
        for _name, start, end, initial in self.regions:
            self._mem[start:end + 1] = bytes([initial]) * (end - start + 1)

    def region_of(self, addr: int) -> Optional[str]:
        addr &= ADDR_MASK
        for name, start, end, _initial in self.regions:
            if start <= addr <= end:
                return name
        return None

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        return self._mem[addr & ADDR_MASK]

    def read(self, addr: int, width: int) -> int:
        """Read a big-endian value of width bytes."""
        value = 0
        for i in range(width):
            value = (value << 8) | self._mem[(addr + i) & ADDR_MASK]
        return value

    def write(self, addr: int, width: int, value: int):
        """Write a big-endian value of width bytes."""
        for i in range(width):
            shift = 8 * (width - 1 - i)
            self._mem[(addr + i) & ADDR_MASK] = (value >> shift) & 0xFF

    def read32(self, addr: int) -> int:
        return self.read(addr, 4)

    def write32(self, addr: int, value: int):
        self.write(addr, 4, value)

    # --- Bulk load ---

    def load_binary(self, data: bytes, base_addr: int):
        for i, byte in enumerate(data):
            self._mem[(base_addr + i) & ADDR_MASK] = byte

    def load_s19(self, s19_text: str) -> Optional[int]:
        """Load Motorola S19 records. Returns the S9 start address, if any.

        Only S1 (16-bit address) data records are loaded; S0 headers are
        skipped. Raises ValueError on a truncated record, a byte count that
        disagrees with the record length, or a bad checksum.
        """
        start = None
        for lineno, line in enumerate(s19_text.splitlines(), 1):
            line = line.strip()
            if not line.startswith('S'):
                continue

            rec_type = line[:2]
            if rec_type not in ('S1', 'S9'):
                continue

            raw = bytes.fromhex(line[2:])
            # count, 2 address bytes, checksum
            if len(raw) < 4 or raw[0] != len(raw) - 1:
                raise ValueError(f"Malformed S19 record on line {lineno}")
            if (sum(raw[:-1]) + raw[-1]) & 0xFF != 0xFF:
                raise ValueError(f"S19 checksum mismatch on line {lineno}")

            addr = (raw[1] << 8) | raw[2]
            if rec_type == 'S1':
                self.load_binary(raw[3:-1], addr)
            else:
                start = addr
        return start


# Step hook supplied by an execution engine: None = keep going, else stop reason
StepFn = Callable[[], Optional[str]]


class Target:
    """Registers + memory, plus the optional engine that advances them."""

    def __init__(self, regs: Optional[Registers] = None,
                 mem: Optional[Memory] = None,
                 step_fn: Optional[StepFn] = None):
        self.regs = regs if regs is not None else Registers()
        self.mem = mem if mem is not None else Memory()
        self.step_fn = step_fn

    def reg_str2val(self, name: str) -> Tuple[int, bool]:
        return self.regs.str2val(name)

    def load_image(self, path, base_addr: int = DEFAULT_LOAD_ADDR,
                   fmt: Optional[str] = None) -> int:
        """Load a .bin or .s19 image and point PC at its entry.

        Returns the entry address (base_addr for raw binaries, the S9
        address or lowest loaded address for S19).
        """
        path = Path(path)
        if fmt is None:
            fmt = 's19' if path.suffix.lower() in ('.s19', '.srec', '.mot') else 'bin'

        if fmt == 's19':
            text = path.read_text()
            entry = self.mem.load_s19(text)
            if entry is None:
                entry = _lowest_s1_address(text, base_addr)
        else:
            self.mem.load_binary(path.read_bytes(), base_addr)
            entry = base_addr

        self.regs.PC = entry & ADDR_MASK
        return self.regs.PC


def _lowest_s1_address(s19_text: str, default: int) -> int:
    records = (line.strip() for line in s19_text.splitlines())
    addrs: List[int] = [int(rec[4:8], 16) for rec in records if rec.startswith('S1')]
    return min(addrs) if addrs else default
