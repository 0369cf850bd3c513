import pytest

from hc11_sdb.evaluator import Evaluator
from hc11_sdb.target import Target


@pytest.fixture
def target():
    """Fresh HC11 target: RAM zeroed, $0100 holds 42, A:B = $1234."""
    t = Target()
    t.mem.write32(0x0100, 42)
    t.regs.D = 0x1234
    t.regs.X = 0x0100
    return t


@pytest.fixture
def evaluator(target):
    return Evaluator(target.reg_str2val, target.mem.read)
