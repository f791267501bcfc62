"""
Pytest configuration and shared fixtures for executable-spec tests.
"""

import sys
from pathlib import Path

import pytest

# Add the executable-spec directory to the path so absolute imports work
# (tests/ is inside executable-spec/, so parent is executable-spec/)
exec_spec_dir = Path(__file__).parent.parent
if str(exec_spec_dir) not in sys.path:
    sys.path.insert(0, str(exec_spec_dir))

from instructions.kinds import InstructionKind  # noqa: E402
from protocol.config import VMConfig  # noqa: E402
from protocol.pcs import MerklePcs  # noqa: E402


@pytest.fixture
def pcs():
    return MerklePcs()


@pytest.fixture
def eq_lt_config():
    """Two-instruction VM (EQ, LT) with one 4-bit chunk per operand."""
    return VMConfig(instructions=(InstructionKind.EQ, InstructionKind.LT), C=1, log_M=8,
                    memory_size=8, range_digit_bits=2)
