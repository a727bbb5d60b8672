"""Instruction word decoding.

A CHIP-8 instruction is one big-endian 16-bit word read as four nibbles::

    F X Y N      F   opcode family
                 X   register index VX
                 Y   register index VY
                 N   4-bit immediate
         NN      low byte, 8-bit immediate
       NNN       low 12 bits, address

Decoding never fails: whether a word names a real operation is decided by
the executor.
"""

from chex import dataclass


@dataclass(frozen=True)
class DecodedInstruction:
    raw: int
    opcode: int
    x: int
    y: int
    n: int
    nn: int
    nnn: int


def decode(instruction: int) -> DecodedInstruction:
    """Split a 16-bit word into its operand fields."""
    return DecodedInstruction(
        raw=instruction,
        opcode=(instruction >> 12) & 0xF,
        x=(instruction >> 8) & 0xF,
        y=(instruction >> 4) & 0xF,
        n=instruction & 0xF,
        nn=instruction & 0xFF,
        nnn=instruction & 0xFFF,
    )
