"""CHIP-8 ALU operations (8xxx).

Each operation maps ``(vx, vy)`` to ``(result, flag)``. The result always
goes to VX; the flag goes to VF only for the operations marked in
``WRITES_FLAG``, and is written after VX so that it wins when X is F.
Shifts operate on VX in place and ignore VY.
"""

import jax
import jax.lax
import jax.numpy as jnp
from chipjax.state import EmulatorState
from chipjax.decode import DecodedInstruction
from chipjax.memory import set_register, set_flag
from chipjax.instructions.system import invalid_instruction


def _no_flag() -> jnp.ndarray:
    return jnp.zeros((), dtype=jnp.uint8)


def alu_set(vx, vy):
    """8XY0 - Set: VX = VY."""
    return vy, _no_flag()


def alu_or(vx, vy):
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, _no_flag()


def alu_and(vx, vy):
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, _no_flag()


def alu_xor(vx, vy):
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, _no_flag()


def alu_add(vx, vy):
    """8XY4 - Add: VX += VY, VF = carry."""
    result = jnp.astype(vx, jnp.int32) + vy
    carry = jnp.astype(result > 0xFF, jnp.uint8)
    return jnp.astype(result & 0xFF, jnp.uint8), carry


def alu_sub_xy(vx, vy):
    """8XY5 - Subtract: VX -= VY, VF = 1 when no borrow."""
    not_borrow = jnp.astype(vx >= vy, jnp.uint8)
    return jnp.astype((vx - vy) & 0xFF, jnp.uint8), not_borrow


def alu_shift_right(vx, vy):
    """8XY6 - Shift right: VX >>= 1, VF = bit shifted out."""
    return vx >> 1, vx & 1


def alu_sub_yx(vx, vy):
    """8XY7 - Subtract: VX = VY - VX, VF = 1 when no borrow."""
    not_borrow = jnp.astype(vy >= vx, jnp.uint8)
    return jnp.astype((vy - vx) & 0xFF, jnp.uint8), not_borrow


def alu_shift_left(vx, vy):
    """8XYE - Shift left: VX <<= 1, VF = bit shifted out."""
    return jnp.astype((vx << 1) & 0xFF, jnp.uint8), (vx >> 7) & 1


def alu_undefined(vx, vy):
    return vx, _no_flag()


ALU_OPERATIONS = [
    alu_set, alu_or, alu_and, alu_xor, alu_add, alu_sub_xy, alu_shift_right, alu_sub_yx,
    alu_undefined, alu_undefined, alu_undefined, alu_undefined,
    alu_undefined, alu_undefined, alu_shift_left, alu_undefined,
]

VALID_OPS = jnp.array([1, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 1, 0], dtype=bool)
WRITES_FLAG = jnp.array([0, 0, 0, 0, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 1, 0], dtype=bool)


def execute_alu_operation(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """8XYN - ALU operations dispatcher."""
    vx = state.V[instruction.x]
    vy = state.V[instruction.y]

    def _apply(state):
        result, flag = jax.lax.switch(instruction.n, ALU_OPERATIONS, vx, vy)
        state = set_register(state, instruction.x, result)
        return jax.lax.cond(
            WRITES_FLAG[instruction.n],
            lambda s: set_flag(s, flag),
            lambda s: s,
            state
        )

    return jax.lax.cond(
        VALID_OPS[instruction.n],
        _apply,
        lambda s: invalid_instruction(s, instruction),
        state
    )
