"""CHIP-8 control flow instructions."""

import jax
import jax.lax
import jax.numpy as jnp
from chipjax.state import EmulatorState
from chipjax.decode import DecodedInstruction
from chipjax.constants import ADDRESS_MASK, ERROR_STACK_OVERFLOW
from chipjax.stack import push, is_full
from chipjax.instructions.system import fail, invalid_instruction


def _set_pc(state: EmulatorState, address) -> EmulatorState:
    return state.replace(pc=jnp.astype(address & ADDRESS_MASK, jnp.uint16))


def skip_next(state: EmulatorState) -> EmulatorState:
    """Advance PC past the next instruction."""
    return _set_pc(state, state.pc + 2)


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return _set_pc(state, instruction.nnn)


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN."""
    def _call(state):
        state = state.replace(stack=push(state.stack, state.pc))
        return execute_jump(state, instruction)

    return jax.lax.cond(
        is_full(state.stack),
        lambda state: fail(state, ERROR_STACK_OVERFLOW),
        _call,
        state
    )


def make_skip_instruction(condition_fn, requires_zero_n: bool = False):
    """Factory for skip instructions.

    With ``requires_zero_n`` the low nibble must be 0 (5XY0, 9XY0); any other
    value is an invalid instruction.
    """
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        if not requires_zero_n:
            return jax.lax.cond(condition, skip_next, lambda s: s, state)
        return jax.lax.cond(
            instruction.n == 0,
            lambda s: jax.lax.cond(condition, skip_next, lambda s: s, s),
            lambda s: invalid_instruction(s, instruction),
            state
        )
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y],
    requires_zero_n=True,
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y],
    requires_zero_n=True,
)


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0."""
    return _set_pc(state, instruction.nnn + jnp.astype(state.V[0], jnp.uint16))


def execute_skip_if_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """EX9E/EXA1 - Skip if key pressed/not pressed."""
    key_index = state.V[instruction.x] & 0xF
    key_pressed = state.keypad[key_index]
    is_not_instruction = (instruction.nn == 0xA1)
    condition = key_pressed ^ is_not_instruction

    return jax.lax.cond(
        (instruction.nn == 0x9E) | is_not_instruction,
        lambda state: jax.lax.cond(condition, skip_next, lambda s: s, state),
        lambda state: invalid_instruction(state, instruction),
        state
    )
