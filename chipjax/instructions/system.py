"""CHIP-8 system instructions (0x0xxx) and the shared failure handler."""

import jax
import jax.lax
import jax.numpy as jnp
from chipjax.state import EmulatorState
from chipjax.decode import DecodedInstruction
from chipjax.constants import ERROR_INVALID_INSTRUCTION, ERROR_STACK_UNDERFLOW
from chipjax.stack import pop, is_empty


def fail(state: EmulatorState, code: int) -> EmulatorState:
    """Record a fatal error code on the state."""
    return state.replace(error=jnp.asarray(code, dtype=jnp.uint8))


def invalid_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Any word that does not name an operation."""
    return fail(state, ERROR_INVALID_INSTRUCTION)


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00E0 - Clear display."""
    return state.replace(
        display=jnp.zeros_like(state.display),
        display_dirty=jnp.ones((), dtype=jnp.bool_),
    )


def execute_return(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00EE - Return from subroutine."""
    def _return(state):
        stack, address = pop(state.stack)
        return state.replace(stack=stack, pc=address)

    return jax.lax.cond(
        is_empty(state.stack),
        lambda state: fail(state, ERROR_STACK_UNDERFLOW),
        _return,
        state
    )


def execute_system_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch system instructions. 0NNN machine-code calls are not supported."""
    index = jnp.where(instruction.raw == 0x00E0, 0, jnp.where(instruction.raw == 0x00EE, 1, 2))
    return jax.lax.switch(
        index,
        [execute_clear_screen, execute_return, invalid_instruction],
        state, instruction
    )
