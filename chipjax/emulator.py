"""Main CHIP-8 emulator execution engine.

Everything here is a pure function of the state and safe under ``jax.jit``
except :func:`load_program`, which validates host input.
"""

import jax
import jax.lax
import jax.numpy as jnp
import numpy as np
from chipjax.state import EmulatorState
from chipjax.decode import decode
from chipjax.constants import ADDRESS_MASK, PROGRAM_START, MAX_PROGRAM_SIZE, ERROR_NONE, NO_KEY
from chipjax.errors import ProgramTooLarge
from chipjax.memory import read_word
from chipjax.keypad import resolve_key_wait
from chipjax.instructions.system import execute_system_instruction
from chipjax.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset, execute_skip_if_key
)
from chipjax.instructions.alu import execute_alu_operation
from chipjax.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipjax.instructions.display import execute_display
from chipjax.instructions.misc import execute_misc_instruction

OPCODE_TABLE = [
    execute_system_instruction,
    execute_jump,
    execute_call,
    execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate,
    execute_skip_if_equal_register,
    execute_set,
    execute_add,
    execute_alu_operation,
    execute_skip_if_not_equal_register,
    execute_set_index,
    execute_jump_with_offset,
    execute_random,
    execute_display,
    execute_skip_if_key,
    execute_misc_instruction,
]


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction.

    ``state.pc`` is expected to already point past the instruction, as left
    by :func:`fetch`.
    """
    decoded_instruction = decode(instruction)
    return jax.lax.switch(decoded_instruction.opcode, OPCODE_TABLE, state, decoded_instruction)


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.ndarray]:
    """Fetch next instruction from memory and advance PC."""
    instruction = read_word(state, state.pc)
    next_pc = jnp.astype((state.pc + 2) & ADDRESS_MASK, jnp.uint16)
    return state.replace(pc=next_pc), instruction


def _fetch_and_execute(state: EmulatorState) -> EmulatorState:
    next_state, instruction = fetch(state)
    next_state = execute(next_state, instruction)

    # A failed instruction leaves no trace except the error code
    failed = next_state.error != ERROR_NONE
    kept = jax.tree.map(lambda old, new: jnp.where(failed, old, new), state, next_state)
    return kept.replace(error=next_state.error)


@jax.jit
def step(state: EmulatorState) -> EmulatorState:
    """Advance the machine by one instruction slot.

    A halted machine is left unchanged. While FX0A is pending the slot only
    checks for a latched key press.
    """
    branch = jnp.where(state.error != ERROR_NONE, 0, jnp.where(state.awaiting_key != NO_KEY, 1, 2))
    return jax.lax.switch(branch, [lambda s: s, resolve_key_wait, _fetch_and_execute], state)


@jax.jit
def run_instructions(state: EmulatorState, count) -> EmulatorState:
    """Run up to ``count`` instruction slots, stopping early on a fatal error."""
    def cond(carry):
        executed, state = carry
        return (executed < count) & (state.error == ERROR_NONE)

    def body(carry):
        executed, state = carry
        return executed + 1, step(state)

    _, state = jax.lax.while_loop(cond, body, (jnp.zeros((), dtype=jnp.int32), state))
    return state


@jax.jit
def tick_timers(state: EmulatorState) -> EmulatorState:
    """One 60 Hz tick: decrement both timers, stopping at zero."""
    return state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, state.delay_timer),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, state.sound_timer),
    )


def load_program(state: EmulatorState, program: bytes) -> EmulatorState:
    """Load program bytes into memory starting at 0x200.

    Raises:
        ProgramTooLarge: if the program does not fit; ``state`` is untouched.
    """
    if len(program) > MAX_PROGRAM_SIZE:
        raise ProgramTooLarge(len(program), MAX_PROGRAM_SIZE)
    program_array = jnp.asarray(np.frombuffer(bytes(program), dtype=np.uint8))
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(program)].set(program_array)
    return state.replace(memory=new_memory)
