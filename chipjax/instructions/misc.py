"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
import numpy as np
from chipjax.state import EmulatorState
from chipjax.decode import DecodedInstruction
from chipjax.constants import ADDRESS_MASK, FONT_START, FONT_GLYPH_SIZE, NUM_REGISTERS, NO_KEY
from chipjax.memory import get_register, set_register, set_flag
from chipjax.instructions.system import invalid_instruction


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return set_register(state, instruction.x, state.delay_timer)


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=get_register(state, instruction.x))


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=get_register(state, instruction.x))


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I, VF = 1 if the sum leaves the 12-bit range."""
    new_i = state.I + jnp.astype(get_register(state, instruction.x), jnp.uint16)
    overflow = jnp.astype(new_i > ADDRESS_MASK, jnp.uint8)
    state = state.replace(I=jnp.astype(new_i & ADDRESS_MASK, jnp.uint16))
    return set_flag(state, overflow)


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    Puts the machine in wait mode and rewinds PC onto this instruction. The
    wait is resolved by ``keypad.resolve_key_wait`` once a key goes down.
    """
    return state.replace(
        awaiting_key=jnp.astype(instruction.x, jnp.int8),
        key_latch=jnp.asarray(NO_KEY, dtype=jnp.int8),
        pc=jnp.astype((state.pc - 2) & ADDRESS_MASK, jnp.uint16),
    )


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    digit = jnp.astype(get_register(state, instruction.x) & 0xF, jnp.uint16)
    return state.replace(I=jnp.astype(FONT_START + digit * FONT_GLYPH_SIZE, jnp.uint16))


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = get_register(state, instruction.x)

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = (state.I + jnp.arange(3)) & ADDRESS_MASK
    return state.replace(memory=state.memory.at[indices].set(digits))


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I. I is unchanged."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    indices = (state.I + jnp.arange(NUM_REGISTERS)) & ADDRESS_MASK
    new_values = jnp.where(register_mask, state.V, state.memory[indices])
    return state.replace(memory=state.memory.at[indices].set(new_values))


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I. I is unchanged."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    indices = (state.I + jnp.arange(NUM_REGISTERS)) & ADDRESS_MASK
    return state.replace(V=jnp.where(register_mask, state.memory[indices], state.V))


MISC_OPERATIONS = [
    execute_get_delay_timer,
    execute_wait_for_key,
    execute_set_delay_timer,
    execute_set_sound_timer,
    execute_add_to_index,
    execute_font_character,
    execute_bcd_conversion,
    execute_store_registers,
    execute_load_registers,
    invalid_instruction,
]

# Low byte -> index into MISC_OPERATIONS; unlisted bytes are invalid
_dispatch = np.full(256, len(MISC_OPERATIONS) - 1, dtype=np.int32)
for _index, _nn in enumerate([0x07, 0x0A, 0x15, 0x18, 0x1E, 0x29, 0x33, 0x55, 0x65]):
    _dispatch[_nn] = _index
MISC_DISPATCH = jnp.asarray(_dispatch)


def execute_misc_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch misc instructions on the low byte."""
    return jax.lax.switch(MISC_DISPATCH[instruction.nn], MISC_OPERATIONS, state, instruction)
