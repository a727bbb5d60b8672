"""Byte, word and register access on the emulator state.

All addresses are masked to the 12-bit address space, so these helpers are
safe inside jit-compiled code. :func:`check_address` is for host-supplied
addresses that must be validated rather than wrapped.
"""

import jax.numpy as jnp

from chipjax.constants import ADDRESS_MASK, MEMORY_SIZE, FLAG_REGISTER
from chipjax.errors import AddressOutOfRange
from chipjax.state import EmulatorState


def check_address(address: int) -> int:
    """Validate a host-supplied address."""
    if not 0 <= address < MEMORY_SIZE:
        raise AddressOutOfRange(address)
    return address


def read_byte(state: EmulatorState, address) -> jnp.ndarray:
    return state.memory[address & ADDRESS_MASK]


def write_byte(state: EmulatorState, address, value) -> EmulatorState:
    value = jnp.astype(value & 0xFF, jnp.uint8)
    return state.replace(memory=state.memory.at[address & ADDRESS_MASK].set(value))


def read_word(state: EmulatorState, address) -> jnp.ndarray:
    """Big-endian 16-bit read."""
    high = jnp.astype(read_byte(state, address), jnp.uint16)
    low = jnp.astype(read_byte(state, address + 1), jnp.uint16)
    return (high << 8) | low


def get_register(state: EmulatorState, index) -> jnp.ndarray:
    return state.V[index]


def set_register(state: EmulatorState, index, value) -> EmulatorState:
    """Set VX, keeping only the low 8 bits of ``value``."""
    value = jnp.astype(value & 0xFF, jnp.uint8)
    return state.replace(V=state.V.at[index].set(value))


def set_flag(state: EmulatorState, value) -> EmulatorState:
    """Set VF."""
    return set_register(state, FLAG_REGISTER, value)
