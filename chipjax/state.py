"""CHIP-8 emulator state structures."""

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode

from chipjax.constants import (
    MEMORY_SIZE, PROGRAM_START, FONT_START, FONT_DATA, SCREEN_WIDTH, SCREEN_HEIGHT,
    STACK_SIZE, NUM_REGISTERS, NUM_KEYS, NO_KEY, ERROR_NONE,
)


@dataclass(frozen=True)
class StackState:
    """Return-address stack for subroutine calls."""
    data: jnp.ndarray
    pointer: jnp.ndarray


class EmulatorState(PyTreeNode):
    """Complete CHIP-8 machine state.

    Every field is a JAX array so the state can flow through ``jax.jit`` and
    ``jax.lax`` control flow. ``awaiting_key`` holds the destination register
    of a pending FX0A (or -1), ``key_latch`` the key pressed while waiting
    (or -1), and ``error`` a fatal error code (0 while running).
    """
    rng: jax.Array
    memory: jnp.ndarray
    pc: jnp.ndarray
    display: jnp.ndarray
    stack: StackState
    delay_timer: jnp.ndarray
    sound_timer: jnp.ndarray
    keypad: jnp.ndarray
    V: jnp.ndarray
    I: jnp.ndarray
    awaiting_key: jnp.ndarray
    key_latch: jnp.ndarray
    display_dirty: jnp.ndarray
    error: jnp.ndarray


def create_state(rng: jax.Array = None) -> EmulatorState:
    """Create initial emulator state with font data loaded."""
    if rng is None:
        rng = jax.random.PRNGKey(0)
    memory = jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8)
    memory = memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(FONT_DATA)
    return EmulatorState(
        rng=rng,
        memory=memory,
        pc=jnp.asarray(PROGRAM_START, dtype=jnp.uint16),
        display=jnp.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), dtype=jnp.bool_),
        stack=StackState(
            data=jnp.zeros(STACK_SIZE, dtype=jnp.uint16),
            pointer=jnp.zeros((), dtype=jnp.uint8),
        ),
        delay_timer=jnp.zeros((), dtype=jnp.uint8),
        sound_timer=jnp.zeros((), dtype=jnp.uint8),
        keypad=jnp.zeros(NUM_KEYS, dtype=jnp.bool_),
        V=jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8),
        I=jnp.zeros((), dtype=jnp.uint16),
        awaiting_key=jnp.asarray(NO_KEY, dtype=jnp.int8),
        key_latch=jnp.asarray(NO_KEY, dtype=jnp.int8),
        display_dirty=jnp.zeros((), dtype=jnp.bool_),
        error=jnp.asarray(ERROR_NONE, dtype=jnp.uint8),
    )
