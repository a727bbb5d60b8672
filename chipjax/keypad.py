"""Keypad level state and FX0A wait resolution."""

import jax
import jax.lax
import jax.numpy as jnp
from chipjax.state import EmulatorState
from chipjax.constants import ADDRESS_MASK, NUM_KEYS, NO_KEY
from chipjax.memory import set_register


def check_key(key: int) -> int:
    """Validate a host-supplied key identifier."""
    if not 0 <= key < NUM_KEYS:
        raise ValueError(f"key must be in 0x0-0x{NUM_KEYS - 1:X}, got {key!r}")
    return key


@jax.jit
def press_key(state: EmulatorState, key) -> EmulatorState:
    """Mark ``key`` as held.

    A key going from up to down while FX0A waits is latched as the answer to
    the wait. Keys already held when the wait began do not count.
    """
    went_down = ~state.keypad[key]
    latch = (state.awaiting_key != NO_KEY) & (state.key_latch == NO_KEY) & went_down
    return state.replace(
        keypad=state.keypad.at[key].set(True),
        key_latch=jnp.where(latch, jnp.astype(key, jnp.int8), state.key_latch),
    )


@jax.jit
def release_key(state: EmulatorState, key) -> EmulatorState:
    """Mark ``key`` as released."""
    return state.replace(keypad=state.keypad.at[key].set(False))


def resolve_key_wait(state: EmulatorState) -> EmulatorState:
    """Finish a pending FX0A if a key was latched, else leave the state alone."""
    def _resume(state):
        state = set_register(state, state.awaiting_key, jnp.astype(state.key_latch, jnp.uint8))
        return state.replace(
            awaiting_key=jnp.asarray(NO_KEY, dtype=jnp.int8),
            key_latch=jnp.asarray(NO_KEY, dtype=jnp.int8),
            pc=jnp.astype((state.pc + 2) & ADDRESS_MASK, jnp.uint16),
        )

    return jax.lax.cond(state.key_latch != NO_KEY, _resume, lambda s: s, state)
