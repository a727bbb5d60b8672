"""CHIP-8 display operations."""

import jax.numpy as jnp
from chipjax.state import EmulatorState
from chipjax.decode import DecodedInstruction
from chipjax.constants import ADDRESS_MASK, SCREEN_WIDTH, SCREEN_HEIGHT, SPRITE_WIDTH, MAX_SPRITE_HEIGHT
from chipjax.memory import set_flag

# Sprite-local coordinates: one row per sprite byte, one column per bit
_rows = jnp.arange(MAX_SPRITE_HEIGHT)
_cols = jnp.arange(SPRITE_WIDTH)


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N.

    Only the at most 15x8 sprite patch is touched. Coordinates wrap on both
    axes, so a sprite that crosses an edge continues on the opposite side.
    VF is set to 1 when any lit pixel is turned off.
    """
    sprite_x = jnp.astype(state.V[instruction.x], jnp.int32) % SCREEN_WIDTH
    sprite_y = jnp.astype(state.V[instruction.y], jnp.int32) % SCREEN_HEIGHT

    sprite_bytes = jnp.astype(state.memory[(state.I + _rows) & ADDRESS_MASK], jnp.int32)
    bits = (sprite_bytes[:, None] >> (7 - _cols)[None, :]) & 1
    sprite = (bits == 1) & (_rows < instruction.n)[:, None]

    xs = jnp.broadcast_to(((sprite_x + _cols) % SCREEN_WIDTH)[None, :], sprite.shape)
    ys = jnp.broadcast_to(((sprite_y + _rows) % SCREEN_HEIGHT)[:, None], sprite.shape)

    current = state.display[xs, ys]
    collision = jnp.any(current & sprite)

    state = state.replace(
        display=state.display.at[xs, ys].set(current ^ sprite),
        display_dirty=jnp.ones((), dtype=jnp.bool_),
    )
    return set_flag(state, jnp.astype(collision, jnp.uint8))
