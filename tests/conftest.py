"""Test configuration and fixtures for CHIP-8 emulator tests."""

import pytest
import jax.numpy as jnp
from chipjax import create_state, load_program, Machine, MachineConfig
from chipjax.logging import MachineLogger


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def program(*words):
    """Assemble 16-bit instruction words into big-endian program bytes."""
    return b"".join(word.to_bytes(2, "big") for word in words)


def state_with_program(*words):
    return load_program(create_state(), program(*words))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_machine(clock):
    """Build a machine on the fake clock, optionally loaded with instruction words."""
    def _make(*words, **config):
        machine = Machine(
            MachineConfig(**config),
            clock=clock,
            sleep=clock.advance,
            logger=MachineLogger(log_level="CRITICAL"),
        )
        if words:
            machine.load(program(*words))
        return machine
    return _make
