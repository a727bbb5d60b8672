"""CHIP-8 virtual machine built on JAX."""

from chipjax.state import EmulatorState, StackState, create_state
from chipjax.emulator import execute, fetch, step, run_instructions, tick_timers, load_program
from chipjax.decode import DecodedInstruction, decode
from chipjax.keypad import press_key, release_key
from chipjax.errors import (
    Chip8Error, ProgramTooLarge, ConfigError, MachineError, InvalidInstruction,
    StackOverflow, StackUnderflow, AddressOutOfRange, MachineHalted, raise_for_error,
)
from chipjax.config import MachineConfig, load_config
from chipjax.machine import Machine, MachineStats, Status
from chipjax.constants import PROGRAM_START, FONT_START, SCREEN_WIDTH, SCREEN_HEIGHT

__all__ = [
    "EmulatorState",
    "StackState",
    "create_state",
    "fetch",
    "execute",
    "step",
    "run_instructions",
    "tick_timers",
    "load_program",
    "DecodedInstruction",
    "decode",
    "press_key",
    "release_key",
    "Chip8Error",
    "ProgramTooLarge",
    "ConfigError",
    "MachineError",
    "InvalidInstruction",
    "StackOverflow",
    "StackUnderflow",
    "AddressOutOfRange",
    "MachineHalted",
    "raise_for_error",
    "MachineConfig",
    "load_config",
    "Machine",
    "MachineStats",
    "Status",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
]
