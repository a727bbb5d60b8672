"""Exceptions raised by the CHIP-8 machine.

Run-time failures happen inside pure (possibly jit-compiled) code, so they
are first recorded as an error code on the state. :func:`error_from_state`
turns that code back into one of the exceptions below.
"""

from typing import Optional

from chipjax.constants import (
    ERROR_NONE, ERROR_INVALID_INSTRUCTION, ERROR_STACK_OVERFLOW, ERROR_STACK_UNDERFLOW,
    ADDRESS_MASK,
)


class Chip8Error(Exception):
    """Base class for all CHIP-8 errors."""


class ProgramTooLarge(Chip8Error):
    """Program does not fit between 0x200 and the end of memory."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"program is {size} bytes, at most {limit} bytes fit in memory")


class ConfigError(Chip8Error, ValueError):
    """Invalid machine configuration."""


class MachineError(Chip8Error):
    """Fatal run-time error. The machine cannot continue after it."""

    def __init__(self, pc: int, message: str):
        self.pc = pc
        super().__init__(f"{message} (pc=0x{pc:03X})")


class InvalidInstruction(MachineError):
    def __init__(self, pc: int, instruction: int):
        self.instruction = instruction
        super().__init__(pc, f"invalid instruction 0x{instruction:04X}")


class StackOverflow(MachineError):
    def __init__(self, pc: int):
        super().__init__(pc, "stack overflow")


class StackUnderflow(MachineError):
    def __init__(self, pc: int):
        super().__init__(pc, "stack underflow")


class AddressOutOfRange(MachineError):
    """Address outside 0x000-0xFFF."""

    def __init__(self, address: int, pc: int = 0):
        self.address = address
        super().__init__(pc, f"address {address:#x} outside 0x000-0x{ADDRESS_MASK:03X}")


class MachineHalted(MachineError):
    """Machine was used after a fatal error."""

    def __init__(self, pc: int, cause: Optional[MachineError] = None):
        self.cause = cause
        super().__init__(pc, f"machine halted: {cause}" if cause else "machine halted")


def error_from_state(state) -> Optional[MachineError]:
    """Build the exception matching ``state.error``, or None if the state is healthy."""
    code = int(state.error)
    if code == ERROR_NONE:
        return None

    pc = int(state.pc)
    if code == ERROR_INVALID_INSTRUCTION:
        instruction = (int(state.memory[pc & ADDRESS_MASK]) << 8) | int(state.memory[(pc + 1) & ADDRESS_MASK])
        return InvalidInstruction(pc, instruction)
    if code == ERROR_STACK_OVERFLOW:
        return StackOverflow(pc)
    if code == ERROR_STACK_UNDERFLOW:
        return StackUnderflow(pc)
    raise ValueError(f"unknown error code {code}")


def raise_for_error(state) -> None:
    """Raise the exception recorded on ``state``, if any."""
    error = error_from_state(state)
    if error is not None:
        raise error
