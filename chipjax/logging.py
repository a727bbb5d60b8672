"""Console logging utilities for the CHIP-8 machine.

The pure emulator core never logs. :class:`MachineLogger` is used by
``chipjax.machine.Machine`` to report program loads, run start/end and
fatal errors.
"""

import time
import sys
from typing import Any, Dict

LEVELS = {"DEBUG": 0, "INFO": 1, "WARNING": 2, "ERROR": 3, "CRITICAL": 4}

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"


class ConsoleLogger:
    """Leveled console logger with optional colors and timestamps.

    Colors are only used when stdout is a terminal. Timestamps are seconds
    since the logger was created.
    """

    def __init__(
        self,
        name: str = "chipjax",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
    ):
        self.name = name
        self.log_level = log_level.upper()
        self.threshold = LEVELS.get(self.log_level, LEVELS["INFO"])
        self.use_colors = use_colors and getattr(sys.stdout, "isatty", lambda: False)()
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

    def enabled(self, level: str) -> bool:
        return LEVELS.get(level.upper(), LEVELS["INFO"]) >= self.threshold

    def format(self, level: str, message: str) -> str:
        parts = []
        if self.show_timestamps:
            parts.append(f"[{time.time() - self.start_time:8.2f}s]")
        tag = f"[{level:>8s}]"
        if self.use_colors:
            tag = f"{LEVEL_COLORS.get(level.upper(), '')}{tag}{RESET}"
        parts.append(tag)
        parts.append(f"[{self.name}] {message}")
        return "".join(parts)

    def log(self, level: str, message: str):
        if self.enabled(level):
            print(self.format(level, message), flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


class MachineLogger(ConsoleLogger):
    """Logger with messages for the machine lifecycle."""

    def __init__(self, name: str = "chipjax", **kwargs):
        super().__init__(name, **kwargs)

    def log_program_loaded(self, size: int, start: int):
        self.info(f"Loaded {size} byte program at 0x{start:03X}")

    def log_run_start(self, config: Dict[str, Any]):
        self.info("Starting machine:")
        for key, value in config.items():
            self.info(f"  {key}: {value}")

    def log_halt(self, error: Exception):
        """Report a fatal error with its kind and the faulting PC."""
        pc = getattr(error, "pc", None)
        where = f" at pc=0x{pc:03X}" if pc is not None else ""
        self.error(f"Machine halted{where}: {type(error).__name__}: {error}")

    def log_run_end(self, status: str, stats: Dict[str, Any]):
        elapsed = time.time() - self.start_time
        summary = " | ".join(f"{key}={value}" for key, value in stats.items())
        self.info(f"Machine {status} after {elapsed:.1f}s | {summary}")
