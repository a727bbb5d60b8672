"""Real-time execution loop around the pure emulator core.

:class:`Machine` owns one :class:`~chipjax.state.EmulatorState` and advances
it against a host clock. Instruction execution and the 60 Hz timer/frame
tick are two independent rates fed by the same clock sample; the number of
instructions and ticks due is derived from the total emulated time, so the
two never drift apart.

Only the thread running the loop touches the state. Other threads talk to
it through :meth:`Machine.key_down`/:meth:`Machine.key_up` (queued) and read
:meth:`Machine.frame`/:attr:`Machine.tone` (last value).
"""

import dataclasses
import enum
import math
import queue
import threading
import time
from typing import Callable, Optional

import jax
import jax.numpy as jnp
import numpy as np

from chipjax.config import MachineConfig, validate_config
from chipjax.constants import PROGRAM_START, NO_KEY
from chipjax.emulator import load_program, run_instructions, tick_timers
from chipjax.errors import Chip8Error, MachineError, MachineHalted, error_from_state
from chipjax.keypad import check_key, press_key, release_key
from chipjax.logging import MachineLogger
from chipjax.memory import check_address
from chipjax.state import EmulatorState, create_state

# Absorbs float rounding when converting elapsed seconds to whole counts
_EPSILON = 1e-9


class Status(enum.Enum):
    READY = "ready"
    RUNNING = "running"
    STOPPED = "stopped"
    HALTED = "halted"


@dataclasses.dataclass
class MachineStats:
    instructions: int = 0
    ticks: int = 0
    frames: int = 0


class Machine:
    """CHIP-8 machine driven in real time.

    Args:
        config: Loop settings, defaults to ``MachineConfig()``
        clock: Monotonic time source in seconds
        sleep: Used by :meth:`run` to idle between iterations
        logger: Defaults to a :class:`MachineLogger` at ``config.log_level``
        on_frame: Called with the new frame after a tick that changed the display
        on_tone: Called with the new tone state when it toggles
    """

    def __init__(
        self,
        config: Optional[MachineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[MachineLogger] = None,
        on_frame: Optional[Callable[[np.ndarray], None]] = None,
        on_tone: Optional[Callable[[bool], None]] = None,
    ):
        self.config = validate_config(config or MachineConfig())
        self.logger = logger or MachineLogger(log_level=self.config.log_level)
        self.on_frame = on_frame
        self.on_tone = on_tone
        self._clock = clock
        self._sleep = sleep
        self._events = queue.SimpleQueue()
        self._reset()
        self.status = Status.READY

    def _reset(self):
        self.state: EmulatorState = create_state(jax.random.PRNGKey(self.config.seed))
        self.stats = MachineStats()
        self.error: Optional[MachineError] = None
        self.tone = False
        self._frame_ready = False
        self._emulated_time = 0.0
        self._instructions_done = 0
        self._last_sample = self._clock()

    def load(self, program: bytes):
        """Reset the machine and load ``program`` at 0x200.

        Raises:
            ProgramTooLarge: the machine is left as it was.
        """
        loaded = load_program(create_state(jax.random.PRNGKey(self.config.seed)), program)
        self._reset()
        self.state = loaded
        self.status = Status.RUNNING
        self.logger.log_program_loaded(len(program), PROGRAM_START)

    # Input

    def key_down(self, key: int):
        """Queue a key press. Safe to call from any thread."""
        self._events.put((check_key(key), True))

    def key_up(self, key: int):
        """Queue a key release. Safe to call from any thread."""
        self._events.put((check_key(key), False))

    def _apply_key_events(self):
        while True:
            try:
                key, pressed = self._events.get_nowait()
            except queue.Empty:
                return
            self.state = press_key(self.state, key) if pressed else release_key(self.state, key)

    # Execution

    def _due(self, seconds: float, rate: int) -> int:
        return math.floor(seconds * rate + _EPSILON)

    def _run_until(self, seconds: float):
        count = self._due(seconds, self.config.instructions_per_second) - self._instructions_done
        if count <= 0:
            return
        self.state = run_instructions(self.state, count)
        self._instructions_done += count
        error = error_from_state(self.state)
        if error is not None:
            self._halt(error)
            raise error
        self.stats.instructions += count

    def _tick(self):
        tone = bool(self.state.sound_timer > 0)
        self.state = tick_timers(self.state)
        self.stats.ticks += 1

        if bool(self.state.display_dirty):
            self.state = self.state.replace(display_dirty=jnp.zeros((), dtype=jnp.bool_))
            self._frame_ready = True
            self.stats.frames += 1
            if self.on_frame is not None:
                self.on_frame(self.frame())

        if tone != self.tone:
            self.tone = tone
            if self.on_tone is not None:
                self.on_tone(tone)

    def _halt(self, error: MachineError):
        self.status = Status.HALTED
        self.error = error
        self.logger.log_halt(error)

    def advance(self) -> int:
        """Catch the machine up with the clock.

        Applies queued key events, then executes the instructions and timer
        ticks that fell due since the previous call, in time order.

        Returns:
            Number of 60 Hz ticks processed

        Raises:
            MachineError: a fatal error stopped the program during this call
            MachineHalted: the machine already stopped on a fatal error
        """
        if self.status is Status.HALTED:
            raise MachineHalted(self.error.pc, self.error)
        if self.status is Status.READY:
            raise Chip8Error("no program loaded")

        self._apply_key_events()

        now = self._clock()
        elapsed = min(max(now - self._last_sample, 0.0), self.config.max_backlog)
        self._last_sample = now
        self._emulated_time += elapsed

        timer_hz = self.config.timer_hz
        ticks = 0
        while self.stats.ticks < self._due(self._emulated_time, timer_hz):
            self._run_until((self.stats.ticks + 1) / timer_hz)
            self._tick()
            ticks += 1
        self._run_until(self._emulated_time)
        return ticks

    def run(self, stop_event: Optional[threading.Event] = None, max_ticks: Optional[int] = None) -> Status:
        """Advance the machine until asked to stop or a fatal error occurs.

        Args:
            stop_event: Set from another thread to request shutdown
            max_ticks: Stop after this many 60 Hz ticks in total

        Returns:
            ``Status.STOPPED`` on shutdown, ``Status.HALTED`` on a fatal error
            (the error is in :attr:`error`)
        """
        if self.status is Status.HALTED:
            raise MachineHalted(self.error.pc, self.error)
        if self.status is Status.READY:
            raise Chip8Error("no program loaded")

        self.status = Status.RUNNING
        self._last_sample = self._clock()
        self.logger.log_run_start(dataclasses.asdict(self.config))
        try:
            while not (stop_event is not None and stop_event.is_set()):
                self.advance()
                if max_ticks is not None and self.stats.ticks >= max_ticks:
                    break
                self._sleep(self.config.idle_sleep)
        except MachineError:
            # Already recorded by _halt and reported as the terminal status
            pass
        else:
            self.status = Status.STOPPED

        self.logger.log_run_end(self.status.value, dataclasses.asdict(self.stats))
        return self.status

    # Output and inspection

    @property
    def frame_ready(self) -> bool:
        """True when the display changed since the last :meth:`frame` call."""
        return self._frame_ready

    def frame(self) -> np.ndarray:
        """Copy of the display as a (64, 32) boolean array indexed [x, y]."""
        self._frame_ready = False
        return np.array(self.state.display, dtype=np.bool_)

    @property
    def pc(self) -> int:
        return int(self.state.pc)

    @property
    def index(self) -> int:
        return int(self.state.I)

    @property
    def registers(self) -> tuple[int, ...]:
        return tuple(int(v) for v in np.asarray(self.state.V))

    @property
    def delay_timer(self) -> int:
        return int(self.state.delay_timer)

    @property
    def sound_timer(self) -> int:
        return int(self.state.sound_timer)

    @property
    def awaiting_key(self) -> Optional[int]:
        """Register FX0A is waiting to fill, or None."""
        register = int(self.state.awaiting_key)
        return None if register == NO_KEY else register

    def read_memory(self, address: int) -> int:
        return int(self.state.memory[check_address(address)])
