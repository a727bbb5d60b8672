"""Tests for the real-time execution loop."""

import threading

import jax.numpy as jnp
import numpy as np
import pytest
from chipjax import (
    Machine, MachineConfig, Status, Chip8Error, ConfigError, ProgramTooLarge, StackUnderflow,
    InvalidInstruction, MachineHalted, AddressOutOfRange,
)
from chipjax.constants import MAX_PROGRAM_SIZE, SCREEN_WIDTH, SCREEN_HEIGHT

FRAME = 1 / 60


class TestTiming:

    def test_instruction_rate(self, make_machine, clock):
        machine = make_machine(0x7101, 0x1200, instructions_per_second=700)
        for _ in range(10):
            clock.advance(0.1)
            machine.advance()
        assert machine.stats.instructions == 700
        assert machine.stats.ticks == 60

    def test_delay_timer_counts_down_to_zero(self, make_machine, clock):
        machine = make_machine(0x1200)
        machine.state = machine.state.replace(delay_timer=jnp.asarray(10, dtype=jnp.uint8))

        for _ in range(10):
            clock.advance(FRAME)
            assert machine.advance() == 1
        assert machine.delay_timer == 0

        for _ in range(5):
            clock.advance(FRAME)
            machine.advance()
        assert machine.delay_timer == 0

    def test_catch_up_processes_every_due_tick(self, make_machine, clock):
        machine = make_machine(0x1200)
        machine.state = machine.state.replace(delay_timer=jnp.asarray(10, dtype=jnp.uint8))

        clock.advance(10 * FRAME)
        assert machine.advance() == 10
        assert machine.delay_timer == 0

    def test_no_time_no_work(self, make_machine):
        machine = make_machine(0x7101, 0x1200)
        assert machine.advance() == 0
        assert machine.stats.instructions == 0

    def test_backlog_is_capped(self, make_machine, clock):
        machine = make_machine(0x1200, max_backlog=0.25)
        clock.advance(5.0)
        machine.advance()
        assert machine.stats.ticks == 15
        assert machine.stats.instructions == 175

    def test_timers_tick_between_instructions(self, make_machine, clock):
        """Programs polling the delay timer see it move within one catch-up."""
        machine = make_machine(
            0x6003,  # V0 = 3
            0xF015,  # DT = V0
            0xF107,  # V1 = DT
            0x3100,  # skip if V1 == 0
            0x1204,  # poll again
            0x120A,  # done
            instructions_per_second=600,
        )
        clock.advance(0.2)
        machine.advance()
        assert machine.pc == 0x20A
        assert machine.registers[1] == 0


class TestKeys:

    def test_wait_for_key(self, make_machine, clock):
        machine = make_machine(0xF30A, 0x1202)
        for _ in range(5):
            clock.advance(FRAME)
            machine.advance()
            assert machine.pc == 0x200
        assert machine.awaiting_key == 3

        machine.key_down(0x7)
        clock.advance(FRAME)
        machine.advance()

        assert machine.registers[3] == 7
        assert machine.pc == 0x202
        assert machine.awaiting_key is None

    def test_timers_run_while_waiting(self, make_machine, clock):
        machine = make_machine(0xF00A)
        machine.state = machine.state.replace(sound_timer=jnp.asarray(5, dtype=jnp.uint8))
        clock.advance(5 * FRAME)
        machine.advance()
        assert machine.sound_timer == 0
        assert machine.pc == 0x200

    def test_key_skip_sees_held_key(self, make_machine, clock):
        machine = make_machine(
            0x6005,  # V0 = 5
            0xE09E,  # skip if key 5 down
            0x1202,  # spin here while up
            0x1206,  # park here once seen
        )
        clock.advance(FRAME)
        machine.advance()
        assert machine.pc in (0x202, 0x204)

        machine.key_down(5)
        clock.advance(FRAME)
        machine.advance()
        assert machine.pc == 0x206

    @pytest.mark.parametrize("key", [-1, 16, 0x20])
    def test_invalid_key(self, make_machine, key):
        machine = make_machine(0x1200)
        with pytest.raises(ValueError):
            machine.key_down(key)
        with pytest.raises(ValueError):
            machine.key_up(key)


class TestOutputs:

    def test_frame_ready_after_draw(self, make_machine, clock):
        machine = make_machine(0x6000, 0xF029, 0xD005, 0x1206)
        assert not machine.frame_ready

        clock.advance(FRAME)
        machine.advance()

        assert machine.frame_ready
        frame = machine.frame()
        assert frame.shape == (SCREEN_WIDTH, SCREEN_HEIGHT)
        assert frame.dtype == np.bool_
        assert frame.sum() == 14
        assert not machine.frame_ready

        clock.advance(FRAME)
        machine.advance()
        assert not machine.frame_ready
        assert machine.stats.frames == 1

    def test_on_frame_callback(self, clock):
        frames = []
        machine = Machine(clock=clock, on_frame=frames.append)
        machine.load(bytes([0x00, 0xE0, 0x12, 0x00]))

        clock.advance(3 * FRAME)
        machine.advance()

        assert len(frames) == 3
        assert not frames[-1].any()

    def test_tone_follows_sound_timer(self, clock):
        tones = []
        machine = Machine(clock=clock, on_tone=tones.append)
        machine.load(bytes([0x60, 0x05, 0xF0, 0x18, 0x12, 0x04]))  # ST = 5, loop

        clock.advance(5 * FRAME)
        machine.advance()
        assert machine.tone
        assert tones == [True]

        clock.advance(FRAME)
        machine.advance()
        assert not machine.tone
        assert tones == [True, False]


class TestErrors:

    def test_fatal_error_halts(self, make_machine, clock):
        machine = make_machine(0x00EE)
        clock.advance(FRAME)
        with pytest.raises(StackUnderflow) as excinfo:
            machine.advance()

        assert excinfo.value.pc == 0x200
        assert machine.status is Status.HALTED
        assert machine.error is excinfo.value
        assert machine.pc == 0x200

        clock.advance(FRAME)
        with pytest.raises(MachineHalted):
            machine.advance()

    def test_oversized_program_leaves_machine_untouched(self, make_machine):
        machine = make_machine()
        with pytest.raises(ProgramTooLarge):
            machine.load(bytes(MAX_PROGRAM_SIZE + 1))
        assert machine.status is Status.READY

        machine.load(bytes([0x12, 0x00]))
        assert machine.status is Status.RUNNING

    def test_advance_before_load(self, make_machine):
        with pytest.raises(Chip8Error):
            make_machine().advance()

    def test_reload_after_halt(self, make_machine, clock):
        machine = make_machine(0xFFFF)
        clock.advance(FRAME)
        with pytest.raises(InvalidInstruction):
            machine.advance()

        machine.load(bytes([0x12, 0x00]))
        clock.advance(FRAME)
        machine.advance()
        assert machine.status is Status.RUNNING
        assert machine.error is None

    def test_read_memory_validates(self, make_machine):
        machine = make_machine(0x1200)
        assert machine.read_memory(0x200) == 0x12
        with pytest.raises(AddressOutOfRange):
            machine.read_memory(0x1000)

    def test_invalid_config(self):
        with pytest.raises(ConfigError):
            Machine(MachineConfig(timer_hz=0))


class TestRun:

    def test_run_until_max_ticks(self, make_machine):
        machine = make_machine(0x1200)
        assert machine.run(max_ticks=30) is Status.STOPPED
        assert machine.stats.ticks == 30

    def test_run_returns_halted(self, make_machine):
        machine = make_machine(0x6000, 0xF0FF)
        assert machine.run() is Status.HALTED
        assert isinstance(machine.error, InvalidInstruction)
        assert machine.error.pc == 0x202

    def test_run_stops_on_event(self, make_machine):
        machine = make_machine(0x1200)
        stop = threading.Event()
        stop.set()
        assert machine.run(stop_event=stop) is Status.STOPPED

    def test_run_on_worker_thread(self, make_machine):
        machine = make_machine(0x7101, 0x1200)
        stop = threading.Event()
        worker = threading.Thread(target=machine.run, kwargs={"stop_event": stop})
        worker.start()
        machine.key_down(1)
        stop.set()
        worker.join(timeout=60)

        assert not worker.is_alive()
        assert machine.status is Status.STOPPED

    def test_machines_are_independent(self, make_machine, clock):
        first = make_machine(0x6011, 0x1202)
        second = make_machine(0x6022, 0x1202)
        clock.advance(FRAME)
        first.advance()
        second.advance()
        assert first.registers[0] == 0x11
        assert second.registers[0] == 0x22
