"""Tests for miscellaneous instructions (Fxxx)."""

import pytest
from chipjax import execute
from chipjax.constants import FONT_START, NO_KEY, ERROR_INVALID_INSTRUCTION


class TestTimers:
    """Test timer-related instructions."""

    def test_misc_timer_instructions(self, fresh_state):
        """Test timer set and get operations."""
        state = execute(fresh_state, 0x6030)  # V0 = 48
        state = execute(state, 0xF015)  # Set delay timer to V0
        assert state.delay_timer == 48

        state = execute(state, 0x6120)  # V1 = 32
        state = execute(state, 0xF118)  # Set sound timer to V1
        assert state.sound_timer == 32

        state = execute(state, 0xF207)  # V2 = delay timer
        assert state.V[2] == 48


class TestBCD:
    """Test BCD conversion."""

    @pytest.mark.parametrize("value, digits", [(156, [1, 5, 6]), (0, [0, 0, 0]), (255, [2, 5, 5]), (7, [0, 0, 7])])
    def test_bcd_conversion(self, fresh_state, value, digits):
        state = execute(fresh_state, 0x6000 | value)
        state = execute(state, 0xA300)
        state = execute(state, 0xF033)

        assert [int(b) for b in state.memory[0x300:0x303]] == digits
        assert state.I == 0x300

    def test_bcd_wraps_at_end_of_memory(self, fresh_state):
        state = execute(fresh_state, 0x609C)  # V0 = 156
        state = execute(state, 0xAFFF)
        state = execute(state, 0xF033)

        assert state.memory[0xFFF] == 1
        assert state.memory[0x000] == 5
        assert state.memory[0x001] == 6


class TestFont:
    """Test font character addressing."""

    def test_font_all_characters(self, fresh_state):
        state = fresh_state
        for digit in range(16):
            state = execute(state, 0x6000 | digit)
            state = execute(state, 0xF029)
            assert state.I == FONT_START + digit * 5, f"Font address wrong for digit {digit:X}"

    def test_font_uses_low_nibble(self, fresh_state):
        state = execute(fresh_state, 0x603A)  # V0 = 0x3A → glyph A
        state = execute(state, 0xF029)
        assert state.I == FONT_START + 0xA * 5

    def test_font_data_loaded(self, fresh_state):
        assert [int(b) for b in fresh_state.memory[FONT_START:FONT_START + 5]] == [0xF0, 0x90, 0x90, 0x90, 0xF0]


class TestMemoryOperations:
    """FX55/FX65 copy V0..VX inclusive and leave I unchanged."""

    def test_store_registers(self, fresh_state):
        state = execute(fresh_state, 0x6001)
        state = execute(state, 0x6102)
        state = execute(state, 0x6203)
        state = execute(state, 0x6344)  # Not stored
        state = execute(state, 0xA300)

        state = execute(state, 0xF255)

        assert [int(b) for b in state.memory[0x300:0x304]] == [1, 2, 3, 0]
        assert state.I == 0x300

    def test_load_registers(self, fresh_state):
        state = fresh_state.replace(memory=fresh_state.memory.at[0x400:0x403].set(7))
        state = execute(state, 0x6299)  # Overwritten by load
        state = execute(state, 0x6399)  # Not loaded
        state = execute(state, 0xA400)

        state = execute(state, 0xF265)

        assert [int(v) for v in state.V[:4]] == [7, 7, 7, 0x99]
        assert state.I == 0x400

    def test_store_load_round_trip_all_registers(self, fresh_state):
        state = fresh_state
        for reg in range(16):
            state = execute(state, 0x6000 | (reg << 8) | (reg * 3))
        state = execute(state, 0xA500)
        state = execute(state, 0xFF55)
        for reg in range(16):
            state = execute(state, 0x6000 | (reg << 8))

        state = execute(state, 0xFF65)

        assert [int(v) for v in state.V] == [reg * 3 for reg in range(16)]


class TestIndexArithmetic:

    def test_add_to_index(self, fresh_state):
        """FX1E - Add VX to I register."""
        state = execute(fresh_state, 0xA100)
        state = execute(state, 0x6050)
        state = execute(state, 0xF01E)
        assert state.I == 0x150
        assert state.V[15] == 0

    def test_add_to_index_overflow_sets_vf(self, fresh_state):
        state = execute(fresh_state, 0xAFFF)
        state = execute(state, 0x6002)
        state = execute(state, 0xF01E)
        assert state.I == 0x001
        assert state.V[15] == 1


class TestWaitForKey:

    def test_wait_enters_wait_mode(self, fresh_state):
        """FX0A - Record the register and rewind PC onto the instruction."""
        state = fresh_state.replace(pc=fresh_state.pc + 2)  # as left by fetch

        state = execute(state, 0xF30A)

        assert state.awaiting_key == 3
        assert state.key_latch == NO_KEY
        assert state.pc == 0x200


@pytest.mark.parametrize("instruction", [0xF000, 0xF0FF, 0xF056, 0xF019])
def test_unknown_misc_instruction_is_invalid(fresh_state, instruction):
    state = execute(fresh_state, instruction)
    assert state.error == ERROR_INVALID_INSTRUCTION
