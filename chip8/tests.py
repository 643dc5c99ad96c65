""" Tests for chip8 memory and machine state """

import unittest

from chip8.memory import Memory,MemoryException
from chip8.state import MachineState,RunState,RNG,ProgramTooLargeException,StackException,\
                        FONT_SET,PROGRAM_START,MAX_PROGRAM_SIZE,MEMORY_SIZE,VRAM_SIZE,STACK_SIZE

class MemoryTests(unittest.TestCase):
    def test_from_integers(self):
        mem = Memory([1,2,3])
        self.assertEqual(3, len(mem))
        self.assertEqual(1,mem[0])
        self.assertEqual(2,mem[1])
        self.assertEqual(3,mem[2])
        self.assertEqual(bytearray([1,2]), mem[0:2])

    def test_from_chars(self):
        mem = Memory(b'\x01\x02\x03')
        self.assertEqual(3, len(mem))
        self.assertEqual(1,mem[0])
        self.assertEqual(2,mem[1])
        self.assertEqual(3,mem[2])

    def test_word(self):
        mem = Memory([0x12,0x34])
        self.assertEqual(0x1234,mem.word(0))

    def test_set_word(self):
        mem = Memory([0,0])
        self.assertEqual(0,mem.word(0))

        mem.set_word(0,0xFFFF)
        self.assertEqual(0xFFFF,mem.word(0))
        self.assertEqual(0xFF, mem[0])
        self.assertEqual(0xFF, mem[1])

        mem.set_word(0,0xFF00)
        self.assertEqual(0xFF00,mem.word(0))
        self.assertEqual(0xFF,mem[0])
        self.assertEqual(0,mem[1])

    def test_out_of_range(self):
        mem = Memory([0,0])
        with self.assertRaises(MemoryException):
            mem[2]
        with self.assertRaises(MemoryException):
            mem[-1]
        with self.assertRaises(MemoryException):
            mem[2] = 1
        with self.assertRaises(MemoryException):
            mem.word(1)

    def test_non_byte_value(self):
        mem = Memory([0])
        with self.assertRaises(MemoryException):
            mem[0] = 0x100
        with self.assertRaises(MemoryException):
            mem[0] = -1

    def test_block_write(self):
        mem = Memory([0,0,0,0])
        mem[1:3] = [5,6]
        self.assertEqual(bytearray([0,5,6,0]), mem[0:4])
        with self.assertRaises(MemoryException):
            mem[1:3] = [1,2,3]
        self.assertEqual(4,len(mem))

    def test_str(self):
        self.assertEqual('00ff10', str(Memory([0,0xFF,0x10])))

    def test_dump(self):
        mem = Memory(range(0,20))
        lines = mem.dump(start_address=0x200)
        self.assertEqual(2,len(lines))
        self.assertEqual('0200 00 01 02 03 04 05 06 07 08 09 0a 0b 0c 0d 0e 0f', lines[0])
        self.assertEqual('0210 10 11 12 13', lines[1])

class MachineStateTests(unittest.TestCase):
    def test_initial_state(self):
        state = MachineState()
        self.assertEqual(MEMORY_SIZE,len(state.memory))
        self.assertEqual(PROGRAM_START,state.pc)
        self.assertEqual(0,state.I)
        self.assertEqual(0,state.sp)
        self.assertEqual([0]*STACK_SIZE,state.stack)
        self.assertEqual(bytearray(16),state.V)
        self.assertEqual(bytearray(VRAM_SIZE),state.vram)
        self.assertEqual(bytearray(16),state.keypad)
        self.assertEqual(0,state.delay_timer)
        self.assertEqual(0,state.sound_timer)
        self.assertEqual(0,state.opcode)
        self.assertFalse(state.draw_flag)
        self.assertFalse(state.stopped)
        self.assertEqual(RunState.RUNNING,state.mode)

    def test_font_loaded(self):
        state = MachineState()
        self.assertEqual(80,len(FONT_SET))
        self.assertEqual(bytearray(FONT_SET), state.memory[0:0x50])
        # Glyph for 0
        self.assertEqual(bytearray([0xF0,0x90,0x90,0x90,0xF0]), state.memory[0:5])
        # Glyph for F
        self.assertEqual(bytearray([0xF0,0x80,0xF0,0x80,0x80]), state.memory[75:80])
        self.assertEqual(0,state.memory[0x50])

    def test_load(self):
        state = MachineState()
        state.V[3] = 7
        state.load(b'\x60\x12\x70\x01')
        self.assertEqual(0x6012,state.memory.word(0x200))
        self.assertEqual(0x7001,state.memory.word(0x202))
        self.assertEqual(0,state.memory[0x204])
        self.assertEqual(PROGRAM_START,state.pc)
        self.assertEqual(7,state.V[3])

    def test_load_max_size(self):
        state = MachineState()
        state.load(bytes([0xAB] * MAX_PROGRAM_SIZE))
        self.assertEqual(3584,MAX_PROGRAM_SIZE)
        self.assertEqual(0xAB,state.memory[0xFFF])
        self.assertEqual(MEMORY_SIZE,len(state.memory))

    def test_load_too_large(self):
        state = MachineState()
        with self.assertRaises(ProgramTooLargeException):
            state.load(bytes([0xAB] * (MAX_PROGRAM_SIZE+1)))
        # Nothing written
        self.assertEqual(0,state.memory[0x200])

    def test_stack(self):
        state = MachineState()
        state.push_to_stack(0x300)
        state.push_to_stack(0x400)
        self.assertEqual(2,state.sp)
        self.assertEqual(0x400,state.pop_from_stack())
        self.assertEqual(0x300,state.pop_from_stack())
        self.assertEqual(0,state.sp)

    def test_stack_underflow(self):
        state = MachineState()
        with self.assertRaises(StackException):
            state.pop_from_stack()
        self.assertEqual(0,state.sp)

    def test_stack_overflow(self):
        state = MachineState()
        for i in range(0,STACK_SIZE):
            state.push_to_stack(0x200+i*2)
        with self.assertRaises(StackException):
            state.push_to_stack(0x300)
        self.assertEqual(STACK_SIZE,state.sp)

class RNGTests(unittest.TestCase):
    def test_predictable(self):
        rng = RNG()
        rng.enter_predictable_mode(42)
        first = [rng.random_byte() for i in range(0,20)]
        rng.enter_predictable_mode(42)
        second = [rng.random_byte() for i in range(0,20)]
        self.assertEqual(first,second)

    def test_range(self):
        rng = RNG()
        rng.enter_predictable_mode(0)
        values = set([rng.random_byte() for i in range(0,5000)])
        self.assertEqual(0,min(values))
        self.assertEqual(255,max(values))
