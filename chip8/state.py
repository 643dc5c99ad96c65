""" The machine record: everything a CHIP-8 program can observe or change.

    Memory map:
        0x000 - 0x04F   hex digit font (16 glyphs, 5 bytes each)
        0x050 - 0x1FF   unused
        0x200 - 0xFFF   program space
"""
import logging
import os
import random
from enum import Enum

from chip8.memory import Memory

logger = logging.getLogger(__name__)

MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START
SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
VRAM_SIZE = SCREEN_WIDTH * SCREEN_HEIGHT
STACK_SIZE = 16
V_REGISTERS = 16
KEY_COUNT = 16
FLAG_REGISTER = 0xF
FONT_GLYPH_SIZE = 5

FONT_SET = [
    0xF0, 0x90, 0x90, 0x90, 0xF0, # 0
    0x20, 0x60, 0x20, 0x20, 0x70, # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0, # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0, # 3
    0x90, 0x90, 0xF0, 0x10, 0x10, # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0, # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0, # 6
    0xF0, 0x10, 0x20, 0x40, 0x40, # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0, # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0, # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90, # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0, # B
    0xF0, 0x80, 0x80, 0x80, 0xF0, # C
    0xE0, 0x90, 0x90, 0x90, 0xE0, # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0, # E
    0xF0, 0x80, 0xF0, 0x80, 0x80, # F
]

class ProgramTooLargeException(Exception):
    """ Thrown when a program will not fit in program space """
    pass

class StackException(Exception):
    """ Thrown on a call with a full stack or a return with an empty one """
    pass

class RunState(Enum):
    RUNNING         = 0
    WAITING_FOR_KEY = 1

class RNG(object):
    """ Source of random bytes for the CXNN instruction. Starts in random mode; can be
        switched to a predictable mode with a fixed seed for tests and reproducible runs """
    def __init__(self):
        self._random = random.Random()
        self.seed = 0
        self.enter_random_mode()

    def enter_random_mode(self):
        self.seed = os.urandom(8)
        self._reseed()

    def enter_predictable_mode(self, seed):
        self.seed = seed
        self._reseed()

    def _reseed(self):
        self._random.seed(self.seed)

    def random_byte(self):
        """ Return random integer r such that 0 <= r <= 255 """
        return self._random.randint(0,0xFF)

class MachineState(object):
    """ Contains the entirety of the state of the machine. Handlers in chip8.instructions mutate it;
        chip8.interpreter drives them. """
    def __init__(self):
        self.memory = Memory([0] * MEMORY_SIZE)
        self.memory[0:len(FONT_SET)] = FONT_SET
        self.V = bytearray(V_REGISTERS)
        self.I = 0
        self.pc = PROGRAM_START
        self.sp = 0
        self.stack = [0] * STACK_SIZE
        self.vram = bytearray(VRAM_SIZE)
        self.keypad = bytearray(KEY_COUNT)
        self.delay_timer = 0
        self.sound_timer = 0
        self.opcode = 0
        self.draw_flag = False
        self.mode = RunState.RUNNING
        self.key_register = None # Register that receives the key when waiting
        self.rng = RNG()

    @property
    def stopped(self):
        """ True while an FX0A is waiting for a key press """
        return self.mode == RunState.WAITING_FOR_KEY

    def load(self,data):
        """ Copy the program bytes into memory at the start of program space """
        if len(data) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeException('Cannot load program, size %d exceeds the %d bytes of program memory' % (len(data), MAX_PROGRAM_SIZE))
        self.memory[PROGRAM_START:PROGRAM_START+len(data)] = data
        logger.debug('Loaded %d byte program at 0x%03x', len(data), PROGRAM_START)

    def push_to_stack(self,address):
        if self.sp >= STACK_SIZE:
            raise StackException('Stack overflow calling from 0x%04x' % self.pc)
        self.stack[self.sp] = address
        self.sp += 1

    def pop_from_stack(self):
        if self.sp <= 0:
            raise StackException('Cannot return from 0x%04x with an empty stack' % self.pc)
        self.sp -= 1
        return self.stack[self.sp]
