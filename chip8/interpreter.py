""" The step loop: fetch, decode and execute one instruction at a time against a MachineState.
    The front end owns the clock and decides how often step() is called.
"""
import logging

from chip8.state import MachineState, RunState, KEY_COUNT
from chip8.instructions import read_instruction

logger = logging.getLogger(__name__)

ADDRESS_MASK = 0xFFFF

class InterpreterException(Exception):
    """ General exception in handling by the interpreter """
    pass

class Speaker(object):
    """ Abstraction of the sound output. The default makes no sound """
    def beep(self):
        pass

class Interpreter(object):
    """ Main interface to the machine. Wraps a MachineState and runs it one instruction per step.

        Input layers report keys through key_pressed/key_released. Renderers watch
        state.draw_flag and clear it once they have drawn state.vram.
    """
    def __init__(self,state=None,speaker=None):
        self.state = state or MachineState()
        self.speaker = speaker or Speaker()
        self.last_instruction = None

    @property
    def pc(self):
        return self.state.pc

    def instruction_at(self,address):
        """ Return the opcode, handler function and description of the instruction at the given address """
        return read_instruction(self.state.memory,address)

    def current_instruction(self):
        """ Return the current instruction """
        return self.instruction_at(self.state.pc)

    def instructions(self,how_many):
        """ Return (address, opcode, description) for how_many instructions starting at the current pc """
        instructions = []
        address = self.state.pc

        for i in range(0,how_many):
            opcode,handler_f,description = self.instruction_at(address)
            instructions.append((address,opcode,description))
            address += 2

        return instructions

    def step(self):
        """ Execute the current instruction then run down the timers. Does nothing while
            waiting for a key """
        state = self.state
        if state.mode == RunState.WAITING_FOR_KEY:
            return

        opcode,handler_f,description = self.current_instruction()
        state.opcode = opcode
        self.last_instruction = description
        handler_f(state)

        if state.delay_timer > 0:
            state.delay_timer -= 1
        if state.sound_timer > 0:
            if state.sound_timer == 1:
                self.speaker.beep()
            state.sound_timer -= 1

        state.pc &= ADDRESS_MASK
        state.I &= ADDRESS_MASK

        if state.mode == RunState.WAITING_FOR_KEY:
            logger.debug('Waiting for key into V%X at 0x%04x', state.key_register, state.pc)

    def resume(self,key):
        """ Finish an FX0A: store the key in the waiting register and start running again """
        state = self.state
        if state.mode != RunState.WAITING_FOR_KEY:
            raise InterpreterException('Resume with key %X when not waiting for a key' % key)
        self._check_key(key)
        state.V[state.key_register] = key
        state.key_register = None
        state.mode = RunState.RUNNING
        logger.debug('Resumed with key %X', key)

    def key_pressed(self,key):
        self._check_key(key)
        self.state.keypad[key] = 1
        if self.state.mode == RunState.WAITING_FOR_KEY:
            self.resume(key)

    def key_released(self,key):
        self._check_key(key)
        self.state.keypad[key] = 0

    def _check_key(self,key):
        if key < 0 or key >= KEY_COUNT:
            raise InterpreterException('Key %d is out of range 0 to %d' % (key, KEY_COUNT-1))
