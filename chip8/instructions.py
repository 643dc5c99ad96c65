""" Decoding of 16-bit opcodes, and the handlers that carry out each instruction

    Every opcode is split into a group (the top nibble) and, for the groups that hold more than
    one instruction, a selector (the low nibble or low byte). The pair is looked up in OPCODE_HANDLERS.
    Anything not in the table is an invalid opcode.

    See http://devernay.free.fr/hacks/chip8/C8TECH10.HTM for a description of the instruction set
"""
from collections import namedtuple
from enum import Enum

from chip8.state import FLAG_REGISTER, FONT_GLYPH_SIZE, SCREEN_WIDTH, SCREEN_HEIGHT, RunState

MAX_OPCODE = 0xFFFF

### Constants and utilities
class InstructionException(Exception):
    pass

class InvalidOpcodeException(InstructionException):
    """ Thrown when an opcode does not match any instruction. Carries the raw opcode and, once known,
        the address it was fetched from """
    def __init__(self, opcode, address=None):
        self.opcode = opcode
        self.address = address
        if address is None:
            msg = 'Invalid opcode 0x%04x' % opcode
        else:
            msg = 'Invalid opcode 0x%04x at 0x%04x' % (opcode, address)
        super(InvalidOpcodeException,self).__init__(msg)

class InstructionGroup(Enum):
    system        = 0x0
    jump          = 0x1
    call          = 0x2
    skip_eq_const = 0x3
    skip_ne_const = 0x4
    skip_eq_reg   = 0x5
    load_const    = 0x6
    add_const     = 0x7
    alu           = 0x8
    skip_ne_reg   = 0x9
    load_index    = 0xA
    jump_offset   = 0xB
    random        = 0xC
    draw          = 0xD
    key           = 0xE
    misc          = 0xF

# Groups holding several instructions, and the bits of the opcode that pick one
SELECTOR_MASKS = {
    InstructionGroup.system: 0x00FF,
    InstructionGroup.alu:    0x000F,
    InstructionGroup.key:    0x000F,
    InstructionGroup.misc:   0x00FF,
}

Operands = namedtuple('Operands', ['x', 'y', 'n', 'nn', 'nnn'])

def extract_opcode(opcode):
    """ Return the group and selector for an opcode. Selector is None for single-instruction groups """
    if opcode < 0 or opcode > MAX_OPCODE:
        raise InvalidOpcodeException(opcode)
    group = InstructionGroup((opcode & 0xF000) >> 12)
    mask = SELECTOR_MASKS.get(group)
    if mask is None:
        return group, None
    return group, opcode & mask

def extract_operands(opcode):
    return Operands(x=(opcode & 0x0F00) >> 8,
                    y=(opcode & 0x00F0) >> 4,
                    n=opcode & 0x000F,
                    nn=opcode & 0x00FF,
                    nnn=opcode & 0x0FFF)

def decode(opcode):
    """ Return the OPCODE_HANDLERS entry for this opcode. Raises InvalidOpcodeException if there is none """
    handler = OPCODE_HANDLERS.get(extract_opcode(opcode))
    if not handler:
        raise InvalidOpcodeException(opcode)
    return handler

def read_instruction(memory,address):
    """ Read the instruction at the given address, and return the opcode, a handler function and summary """
    opcode = memory.word(address)
    try:
        handler = decode(opcode)
    except InvalidOpcodeException:
        raise InvalidOpcodeException(opcode, address)
    operands = extract_operands(opcode)

    # Create the handler function for this instruction
    handler_f = lambda state: handler['handler'](state, operands).apply(state)

    return opcode, handler_f, format_description(handler, operands)

def format_description(handler, operands):
    """ Create a text description of this instruction """
    return handler['format'] % operands._asdict()

### Interpreter actions, returned at end of each instruction to tell the interpreter where the pc goes
class NextInstructionAction(object):
    """ Proceed to the instruction after this one """
    def apply(self,state):
        state.pc += 2

class SkipInstructionAction(object):
    """ Skip over the next instruction """
    def apply(self,state):
        state.pc += 4

class JumpAction(object):
    """ Continue at an absolute address """
    def __init__(self, address):
        self.address = address

    def apply(self,state):
        state.pc = self.address

class CallAction(object):
    """ Push the address of this instruction and continue at the subroutine """
    def __init__(self, routine_address):
        self.routine_address = routine_address

    def apply(self,state):
        state.push_to_stack(state.pc)
        state.pc = self.routine_address

class ReturnAction(object):
    """ Continue at the instruction after the most recent call """
    def apply(self,state):
        state.pc = state.pop_from_stack() + 2

def skip_if(condition):
    if condition:
        return SkipInstructionAction()
    return NextInstructionAction()

def read_indexed(state,offset):
    """ Byte at I+offset. Addresses past the end of memory read as 0 """
    address = state.I + offset
    if address >= len(state.memory):
        return 0
    return state.memory[address]

def write_indexed(state,offset,value):
    """ Store a byte at I+offset. Writes past the end of memory are dropped """
    address = state.I + offset
    if address < len(state.memory):
        state.memory[address] = value


###
### All handlers are passed the machine state and the operands of the opcode,
### and return an action object telling the interpreter how to proceed
###

## Flow

def op_clear_screen(state,operands):
    for i in range(0,len(state.vram)):
        state.vram[i] = 0
    return NextInstructionAction()

def op_return(state,operands):
    return ReturnAction()

def op_jump(state,operands):
    return JumpAction(operands.nnn)

def op_call(state,operands):
    return CallAction(operands.nnn)

def op_jump_offset(state,operands):
    return JumpAction(operands.nnn + state.V[0])

## Conditionals

def op_skip_eq_const(state,operands):
    return skip_if(state.V[operands.x] == operands.nn)

def op_skip_ne_const(state,operands):
    return skip_if(state.V[operands.x] != operands.nn)

def op_skip_eq_reg(state,operands):
    return skip_if(state.V[operands.x] == state.V[operands.y])

def op_skip_ne_reg(state,operands):
    return skip_if(state.V[operands.x] != state.V[operands.y])

## Registers and arithmetic

def op_load_const(state,operands):
    state.V[operands.x] = operands.nn
    return NextInstructionAction()

def op_add_const(state,operands):
    # No carry flag for this one
    state.V[operands.x] = (state.V[operands.x] + operands.nn) & 0xFF
    return NextInstructionAction()

def op_assign(state,operands):
    state.V[operands.x] = state.V[operands.y]
    return NextInstructionAction()

def op_or(state,operands):
    state.V[operands.x] = state.V[operands.x] | state.V[operands.y]
    return NextInstructionAction()

def op_and(state,operands):
    state.V[operands.x] = state.V[operands.x] & state.V[operands.y]
    return NextInstructionAction()

def op_xor(state,operands):
    state.V[operands.x] = state.V[operands.x] ^ state.V[operands.y]
    return NextInstructionAction()

# The flag setting ops write VF last, so VF as a destination ends up holding the flag

def op_add(state,operands):
    result = state.V[operands.x] + state.V[operands.y]
    state.V[operands.x] = result & 0xFF
    state.V[FLAG_REGISTER] = 1 if result > 0xFF else 0
    return NextInstructionAction()

def op_sub(state,operands):
    """ Vx = Vx - Vy. VF is 0 on a borrow, 1 otherwise """
    vx, vy = state.V[operands.x], state.V[operands.y]
    state.V[operands.x] = (vx - vy) & 0xFF
    state.V[FLAG_REGISTER] = 0 if vy > vx else 1
    return NextInstructionAction()

def op_shift_right(state,operands):
    vx = state.V[operands.x]
    state.V[operands.x] = vx >> 1
    state.V[FLAG_REGISTER] = vx & 0x01
    return NextInstructionAction()

def op_subn(state,operands):
    """ Vx = Vy - Vx. VF is 0 on a borrow, 1 otherwise """
    vx, vy = state.V[operands.x], state.V[operands.y]
    state.V[operands.x] = (vy - vx) & 0xFF
    state.V[FLAG_REGISTER] = 0 if vx > vy else 1
    return NextInstructionAction()

def op_shift_left(state,operands):
    vx = state.V[operands.x]
    state.V[operands.x] = (vx << 1) & 0xFF
    state.V[FLAG_REGISTER] = (vx & 0x80) >> 7
    return NextInstructionAction()

def op_random(state,operands):
    state.V[operands.x] = state.rng.random_byte() & operands.nn
    return NextInstructionAction()

## Display

def op_draw(state,operands):
    """ XOR an N row sprite from memory at I onto the screen at (Vx,Vy). Pixels wrap around
        the edges. VF is set to 1 if any lit pixel is turned off """
    x = state.V[operands.x]
    y = state.V[operands.y]
    state.V[FLAG_REGISTER] = 0

    for row in range(0,operands.n):
        sprite_row = read_indexed(state,row)
        for col in range(0,8):
            if sprite_row & (0x80 >> col):
                pixel_address = ((x + col) % SCREEN_WIDTH) + ((y + row) % SCREEN_HEIGHT) * SCREEN_WIDTH
                if state.vram[pixel_address]:
                    state.V[FLAG_REGISTER] = 1
                state.vram[pixel_address] ^= 1

    state.draw_flag = True
    return NextInstructionAction()

## Keypad

def op_skip_key_pressed(state,operands):
    return skip_if(state.keypad[operands.x] != 0)

def op_skip_key_not_pressed(state,operands):
    return skip_if(state.keypad[operands.x] == 0)

def op_wait_for_key(state,operands):
    """ Retire this instruction and halt the machine until the input layer resumes it with a key """
    state.mode = RunState.WAITING_FOR_KEY
    state.key_register = operands.x
    return NextInstructionAction()

## Timers

def op_load_delay(state,operands):
    state.V[operands.x] = state.delay_timer
    return NextInstructionAction()

def op_set_delay(state,operands):
    state.delay_timer = state.V[operands.x]
    return NextInstructionAction()

def op_set_sound(state,operands):
    state.sound_timer = state.V[operands.x]
    return NextInstructionAction()

## Memory

def op_load_index(state,operands):
    state.I = operands.nnn
    return NextInstructionAction()

def op_add_index(state,operands):
    state.I += state.V[operands.x]
    return NextInstructionAction()

def op_load_font(state,operands):
    state.I = state.V[operands.x] * FONT_GLYPH_SIZE
    return NextInstructionAction()

def op_bcd(state,operands):
    val = state.V[operands.x]
    write_indexed(state,0,val // 100)
    write_indexed(state,1,(val % 100) // 10)
    write_indexed(state,2,val % 10)
    return NextInstructionAction()

def op_dump_registers(state,operands):
    for i in range(0,operands.x+1):
        write_indexed(state,i,state.V[i])
    return NextInstructionAction()

def op_load_registers(state,operands):
    for i in range(0,operands.x+1):
        state.V[i] = read_indexed(state,i)
    return NextInstructionAction()

OPCODE_HANDLERS = {
(InstructionGroup.system, 0xE0):       {'name': 'clear_screen', 'format': 'CLS', 'handler': op_clear_screen},
(InstructionGroup.system, 0xEE):       {'name': 'return', 'format': 'RET', 'handler': op_return},
(InstructionGroup.jump, None):         {'name': 'jump', 'format': 'JP 0x%(nnn)03x', 'handler': op_jump},
(InstructionGroup.call, None):         {'name': 'call', 'format': 'CALL 0x%(nnn)03x', 'handler': op_call},
(InstructionGroup.skip_eq_const, None):{'name': 'skip_eq_const', 'format': 'SE V%(x)X, 0x%(nn)02x', 'handler': op_skip_eq_const},
(InstructionGroup.skip_ne_const, None):{'name': 'skip_ne_const', 'format': 'SNE V%(x)X, 0x%(nn)02x', 'handler': op_skip_ne_const},
(InstructionGroup.skip_eq_reg, None):  {'name': 'skip_eq_reg', 'format': 'SE V%(x)X, V%(y)X', 'handler': op_skip_eq_reg},
(InstructionGroup.load_const, None):   {'name': 'load_const', 'format': 'LD V%(x)X, 0x%(nn)02x', 'handler': op_load_const},
(InstructionGroup.add_const, None):    {'name': 'add_const', 'format': 'ADD V%(x)X, 0x%(nn)02x', 'handler': op_add_const},

(InstructionGroup.alu, 0x0):           {'name': 'assign', 'format': 'LD V%(x)X, V%(y)X', 'handler': op_assign},
(InstructionGroup.alu, 0x1):           {'name': 'or', 'format': 'OR V%(x)X, V%(y)X', 'handler': op_or},
(InstructionGroup.alu, 0x2):           {'name': 'and', 'format': 'AND V%(x)X, V%(y)X', 'handler': op_and},
(InstructionGroup.alu, 0x3):           {'name': 'xor', 'format': 'XOR V%(x)X, V%(y)X', 'handler': op_xor},
(InstructionGroup.alu, 0x4):           {'name': 'add', 'format': 'ADD V%(x)X, V%(y)X', 'handler': op_add},
(InstructionGroup.alu, 0x5):           {'name': 'sub', 'format': 'SUB V%(x)X, V%(y)X', 'handler': op_sub},
(InstructionGroup.alu, 0x6):           {'name': 'shift_right', 'format': 'SHR V%(x)X', 'handler': op_shift_right},
(InstructionGroup.alu, 0x7):           {'name': 'subn', 'format': 'SUBN V%(x)X, V%(y)X', 'handler': op_subn},
(InstructionGroup.alu, 0xE):           {'name': 'shift_left', 'format': 'SHL V%(x)X', 'handler': op_shift_left},

(InstructionGroup.skip_ne_reg, None):  {'name': 'skip_ne_reg', 'format': 'SNE V%(x)X, V%(y)X', 'handler': op_skip_ne_reg},
(InstructionGroup.load_index, None):   {'name': 'load_index', 'format': 'LD I, 0x%(nnn)03x', 'handler': op_load_index},
(InstructionGroup.jump_offset, None):  {'name': 'jump_offset', 'format': 'JP V0, 0x%(nnn)03x', 'handler': op_jump_offset},
(InstructionGroup.random, None):       {'name': 'random', 'format': 'RND V%(x)X, 0x%(nn)02x', 'handler': op_random},
(InstructionGroup.draw, None):         {'name': 'draw', 'format': 'DRW V%(x)X, V%(y)X, %(n)d', 'handler': op_draw},

(InstructionGroup.key, 0xE):           {'name': 'skip_key_pressed', 'format': 'SKP V%(x)X', 'handler': op_skip_key_pressed},
(InstructionGroup.key, 0x1):           {'name': 'skip_key_not_pressed', 'format': 'SKNP V%(x)X', 'handler': op_skip_key_not_pressed},

(InstructionGroup.misc, 0x07):         {'name': 'load_delay', 'format': 'LD V%(x)X, DT', 'handler': op_load_delay},
(InstructionGroup.misc, 0x0A):         {'name': 'wait_for_key', 'format': 'LD V%(x)X, K', 'handler': op_wait_for_key},
(InstructionGroup.misc, 0x15):         {'name': 'set_delay', 'format': 'LD DT, V%(x)X', 'handler': op_set_delay},
(InstructionGroup.misc, 0x18):         {'name': 'set_sound', 'format': 'LD ST, V%(x)X', 'handler': op_set_sound},
(InstructionGroup.misc, 0x1E):         {'name': 'add_index', 'format': 'ADD I, V%(x)X', 'handler': op_add_index},
(InstructionGroup.misc, 0x29):         {'name': 'load_font', 'format': 'LD F, V%(x)X', 'handler': op_load_font},
(InstructionGroup.misc, 0x33):         {'name': 'bcd', 'format': 'LD B, V%(x)X', 'handler': op_bcd},
(InstructionGroup.misc, 0x55):         {'name': 'dump_registers', 'format': 'LD [I], V%(x)X', 'handler': op_dump_registers},
(InstructionGroup.misc, 0x65):         {'name': 'load_registers', 'format': 'LD V%(x)X, [I]', 'handler': op_load_registers},
}
