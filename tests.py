""" Tests for the chip8 decoder, instructions, interpreter and front-end helpers """
import unittest
import io
import os
import tempfile

import pygame

from chip8.interpreter import Interpreter,InterpreterException,Speaker
from chip8.state import MachineState,RunState,StackException,ProgramTooLargeException,VRAM_SIZE,SCREEN_WIDTH
from chip8.memory import MemoryException
from chip8.instructions import InstructionGroup,OPCODE_HANDLERS,InvalidOpcodeException,InstructionException,\
                               decode,extract_opcode,extract_operands,read_instruction,format_description,\
                               NextInstructionAction,SkipInstructionAction,JumpAction,CallAction,ReturnAction
from generic_terp import FileKeyStream,KeyScriptException,STDOUTDisplay,KEY_MAPPINGS,load_interpreter
from pygame_terp.window import FramebufferWindow

import dump
import debug

def make_interpreter(*opcodes, address=0x200):
    """ Return an interpreter with the opcodes written from address and the pc pointing at them """
    state = MachineState()
    for i,opcode in enumerate(opcodes):
        state.memory.set_word(address + i*2, opcode)
    state.pc = address
    return Interpreter(state)

class CountingSpeaker(Speaker):
    def __init__(self):
        self.beeps = 0

    def beep(self):
        self.beeps += 1

class DecoderTests(unittest.TestCase):
    def test_extract_opcode(self):
        self.assertEqual((InstructionGroup.system,0xE0), extract_opcode(0x00E0))
        self.assertEqual((InstructionGroup.jump,None), extract_opcode(0x1234))
        self.assertEqual((InstructionGroup.alu,0x4), extract_opcode(0x8124))
        self.assertEqual((InstructionGroup.key,0xE), extract_opcode(0xE39E))
        self.assertEqual((InstructionGroup.misc,0x65), extract_opcode(0xF565))

    def test_extract_operands(self):
        operands = extract_operands(0xD12A)
        self.assertEqual(0x1,operands.x)
        self.assertEqual(0x2,operands.y)
        self.assertEqual(0xA,operands.n)
        self.assertEqual(0x2A,operands.nn)
        self.assertEqual(0x12A,operands.nnn)

    def test_decode(self):
        self.assertEqual('clear_screen', decode(0x00E0)['name'])
        self.assertEqual('return', decode(0x00EE)['name'])
        self.assertEqual('jump', decode(0x1ABC)['name'])
        self.assertEqual('call', decode(0x2ABC)['name'])
        self.assertEqual('skip_eq_const', decode(0x3A3C)['name'])
        self.assertEqual('skip_ne_const', decode(0x4A3C)['name'])
        self.assertEqual('skip_eq_reg', decode(0x5120)['name'])
        self.assertEqual('load_const', decode(0x6A3C)['name'])
        self.assertEqual('add_const', decode(0x7A3C)['name'])
        self.assertEqual('assign', decode(0x8120)['name'])
        self.assertEqual('or', decode(0x8121)['name'])
        self.assertEqual('and', decode(0x8122)['name'])
        self.assertEqual('xor', decode(0x8123)['name'])
        self.assertEqual('add', decode(0x8124)['name'])
        self.assertEqual('sub', decode(0x8125)['name'])
        self.assertEqual('shift_right', decode(0x8126)['name'])
        self.assertEqual('subn', decode(0x8127)['name'])
        self.assertEqual('shift_left', decode(0x812E)['name'])
        self.assertEqual('skip_ne_reg', decode(0x9120)['name'])
        self.assertEqual('load_index', decode(0xA123)['name'])
        self.assertEqual('jump_offset', decode(0xB123)['name'])
        self.assertEqual('random', decode(0xC1FF)['name'])
        self.assertEqual('draw', decode(0xD125)['name'])
        self.assertEqual('skip_key_pressed', decode(0xE19E)['name'])
        self.assertEqual('skip_key_not_pressed', decode(0xE1A1)['name'])
        self.assertEqual('load_delay', decode(0xF107)['name'])
        self.assertEqual('wait_for_key', decode(0xF10A)['name'])
        self.assertEqual('set_delay', decode(0xF115)['name'])
        self.assertEqual('set_sound', decode(0xF118)['name'])
        self.assertEqual('add_index', decode(0xF11E)['name'])
        self.assertEqual('load_font', decode(0xF129)['name'])
        self.assertEqual('bcd', decode(0xF133)['name'])
        self.assertEqual('dump_registers', decode(0xF155)['name'])
        self.assertEqual('load_registers', decode(0xF165)['name'])
        self.assertEqual(34,len(OPCODE_HANDLERS))

    def test_invalid(self):
        for opcode in (0x0000, 0x00E1, 0x8008, 0x812F, 0xE100, 0xF100, 0xFFFF):
            with self.assertRaises(InvalidOpcodeException) as cm:
                decode(opcode)
            self.assertEqual(opcode, cm.exception.opcode)
            self.assertIsNone(cm.exception.address)

    def test_out_of_range(self):
        with self.assertRaises(InvalidOpcodeException):
            decode(0x10000)
        with self.assertRaises(InvalidOpcodeException):
            decode(-1)

    def test_every_opcode_decodes_or_fails(self):
        valid = 0
        for opcode in range(0,0x10000):
            try:
                decode(opcode)
                valid += 1
            except InvalidOpcodeException as e:
                self.assertEqual(opcode,e.opcode)
        # 12 single instruction groups, plus the variants of 0, 8, E and F
        self.assertEqual(12*4096 + 2*16 + 9*256 + 2*256 + 9*16, valid)

    def test_read_instruction(self):
        state = MachineState()
        state.memory.set_word(0x200,0x6A3C)
        opcode,handler_f,description = read_instruction(state.memory,0x200)
        self.assertEqual(0x6A3C,opcode)
        self.assertEqual('LD VA, 0x3c',description)
        handler_f(state)
        self.assertEqual(0x3C,state.V[0xA])
        self.assertEqual(0x202,state.pc)

    def test_read_invalid_instruction(self):
        state = MachineState()
        state.memory.set_word(0x204,0x5121)
        with self.assertRaises(InvalidOpcodeException) as cm:
            read_instruction(state.memory,0x204)
        self.assertEqual(0x5121,cm.exception.opcode)
        self.assertEqual(0x204,cm.exception.address)
        self.assertIn('0x5121',str(cm.exception))
        self.assertTrue(isinstance(cm.exception,InstructionException))

    def test_read_past_end_of_memory(self):
        state = MachineState()
        with self.assertRaises(MemoryException):
            read_instruction(state.memory,0xFFF)

    def test_format_description(self):
        cases = {0x00E0: 'CLS',
                 0x00EE: 'RET',
                 0x1ABC: 'JP 0xabc',
                 0x2400: 'CALL 0x400',
                 0x8124: 'ADD V1, V2',
                 0x812E: 'SHL V1',
                 0xB123: 'JP V0, 0x123',
                 0xD125: 'DRW V1, V2, 5',
                 0xE39E: 'SKP V3',
                 0xF30A: 'LD V3, K',
                 0xF555: 'LD [I], V5'}
        for opcode,expected in cases.items():
            self.assertEqual(expected, format_description(decode(opcode),extract_operands(opcode)))

class ActionTests(unittest.TestCase):
    def test_next(self):
        state = MachineState()
        NextInstructionAction().apply(state)
        self.assertEqual(0x202,state.pc)

    def test_skip(self):
        state = MachineState()
        SkipInstructionAction().apply(state)
        self.assertEqual(0x204,state.pc)

    def test_jump(self):
        state = MachineState()
        JumpAction(0x345).apply(state)
        self.assertEqual(0x345,state.pc)

    def test_call_and_return(self):
        state = MachineState()
        state.pc = 0x250
        CallAction(0x400).apply(state)
        self.assertEqual(0x400,state.pc)
        self.assertEqual(1,state.sp)
        self.assertEqual(0x250,state.stack[0])
        ReturnAction().apply(state)
        self.assertEqual(0x252,state.pc)
        self.assertEqual(0,state.sp)

class InstructionTests(unittest.TestCase):
    def test_load_const_all_registers_and_values(self):
        for x in range(0,16):
            for nn in range(0,256):
                interpreter = make_interpreter(0x6000 | (x << 8) | nn)
                interpreter.step()
                self.assertEqual(nn,interpreter.state.V[x])
                self.assertEqual(0x202,interpreter.state.pc)

    def test_clear_screen(self):
        interpreter = make_interpreter(0x00E0)
        for i in range(0,VRAM_SIZE,3):
            interpreter.state.vram[i] = 1
        interpreter.step()
        self.assertEqual(bytearray(VRAM_SIZE),interpreter.state.vram)
        self.assertEqual(0x202,interpreter.pc)

    def test_jump(self):
        interpreter = make_interpreter(0x1ABC)
        interpreter.step()
        self.assertEqual(0xABC,interpreter.pc)

    def test_call_and_return(self):
        interpreter = make_interpreter(0x2400,address=0x300)
        interpreter.state.memory.set_word(0x400,0x00EE)
        sp = interpreter.state.sp
        interpreter.step()
        self.assertEqual(0x400,interpreter.pc)
        self.assertEqual(sp+1,interpreter.state.sp)
        interpreter.step()
        self.assertEqual(0x302,interpreter.pc)
        self.assertEqual(sp,interpreter.state.sp)

    def test_nested_calls(self):
        interpreter = make_interpreter(0x2400)
        interpreter.state.memory.set_word(0x400,0x2500)
        interpreter.state.memory.set_word(0x402,0x00EE)
        interpreter.state.memory.set_word(0x500,0x00EE)
        for expected_pc in (0x400,0x500,0x402,0x202):
            interpreter.step()
            self.assertEqual(expected_pc,interpreter.pc)
        self.assertEqual(0,interpreter.state.sp)

    def test_return_with_empty_stack(self):
        interpreter = make_interpreter(0x00EE)
        with self.assertRaises(StackException):
            interpreter.step()

    def test_call_with_full_stack(self):
        interpreter = make_interpreter(0x2200)
        for i in range(0,16):
            interpreter.step()
        with self.assertRaises(StackException):
            interpreter.step()

    def test_skip_eq_const(self):
        interpreter = make_interpreter(0x3A3C)
        interpreter.state.V[0xA] = 0x3C
        interpreter.step()
        self.assertEqual(0x204,interpreter.pc)

        interpreter = make_interpreter(0x3A3C)
        interpreter.state.V[0xA] = 0x3D
        interpreter.step()
        self.assertEqual(0x202,interpreter.pc)

    def test_skip_ne_const(self):
        interpreter = make_interpreter(0x4A3C)
        interpreter.state.V[0xA] = 0x3D
        interpreter.step()
        self.assertEqual(0x204,interpreter.pc)

        interpreter = make_interpreter(0x4A3C)
        interpreter.state.V[0xA] = 0x3C
        interpreter.step()
        self.assertEqual(0x202,interpreter.pc)

    def test_skip_eq_reg(self):
        interpreter = make_interpreter(0x5120)
        interpreter.state.V[1] = 9
        interpreter.state.V[2] = 9
        interpreter.step()
        self.assertEqual(0x204,interpreter.pc)

        interpreter = make_interpreter(0x5120)
        interpreter.state.V[1] = 9
        interpreter.step()
        self.assertEqual(0x202,interpreter.pc)

    def test_skip_ne_reg(self):
        interpreter = make_interpreter(0x9120,address=0x300)
        interpreter.state.V[1] = 1
        interpreter.state.V[2] = 2
        interpreter.step()
        self.assertEqual(0x304,interpreter.pc)

        interpreter = make_interpreter(0x9120,address=0x300)
        interpreter.step()
        self.assertEqual(0x302,interpreter.pc)

    def test_add_const_wraps(self):
        interpreter = make_interpreter(0x7105,0x71FF)
        interpreter.state.V[1] = 0xFE
        interpreter.state.V[0xF] = 0x42
        interpreter.step()
        self.assertEqual(0x03,interpreter.state.V[1])
        self.assertEqual(0x42,interpreter.state.V[0xF])
        interpreter.step()
        self.assertEqual(0x02,interpreter.state.V[1])

    def test_logic(self):
        interpreter = make_interpreter(0x8120,0x8131,0x8142,0x8153)
        V = interpreter.state.V
        V[2],V[3],V[4],V[5] = 0x0C,0x30,0x3C,0xFF
        V[0xF] = 0x7
        interpreter.step()
        self.assertEqual(0x0C,V[1])
        interpreter.step()
        self.assertEqual(0x3C,V[1])
        interpreter.step()
        self.assertEqual(0x3C,V[1])
        interpreter.step()
        self.assertEqual(0xC3,V[1])
        self.assertEqual(0x7,V[0xF])

    def test_add(self):
        interpreter = make_interpreter(0x8124,0x8124)
        V = interpreter.state.V
        V[1],V[2] = 0xFF,0x02
        interpreter.step()
        self.assertEqual(0x01,V[1])
        self.assertEqual(1,V[0xF])
        interpreter.step()
        self.assertEqual(0x03,V[1])
        self.assertEqual(0,V[0xF])

    def test_sub(self):
        interpreter = make_interpreter(0x8125,0x8125)
        V = interpreter.state.V
        V[1],V[2] = 0x01,0x02
        interpreter.step()
        self.assertEqual(0xFF,V[1])
        self.assertEqual(0,V[0xF])
        interpreter.step()
        self.assertEqual(0xFD,V[1])
        self.assertEqual(1,V[0xF])

    def test_sub_equal_has_no_borrow(self):
        interpreter = make_interpreter(0x8125)
        V = interpreter.state.V
        V[1],V[2] = 5,5
        interpreter.step()
        self.assertEqual(0,V[1])
        self.assertEqual(1,V[0xF])

    def test_subn(self):
        interpreter = make_interpreter(0x8127,0x8127)
        V = interpreter.state.V
        V[1],V[2] = 0x02,0x05
        interpreter.step()
        self.assertEqual(0x03,V[1])
        self.assertEqual(1,V[0xF])
        V[1],V[2] = 0x05,0x02
        interpreter.step()
        self.assertEqual(0xFD,V[1])
        self.assertEqual(0,V[0xF])

    def test_shift_right_uses_register_value(self):
        # Even register holding an odd value; the flag comes from the value
        interpreter = make_interpreter(0x8206,0x8206)
        V = interpreter.state.V
        V[2] = 0x05
        interpreter.step()
        self.assertEqual(0x02,V[2])
        self.assertEqual(1,V[0xF])
        interpreter.step()
        self.assertEqual(0x01,V[2])
        self.assertEqual(0,V[0xF])

    def test_shift_left_uses_register_value(self):
        interpreter = make_interpreter(0x820E,0x820E)
        V = interpreter.state.V
        V[2] = 0x81
        interpreter.step()
        self.assertEqual(0x02,V[2])
        self.assertEqual(1,V[0xF])
        interpreter.step()
        self.assertEqual(0x04,V[2])
        self.assertEqual(0,V[0xF])

    def test_flag_register_as_destination(self):
        # opcode: (VF before, V1, VF after)
        cases = {0x8F14: (0xFF,0x01,1),
                 0x8F15: (0x10,0x20,0),
                 0x8F16: (0x02,0x00,0),
                 0x8F17: (0x10,0x05,0),
                 0x8F1E: (0x81,0x00,1)}
        for opcode,(vf,v1,expected) in cases.items():
            interpreter = make_interpreter(opcode)
            V = interpreter.state.V
            V[0xF],V[1] = vf,v1
            interpreter.step()
            self.assertEqual(expected,V[0xF],'%04x' % opcode)


    def test_load_index(self):
        interpreter = make_interpreter(0xA123)
        interpreter.step()
        self.assertEqual(0x123,interpreter.state.I)

    def test_jump_offset(self):
        interpreter = make_interpreter(0xB300)
        interpreter.state.V[0] = 0x10
        interpreter.step()
        self.assertEqual(0x310,interpreter.pc)

    def test_random(self):
        interpreter = make_interpreter(0xC10F,0xC200)
        interpreter.state.rng.enter_predictable_mode(1)
        interpreter.state.V[2] = 0x55
        interpreter.step()
        self.assertTrue(interpreter.state.V[1] <= 0x0F)
        interpreter.step()
        self.assertEqual(0,interpreter.state.V[2])

    def test_random_predictable(self):
        values = []
        for i in range(0,2):
            interpreter = make_interpreter(0xC1FF)
            interpreter.state.rng.enter_predictable_mode(99)
            interpreter.step()
            values.append(interpreter.state.V[1])
        self.assertEqual(values[0],values[1])

    def test_draw_twice(self):
        interpreter = make_interpreter(0x00E0,0xD001,0xD001)
        state = interpreter.state
        state.I = 0x300
        state.memory[0x300] = 0xFF
        interpreter.step()

        interpreter.step()
        self.assertEqual(bytearray([1]*8),state.vram[0:8])
        self.assertEqual(0,state.vram[8])
        self.assertEqual(0,state.V[0xF])
        self.assertTrue(state.draw_flag)

        state.draw_flag = False
        interpreter.step()
        self.assertEqual(bytearray(VRAM_SIZE),state.vram)
        self.assertEqual(1,state.V[0xF])
        self.assertTrue(state.draw_flag)
        self.assertEqual(0x206,state.pc)

    def test_draw_position(self):
        interpreter = make_interpreter(0xD122)
        state = interpreter.state
        state.V[1],state.V[2] = 10,5
        state.I = 0x300
        state.memory[0x300] = 0x80
        state.memory[0x301] = 0x01
        interpreter.step()
        self.assertEqual(1,state.vram[10 + 5*64])
        self.assertEqual(1,state.vram[17 + 6*64])
        self.assertEqual(2,sum(state.vram))

    def test_draw_wraps(self):
        interpreter = make_interpreter(0xD122)
        state = interpreter.state
        state.V[1],state.V[2] = 62,31
        state.I = 0x300
        state.memory[0x300] = 0xFF
        state.memory[0x301] = 0x80
        interpreter.step()
        for x in (62,63,0,1,2,3,4,5):
            self.assertEqual(1,state.vram[x + 31*64])
        # Second row wraps to the top
        self.assertEqual(1,state.vram[62])
        self.assertEqual(9,sum(state.vram))

    def test_draw_collision_is_sticky(self):
        interpreter = make_interpreter(0xD012)
        state = interpreter.state
        state.I = 0x300
        state.memory[0x300] = 0x80
        state.memory[0x301] = 0x80
        state.vram[0] = 1
        interpreter.step()
        # First row collided, second row did not
        self.assertEqual(1,state.V[0xF])
        self.assertEqual(0,state.vram[0])
        self.assertEqual(1,state.vram[64])

    def test_draw_font_glyph(self):
        interpreter = make_interpreter(0xF029,0xD125)
        state = interpreter.state
        state.V[0] = 0x0
        interpreter.step()
        self.assertEqual(0,state.I)
        interpreter.step()
        self.assertEqual(bytearray([1,1,1,1,0]),state.vram[0:5])
        self.assertEqual(bytearray([1,0,0,1,0]),state.vram[64:69])

    def test_skip_key_pressed(self):
        interpreter = make_interpreter(0xE39E)
        interpreter.state.keypad[3] = 1
        interpreter.step()
        self.assertEqual(0x204,interpreter.pc)

        interpreter = make_interpreter(0xE39E)
        interpreter.step()
        self.assertEqual(0x202,interpreter.pc)

    def test_skip_key_not_pressed(self):
        interpreter = make_interpreter(0xE3A1)
        interpreter.step()
        self.assertEqual(0x204,interpreter.pc)

        interpreter = make_interpreter(0xE3A1)
        interpreter.state.keypad[3] = 1
        interpreter.step()
        self.assertEqual(0x202,interpreter.pc)

    def test_timers(self):
        interpreter = make_interpreter(0xF115,0xF218,0xF307)
        state = interpreter.state
        state.V[1],state.V[2] = 10,20
        interpreter.step()
        self.assertEqual(9,state.delay_timer)
        interpreter.step()
        self.assertEqual(8,state.delay_timer)
        self.assertEqual(19,state.sound_timer)
        interpreter.step()
        # Read before this step's decay
        self.assertEqual(8,state.V[3])
        self.assertEqual(7,state.delay_timer)

    def test_add_index(self):
        interpreter = make_interpreter(0xF11E)
        interpreter.state.I = 0x300
        interpreter.state.V[1] = 0x20
        interpreter.step()
        self.assertEqual(0x320,interpreter.state.I)

    def test_load_font(self):
        interpreter = make_interpreter(0xF129)
        interpreter.state.V[1] = 0xA
        interpreter.step()
        self.assertEqual(50,interpreter.state.I)

    def test_bcd(self):
        interpreter = make_interpreter(0xF433)
        state = interpreter.state
        state.V[4] = 157
        state.I = 0x400
        interpreter.step()
        self.assertEqual(1,state.memory[0x400])
        self.assertEqual(5,state.memory[0x401])
        self.assertEqual(7,state.memory[0x402])

    def test_bcd_small_value(self):
        interpreter = make_interpreter(0xF433)
        state = interpreter.state
        state.V[4] = 9
        state.I = 0x400
        interpreter.step()
        self.assertEqual(bytearray([0,0,9]),state.memory[0x400:0x403])

    def test_dump_and_load_registers(self):
        interpreter = make_interpreter(0xF555,0xF565)
        state = interpreter.state
        values = [0x11,0x22,0x33,0x44,0x55,0x66]
        for i,val in enumerate(values):
            state.V[i] = val
        state.V[6] = 0x77
        state.I = 0x500
        interpreter.step()
        self.assertEqual(bytearray(values),state.memory[0x500:0x506])
        self.assertEqual(0,state.memory[0x506])
        for i in range(0,6):
            state.V[i] = 0
        interpreter.step()
        self.assertEqual(values,list(state.V[0:6]))
        self.assertEqual(0x77,state.V[6])
        self.assertEqual(0x500,state.I)

    def test_draw_past_end_of_memory(self):
        interpreter = make_interpreter(0xD005)
        state = interpreter.state
        state.memory[0xFFD:0x1000] = bytearray([0x80,0x80,0x80])
        state.I = 0xFFD
        interpreter.step()
        self.assertEqual([1,0],list(state.vram[0:2]))
        self.assertEqual(1,state.vram[SCREEN_WIDTH])
        self.assertEqual(1,state.vram[SCREEN_WIDTH*2])
        self.assertEqual(0,sum(state.vram[SCREEN_WIDTH*3:]))
        self.assertEqual(0,state.V[0xF])
        self.assertTrue(state.draw_flag)
        self.assertEqual(0x202,interpreter.pc)

    def test_load_registers_past_end_of_memory(self):
        interpreter = make_interpreter(0xF01E,0xF165)
        state = interpreter.state
        state.I = 0xFF0
        state.V[0] = 0x20
        state.V[1] = 0x33
        interpreter.step()
        self.assertEqual(0x1010,state.I)
        interpreter.step()
        self.assertEqual(0,state.V[0])
        self.assertEqual(0,state.V[1])
        self.assertEqual(0x204,interpreter.pc)

    def test_store_past_end_of_memory(self):
        interpreter = make_interpreter(0xF233,0xF155)
        state = interpreter.state
        state.V[0] = 0x44
        state.V[1] = 0x12
        state.V[2] = 123
        state.I = 0xFFE
        interpreter.step()
        self.assertEqual(bytearray([1,2]),state.memory[0xFFE:0x1000])
        state.I = 0xFFF
        interpreter.step()
        self.assertEqual(0x44,state.memory[0xFFF])
        self.assertEqual(0x204,interpreter.pc)


class InterpreterTests(unittest.TestCase):
    def test_step_sets_opcode(self):
        interpreter = make_interpreter(0x6A3C)
        interpreter.step()
        self.assertEqual(0x6A3C,interpreter.state.opcode)
        self.assertEqual('LD VA, 0x3c',interpreter.last_instruction)

    def test_delay_timer_decays_to_zero(self):
        interpreter = make_interpreter(0x1200)
        interpreter.state.delay_timer = 3
        for i in range(0,3):
            interpreter.step()
        self.assertEqual(0,interpreter.state.delay_timer)
        interpreter.step()
        self.assertEqual(0,interpreter.state.delay_timer)
        self.assertEqual(0x200,interpreter.pc)

    def test_sound_timer_beeps_once(self):
        interpreter = make_interpreter(0x1200)
        speaker = CountingSpeaker()
        interpreter.speaker = speaker
        interpreter.state.sound_timer = 3
        for i in range(0,5):
            interpreter.step()
        self.assertEqual(0,interpreter.state.sound_timer)
        self.assertEqual(1,speaker.beeps)

    def test_invalid_opcode(self):
        interpreter = make_interpreter(0x8008)
        with self.assertRaises(InvalidOpcodeException) as cm:
            interpreter.step()
        self.assertEqual(0x8008,cm.exception.opcode)
        self.assertEqual(0x200,cm.exception.address)
        self.assertEqual(0x200,interpreter.pc)

    def test_invalid_opcode_ffff(self):
        interpreter = make_interpreter(0xFFFF,address=0x240)
        interpreter.state.delay_timer = 5
        with self.assertRaises(InvalidOpcodeException) as cm:
            interpreter.step()
        self.assertEqual(0xFFFF,cm.exception.opcode)
        self.assertEqual(0x240,interpreter.pc)
        self.assertEqual(5,interpreter.state.delay_timer)

    def test_index_is_masked(self):
        interpreter = make_interpreter(0xF01E)
        interpreter.state.I = 0xFFFF
        interpreter.state.V[0] = 2
        interpreter.step()
        self.assertEqual(0x0001,interpreter.state.I)

    def test_wait_for_key(self):
        interpreter = make_interpreter(0xF30A,0x6101)
        state = interpreter.state
        state.delay_timer = 5
        interpreter.step()
        self.assertTrue(state.stopped)
        self.assertEqual(RunState.WAITING_FOR_KEY,state.mode)
        self.assertEqual(0x202,state.pc)
        self.assertEqual(4,state.delay_timer)

        # Frozen while waiting
        interpreter.step()
        interpreter.step()
        self.assertEqual(0x202,state.pc)
        self.assertEqual(4,state.delay_timer)
        self.assertEqual(0,state.V[1])

        interpreter.key_pressed(0xB)
        self.assertFalse(state.stopped)
        self.assertEqual(0xB,state.V[3])
        self.assertEqual(1,state.keypad[0xB])

        interpreter.step()
        self.assertEqual(1,state.V[1])
        self.assertEqual(0x204,state.pc)

    def test_release_does_not_resume(self):
        interpreter = make_interpreter(0xF30A)
        interpreter.step()
        interpreter.key_released(2)
        self.assertTrue(interpreter.state.stopped)

    def test_resume(self):
        interpreter = make_interpreter(0xF50A)
        interpreter.step()
        interpreter.resume(0x7)
        self.assertEqual(0x7,interpreter.state.V[5])
        self.assertEqual(RunState.RUNNING,interpreter.state.mode)
        self.assertIsNone(interpreter.state.key_register)

    def test_resume_when_running(self):
        interpreter = make_interpreter(0x1200)
        with self.assertRaises(InterpreterException):
            interpreter.resume(1)

    def test_keys(self):
        interpreter = make_interpreter(0x1200)
        interpreter.key_pressed(0xF)
        self.assertEqual(1,interpreter.state.keypad[0xF])
        interpreter.key_released(0xF)
        self.assertEqual(0,interpreter.state.keypad[0xF])
        with self.assertRaises(InterpreterException):
            interpreter.key_pressed(16)
        with self.assertRaises(InterpreterException):
            interpreter.key_released(-1)

    def test_instructions(self):
        interpreter = make_interpreter(0x00E0,0xA300,0xD015)
        instructions = interpreter.instructions(3)
        self.assertEqual([(0x200,0x00E0,'CLS'),(0x202,0xA300,'LD I, 0x300'),(0x204,0xD015,'DRW V0, V1, 5')],instructions)
        self.assertEqual(0x200,interpreter.pc)

    def test_runs_small_program(self):
        # Count V0 from 0 to 5 in a loop, then spin
        program = [0x6000,   # 200: LD V0, 0
                   0x7001,   # 202: ADD V0, 1
                   0x3005,   # 204: SE V0, 5
                   0x1202,   # 206: JP 202
                   0x1208]   # 208: JP 208
        interpreter = make_interpreter(*program)
        for i in range(0,30):
            interpreter.step()
        self.assertEqual(5,interpreter.state.V[0])
        self.assertEqual(0x208,interpreter.pc)

class FileKeyStreamTests(unittest.TestCase):
    def test_load_and_apply(self):
        stream = FileKeyStream()
        stream.load_from_lines(['# comment',
                                '',
                                '0 press a',
                                '2 release A',
                                '2 press 1'])
        self.assertEqual([(0,True,0xA),(2,False,0xA),(2,True,0x1)],stream.events)
        interpreter = make_interpreter(0x1200)
        stream.apply(0,interpreter)
        self.assertEqual(1,interpreter.state.keypad[0xA])
        stream.apply(1,interpreter)
        self.assertEqual(1,interpreter.state.keypad[0xA])
        stream.apply(2,interpreter)
        self.assertEqual(0,interpreter.state.keypad[0xA])
        self.assertEqual(1,interpreter.state.keypad[0x1])
        self.assertTrue(stream.done)

    def test_press_resumes_wait(self):
        stream = FileKeyStream()
        stream.load_from_lines(['1 press 4'])
        interpreter = make_interpreter(0xF20A)
        interpreter.step()
        stream.apply(1,interpreter)
        self.assertEqual(4,interpreter.state.V[2])
        self.assertFalse(interpreter.state.stopped)

    def test_bad_lines(self):
        for line in ('1 push 4', '1 press', 'x press 4', '1 press g'):
            stream = FileKeyStream()
            with self.assertRaises(KeyScriptException):
                stream.load_from_lines([line])

    def test_out_of_order(self):
        stream = FileKeyStream()
        with self.assertRaises(KeyScriptException):
            stream.load_from_lines(['5 press 1','4 release 1'])

    def test_load_from_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir,'keys.txt')
            with open(path,'w') as f:
                f.write('3 press f\n')
            stream = FileKeyStream()
            stream.load_from_path(path)
        self.assertEqual([(3,True,0xF)],stream.events)

class GenericTerpTests(unittest.TestCase):
    def test_key_mappings(self):
        self.assertEqual(16,len(KEY_MAPPINGS))
        self.assertEqual(set(range(0,16)),set(KEY_MAPPINGS.values()))

    def test_render(self):
        state = MachineState()
        state.vram[0] = 1
        state.vram[64+63] = 1
        lines = STDOUTDisplay().render(state.vram).split('\n')
        self.assertEqual(32,len(lines))
        self.assertEqual('#' + ' '*63,lines[0])
        self.assertEqual(' '*63 + '#',lines[1])

    def test_draw(self):
        stream = io.StringIO()
        STDOUTDisplay(stream=stream,on_char='X',off_char='.').draw(MachineState().vram)
        lines = stream.getvalue().split('\n')
        self.assertEqual('+' + '-'*64 + '+',lines[0])
        self.assertEqual('|' + '.'*64 + '|',lines[1])
        self.assertEqual(35,len(lines)) # Two borders, 32 rows, trailing newline

    def test_load_interpreter(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir,'test.ch8')
            with open(path,'wb') as f:
                f.write(bytes([0x6A,0x3C,0xC0,0xFF]))
            interpreter = load_interpreter(path,seed=5)
        self.assertEqual(0x6A3C,interpreter.state.memory.word(0x200))
        interpreter.step()
        self.assertEqual(0x3C,interpreter.state.V[0xA])
        interpreter.step()
        first = interpreter.state.V[0]

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir,'test.ch8')
            with open(path,'wb') as f:
                f.write(bytes([0xC0,0xFF]))
            interpreter = load_interpreter(path,seed=5)
        interpreter.step()
        self.assertEqual(first,interpreter.state.V[0])

    def test_load_interpreter_too_large(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir,'big.ch8')
            with open(path,'wb') as f:
                f.write(bytes(4000))
            with self.assertRaises(ProgramTooLargeException):
                load_interpreter(path)

class FramebufferWindowTests(unittest.TestCase):
    def test_draw(self):
        surface = pygame.Surface((SCREEN_WIDTH*2,32*2))
        window = FramebufferWindow('Main',surface,(0,0),2,(255,255,255),(0,0,0))
        self.assertEqual(pygame.Rect(0,0,128,64),window.bounds)
        state = MachineState()
        state.vram[0] = 1
        state.vram[SCREEN_WIDTH+1] = 1
        window.draw(state.vram)
        self.assertEqual((255,255,255),tuple(surface.get_at((1,1)))[0:3])
        self.assertEqual((255,255,255),tuple(surface.get_at((2,2)))[0:3])
        self.assertEqual((0,0,0),tuple(surface.get_at((4,0)))[0:3])

class ToolTests(unittest.TestCase):
    def test_disassemble(self):
        interpreter = make_interpreter(0x00E0,0x8008,0xD015)
        interpreter.state.memory[0x206] = 0x12
        lines = dump.disassemble(interpreter,0x200,7)
        self.assertEqual(['0200: 00e0  CLS',
                          '0202: 8008  DW 0x8008',
                          '0204: d015  DRW V0, V1, 5',
                          '0206: 12    DB 0x12'],lines)

    def test_parse_breakpoint(self):
        self.assertIsNone(debug.parse_breakpoint(None))
        self.assertEqual(0x2A4,debug.parse_breakpoint('2a4'))
        self.assertEqual(0x2A4,debug.parse_breakpoint('0x2A4'))

if __name__ == '__main__':
    unittest.main()
