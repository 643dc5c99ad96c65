#
# Dump the contents and disassembly of a CHIP-8 ROM
#

import argparse
from chip8.instructions import InstructionException
from chip8.memory import Memory
from chip8.state import MachineState,PROGRAM_START,ProgramTooLargeException
from chip8.interpreter import Interpreter

def load(path):
    with open(path,'rb') as f:
        data = f.read()
    state = MachineState()
    try:
        state.load(data)
    except ProgramTooLargeException as e:
        print('Unable to load program. %s' % e)
        return None, None
    return Interpreter(state), len(data)

def disassemble(interpreter,start_address,length):
    """ Return one line per word from start_address. Words that aren't instructions are shown as data """
    lines = []
    for address in range(start_address,start_address+length-1,2):
        try:
            opcode,handler,description = interpreter.instruction_at(address)
        except InstructionException:
            opcode = interpreter.state.memory.word(address)
            description = 'DW 0x%04x' % opcode
        lines.append('%04x: %04x  %s' % (address,opcode,description))
    if length % 2:
        address = start_address+length-1
        lines.append('%04x: %02x    DB 0x%02x' % (address,interpreter.state.memory[address],interpreter.state.memory[address]))
    return lines

def dump(path,raw_memory=False):
    interpreter,length = load(path)
    if not interpreter:
        return

    print('Program size:             %d bytes' % length)
    print('Start address:            0x%04x' % PROGRAM_START)
    print('')

    if raw_memory:
        print('Raw memory\n---------\n')
        program = Memory(interpreter.state.memory[PROGRAM_START:PROGRAM_START+length])
        for line in program.dump(start_address=PROGRAM_START):
            print(line)
        print('')

    print('Disassembly\n--------\n')
    for line in disassemble(interpreter,PROGRAM_START,length):
        print(line)

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('rom',help='ROM file to dump')
    parser.add_argument('--raw_memory',help='Also show a hex dump',required=False,action='store_true')
    data = parser.parse_args()
    dump(data.rom,raw_memory=data.raw_memory)

if __name__ == "__main__":
    main()
