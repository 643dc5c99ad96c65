#
# See http://devernay.free.fr/hacks/chip8/C8TECH10.HTM for a definition of the CHIP-8
#
# memory.py       - bounds checked byte memory
# state.py        - MachineState, the complete state of the machine
# instructions.py - opcode decoding and one handler per instruction
# interpreter.py  - the step loop that ties them together
#
