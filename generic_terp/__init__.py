import logging
import sys

from chip8.interpreter import Interpreter,Speaker
from chip8.state import MachineState,SCREEN_WIDTH,SCREEN_HEIGHT

logger = logging.getLogger(__name__)

# Hex keypad laid over the left side of a QWERTY keyboard:
#   1 2 3 C      1 2 3 4
#   4 5 6 D  ->  q w e r
#   7 8 9 E      a s d f
#   A 0 B F      z x c v
KEY_MAPPINGS = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}

class ConfigException(Exception):
    pass

class KeyScriptException(Exception):
    """ Thrown when a key script file can't be parsed """
    pass

def load_interpreter(path,seed=None,speaker=None):
    """ Read a ROM from disk and return an interpreter with it loaded """
    with open(path,'rb') as f:
        data = f.read()
    state = MachineState()
    state.load(data)
    if seed is not None:
        state.rng.enter_predictable_mode(int(seed))
    logger.info('Loaded %s (%d bytes)', path, len(data))
    return Interpreter(state,speaker=speaker)

class FileKeyStream(object):
    """ Key presses stored in a file, for driving a program without a keyboard.

        Each line is "<step> press|release <key>", with the key in hex. Blank lines and
        lines starting with # are ignored. Events must be in step order.
    """
    def __init__(self):
        self.events = []
        self.index = 0

    def load_from_path(self,path):
        with open(path,'r') as f:
            self.load_from_lines(f)

    def load_from_lines(self,lines):
        last_step = 0
        for line_number,line in enumerate(lines,1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            parts = line.split()
            if len(parts) != 3 or parts[1] not in ('press','release'):
                raise KeyScriptException('Line %d: expected "<step> press|release <key>", got "%s"' % (line_number,line))
            try:
                step = int(parts[0])
                key = int(parts[2],16)
            except ValueError:
                raise KeyScriptException('Line %d: bad step or key in "%s"' % (line_number,line))
            if step < last_step:
                raise KeyScriptException('Line %d: step %d is before step %d' % (line_number,step,last_step))
            last_step = step
            self.events.append((step,parts[1] == 'press',key))

    @property
    def done(self):
        return self.index >= len(self.events)

    def apply(self,step,interpreter):
        """ Send every event scheduled at or before this step to the interpreter """
        while not self.done and self.events[self.index][0] <= step:
            event_step,pressed,key = self.events[self.index]
            if pressed:
                interpreter.key_pressed(key)
            else:
                interpreter.key_released(key)
            self.index += 1

class STDOUTDisplay(object):
    """ Renders the framebuffer as text """
    def __init__(self,stream=None,on_char='#',off_char=' '):
        self.stream = stream or sys.stdout
        self.on_char = on_char
        self.off_char = off_char

    def render(self,vram):
        lines = []
        for row in range(0,SCREEN_HEIGHT):
            start = row * SCREEN_WIDTH
            lines.append(''.join([self.on_char if px else self.off_char for px in vram[start:start+SCREEN_WIDTH]]))
        return '\n'.join(lines)

    def draw(self,vram):
        border = '+%s+\n' % ('-' * SCREEN_WIDTH)
        self.stream.write(border)
        for line in self.render(vram).split('\n'):
            self.stream.write('|%s|\n' % line)
        self.stream.write(border)
        self.stream.flush()

class TerminalSpeaker(Speaker):
    """ Rings the terminal bell when the sound timer fires """
    def __init__(self,stream=None):
        self.stream = stream or sys.stdout

    def beep(self):
        self.stream.write('\a')
        self.stream.flush()
