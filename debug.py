from enum import Enum

import logging
import curses
import curses.ascii
from curses import wrapper

import argparse
import time

from chip8.instructions import InstructionException
from chip8.interpreter import InterpreterException
from chip8.memory import MemoryException
from chip8.state import SCREEN_WIDTH,SCREEN_HEIGHT,ProgramTooLargeException,StackException
from generic_terp import KEY_MAPPINGS,STDOUTDisplay,load_interpreter

logger = logging.getLogger('debug')

# Window constants
SCREEN_WINDOW_WIDTH = SCREEN_WIDTH + 2
SCREEN_WINDOW_HEIGHT = SCREEN_HEIGHT + 2
SCREEN_RIGHT_MARGIN = 1
DEBUGGER_MIN_WIDTH = 50

# Curses only reports presses, so a keypad key is held for this many steps
KEY_HOLD_STEPS = 10

class DebugQuitException(Exception):
    pass

class ResetException(Exception):
    pass


class StepperWindow(object):
    def next_line(self):
        return False

    def previous_line(self):
        return False

    def redraw(self,window,interpreter,height):
        idx = interpreter.pc
        memory = interpreter.state.memory
        try:
            i = 0
            while i < min(10,(height-1)//2):
                opcode, handler, description = interpreter.instruction_at(idx)
                if i == 0:
                    prefix = " >>> "
                else:
                    prefix = "     "
                window.addstr('%04x: %04x\n' %(idx,opcode))
                window.addstr("%s%s\n" % (prefix,description,))
                idx += 2
                i+=1
        except (InstructionException,MemoryException) as e:
            window.addstr('%04x: %s\n' %(idx,' '.join(['%02x' % x for x in memory[idx:idx+2]])))
            window.addstr('%04x: %s\n' %(idx,e))


class MemoryWindow(object):
    def __init__(self):
        self.address = 0x200

    def next_line(self):
        self.address = min(self.address + 0x10, 0xFF0)
        return True

    def previous_line(self):
        self.address -= 0x10
        if self.address < 0:
            self.address = 0
        return True

    def redraw(self,window,interpreter,height):
        memory = interpreter.state.memory
        for i in range(0,height-1):
            addr = self.address + (0x10 * i)
            if addr >= len(memory):
                break
            s = '%.4x ' % addr
            s += str(' '.join(['%.2x' % x for x in memory[addr:addr+16]]))
            s += '\n'
            window.addstr(s)

class RegistersWindow(object):
    def next_line(self):
        return False

    def previous_line(self):
        return False

    def redraw(self,window,interpreter,height):
        state = interpreter.state
        for i in range(0,16,4):
            window.addstr('  '.join(['V%X: %02x' % (r,state.V[r]) for r in range(i,i+4)]))
            window.addstr('\n')
        window.addstr('\n')
        window.addstr('PC:     0x%04x\n' % state.pc)
        window.addstr('I:      0x%04x\n' % state.I)
        window.addstr('SP:     %d\n' % state.sp)
        window.addstr('Stack:  %s\n' % ' '.join(['%03x' % a for a in state.stack[0:state.sp]]))
        window.addstr('Delay:  %d\n' % state.delay_timer)
        window.addstr('Sound:  %d\n' % state.sound_timer)
        window.addstr('Keys:   %s\n' % ' '.join(['%X' % k for k in range(0,16) if state.keypad[k]]))
        window.addstr('Mode:   %s\n' % state.mode.name)
        if interpreter.last_instruction:
            window.addstr('Last:   %s\n' % interpreter.last_instruction)

class DebuggerWindow(object):
    def __init__(self, interpreter,window):
        self.interpreter = interpreter
        self.is_active=False
        self.window = window
        self.window_handlers = {'i': StepperWindow(),
                                'm': MemoryWindow(),
                                'v': RegistersWindow()}
        self.current_handler = self.window_handlers['i']
        self.window_height,self.window_width = window.getmaxyx()

    def quit(self):
        raise DebugQuitException()

    def reset(self):
        raise ResetException()

    def key_pressed(self,key,terp):
        """ Key pressed while debugger active """
        ch = chr(key).lower()
        if ch == 'q':
            self.quit()
        elif ch == 'r':
            self.reset()
        elif ch == 's':
            terp.step()
            self.redraw()
        elif ch == 'g':
            self.current_handler = self.window_handlers['i']
            terp.run()
        elif ch == '.' or ch == '>':
            if self.current_handler.next_line():
                self.redraw()
        elif ch == ',' or ch == '<':
            if self.current_handler.previous_line():
                self.redraw()
        else:
            h = self.window_handlers.get(ch)
            if h:
                self.current_handler = h
                self.redraw()

    def activate(self):
        self.is_active=True
        self.redraw()

    def deactivate(self):
        self.is_active=False
        self.redraw()

    def redraw(self):
        curses.curs_set(0) # Hide cursor
        self.window.clear()
        if self.is_active:
            self.window.addstr(0,0,"PAUSED: (Q)uit (R)eset (M)em (V)regs (I)nstr (S)tep (G)o",curses.A_REVERSE)
        else:
            self.window.addstr(0,0,"Hit ESC for control",curses.A_REVERSE)

        self.window.move(2,0)
        if self.current_handler:
            self.current_handler.redraw(self.window, self.interpreter, self.window_height-3) # 3 is height of header + buffer
        self.window.refresh()

class ScreenWindow(object):
    """ Shows the framebuffer as text """
    def __init__(self,window):
        self.window = window
        self.display = STDOUTDisplay()

    def draw(self,vram):
        self.window.clear()
        self.window.border()
        for row,line in enumerate(self.display.render(vram).split('\n')):
            self.window.addstr(row+1,1,line)
        self.window.refresh()

class ErrorWindow(object):
    def __init__(self,window):
        self.window = window

    def error(self,msg):
        height,width = self.window.getmaxyx()
        self.window.clear()
        self.window.addstr(0, 0, msg[0:(height*width)-1], curses.A_REVERSE)
        self.window.refresh()

class RunState(Enum):
    RUNNING                  = 0
    PAUSED                   = 1
    RUN_UNTIL_BREAKPOINT = 2

class Terp(object):
    def __init__(self,interpreter,debugger,screen):
        self.state = RunState.RUNNING
        self.interpreter = interpreter
        self.breakpoint = None
        self.debugger = debugger
        self.screen = screen
        self.held_keys = {} # key -> steps left before release

    def run(self):
        if self.state != RunState.RUNNING:
            self.state = RunState.RUNNING
            self.debugger.deactivate()

    def pause(self):
        if self.state != RunState.PAUSED:
            self.state = RunState.PAUSED
            self.debugger.activate()

    def run_until(self,breakpoint=None):
        if self.state != RunState.RUN_UNTIL_BREAKPOINT:
            self.breakpoint=breakpoint
            self.state = RunState.RUN_UNTIL_BREAKPOINT
            self.debugger.deactivate()

    def step(self):
        self.interpreter.step()
        for key in list(self.held_keys):
            self.held_keys[key] -= 1
            if self.held_keys[key] <= 0:
                del self.held_keys[key]
                self.interpreter.key_released(key)
        state = self.interpreter.state
        if state.draw_flag:
            self.screen.draw(state.vram)
            state.draw_flag = False

    def idle(self):
        """ Called if no key is pressed """
        if self.state == RunState.RUNNING:
            self.step()
        elif self.state == RunState.RUN_UNTIL_BREAKPOINT:
            if self.breakpoint is not None and self.interpreter.pc == self.breakpoint:
                self.pause()
            else:
                self.step()

    def key_pressed(self,ch):
        if self.state == RunState.RUNNING or self.state == RunState.RUN_UNTIL_BREAKPOINT:
            if ch == curses.ascii.ESC:
                self.pause()
            else:
                key = KEY_MAPPINGS.get(chr(ch).lower())
                if key is not None:
                    self.interpreter.key_pressed(key)
                    self.held_keys[key] = KEY_HOLD_STEPS
        elif self.state == RunState.PAUSED:
            self.debugger.key_pressed(ch,self)

class MainLoop(object):
    def __init__(self,interpreter,breakpoint):
        self.interpreter = interpreter
        self.breakpoint = breakpoint

    def loop(self,screen):
        # Disable automatic echo
        curses.noecho()

        # Use unbufferd input
        curses.cbreak()

        # THe main screen
        screen_height,screen_width = screen.getmaxyx()
        if screen_width < SCREEN_WINDOW_WIDTH + SCREEN_RIGHT_MARGIN + DEBUGGER_MIN_WIDTH:
            print('Terminal must be at least %d characters wide' % (SCREEN_WINDOW_WIDTH + SCREEN_RIGHT_MARGIN + DEBUGGER_MIN_WIDTH))
            return
        if screen_height < SCREEN_WINDOW_HEIGHT + 2:
            print('Terminal must be at least %d characters in height' % (SCREEN_WINDOW_HEIGHT + 2))
            return

        # The machine's screen
        machine_screen = ScreenWindow(curses.newwin(SCREEN_WINDOW_HEIGHT,SCREEN_WINDOW_WIDTH,0,0))
        machine_screen.draw(self.interpreter.state.vram)

        # The debugger window
        debugger = DebuggerWindow(self.interpreter,
                                curses.newwin(screen_height-2,
                                 screen_width-SCREEN_WINDOW_WIDTH-SCREEN_RIGHT_MARGIN,
                                 0,
                                 SCREEN_WINDOW_WIDTH+SCREEN_RIGHT_MARGIN))
        debugger.redraw()
        debugger.window.timeout(1)

        terp = Terp(self.interpreter,debugger,machine_screen)
        if self.breakpoint is not None:
            terp.run_until(breakpoint=self.breakpoint)
        else:
            terp.run()

        # Area for error messages
        error_window = ErrorWindow(curses.newwin(2,
                                screen_width-SCREEN_WINDOW_WIDTH-SCREEN_RIGHT_MARGIN,
                                screen_height-2,
                                SCREEN_WINDOW_WIDTH+SCREEN_RIGHT_MARGIN))

        while True:
            try:
                ch = debugger.window.getch()
                if ch == curses.ERR:
                    terp.idle()
                else:
                    terp.key_pressed(ch)
            except (InstructionException,MemoryException,StackException,InterpreterException) as e:
                logger.error('%s at PC 0x%04x [%s]', e, self.interpreter.pc, self.interpreter.last_instruction)
                error_window.error('%s at PC 0x%04x [%s]' % (e,self.interpreter.pc,self.interpreter.last_instruction))
                terp.pause()

def parse_breakpoint(breakpoint):
    if breakpoint is None:
        return None
    if not breakpoint.startswith('0x'):
        breakpoint = '0x' + breakpoint
    return int(breakpoint,16)

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument('--file',required=True)
    parser.add_argument('--breakpoint')
    parser.add_argument('--seed')
    parser.add_argument('--log_file',default='debug.log')
    parser.add_argument('--log_level',default='DEBUG')
    data = parser.parse_args()

    logging.basicConfig(level=data.log_level.upper(),filename=data.log_file,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    try:
        while True:
            try:
                start(data.file,parse_breakpoint(data.breakpoint),data.seed)
            except ResetException:
                print("Resetting...")
                time.sleep(1)
    except DebugQuitException:
        print("Done.")
    except ProgramTooLargeException as e:
        print(e)

def start(filename,breakpoint,seed=None):
    interpreter = load_interpreter(filename,seed=seed)
    loop = MainLoop(interpreter,breakpoint)
    wrapper(loop.loop)

if __name__ == "__main__":
    main()
