import sys
import os
import logging
import argparse
import time
import datetime

from chip8.instructions import InstructionException
from chip8.interpreter import InterpreterException
from chip8.memory import MemoryException
from chip8.state import ProgramTooLargeException,StackException

from pygame_terp import PygameUI
from generic_terp import STDOUTDisplay,TerminalSpeaker,FileKeyStream,ConfigException,KeyScriptException,load_interpreter

logger = logging.getLogger('terp')

SETTINGS = {'scale': 10,
            'hz': 60,
            'title': 'moosechip8',
            'foreground_color': (255,255,255),
            'background_color': (0,0,0)}

class MachineFaultException(Exception):
    """ Thrown when the machine hits an error it can't continue from """
    pass

class Tracer(object):
    """ Records every executed instruction and writes them out on exit """
    def __init__(self,path):
        self.path = path
        self.instructions = []

    def log_instruction(self,address,description):
        self.instructions.append('%04x: %s' % (address,description))

    def flush(self):
        with open(self.path,'w') as f:
            f.write('--- Trace written at %s ---\n' % datetime.datetime.now())
            for line in self.instructions:
                f.write(line)
                f.write('\n')

class MainLoop(object):
    def __init__(self,interpreter,raw=False,keys_path=None,tracer=None,max_steps=None,settings=SETTINGS):
        self.interpreter = interpreter
        self.raw = raw
        self.keys_path = keys_path
        self.tracer = tracer
        self.max_steps = max_steps
        self.settings = settings
        self.steps = 0

    def step(self):
        """ Run one machine step, recording it if tracing. Wraps machine errors in MachineFaultException """
        address = self.interpreter.pc
        waiting = self.interpreter.state.stopped
        try:
            self.interpreter.step()
        except (InstructionException,MemoryException,StackException) as e:
            logger.error('Machine fault: %s at PC 0x%04x [%s]', e, address, self.interpreter.last_instruction)
            raise MachineFaultException('Machine fault: %s at PC 0x%04x [%s]' % (e,address,self.interpreter.last_instruction))
        if self.tracer and not waiting:
            self.tracer.log_instruction(address,self.interpreter.last_instruction)
        self.steps += 1

    def _finished(self):
        return self.max_steps is not None and self.steps >= self.max_steps

    def loop(self):
        key_stream = None
        if self.keys_path:
            key_stream = FileKeyStream()
            key_stream.load_from_path(self.keys_path)

        try:
            if self.raw:
                self._raw_loop(key_stream)
            else:
                self._pygame_loop(key_stream)
        finally:
            if self.tracer:
                self.tracer.flush()

    def _raw_loop(self,key_stream):
        display = STDOUTDisplay()
        delay = 1.0 / self.settings['hz']
        while not self._finished():
            if key_stream:
                key_stream.apply(self.steps,self.interpreter)
            self.step()
            state = self.interpreter.state
            if state.draw_flag:
                display.draw(state.vram)
                state.draw_flag = False
            time.sleep(delay)

    def _pygame_loop(self,key_stream):
        ui = PygameUI(self.settings,self.interpreter)
        try:
            while ui.tick() and not self._finished():
                if key_stream:
                    key_stream.apply(self.steps,self.interpreter)
                self.step()
        finally:
            ui.close()

def start(path,raw=False,keys_path=None,trace_file_path=None,seed=None,max_steps=None,settings=SETTINGS):
    tracer = None
    if trace_file_path:
        tracer = Tracer(trace_file_path)

    speaker = TerminalSpeaker() if raw else None
    interpreter = load_interpreter(path,seed=seed,speaker=speaker)
    loop = MainLoop(interpreter,
        raw=raw,
        keys_path=keys_path,
        tracer=tracer,
        max_steps=max_steps,
        settings=settings)

    loop.loop()

def build_settings(data):
    settings = dict(SETTINGS)
    if data.scale is not None:
        if data.scale < 1:
            raise ConfigException('Scale must be at least 1')
        settings['scale'] = data.scale
    if data.hz is not None:
        if data.hz <= 0:
            raise ConfigException('Clock rate must be greater than 0')
        settings['hz'] = data.hz
    return settings

def main(*args):
    parser = argparse.ArgumentParser()
    parser.add_argument('rom',help='ROM file to run')
    parser.add_argument('--raw',help='Draw the screen as text on stdout instead of opening a window',required=False,action='store_true')
    parser.add_argument('--scale',help='Size in window pixels of each machine pixel',required=False,type=int)
    parser.add_argument('--hz',help='Steps per second',required=False,type=int)
    parser.add_argument('--seed',help='Optional seed for RNG',required=False)
    parser.add_argument('--keys_path',help='Path to optional file of scripted key presses',required=False)
    parser.add_argument('--trace_file',help='Path to file to which the terp will dump all instructions on exit',required=False)
    parser.add_argument('--max_steps',help='Stop after this many steps',required=False,type=int)
    parser.add_argument('--log_level',help='Logging level',required=False,default='WARNING')
    parser.add_argument('--log_file',help='Write log messages to this file instead of stderr',required=False)
    data = parser.parse_args(args or None)

    logging.basicConfig(level=data.log_level.upper(),filename=data.log_file,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    try:
        if data.trace_file and os.path.isdir(data.trace_file):
            raise ConfigException('Trace file path must be to a file')
        start(data.rom,
            raw=data.raw,
            keys_path=data.keys_path,
            trace_file_path=data.trace_file,
            seed=data.seed,
            max_steps=data.max_steps,
            settings=build_settings(data))
    except (ConfigException,KeyScriptException,ProgramTooLargeException,InterpreterException,IOError) as e:
        print(e)
        return 1
    except MachineFaultException as e:
        print(e)
        return 2
    except KeyboardInterrupt:
        pass
    return 0

if __name__ == "__main__":
    sys.exit(main(*sys.argv[1:]))
