import pygame
from pygame_terp.window import FramebufferWindow

from chip8.state import SCREEN_WIDTH,SCREEN_HEIGHT
from generic_terp import KEY_MAPPINGS

BLACK_COLOR = (0,0,0)
WHITE_COLOR = (255,255,255)

class PygameUI(object):
    """ Acts as an interface to our pygame UI.

        Key events are passed to the interpreter as hex keypad presses and releases (see
        generic_terp.KEY_MAPPINGS). The framebuffer is redrawn whenever the machine sets its
        draw flag; the flag is cleared once the frame has been shown.

        The main loop needs to call tick() on this object regularly. It will return True
        if processing should continue, False if a UI-level event cancels.
    """

    def __init__(self,settings,interpreter):
        """ Initialize the UI. This will open an OS window sized to the scaled framebuffer """
        pygame.init()
        self.interpreter = interpreter
        scale = settings['scale']
        self.screen = pygame.display.set_mode((SCREEN_WIDTH*scale,SCREEN_HEIGHT*scale))
        pygame.display.set_caption(settings.get('title','CHIP-8'))
        self.clock = pygame.time.Clock()
        self.hz = settings['hz']

        self.main_window = FramebufferWindow("Main",
                    self.screen,
                    (0,0),
                    scale,
                    settings.get('foreground_color',WHITE_COLOR),
                    settings.get('background_color',BLACK_COLOR))
        self.refresh()

    def tick(self):
        """ Run tick of game loop. Return False if game should quit, True if keep running """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    return False
                key = KEY_MAPPINGS.get(pygame.key.name(event.key))
                if key is not None:
                    self.interpreter.key_pressed(key)
            elif event.type == pygame.KEYUP:
                key = KEY_MAPPINGS.get(pygame.key.name(event.key))
                if key is not None:
                    self.interpreter.key_released(key)

        state = self.interpreter.state
        if state.draw_flag:
            self.refresh()
            state.draw_flag = False

        self.clock.tick(self.hz)
        return True

    def refresh(self):
        """ Redraw this screen """
        self.main_window.draw(self.interpreter.state.vram)
        pygame.display.flip()

    def close(self):
        pygame.quit()
