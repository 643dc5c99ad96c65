import pygame

from chip8.state import SCREEN_WIDTH,SCREEN_HEIGHT

COLS=0
ROWS=1

class FramebufferWindow(object):
    def __init__(self,name, screen,
                     position, scale,
                     foreground_color, background_color,
                     size=(SCREEN_WIDTH,SCREEN_HEIGHT)):
        """ Size is in machine pixels. Each machine pixel is drawn as a scale x scale square.

            Position is the top left corner in window pixels. """
        self.screen = screen
        self.name = name
        self.position = position
        self.size = size
        self.scale = scale
        self.foreground_color = foreground_color
        self.background_color = background_color

        self.bounds = pygame.Rect(self.position[0],
                                  self.position[1],
                                  self.scale*self.size[COLS],
                                  self.scale*self.size[ROWS])

    def _get_x_y_from_pos(self, col,row):
        """ Given a column and row, return the x/y location """
        return (self.position[0]+(self.scale*col),
                self.position[1]+(self.scale*row))

    def draw(self,vram):
        """ Call to draw the framebuffer to the ui window """
        pygame.draw.rect(self.screen, self.background_color, self.bounds)
        width = self.size[COLS]
        for idx,pixel in enumerate(vram):
            if pixel:
                x,y = self._get_x_y_from_pos(idx % width, idx // width)
                pygame.draw.rect(self.screen, self.foreground_color, pygame.Rect(x,y,self.scale,self.scale))
