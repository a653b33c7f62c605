#quadtree
import pygame

from quadtree_algorithms import Forest, QuadtreeNode

# Configuration
WIDTH, HEIGHT = 800, 800
MARGIN = 20
WHITE = (255, 255, 255)
GRAY = (180, 180, 180)
BLUE = (50, 100, 255)
GREEN = (50, 255, 50)


class ScreenMapping:
    """Maps domain coordinates to screen pixels, y axis pointing up"""

    def __init__(self, bounds, screen_size=(WIDTH, HEIGHT), margin=MARGIN):
        self.min_x, self.min_y, self.max_x, self.max_y = bounds
        width, height = screen_size
        self.height = height
        self.margin = margin
        self.scale = min((width - 2 * margin) / (self.max_x - self.min_x),
                         (height - 2 * margin) / (self.max_y - self.min_y))

    def to_screen(self, x, y):
        sx = self.margin + (x - self.min_x) * self.scale
        sy = self.height - self.margin - (y - self.min_y) * self.scale
        return sx, sy

    def leaf_rect(self, leaf: QuadtreeNode):
        """Screen rectangle (left, top, width, height) of a leaf"""
        min_x, _, _, max_y = leaf.bounds
        left, top = self.to_screen(min_x, max_y)
        return left, top, leaf.w * self.scale, leaf.h * self.scale


class QuadtreePartitionViewer:
    def __init__(self, forest: Forest, show_points=True):
        self.forest = forest
        self.show_points = show_points
        self.mapping = ScreenMapping(forest.bounds)

    def draw(self, screen):
        for leaf in self.forest.iter_leaves():
            left, top, w, h = self.mapping.leaf_rect(leaf)
            rect = pygame.Rect(int(left), int(top), max(1, round(w)), max(1, round(h)))
            pygame.draw.rect(screen, GREEN if leaf.count else GRAY, rect, 1)

            if self.show_points and leaf.buffer is not None:
                for p in leaf.buffer:
                    sx, sy = self.mapping.to_screen(p.x, p.y)
                    screen.set_at((int(sx), int(sy)), BLUE)

    def run(self):
        pygame.init()
        screen = pygame.display.set_mode((WIDTH, HEIGHT))
        pygame.display.set_caption("Source Grid Partition")
        clock = pygame.time.Clock()

        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_p:
                    self.show_points = not self.show_points

            screen.fill(WHITE)
            self.draw(screen)

            pygame.display.flip()
            clock.tick(30)

        pygame.quit()
