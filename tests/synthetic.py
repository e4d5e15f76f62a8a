"""
Synthetic marker scenes generated with OpenCV.
"""

import cv2
import numpy as np

BACKGROUND = (210, 210, 210)

# BGR cell colors, nine distinct hue bins
GRID_COLORS = [
    [(0, 0, 255), (0, 255, 255), (255, 0, 0)],      # red, yellow, blue
    [(255, 255, 0), (255, 0, 255), (128, 255, 0)],  # cyan, magenta, spring green
    [(255, 128, 0), (0, 255, 0), (128, 0, 255)],    # azure, green, purple
]

GRAY_LEVELS = [
    [40, 120, 200],
    [200, 40, 120],
    [120, 200, 40],
]


def make_grid(side=360, colors=None):
    """Square 3x3 grid image with flat cells."""
    colors = colors or GRID_COLORS
    grid = np.zeros((side, side, 3), dtype=np.uint8)
    bounds = [int(round(i * side / 3.0)) for i in range(4)]
    for r in range(3):
        for c in range(3):
            grid[bounds[r]:bounds[r + 1], bounds[c]:bounds[c + 1]] = colors[r][c]
    return grid


def make_gray_grid(side=360):
    colors = [[(v, v, v) for v in row] for row in GRAY_LEVELS]
    return make_grid(side, colors)


def make_scene(width=640, height=480, side=240, background=BACKGROUND, grid=None):
    """Axis-aligned grid centred on a flat background."""
    scene = np.full((height, width, 3), background, dtype=np.uint8)
    grid = make_grid(side) if grid is None else grid
    x0 = (width - side) // 2
    y0 = (height - side) // 2
    scene[y0:y0 + side, x0:x0 + side] = grid
    return scene


def make_rotated_scene(angle=10.0, side=200, width=640, height=480, background=BACKGROUND):
    """Grid warped (nearest neighbour) into a rotated square centred in the scene."""
    # boxPoints corners are already cyclic; re-sorting them by x+y ties at 45 degrees
    quad = cv2.boxPoints(((width / 2.0, height / 2.0), (side, side), angle)).astype(np.float32)
    grid = make_grid(300)
    src = np.array([[0, 0], [299, 0], [299, 299], [0, 299]], dtype=np.float32)
    transform = cv2.getPerspectiveTransform(src, quad)
    warped = cv2.warpPerspective(grid, transform, (width, height), flags=cv2.INTER_NEAREST)
    footprint = cv2.warpPerspective(np.full((300, 300), 255, dtype=np.uint8), transform,
                                    (width, height), flags=cv2.INTER_NEAREST)
    scene = np.full((height, width, 3), background, dtype=np.uint8)
    scene[footprint > 0] = warped[footprint > 0]
    return scene


def encode_png(image):
    ok, buffer = cv2.imencode('.png', image)
    assert ok
    return buffer.tobytes()
