"""
Synthetic hand landmark builders for tests.

Hands are laid out in normalized image space with the wrist near the
bottom centre, fingers pointing up.
"""

import math

WRIST_POS = (0.5, 0.8)


def base_hand():
    """A relaxed open hand: 21 (x, y) points."""
    wx, wy = WRIST_POS
    points = [(wx, wy)]
    # Thumb 1-4 sweeps out to the left
    for i in range(1, 5):
        points.append((wx - 0.05 * i, wy - 0.04 * i))
    # Index, middle, ring, pinky: MCP, PIP, DIP, TIP
    for finger, dx in enumerate((-0.06, -0.02, 0.02, 0.06)):
        for joint in range(1, 5):
            points.append((wx + dx, wy - 0.1 - 0.05 * joint))
    return points


def pinch_hand(distance):
    """Hand whose thumb tip is ``distance`` away from the index tip."""
    points = base_hand()
    points[4] = (0.40, 0.50)
    points[8] = (0.40 + distance, 0.50)
    return points


def fist_hand(avg_distance):
    """Hand whose four fingertips sit exactly ``avg_distance`` from the wrist."""
    points = base_hand()
    wx, wy = WRIST_POS
    for tip, angle in zip((8, 12, 16, 20), (-0.3, -0.1, 0.1, 0.3)):
        points[tip] = (wx + avg_distance * math.sin(angle),
                       wy - avg_distance * math.cos(angle))
    return points


OPEN = 0.25
CLOSED = 0.10
TAP = 0.04
APART = 0.20
