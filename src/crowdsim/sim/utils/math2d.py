from __future__ import annotations

import math

from pygame.math import Vector2

# pygame's normalize()/scale_to_length() raise on zero-length vectors and the
# division operator raises on a zero scalar. Steering code treats both cases
# as no-ops instead, so it goes through these helpers.


def safe_divide(vector: Vector2, scalar: float) -> Vector2:
    if scalar == 0:
        return Vector2(vector)
    return Vector2(vector.x / scalar, vector.y / scalar)


def safe_divide_ip(vector: Vector2, scalar: float) -> Vector2:
    if scalar != 0:
        vector.update(vector.x / scalar, vector.y / scalar)
    return vector


def safe_normalize(vector: Vector2) -> Vector2:
    return safe_normalize_ip(Vector2(vector))


def safe_normalize_ip(vector: Vector2) -> Vector2:
    magnitude = math.hypot(vector.x, vector.y)
    if magnitude != 0:
        vector.update(vector.x / magnitude, vector.y / magnitude)
    return vector


def limit(vector: Vector2, max_length: float) -> Vector2:
    return limit_ip(Vector2(vector), max_length)


def limit_ip(vector: Vector2, max_length: float) -> Vector2:
    magnitude = math.hypot(vector.x, vector.y)
    if magnitude > max_length:
        safe_normalize_ip(vector)
        vector.update(vector.x * max_length, vector.y * max_length)
    return vector


def steer_xy(x: float, y: float, velocity: Vector2, max_speed: float) -> Vector2:
    """Desired heading `(x, y)` at full speed, minus the current velocity."""
    magnitude = math.hypot(x, y)
    if magnitude != 0:
        x /= magnitude
        y /= magnitude
    return Vector2(x * max_speed - velocity.x, y * max_speed - velocity.y)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
