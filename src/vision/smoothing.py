"""
Exponential smoothing for scalar and vector signals.
"""
from typing import Tuple


class ExponentialSmoother:
    """
    Exponential moving average: v' = v * (1 - alpha) + x * alpha.

    Higher alpha follows the input more closely (less smoothing).
    """

    def __init__(self, initial: float = 0.0, alpha: float = 0.1):
        """
        Args:
            initial: Starting value
            alpha: Weight of each new sample, 0-1
        """
        self.alpha = float(alpha)
        self._value = float(initial)

    def update(self, x: float) -> float:
        self._value = self._value * (1.0 - self.alpha) + float(x) * self.alpha
        return self._value

    @property
    def value(self) -> float:
        return self._value

    def reset(self, value: float) -> None:
        """Jump straight to value (no transient from the old state)."""
        self._value = float(value)


class Vector2Smoother:
    """Per-axis exponential smoothing for 2D points."""

    def __init__(self, alpha: float = 0.1, initial: Tuple[float, float] = (0.0, 0.0)):
        self._x = ExponentialSmoother(initial[0], alpha)
        self._y = ExponentialSmoother(initial[1], alpha)

    def update(self, x: float, y: float) -> Tuple[float, float]:
        return (self._x.update(x), self._y.update(y))

    @property
    def value(self) -> Tuple[float, float]:
        return (self._x.value, self._y.value)

    def reset(self, x: float, y: float) -> None:
        self._x.reset(x)
        self._y.reset(y)


class Vector3Smoother:
    """Per-axis exponential smoothing for 3D points."""

    def __init__(
        self,
        alpha: float = 0.1,
        initial: Tuple[float, float, float] = (0.0, 0.0, 0.0),
    ):
        self._x = ExponentialSmoother(initial[0], alpha)
        self._y = ExponentialSmoother(initial[1], alpha)
        self._z = ExponentialSmoother(initial[2], alpha)

    def update(self, x: float, y: float, z: float) -> Tuple[float, float, float]:
        return (self._x.update(x), self._y.update(y), self._z.update(z))

    @property
    def value(self) -> Tuple[float, float, float]:
        return (self._x.value, self._y.value, self._z.value)

    def reset(self, x: float, y: float, z: float) -> None:
        self._x.reset(x)
        self._y.reset(y)
        self._z.reset(z)
