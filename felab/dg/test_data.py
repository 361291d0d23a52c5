"""
Initial conditions and exact solutions of the DG test cases.
"""

import numpy as np
import numpy.typing as npt
from dataclasses import dataclass
from scipy.optimize import brentq
from typing import Callable, Optional


@dataclass(frozen=True)
class TestCase:
    name: str
    xmin: float
    xmax: float
    initial: Callable
    smooth: bool

    __test__ = False  # not a pytest class

    @property
    def length(self) -> float:
        return self.xmax - self.xmin


def _smooth(x):
    return 0.5 + np.sin(np.pi * x)


def _square(x):
    return np.where(np.abs(x) < 1.0 / 3.0, 1.0, 0.0)


def _composite(x):
    """Jiang-Shu composite profile: Gaussians, square, triangle, ellipse."""
    a, z, delta, alpha, beta = 0.5, -0.7, 0.005, 10.0, np.log(2.0) / (36 * 0.005**2)

    def G(x, z):
        return np.exp(-beta * (x - z) ** 2)

    def F(x, a):
        return np.sqrt(np.maximum(1.0 - alpha**2 * (x - a) ** 2, 0.0))

    x = np.asarray(x, dtype=np.float64)
    u = np.zeros_like(x)
    m = (x >= -0.8) & (x <= -0.6)
    u[m] = (G(x[m], z - delta) + G(x[m], z + delta) + 4.0 * G(x[m], z)) / 6.0
    m = (x >= -0.4) & (x <= -0.2)
    u[m] = 1.0
    m = (x >= 0.0) & (x <= 0.2)
    u[m] = 1.0 - np.abs(10.0 * (x[m] - 0.1))
    m = (x >= 0.4) & (x <= 0.6)
    u[m] = (F(x[m], a - delta) + F(x[m], a + delta) + 4.0 * F(x[m], a)) / 6.0
    return u


TEST_CASES = {
    "smooth": TestCase("smooth", -1.0, 1.0, _smooth, True),
    "square": TestCase("square", -1.0, 1.0, _square, False),
    "composite": TestCase("composite", -1.0, 1.0, _composite, False),
}


def get_test_case(name: str) -> TestCase:
    if name not in TEST_CASES:
        raise ValueError(f"Unknown test case '{name}'")
    return TEST_CASES[name]


class InitialCondition:
    """Initial condition of a test case, periodic on [xmin, xmax]."""

    def __init__(self, test_case: TestCase):
        self.test_case = test_case
        self.xmin = test_case.xmin
        self.xmax = test_case.xmax

    def wrap(self, x):
        return self.xmin + np.mod(np.asarray(x) - self.xmin, self.test_case.length)

    def value(self, x) -> npt.NDArray[np.float64]:
        return self.test_case.initial(self.wrap(x))

    def __call__(self, x):
        return self.value(x)


class Solution:
    """
    Exact solution of a test case at a fixed time.

    Linear advection shifts the initial condition. For Burgers' equation the
    smooth case is solved along characteristics, u = u0(x - u t), which is
    valid until the first shock forms; otherwise no exact solution exists
    here and `available` is False.
    """

    def __init__(self, test_case: TestCase, time: float, pde=None):
        self.test_case = test_case
        self.time = time
        self.pde = pde
        self.initial = InitialCondition(test_case)

    @property
    def breaking_time(self) -> float:
        # max of -u0'(x) for u0 = 0.5 + sin(pi x) is pi
        return 1.0 / np.pi

    @property
    def available(self) -> bool:
        if self.pde is None or self.pde.name == "linear":
            return True
        return self.test_case.smooth and self.time < self.breaking_time

    def value(self, x) -> Optional[npt.NDArray[np.float64]]:
        if not self.available:
            return None
        x = np.asarray(x, dtype=np.float64)
        if self.pde is None or self.pde.name == "linear":
            speed = 1.0 if self.pde is None else self.pde.speed
            return self.initial.value(x - speed * self.time)
        return self._burgers(x)

    def _burgers(self, x: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        t = self.time
        u0 = self.initial.value
        # u0 lies in [-0.5, 1.5], so the root is bracketed there
        lo, hi = -0.5 - 1e-12, 1.5 + 1e-12
        flat = np.ravel(x)
        u = np.array(
            [brentq(lambda v, xi=xi: v - u0(xi - v * t), lo, hi, xtol=1e-14) for xi in flat]
        )
        return u.reshape(x.shape)

    def __call__(self, x):
        return self.value(x)
