"""
Exceptions raised by the solvers and readers.
"""


class MeshFileError(OSError):
    """Mesh file could not be opened."""


class SolverConvergenceError(RuntimeError):
    """
    Iterative solver did not reach the requested tolerance.

    Attributes:
        iterations: Number of iterations performed
        residual: Final residual norm
    """

    def __init__(self, message: str, iterations: int = 0, residual: float = 0.0):
        self.iterations = iterations
        self.residual = residual
        super().__init__(
            f"{message} (iterations={iterations}, residual={residual:.3e})"
        )


class ParameterError(ValueError):
    """Parameter file entry is unknown or its value does not match."""
