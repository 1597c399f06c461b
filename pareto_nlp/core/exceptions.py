"""Error kinds raised by the Pareto front engine."""


class ParetoError(Exception):
    """Base class for all errors raised by pareto_nlp"""
    pass


class InvalidConfiguration(ParetoError, ValueError):
    """Raised before any solve when options or the problem are not usable"""
    pass


class ConvergenceFailure(ParetoError, RuntimeError):
    """Raised when an anchor (single objective) solve does not converge"""

    def __init__(self, message: str, objective_index: int = None, status=None):
        super().__init__(message)
        self.objective_index = objective_index
        self.status = status


class DegenerateScalarization(ParetoError, ArithmeticError):
    """Raised when the anchor points do not span a usable CHIM"""
    pass
