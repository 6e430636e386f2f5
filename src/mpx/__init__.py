"""
mpx — арифметика произвольной точности для численных циклов

Вещественные (Scalar) и комплексные (Complex) значения фиксированной
точности поверх MPFR (gmpy2). In-place операторы переиспользуют
предвыделенный scratch и не создают новых значений на итерации.

    from src.mpx import Complex

    c = Complex("-0.75", "0.1", precision_bits=256)
    z = Complex(precision_bits=256)
    for _ in range(100):
        z.square_in_place()
        z += c
"""

# Errors
from src.mpx.errors import (
    BackendFailure,
    MPError,
    ParseError,
    PrecisionMismatch,
)

# Configuration
from src.mpx.config import (
    DEFAULT_DIGITS,
    DEFAULT_PRECISION_BITS,
    MIN_PRECISION_BITS,
    NumericConfig,
    PrecisionPolicy,
    configure,
    get_config,
    reset_config,
    set_config,
)

# Decimal Formatter
from src.mpx.decimal_format import format_decimal

# Backend
from src.mpx.backend import MPFRBackend, MPHandle, get_backend

# Numeric types
from src.mpx.scalar import Scalar
from src.mpx.complex_number import Complex

__all__ = [
    # Errors
    "BackendFailure",
    "MPError",
    "ParseError",
    "PrecisionMismatch",
    # Configuration — Constants
    "DEFAULT_DIGITS",
    "DEFAULT_PRECISION_BITS",
    "MIN_PRECISION_BITS",
    # Configuration — Types
    "NumericConfig",
    "PrecisionPolicy",
    # Configuration — Functions
    "configure",
    "get_config",
    "reset_config",
    "set_config",
    # Decimal Formatter
    "format_decimal",
    # Backend
    "MPFRBackend",
    "MPHandle",
    "get_backend",
    # Numeric types
    "Complex",
    "Scalar",
]
