"""
MPFR Backend — арифметика произвольной точности через gmpy2

Единственная точка, где mpx обращается к gmpy2. Scalar и Complex
работают только с методами MPFRBackend и с хэндлами MPHandle.

Модель хранения:
- MPHandle — изменяемый слот фиксированной точности; значение внутри
  слота (gmpy2.mpfr) неизменяемо, изменяется только содержимое слота.
- Каждая операция пишет результат в dst; dst может совпадать с одним из
  операндов (как в MPFR): операнды читаются до записи.
- Вычисления выполняются в контексте точности dst с округлением
  RoundToNearest; ловушки (divzero, invalid, overflow) выключены, поэтому
  деление на ноль даёт ±Inf, sqrt(-1) даёт NaN.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Освобождённый хэндл не может использоваться (BackendFailure)
2. copy_into требует одинаковой точности src и dst
3. release идемпотентен
"""

import logging
import re
from typing import Optional, Union

import gmpy2

from src.mpx.config import MIN_PRECISION_BITS
from src.mpx.decimal_format import split_signed_digits
from src.mpx.errors import BackendFailure, ParseError

logger = logging.getLogger(__name__)

# [+-]? (digits [. digits?] | . digits) ([eE] [+-]? digits)?
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


class MPHandle:
    """
    Слот хранения одного значения фиксированной точности.

    Владелец слота (Scalar) отвечает за вызов MPFRBackend.release.
    """

    __slots__ = ("value", "precision_bits", "released")

    def __init__(self, value, precision_bits: int):
        self.value = value
        self.precision_bits = precision_bits
        self.released = False

    def __repr__(self) -> str:
        state = "released" if self.released else repr(self.value)
        return f"MPHandle({state}, precision_bits={self.precision_bits})"


Operand = Union[MPHandle, int, float]


class MPFRBackend:
    """
    Capability-интерфейс над gmpy2.

    Контексты gmpy2 кэшируются по точности: один context на precision_bits.
    """

    def __init__(self):
        self._contexts: dict[int, gmpy2.context] = {}

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def init(self, precision_bits: int) -> MPHandle:
        """
        Выделить хранилище, инициализированное нулём.

        Raises:
            BackendFailure: Если точность невалидна
        """
        if isinstance(precision_bits, bool) or not isinstance(precision_bits, int):
            raise BackendFailure(
                f"precision_bits must be int, got {type(precision_bits).__name__}"
            )
        if precision_bits < MIN_PRECISION_BITS:
            raise BackendFailure(
                f"precision_bits must be >= {MIN_PRECISION_BITS}, got {precision_bits}"
            )
        with self._context(precision_bits):
            zero = gmpy2.mpfr(0)
        return MPHandle(zero, precision_bits)

    def release(self, handle: MPHandle) -> None:
        """Освободить хранилище. Повторный вызов ничего не делает."""
        if handle.released:
            return
        handle.value = None
        handle.released = True
        logger.debug("Released handle (precision_bits=%d)", handle.precision_bits)

    # =========================================================================
    # ASSIGNMENT
    # =========================================================================

    def set_from_decimal_string(self, handle: MPHandle, text: str) -> None:
        """
        Разобрать десятичную строку в handle.

        При ошибке разбора значение handle не меняется.

        Raises:
            ParseError: Если text не соответствует десятичной грамматике
        """
        self._check(handle)
        if not isinstance(text, str) or not _DECIMAL_RE.match(text):
            logger.debug("Rejected decimal numeral %r", text)
            raise ParseError(text if isinstance(text, str) else repr(text))
        try:
            with self._context(handle.precision_bits):
                handle.value = gmpy2.mpfr(text, precision=0, base=10)
        except ValueError as exc:
            raise ParseError(text) from exc

    def set_from_double(self, handle: MPHandle, value: Union[int, float]) -> None:
        """Записать native число (float или int) с округлением к ближайшему."""
        self._check(handle)
        with self._context(handle.precision_bits):
            handle.value = gmpy2.mpfr(value)

    def copy_into(self, dst: MPHandle, src: MPHandle) -> None:
        """
        Скопировать значение src в dst.

        Raises:
            BackendFailure: Если точности не совпадают
        """
        self._check(dst)
        self._check(src)
        if dst.precision_bits != src.precision_bits:
            raise BackendFailure(
                f"copy_into requires equal precision, got "
                f"dst={dst.precision_bits} src={src.precision_bits}"
            )
        dst.value = src.value

    def round_into(self, dst: MPHandle, src: MPHandle) -> None:
        """Записать src в dst с округлением к точности dst."""
        self._apply(dst, gmpy2.mpfr, src)

    # =========================================================================
    # ARITHMETIC
    # =========================================================================

    def add(self, dst: MPHandle, a: Operand, b: Operand) -> None:
        """dst = a + b"""
        self._apply(dst, gmpy2.add, a, b)

    def sub(self, dst: MPHandle, a: Operand, b: Operand) -> None:
        """dst = a - b"""
        self._apply(dst, gmpy2.sub, a, b)

    def mul(self, dst: MPHandle, a: Operand, b: Operand) -> None:
        """dst = a * b"""
        self._apply(dst, gmpy2.mul, a, b)

    def div(self, dst: MPHandle, a: Operand, b: Operand) -> None:
        """dst = a / b (деление на ноль даёт ±Inf или NaN)"""
        self._apply(dst, gmpy2.div, a, b)

    def neg(self, dst: MPHandle, a: Operand) -> None:
        """dst = -a"""
        self._apply(dst, _negate, a)

    def sqrt(self, dst: MPHandle, a: Operand) -> None:
        """dst = sqrt(a) (NaN для отрицательных a)"""
        self._apply(dst, gmpy2.sqrt, a)

    def square(self, dst: MPHandle, a: Operand) -> None:
        """dst = a * a"""
        value = self._operand(a)
        self._store(dst, gmpy2.mul, value, value)

    def log(self, dst: MPHandle, a: Operand) -> None:
        """dst = ln(a)"""
        self._apply(dst, gmpy2.log, a)

    def pow(self, dst: MPHandle, a: Operand, exponent: Operand) -> None:
        """dst = a ** exponent"""
        self._apply(dst, _power, a, exponent)

    # =========================================================================
    # COMPARISON & CONVERSION
    # =========================================================================

    def compare_equal(self, a: Operand, b: Operand) -> bool:
        """a == b; False если хотя бы один операнд NaN."""
        return bool(self._operand(a) == self._operand(b))

    def compare_ordered(self, a: Operand, b: Operand) -> Optional[int]:
        """
        Упорядоченное сравнение.

        Returns:
            -1 если a < b, 0 если a == b, +1 если a > b,
            None если сравнение неупорядочено (NaN)
        """
        x = self._operand(a)
        y = self._operand(b)
        if x < y:
            return -1
        if x > y:
            return 1
        if x == y:
            return 0
        return None

    def is_nan(self, handle: MPHandle) -> bool:
        self._check(handle)
        return bool(gmpy2.is_nan(handle.value))

    def is_inf(self, handle: MPHandle) -> bool:
        self._check(handle)
        return bool(gmpy2.is_infinite(handle.value))

    def is_negative(self, handle: MPHandle) -> bool:
        """Знаковый бит (включая -0 и -Inf)."""
        self._check(handle)
        return bool(gmpy2.is_signed(handle.value))

    def to_double(self, handle: MPHandle) -> float:
        """Преобразование в float с округлением к ближайшему."""
        self._check(handle)
        with self._context(handle.precision_bits):
            return float(handle.value)

    def digits_and_exponent(
        self,
        handle: MPHandle,
        num_digits: int,
        base: int = 10,
    ) -> Optional[tuple[bool, str, int]]:
        """
        Извлечь (negative, digits, exponent): value = 0.digits × base^exponent.

        Returns:
            Тройка для форматирования или None для NaN/Inf
        """
        self._check(handle)
        if num_digits < 1:
            raise ValueError(f"num_digits must be >= 1, got {num_digits}")
        value = handle.value
        if not gmpy2.is_finite(value):
            return None
        try:
            mantissa, exponent, _ = value.digits(base, num_digits)
        except (ValueError, TypeError) as exc:
            raise BackendFailure(f"digit extraction failed: {exc}") from exc
        negative, digits = split_signed_digits(mantissa)
        return negative, digits, int(exponent)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _context(self, precision_bits: int) -> gmpy2.context:
        ctx = self._contexts.get(precision_bits)
        if ctx is None:
            ctx = gmpy2.context(precision=precision_bits, round=gmpy2.RoundToNearest)
            self._contexts[precision_bits] = ctx
        return ctx

    def _check(self, handle: MPHandle) -> None:
        if handle.released:
            raise BackendFailure("Operation on released storage")

    def _operand(self, x: Operand):
        if isinstance(x, MPHandle):
            self._check(x)
            return x.value
        return x

    def _apply(self, dst: MPHandle, op, *args: Operand) -> None:
        self._store(dst, op, *(self._operand(a) for a in args))

    def _store(self, dst: MPHandle, op, *values) -> None:
        self._check(dst)
        try:
            with self._context(dst.precision_bits):
                dst.value = gmpy2.mpfr(op(*values))
        except (TypeError, ArithmeticError) as exc:
            raise BackendFailure(f"{getattr(op, '__name__', op)} failed: {exc}") from exc


def _negate(x):
    return -gmpy2.mpfr(x)


def _power(x, y):
    return gmpy2.mpfr(x) ** y


_default_backend: Optional[MPFRBackend] = None


def get_backend() -> MPFRBackend:
    """Общий backend процесса (создаётся при первом обращении)."""
    global _default_backend
    if _default_backend is None:
        _default_backend = MPFRBackend()
    return _default_backend
