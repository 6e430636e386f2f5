"""
Scalar — вещественное число произвольной точности

Одно значение (magnitude) + один слот scratch, оба владеются экземпляром.

Два вида арифметики:
- Аллоцирующая (a + b): создаёт новый Scalar с точностью левого
  Scalar-операнда, один вызов backend прямо в хранилище результата.
- In-place (a += b): один вызов backend в scratch + одно копирование
  scratch → magnitude, новых Scalar не создаётся. Результат побитово
  совпадает с аллоцирующей формой.

Жизненный цикл:
    with Scalar("1.5") as x:      # close() на выходе
        ...
    y = x.copy()                  # единственный способ получить независимую копию
    y = x                         # y и x — один и тот же объект

Хранилище освобождается ровно один раз: close(), выход из with,
сборка мусора (weakref.finalize) или ошибка в конструкторе.
"""

import logging
import weakref
from typing import Optional, Union

from src.mpx.backend import MPFRBackend, MPHandle, get_backend
from src.mpx.config import PrecisionPolicy, get_config
from src.mpx.decimal_format import format_decimal
from src.mpx.errors import PrecisionMismatch

logger = logging.getLogger(__name__)

Number = Union[int, float]


def _release_handles(backend: MPFRBackend, *handles: MPHandle) -> None:
    for handle in handles:
        backend.release(handle)


def resolve_precision(left_bits: int, right_bits: int) -> int:
    """
    Точность результата бинарной операции над двумя значениями mpx.

    Raises:
        PrecisionMismatch: Если точности различаются и политика ENFORCE
    """
    if left_bits == right_bits:
        return left_bits
    if get_config().precision_policy is PrecisionPolicy.ENFORCE:
        raise PrecisionMismatch(left_bits, right_bits)
    logger.debug(
        "Precision mismatch tolerated: %d vs %d bits, using left operand",
        left_bits,
        right_bits,
    )
    return left_bits


class Scalar:
    """
    Вещественное число произвольной точности с собственным scratch.

    Args:
        value: None (ноль), десятичная строка, float/int или Scalar (копия)
        precision_bits: Точность в битах (default: из конфигурации;
            для Scalar-источника — его точность)
        backend: Backend (default: общий MPFRBackend процесса)

    Raises:
        ParseError: Если строка не является десятичным числом
        BackendFailure: Если точность невалидна
    """

    __slots__ = (
        "_backend",
        "_precision_bits",
        "_value",
        "_scratch",
        "_finalizer",
        "__weakref__",
    )

    __hash__ = None

    def __init__(
        self,
        value: Union[None, str, Number, "Scalar"] = None,
        precision_bits: Optional[int] = None,
        *,
        backend: Optional[MPFRBackend] = None,
    ):
        if precision_bits is None:
            if isinstance(value, Scalar):
                precision_bits = value.precision_bits
            else:
                precision_bits = get_config().default_precision_bits

        self._backend = backend or get_backend()
        self._precision_bits = precision_bits
        self._value = self._backend.init(precision_bits)
        try:
            self._scratch = self._backend.init(precision_bits)
        except Exception:
            self._backend.release(self._value)
            raise
        self._finalizer = weakref.finalize(
            self, _release_handles, self._backend, self._value, self._scratch
        )

        if value is not None:
            try:
                self.set(value)
            except Exception:
                self.close()
                raise

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def precision_bits(self) -> int:
        return self._precision_bits

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        """Освободить хранилище backend (идемпотентно)."""
        self._finalizer()

    def __enter__(self) -> "Scalar":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def copy(self) -> "Scalar":
        """Глубокая копия: новое хранилище, та же точность и значение."""
        result = Scalar(precision_bits=self._precision_bits, backend=self._backend)
        self._backend.copy_into(result._value, self._value)
        return result

    def __copy__(self) -> "Scalar":
        return self.copy()

    def __deepcopy__(self, memo) -> "Scalar":
        return self.copy()

    # =========================================================================
    # ASSIGNMENT & CONVERSION
    # =========================================================================

    def set(self, value: Union[str, Number, "Scalar"]) -> None:
        """
        Перезаписать значение на месте.

        При ошибке разбора строки прежнее значение сохраняется.

        Raises:
            ParseError: Если строка не является десятичным числом
            TypeError: Если тип значения не поддерживается
        """
        if isinstance(value, Scalar):
            if value._precision_bits == self._precision_bits:
                self._backend.copy_into(self._value, value._value)
            else:
                self._backend.round_into(self._value, value._value)
        elif isinstance(value, str):
            self._backend.set_from_decimal_string(self._value, value)
        elif isinstance(value, (int, float)):
            self._backend.set_from_double(self._value, value)
        else:
            raise TypeError(f"Cannot set Scalar from {type(value).__name__}")

    def to_double(self) -> float:
        """Преобразование в float (round-to-nearest, с потерей точности)."""
        return self._backend.to_double(self._value)

    def __float__(self) -> float:
        return self.to_double()

    def to_string(self, digits: Optional[int] = None) -> str:
        """
        Десятичная запись с фиксированной точкой.

        Args:
            digits: Значащие цифры (default: конфигурация, 32);
                не зависит от precision_bits

        Returns:
            Минимальная десятичная строка; NaN → nan_text, ±Inf → "Inf"/"-Inf"
        """
        if digits is None:
            digits = get_config().default_digits
        triple = self._backend.digits_and_exponent(self._value, digits)
        if triple is None:
            if self._backend.is_inf(self._value):
                return "-Inf" if self._backend.is_negative(self._value) else "Inf"
            return get_config().nan_text
        negative, digit_string, exponent = triple
        return format_decimal(negative, digit_string, exponent)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        if self.closed:
            return f"Scalar(<closed>, precision_bits={self._precision_bits})"
        return f"Scalar('{self.to_string()}', precision_bits={self._precision_bits})"

    # =========================================================================
    # OPERAND DISPATCH
    # =========================================================================

    def _operand(
        self, other, check_precision: bool = True
    ) -> Union[MPHandle, Number, None]:
        """Хэндл или native число для backend; None — тип не поддерживается."""
        if isinstance(other, Scalar):
            if check_precision:
                resolve_precision(self._precision_bits, other._precision_bits)
            return other._value
        if isinstance(other, (int, float)):
            return other
        return None

    def _new(self) -> "Scalar":
        return Scalar(precision_bits=self._precision_bits, backend=self._backend)

    def _binary(self, op, other, reflected: bool = False):
        rhs = self._operand(other)
        if rhs is None:
            return NotImplemented
        result = self._new()
        if reflected:
            op(result._value, rhs, self._value)
        else:
            op(result._value, self._value, rhs)
        return result

    def _in_place(self, op, other):
        rhs = self._operand(other)
        if rhs is None:
            return NotImplemented
        op(self._scratch, self._value, rhs)
        self._backend.copy_into(self._value, self._scratch)
        return self

    # =========================================================================
    # ARITHMETIC
    # =========================================================================

    def __add__(self, other):
        return self._binary(self._backend.add, other)

    def __radd__(self, other):
        return self._binary(self._backend.add, other, reflected=True)

    def __iadd__(self, other):
        return self._in_place(self._backend.add, other)

    def __sub__(self, other):
        return self._binary(self._backend.sub, other)

    def __rsub__(self, other):
        return self._binary(self._backend.sub, other, reflected=True)

    def __isub__(self, other):
        return self._in_place(self._backend.sub, other)

    def __mul__(self, other):
        return self._binary(self._backend.mul, other)

    def __rmul__(self, other):
        return self._binary(self._backend.mul, other, reflected=True)

    def __imul__(self, other):
        return self._in_place(self._backend.mul, other)

    def __truediv__(self, other):
        return self._binary(self._backend.div, other)

    def __rtruediv__(self, other):
        return self._binary(self._backend.div, other, reflected=True)

    def __itruediv__(self, other):
        return self._in_place(self._backend.div, other)

    def __pow__(self, exponent):
        return self._binary(self._backend.pow, exponent)

    def __neg__(self) -> "Scalar":
        result = self._new()
        self._backend.neg(result._value, self._value)
        return result

    def __pos__(self) -> "Scalar":
        return self.copy()

    def __abs__(self) -> "Scalar":
        if self._backend.is_negative(self._value):
            return -self
        return self.copy()

    # =========================================================================
    # MATH FUNCTIONS
    # =========================================================================

    def sqrt(self) -> "Scalar":
        """Квадратный корень (NaN для отрицательных значений)."""
        result = self._new()
        self._backend.sqrt(result._value, self._value)
        return result

    def square(self) -> "Scalar":
        result = self._new()
        self._backend.square(result._value, self._value)
        return result

    def log(self) -> "Scalar":
        """Натуральный логарифм."""
        result = self._new()
        self._backend.log(result._value, self._value)
        return result

    def pow(self, exponent: Union[Number, "Scalar"]) -> "Scalar":
        result = self ** exponent
        if result is NotImplemented:
            raise TypeError(f"Unsupported exponent type {type(exponent).__name__}")
        return result

    # =========================================================================
    # COMPARISON
    # =========================================================================

    def __eq__(self, other):
        rhs = self._operand(other, check_precision=False)
        if rhs is None:
            return NotImplemented
        return self._backend.compare_equal(self._value, rhs)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def _ordered(self, other):
        rhs = self._operand(other, check_precision=False)
        if rhs is None:
            return NotImplemented
        return self._backend.compare_ordered(self._value, rhs)

    def __lt__(self, other):
        order = self._ordered(other)
        if order is NotImplemented:
            return order
        return order == -1

    def __le__(self, other):
        order = self._ordered(other)
        if order is NotImplemented:
            return order
        return order in (-1, 0)

    def __gt__(self, other):
        order = self._ordered(other)
        if order is NotImplemented:
            return order
        return order == 1

    def __ge__(self, other):
        order = self._ordered(other)
        if order is NotImplemented:
            return order
        return order in (0, 1)

    def is_nan(self) -> bool:
        return self._backend.is_nan(self._value)
