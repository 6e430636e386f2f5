"""
Complex — комплексное число произвольной точности

Состав:
- real, imaginary: два Scalar одной точности
- tmp1..tmp4: четыре scratch Scalar той же точности для промежуточных
  значений (in-place операции, square, norm, abs, деление)

Все конструкторы копируют значения внутрь: Scalar, переданные
вызывающим кодом, никогда не становятся частью Complex.

Формулы:
    (a + bi)(c + di) = (ac - bd) + (ad + bc)i
    (a + bi)/(c + di) = ((ac + bd) + (cb - ad)i) / (c² + d²)
    (a + bi)² = (a² - b²) + 2ab·i
    norm = a² + b²,  abs = sqrt(norm)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. real/imaginary результата никогда не читаются как операнд собственного
   обновления: новые компоненты сначала вычисляются в scratch
2. In-place операции не создают новых Scalar
3. Деление на ноль не проверяется: ±Inf/NaN backend распространяются
"""

import logging
from typing import Optional, Union

from src.mpx.backend import MPFRBackend, get_backend
from src.mpx.config import get_config
from src.mpx.scalar import Number, Scalar, resolve_precision

logger = logging.getLogger(__name__)

ComponentValue = Union[None, str, Number, Scalar]


class Complex:
    """
    Комплексное число произвольной точности.

    Args:
        real: Вещественная часть (строка, float/int, Scalar), либо
            Complex / builtin complex (тогда imaginary не указывается)
        imaginary: Мнимая часть
        precision_bits: Точность в битах (default: из конфигурации;
            для Complex-источника — его точность)
        backend: Backend (default: общий MPFRBackend процесса)

    Raises:
        ParseError: Если строка не является десятичным числом
        BackendFailure: Если точность невалидна
    """

    __slots__ = (
        "_backend",
        "_precision_bits",
        "_real",
        "_imaginary",
        "_tmp1",
        "_tmp2",
        "_tmp3",
        "_tmp4",
    )

    __hash__ = None

    def __init__(
        self,
        real: Union[ComponentValue, "Complex", complex] = None,
        imaginary: ComponentValue = None,
        precision_bits: Optional[int] = None,
        *,
        backend: Optional[MPFRBackend] = None,
    ):
        if precision_bits is None:
            if isinstance(real, Complex):
                precision_bits = real.precision_bits
            else:
                precision_bits = get_config().default_precision_bits

        self._backend = backend or get_backend()
        self._precision_bits = precision_bits

        allocated: list[Scalar] = []
        try:
            for name in ("_real", "_imaginary", "_tmp1", "_tmp2", "_tmp3", "_tmp4"):
                scalar = Scalar(precision_bits=precision_bits, backend=self._backend)
                allocated.append(scalar)
                setattr(self, name, scalar)
            if real is not None or imaginary is not None:
                self.set(real, imaginary)
        except Exception:
            for scalar in allocated:
                scalar.close()
            logger.debug(
                "Complex construction failed, released %d scalars", len(allocated)
            )
            raise

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def precision_bits(self) -> int:
        return self._precision_bits

    @property
    def real(self) -> Scalar:
        """Вещественная часть (изменяемая ссылка, не копия)."""
        return self._real

    @property
    def imaginary(self) -> Scalar:
        """Мнимая часть (изменяемая ссылка, не копия)."""
        return self._imaginary

    @property
    def closed(self) -> bool:
        return self._real.closed

    def _scalars(self) -> tuple[Scalar, ...]:
        return (
            self._real,
            self._imaginary,
            self._tmp1,
            self._tmp2,
            self._tmp3,
            self._tmp4,
        )

    def close(self) -> None:
        """Освободить хранилище всех шести Scalar (идемпотентно)."""
        for scalar in self._scalars():
            scalar.close()

    def __enter__(self) -> "Complex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def copy(self) -> "Complex":
        """Глубокая копия: новое хранилище, та же точность и значение."""
        result = self._new()
        self._backend.copy_into(result._real._value, self._real._value)
        self._backend.copy_into(result._imaginary._value, self._imaginary._value)
        return result

    def __copy__(self) -> "Complex":
        return self.copy()

    def __deepcopy__(self, memo) -> "Complex":
        return self.copy()

    # =========================================================================
    # ASSIGNMENT & CONVERSION
    # =========================================================================

    def set(
        self,
        real: Union[ComponentValue, "Complex", complex],
        imaginary: ComponentValue = None,
    ) -> None:
        """
        Перезаписать значение на месте (значения копируются).

        Формы:
            set(Complex)            — копия другого Complex
            set(complex)            — из builtin complex
            set(real, imaginary)    — строки, числа или Scalar
            set(real)               — мнимая часть = 0

        Raises:
            ParseError: Если строка не является десятичным числом
            TypeError: Если тип значения не поддерживается
        """
        if isinstance(real, Complex):
            if imaginary is not None:
                raise TypeError("imaginary must be omitted when setting from Complex")
            real, imaginary = real._real, real._imaginary
        elif isinstance(real, complex):
            if imaginary is not None:
                raise TypeError("imaginary must be omitted when setting from complex")
            real, imaginary = real.real, real.imag

        # Обе компоненты разбираются в tmp1/tmp2; при ошибке значение не меняется
        self._tmp1.set(0 if real is None else real)
        self._tmp2.set(0 if imaginary is None else imaginary)
        self._backend.copy_into(self._real._value, self._tmp1._value)
        self._backend.copy_into(self._imaginary._value, self._tmp2._value)

    def to_complex(self) -> complex:
        """Преобразование в builtin complex (с потерей точности)."""
        return complex(self._real.to_double(), self._imaginary.to_double())

    def __complex__(self) -> complex:
        return self.to_complex()

    def to_string(self, digits: Optional[int] = None) -> str:
        """
        Текст вида "a + bi" / "a - bi".

        Examples:
            >>> Complex("3", "-4").to_string()
            '3 - 4i'
        """
        re_text = self._real.to_string(digits)
        im_text = self._imaginary.to_string(digits)
        if im_text.startswith("-"):
            return f"{re_text} - {im_text[1:]}i"
        return f"{re_text} + {im_text}i"

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        if self.closed:
            return f"Complex(<closed>, precision_bits={self._precision_bits})"
        return (
            f"Complex('{self._real.to_string()}', '{self._imaginary.to_string()}', "
            f"precision_bits={self._precision_bits})"
        )

    # =========================================================================
    # OPERAND DISPATCH
    # =========================================================================

    def _new(self) -> "Complex":
        return Complex(precision_bits=self._precision_bits, backend=self._backend)

    def _check(self, other: Union["Complex", Scalar]) -> None:
        resolve_precision(self._precision_bits, other.precision_bits)

    @staticmethod
    def _scalar_operand(other):
        """Хэндл Scalar или native число; None — не вещественный операнд."""
        if isinstance(other, Scalar):
            return other._value
        if isinstance(other, (int, float)):
            return other
        return None

    # =========================================================================
    # ADDITION / SUBTRACTION
    # =========================================================================

    def _additive(self, op, other, reflected: bool = False):
        b = self._backend
        if isinstance(other, Complex):
            self._check(other)
            result = self._new()
            op(result._real._value, self._real._value, other._real._value)
            op(result._imaginary._value, self._imaginary._value, other._imaginary._value)
            return result
        rhs = self._scalar_operand(other)
        if rhs is None:
            return NotImplemented
        if isinstance(other, Scalar):
            self._check(other)
        result = self._new()
        if reflected:
            # x - (a + bi) = (x - a) - bi
            op(result._real._value, rhs, self._real._value)
            op(result._imaginary._value, 0, self._imaginary._value)
        else:
            op(result._real._value, self._real._value, rhs)
            b.copy_into(result._imaginary._value, self._imaginary._value)
        return result

    def _additive_in_place(self, scalar_op, other):
        if isinstance(other, Complex):
            self._check(other)
            scalar_op(self._real, other._real)
            scalar_op(self._imaginary, other._imaginary)
            return self
        if self._scalar_operand(other) is None:
            return NotImplemented
        if isinstance(other, Scalar):
            self._check(other)
        scalar_op(self._real, other)
        return self

    def __add__(self, other):
        return self._additive(self._backend.add, other)

    def __radd__(self, other):
        return self._additive(self._backend.add, other)

    def __iadd__(self, other):
        return self._additive_in_place(Scalar.__iadd__, other)

    def __sub__(self, other):
        return self._additive(self._backend.sub, other)

    def __rsub__(self, other):
        return self._additive(self._backend.sub, other, reflected=True)

    def __isub__(self, other):
        return self._additive_in_place(Scalar.__isub__, other)

    def __neg__(self) -> "Complex":
        result = self._new()
        self._backend.neg(result._real._value, self._real._value)
        self._backend.neg(result._imaginary._value, self._imaginary._value)
        return result

    def conjugate(self) -> "Complex":
        result = self._new()
        self._backend.copy_into(result._real._value, self._real._value)
        self._backend.neg(result._imaginary._value, self._imaginary._value)
        return result

    # =========================================================================
    # MULTIPLICATION
    # =========================================================================

    def _product_into(self, re_dst, im_dst, other: "Complex") -> None:
        """
        (re_dst, im_dst) = self * other.

        Слагаемые держатся в tmp1/tmp2; re_dst/im_dst не должны совпадать
        с компонентами операндов.
        """
        b = self._backend
        t1 = self._tmp1._value
        t2 = self._tmp2._value
        a_re, a_im = self._real._value, self._imaginary._value
        c_re, c_im = other._real._value, other._imaginary._value

        b.mul(t1, a_re, c_re)
        b.mul(t2, a_im, c_im)
        b.sub(re_dst, t1, t2)

        b.mul(t1, a_re, c_im)
        b.mul(t2, a_im, c_re)
        b.add(im_dst, t1, t2)

    def _scale_into(self, re_dst, im_dst, factor) -> None:
        self._backend.mul(re_dst, self._real._value, factor)
        self._backend.mul(im_dst, self._imaginary._value, factor)

    def __mul__(self, other):
        if isinstance(other, Complex):
            self._check(other)
            result = self._new()
            self._product_into(result._real._value, result._imaginary._value, other)
            return result
        factor = self._scalar_operand(other)
        if factor is None:
            return NotImplemented
        if isinstance(other, Scalar):
            self._check(other)
        result = self._new()
        self._scale_into(result._real._value, result._imaginary._value, factor)
        return result

    def __rmul__(self, other):
        return self.__mul__(other)

    def __imul__(self, other):
        if isinstance(other, Complex):
            self._check(other)
            # Новые компоненты в tmp3/tmp4, затем фиксация
            self._product_into(self._tmp3._value, self._tmp4._value, other)
            self._backend.copy_into(self._real._value, self._tmp3._value)
            self._backend.copy_into(self._imaginary._value, self._tmp4._value)
            return self
        factor = self._scalar_operand(other)
        if factor is None:
            return NotImplemented
        if isinstance(other, Scalar):
            self._check(other)
        # other может быть self.real: обе компоненты сначала в tmp3/tmp4
        self._scale_into(self._tmp3._value, self._tmp4._value, factor)
        self._backend.copy_into(self._real._value, self._tmp3._value)
        self._backend.copy_into(self._imaginary._value, self._tmp4._value)
        return self

    # =========================================================================
    # DIVISION
    # =========================================================================

    def _quotient_into(self, re_dst, im_dst, other: "Complex") -> None:
        """
        (re_dst, im_dst) = self / other.

        tmp3 = знаменатель; re_dst пишется только после того, как оба
        числителя используют исходные компоненты self, поэтому вызывающий
        код передаёт scratch для in-place формы.
        """
        b = self._backend
        t1 = self._tmp1._value
        t2 = self._tmp2._value
        denom = self._tmp3._value
        a_re, a_im = self._real._value, self._imaginary._value
        c_re, c_im = other._real._value, other._imaginary._value

        b.mul(t1, c_re, c_re)
        b.mul(t2, c_im, c_im)
        b.add(denom, t1, t2)

        # imaginary = (c·b - a·d) / denom
        b.mul(t1, c_re, a_im)
        b.mul(t2, a_re, c_im)
        b.sub(t1, t1, t2)
        b.div(im_dst, t1, denom)

        # real = (a·c + b·d) / denom
        b.mul(t1, a_re, c_re)
        b.mul(t2, a_im, c_im)
        b.add(t1, t1, t2)
        b.div(re_dst, t1, denom)

    def __truediv__(self, other):
        if isinstance(other, Complex):
            self._check(other)
            result = self._new()
            self._quotient_into(result._real._value, result._imaginary._value, other)
            return result
        divisor = self._scalar_operand(other)
        if divisor is None:
            return NotImplemented
        if isinstance(other, Scalar):
            self._check(other)
        result = self._new()
        # Обратное значение вычисляется один раз
        self._backend.div(result._tmp1._value, 1, divisor)
        self._scale_into(result._real._value, result._imaginary._value, result._tmp1._value)
        return result

    def __rtruediv__(self, other):
        # x / (a + bi) = x·a/|z|² - x·b/|z|²·i
        numerator = self._scalar_operand(other)
        if numerator is None:
            return NotImplemented
        if isinstance(other, Scalar):
            self._check(other)
        b = self._backend
        result = self._new()
        factor = result._tmp1._value
        self._norm_into(result._tmp2._value)
        b.div(factor, numerator, result._tmp2._value)
        b.mul(result._real._value, self._real._value, factor)
        b.mul(result._tmp3._value, self._imaginary._value, factor)
        b.neg(result._imaginary._value, result._tmp3._value)
        return result

    def __itruediv__(self, other):
        if isinstance(other, Complex):
            self._check(other)
            # Мнимая часть в tmp4, вещественная в tmp2 (tmp1/tmp3 заняты)
            self._quotient_into(self._tmp2._value, self._tmp4._value, other)
            self._backend.copy_into(self._real._value, self._tmp2._value)
            self._backend.copy_into(self._imaginary._value, self._tmp4._value)
            return self
        divisor = self._scalar_operand(other)
        if divisor is None:
            return NotImplemented
        if isinstance(other, Scalar):
            self._check(other)
        reciprocal = self._tmp1._value
        self._backend.div(reciprocal, 1, divisor)
        self._real *= self._tmp1
        self._imaginary *= self._tmp1
        return self

    # =========================================================================
    # COMPARISON
    # =========================================================================

    def __eq__(self, other):
        if isinstance(other, Complex):
            return self._real == other._real and self._imaginary == other._imaginary
        if self._scalar_operand(other) is None:
            return NotImplemented
        return self._real == other and self._imaginary == 0

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    # =========================================================================
    # MATH FUNCTIONS
    # =========================================================================

    def square(self) -> "Complex":
        """z² как новый Complex; квадраты компонент держатся в tmp1/tmp2."""
        result = self._new()
        self._square_into(result._real._value, result._imaginary._value)
        return result

    def square_in_place(self) -> "Complex":
        """z = z² без создания новых Scalar."""
        self._square_into(self._tmp3._value, self._tmp4._value)
        self._backend.copy_into(self._real._value, self._tmp3._value)
        self._backend.copy_into(self._imaginary._value, self._tmp4._value)
        return self

    def _square_into(self, re_dst, im_dst) -> None:
        b = self._backend
        t1 = self._tmp1._value
        t2 = self._tmp2._value
        re, im = self._real._value, self._imaginary._value

        b.square(t1, re)
        b.square(t2, im)
        b.sub(re_dst, t1, t2)
        b.mul(t1, re, im)
        b.mul(im_dst, t1, 2)

    def _norm_into(self, dst) -> None:
        b = self._backend
        t1 = self._tmp1._value
        t2 = self._tmp2._value
        b.square(t1, self._real._value)
        b.square(t2, self._imaginary._value)
        b.add(dst, t1, t2)

    def norm(self) -> Scalar:
        """Квадрат модуля re² + im² (новый Scalar)."""
        result = Scalar(precision_bits=self._precision_bits, backend=self._backend)
        self._norm_into(result._value)
        return result

    def abs(self) -> Scalar:
        """Модуль sqrt(re² + im²) (новый Scalar)."""
        result = Scalar(precision_bits=self._precision_bits, backend=self._backend)
        self._norm_into(result._scratch)
        self._backend.sqrt(result._value, result._scratch)
        return result

    def __abs__(self) -> Scalar:
        return self.abs()

    @property
    def length(self) -> Scalar:
        return self.abs()

    @property
    def length_squared(self) -> Scalar:
        return self.norm()
