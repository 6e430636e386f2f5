"""
Тесты для Complex

Проверяемые инварианты:
1. Конструкторы копируют значения (нет алиасинга с Scalar вызывающего кода)
2. In-place mul/div корректны, когда операнд совпадает с приёмником
3. (a * b) / b ≈ a при b ≠ 0
4. Деление на ноль не проверяется (NaN/Inf backend)
5. Освобождение всех шести Scalar на любом пути
"""

import copy

import pytest

from src.mpx.complex_number import Complex
from src.mpx.config import PrecisionPolicy, configure
from src.mpx.errors import ParseError, PrecisionMismatch
from src.mpx.scalar import Scalar


def _close(a: Complex, b: Complex, tol: str = "1e-30") -> bool:
    bound = Scalar(tol)
    return abs(a.real - b.real) <= bound and abs(a.imaginary - b.imaginary) <= bound


# =============================================================================
# ТЕСТЫ: Конструирование
# =============================================================================


class TestConstruction:
    """Все формы конструктора и set()."""

    def test_default_is_zero(self) -> None:
        """Complex() — ноль с точностью по умолчанию."""
        z = Complex()
        assert z == Complex(0, 0)
        assert z.precision_bits == 128
        assert z.real.precision_bits == z.imaginary.precision_bits == 128

    def test_from_doubles(self) -> None:
        """Компоненты из float."""
        z = Complex(1.5, -2.0)
        assert z.real == 1.5
        assert z.imaginary == -2

    def test_from_strings(self) -> None:
        """Компоненты из десятичных строк."""
        z = Complex("3", "4")
        assert str(z) == "3 + 4i"

    def test_from_scalars_copies_values(self) -> None:
        """Scalar вызывающего кода копируются, а не встраиваются."""
        re = Scalar("1")
        im = Scalar("2")
        z = Complex(re, im)
        re += 10
        im += 10
        assert z.real == 1
        assert z.imaginary == 2
        assert z.real is not re

    def test_from_builtin_complex(self) -> None:
        """Мост с builtin complex в обе стороны."""
        z = Complex(1 + 2j)
        assert z.to_complex() == 1 + 2j
        assert complex(z) == 1 + 2j

    def test_from_complex_inherits_precision(self) -> None:
        """Complex(other) наследует точность источника."""
        source = Complex("1", "2", precision_bits=256)
        clone = Complex(source)
        assert clone.precision_bits == 256
        assert clone == source

    def test_real_only(self) -> None:
        """Без мнимой части она равна нулю."""
        z = Complex("5")
        assert z.imaginary == 0

    def test_invalid_string_raises(self) -> None:
        """Невалидная строка → ParseError."""
        with pytest.raises(ParseError):
            Complex("1", "i")

    def test_failed_construction_releases(self, counting_backend) -> None:
        """Ошибка в конструкторе освобождает все 12 хэндлов."""
        with pytest.raises(ParseError):
            Complex("1", "x", backend=counting_backend)
        assert counting_backend.allocated == 12
        assert counting_backend.live == 0

    def test_set_variants(self) -> None:
        """Все формы set()."""
        z = Complex()
        z.set("1", "2")
        assert z == Complex(1, 2)
        z.set(3.0, -4.0)
        assert z == Complex(3, -4)
        z.set(Scalar("5"), Scalar("6"))
        assert z == Complex(5, 6)
        z.set(Complex(7, 8))
        assert z == Complex(7, 8)
        z.set(9 - 1j)
        assert z == Complex(9, -1)

    def test_failed_set_keeps_previous_value(self) -> None:
        """Ошибка разбора мнимой части не затрагивает вещественную."""
        z = Complex("1", "2")
        with pytest.raises(ParseError):
            z.set("9", "x")
        assert z == Complex(1, 2)

    def test_set_from_self(self) -> None:
        """set(self) оставляет значение прежним."""
        z = Complex("1.5", "-2.5")
        z.set(z)
        assert z == Complex(1.5, -2.5)

    def test_set_complex_with_imaginary_raises(self) -> None:
        """set(Complex, imaginary) отклоняется."""
        with pytest.raises(TypeError, match="imaginary must be omitted"):
            Complex().set(Complex(1, 1), 2)


class TestCopyAndLifecycle:
    """copy() и освобождение хранилища."""

    def test_copy_independent(self) -> None:
        """Изменение копии не затрагивает оригинал."""
        z = Complex("1", "2")
        w = z.copy()
        w *= Complex(0, 1)
        assert z == Complex(1, 2)
        assert w == Complex(-2, 1)

    def test_copy_module(self) -> None:
        """copy.deepcopy даёт независимое значение."""
        z = Complex("1", "1")
        w = copy.deepcopy(z)
        w += 1
        assert z == Complex(1, 1)

    def test_close_releases_everything(self, counting_backend) -> None:
        """Выход из with освобождает все шесть Scalar."""
        with Complex("1", "2", backend=counting_backend) as z:
            assert counting_backend.live == 12
        assert z.closed
        assert counting_backend.live == 0

    def test_repr(self) -> None:
        """repr показывает компоненты и точность."""
        assert repr(Complex("1", "-2", precision_bits=64)) == (
            "Complex('1', '-2', precision_bits=64)"
        )


# =============================================================================
# ТЕСТЫ: Сложение и вычитание
# =============================================================================


class TestAdditive:
    """Покомпонентные + и -."""

    def test_add_sub(self) -> None:
        """Покомпонентные сумма и разность."""
        a = Complex("1.5", "2")
        b = Complex("0.5", "-3")
        assert a + b == Complex(2, -1)
        assert a - b == Complex(1, 5)

    def test_in_place(self) -> None:
        """+= и -= меняют тот же объект."""
        a = Complex("1", "1")
        same = a
        a += Complex("2", "3")
        assert a is same
        assert a == Complex(3, 4)
        a -= Complex("1", "1")
        assert a == Complex(2, 3)

    def test_with_real_operands(self) -> None:
        """Вещественный операнд меняет только real (кроме x - z)."""
        z = Complex("1", "2")
        assert z + 1 == Complex(2, 2)
        assert 1 + z == Complex(2, 2)
        assert z - Scalar("1") == Complex(0, 2)
        assert 1 - z == Complex(0, -2)

    def test_in_place_with_self(self) -> None:
        """z += z удваивает обе компоненты."""
        z = Complex("1", "2")
        z += z
        assert z == Complex(2, 4)

    def test_negation_and_conjugate(self) -> None:
        """-z и conjugate() не меняют исходное значение."""
        z = Complex("1", "-2")
        assert -z == Complex(-1, 2)
        assert z.conjugate() == Complex(1, 2)


# =============================================================================
# ТЕСТЫ: Умножение и деление
# =============================================================================


class TestMultiplication:
    """(a + bi)(c + di)."""

    def test_complex_product(self) -> None:
        """(1 + 2i)(3 + 4i) = -5 + 10i."""
        assert Complex(1, 2) * Complex(3, 4) == Complex(-5, 10)

    def test_scalar_product(self) -> None:
        """Умножение на Scalar и native число с обеих сторон."""
        z = Complex(1, -2)
        assert z * Scalar("2") == Complex(2, -4)
        assert Scalar("2") * z == Complex(2, -4)
        assert 0.5 * z == Complex(0.5, -1)

    def test_in_place_matches_allocating(self) -> None:
        """a *= b совпадает с a * b."""
        a = Complex("1.1", "-2.3")
        b = Complex("0.7", "5.9")
        expected = a * b
        a *= b
        assert a == expected

    def test_in_place_with_self(self) -> None:
        """z *= z совпадает с z.square()."""
        z = Complex("3", "4")
        expected = z.square()
        z *= z
        assert z == expected
        assert z == Complex(-7, 24)

    def test_in_place_scalar(self) -> None:
        """z *= 3 масштабирует обе компоненты."""
        z = Complex("1", "2")
        z *= 3
        assert z == Complex(3, 6)

    def test_in_place_by_own_real_part(self) -> None:
        """z *= z.real: мнимая часть умножается на исходную real."""
        z = Complex("3", "4")
        expected = z * z.real
        z *= z.real
        assert z == expected
        assert z == Complex(9, 12)

    def test_in_place_by_own_imaginary_part(self) -> None:
        """z *= z.imaginary: вещественная часть не портит множитель."""
        z = Complex("3", "4")
        z *= z.imaginary
        assert z == Complex(12, 16)

    def test_in_place_does_not_allocate(self, counting_backend) -> None:
        """In-place mul/square/div не выделяют хранилище."""
        a = Complex("1", "2", backend=counting_backend)
        b = Complex("3", "4", backend=counting_backend)
        allocated = counting_backend.allocated
        a *= b
        a.square_in_place()
        a /= b
        assert counting_backend.allocated == allocated


class TestDivision:
    """Деление через сопряжённый знаменатель."""

    def test_complex_quotient(self) -> None:
        """(-5 + 10i) / (3 + 4i) = 1 + 2i."""
        assert Complex(-5, 10) / Complex(3, 4) == Complex(1, 2)

    def test_in_place_matches_allocating(self) -> None:
        """a /= b совпадает с a / b."""
        a = Complex("1.1", "-2.3")
        b = Complex("0.7", "5.9")
        expected = a / b
        a /= b
        assert a == expected

    def test_in_place_with_self(self) -> None:
        """z /= z даёт единицу."""
        z = Complex("3", "-4")
        z /= z
        assert z == Complex(1, 0)

    def test_product_quotient_roundtrip(self) -> None:
        """(a * b) / b ≈ a."""
        a = Complex("1.1", "-2.3")
        b = Complex("0.7", "5.9")
        assert _close((a * b) / b, a)

    def test_divide_by_scalar(self) -> None:
        """Деление на Scalar и native число, в том числе in-place."""
        z = Complex("3", "4")
        assert z / Scalar("2") == Complex(1.5, 2)
        assert z / 4 == Complex(0.75, 1)
        z /= 2
        assert z == Complex(1.5, 2)

    def test_scalar_divided_by_complex(self) -> None:
        """x / z через сопряжённое."""
        assert Scalar("2") / Complex(1, 1) == Complex(1, -1)
        assert _close(5 / Complex(3, 4), Complex("0.6", "-0.8"))

    def test_divide_by_zero_propagates(self) -> None:
        """Деление на 0 + 0i даёт NaN в обеих компонентах."""
        result = Complex(1, 1) / Complex(0, 0)
        assert result.real.is_nan()
        assert result.imaginary.is_nan()


class TestPrecision:
    """Операнды разной точности."""

    def test_enforce_raises(self) -> None:
        """Разная точность при ENFORCE → PrecisionMismatch."""
        a = Complex(1, 1, precision_bits=64)
        b = Complex(1, 1, precision_bits=128)
        with pytest.raises(PrecisionMismatch):
            a * b
        with pytest.raises(PrecisionMismatch):
            a += b
        with pytest.raises(PrecisionMismatch):
            a / Scalar("2", precision_bits=256)

    def test_left_operand_policy(self) -> None:
        """LEFT_OPERAND: точность левого операнда."""
        configure(precision_policy=PrecisionPolicy.LEFT_OPERAND)
        a = Complex(1, 1, precision_bits=64)
        b = Complex(1, 1, precision_bits=128)
        assert (a * b).precision_bits == 64

    def test_results_keep_precision(self) -> None:
        """Результаты сохраняют точность операнда."""
        z = Complex(1, 2, precision_bits=200)
        for result in (z + z, z * z, z / z, z.square(), -z):
            assert result.precision_bits == 200
        assert z.norm().precision_bits == 200


# =============================================================================
# ТЕСТЫ: Функции
# =============================================================================


class TestFunctions:
    """square / norm / abs / length."""

    def test_square(self) -> None:
        """square() не меняет исходное значение."""
        z = Complex("3", "4")
        assert z.square() == Complex(-7, 24)
        assert z == Complex(3, 4)

    def test_square_in_place(self) -> None:
        """square_in_place() возвращает self."""
        z = Complex("3", "4")
        assert z.square_in_place() is z
        assert z == Complex(-7, 24)

    def test_norm(self) -> None:
        """|3 + 4i|² = 25."""
        assert Complex("3", "4").norm() == Scalar("25")

    def test_abs_345(self) -> None:
        """|3 + 4i| = 5."""
        assert Complex("3", "4").abs() == Scalar("5")
        assert abs(Complex("-3", "4")) == 5

    def test_length_properties(self) -> None:
        """length / length_squared совпадают с abs / norm."""
        z = Complex("6", "8")
        assert z.length == 10
        assert z.length_squared == 100

    def test_escape_iteration_in_place_matches_allocating(self) -> None:
        """z = z² + c: in-place цикл совпадает с аллоцирующим."""
        c = Complex("-0.5", "0.25")
        z_in_place = Complex()
        z_alloc = Complex()
        for _ in range(20):
            z_in_place.square_in_place()
            z_in_place += c
            z_alloc = z_alloc * z_alloc + c
        assert z_in_place == z_alloc
        assert z_in_place.norm() < 4


class TestEqualityAndText:
    """== и текстовое представление."""

    def test_equality(self) -> None:
        """Равенство Complex и сравнение с вещественным числом."""
        assert Complex(1, 2) == Complex("1", "2")
        assert Complex(1, 2) != Complex(1, 3)
        assert Complex(5, 0) == 5
        assert Complex(5, 1) != 5

    def test_to_string(self) -> None:
        """Формат "a + bi" / "a - bi"."""
        assert Complex("3", "-4").to_string() == "3 - 4i"
        assert Complex("-0.5", "0").to_string() == "-0.5 + 0i"
        assert (Complex(1, 0) / 3).to_string(4) == "0.3333 + 0i"

    def test_unhashable(self) -> None:
        """Complex не хэшируется."""
        with pytest.raises(TypeError):
            hash(Complex())
