"""
Decimal Formatter — (sign, digits, exponent) → минимальная десятичная строка

Backend возвращает значение как тройку:
    negative  — знак
    digits    — строка десятичных цифр без знака и точки
    exponent  — позиция точки: value = 0.digits × 10^exponent

Модуль превращает тройку в обычную десятичную запись с фиксированной
точкой (без научной нотации) и удаляет незначащие нули дробной части.

Режимы:
    0 < exponent <= len(digits)  → точка внутри цифр      "12345", 3  → "123.45"
    exponent > len(digits)       → дополнение нулями       "12345", 7  → "1234500"
    exponent <= 0                → "0." + нули + цифры     "123", -2   → "0.00123"

Функция чистая: не обращается к backend и не выполняет арифметики.
"""


def format_decimal(negative: bool, digits: str, exponent: int) -> str:
    """
    Форматирование тройки backend в минимальную десятичную строку.

    Args:
        negative: Знак значения
        digits: Цифры мантиссы (без знака и точки), может быть "0"
        exponent: Десятичный экспонент (позиция точки слева от digits)

    Returns:
        Десятичная строка без лишних нулей; ноль всегда "0" (без знака)

    Examples:
        >>> format_decimal(False, "0", 0)
        '0'
        >>> format_decimal(False, "12345", 3)
        '123.45'
        >>> format_decimal(False, "12345", 7)
        '1234500'
        >>> format_decimal(False, "123", -2)
        '0.00123'
        >>> format_decimal(True, "500", 1)
        '-5'
    """
    # MPFR отдаёт ноль как строку из нулей нужной длины
    if not digits or digits.strip("0") == "":
        return "0"

    if 0 < exponent <= len(digits):
        body = digits[:exponent]
        fraction = digits[exponent:]
        if fraction:
            body += "." + fraction
    elif exponent > len(digits):
        body = digits + "0" * (exponent - len(digits))
    else:
        body = "0." + "0" * (-exponent) + digits

    result = "-" + body if negative else body

    if "." in result:
        result = result.rstrip("0").rstrip(".")

    return result


def split_signed_digits(mantissa: str) -> tuple[bool, str]:
    """
    Отделить знак от строки цифр backend.

    Examples:
        >>> split_signed_digits("-125")
        (True, '125')
        >>> split_signed_digits("125")
        (False, '125')
    """
    if mantissa.startswith("-"):
        return True, mantissa[1:]
    if mantissa.startswith("+"):
        return False, mantissa[1:]
    return False, mantissa
