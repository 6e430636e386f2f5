"""
Errors — иерархия исключений mpx

Все ошибки наследуются от MPError, чтобы вызывающий код мог ловить
их одним except. ParseError дополнительно является ValueError
(совместимость с float("abc") / Decimal("abc")).
"""


class MPError(Exception):
    """Базовое исключение для всех ошибок mpx."""
    pass


class ParseError(MPError, ValueError):
    """
    Строка не является десятичным числом.

    Допустимая грамматика:
        [+-]? (digits [. digits?] | . digits) ([eE] [+-]? digits)?
    """

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid decimal numeral: {text!r}")


class PrecisionMismatch(MPError):
    """
    Операнды созданы с разной точностью (precision_bits).

    Возникает только при политике PrecisionPolicy.ENFORCE.
    """

    def __init__(self, left_bits: int, right_bits: int):
        self.left_bits = left_bits
        self.right_bits = right_bits
        super().__init__(
            f"Precision mismatch: left operand has {left_bits} bits, "
            f"right operand has {right_bits} bits"
        )


class BackendFailure(MPError):
    """
    Фатальная ошибка backend: невалидная точность, использование
    освобождённого хранилища или внутренняя ошибка gmpy2.
    """
    pass
