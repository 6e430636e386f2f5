"""
NumericConfig — глобальные параметры mpx

Immutable Pydantic модель с параметрами по умолчанию:
- точность новых значений (бит мантиссы)
- количество значащих цифр при выводе
- политика при смешивании операндов разной точности
- текст для NaN

Активная конфигурация хранится на уровне модуля и заменяется целиком
(set_config / configure), частичное изменение невозможно (frozen).
"""

from enum import Enum
from typing import Final

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# DEFAULTS
# =============================================================================

# Точность по умолчанию (бит мантиссы)
DEFAULT_PRECISION_BITS: Final[int] = 128

# Количество значащих десятичных цифр для to_string() по умолчанию
# Не зависит от precision_bits
DEFAULT_DIGITS: Final[int] = 32

# Минимальная точность, которую принимает MPFR
MIN_PRECISION_BITS: Final[int] = 2


class PrecisionPolicy(str, Enum):
    """Поведение при операции над значениями разной точности."""

    ENFORCE = "enforce"  # PrecisionMismatch
    LEFT_OPERAND = "left_operand"  # точность результата = левый операнд


class NumericConfig(BaseModel):
    """
    Конфигурация mpx.

    Все поля валидируются при создании; экземпляр неизменяем.
    """

    default_precision_bits: int = Field(
        DEFAULT_PRECISION_BITS,
        ge=MIN_PRECISION_BITS,
        description="Точность новых Scalar/Complex (бит)",
    )
    default_digits: int = Field(
        DEFAULT_DIGITS, ge=1, description="Значащие цифры в to_string()"
    )
    precision_policy: PrecisionPolicy = Field(
        PrecisionPolicy.ENFORCE,
        description="Политика при смешивании разных precision_bits",
    )
    nan_text: str = Field("NaN", description="Текстовое представление NaN")

    model_config = {"frozen": True}

    @field_validator("nan_text")
    @classmethod
    def validate_nan_text(cls, v: str) -> str:
        """NaN не должен рендериться пустой строкой или числом."""
        if not v.strip():
            raise ValueError("nan_text must not be blank")
        if any(ch.isdigit() for ch in v):
            raise ValueError(f"nan_text must not contain digits, got {v!r}")
        return v


_active_config: NumericConfig = NumericConfig()


def get_config() -> NumericConfig:
    """Активная конфигурация."""
    return _active_config


def set_config(config: NumericConfig) -> None:
    """Заменить активную конфигурацию."""
    global _active_config
    if not isinstance(config, NumericConfig):
        raise TypeError(f"Expected NumericConfig, got {type(config).__name__}")
    _active_config = config


def configure(**overrides) -> NumericConfig:
    """
    Создать новую конфигурацию на основе активной и сделать её активной.

    Args:
        **overrides: Поля NumericConfig для замены

    Returns:
        Новая активная конфигурация

    Raises:
        pydantic.ValidationError: Если значения не проходят валидацию

    Examples:
        >>> configure(default_precision_bits=256).default_precision_bits
        256
    """
    merged = {**_active_config.model_dump(), **overrides}
    config = NumericConfig(**merged)
    set_config(config)
    return config


def reset_config() -> NumericConfig:
    """Вернуть конфигурацию по умолчанию."""
    set_config(NumericConfig())
    return _active_config
