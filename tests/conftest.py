"""Общие fixtures для тестов mpx."""

import pytest

from src.mpx.backend import MPFRBackend
from src.mpx.config import reset_config


@pytest.fixture(autouse=True)
def _default_config():
    """Каждый тест начинается с конфигурации по умолчанию."""
    reset_config()
    yield
    reset_config()


class CountingBackend(MPFRBackend):
    """MPFRBackend, считающий выделения и освобождения хранилища."""

    def __init__(self):
        super().__init__()
        self.allocated = 0
        self.released = 0
        self.copies = 0
        self.arithmetic_calls = 0

    def init(self, precision_bits):
        handle = super().init(precision_bits)
        self.allocated += 1
        return handle

    def release(self, handle):
        if not handle.released:
            self.released += 1
        super().release(handle)

    def copy_into(self, dst, src):
        self.copies += 1
        super().copy_into(dst, src)

    def add(self, dst, a, b):
        self.arithmetic_calls += 1
        super().add(dst, a, b)

    def sub(self, dst, a, b):
        self.arithmetic_calls += 1
        super().sub(dst, a, b)

    def mul(self, dst, a, b):
        self.arithmetic_calls += 1
        super().mul(dst, a, b)

    def div(self, dst, a, b):
        self.arithmetic_calls += 1
        super().div(dst, a, b)

    @property
    def live(self) -> int:
        return self.allocated - self.released


@pytest.fixture
def counting_backend() -> CountingBackend:
    return CountingBackend()
