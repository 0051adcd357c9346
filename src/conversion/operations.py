"""
Abstract Operations — набор инструкций конверсии

Конверсия значения между представлениями описывается последовательностью
абстрактных операций:
- Cast(source, target): native numeric conversion из source в target
- Scale(rep, factor): умножение на точный множитель, тип хранения не меняется
- OpSequence(ops): упорядоченная последовательность операций

У каждой операции есть Input и Output представление. Для OpSequence
Input = Input(первой), Output = Output(последней).

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Output(op_i) == Input(op_i+1) для соседних операций OpSequence.
   Нарушение — дефект конструирования (OpSequenceMismatchError), а не runtime ошибка
2. Scale с целым множителем или множителем 1/N выполняется точно
   (умножение / деление, без промежуточного float)
3. Выполнение (apply) не проверяет переполнение: граница проверяется заранее
   анализатором overflow_boundary
"""

import math
from dataclasses import dataclass
from typing import Union

import numpy as np

from src.core.domain.representation import Representation
from src.core.math.magnitude import Magnitude
from src.core.math.numerical_safeguards import divide_toward_zero, exact_value


# =============================================================================
# EXCEPTIONS
# =============================================================================


class OpSequenceMismatchError(ValueError):
    """Output одной операции не совпадает с Input следующей."""

    pass


# =============================================================================
# ОПЕРАЦИИ
# =============================================================================


@dataclass(frozen=True)
class Cast:
    """Конверсия значения source → target (семантика static_cast)."""

    source: Representation
    target: Representation

    @property
    def input(self) -> Representation:
        return self.source

    @property
    def output(self) -> Representation:
        return self.target

    def apply(self, value):
        return self.target.cast(value)

    def __str__(self) -> str:
        return f"Cast({self.source.name} -> {self.target.name})"


@dataclass(frozen=True)
class Scale:
    """Умножение значения типа rep на точный множитель factor."""

    rep: Representation
    factor: Magnitude

    @property
    def input(self) -> Representation:
        return self.rep

    @property
    def output(self) -> Representation:
        return self.rep

    def apply(self, value):
        return _scale_value(self.rep, self.factor, value)

    def __str__(self) -> str:
        return f"Scale({self.rep.name} * {self.factor})"


@dataclass(frozen=True)
class OpSequence:
    """
    Упорядоченная непустая последовательность операций.

    Вложенные OpSequence допускаются. Совместимость соседних операций
    проверяется при создании.

    Raises:
        ValueError: Если последовательность пуста
        OpSequenceMismatchError: Если Output(op_i) != Input(op_i+1)
    """

    ops: tuple

    def __post_init__(self):
        ops = tuple(self.ops)
        object.__setattr__(self, "ops", ops)

        if not ops:
            raise ValueError("OpSequence requires at least one operation")

        for previous, following in zip(ops, ops[1:]):
            if op_output(previous) != op_input(following):
                raise OpSequenceMismatchError(
                    f"Output of {previous} ({op_output(previous).name}) does not match "
                    f"input of {following} ({op_input(following).name})"
                )

    @property
    def input(self) -> Representation:
        return op_input(self.ops[0])

    @property
    def output(self) -> Representation:
        return op_output(self.ops[-1])

    def prepend(self, op: "Operation") -> "OpSequence":
        """Новая последовательность с op в начале."""
        return OpSequence((op,) + self.ops)

    def apply(self, value):
        for op in self.ops:
            value = op.apply(value)
        return value

    def __str__(self) -> str:
        return " ; ".join(str(op) for op in self.ops)


Operation = Union[Cast, Scale, OpSequence]


# =============================================================================
# ФУНКЦИИ
# =============================================================================


def op_input(op: Operation) -> Representation:
    """Input представление операции."""
    if not isinstance(op, (Cast, Scale, OpSequence)):
        raise TypeError(f"Not an operation: {op!r}")
    return op.input


def op_output(op: Operation) -> Representation:
    """Output представление операции."""
    if not isinstance(op, (Cast, Scale, OpSequence)):
        raise TypeError(f"Not an operation: {op!r}")
    return op.output


def apply_op(op: Operation, value):
    """
    Выполнение операции над значением.

    Предполагается, что проверка границ (would_input_produce_overflow) уже
    пройдена: здесь переполнение не детектируется.
    """
    if not isinstance(op, (Cast, Scale, OpSequence)):
        raise TypeError(f"Not an operation: {op!r}")
    return op.apply(value)


def flatten_ops(op: Operation) -> tuple:
    """Плоский кортеж элементарных операций (Cast/Scale) без вложенных OpSequence."""
    if isinstance(op, OpSequence):
        return tuple(leaf for inner in op.ops for leaf in flatten_ops(inner))
    return (op,)


def describe_op(op: Operation) -> list[str]:
    """Человекочитаемое описание шагов операции."""
    return [str(leaf) for leaf in flatten_ops(op)]


# =============================================================================
# ВЫПОЛНЕНИЕ SCALE
# =============================================================================


def _scale_value(rep: Representation, factor: Magnitude, value):
    if not rep.is_arithmetic:
        if factor.is_rational:
            fraction = factor.to_fraction()
            return value * fraction.numerator / fraction.denominator
        return value * factor.approx()

    if rep.is_integral:
        return _scale_integer(rep, factor, int(value))

    return _scale_floating(rep, factor, rep.cast(value))


def _scale_integer(rep: Representation, factor: Magnitude, value: int):
    if factor.is_integer:
        return rep.cast(value * int(factor.to_fraction()))

    if factor.inverse().is_integer:
        divisor = factor.inverse().value_in(rep)
        if not divisor.ok:
            # Делитель не помещается в тип: "деление на бесконечность"
            return rep.scalar(0)
        return rep.scalar(divide_toward_zero(value, int(divisor.value)))

    if factor.is_rational:
        # Сначала умножаем на числитель, затем делим на знаменатель
        product = int(rep.cast(value * int(factor.numerator().to_fraction())))
        divisor = factor.denominator().value_in(rep)
        if not divisor.ok:
            return rep.scalar(0)
        return rep.scalar(divide_toward_zero(product, int(divisor.value)))

    return rep.cast(float(value) * factor.approx())


def _scale_floating(rep: Representation, factor: Magnitude, value):
    real = rep.real_part()

    with np.errstate(over="ignore", invalid="ignore"):
        if not factor.is_integer and factor.inverse().is_integer:
            divisor = factor.inverse().value_in(real)
            if not divisor.ok:
                return rep.cast(0)
            return rep.cast(value / divisor.value)

        multiplier = factor.value_in(real)
        if multiplier.ok:
            return rep.cast(value * multiplier.value)

    # Множитель вне диапазона типа: 0 × inf дал бы nan
    if isinstance(value, (complex, np.complexfloating)):
        return rep.cast(
            complex(_scaled_past_range(factor, value.real), _scaled_past_range(factor, value.imag))
        )
    return rep.cast(_scaled_past_range(factor, value))


def _scaled_past_range(factor: Magnitude, x) -> float:
    """x × factor во float64 без промежуточного значения множителя."""
    if x == 0 or not math.isfinite(x):
        return float(x) * (1.0 if factor.is_positive else -1.0)

    if factor.is_rational:
        product = exact_value(x) * factor.to_fraction()
        try:
            return float(product)
        except OverflowError:
            return math.inf if product > 0 else -math.inf

    try:
        magnitude = math.exp(math.log(abs(float(x))) + factor.log_abs())
    except OverflowError:
        magnitude = math.inf
    return -magnitude if (x < 0) != factor.negative else magnitude
