"""
Conversion Builder — сборка конверсии old → new с множителем factor

Реальная конверсия значения из представления old в представление new с
масштабом factor выполняется так же, как это сделала бы обычная арифметика:
    Cast(old, P) ; apply_factor(P, factor) ; Cast(P, new)
где P = promoted_common(old, new) — тип, выбираемый арифметическим повышением.

Шаги схлопываются, если old или new уже совпадают с P; если old == new == P,
результат — одиночная операция apply_factor (не последовательность).

apply_factor для нецелого рационального множителя на целом P раскладывается в
    Scale(P, numerator) ; Scale(P, 1/denominator)
(сначала умножение, затем деление — без промежуточного float).
"""

import logging

from src.conversion.operations import Cast, OpSequence, Operation, Scale, flatten_ops
from src.core.domain.representation import Representation, promoted_common
from src.core.math.magnitude import Magnitude

logger = logging.getLogger(__name__)


def _is_nontrivial_rational(factor: Magnitude) -> bool:
    return factor.is_rational and not factor.is_integer and not factor.inverse().is_integer


def application_strategy_for(rep: Representation, factor: Magnitude) -> Operation:
    """
    Операция применения множителя factor к значению типа rep.

    Returns:
        Scale(rep, factor) или, для нецелого рационального множителя на целом
        типе, OpSequence(Scale(rep, numerator), Scale(rep, 1/denominator))
    """
    if _is_nontrivial_rational(factor) and rep.real_part().is_integral:
        return OpSequence(
            (
                Scale(rep, factor.numerator()),
                Scale(rep, factor.denominator().inverse()),
            )
        )
    return Scale(rep, factor)


def build_conversion(old: Representation, new: Representation, factor: Magnitude) -> Operation:
    """
    Последовательность операций для конверсии old → new с множителем factor.

    Args:
        old: Исходное представление
        new: Целевое представление
        factor: Точный ненулевой множитель

    Returns:
        OpSequence (или одиночная операция, если old == new == promoted)

    Raises:
        ValueError: Если для old и new нет общего арифметического типа

    Examples:
        >>> describe_op(build_conversion(INT16, INT16, mag(Fraction(1, 3))))
        ['Cast(int16 -> int32)', 'Scale(int32 * 1/3)', 'Cast(int32 -> int16)']
    """
    promoted = promoted_common(old, new)
    strategy = application_strategy_for(promoted, factor)

    if old == promoted and new == promoted:
        logger.debug("Conversion %s -> %s by %s: single step %s", old.name, new.name, factor, strategy)
        return strategy

    steps = []
    if old != promoted:
        steps.append(Cast(old, promoted))
    steps.extend(flatten_ops(strategy))
    if new != promoted:
        steps.append(Cast(promoted, new))

    sequence = OpSequence(tuple(steps))
    logger.debug(
        "Conversion %s -> %s by %s via %s: %s",
        old.name,
        new.name,
        factor,
        promoted.name,
        sequence,
    )
    return sequence
