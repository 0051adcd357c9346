"""
Representation — описание численного типа хранения

Representation описывает "вид хранения" значения: категорию (знаковое целое,
беззнаковое целое, float, не-арифметический тип) и представимый диапазон
[lowest, highest]. Источником истины для арифметических типов являются numpy
dtypes (np.iinfo / np.finfo).

Модуль также реализует:
- native cast (семантика static_cast: wrap для целых, усечение к нулю float → int)
- real_part(): "скалярный" тип для комплексного хранения (complex64 → float32)
- promoted_common(): тип, который выбрали бы обычные арифметические
  преобразования C/C++ (usual arithmetic conversions + integer promotion)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. lowest <= highest для любого арифметического типа
2. Representation неизменяем (frozen) и хэшируем: используется как ключ кэша
3. Границы не-арифметического типа не определены (ValueError)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Final, Optional

import numpy as np

from src.core.math.numerical_safeguards import wrap_integer


# =============================================================================
# EXCEPTIONS
# =============================================================================


class UnknownRepresentationError(ValueError):
    """Тип хранения не найден в таблице стандартных представлений."""

    pass


# =============================================================================
# ТИПЫ
# =============================================================================


class Category(str, Enum):
    """Категория типа хранения"""

    SIGNED_INTEGER = "signed_integer"
    UNSIGNED_INTEGER = "unsigned_integer"
    FLOATING_POINT = "floating_point"
    NON_ARITHMETIC = "non_arithmetic"


@dataclass(frozen=True)
class Representation:
    """
    Неизменяемый дескриптор типа хранения.

    Attributes:
        name: Имя типа (например, "int16", "float32")
        category: Категория типа
        dtype: numpy dtype (None для не-арифметических типов)
        real: Представление вещественной части (только для complex)
        python_type: Конструктор для cast в не-арифметический тип
    """

    name: str
    category: Category
    dtype: Optional[np.dtype] = None
    real: Optional["Representation"] = None
    python_type: Optional[Callable[[Any], Any]] = None

    def __repr__(self) -> str:
        return f"Representation({self.name})"

    # -------------------------------------------------------------------------
    # Классификация
    # -------------------------------------------------------------------------

    @property
    def is_arithmetic(self) -> bool:
        return self.category != Category.NON_ARITHMETIC

    @property
    def is_integral(self) -> bool:
        return self.category in (Category.SIGNED_INTEGER, Category.UNSIGNED_INTEGER)

    @property
    def is_floating_point(self) -> bool:
        return self.category == Category.FLOATING_POINT

    @property
    def is_signed(self) -> bool:
        return self.category in (Category.SIGNED_INTEGER, Category.FLOATING_POINT)

    @property
    def is_unsigned(self) -> bool:
        return self.category == Category.UNSIGNED_INTEGER

    @property
    def is_complex(self) -> bool:
        return self.real is not None

    @property
    def bits(self) -> int:
        """Ширина типа в битах (для complex — ширина вещественной части)."""
        if self.is_complex:
            return self.real.bits
        self._require_arithmetic()
        return self.dtype.itemsize * 8

    def real_part(self) -> "Representation":
        """
        "Скалярный" тип, по которому считаются границы.

        Для complex64/complex128 это float32/float64, для остальных — сам тип.
        """
        return self.real if self.real is not None else self

    # -------------------------------------------------------------------------
    # Границы
    # -------------------------------------------------------------------------

    @property
    def lowest(self):
        """Наименьшее представимое значение (numpy скаляр)."""
        if self.is_complex:
            return self.real.lowest
        self._require_arithmetic()
        if self.is_integral:
            return self.dtype.type(np.iinfo(self.dtype).min)
        return self.dtype.type(np.finfo(self.dtype).min)

    @property
    def highest(self):
        """Наибольшее представимое значение (numpy скаляр)."""
        if self.is_complex:
            return self.real.highest
        self._require_arithmetic()
        if self.is_integral:
            return self.dtype.type(np.iinfo(self.dtype).max)
        return self.dtype.type(np.finfo(self.dtype).max)

    # -------------------------------------------------------------------------
    # Значения
    # -------------------------------------------------------------------------

    def scalar(self, value):
        """
        Значение этого типа, построенное из value без проверки диапазона.

        Предполагается, что value представимо (используется для границ).
        """
        if not self.is_arithmetic:
            return self._python_type()(value)
        if self.is_integral:
            return self.dtype.type(int(value))
        return self.dtype.type(value)

    def cast(self, value):
        """
        Native numeric conversion (семантика static_cast).

        - целевой целый тип: float усекается к нулю, затем wrap по модулю 2**bits
        - целевой float: округление к ближайшему (overflow → inf, без warning)
        - целевой complex: конструктор numpy
        - не-арифметический тип: python_type(value)

        Проверка переполнения здесь НЕ выполняется: это задача
        анализатора границ, который вызывается до конверсии.
        """
        if not self.is_arithmetic:
            return self._python_type()(value)

        if self.is_complex:
            return self.dtype.type(value)

        if isinstance(value, (complex, np.complexfloating)):
            value = value.real

        if self.is_integral:
            # int() отбрасывает дробную часть (усечение к нулю) для float/Fraction
            return self.dtype.type(wrap_integer(int(value), self.bits, self.is_signed))

        if not isinstance(value, (int, np.integer, np.floating, float)):
            value = float(value)
        with np.errstate(over="ignore"):
            return self.dtype.type(value)

    # -------------------------------------------------------------------------
    # Внутреннее
    # -------------------------------------------------------------------------

    def _require_arithmetic(self) -> None:
        if not self.is_arithmetic:
            raise ValueError(f"Representation {self.name} is not arithmetic: no numeric bounds")

    def _python_type(self) -> Callable[[Any], Any]:
        if self.python_type is None:
            raise TypeError(f"Representation {self.name} has no python_type to construct values")
        return self.python_type


# =============================================================================
# ФАБРИКИ
# =============================================================================


def _from_dtype(scalar_type: type) -> Representation:
    dtype = np.dtype(scalar_type)

    if dtype.kind == "i":
        category = Category.SIGNED_INTEGER
    elif dtype.kind == "u":
        category = Category.UNSIGNED_INTEGER
    elif dtype.kind == "f":
        category = Category.FLOATING_POINT
    else:
        raise UnknownRepresentationError(f"Unsupported dtype kind: {dtype}")

    return Representation(name=dtype.name, category=category, dtype=dtype)


def _complex_of(real: Representation, scalar_type: type) -> Representation:
    dtype = np.dtype(scalar_type)
    return Representation(
        name=dtype.name, category=Category.FLOATING_POINT, dtype=dtype, real=real
    )


def non_arithmetic(name: str, python_type: Optional[Callable[[Any], Any]] = None) -> Representation:
    """
    Не-арифметический тип хранения (например, Decimal или пользовательский класс).

    Анализатор границ такие типы отвергает, классификатор усечения
    возвращает CannotAssessRisk.
    """
    if not name:
        raise ValueError("name must be non-empty")
    return Representation(name=name, category=Category.NON_ARITHMETIC, python_type=python_type)


# =============================================================================
# СТАНДАРТНЫЕ ПРЕДСТАВЛЕНИЯ
# =============================================================================

INT8: Final[Representation] = _from_dtype(np.int8)
INT16: Final[Representation] = _from_dtype(np.int16)
INT32: Final[Representation] = _from_dtype(np.int32)
INT64: Final[Representation] = _from_dtype(np.int64)

UINT8: Final[Representation] = _from_dtype(np.uint8)
UINT16: Final[Representation] = _from_dtype(np.uint16)
UINT32: Final[Representation] = _from_dtype(np.uint32)
UINT64: Final[Representation] = _from_dtype(np.uint64)

FLOAT32: Final[Representation] = _from_dtype(np.float32)
FLOAT64: Final[Representation] = _from_dtype(np.float64)

COMPLEX64: Final[Representation] = _complex_of(FLOAT32, np.complex64)
COMPLEX128: Final[Representation] = _complex_of(FLOAT64, np.complex128)

STANDARD_REPRESENTATIONS: Final[tuple[Representation, ...]] = (
    INT8,
    INT16,
    INT32,
    INT64,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    FLOAT32,
    FLOAT64,
    COMPLEX64,
    COMPLEX128,
)

# Минимальный тип после integer promotion (C/C++ `int`)
PROMOTION_FLOOR: Final[Representation] = INT32

_BY_DTYPE: Final[dict[np.dtype, Representation]] = {
    rep.dtype: rep for rep in STANDARD_REPRESENTATIONS
}


def representation_for(dtype_like) -> Representation:
    """
    Поиск стандартного Representation по dtype-подобному объекту.

    Args:
        dtype_like: Representation, numpy dtype, numpy scalar type или строка ("int16")

    Returns:
        Соответствующий стандартный Representation

    Raises:
        UnknownRepresentationError: Если тип не из стандартной таблицы
    """
    if isinstance(dtype_like, Representation):
        return dtype_like

    try:
        dtype = np.dtype(dtype_like)
    except TypeError as e:
        raise UnknownRepresentationError(f"Not a numeric dtype: {dtype_like!r}") from e

    rep = _BY_DTYPE.get(dtype)
    if rep is None:
        raise UnknownRepresentationError(f"No standard representation for dtype {dtype}")
    return rep


# =============================================================================
# ARITHMETIC PROMOTION
# =============================================================================


def _integer_promotion(rep: Representation) -> Representation:
    """Целые уже `int` повышаются до `int` (все их значения в нём представимы)."""
    if rep.is_integral and rep.bits < PROMOTION_FLOOR.bits:
        return PROMOTION_FLOOR
    return rep


def _wider(a: Representation, b: Representation) -> Representation:
    return a if a.bits >= b.bits else b


def _complex_for(real: Representation) -> Representation:
    return COMPLEX128 if real.bits > FLOAT32.bits else COMPLEX64


def promoted_common(a: Representation, b: Representation) -> Representation:
    """
    Тип, в котором C/C++ выполнил бы арифметику над значениями a и b.

    Правила (usual arithmetic conversions):
    1. complex участвует → complex с наиболее широкой вещественной float-частью
    2. float участвует → наиболее широкий float
    3. оба целые → integer promotion каждого, затем:
       - одинаковая знаковость → более широкий
       - беззнаковый не уже знакового → беззнаковый
       - иначе → знаковый (он строго шире и вмещает все значения)

    Raises:
        ValueError: Если типы не-арифметические и различаются
    """
    if not (a.is_arithmetic and b.is_arithmetic):
        if a == b:
            return a
        raise ValueError(f"No arithmetic promotion between {a.name} and {b.name}")

    if a.is_complex or b.is_complex:
        reals = [rep.real_part() for rep in (a, b) if rep.real_part().is_floating_point]
        widest = reals[0] if len(reals) == 1 else _wider(reals[0], reals[1])
        return _complex_for(widest)

    if a.is_floating_point and b.is_floating_point:
        return _wider(a, b)
    if a.is_floating_point:
        return a
    if b.is_floating_point:
        return b

    pa = _integer_promotion(a)
    pb = _integer_promotion(b)

    if pa == pb:
        return pa

    if pa.category == pb.category:
        return _wider(pa, pb)

    unsigned, signed = (pa, pb) if pa.is_unsigned else (pb, pa)
    if unsigned.bits >= signed.bits:
        return unsigned
    return signed
