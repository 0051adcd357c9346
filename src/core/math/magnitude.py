"""
Magnitude — точный ненулевой масштабный множитель

Magnitude хранится как знак и произведение оснований в рациональных степенях:
    M = (-1)^negative × Π base_i ^ exp_i
где base_i — простое число или именованная иррациональная константа (π).

Такое представление позволяет точно отвечать на вопросы анализаторов:
- is_integer / is_rational / is_positive
- abs / inverse / произведение / степени и корни
- numerator / denominator
- value_in(rep): попытка представить значение в типе хранения
  (OK | ERR_NON_INTEGER_IN_INTEGER_TYPE | ERR_CANNOT_FIT)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Magnitude никогда не равен нулю
2. Нормализованная форма: нулевые показатели удалены, основания отсортированы
3. Равенство и хэш — по нормализованной форме (frozen dataclass)
"""

import math
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Final, NamedTuple, Union

from src.core.math.numerical_safeguards import exact_value

if TYPE_CHECKING:
    from src.core.domain.representation import Representation


# =============================================================================
# ТИПЫ
# =============================================================================


@dataclass(frozen=True)
class IrrationalConstant:
    """Именованная трансцендентная константа (основание Magnitude)."""

    name: str
    value: float

    def __repr__(self) -> str:
        return self.name


PI_CONSTANT: Final[IrrationalConstant] = IrrationalConstant("pi", math.pi)

Base = Union[int, IrrationalConstant]
Exponent = Union[int, Fraction]


class MagRepresentationOutcome(str, Enum):
    """Результат попытки представить Magnitude в типе хранения"""

    OK = "OK"
    ERR_NON_INTEGER_IN_INTEGER_TYPE = "ERR_NON_INTEGER_IN_INTEGER_TYPE"
    ERR_CANNOT_FIT = "ERR_CANNOT_FIT"


class MagRepresentationResult(NamedTuple):
    """Значение множителя в типе хранения (value = None, если outcome != OK)."""

    outcome: MagRepresentationOutcome
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome == MagRepresentationOutcome.OK


# =============================================================================
# ФАКТОРИЗАЦИЯ
# =============================================================================


# Пробное деление до этой границы, остаток раскладывается через Pollard rho
_TRIAL_DIVISION_LIMIT: Final[int] = 1000

# Детерминированный набор для n < 3.3e24, для больших n тест вероятностный
_MILLER_RABIN_BASES: Final[tuple[int, ...]] = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)


def _is_probable_prime(n: int) -> bool:
    """Тест Миллера-Рабина."""
    if n < 2:
        return False
    for prime in _MILLER_RABIN_BASES:
        if n % prime == 0:
            return n == prime

    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for a in _MILLER_RABIN_BASES:
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = x * x % n
            if x == n - 1:
                break
        else:
            return False
    return True


def _pollard_rho(n: int) -> int:
    """Нетривиальный делитель составного нечётного n."""
    c = 1
    while True:
        x = y = 2
        d = 1
        while d == 1:
            x = (x * x + c) % n
            y = (y * y + c) % n
            y = (y * y + c) % n
            d = math.gcd(abs(x - y), n)
        if d != n:
            return d
        c += 1


def _integer_root(n: int, k: int) -> int:
    """floor(n^(1/k)) методом Ньютона в целых числах."""
    x = 1 << ((n.bit_length() + k - 1) // k)
    while True:
        y = ((k - 1) * x + n // x ** (k - 1)) // k
        if y >= x:
            return x
        x = y


def _perfect_power(n: int) -> tuple[int, int] | None:
    """(r, k) с r^k == n и k >= 2, если n точная степень."""
    # Делителей меньше _TRIAL_DIVISION_LIMIT нет, поэтому r >= 2^9
    for k in range(2, n.bit_length() // 9 + 1):
        r = _integer_root(n, k)
        if r**k == n:
            return r, k
    return None


def _large_prime_factors(n: int) -> list[int]:
    """Простые множители n без делителей меньше _TRIAL_DIVISION_LIMIT (с повторами)."""
    primes: list[int] = []
    pending = [n]
    while pending:
        m = pending.pop()
        if _is_probable_prime(m):
            primes.append(m)
            continue
        power = _perfect_power(m)
        if power is not None:
            pending.extend([power[0]] * power[1])
            continue
        d = _pollard_rho(m)
        pending.extend((d, m // d))
    return primes


@lru_cache(maxsize=1024)
def _prime_factors(n: int) -> tuple[tuple[int, int], ...]:
    """Разложение положительного целого на простые множители."""
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")

    factors: dict[int, int] = {}
    candidate = 2
    while candidate < _TRIAL_DIVISION_LIMIT and candidate * candidate <= n:
        while n % candidate == 0:
            n //= candidate
            factors[candidate] = factors.get(candidate, 0) + 1
        candidate += 1 if candidate == 2 else 2

    if n > 1:
        for prime in _large_prime_factors(n):
            factors[prime] = factors.get(prime, 0) + 1
    return tuple(sorted(factors.items()))


def _base_key(base: Base) -> tuple:
    if isinstance(base, IrrationalConstant):
        return (1, 0, base.name)
    return (0, base, "")


def _base_float(base: Base) -> float:
    if isinstance(base, IrrationalConstant):
        return base.value
    return float(base)


def _base_log(base: Base) -> float:
    if isinstance(base, IrrationalConstant):
        return math.log(base.value)
    return math.log(base)


def _normalize(powers: dict, negative: bool) -> "Magnitude":
    cleaned = tuple(
        sorted(
            ((base, Fraction(exp)) for base, exp in powers.items() if exp != 0),
            key=lambda item: _base_key(item[0]),
        )
    )
    return Magnitude(powers=cleaned, negative=negative)


# =============================================================================
# MAGNITUDE
# =============================================================================


@dataclass(frozen=True)
class Magnitude:
    """
    Точный ненулевой множитель.

    Создаётся через mag(), PI, sqrt(), root() и арифметику над ними;
    прямой вызов конструктора предполагает уже нормализованные powers.
    """

    powers: tuple[tuple[Base, Fraction], ...] = ()
    negative: bool = False

    # -------------------------------------------------------------------------
    # Классификация
    # -------------------------------------------------------------------------

    @property
    def is_rational(self) -> bool:
        return all(
            isinstance(base, int) and exp.denominator == 1 for base, exp in self.powers
        )

    @property
    def is_integer(self) -> bool:
        return self.is_rational and all(exp > 0 for _, exp in self.powers)

    @property
    def is_positive(self) -> bool:
        return not self.negative

    # -------------------------------------------------------------------------
    # Арифметика
    # -------------------------------------------------------------------------

    def __mul__(self, other: "Magnitude") -> "Magnitude":
        if not isinstance(other, Magnitude):
            return NotImplemented
        powers: dict = dict(self.powers)
        for base, exp in other.powers:
            powers[base] = powers.get(base, Fraction(0)) + exp
        return _normalize(powers, self.negative != other.negative)

    def __truediv__(self, other: "Magnitude") -> "Magnitude":
        if not isinstance(other, Magnitude):
            return NotImplemented
        return self * other.inverse()

    def __neg__(self) -> "Magnitude":
        return Magnitude(powers=self.powers, negative=not self.negative)

    def __pow__(self, exponent: Exponent) -> "Magnitude":
        exponent = Fraction(exponent)
        negative = False
        if self.negative:
            if exponent.denominator % 2 == 0:
                raise ValueError(f"Even root of negative magnitude {self} is not real")
            negative = exponent.numerator % 2 == 1
        powers = {base: exp * exponent for base, exp in self.powers}
        return _normalize(powers, negative)

    def inverse(self) -> "Magnitude":
        return _normalize({base: -exp for base, exp in self.powers}, self.negative)

    def abs(self) -> "Magnitude":
        return Magnitude(powers=self.powers, negative=False)

    def numerator(self) -> "Magnitude":
        """
        Числитель рационального множителя (знак остаётся в числителе).

        Raises:
            ValueError: Если множитель иррациональный
        """
        self._require_rational("numerator")
        return _normalize({base: exp for base, exp in self.powers if exp > 0}, self.negative)

    def denominator(self) -> "Magnitude":
        """
        Знаменатель рационального множителя (всегда положительный).

        Raises:
            ValueError: Если множитель иррациональный
        """
        self._require_rational("denominator")
        return _normalize({base: -exp for base, exp in self.powers if exp < 0}, False)

    def _require_rational(self, what: str) -> None:
        if not self.is_rational:
            raise ValueError(f"Magnitude {self} is irrational: no {what}")

    # -------------------------------------------------------------------------
    # Значения
    # -------------------------------------------------------------------------

    def to_fraction(self) -> Fraction:
        """
        Точное рациональное значение.

        Raises:
            ValueError: Если множитель иррациональный
        """
        if not self.is_rational:
            raise ValueError(f"Magnitude {self} is irrational: no exact fraction")
        result = Fraction(1)
        for base, exp in self.powers:
            result *= Fraction(base) ** int(exp)
        return -result if self.negative else result

    def approx(self) -> float:
        """Приближённое значение во float64 (±inf при переполнении)."""
        exact_part = Fraction(1)
        inexact_powers = []
        for base, exp in self.powers:
            if isinstance(base, int) and exp.denominator == 1:
                exact_part *= Fraction(base) ** int(exp)
            else:
                inexact_powers.append((base, exp))

        try:
            inexact_part = 1.0
            for base, exp in inexact_powers:
                inexact_part *= _base_float(base) ** float(exp)
            value = float(exact_part) * inexact_part
        except OverflowError:
            value = math.inf

        if inexact_powers and (value == 0.0 or not math.isfinite(value)):
            # Части вышли за float64 по отдельности: считаем по логарифму
            try:
                value = math.exp(self.log_abs())
            except OverflowError:
                value = math.inf

        return -value if self.negative else value

    def log_abs(self) -> float:
        """Натуральный логарифм |M| (конечен для любых показателей)."""
        return sum(float(exp) * _base_log(base) for base, exp in self.powers)

    def abs_at_least_one(self) -> bool:
        """Точная проверка |M| >= 1 (для иррациональных — по логарифму)."""
        if self.is_rational:
            return abs(self.to_fraction()) >= 1
        return self.log_abs() >= 0.0

    def value_in(self, rep: "Representation") -> MagRepresentationResult:
        """
        Попытка представить множитель в типе хранения rep (по его real_part()).

        Returns:
            MagRepresentationResult:
            - OK, value: значение представимо (value — numpy скаляр типа)
            - ERR_NON_INTEGER_IN_INTEGER_TYPE: нецелый множитель в целом типе
            - ERR_CANNOT_FIT: значение вне диапазона типа (в т.ч. отрицательное
              в беззнаковом) или не вычислимо во float64

        Raises:
            ValueError: Если тип не-арифметический
        """
        rep = rep.real_part()
        if not rep.is_arithmetic:
            raise ValueError(f"Cannot represent magnitude in non-arithmetic {rep.name}")

        if rep.is_integral:
            if not self.is_integer:
                return MagRepresentationResult(MagRepresentationOutcome.ERR_NON_INTEGER_IN_INTEGER_TYPE)
            value = int(self.to_fraction())
            if value < int(rep.lowest) or value > int(rep.highest):
                return MagRepresentationResult(MagRepresentationOutcome.ERR_CANNOT_FIT)
            return MagRepresentationResult(MagRepresentationOutcome.OK, rep.scalar(value))

        highest = exact_value(rep.highest)
        if self.is_rational:
            exact = self.to_fraction()
            if abs(exact) > highest:
                return MagRepresentationResult(MagRepresentationOutcome.ERR_CANNOT_FIT)
            as_float = float(exact)
        else:
            as_float = self.approx()
            if not math.isfinite(as_float) or abs(exact_value(as_float)) > highest:
                return MagRepresentationResult(MagRepresentationOutcome.ERR_CANNOT_FIT)

        value = rep.scalar(as_float)
        if value == 0:
            # Ненулевой множитель, ушедший в underflow, тоже "не помещается"
            return MagRepresentationResult(MagRepresentationOutcome.ERR_CANNOT_FIT)
        return MagRepresentationResult(MagRepresentationOutcome.OK, value)

    # -------------------------------------------------------------------------
    # Отображение
    # -------------------------------------------------------------------------

    def __str__(self) -> str:
        sign = "-" if self.negative else ""
        if self.is_rational:
            return f"{sign}{abs(self.to_fraction())}"

        numerator_int, denominator_int = 1, 1
        numerator: list[str] = []
        denominator: list[str] = []
        for base, exp in self.powers:
            if isinstance(base, int) and exp.denominator == 1:
                if exp > 0:
                    numerator_int *= base ** int(exp)
                else:
                    denominator_int *= base ** int(-exp)
                continue
            magnitude = abs(exp)
            term = repr(base) if magnitude == 1 else f"{base!r}^({magnitude})"
            (numerator if exp > 0 else denominator).append(term)

        if numerator_int != 1:
            numerator.insert(0, str(numerator_int))
        if denominator_int != 1:
            denominator.insert(0, str(denominator_int))

        text = " * ".join(numerator) if numerator else "1"
        if denominator:
            text += " / " + " / ".join(denominator)
        return f"{sign}{text}"

    def __repr__(self) -> str:
        return f"Magnitude({self})"


# =============================================================================
# КОНСТРУКТОРЫ
# =============================================================================


def mag(value: Union[int, Fraction]) -> Magnitude:
    """
    Magnitude для ненулевого целого или рационального значения.

    Examples:
        >>> str(mag(12))
        '12'
        >>> str(mag(Fraction(-3, 4)))
        '-3/4'

    Raises:
        ValueError: Если value == 0 или не рациональное
    """
    if isinstance(value, bool) or not isinstance(value, (int, Fraction)):
        raise ValueError(f"mag() requires int or Fraction, got {type(value).__name__}")

    value = Fraction(value)
    if value == 0:
        raise ValueError("Magnitude cannot be zero")

    powers: dict = {}
    for prime, power in _prime_factors(abs(value.numerator)):
        powers[prime] = Fraction(power)
    for prime, power in _prime_factors(value.denominator):
        powers[prime] = powers.get(prime, Fraction(0)) - power

    return _normalize(powers, value < 0)


def root(m: Magnitude, n: int) -> Magnitude:
    """Корень n-й степени из Magnitude."""
    if n <= 0:
        raise ValueError(f"root degree must be positive, got {n}")
    return m ** Fraction(1, n)


def sqrt(m: Magnitude) -> Magnitude:
    """Квадратный корень из Magnitude."""
    return root(m, 2)


ONE: Final[Magnitude] = Magnitude()
PI: Final[Magnitude] = Magnitude(powers=((PI_CONSTANT, Fraction(1)),))
