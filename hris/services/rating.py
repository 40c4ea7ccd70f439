"""
Rating aggregation for performance forms.

Each rated output gets the mean of its quantity, efficiency and timeliness
scores (2 decimals); the form gets the mean of those item averages (3 decimals)
and an adjectival band. Pure functions, no I/O.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, List, NamedTuple

from hris.core.exceptions import ValidationError

ITEM_PLACES = Decimal("0.01")
FORM_PLACES = Decimal("0.001")

# Scores are stored as Numeric(4, 2)
MAX_SCORE = Decimal("99.99")

OUTSTANDING = "Outstanding"
VERY_SATISFACTORY = "Very Satisfactory"
SATISFACTORY = "Satisfactory"
UNSATISFACTORY = "Unsatisfactory"
POOR = "Poor"

# Lower bounds, checked top-down. Exactly 5 is its own band.
_BANDS = (
    (Decimal("4.0"), VERY_SATISFACTORY),
    (Decimal("3.0"), SATISFACTORY),
    (Decimal("2.0"), UNSATISFACTORY),
)


class FormRating(NamedTuple):
    average: Decimal
    adjectival: str


def _as_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"Rating '{field}' must be a number")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Rating '{field}' must be a number")
    if not number.is_finite():
        raise ValidationError(f"Rating '{field}' must be a finite number")
    if abs(number) > MAX_SCORE:
        raise ValidationError(f"Rating '{field}' is out of range")
    return number


def _quantize(value: Decimal, places: Decimal) -> Decimal:
    try:
        return value.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("Rating average is out of range")


def item_average(quantity, efficiency, timeliness) -> Decimal:
    q = _as_decimal(quantity, "quantity")
    e = _as_decimal(efficiency, "efficiency")
    t = _as_decimal(timeliness, "timeliness")
    return _quantize((q + e + t) / 3, ITEM_PLACES)


def form_average(item_averages: Iterable[Decimal]) -> Decimal:
    averages: List[Decimal] = list(item_averages)
    if not averages:
        raise ValidationError("No ratings provided")
    return _quantize(sum(averages, Decimal("0")) / len(averages), FORM_PLACES)


def adjectival_rating(average: Decimal) -> str:
    if average == Decimal("5"):
        return OUTSTANDING
    for lower_bound, label in _BANDS:
        if average >= lower_bound:
            return label
    return POOR


def rate_form(item_averages: Iterable[Decimal]) -> FormRating:
    average = form_average(item_averages)
    return FormRating(average=average, adjectival=adjectival_rating(average))
