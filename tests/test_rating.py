import pytest
from decimal import Decimal

from hris.core.exceptions import ValidationError
from hris.services import rating


def test_item_average_all_fives():
    assert rating.item_average(5, 5, 5) == Decimal("5.00")

def test_item_average_rounds_to_two_places():
    assert rating.item_average(4, 4, 5) == Decimal("4.33")
    assert rating.item_average(5, 5, 4) == Decimal("4.67")

def test_form_average_of_two_items():
    """5.00 and 4.33 average to 4.665, which stays 4.665 at three places."""
    result = rating.rate_form([Decimal("5.00"), Decimal("4.33")])
    assert result.average == Decimal("4.665")
    assert result.adjectival == "Very Satisfactory"

def test_form_average_rounds_half_up():
    averages = [Decimal("4.33"), Decimal("4.34"), Decimal("4.34"), Decimal("4.34")]
    assert rating.form_average(averages) == Decimal("4.338")

@pytest.mark.parametrize("average,label", [
    ("5.000", "Outstanding"),
    ("4.999", "Very Satisfactory"),
    ("4.000", "Very Satisfactory"),
    ("3.999", "Satisfactory"),
    ("3.000", "Satisfactory"),
    ("2.999", "Unsatisfactory"),
    ("2.000", "Unsatisfactory"),
    ("1.999", "Poor"),
    ("0.000", "Poor"),
])
def test_band_boundaries(average, label):
    assert rating.adjectival_rating(Decimal(average)) == label

def test_above_five_falls_into_very_satisfactory():
    # Only reachable with out-of-domain scores; exact 5 is the sole Outstanding value
    assert rating.adjectival_rating(Decimal("5.333")) == "Very Satisfactory"

def test_all_maximum_scores_are_outstanding():
    averages = [rating.item_average(5, 5, 5) for _ in range(3)]
    assert rating.rate_form(averages).adjectival == "Outstanding"

def test_empty_ratings_rejected():
    with pytest.raises(ValidationError):
        rating.rate_form([])

@pytest.mark.parametrize("bad", ["abc", None, "NaN", Decimal("Infinity"), True])
def test_malformed_scores_rejected(bad):
    with pytest.raises(ValidationError):
        rating.item_average(bad, 4, 4)

def test_accepts_decimal_strings():
    assert rating.item_average("3.5", "4", "4.5") == Decimal("4.00")

@pytest.mark.parametrize("huge", [Decimal("1e30"), "100", -250])
def test_scores_beyond_storage_range_rejected(huge):
    with pytest.raises(ValidationError) as exc:
        rating.item_average(huge, 5, 5)
    assert "out of range" in exc.value.message

def test_largest_storable_score_still_averages():
    assert rating.item_average("99.99", "99.99", "99.99") == Decimal("99.99")

def test_form_average_overflow_is_validation_error():
    with pytest.raises(ValidationError):
        rating.form_average([Decimal("1e30"), Decimal("1e30")])
