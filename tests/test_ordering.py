"""Unit tests for class display-name ordering."""

from app.api.v1.promotions.ordering import order_key, sort_by_order
from app.api.v1.promotions.schemas import ClassNode


def test_special_names_sort_before_numbered_classes() -> None:
    assert order_key("Nursery") < order_key("Prep") < order_key("Class 1") < order_key("Class 2")


def test_special_names_are_case_insensitive_substrings() -> None:
    assert order_key("NURSERY A") == -2
    assert order_key("Pre-Prep") == -1
    assert order_key("prep 2") == -1


def test_first_run_of_digits_is_the_key() -> None:
    assert order_key("Class 10") == 10
    assert order_key("Grade 3 Section 7") == 3
    assert order_key("10th") == 10


def test_names_without_digits_default_to_zero() -> None:
    assert order_key("Kindergarten") == 0
    assert order_key("") == 0
    assert order_key(None) == 0  # type: ignore[arg-type]


def test_numeric_sort_not_lexical() -> None:
    names = ["Class 10", "Class 2", "Prep", "Class 1", "Nursery"]
    assert [n for n in sorted(names, key=order_key)] == ["Nursery", "Prep", "Class 1", "Class 2", "Class 10"]


def test_ties_keep_input_order() -> None:
    """Equal keys are not broken by name; input order survives."""
    classes = [
        ClassNode(id="b", name="Class 5 Blue", order_key=5),
        ClassNode(id="a", name="Class 5 Amber", order_key=5),
        ClassNode(id="k", name="KG", order_key=0),
    ]
    assert [c.id for c in sort_by_order(classes)] == ["k", "b", "a"]
