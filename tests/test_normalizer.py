import pytest

from kitchen_voice.models import OrderStatus
from kitchen_voice.services.voice.normalizer import (
    NUMBER_WORDS,
    CommandNormalizer,
    normalize_command,
    normalize_status,
)


@pytest.mark.parametrize(
    "spoken, expected",
    [
        ("Mark other 7 as ready", "mark order 7 as done"),
        ("how many depending orders", "how many pending orders"),
        ("order to is finished", "order 2 is done"),
        ("complete all the five", "done order 5"),
        ("void older twelve", "cancelled order 12"),
        ("  Cancel   ORDER  12 ", "cancel order 12"),
        ("put order 3 in the queue", "put order 3 in the pending"),
    ],
)
def test_normalize_rewrites_common_mishearings(spoken, expected):
    assert normalize_command(spoken) == expected


def test_substitutions_are_whole_word():
    assert normalize_command("show popular items") == "show popular items"
    assert normalize_command("renewal for another") == "renewal for another"
    assert normalize_command("someone") == "someone"


@pytest.mark.parametrize(
    "spoken",
    [
        "mark other to as ready",
        "how many depending orders",
        "Finish all the twenty",
        "number to is void",
        "show popular items",
    ],
)
def test_normalize_is_idempotent(spoken):
    once = normalize_command(spoken)
    assert normalize_command(once) == once


@pytest.mark.parametrize("number, word", list(enumerate(NUMBER_WORDS, start=1)))
def test_every_number_word_becomes_a_digit(number, word):
    once = normalize_command(f"order {word}")
    assert once == f"order {number}"
    assert normalize_command(once) == once


def test_corrections_can_be_disabled():
    normalizer = CommandNormalizer(corrections={})
    assert normalizer.normalize("how many depending orders") == "how many depending orders"
    # Homophones and numbers still apply
    assert normalizer("mark other seven") == "mark order 7"


def test_custom_corrections_table():
    normalizer = CommandNormalizer({r"\bmango sticky\b": "mango sticky rice"})
    assert normalizer.normalize("Mango Sticky") == "mango sticky rice"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("done", OrderStatus.DONE),
        ("Ready", OrderStatus.DONE),
        ("finished", OrderStatus.DONE),
        ("cancel", OrderStatus.CANCELLED),
        ("canceled", OrderStatus.CANCELLED),
        ("void", OrderStatus.CANCELLED),
        ("waiting", OrderStatus.PENDING),
        (" PENDING ", OrderStatus.PENDING),
        ("shipped", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_status(value, expected):
    assert normalize_status(value) == expected
