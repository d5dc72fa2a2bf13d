import pytest

from fruit_counter.reconcile import (
    BASKET_SUFFIX,
    FruitEntry,
    extract_json_object,
    reconcile_entries,
    reconcile_reply,
    reply_text,
    to_count,
)


def test_reply_embedded_in_prose():
    raw = 'here is the result: {"counts":{"사과":2},"prices":{"사과":1000}} thanks'

    result = reconcile_reply(raw)

    assert result.to_dict() == {"counts": {"사과": 2}, "prices": {"사과": 1000}}


def test_reply_in_code_fence():
    raw = '```json\n{"counts": {"바나나": 3}, "prices": {"바나나": 3900}}\n```'

    result = reconcile_reply(raw)

    assert result.counts == {"바나나": 3}
    assert result.prices == {"바나나": 3900}


def test_basket_entry_wins_over_plain_entry():
    raw = {
        "counts": {"사과": 3, "사과_바구니": 1},
        "prices": {"사과": 1200, "사과_바구니": 5000},
    }

    result = reconcile_reply(raw)

    assert result.counts == {"사과_바구니": 1}
    assert result.prices == {"사과_바구니": 5000}


def test_zero_basket_does_not_cover_plain_entry():
    result = reconcile_reply('{"counts": {"귤": 5, "귤_바구니": 0}, "prices": {"귤": 700}}')

    assert result.counts == {"귤": 5, "귤_바구니": 0}
    assert result.prices == {"귤": 700}


def test_other_fruits_are_untouched_by_basket_rule():
    raw = '{"counts": {"사과_바구니": 2, "사과": 9, "배": 4}, "prices": {"배": 2500}}'

    result = reconcile_reply(raw)

    assert result.counts == {"사과_바구니": 2, "배": 4}
    assert result.prices == {"배": 2500}


def test_basket_price_without_basket_count_is_kept():
    result = reconcile_reply('{"counts": {"사과": 1}, "prices": {"사과_바구니": 5000}}')

    assert result.counts == {"사과": 1}
    assert result.prices == {"사과_바구니": 5000}


def test_baskets_reply_keeps_suffixed_prices():
    raw = '{"baskets":{"사과":1,"바나나":2},"prices":{"사과_바구니":5000,"바나나_바구니":3900}}'

    result = reconcile_reply(raw)

    assert result.to_dict() == {
        "counts": {"사과": 1, "바나나": 2},
        "prices": {"사과_바구니": 5000, "바나나_바구니": 3900},
    }


def test_plain_price_of_covered_fruit_is_dropped_without_plain_count():
    raw = '{"counts": {"사과_바구니": 1}, "prices": {"사과": 1200, "배": 2500}}'

    result = reconcile_reply(raw)

    assert result.counts == {"사과_바구니": 1}
    assert result.prices == {"배": 2500}


def test_baskets_field_is_accepted_as_counts():
    result = reconcile_reply('{"baskets": {"사과_바구니": 1, "사과": 6}, "prices": {"사과_바구니": 5000}}')

    assert result.to_dict() == {"counts": {"사과_바구니": 1}, "prices": {"사과_바구니": 5000}}


def test_counts_field_takes_precedence_over_baskets():
    result = reconcile_reply('{"counts": {"배": 1}, "baskets": {"사과": 2}}')

    assert result.counts == {"배": 1}


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "",
        None,
        [],
        "{broken json}",
        "[1, 2, 3]",
        '{"counts": "many"}',
        "}{",
    ],
)
def test_garbage_degrades_to_empty_result(raw):
    result = reconcile_reply(raw)

    assert result.to_dict() == {"counts": {}, "prices": {}}


def test_invalid_values_are_dropped():
    raw = (
        '{"counts": {"사과": -1, "배": "several", "귤": 2.0, "감": "3", "포도": true, "딸기": null},'
        ' "prices": {"귤": "5,000원", "감": "₩1200", "사과": 900}}'
    )

    result = reconcile_reply(raw)

    assert result.counts == {"귤": 2, "감": 3}
    # a valid price survives even when its count was unusable
    assert result.prices == {"귤": 5000, "감": 1200, "사과": 900}


def test_content_parts_use_first_text():
    raw = [{"type": "text", "text": '{"counts": {"사과": 1}}'}, {"type": "text", "text": "ignored"}]

    assert reply_text(raw) == '{"counts": {"사과": 1}}'
    assert reconcile_reply(raw).counts == {"사과": 1}


def test_reply_text_normalization():
    assert reply_text(None) == "{}"
    assert reply_text("") == "{}"
    assert reply_text([]) == "{}"
    assert reply_text([{"type": "image"}]) == "{}"
    assert reply_text(42) == "42"
    assert reply_text({"counts": {"사과": 1}}) == '{"counts": {"사과": 1}}'


def test_extract_json_object_stages():
    assert extract_json_object('{"a": 1}') == {"a": 1}
    assert extract_json_object('  {"a": 1}\n') == {"a": 1}
    assert extract_json_object('prefix {"a": {"b": 2}} suffix') == {"a": {"b": 2}}
    assert extract_json_object("no braces") == {}
    assert extract_json_object('{"a": 1} and {"b": 2}') == {}


@pytest.mark.parametrize(
    "value, expected",
    [
        (3, 3),
        (0, 0),
        (2.0, 2),
        (2.6, None),
        (2.5, None),
        ("7", 7),
        (" 3,900 ", 3900),
        (-2, None),
        (True, None),
        (float("nan"), None),
        ("1.5", None),
        ("abc", None),
        (None, None),
        ([1], None),
    ],
)
def test_to_count(value, expected):
    assert to_count(value) == expected


def test_fruit_entry_key_round_trip():
    basket = FruitEntry.from_key("사과" + BASKET_SUFFIX, 1, 5000)
    plain = FruitEntry.from_key("사과", 3)

    assert basket.name == "사과" and basket.basket
    assert plain.name == "사과" and not plain.basket
    assert basket.key == "사과_바구니"
    assert plain.key == "사과"


def test_reconcile_entries_keeps_baskets_and_uncovered_fruit():
    entries = [
        FruitEntry("사과", False, 3),
        FruitEntry("사과", True, 1),
        FruitEntry("배", False, 2),
        FruitEntry("귤", True, 0),
        FruitEntry("귤", False, 4),
    ]

    kept = reconcile_entries(entries)

    assert [e.key for e in kept] == ["사과_바구니", "배", "귤_바구니", "귤"]
