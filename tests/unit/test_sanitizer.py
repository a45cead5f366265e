from __future__ import annotations

from typing import Any, NamedTuple

import pytest

from mongo_output.sanitizer import DOT_PATTERN, LEADING_DOLLAR_PATTERN, KeySanitizer, replace_keys


def _all_keys(value: Any) -> list[str]:
    if isinstance(value, dict):
        keys = list(value.keys())
        for v in value.values():
            keys.extend(_all_keys(v))
        return keys
    if isinstance(value, (list, tuple)):
        return [k for v in value for k in _all_keys(v)]
    return []


NESTED = {
    "a.b": 1,
    "$op": {"c.d": [{"e.f": {"$g": 2}}, 3, "x.y"]},
    "plain": {"h": ({"i.j": None},)},
}


def test_dot_rewrite_reaches_every_level_and_keeps_values():
    result = replace_keys(NESTED, DOT_PATTERN, "_")

    assert all("." not in k for k in _all_keys(result))
    assert result["a_b"] == 1
    assert result["$op"]["c_d"][0] == {"e_f": {"$g": 2}}
    # Values are never rewritten, only keys.
    assert result["$op"]["c_d"][1:] == [3, "x.y"]
    assert result["plain"]["h"] == ({"i_j": None},)
    assert isinstance(result["plain"]["h"], tuple)


def test_dollar_rewrite_only_touches_leading_dollar():
    record = {"$x": 1, "a$b": 2, "nested": [{"$y": {"$$z": 3}}]}

    result = replace_keys(record, LEADING_DOLLAR_PATTERN, "_")

    assert result == {"_x": 1, "a$b": 2, "nested": [{"_y": {"_$z": 3}}]}
    assert not any(k.startswith("$") for k in _all_keys(result))


def test_rewrite_preserves_key_order_and_does_not_mutate_input():
    record = {"z.1": 1, "a": 2, "m.2": 3}
    original = {"z.1": 1, "a": 2, "m.2": 3}

    result = replace_keys(record, DOT_PATTERN, "-")

    assert list(result.keys()) == ["z-1", "a", "m-2"]
    assert record == original


@pytest.mark.parametrize("scalar", [1, 1.5, "a.b", None, True, b"$raw"])
def test_scalars_pass_through(scalar):
    assert replace_keys(scalar, DOT_PATTERN, "_") == scalar


def test_sanitizer_applies_both_rewrites():
    sanitizer = KeySanitizer(dot_replacement="_", dollar_replacement="_")

    assert sanitizer.sanitize_all([{"a.b": 1}, {"$x": 2}]) == [{"a_b": 1}, {"_x": 2}]
    assert sanitizer.sanitize({"$a.b": {"$c": 1}}) == {"_a_b": {"_c": 1}}


def test_sanitizer_is_idempotent():
    sanitizer = KeySanitizer(dot_replacement="_dot_", dollar_replacement="_dollar_")

    once = sanitizer.sanitize(NESTED)
    twice = sanitizer.sanitize(once)

    assert twice == once
    assert list(twice.keys()) == list(once.keys())


def test_unconfigured_rewrites_are_skipped():
    records = [{"a.b": 1, "$x": 2}]

    assert KeySanitizer().sanitize_all(records) is records
    assert KeySanitizer(dot_replacement="_").sanitize_all(records) == [{"a_b": 1, "$x": 2}]
    assert KeySanitizer(dollar_replacement="_").sanitize_all(records) == [{"a.b": 1, "_x": 2}]


class _Pair(NamedTuple):
    left: Any
    right: Any


def test_named_tuples_are_walked_as_plain_tuples():
    record = {"pair": _Pair({"a.b": 1}, [{"c.d": 2}])}

    result = replace_keys(record, DOT_PATTERN, "_")

    assert result == {"pair": ({"a_b": 1}, [{"c_d": 2}])}
    assert type(result["pair"]) is tuple


def test_accepted_replacements_leave_no_dot_or_leading_dollar():
    sanitizer = KeySanitizer(dot_replacement="_", dollar_replacement="_x_")

    result = sanitizer.sanitize({"$a.b": {"$c": [{"$.d": 1}]}})

    assert all("." not in k and not k.startswith("$") for k in _all_keys(result))
    assert sanitizer.sanitize(result) == result
