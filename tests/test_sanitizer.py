"""Tests for tool argument sanitization."""

import math

from bakeryhub.security.sanitizer import sanitize_params


class TestSanitizeParams:
    """Cleaning of model-supplied arguments."""

    def test_truncates_drops_callables_and_zeroes_nan(self):
        """Long strings are cut, callables removed and NaN replaced."""
        result = sanitize_params({"name": "a" * 5000, "fn": lambda: 1, "n": float("nan")})

        assert result == {"name": "a" * 1000, "n": 0}
        assert "fn" not in result

    def test_trims_whitespace(self):
        assert sanitize_params({"q": "  sesame bagel \n"}) == {"q": "sesame bagel"}

    def test_drops_none_values(self):
        assert sanitize_params({"status": None, "limit": 5}) == {"limit": 5}

    def test_booleans_are_not_coerced(self):
        result = sanitize_params({"flag": True, "off": False})
        assert result["flag"] is True
        assert result["off"] is False

    def test_numbers_pass_through(self):
        assert sanitize_params({"qty": 3, "price": 2.5}) == {"qty": 3, "price": 2.5}

    def test_nested_dicts_are_cleaned(self):
        result = sanitize_params({"filter": {"name": "  rye ", "bad": None, "inner": {"fn": print}}})
        assert result == {"filter": {"name": "rye", "inner": {}}}

    def test_lists_pass_through_and_dict_items_are_cleaned(self):
        result = sanitize_params({"items": [{"product_id": 1, "note": None}, 5, "x"]})
        assert result == {"items": [{"product_id": 1}, 5, "x"]}

    def test_unsupported_values_are_dropped(self):
        assert sanitize_params({"obj": object(), "data": b"bytes", "ok": 1}) == {"ok": 1}

    def test_non_dict_input_yields_empty(self):
        assert sanitize_params(None) == {}
        assert sanitize_params("text") == {}
        assert sanitize_params([1, 2]) == {}

    def test_custom_max_length(self):
        assert sanitize_params({"s": "abcdef"}, max_length=3) == {"s": "abc"}

    def test_idempotent(self):
        """A second pass never changes the result."""
        raw = {
            "name": " x" * 700,
            "n": math.nan,
            "nested": {"s": "  padded  ", "none": None},
            "items": [{"a": " b "}],
            "flag": False,
        }
        once = sanitize_params(raw)
        assert sanitize_params(once) == once

    def test_does_not_mutate_input(self):
        raw = {"name": "  bagel  ", "gone": None}
        sanitize_params(raw)
        assert raw == {"name": "  bagel  ", "gone": None}
