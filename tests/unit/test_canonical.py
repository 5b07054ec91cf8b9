"""Tests for dap_registry.canonical — RFC 8785 encoding and digests."""
from __future__ import annotations

import hashlib

import pytest
import rfc8785

from dap_registry.canonical import canonicalize, digest
from dap_registry.errors import CanonicalizationError


class TestCanonicalizeStructure:
    def test_no_whitespace_and_sorted_keys(self) -> None:
        value = {"b": [1, 2, {"d": None, "c": True}], "a": "x"}
        assert canonicalize(value) == b'{"a":"x","b":[1,2,{"c":true,"d":null}]}'

    def test_key_order_is_insertion_independent(self) -> None:
        first = {"id": "1", "handle": "h", "did": "d", "domain": "x"}
        second = {"domain": "x", "did": "d", "handle": "h", "id": "1"}
        assert canonicalize(first) == canonicalize(second)

    def test_keys_sorted_by_utf16_code_units(self) -> None:
        value = {
            "\u20ac": "Euro Sign",
            "\r": "Carriage Return",
            "\ufb33": "Hebrew Letter Dalet With Dagesh",
            "1": "One",
            "\U0001f600": "Emoji: Grinning Face",
            "\u0080": "Control",
            "\u00f6": "Latin Small Letter O With Diaeresis",
        }
        values = [
            "Carriage Return",
            "One",
            "Control",
            "Latin Small Letter O With Diaeresis",
            "Euro Sign",
            "Emoji: Grinning Face",
            "Hebrew Letter Dalet With Dagesh",
        ]
        encoded = canonicalize(value).decode("utf-8")
        positions = [encoded.index(v) for v in values]
        assert positions == sorted(positions)

    def test_tuples_encode_as_arrays(self) -> None:
        assert canonicalize(("a", 1)) == b'["a",1]'

    def test_scalars(self) -> None:
        assert canonicalize(None) == b"null"
        assert canonicalize(True) == b"true"
        assert canonicalize(False) == b"false"
        assert canonicalize([]) == b"[]"
        assert canonicalize({}) == b"{}"


class TestCanonicalizeStrings:
    def test_non_ascii_emitted_as_utf8(self) -> None:
        assert canonicalize("Zoë €") == '"Zoë €"'.encode("utf-8")

    def test_control_characters_escaped(self) -> None:
        assert canonicalize("\n\t\u000f") == b'"\\n\\t\\u000f"'

    def test_quotes_and_backslashes_escaped(self) -> None:
        assert canonicalize('a"b\\c') == b'"a\\"b\\\\c"'

    def test_forward_slash_not_escaped(self) -> None:
        assert canonicalize("a/b") == b'"a/b"'

    def test_lone_surrogate_rejected(self) -> None:
        with pytest.raises(CanonicalizationError):
            canonicalize("\ud800")


class TestCanonicalizeNumbers:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, "0"),
            (-0.0, "0"),
            (1.0, "1"),
            (1.5, "1.5"),
            (-42, "-42"),
            (4.50, "4.5"),
            (0.002, "0.002"),
            (0.000001, "0.000001"),
            (1e-7, "1e-7"),
            (1e20, "100000000000000000000"),
            (1e21, "1e+21"),
            (1e30, "1e+30"),
            (1e-27, "1e-27"),
            (333333333.33333329, "333333333.3333333"),
            (float(2**53), "9007199254740992"),
            (9007199254740991, "9007199254740991"),
        ],
    )
    def test_ecmascript_number_format(self, value: float, expected: str) -> None:
        assert canonicalize(value) == expected.encode("ascii")

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_rejected(self, value: float) -> None:
        with pytest.raises(CanonicalizationError):
            canonicalize(value)

    @pytest.mark.parametrize("value", [2**53, -(2**53), 10**400])
    def test_integers_outside_safe_range_rejected(self, value: int) -> None:
        with pytest.raises(CanonicalizationError) as excinfo:
            canonicalize({"n": value})
        assert isinstance(excinfo.value.__cause__, rfc8785.IntegerDomainError)

    def test_float_domain_error_is_wrapped(self) -> None:
        with pytest.raises(CanonicalizationError) as excinfo:
            canonicalize([float("inf")])
        assert isinstance(excinfo.value.__cause__, rfc8785.FloatDomainError)


class TestCanonicalizeErrors:
    def test_non_string_keys_rejected(self) -> None:
        with pytest.raises(CanonicalizationError, match="keys must be strings"):
            canonicalize({1: "a"})

    @pytest.mark.parametrize("value", [{1, 2}, b"bytes", object()])
    def test_unsupported_types_rejected(self, value: object) -> None:
        with pytest.raises(CanonicalizationError):
            canonicalize(value)

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            canonicalize({"x": float("nan")})


class TestDigest:
    def test_known_vector(self) -> None:
        assert digest({"hello": "world"}).hex() == (
            "93a23971a914e5eacbf0a8d25154cda309c3c1c72fbb9914d47c60f3cb681588"
        )

    def test_is_sha256_of_canonical_bytes(self) -> None:
        value = {"z": 1, "a": [True, None]}
        assert digest(value) == hashlib.sha256(canonicalize(value)).digest()

    def test_deterministic(self) -> None:
        value = {"id": "reg_1", "handle": "moegrammer", "did": "did:jwk:x", "domain": "didpay.me"}
        assert digest(value) == digest(dict(reversed(list(value.items()))))

    @pytest.mark.parametrize("field", ["id", "handle", "did", "domain"])
    def test_sensitive_to_every_field(self, field: str) -> None:
        value = {"id": "reg_1", "handle": "moegrammer", "did": "did:jwk:x", "domain": "didpay.me"}
        changed = dict(value, **{field: value[field] + "!"})
        assert digest(value) != digest(changed)

    def test_digest_length(self) -> None:
        assert len(digest({"a": 1})) == 32
