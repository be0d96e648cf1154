"""Tests for code minting and normalization."""

from unittest.mock import patch

import pytest

from quickpaste.core.config import DEFAULT_CODE_ALPHABET, PasteSettings
from quickpaste.core.errors import ValidationAppError
from quickpaste.services.codes import code_space_size, generate_code, normalize_code


def test_default_alphabet_has_no_ambiguous_characters():
    for ch in "0O1IL8":
        assert ch not in DEFAULT_CODE_ALPHABET
    assert len(DEFAULT_CODE_ALPHABET) == len(set(DEFAULT_CODE_ALPHABET)) == 30


def test_generate_code_uses_only_alphabet():
    for _ in range(200):
        code = generate_code(4, DEFAULT_CODE_ALPHABET)
        assert len(code) == 4
        assert set(code) <= set(DEFAULT_CODE_ALPHABET)


def test_generate_code_draws_from_secrets():
    with patch("quickpaste.services.codes.secrets.choice", return_value="Z") as choice:
        assert generate_code(5, "XYZ") == "ZZZZZ"

    assert choice.call_count == 5


@pytest.mark.parametrize("raw, expected", [("abcd", "ABCD"), (" x2y3 ", "X2Y3"), ("abcde", "ABCDE")])
def test_normalize_code_upper_cases(raw, expected):
    assert normalize_code(raw, alphabet=DEFAULT_CODE_ALPHABET, lengths=(4, 5)) == expected


@pytest.mark.parametrize("raw", [None, "", "ABC", "ABCDEF", "toolong"])
def test_normalize_code_rejects_wrong_length(raw):
    with pytest.raises(ValidationAppError) as exc_info:
        normalize_code(raw, alphabet=DEFAULT_CODE_ALPHABET, lengths=(4, 5))

    assert exc_info.value.code == "invalid_code_length"
    assert "4 or 5" in exc_info.value.message


@pytest.mark.parametrize("raw", ["AB0D", "ABIL", "AB-D", "AB D"])
def test_normalize_code_rejects_foreign_characters(raw):
    with pytest.raises(ValidationAppError) as exc_info:
        normalize_code(raw, alphabet=DEFAULT_CODE_ALPHABET, lengths=(4,))

    assert exc_info.value.code == "invalid_code_characters"


def test_code_space_size():
    assert code_space_size(4, DEFAULT_CODE_ALPHABET) == 810_000


def test_alphabet_setting_is_normalized_and_checked():
    assert PasteSettings(code_alphabet="abc").code_alphabet == "ABC"

    with pytest.raises(ValueError):
        PasteSettings(code_alphabet="aA")
