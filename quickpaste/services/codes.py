"""Paste code alphabet, minting and normalization.

Codes are drawn with ``secrets.choice``, which picks an index through
``randbelow``. That function rejects out-of-range draws instead of reducing
modulo the alphabet size, so every character is equally likely even though
the default alphabet (30 symbols) is not a power of two.
"""

from __future__ import annotations

import secrets

from quickpaste.core.errors import ValidationAppError


def generate_code(length: int, alphabet: str) -> str:
    """Draw a random code from a cryptographically secure source.

    Args:
        length: Number of characters.
        alphabet: Allowed characters.

    Returns:
        Random code of exactly ``length`` characters.
    """
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_code(raw: str | None, *, alphabet: str, lengths: tuple[int, ...]) -> str:
    """Upper-case a user-typed code and check its shape.

    Args:
        raw: Code as typed by the client.
        alphabet: Allowed (upper-case) characters.
        lengths: Accepted code lengths.

    Returns:
        The normalized code.

    Raises:
        ValidationAppError: If the length or any character is not accepted.
    """
    code = (raw or "").strip().upper()

    if len(code) not in lengths:
        accepted = " or ".join(str(n) for n in sorted(set(lengths)))
        raise ValidationAppError(
            code="invalid_code_length",
            message=f"Code must be {accepted} characters long",
            details={"actual_value": len(code)},
        )

    invalid = sorted({ch for ch in code if ch not in alphabet})
    if invalid:
        raise ValidationAppError(
            code="invalid_code_characters",
            message="Code contains characters outside the allowed alphabet",
            details={"hint": f"Allowed characters: {alphabet}"},
        )

    return code


def code_space_size(length: int, alphabet: str) -> int:
    """Number of distinct codes of the given length."""
    return len(alphabet) ** length
