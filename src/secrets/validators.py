# src/secrets/validators.py — v1
"""Format heuristics for secret values.

Validator tags are short strings carried on SecretSpec:
    prefix:<p1>|<p2>   value must start with one of the prefixes
    suffix:<s1>|<s2>   value must end with one of the suffixes
A failed check only ever produces a warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable


@dataclass(frozen=True)
class Validator:
    """Compiled validator tag."""

    tag: str
    check: Callable[[str], bool]
    hint: str

    def validate(self, value: str) -> str | None:
        """Return a warning message, or None when the value looks right."""
        if self.check(value):
            return None
        return self.hint


@lru_cache(maxsize=128)
def parse_validator(tag: str) -> Validator:
    """Compile a validator tag.

    Raises:
        ValueError: Unknown validator kind or empty operand list.
    """
    kind, sep, operand = tag.partition(":")
    options = tuple(o for o in operand.split("|") if o) if sep else ()
    if not options:
        raise ValueError(f"Validator {tag!r} has no operands")

    if kind == "prefix":
        return Validator(
            tag=tag,
            check=lambda v: v.startswith(options),
            hint=f"must start with {' or '.join(options)}",
        )
    if kind == "suffix":
        return Validator(
            tag=tag,
            check=lambda v: v.endswith(options),
            hint=f"must end with {' or '.join(options)}",
        )
    raise ValueError(f"Unknown validator kind {kind!r} in {tag!r}")


def format_hint(tag: str | None) -> str | None:
    """Human-readable hint for a tag; None for no tag or an unparseable one."""
    if not tag:
        return None
    try:
        return parse_validator(tag).hint
    except ValueError:
        return None


def validate_value(tag: str | None, value: str) -> str | None:
    """Run the tag's check; unparseable tags never produce warnings."""
    if not tag:
        return None
    try:
        validator = parse_validator(tag)
    except ValueError:
        return None
    return validator.validate(value)
