"""Rule-based field validation keyed by event context.

Rules are declared per field and evaluated in declaration order. Every
applicable rule runs, so all messages for a field surface in one pass.

Example:
    validator = Validator({
        "title": [
            Rule("not_empty", "Please enter a title."),
            Rule("length_between", "Title is too long.", params={"min": 1, "max": 120}),
        ],
        "email": [("email", "Invalid email.", {"on": ["create"]})],
    })
    errors = validator.validate({"title": ""}, events={"create"})
    # {"title": ["Please enter a title."], "email": ["Invalid email."]}
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from row_mapper.core.exceptions import ConfigurationError

ALL_EVENTS = "all"

DEFAULT_MESSAGE = "The provided value is not valid."

_ALPHA_NUMERIC = re.compile(r"^[^\W_]+$")
_INTEGER = re.compile(r"^[+-]?\d+$")
_EMAIL = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$"
)
_URL = re.compile(r"^(https?|ftp)://[^\s/$.?#][^\s]*$", re.IGNORECASE)

_TRUE_VALUES = frozenset({True, 1, "1", "true", "on", "yes"})
_FALSE_VALUES = frozenset({False, 0, "0", "false", "off", "no", ""})


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return not value
    return False


def _as_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None


# --- Built-in rules ---


def not_empty(value: Any) -> bool:
    return not _is_empty(value)


def alpha_numeric(value: Any) -> bool:
    return isinstance(value, str) and bool(_ALPHA_NUMERIC.match(value))


def numeric(value: Any) -> bool:
    number = _as_decimal(value)
    return number is not None and number.is_finite()


def integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and bool(_INTEGER.match(value.strip()))


def boolean(value: Any) -> bool:
    if isinstance(value, str):
        value = value.strip().lower()
    try:
        return value in _TRUE_VALUES or value in _FALSE_VALUES
    except TypeError:
        return False


def email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL.match(value))


def url(value: Any) -> bool:
    return isinstance(value, str) and bool(_URL.match(value))


def in_list(value: Any, *, values: Iterable[Any]) -> bool:
    return value in list(values)


def in_range(value: Any, *, lower: Any = None, upper: Any = None) -> bool:
    number = _as_decimal(value)
    if number is None or not number.is_finite():
        return False
    if lower is not None and number < Decimal(str(lower)):
        return False
    return upper is None or number <= Decimal(str(upper))


def length_between(value: Any, *, min: int = 0, max: int | None = None) -> bool:  # noqa: A002
    if value is None:
        return False
    length = len(value) if isinstance(value, (str, list, tuple)) else len(str(value))
    return length >= min and (max is None or length <= max)


def matches(value: Any, *, pattern: str | re.Pattern[str]) -> bool:
    if not isinstance(value, str):
        return False
    return re.search(pattern, value) is not None


BUILTIN_RULES: dict[str, Callable[..., bool]] = {
    "not_empty": not_empty,
    "alpha_numeric": alpha_numeric,
    "numeric": numeric,
    "integer": integer,
    "boolean": boolean,
    "email": email,
    "url": url,
    "in_list": in_list,
    "in_range": in_range,
    "length_between": length_between,
    "matches": matches,
}


def _events(on: Any) -> frozenset[str]:
    if on is None:
        return frozenset({ALL_EVENTS})
    if isinstance(on, str):
        return frozenset({on})
    return frozenset(on)


@dataclass(frozen=True)
class Rule:
    """One validation rule for a field.

    Attributes:
        check: Built-in rule name or a callable ``(value, **params) -> bool``.
        message: Message appended to the field's errors on failure.
        on: Events the rule applies to (``"create"``, ``"update"``, or
            custom tags). ``"all"`` applies to every event.
        skip_empty: Skip the rule when the value is empty.
        params: Keyword arguments for the predicate.
    """

    check: str | Callable[..., bool]
    message: str = DEFAULT_MESSAGE
    on: frozenset[str] = frozenset({ALL_EVENTS})
    skip_empty: bool = False
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "on", _events(self.on))
        if isinstance(self.check, str) and self.check not in BUILTIN_RULES:
            raise ConfigurationError(f"Unknown validation rule '{self.check}'")
        if not isinstance(self.check, str) and not callable(self.check):
            raise ConfigurationError(
                f"Rule check must be a rule name or callable, got {self.check!r}"
            )

    @property
    def predicate(self) -> Callable[..., bool]:
        if isinstance(self.check, str):
            return BUILTIN_RULES[self.check]
        return self.check

    def applies_to(self, events: frozenset[str]) -> bool:
        return ALL_EVENTS in self.on or bool(self.on & events)

    def passes(self, value: Any) -> bool:
        if self.skip_empty and _is_empty(value):
            return True
        return bool(self.predicate(value, **self.params))


def as_rule(
    definition: Rule | Sequence[Any] | Mapping[str, Any] | str | Callable[..., bool],
) -> Rule:
    """Coerce the supported rule declaration shapes into a Rule.

    Accepted shapes:
        Rule(...)
        "not_empty"
        ("not_empty", "message")
        ("length_between", "message", {"max": 10, "on": "create"})
        {"check": "email", "message": "...", "on": ["create"]}
    """
    if isinstance(definition, Rule):
        return definition
    if isinstance(definition, str) or callable(definition):
        return Rule(definition)
    if isinstance(definition, Mapping):
        declared = dict(definition)
        if "check" not in declared:
            raise ConfigurationError(f"Rule mapping needs a 'check' key: {definition!r}")
        return _rule_from_options(
            declared.pop("check"), declared.pop("message", DEFAULT_MESSAGE), declared
        )
    if isinstance(definition, Sequence) and 1 <= len(definition) <= 3:
        check, *rest = definition
        message = rest[0] if rest else DEFAULT_MESSAGE
        options = dict(rest[1]) if len(rest) > 1 else {}
        return _rule_from_options(check, message, options)
    raise ConfigurationError(f"Unsupported rule declaration: {definition!r}")


def _rule_from_options(check: Any, message: str, options: dict[str, Any]) -> Rule:
    on = options.pop("on", None)
    skip_empty = bool(options.pop("skip_empty", False))
    params = dict(options.pop("params", {}))
    params.update(options)
    return Rule(check, message, on=_events(on), skip_empty=skip_empty, params=params)


class Validator:
    """Holds the per-field rule set and evaluates it against entity data.

    Each field maps to one declaration (a rule name, a tuple, a mapping, a
    callable or a Rule) or to a list of them. A tuple is always one rule.
    The rule set is read-only after ``freeze()``.
    """

    def __init__(self, rules: Mapping[str, Any] | None = None) -> None:
        self._rules: dict[str, list[Rule]] = {}
        self._frozen = False
        for field_name, definitions in (rules or {}).items():
            if isinstance(definitions, (Rule, str, tuple, Mapping)) or callable(definitions):
                definitions = [definitions]
            for definition in definitions:
                self.add(field_name, definition)

    def add(self, field_name: str, definition: Any) -> Rule:
        """Append a rule to *field_name*."""
        if self._frozen:
            raise ConfigurationError(f"Cannot add rule for '{field_name}': validator is frozen")
        rule = as_rule(definition)
        self._rules.setdefault(field_name, []).append(rule)
        return rule

    def freeze(self) -> None:
        self._frozen = True

    @property
    def fields(self) -> list[str]:
        return list(self._rules)

    def rules_for(self, field_name: str) -> tuple[Rule, ...]:
        return tuple(self._rules.get(field_name, ()))

    def validate(
        self,
        data: Mapping[str, Any],
        events: str | Iterable[str],
        whitelist: Iterable[str] | None = None,
    ) -> dict[str, list[str]]:
        """Evaluate every applicable rule against *data*.

        Args:
            data: Field name -> current value. Missing fields evaluate as None.
            events: Event tag or tags for this validation pass.
            whitelist: Restrict validation to these fields.

        Returns:
            Field name -> failure messages, in rule declaration order.
            Fields without failures are absent; an empty dict means valid.
        """
        events = _events(events)
        allowed = set(whitelist) if whitelist is not None else None
        errors: dict[str, list[str]] = {}

        for field_name, rules in self._rules.items():
            if allowed is not None and field_name not in allowed:
                continue
            value = data.get(field_name)
            for rule in rules:
                if rule.applies_to(events) and not rule.passes(value):
                    errors.setdefault(field_name, []).append(rule.message)
        return errors
