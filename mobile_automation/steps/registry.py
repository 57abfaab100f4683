"""
Step registry matching Gherkin step text to Python functions.

Patterns are Cucumber expressions: literal text plus `{string}` (a
double-quoted argument, passed without the quotes), `{int}`, `{float}` and
`{word}`. A pattern must match the whole step text; the Gherkin keyword is not
part of the match. A step's data table or doc string, when present, is
passed as the last argument.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

StepFunc = Callable[..., Any]

_PARAMETER_TYPES: dict[str, tuple[str, Callable[[str], Any]]] = {
    "string": (r'"([^"]*)"', str),
    "int": (r"(-?\d+)", int),
    "float": (r"(-?\d*\.?\d+)", float),
    "word": (r"([^\s]+)", str),
}

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class StepDefinitionError(RuntimeError):
    pass


class UndefinedStepError(StepDefinitionError):
    def __init__(self, text: str) -> None:
        super().__init__(f"Undefined step: {text!r}")
        self.text = text


class AmbiguousStepError(StepDefinitionError):
    def __init__(self, text: str, patterns: list[str]) -> None:
        super().__init__(f"Ambiguous step {text!r} matches: {', '.join(repr(p) for p in patterns)}")
        self.text = text
        self.patterns = patterns


def compile_expression(expression: str) -> tuple[re.Pattern[str], list[Callable[[str], Any]]]:
    parts: list[str] = []
    converters: list[Callable[[str], Any]] = []
    pos = 0
    for match in _PLACEHOLDER.finditer(expression):
        name = match.group(1)
        if name not in _PARAMETER_TYPES:
            raise StepDefinitionError(f"Unknown parameter type {{{name}}} in {expression!r}")
        regex, converter = _PARAMETER_TYPES[name]
        parts.append(re.escape(expression[pos : match.start()]))
        parts.append(regex)
        converters.append(converter)
        pos = match.end()
    parts.append(re.escape(expression[pos:]))
    return re.compile("".join(parts)), converters


@dataclass(frozen=True)
class StepDefinition:
    expression: str
    regex: re.Pattern[str]
    converters: tuple[Callable[[str], Any], ...]
    func: StepFunc

    def match(self, text: str) -> Optional[list[Any]]:
        m = self.regex.fullmatch(text)
        if m is None:
            return None
        return [convert(raw) for convert, raw in zip(self.converters, m.groups())]


@dataclass(frozen=True)
class StepMatch:
    definition: StepDefinition
    args: list[Any]

    def run(self, context: Any, argument: Any = None) -> Any:
        extra = [] if argument is None else [argument]
        return self.definition.func(context, *self.args, *extra)


class StepRegistry:
    def __init__(self) -> None:
        self._definitions: list[StepDefinition] = []

    def __len__(self) -> int:
        return len(self._definitions)

    @property
    def definitions(self) -> list[StepDefinition]:
        return list(self._definitions)

    def add(self, expression: str, func: StepFunc) -> StepDefinition:
        if any(d.expression == expression for d in self._definitions):
            raise StepDefinitionError(f"Duplicate step definition: {expression!r}")
        regex, converters = compile_expression(expression)
        definition = StepDefinition(expression=expression, regex=regex, converters=tuple(converters), func=func)
        self._definitions.append(definition)
        return definition

    def step(self, *expressions: str) -> Callable[[StepFunc], StepFunc]:
        """Register `func` under one or more expressions."""
        if not expressions:
            raise StepDefinitionError("step() needs at least one expression")

        def decorator(func: StepFunc) -> StepFunc:
            for expression in expressions:
                self.add(expression, func)
            return func

        return decorator

    given = when = then = step

    def find(self, text: str) -> StepMatch:
        matches: list[StepMatch] = []
        for definition in self._definitions:
            args = definition.match(text)
            if args is not None:
                matches.append(StepMatch(definition=definition, args=args))
        if not matches:
            raise UndefinedStepError(text)
        if len(matches) > 1:
            raise AmbiguousStepError(text, [m.definition.expression for m in matches])
        return matches[0]

    def run(self, text: str, context: Any, *, argument: Any = None) -> Any:
        return self.find(text).run(context, argument)


default_registry = StepRegistry()
step = default_registry.step
given = default_registry.given
when = default_registry.when
then = default_registry.then
