"""XPath evaluation with the extra functions report matchers rely on.

lxml only knows XPath 1.0, so matchers get four helpers on top of it:

    replace(input, search, replacement)   regex substitution (first match only)
    match(input, pattern)                 first capture group, or ""
    if(condition, then, else)             pick a branch
    normalize(input)                      strip every line, drop blank lines

The helpers are handed to each evaluator as a table instead of being
registered on lxml's global function namespace.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from typing import Any

from lxml import etree

XPathFunction = Callable[..., Any]

_NUMBER_RE = re.compile(r"^\s*-?(\d+(\.\d*)?|\.\d+)\s*$")


class SelectorError(Exception):
    """A matcher selector could not be compiled or evaluated."""

    def __init__(self, expression: str, cause: str) -> None:
        self.expression = expression
        self.cause = cause
        super().__init__(f'{self.prefix} "{expression}": {cause}')

    prefix = "Error evaluating xpath expression"


class SelectorSyntaxError(SelectorError):
    """The selector is not valid XPath."""

    prefix = "Error parsing xpath expression"


class SelectorEvaluationError(SelectorError):
    """The selector compiled but failed against a node."""


def _node_string(item: object) -> str:
    if isinstance(item, etree._Element):
        if not isinstance(item.tag, str):
            # comments and processing instructions
            return item.text or ""
        return "".join(item.itertext())
    return str(item)


def to_string(value: object) -> str:
    """Convert an XPath result to a string like XPath's string()."""
    if isinstance(value, list):
        return _node_string(value[0]) if value else ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def to_number(value: object) -> float:
    """Convert an XPath result to a number like XPath's number()."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = to_string(value)
    if not _NUMBER_RE.match(text):
        return math.nan
    return float(text)


def to_boolean(value: object) -> bool:
    """Convert an XPath result to a boolean like XPath's boolean()."""
    if isinstance(value, list):
        return bool(value)
    if isinstance(value, float):
        return not math.isnan(value) and value != 0
    return bool(value)


def _replace(_context: object, value: object, search: object, replacement: object) -> str:
    return re.sub(to_string(search), to_string(replacement), to_string(value), count=1)


def _match(_context: object, value: object, pattern: object) -> str:
    found = re.search(to_string(pattern), to_string(value))
    if found is None or not found.groups():
        return ""
    return found.group(1) or ""


def _if(_context: object, condition: object, then: object, otherwise: object) -> object:
    chosen = then if to_boolean(condition) else otherwise
    # lxml can only hand element lists back to libxml2; attribute and text
    # results collapse to their string value.
    if isinstance(chosen, list) and not all(isinstance(item, etree._Element) for item in chosen):
        return to_string(chosen)
    return chosen


def _normalize(_context: object, value: object) -> str:
    lines = (line.strip() for line in to_string(value).splitlines())
    return "\n".join(line for line in lines if line)


DEFAULT_FUNCTIONS: Mapping[str, XPathFunction] = {
    "replace": _replace,
    "match": _match,
    "if": _if,
    "normalize": _normalize,
}


def compile_selector(expression: str, functions: Mapping[str, XPathFunction] | None = None) -> etree.XPath:
    """Compile a selector, naming the expression in any syntax error.

    lxml's own messages ("Invalid expression") never include the expression.
    """
    table = DEFAULT_FUNCTIONS if functions is None else functions
    extensions = {(None, name): fn for name, fn in table.items()}
    try:
        return etree.XPath(expression, extensions=extensions)
    except etree.XPathError as exc:
        raise SelectorSyntaxError(expression, str(exc) or type(exc).__name__) from exc


class XPathSelect:
    """Evaluate selectors against one context node."""

    def __init__(self, node: Any, functions: Mapping[str, XPathFunction] | None = None) -> None:
        self.node = node
        self.functions = DEFAULT_FUNCTIONS if functions is None else functions

    def evaluate(self, expression: str) -> object:
        compiled = compile_selector(expression, self.functions)
        try:
            return compiled(self.node)
        except (etree.XPathError, re.error, TypeError, ValueError) as exc:
            raise SelectorEvaluationError(expression, str(exc) or type(exc).__name__) from exc

    def string(self, expression: str) -> str:
        return to_string(self.evaluate(expression))

    def number(self, expression: str) -> float:
        return to_number(self.evaluate(expression))

    def boolean(self, expression: str) -> bool:
        return to_boolean(self.evaluate(expression))

    def nodes(self, expression: str) -> list[object]:
        """Select a node-set.

        Attribute and text nodes come back as lxml string results (see
        `is_element`). A non node-set result selects nothing.
        """
        result = self.evaluate(expression)
        if isinstance(result, etree._Element):
            return [result]
        if not isinstance(result, list):
            return []
        return list(result)


def is_element(node: object) -> bool:
    """True for nodes selectors can be evaluated against."""
    return isinstance(node, etree._Element)


def evaluate_string(expression: str, node: Any, functions: Mapping[str, XPathFunction] | None = None) -> str:
    return XPathSelect(node, functions).string(expression)


def evaluate_number(expression: str, node: Any, functions: Mapping[str, XPathFunction] | None = None) -> float:
    return XPathSelect(node, functions).number(expression)


def evaluate_boolean(expression: str, node: Any, functions: Mapping[str, XPathFunction] | None = None) -> bool:
    return XPathSelect(node, functions).boolean(expression)
