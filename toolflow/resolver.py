"""Template substitution for step inputs.

Strings may contain ``{{dotted.path}}`` tokens which are replaced with the
value found at that path in the execution scope.  Lookups walk mappings by key
and sequences by integer index.  By default resolution is fail-soft: a token
whose path cannot be found is left verbatim in the output so tool handlers see
the original literal.  Strict mode raises :class:`UnresolvedVariableError`
instead.

A string made of exactly one token resolves to the referenced value itself,
so ``"{{fetch.body}}"`` hands a mapping to the next tool rather than its text
rendering.  The value is a deep copy; handlers may mutate their input freely.
"""

from __future__ import annotations

import copy
import json
import re
from typing import Any, List, Mapping, Sequence, Tuple

from .errors import UnresolvedVariableError

TOKEN_PATTERN = re.compile(r"\{\{(\w+(?:\.\w+)*)\}\}")

_MISSING = object()


def extract_path(obj: Any, path: str, default: Any = None) -> Any:
    """Return the value at dotted ``path`` inside ``obj`` or ``default``."""
    current = obj
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return default
        else:
            return default
    return current


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def _lookup(scope: Mapping[str, Any], path: str) -> Any:
    value = extract_path(scope, path, _MISSING)
    return _MISSING if value is None else value


def _resolve_string(template: str, scope: Mapping[str, Any], missing: List[str]) -> Any:
    whole = TOKEN_PATTERN.fullmatch(template)
    if whole:
        value = _lookup(scope, whole.group(1))
        if value is _MISSING:
            missing.append(whole.group(1))
            return template
        return copy.deepcopy(value)

    def substitute(match: re.Match[str]) -> str:
        value = _lookup(scope, match.group(1))
        if value is _MISSING:
            missing.append(match.group(1))
            return match.group(0)
        return _render(value)

    return TOKEN_PATTERN.sub(substitute, template)


def _resolve(template: Any, scope: Mapping[str, Any], missing: List[str]) -> Any:
    if isinstance(template, str):
        return _resolve_string(template, scope, missing)
    if isinstance(template, Mapping):
        return {key: _resolve(value, scope, missing) for key, value in template.items()}
    if isinstance(template, (list, tuple)):
        return [_resolve(item, scope, missing) for item in template]
    return template


def resolve(template: Any, scope: Mapping[str, Any], strict: bool = False) -> Any:
    """Resolve every ``{{path}}`` token in ``template`` against ``scope``.

    Args:
        template: A scalar, list or mapping, nested arbitrarily.
        scope: Variables visible to the template.
        strict: Raise instead of leaving unresolved tokens in place.

    Returns:
        A new tree; ``template`` is never mutated.

    Raises:
        UnresolvedVariableError: In strict mode, if any path is missing.
    """
    missing: List[str] = []
    resolved = _resolve(template, scope, missing)
    if strict and missing:
        raise UnresolvedVariableError(missing)
    return resolved


def find_placeholders(template: Any) -> List[Tuple[str, str]]:
    """List ``(root, path)`` for every token referenced anywhere in ``template``."""
    found: List[Tuple[str, str]] = []
    if isinstance(template, str):
        for match in TOKEN_PATTERN.finditer(template):
            path = match.group(1)
            found.append((path.split(".", 1)[0], path))
    elif isinstance(template, Mapping):
        for value in template.values():
            found.extend(find_placeholders(value))
    elif isinstance(template, (list, tuple)):
        for item in template:
            found.extend(find_placeholders(item))
    return found
