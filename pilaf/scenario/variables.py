from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from ..errors import UndefinedVariableError

# {name} or {name.path.0}
PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)\}")


def stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


@dataclass
class VariableStore:
    """
    Values recorded via ``store_as`` during one scenario execution.

    Names are never removed during a run; storing to an existing name
    rebinds it. Lookups accept dotted paths into stored mappings/lists.
    """

    variables: Dict[str, Any] = field(default_factory=dict)

    def set(self, name: str, value: Any) -> None:
        self.variables[name] = value

    def has(self, name: str) -> bool:
        return name in self.variables

    def lookup(self, reference: str) -> Any:
        head, *path = reference.split(".")
        if head not in self.variables:
            raise UndefinedVariableError(head)
        value = self.variables[head]
        for part in path:
            if isinstance(value, Mapping) and part in value:
                value = value[part]
            elif isinstance(value, (list, tuple)) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                raise UndefinedVariableError(reference)
        return value

    # -----------------------------
    # Substitution
    # -----------------------------
    def substitute(self, value: Any) -> Any:
        """Resolve placeholders in ``value`` (recursing into lists/dicts).

        A string that is exactly one placeholder yields the stored value
        unchanged; placeholders embedded in longer text are stringified.
        """
        if isinstance(value, str):
            whole = PLACEHOLDER_RE.fullmatch(value)
            if whole:
                return self.lookup(whole.group(1))
            return PLACEHOLDER_RE.sub(lambda m: stringify(self.lookup(m.group(1))), value)
        if isinstance(value, Mapping):
            return {k: self.substitute(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.substitute(v) for v in value]
        return value

    def resolve_fields(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        return {key: self.substitute(value) for key, value in fields.items()}
