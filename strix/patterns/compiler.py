"""
Compiler that turns a path template into an anchored regex.

Templates are literal text with ``{name}`` placeholders:

    /users/{id}
    /posts/{year}/{slug}

Each placeholder matches one non-empty run of characters that are not
``/``. Everything outside a placeholder is matched verbatim.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Pattern, Tuple, Union

from ..faults import PatternInvalidFault


_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SEGMENT_RE = "[^/]+"


@dataclass(frozen=True)
class StaticPart:
    """Literal text between placeholders."""
    text: str


@dataclass(frozen=True)
class ParamPart:
    """A ``{name}`` placeholder."""
    name: str


Part = Union[StaticPart, ParamPart]


@dataclass(frozen=True)
class CompiledPattern:
    """Fully compiled pattern ready for matching."""
    raw: str
    parts: Tuple[Part, ...]
    param_names: Tuple[str, ...]
    compiled_re: Pattern = field(compare=False)
    static_prefix: str = ""

    @property
    def is_static(self) -> bool:
        return not self.param_names

    def build(self, **params: Any) -> str:
        """
        Produce a concrete path by filling the placeholders.

        Raises:
            PatternInvalidFault: a placeholder has no value, or the value
                would not match the placeholder again.
        """
        out: List[str] = []
        for part in self.parts:
            if isinstance(part, StaticPart):
                out.append(part.text)
                continue
            if part.name not in params:
                raise PatternInvalidFault(self.raw, f"missing value for '{{{part.name}}}'")
            value = str(params[part.name])
            if not value or "/" in value:
                raise PatternInvalidFault(
                    self.raw, f"value {value!r} cannot fill '{{{part.name}}}'"
                )
            out.append(value)
        return "".join(out)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw": self.raw,
            "params": list(self.param_names),
            "regex": self.compiled_re.pattern,
            "static_prefix": self.static_prefix,
        }


def parse_template(template: str) -> Tuple[Part, ...]:
    """Split a template into static and placeholder parts."""
    if not isinstance(template, str) or not template:
        raise PatternInvalidFault(str(template), "template must be a non-empty string")

    parts: List[Part] = []
    seen: set = set()
    buf: List[str] = []
    i = 0
    while i < len(template):
        ch = template[i]
        if ch == "}":
            raise PatternInvalidFault(template, f"unmatched '}}' at position {i}")
        if ch != "{":
            buf.append(ch)
            i += 1
            continue

        close = template.find("}", i + 1)
        if close == -1:
            raise PatternInvalidFault(template, f"unclosed '{{' at position {i}")
        name = template[i + 1:close]
        if not name:
            raise PatternInvalidFault(template, f"empty placeholder at position {i}")
        if not _NAME_RE.match(name):
            raise PatternInvalidFault(template, f"invalid placeholder name '{name}'")
        if name in seen:
            raise PatternInvalidFault(template, f"duplicate placeholder '{name}'")
        seen.add(name)

        if buf:
            parts.append(StaticPart("".join(buf)))
            buf = []
        parts.append(ParamPart(name))
        i = close + 1

    if buf:
        parts.append(StaticPart("".join(buf)))
    return tuple(parts)


def compile_pattern(template: str) -> CompiledPattern:
    """
    Compile a path template.

    Args:
        template: Path template such as ``/users/{id}``

    Returns:
        CompiledPattern with an anchored, case-sensitive regex

    Raises:
        PatternInvalidFault: Malformed braces, bad or duplicate names
    """
    parts = parse_template(template)

    regex_parts = []
    for part in parts:
        if isinstance(part, StaticPart):
            regex_parts.append(re.escape(part.text))
        else:
            regex_parts.append(f"(?P<{part.name}>{_SEGMENT_RE})")

    static_prefix = parts[0].text if parts and isinstance(parts[0], StaticPart) else ""

    return CompiledPattern(
        raw=template,
        parts=parts,
        param_names=tuple(p.name for p in parts if isinstance(p, ParamPart)),
        compiled_re=re.compile("^" + "".join(regex_parts) + "$"),
        static_prefix=static_prefix,
    )
