"""
Path matching against compiled patterns.

Matching is anchored and case-sensitive. Captured values are returned as
raw strings in the order their placeholders appear in the template.
"""

from typing import Dict, Optional

from .compiler import CompiledPattern


def match(pattern: CompiledPattern, path: str) -> Optional[Dict[str, str]]:
    """
    Match a concrete path.

    Returns:
        Mapping of placeholder name to captured string, ordered by
        placeholder position, or None when the path does not match.
    """
    if pattern.static_prefix and not path.startswith(pattern.static_prefix):
        return None

    m = pattern.compiled_re.match(path)
    if m is None:
        return None
    return {name: m.group(name) for name in pattern.param_names}
