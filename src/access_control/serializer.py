"""Reading and writing the ``.wikipermissions`` rule file.

File format, one rule per line, evaluated top to bottom:

    # comment lines start with '#', blank lines are ignored
    <pattern> | <read groups, comma separated> | <write groups, comma separated>

An empty group list grants the permission to every user.
"""

from typing import List, Sequence

from src.access_control.errors import RuleFormatError
from src.access_control.models import AccessRule

HEADER_LINES = [
    "# Wiki Page Access Control Rules",
    "# Format: Pattern | ReadGroups | WriteGroups",
    "# Patterns support wildcards: * (any chars except /) and ** (any chars including /)",
    "# Groups are comma-separated. Empty means all users.",
    "# Rules are evaluated in order - first match wins.",
]

EXAMPLE_LINES = [
    "#",
    "# Examples:",
    "# admin/** | admin | admin",
    "# private/* | users, editors | editors",
    "# * | | users",
]


def _split_groups(field: str) -> List[str]:
    return [group.strip() for group in field.split(",") if group.strip()]


def parse_rules(content: str) -> List[AccessRule]:
    """Parse rule file content.

    Args:
        content: Text of the rule file

    Returns:
        Rules in file order, with ``order`` set to 0, 1, 2, ...

    Raises:
        RuleFormatError: If a rule line does not have exactly three
            '|'-separated fields or has an empty pattern
    """
    rules = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        fields = [field.strip() for field in stripped.split("|")]
        if len(fields) != 3:
            raise RuleFormatError(line)
        pattern, read_field, write_field = fields
        if not pattern:
            raise RuleFormatError(line, "pattern must not be empty")

        rules.append(AccessRule(
            pattern=pattern,
            read_groups=tuple(_split_groups(read_field)),
            write_groups=tuple(_split_groups(write_field)),
            order=len(rules),
        ))
    return rules


def serialize_rules(rules: Sequence[AccessRule], include_examples: bool = False) -> str:
    """Render rules in the rule file format, sorted by ``order``.

    Args:
        rules: Rules to write
        include_examples: When ``rules`` is empty, append commented example
            rules so the file documents itself. Parsing such a file still
            yields no rules.

    Returns:
        File content, newline terminated
    """
    if not rules and include_examples:
        return "\n".join(HEADER_LINES + EXAMPLE_LINES) + "\n"

    lines = HEADER_LINES + [""]
    for rule in sorted(rules, key=lambda r: r.order):
        read_groups = ", ".join(rule.read_groups)
        write_groups = ", ".join(rule.write_groups)
        lines.append(f"{rule.pattern} | {read_groups} | {write_groups}")
    return "\n".join(lines) + "\n"
