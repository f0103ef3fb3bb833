"""Read-only query policy: a textual denylist followed by an allowlist prefix check.

This is a surface-level filter, not a SQL parser. It cannot see mutations
hidden behind function calls or inside dollar-quoted strings; a stricter
validator can be substituted by building :class:`PolicyValidator` with a
different ordered list of rules.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

NOT_A_READ_QUERY = "not a read query"
READ_PREFIXES = ("select", "with")


@dataclass(frozen=True)
class DenyRule:
    """A named predicate over the normalized query text."""

    name: str
    check: Callable[[str], bool]

    @classmethod
    def regex(cls, name: str, pattern: str) -> DenyRule:
        compiled = re.compile(pattern)
        return cls(name=name, check=lambda text: compiled.search(text) is not None)

    def matches(self, text: str) -> bool:
        return self.check(text)


DEFAULT_DENY_RULES: tuple[DenyRule, ...] = (
    DenyRule.regex("drop table", r"\bdrop\s+table\b"),
    DenyRule.regex("drop database", r"\bdrop\s+database\b"),
    DenyRule.regex("drop schema", r"\bdrop\s+schema\b"),
    DenyRule.regex("truncate", r"\btruncate\b"),
    DenyRule.regex("delete from", r"\bdelete\s+from\b"),
    DenyRule.regex("update set", r"\bupdate\s+.*\s+set\b"),
    DenyRule.regex("insert into", r"\binsert\s+into\b"),
    DenyRule.regex("alter table", r"\balter\s+table\b"),
    DenyRule.regex("create table", r"\bcreate\s+table\b"),
    DenyRule.regex("grant", r"\bgrant\b"),
    DenyRule.regex("revoke", r"\brevoke\b"),
)


@dataclass(frozen=True)
class PolicyVerdict:
    allowed: bool
    rule: str | None = None
    reason: str | None = None

    @classmethod
    def allow(cls) -> PolicyVerdict:
        return cls(allowed=True)

    @classmethod
    def reject(cls, rule: str, reason: str) -> PolicyVerdict:
        return cls(allowed=False, rule=rule, reason=reason)


def normalize(query: str) -> str:
    """Trim and lowercase; only ever used for the checks, never executed."""
    return query.strip().lower()


class PolicyValidator:
    """Classifies a raw query as allowed or rejected.

    Rules are evaluated in order and the first match is reported. Only when no
    rule matches is the prefix allowlist consulted, so a denylisted keyword
    anywhere in the text rejects the query even if it starts with SELECT.
    """

    def __init__(
        self,
        rules: Iterable[DenyRule] = DEFAULT_DENY_RULES,
        prefixes: tuple[str, ...] = READ_PREFIXES,
    ):
        self._rules = tuple(rules)
        self._prefixes = prefixes

    @classmethod
    def with_extra_patterns(cls, patterns: Mapping[str, str]) -> PolicyValidator:
        """Built-in rules followed by extra ``name -> regex`` rules."""
        extra = [DenyRule.regex(name, pattern) for name, pattern in patterns.items()]
        return cls(rules=[*DEFAULT_DENY_RULES, *extra])

    @property
    def rules(self) -> tuple[DenyRule, ...]:
        return self._rules

    def validate(self, query: str) -> PolicyVerdict:
        text = normalize(query)

        for rule in self._rules:
            if rule.matches(text):
                return PolicyVerdict.reject(
                    rule.name,
                    f"query contains potentially dangerous operation: {rule.name}",
                )

        if not text.startswith(self._prefixes):
            return PolicyVerdict.reject(
                NOT_A_READ_QUERY,
                "only SELECT and CTE (WITH) queries are allowed",
            )

        return PolicyVerdict.allow()
