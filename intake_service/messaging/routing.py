"""
Routing key derivation and topic pattern matching
"""

import re

_CAPITAL = re.compile(r"([A-Z])")


def routing_key_for(event_type: str) -> str:
    """
    Derive a dot separated routing key from a PascalCase event type.

    ``IntakeCompleted`` -> ``intake.completed``
    """
    routing_key = _CAPITAL.sub(r".\1", event_type).lower()
    if routing_key.startswith("."):
        return routing_key[1:]
    return routing_key


def routing_key_matches(pattern: str, routing_key: str) -> bool:
    """
    Match a routing key against a topic binding pattern.

    ``*`` matches exactly one segment, ``#`` matches zero or more segments.
    """
    return _match(pattern.split("."), routing_key.split("."))


def _match(pattern, words) -> bool:
    if not pattern:
        return not words

    head, rest = pattern[0], pattern[1:]
    if head == "#":
        return any(_match(rest, words[i:]) for i in range(len(words) + 1))
    if not words:
        return False
    if head == "*" or head == words[0]:
        return _match(rest, words[1:])
    return False


def any_pattern_matches(patterns, routing_key: str) -> bool:
    return any(routing_key_matches(pattern, routing_key) for pattern in patterns)
