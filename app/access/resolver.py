"""
Communication permission resolver.

Decides whether a sender role may message a recipient role. The decision is
a chain of rules consulted in fixed precedence; the first rule that returns
a verdict wins:

    1. CapabilityGrantRule   - sender holds ``chat_with_any_role``
    2. RestrictionListRule   - per-role settings override (RoleSetting)
    3. RestrictionListRule   - static ChatPermission table
    4. HierarchyRule         - level-based default

Each rule returns True/False to decide, or None to defer to the next rule.
Everything here is pure: no database access, no exceptions for bad input.
An unknown role on either side resolves to False before any rule runs.

Usage:
    from access.resolver import can_communicate

    can_communicate("teacher", "student")                       # True
    can_communicate("student", "admin")                         # False
    can_communicate("student", "admin", restrictions=["admin"]) # True
    can_communicate(
        "student", "admin", has_capability=lambda name: True
    )                                                           # True
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from access.constants import CAPABILITIES
from access.roles import Role, is_valid_role, role_level

CapabilityCheck = Callable[[str], bool]


class CommunicationRule:
    """One link in the resolver chain."""

    name: str = "rule"

    def decide(self, sender_role: str, recipient_role: str) -> bool | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"


class CapabilityGrantRule(CommunicationRule):
    """Allow unconditionally when the sender holds the any-role capability."""

    name = "capability"

    def __init__(self, has_capability: CapabilityCheck | None):
        self.has_capability = has_capability

    def decide(self, sender_role: str, recipient_role: str) -> bool | None:
        if self.has_capability and self.has_capability(CAPABILITIES.CHAT_WITH_ANY_ROLE):
            return True
        return None


class RestrictionListRule(CommunicationRule):
    """
    Membership test against the sender role's ``can_chat_with`` list.

    A missing list (None) defers. An empty list is authoritative and denies
    everything.
    """

    def __init__(self, allowed_roles: Iterable[str] | None, name: str = "restrictions"):
        self.allowed_roles = None if allowed_roles is None else frozenset(allowed_roles)
        self.name = name

    def decide(self, sender_role: str, recipient_role: str) -> bool | None:
        if self.allowed_roles is None:
            return None
        return recipient_role in self.allowed_roles


class HierarchyRule(CommunicationRule):
    """
    Level-based default.

    super_admin reaches everyone, student reaches only teacher, everyone else
    reaches roles at most one level away.
    """

    name = "hierarchy"

    def decide(self, sender_role: str, recipient_role: str) -> bool | None:
        if sender_role == Role.SUPER_ADMIN:
            return True
        if sender_role == Role.STUDENT:
            return recipient_role == Role.TEACHER
        return abs(role_level(sender_role) - role_level(recipient_role)) <= 1


def resolve(
    sender_role: str,
    recipient_role: str,
    rules: Sequence[CommunicationRule],
) -> bool:
    """Run ``rules`` in order and return the first verdict (False if none decides)."""
    if not (is_valid_role(sender_role) and is_valid_role(recipient_role)):
        return False

    for rule in rules:
        verdict = rule.decide(sender_role, recipient_role)
        if verdict is not None:
            return verdict
    return False


def build_chain(
    has_capability: CapabilityCheck | None = None,
    settings_restrictions: Iterable[str] | None = None,
    table_restrictions: Iterable[str] | None = None,
) -> list[CommunicationRule]:
    """Assemble the rule chain in precedence order."""
    return [
        CapabilityGrantRule(has_capability),
        RestrictionListRule(settings_restrictions, name="role_setting"),
        RestrictionListRule(table_restrictions, name="chat_permission"),
        HierarchyRule(),
    ]


def can_communicate(
    sender_role: str,
    recipient_role: str,
    restrictions: Iterable[str] | None = None,
    has_capability: CapabilityCheck | None = None,
) -> bool:
    """
    Decide whether ``sender_role`` may message ``recipient_role``.

    Args:
        sender_role: Role of the user sending
        recipient_role: Role of the user receiving
        restrictions: Override ``can_chat_with`` list for the sender's role,
            taken from role settings or the static table. None means no
            override exists.
        has_capability: Predicate over capability names for the sender

    Returns:
        True when allowed. Never raises; unknown roles yield False.
    """
    rules = [
        CapabilityGrantRule(has_capability),
        RestrictionListRule(restrictions),
        HierarchyRule(),
    ]
    return resolve(sender_role, recipient_role, rules)
