"""
Tests for the communication resolver.

The resolver is pure, so these tests need no database. They cover:
- The hierarchy default when no override exists
- Restriction lists replacing the hierarchy
- The any-role capability taking precedence over everything
- Unknown roles never being allowed
- Precedence of the full chain (capability > role setting > table > hierarchy)
"""

import pytest

from access.constants import CAPABILITIES
from access.resolver import (
    CapabilityGrantRule,
    HierarchyRule,
    RestrictionListRule,
    build_chain,
    can_communicate,
    resolve,
)
from access.roles import ALL_ROLES


def grants(*names):
    return lambda name: name in names


# =============================================================================
# TestHierarchyDefault
# =============================================================================


class TestHierarchyDefault:
    """Decisions with no restriction list and no capability."""

    @pytest.mark.parametrize("recipient", ALL_ROLES)
    def test_super_admin_reaches_every_role(self, recipient):
        assert can_communicate("super_admin", recipient) is True

    def test_student_reaches_only_teacher(self):
        """
        Why it matters: students must not message admins or each other
        unless an override says so.
        """
        assert can_communicate("student", "teacher") is True
        assert can_communicate("student", "student") is False
        assert can_communicate("student", "admin") is False
        assert can_communicate("student", "super_admin") is False

    def test_teacher_reaches_adjacent_levels(self):
        assert can_communicate("teacher", "student") is True
        assert can_communicate("teacher", "teacher") is True
        assert can_communicate("teacher", "admin") is True
        assert can_communicate("teacher", "super_admin") is False

    def test_admin_reaches_adjacent_levels(self):
        assert can_communicate("admin", "super_admin") is True
        assert can_communicate("admin", "teacher") is True
        assert can_communicate("admin", "student") is False


# =============================================================================
# TestRestrictions
# =============================================================================


class TestRestrictions:
    """An explicit ``can_chat_with`` list replaces the hierarchy."""

    def test_restriction_allows_what_hierarchy_denies(self):
        """
        Student may message admin when the list says so.

        Why it matters: operators widen access without code changes.
        """
        assert can_communicate("student", "admin", restrictions=["admin"]) is True

    def test_restriction_denies_what_hierarchy_allows(self):
        assert can_communicate("teacher", "student", restrictions=["admin"]) is False

    def test_empty_restriction_list_denies_everything(self):
        """
        Why it matters: an empty list is a decision, not a missing value.
        """
        assert can_communicate("super_admin", "admin", restrictions=[]) is False

    def test_none_restrictions_fall_back_to_hierarchy(self):
        assert can_communicate("student", "teacher", restrictions=None) is True


# =============================================================================
# TestCapabilityGrant
# =============================================================================


class TestCapabilityGrant:
    def test_any_role_capability_overrides_empty_restrictions(self):
        """
        Why it matters: the capability is the highest-precedence rule.
        """
        allowed = can_communicate(
            "student",
            "admin",
            restrictions=[],
            has_capability=grants(CAPABILITIES.CHAT_WITH_ANY_ROLE),
        )
        assert allowed is True

    def test_other_capabilities_do_not_allow(self):
        allowed = can_communicate(
            "student",
            "admin",
            has_capability=grants(CAPABILITIES.DELETE_MESSAGES),
        )
        assert allowed is False


# =============================================================================
# TestUnknownRoles
# =============================================================================


class TestUnknownRoles:
    @pytest.mark.parametrize(
        "sender,recipient",
        [
            ("guest", "teacher"),
            ("teacher", "guest"),
            ("", "student"),
            (None, "student"),
            ("TEACHER", "student"),
        ],
    )
    def test_unknown_role_is_denied(self, sender, recipient):
        """
        Why it matters: a malformed role must never open a channel, even
        with the any-role capability.
        """
        assert (
            can_communicate(
                sender,
                recipient,
                restrictions=["teacher", "student"],
                has_capability=grants(CAPABILITIES.CHAT_WITH_ANY_ROLE),
            )
            is False
        )


# =============================================================================
# TestChainPrecedence
# =============================================================================


class TestChainPrecedence:
    """build_chain orders capability > role setting > table > hierarchy."""

    def test_chain_order(self):
        chain = build_chain()

        assert [type(rule) for rule in chain] == [
            CapabilityGrantRule,
            RestrictionListRule,
            RestrictionListRule,
            HierarchyRule,
        ]
        assert [rule.name for rule in chain] == [
            "capability",
            "role_setting",
            "chat_permission",
            "hierarchy",
        ]

    def test_role_setting_wins_over_table(self):
        chain = build_chain(
            settings_restrictions=["admin"],
            table_restrictions=["teacher"],
        )

        assert resolve("student", "admin", chain) is True
        assert resolve("student", "teacher", chain) is False

    def test_table_used_when_no_role_setting(self):
        chain = build_chain(table_restrictions=["teacher", "student"])

        assert resolve("student", "student", chain) is True
        assert resolve("student", "admin", chain) is False

    def test_capability_wins_over_role_setting(self):
        chain = build_chain(
            has_capability=grants(CAPABILITIES.CHAT_WITH_ANY_ROLE),
            settings_restrictions=[],
        )

        assert resolve("teacher", "super_admin", chain) is True

    def test_empty_chain_denies(self):
        assert resolve("teacher", "student", []) is False
