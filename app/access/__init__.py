"""
Access app for role-based chat permissions.

This app handles:
- Deciding whether one role may message another
- Daily message limits per role
- Capability grants and role/action checks
- Which roles a user may create

Related apps:
    - accounts: User.role is the input to every decision here
    - messaging: The send pipeline authorizes through AccessService

Usage:
    from access.services import AccessService

    AccessService.can_communicate(sender, recipient)
    AccessService.daily_limit_for(sender.role)
"""
