"""
Accounts app for users and roles.

This app handles:
- The custom User model (AUTH_USER_MODEL = "accounts.User")
- Role-gated user creation and deletion
- Logout (token blacklist + presence offline)

Related apps:
    - access: Decides which roles a user may create and message
    - realtime: Owns the presence fields on User
"""
