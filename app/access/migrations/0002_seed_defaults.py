# Generated manually - Seed default chat permissions and capability catalog

from django.db import migrations

CHAT_PERMISSIONS = [
    ("super_admin", ["super_admin", "admin", "teacher", "student"], None),
    ("admin", ["super_admin", "admin", "teacher", "student"], 500),
    ("teacher", ["admin", "teacher", "student"], 200),
    ("student", ["teacher"], 50),
]

PERMISSIONS = [
    ("chat_with_any_role", "communication", "Can chat with users of any role"),
    ("chat_cross_hierarchy", "communication", "Can chat across role hierarchy levels"),
    ("create_users", "user_management", "Can create new users"),
    ("manage_lower_roles", "user_management", "Can manage users of lower roles"),
    ("view_all_conversations", "administration", "Can view all conversations in the system"),
    ("delete_messages", "moderation", "Can delete messages"),
    ("ban_users", "moderation", "Can ban or suspend users"),
    ("modify_user_roles", "administration", "Can modify user roles"),
    ("access_admin_panel", "administration", "Can access administrative panel"),
    ("broadcast_messages", "communication", "Can send broadcast messages to all users"),
]


def seed_defaults(apps, schema_editor):
    """Create one ChatPermission per role, the catalog, and super_admin grants."""
    ChatPermission = apps.get_model("access", "ChatPermission")
    Permission = apps.get_model("access", "Permission")
    RolePermission = apps.get_model("access", "RolePermission")

    for role, can_chat_with, limit in CHAT_PERMISSIONS:
        ChatPermission.objects.update_or_create(
            role=role,
            defaults={"can_chat_with": can_chat_with, "daily_message_limit": limit},
        )

    for name, category, description in PERMISSIONS:
        permission, _ = Permission.objects.update_or_create(
            name=name,
            defaults={"category": category, "description": description},
        )
        RolePermission.objects.get_or_create(role="super_admin", permission=permission)


def remove_defaults(apps, schema_editor):
    """Remove seeded rows."""
    ChatPermission = apps.get_model("access", "ChatPermission")
    Permission = apps.get_model("access", "Permission")

    ChatPermission.objects.filter(role__in=[row[0] for row in CHAT_PERMISSIONS]).delete()
    Permission.objects.filter(name__in=[row[0] for row in PERMISSIONS]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("access", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_defaults, remove_defaults),
    ]
