# Generated manually - Initial access control schema

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import access.models

ROLE_CHOICES = [
    ("super_admin", "Super Admin"),
    ("admin", "Admin"),
    ("teacher", "Teacher"),
    ("student", "Student"),
]


def _id_field():
    return models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
        primary_key=True,
        serialize=False,
    )


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ChatPermission",
            fields=[
                *_timestamps(),
                ("id", _id_field()),
                (
                    "role",
                    models.CharField(
                        choices=ROLE_CHOICES,
                        help_text="Role this row configures",
                        max_length=20,
                        unique=True,
                    ),
                ),
                (
                    "can_chat_with",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Roles this role may message",
                        validators=[access.models.validate_role_list],
                    ),
                ),
                (
                    "daily_message_limit",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Messages per day (null for unlimited)",
                        null=True,
                    ),
                ),
            ],
            options={
                "db_table": "access_chat_permission",
                "ordering": ["role"],
            },
        ),
        migrations.CreateModel(
            name="Permission",
            fields=[
                *_timestamps(),
                ("id", _id_field()),
                ("name", models.CharField(max_length=100, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("communication", "Communication"),
                            ("user_management", "User Management"),
                            ("administration", "Administration"),
                            ("moderation", "Moderation"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
            ],
            options={
                "db_table": "access_permission",
                "ordering": ["category", "name"],
            },
        ),
        migrations.CreateModel(
            name="RolePermission",
            fields=[
                *_timestamps(),
                ("id", _id_field()),
                ("role", models.CharField(choices=ROLE_CHOICES, db_index=True, max_length=20)),
                (
                    "permission",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="grants",
                        to="access.permission",
                    ),
                ),
                (
                    "granted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "access_role_permission",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("role", "permission"),
                        name="unique_role_permission",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RoleSetting",
            fields=[
                *_timestamps(),
                ("id", _id_field()),
                ("role", models.CharField(choices=ROLE_CHOICES, db_index=True, max_length=20)),
                ("setting_key", models.CharField(max_length=100)),
                ("setting_value", models.JSONField(blank=True, default=dict)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "access_role_setting",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("role", "setting_key"),
                        name="unique_role_setting_key",
                    )
                ],
            },
        ),
    ]
