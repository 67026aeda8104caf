"""
OpenAPI schema customizations for drf-spectacular.

Tag naming follows the pattern: [App Name] - [Group Name]
Examples:
- Auth (token obtain/refresh, logout)
- Accounts - Users
- Access - Chat Permissions
- Chat - Messages
"""

# Natural language summaries for simplejwt endpoints
# Maps operation_id to (summary, description)
TOKEN_ENDPOINT_SUMMARIES = {
    "auth_token_create": (
        "Obtain tokens",
        "Authenticate with email and password to receive JWT tokens.",
    ),
    "auth_token_refresh_create": (
        "Refresh access token",
        "Get a new access token using a valid refresh token.",
    ),
}

TAG_DESCRIPTIONS = [
    {
        "name": "Auth",
        "description": "JWT issuance, refresh and logout. Logout also marks the user offline.",
    },
    {
        "name": "Accounts - Users",
        "description": "User directory filtered by who the caller may message, and role-gated user creation.",
    },
    {
        "name": "Access - Chat Permissions",
        "description": "Per-role chat permission table, role settings overrides and capability grants.",
    },
    {
        "name": "Chat - Conversations",
        "description": "Direct conversations between exactly two users.",
    },
    {
        "name": "Chat - Groups",
        "description": "Named groups with admin and member roles.",
    },
    {
        "name": "Chat - Messages",
        "description": "Sending messages, read receipts and daily quota status.",
    },
    {
        "name": "Chat - Presence",
        "description": "Online/offline transitions and heartbeats.",
    },
]


def group_api_endpoints(result, generator, request, public):
    """
    Postprocessing hook to group token endpoints and describe tags.

    Views set their own tags via ``extend_schema``; only the simplejwt
    endpoints, which we do not own, are retagged here.
    """
    paths = result.get("paths", {})

    for path, methods in paths.items():
        for method, operation in methods.items():
            if not isinstance(operation, dict):
                continue

            operation_id = operation.get("operationId", "")

            if operation_id in TOKEN_ENDPOINT_SUMMARIES:
                summary, description = TOKEN_ENDPOINT_SUMMARIES[operation_id]
                operation["summary"] = summary
                operation["description"] = description
                operation["tags"] = ["Auth"]

    result["tags"] = TAG_DESCRIPTIONS
    return result
