TITLE = "OrgAuth"

SUMMARY = "Organization-aware login, session and access control service"

TAGS_METADATA = [
    {
        "name": "authentication",
        "description": "Login, callback and logout. **Sessions** are created here.",
    },
    {
        "name": "organizations",
        "description": (
            "Organization context and selection. Member administration requires the"
            " admin role in the organization."
        ),
    },
    {
        "name": "invitations",
        "description": "Invite users into an organization you belong to.",
    },
    {
        "name": "pages",
        "description": "Data loaders for the front-end pages.",
    },
]
