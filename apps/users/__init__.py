"""Users app package.

Defines the custom user model with tenant/owner/admin roles and the
internal wallet balance moved by the ledger. Use
``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout
the project.
"""
