"""
API Dependencies
Authentication and authorization via Atlas SSO
"""
from atams.sso import create_atlas_client, create_auth_dependencies

from app.core.config import settings

atlas_client = create_atlas_client(settings)
get_current_user, require_auth, require_min_role_level, require_role_level = create_auth_dependencies(atlas_client)

__all__ = [
    "atlas_client",
    "get_current_user",
    "require_auth",
    "require_min_role_level",
    "require_role_level",
]
