# Security module
from hms.security.auth import (
    CurrentUser, create_access_token, decode_token, get_current_user, require_roles
)

__all__ = [
    'CurrentUser', 'create_access_token', 'decode_token', 'get_current_user', 'require_roles'
]
