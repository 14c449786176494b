"""Page-level access control for the wiki.

This package parses and writes the ``.wikipermissions`` rule file, matches
page names against ordered wildcard rules and combines the verdict with the
wiki-wide rights of a user.
"""

from src.access_control.engine import RULES_FILE_NAME, AccessControlEngine, check_access
from src.access_control.errors import RuleFormatError
from src.access_control.models import AccessRule, PageAccessPermissions
from src.access_control.pattern import GlobPattern
from src.access_control.permission_helper import PagePermissionHelper
from src.access_control.rules_cache import TimedCache
from src.access_control.serializer import parse_rules, serialize_rules

__all__ = [
    # Errors
    'RuleFormatError',
    # Components
    'AccessControlEngine',
    'PagePermissionHelper',
    'GlobPattern',
    'TimedCache',
    'check_access',
    'parse_rules',
    'serialize_rules',
    'RULES_FILE_NAME',
    # Models
    'AccessRule',
    'PageAccessPermissions',
]
