"""Import all ORM models so Base.metadata knows every table."""

from uniadmin.db.models.org_unit import OrganizationalUnitRow
from uniadmin.db.models.user import UserRow

__all__ = ["OrganizationalUnitRow", "UserRow"]
