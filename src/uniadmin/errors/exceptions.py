"""Custom exception classes for the uniadmin API."""


class UniAdminError(Exception):
    """Base exception for uniadmin."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(UniAdminError):
    """Schema or request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class InvalidArgumentError(ValidationError):
    """Malformed input caught at a value-object construction boundary."""


class NotFoundError(UniAdminError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class UnitNotFoundError(NotFoundError):
    """Organizational unit id does not resolve to a live record."""

    def __init__(self, unit_id: int):
        self.unit_id = unit_id
        super().__init__("OrganizationalUnit", str(unit_id))


class AuthenticationError(UniAdminError):
    """Authentication required or token invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class AuthorizationError(UniAdminError):
    """Insufficient permissions."""

    def __init__(self, message: str = "Insufficient role"):
        super().__init__("AUTHORIZATION_ERROR", message, status_code=403)


class ConflictError(UniAdminError):
    """Resource state conflict."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFLICT", message, details, status_code=409)


class DuplicateUnitError(ConflictError):
    """Another live unit already has the same name and type."""

    def __init__(self, name: str, unit_type: str):
        self.name = name
        self.unit_type = unit_type
        super().__init__(
            f"Organizational unit '{name}' of type '{unit_type}' already exists",
            details={"name": name, "type": unit_type},
        )


class InvalidHierarchyError(UniAdminError):
    """A mutation would break the organizational hierarchy rules.

    The named constructors mirror each rule that can be violated so callers
    and tests can tell the reasons apart through ``details["reason"]``.
    """

    def __init__(self, message: str, details=None):
        super().__init__("INVALID_HIERARCHY", message, details, status_code=422)

    @classmethod
    def invalid_parent_type(cls, child_type: str, parent_type: str) -> "InvalidHierarchyError":
        return cls(
            f"A unit of type '{child_type}' cannot be a child of a unit of type '{parent_type}'",
            details={"reason": "invalid_parent_type", "child_type": child_type, "parent_type": parent_type},
        )

    @classmethod
    def max_depth_exceeded(cls, max_depth: int, depth: int) -> "InvalidHierarchyError":
        return cls(
            f"Maximum hierarchy depth ({max_depth}) exceeded: resulting depth would be {depth}",
            details={"reason": "max_depth_exceeded", "max_depth": max_depth, "depth": depth},
        )

    @classmethod
    def cannot_delete_unit_with_children(cls, unit_name: str, children_count: int) -> "InvalidHierarchyError":
        return cls(
            f"Unit '{unit_name}' has {children_count} child unit(s); delete or move them first",
            details={"reason": "has_children", "children_count": children_count},
        )

    @classmethod
    def unit_has_dependents(cls, unit_name: str, dependency: str) -> "InvalidHierarchyError":
        return cls(
            f"Unit '{unit_name}' still has active dependents: {dependency}",
            details={"reason": "has_dependents", "dependency": dependency},
        )

    @classmethod
    def invalid_structure(cls, reason: str) -> "InvalidHierarchyError":
        return cls(
            f"Invalid hierarchy structure: {reason}",
            details={"reason": "invalid_structure"},
        )


class CircularHierarchyError(InvalidHierarchyError):
    """Reassigning a parent would make a unit its own ancestor."""

    @classmethod
    def circular_reference(cls, unit_name: str, parent_name: str) -> "CircularHierarchyError":
        return cls(
            f"Unit '{unit_name}' cannot be placed under '{parent_name}': it would create a cycle",
            details={"reason": "circular_reference"},
        )

    @classmethod
    def self_reference(cls, unit_name: str) -> "CircularHierarchyError":
        return cls(
            f"Unit '{unit_name}' cannot be its own parent",
            details={"reason": "self_reference"},
        )
