"""
Error taxonomy shared by the use cases

The API layer maps these to status codes; datastore errors are never
wrapped and propagate as-is.
"""


class NotFoundError(LookupError):
    """Missing entity, or the caller is not a member (the two are not distinguished)"""
    pass


class ForbiddenError(PermissionError):
    """Caller is a member but their role does not allow the operation"""
    pass


class UserError(ValueError):
    """Caller-correctable input problem, carries a human-readable message"""
    pass


class ConflictError(UserError):
    """Request collides with existing state (already a member, duplicate invitation)"""
    pass
