"""
Custom exceptions for the Internship Portal.

Transition functions raise these instead of generic exceptions so the HTTP
layer can map them to precise status codes and messages:

    from internship_portal.exceptions import InvalidStateError

    try:
        submission_service.submit(submission, now, terms)
    except InvalidStateError as e:
        logger.info(f"Rejected transition: {e}")
        raise

Field-level validation (negative hours, grade out of range) keeps raising
plain ``ValueError`` from ``internship_portal.utils``.
"""

from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base exception for all portal errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidStateError(PortalError):
    """A transition was invoked on an entity whose status does not allow it.

    Raised before any field is touched, so the entity is left exactly as it
    was.
    """

    def __init__(
        self,
        entity: str,
        entity_id: Optional[int],
        status: str,
        transition: str,
        message: Optional[str] = None,
    ):
        self.entity = entity
        self.entity_id = entity_id
        self.status = status
        self.transition = transition
        super().__init__(
            message or f"Cannot {transition} {entity} in status '{status}'",
            code="INVALID_STATE",
            details={
                "entity": entity,
                "entity_id": entity_id,
                "status": status,
                "transition": transition,
            },
        )


class MissingReferenceError(PortalError):
    """A referenced project/student/submission does not exist"""

    def __init__(self, resource_type: str, resource_id: Any):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
