"""Typed outcomes for band governance operations.

Every expected failure of a governance operation is one of these exceptions.
They carry the HTTP status and a stable machine code so the API layer can
render them without inspecting messages.
"""

from fastapi import status


class BandGovernanceError(Exception):
    """Base class for expected, caller-facing governance failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "bad_request"
    detail: str = "Band governance error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class PermissionDeniedError(BandGovernanceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"
    detail = "Insufficient band permission for this action"


class NotFoundError(BandGovernanceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    detail = "Resource not found"


class AlreadyMemberError(BandGovernanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_member"
    detail = "User is already an active member of this band"


class DuplicateInvitationError(BandGovernanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_invitation"
    detail = "User already has a pending invitation to this band"

    def __init__(self, detail: str | None = None, *, existing_invitation_id: str | None = None) -> None:
        super().__init__(detail)
        self.existing_invitation_id = existing_invitation_id


class DuplicateApplicationError(BandGovernanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_application"
    detail = "User already has a pending application to this band"

    def __init__(self, detail: str | None = None, *, existing_application_id: str | None = None) -> None:
        super().__init__(detail)
        self.existing_application_id = existing_application_id


class InvalidStateError(BandGovernanceError):
    """The record was already resolved, possibly by a concurrent request."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"
    detail = "Record is no longer in a state that allows this action"


class InvalidOrExpiredError(InvalidStateError):
    code = "invalid_or_expired"
    detail = "Invitation is no longer pending or has expired"


class LastLeaderProtectionError(BandGovernanceError):
    status_code = status.HTTP_409_CONFLICT
    code = "last_leader_protection"
    detail = "A band must keep at least one active leader; promote another member first"


class ValidationFailedError(BandGovernanceError):
    status_code = 422
    code = "validation_error"
    detail = "Validation failed"
