"""Typed failures raised by the allocation workflow.

Every error belongs to one of four kinds. Callers branch on the kind base
class (or ``kind`` attribute) and render the message; none of these are fatal.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for recoverable workflow failures."""

    kind = "WorkflowError"


class NotFoundError(WorkflowError):
    kind = "NotFound"


class ConflictError(WorkflowError):
    kind = "Conflict"


class IneligibleOperationError(WorkflowError):
    kind = "IneligibleOperation"


class ResourceExhaustedError(WorkflowError):
    kind = "ResourceExhausted"


# --- NotFound ---

class ProjectNotFoundError(NotFoundError):
    """Raised when a project id does not exist."""


class ApplicantNotFoundError(NotFoundError):
    """Raised when a user has no applicant profile."""


class OfficerNotFoundError(NotFoundError):
    """Raised when a user has no officer record."""


class ManagerNotFoundError(NotFoundError):
    """Raised when a user has no manager record."""


class RequestNotFoundError(NotFoundError):
    """Raised when a request id does not exist."""


# --- Conflict ---

class AlreadyAppliedError(ConflictError):
    """Raised when the applicant already holds an active application."""


class AlreadyBookedError(ConflictError):
    """Raised when booking an applicant whose flat is already booked."""


class AlreadyWithdrawingError(ConflictError):
    """Raised when a pending withdrawal already exists for the pair."""


class WithdrawalPendingError(ConflictError):
    """Raised when re-applying to a project with an unresolved withdrawal."""


class DuplicateProjectNameError(ConflictError):
    """Raised when another project already uses the name."""


class ManagerOverlapError(ConflictError):
    """Raised when a manager's project windows would intersect."""


class RegistrationOverlapError(ConflictError):
    """Raised when an officer's registration windows would intersect."""


class AlreadyRegisteredError(ConflictError):
    """Raised when the officer already has an active registration for the project."""


class ApplicantOnProjectError(ConflictError):
    """Raised when an officer tries to register for a project they applied to."""


class EnquiryLockedError(ConflictError):
    """Raised when modifying or re-answering an enquiry that was answered."""


# --- IneligibleOperation ---

class NotEligibleError(IneligibleOperationError):
    """Raised when the eligibility rule rejects the requested flat type."""


class NoActiveApplicationError(IneligibleOperationError):
    """Raised when booking for an applicant with no active application."""


class NoPendingApplicationError(IneligibleOperationError):
    """Raised when withdrawing without an outstanding application."""


class NotYetApprovedError(IneligibleOperationError):
    """Raised when booking before the application was approved."""


class OfficerNotAssignedError(IneligibleOperationError):
    """Raised when the officer does not service the applicant's project."""


class ProjectNotVisibleError(IneligibleOperationError):
    """Raised when registering for or enquiring about a hidden project."""


class InvalidTransitionError(IneligibleOperationError):
    """Raised when a decision is not allowed from the current state."""


class WrongRequestTypeError(IneligibleOperationError):
    """Raised when a request id refers to a request of another type."""


class RoleNotPermittedError(IneligibleOperationError):
    """Raised when the caller's role cannot perform the operation."""


class ProjectOwnershipError(IneligibleOperationError):
    """Raised when a manager acts on a project owned by another manager."""


class ProjectValidationError(IneligibleOperationError, ValueError):
    """Raised when project parameters or report filters are invalid."""


class NotRequestOwnerError(IneligibleOperationError):
    """Raised when modifying a request submitted by another user."""


class EmptyTextError(IneligibleOperationError, ValueError):
    """Raised when an enquiry or answer has no text."""


# --- ResourceExhausted ---

class NoUnitsAvailableError(ResourceExhaustedError):
    """Raised when the requested flat type has no units left."""


class NoOfficerSlotsError(ResourceExhaustedError):
    """Raised when a project has no officer slot left to release or claim."""
