"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity or path does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """A backing store failed while serving a request."""


class MissingHeaderError(ValidationError):
    """A ledger sheet lacks a column the reconciliation depends on."""


class PreconditionError(DomainError):
    """A run cannot start because required state has not been prepared."""


class LockTimeoutError(DomainError):
    """A named lock could not be acquired within its timeout."""


def required_header_not_found(header_name: str, headers: list[str]) -> str:
    """Return message for a missing required ledger header."""
    return (
        f"Required header '{header_name}' not found in spreadsheet. "
        f"Available headers: [{', '.join(headers)}]"
    )


def partition_map_not_cached() -> str:
    """Return message when the bank partition map has not been discovered."""
    return "Folder structure not cached. Run scan first."


def lock_not_acquired(lock_id: str, timeout: float) -> str:
    """Return message for a lock acquisition timeout."""
    return f"Failed to acquire lock for {lock_id} within {timeout:g}s"


def partition_exists(bank_name: str) -> str:
    """Return message for a duplicate bank partition."""
    return f"Partition for bank '{bank_name}' already exists"
