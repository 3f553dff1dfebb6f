"""Domain layer for bankrecon application."""


# Services are imported lazily: the storage interfaces import domain entities,
# so loading services here would make the two packages import each other.
def __getattr__(name):
    if name == "ReconciliationService":
        from bankrecon.domain.reconciliation import ReconciliationService
        return ReconciliationService
    if name == "DefaultMatcher":
        from bankrecon.domain.matcher import DefaultMatcher
        return DefaultMatcher
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["ReconciliationService", "DefaultMatcher"]
