class PersistenceError(Exception):
    """Base exception for storage failures. The domain never interprets these."""

    retryable = False


class OptimisticLockError(PersistenceError):
    """Raised when an account row changed between load and save."""

    retryable = True

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Optimistic lock failed for {entity} {entity_id}")
