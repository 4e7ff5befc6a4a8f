"""Domain-level errors for card trees.

Every error carries a short machine-readable ``code`` that the API layer
returns alongside the message, so clients can tell a wrong URL
(``cross_tree``) from a missing row (``not_found``).
"""


class CardTreeError(Exception):
    code = "card_tree_error"


class ValidationError(CardTreeError):
    """A required field is empty or a payload is malformed."""

    code = "validation_error"


class NotFoundError(CardTreeError):
    code = "not_found"


class TreeNotFoundError(NotFoundError):
    def __init__(self, tree_id: int) -> None:
        self.tree_id = tree_id
        super().__init__(f"Tree not found: {tree_id}")


class NodeNotFoundError(NotFoundError):
    def __init__(self, node_id: int) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class AnnotationNotFoundError(NotFoundError):
    def __init__(self, annotation_id: int) -> None:
        self.annotation_id = annotation_id
        super().__init__(f"Annotation not found: {annotation_id}")


class AuthenticationError(CardTreeError):
    """No acting user was forwarded with a mutating request."""

    code = "unauthenticated"


class CrossTreeError(CardTreeError):
    """A node was addressed under a tree (or parent) it does not belong to."""

    code = "cross_tree"


class ResolutionError(CardTreeError):
    """A batch payload has dangling or cyclic temp-id references."""

    code = "resolution_error"

    def __init__(
        self,
        tree_index: int,
        dangling: list[str] | None = None,
        cycles: list[list[str]] | None = None,
    ) -> None:
        self.tree_index = tree_index
        self.dangling = dangling or []
        self.cycles = cycles or []
        parts = []
        if self.dangling:
            parts.append(f"unknown parent temp ids {self.dangling}")
        for cycle in self.cycles:
            parts.append("cycle " + " -> ".join(cycle + cycle[:1]))
        super().__init__(
            f"Tree payload {tree_index} cannot be resolved: " + "; ".join(parts)
        )


class StorageError(CardTreeError):
    """The backing store failed. The message names the operation only."""

    code = "storage_error"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Storage failure during {operation}")
