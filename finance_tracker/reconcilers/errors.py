"""Exceptions raised by the reconcilers. The state is never changed when one is raised."""


class ReconcileError(Exception):
    """Base exception for rejected mutations."""
    pass


class NotFoundError(ReconcileError):
    """The budget, asset, holding or liability id does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class CategoryNotFoundError(ReconcileError):
    """An expense would point at a category the budget does not have."""

    def __init__(self, budget_id: str, category_id: str):
        self.budget_id = budget_id
        self.category_id = category_id
        super().__init__(
            f"Category {category_id} does not exist in budget {budget_id}"
        )


class AssetShapeError(ReconcileError):
    """A holding operation was aimed at an asset that does not carry holdings."""
    pass
