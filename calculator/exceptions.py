class BuildError(Exception):
    """Base class for allocator errors."""


class InvalidInput(BuildError, ValueError):
    """Malformed request. The only error that fails an optimize() call."""


class CatalogEmpty(BuildError):
    def __init__(self, category):
        self.category = category
        super().__init__(f"No {category} candidates in catalog")


class BudgetExceeded(BuildError):
    def __init__(self, category, remaining):
        self.category = category
        self.remaining = remaining
        super().__init__(
            f"No in-stock {category} fits the remaining budget ({remaining:.2f})"
        )


class UnresolvedIncompatibility(BuildError):
    def __init__(self, issue, category):
        self.issue = issue
        self.category = category
        super().__init__(issue)
