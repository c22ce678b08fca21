class RulesError(Exception):
    """Base class for everything the rules engine raises internally."""


class NoIdentity(RulesError):
    """The caller is anonymous but the operation needs a uid."""


class InvalidPath(RulesError):
    """The path does not match any recognised collection layout."""


class NotFound(RulesError):
    """A document needed to reach a decision does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}")
        self.path = path


class StoreUnavailable(RulesError):
    """The document store failed or missed its deadline."""
