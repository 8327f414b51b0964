"""Error hierarchy for trusteeweb runs.

Every error aborts the whole run. A web is either built completely or not
at all, so none of these carry partial results.

Example usage:
    try:
        result = run_web(input_files=["perms.csv"], seeds=["ceo@contoso.com"])
    except TrusteeWebError as e:
        print(f"[!] Error: {e}")
"""


class TrusteeWebError(Exception):
    """Base exception for all trusteeweb errors."""

    pass


class SchemaError(TrusteeWebError):
    """An input source is missing mandatory columns or holds unreadable rows.

    Raised while the relationship table is being constructed, before any
    traversal starts.
    """

    def __init__(self, message: str, source: str = None, missing_columns: list = None):
        super().__init__(message)
        self.source = source
        self.missing_columns = missing_columns or []


class ConfigError(TrusteeWebError, ValueError):
    """A depth or threshold value is out of range (must be >= 1)."""

    pass


class TableLookupError(TrusteeWebError, LookupError):
    """The backing store failed to answer a lookup.

    Fatal to the run: traversal state after a failed level is not trusted.
    """

    pass


class ValidationError(TrusteeWebError, ValueError):
    """A seed identity is empty or not address-shaped."""

    pass


class WebBuildCancelled(TrusteeWebError):
    """Traversal was cancelled or ran past its deadline."""

    pass
