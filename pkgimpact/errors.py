"""
Exception hierarchy for pkg-impact.

Every error here is fatal for a run: the CLI reports it and exits without
writing a report.
"""


class PkgImpactError(Exception):
    """Base class for all pkg-impact errors"""

    pass


class CatalogError(PkgImpactError):
    """Raised when installed package metadata is self-contradictory"""

    pass


class DuplicateIdentity(CatalogError):
    """Raised when the same package identity is listed twice"""

    def __init__(self, identity: str):
        super().__init__(f"Duplicate package identity '{identity}'")
        self.identity = identity


class UnknownIdentity(CatalogError):
    """Raised when a package identity or name is not in the catalog"""

    def __init__(self, identity: str):
        super().__init__(f"Unknown package '{identity}'")
        self.identity = identity


class MultipleMatches(CatalogError):
    """Raised when a package name maps to more than one installed identity"""

    def __init__(self, name: str, identities: list[str]):
        super().__init__(
            f"Multiple matches for package name '{name}': {', '.join(identities)}"
        )
        self.name = name
        self.identities = identities


class MalformedGraphRecord(PkgImpactError):
    """Raised when a graph snapshot line cannot be parsed"""

    def __init__(self, path: str, line_number: int, line: str, reason: str):
        super().__init__(
            f"{path}:{line_number}: {reason}: {line!r}; rebuild the snapshot with --refresh"
        )
        self.path = path
        self.line_number = line_number
        self.line = line


class GraphCatalogMismatch(PkgImpactError):
    """Raised when the graph and the installed package set disagree"""

    def __init__(self, identity: str, root: str | None = None, missing_record: bool = False):
        if missing_record:
            message = f"Graph has no record for installed package '{identity}'"
        else:
            message = f"Graph references '{identity}' which is not installed"
        if root:
            message += f" (reached from '{root}')"
        super().__init__(message + "; the graph snapshot is stale, rebuild it with --refresh")
        self.identity = identity
        self.root = root
        self.missing_record = missing_record


class QueryError(PkgImpactError):
    """Raised when the package manager cannot answer a query"""

    pass


class PackageQueryError(QueryError):
    """Raised when listing installed packages fails"""

    pass


class DependencyQueryError(QueryError):
    """Raised when a reverse dependency query fails or times out"""

    def __init__(self, package: str, reason: str):
        super().__init__(f"Reverse dependency query for '{package}' failed: {reason}")
        self.package = package
        self.reason = reason
