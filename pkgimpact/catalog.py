"""
Package Catalog

In-memory lookup of every installed package's identity, name and size,
built once per run from the installed package listing.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pkgimpact.errors import DuplicateIdentity, MultipleMatches, UnknownIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Package:
    """An installed package"""

    identity: str  # NEVRA, unique per installed package
    name: str
    size: int  # bytes


class PackageCatalog:
    """
    Owns every Package record for the lifetime of one run.

    Lookups by identity are O(1). A secondary index maps a logical name to
    the identities carrying it so name ambiguity can be detected.
    """

    def __init__(self):
        self._packages: dict[str, Package] = {}
        self._by_name: dict[str, list[str]] = {}

    @classmethod
    def load(cls, raw_entries: Iterable[tuple[str, str, int]]) -> "PackageCatalog":
        """
        Build a catalog from (identity, name, size) triples.

        Raises:
            DuplicateIdentity: If an identity is listed twice
            ValueError: If a size is negative
        """
        catalog = cls()
        for identity, name, size in raw_entries:
            catalog._add(Package(identity=identity, name=name, size=int(size)))

        for identities in catalog._by_name.values():
            identities.sort()

        logger.info(f"Package catalog loaded: {len(catalog)} packages")
        return catalog

    def _add(self, package: Package) -> None:
        if package.identity in self._packages:
            raise DuplicateIdentity(package.identity)
        if package.size < 0:
            raise ValueError(f"Negative size for package '{package.identity}': {package.size}")

        self._packages[package.identity] = package
        self._by_name.setdefault(package.name, []).append(package.identity)

    def get(self, identity: str) -> Package:
        try:
            return self._packages[identity]
        except KeyError:
            raise UnknownIdentity(identity) from None

    def resolve_name(self, identity: str) -> str:
        """Return the logical name of an installed package"""
        return self.get(identity).name

    def size_of(self, identity: str) -> int:
        """Return the declared size in bytes of an installed package"""
        return self.get(identity).size

    def identity_for_name(self, name: str) -> str:
        """
        Map a logical package name to the single identity that carries it.

        Raises:
            UnknownIdentity: If no installed package has this name
            MultipleMatches: If several installed identities share the name
        """
        identities = self._by_name.get(name)
        if not identities:
            raise UnknownIdentity(name)
        if len(identities) > 1:
            raise MultipleMatches(name, list(identities))
        return identities[0]

    def identities(self) -> list[str]:
        """All identities in lexicographic order"""
        return sorted(self._packages)

    def __contains__(self, identity: str) -> bool:
        return identity in self._packages

    def __len__(self) -> int:
        return len(self._packages)
