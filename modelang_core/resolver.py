import logging
from typing import Dict, List, Optional, Set

from .catalog import BASE, TypeCatalog
from .types import TypeCanon

logger = logging.getLogger(__name__)

# Assumed present without a catalog probe.
KNOWN_UNSAFE = {
    f"{BASE}.evolution.alignment.Alignment",
    f"{BASE}.evolution.alignment.FilteredAlignment",
}

FALLBACK_PACKAGES = [
    f"{BASE}.inference.parameter",
    f"{BASE}.inference.distribution",
    f"{BASE}.inference",
    f"{BASE}.evolution.tree",
    f"{BASE}.evolution.tree.coalescent",
    f"{BASE}.evolution.speciation",
    f"{BASE}.evolution.substitutionmodel",
    f"{BASE}.evolution.sitemodel",
    f"{BASE}.evolution.alignment",
    f"{BASE}.evolution.likelihood",
    f"{BASE}.evolution.branchratemodel",
    f"{BASE}.evolution.operator",
    f"{BASE}.inference.operator",
]

# Primitive names the language accepts besides the framework types.
PRIMITIVES = TypeCanon.REAL | TypeCanon.INTEGER | TypeCanon.BOOL | TypeCanon.TEXT | {
    "Real",
    "Int",
    "Bool",
}


class NameResolver:
    """Maps short type names to qualified catalog names."""

    def __init__(self, catalog: Optional[TypeCatalog] = None):
        self.catalog = catalog if catalog is not None else TypeCatalog.default()
        self.explicit_imports: Dict[str, str] = {}
        self.wildcard_imports: List[str] = []
        self._cache: Dict[str, str] = {}
        self._processed_plugins: Set[str] = set()

    def add_import(self, package_name: str, wildcard: bool = False) -> None:
        if wildcard:
            self.add_wildcard_import(package_name)
        else:
            self.add_explicit_import(package_name)

    def add_explicit_import(self, qualified_name: str) -> None:
        short_name = qualified_name.rpartition(".")[2]
        self.explicit_imports[short_name] = qualified_name
        self._cache.pop(short_name, None)
        logger.debug("Added explicit import: %s -> %s", short_name, qualified_name)

    def add_wildcard_import(self, package_name: str) -> None:
        if package_name not in self.wildcard_imports:
            self.wildcard_imports.append(package_name)
            self._cache.clear()
        logger.debug("Added wildcard import: %s.*", package_name)

    def add_requires(self, plugin_name: str) -> None:
        if plugin_name in self._processed_plugins:
            logger.debug("Plugin already processed: %s", plugin_name)
            return
        self._processed_plugins.add(plugin_name)
        packages = self.catalog.plugin_packages(plugin_name)
        if not packages:
            logger.warning("Could not locate any types in plugin: %s", plugin_name)
            return
        for package in packages:
            self.add_wildcard_import(package)
        logger.info("Plugin %s contributed %d packages", plugin_name, len(packages))

    def resolve_class_name(self, name: str) -> str:
        if TypeCanon.is_array(name):
            return self.resolve_class_name(TypeCanon.component_of(name)) + TypeCanon.ARRAY_SUFFIX
        if "." in name or name in PRIMITIVES:
            return name
        if name in self._cache:
            return self._cache[name]

        resolved = self._lookup(name)
        self._cache[name] = resolved
        if resolved == name:
            logger.warning("Could not resolve type name '%s'", name)
        else:
            logger.debug("Resolved %s to %s", name, resolved)
        return resolved

    def _lookup(self, name: str) -> str:
        if name in self.explicit_imports:
            return self.explicit_imports[name]
        for package in self.wildcard_imports:
            candidate = f"{package}.{name}"
            if self._exists(candidate):
                return candidate
        for package in FALLBACK_PACKAGES:
            candidate = f"{package}.{name}"
            if self._exists(candidate):
                return candidate
        return name

    def _exists(self, qualified_name: str) -> bool:
        if qualified_name in KNOWN_UNSAFE:
            return True
        return self.catalog.exists(qualified_name)
