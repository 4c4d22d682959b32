from __future__ import annotations
import unittest

import modelang_core
from modelang_core.catalog import BASE, CATALOG_VERSION
from modelang_core.distributions import Normal, Prior
from modelang_core.exceptions import ResolutionError
from modelang_core.inference import UniformOperator
from modelang_core.models import Calibration
from modelang_core.objects import RealParameter, Tree


class CatalogTests(unittest.TestCase):
    def test_default_catalog_contents(self) -> None:
        catalog = modelang_core.TypeCatalog.default()
        self.assertEqual(catalog.version, CATALOG_VERSION)
        self.assertIn(f"{BASE}.inference.parameter.RealParameter", catalog)
        self.assertIs(catalog.load(f"{BASE}.evolution.tree.Tree"), Tree)
        self.assertIn("Uniform", catalog.package_members(f"{BASE}.evolution.operator"))
        self.assertEqual(
            catalog.qualified_name_of(Prior), f"{BASE}.inference.distribution.Prior"
        )
        self.assertEqual(catalog.plugin_packages("BICEPS"), [f"{BASE}.evolution.operator"])
        self.assertIsNone(catalog.plugin_packages("NoSuchPlugin"))
        self.assertGreater(len(catalog), 40)

    def test_load_unknown_raises(self) -> None:
        catalog = modelang_core.TypeCatalog.default()
        with self.assertRaises(ResolutionError) as ctx:
            catalog.load("beast.base.Nope")
        self.assertIn("Class not found: beast.base.Nope", str(ctx.exception))

    def test_register_extends_catalog(self) -> None:
        catalog = modelang_core.TypeCatalog()
        catalog.register("my.pkg.Thing", Normal)
        catalog.register("my.pkg.Thing", Normal)
        self.assertTrue(catalog.exists("my.pkg.Thing"))
        self.assertEqual(catalog.package_members("my.pkg"), ["Thing"])


class NameResolverTests(unittest.TestCase):
    def test_fallback_packages(self) -> None:
        resolver = modelang_core.NameResolver()
        self.assertEqual(
            resolver.resolve_class_name("RealParameter"),
            f"{BASE}.inference.parameter.RealParameter",
        )
        self.assertEqual(
            resolver.resolve_class_name("YuleModel"),
            f"{BASE}.evolution.speciation.YuleModel",
        )
        # distribution package is probed before the operator package
        self.assertEqual(
            resolver.resolve_class_name("Uniform"),
            f"{BASE}.inference.distribution.Uniform",
        )

    def test_passthrough_names(self) -> None:
        resolver = modelang_core.NameResolver()
        for name in ("my.pkg.Thing", "Real", "Int", "Bool", "Double", "String", "boolean"):
            with self.subTest(name=name):
                self.assertEqual(resolver.resolve_class_name(name), name)

    def test_array_names_resolve_their_component(self) -> None:
        resolver = modelang_core.NameResolver()
        self.assertEqual(resolver.resolve_class_name("Double[]"), "Double[]")
        self.assertEqual(
            resolver.resolve_class_name("RealParameter[]"),
            f"{BASE}.inference.parameter.RealParameter[]",
        )

    def test_explicit_import_wins(self) -> None:
        resolver = modelang_core.NameResolver()
        resolver.add_import(f"{BASE}.evolution.operator.Uniform")
        self.assertEqual(
            resolver.resolve_class_name("Uniform"), f"{BASE}.evolution.operator.Uniform"
        )

    def test_wildcard_import_wins_over_fallbacks(self) -> None:
        resolver = modelang_core.NameResolver()
        self.assertEqual(
            resolver.resolve_class_name("Uniform"),
            f"{BASE}.inference.distribution.Uniform",
        )
        resolver.add_import(f"{BASE}.evolution.operator", wildcard=True)
        self.assertEqual(
            resolver.resolve_class_name("Uniform"), f"{BASE}.evolution.operator.Uniform"
        )
        adapter = modelang_core.FrameworkAdapter()
        self.assertIs(adapter.load_type(resolver.resolve_class_name("Uniform")), UniformOperator)

    def test_unresolved_name_is_returned_and_cached(self) -> None:
        resolver = modelang_core.NameResolver()
        with self.assertLogs("modelang_core.resolver", level="WARNING") as logs:
            self.assertEqual(resolver.resolve_class_name("Nope"), "Nope")
        self.assertIn("Could not resolve type name 'Nope'", logs.output[0])
        self.assertEqual(resolver._cache["Nope"], "Nope")

    def test_known_types_resolve_with_empty_catalog(self) -> None:
        resolver = modelang_core.NameResolver(modelang_core.TypeCatalog())
        resolver.add_import(f"{BASE}.evolution.alignment", wildcard=True)
        self.assertEqual(
            resolver.resolve_class_name("Alignment"), f"{BASE}.evolution.alignment.Alignment"
        )
        self.assertEqual(resolver.resolve_class_name("Sequence"), "Sequence")

    def test_requires_adds_plugin_packages_once(self) -> None:
        resolver = modelang_core.NameResolver()
        resolver.add_requires("BEAST.base")
        resolver.add_requires("BEAST.base")
        self.assertEqual(
            resolver.wildcard_imports,
            [
                f"{BASE}.inference.parameter",
                f"{BASE}.inference.distribution",
                f"{BASE}.evolution.tree",
            ],
        )
        resolver.add_requires("BICEPS")
        self.assertEqual(
            resolver.resolve_class_name("Uniform"),
            f"{BASE}.inference.distribution.Uniform",
        )

    def test_unknown_plugin_warns(self) -> None:
        resolver = modelang_core.NameResolver()
        with self.assertLogs("modelang_core.resolver", level="WARNING") as logs:
            resolver.add_requires("Mystery")
        self.assertIn("Mystery", logs.output[0])
        self.assertEqual(resolver.wildcard_imports, [])


class ObjectRegistryTests(unittest.TestCase):
    def test_register_rejects_missing_id_or_object(self) -> None:
        registry = modelang_core.ObjectRegistry()
        with self.assertRaises(ValueError):
            registry.register("", RealParameter("x", value=[1.0]))
        with self.assertRaises(ValueError):
            registry.register("x", None)

    def test_classification_indices(self) -> None:
        registry = modelang_core.ObjectRegistry()
        x = RealParameter("x", value=[1.0])
        prior = Prior("xPrior", x=x, distr=Normal())
        registry.register("x", x)
        registry.register("xPrior", prior)
        registry.register("label", "text")
        self.assertEqual(list(registry.state_nodes()), ["x"])
        self.assertEqual(registry.distributions(), [prior])
        self.assertEqual(list(registry.distribution_items()), ["xPrior"])
        self.assertEqual(len(registry), 3)

        # re-registering under the same id drops the stale classification
        registry.register("x", 2.0)
        self.assertEqual(registry.state_nodes(), {})
        self.assertEqual(registry.get("x"), 2.0)

    def test_eligible_state_nodes_exclude_observed(self) -> None:
        registry = modelang_core.ObjectRegistry()
        a = RealParameter("a", value=[1.0])
        b = RealParameter("b", value=[2.0])
        c = RealParameter("c", value=[3.0])
        for obj in (a, b, c):
            registry.register(obj.id, obj)
        registry.mark_as_random_variable("b")
        registry.mark_as_random_variable("a")
        registry.mark_as_random_variable("c")
        registry.mark_as_random_variable("ghost")
        registry.mark_as_observed_variable("c", "D")
        self.assertEqual(registry.get_eligible_state_nodes(), [b, a])
        self.assertEqual(registry.get_data_reference("c"), "D")
        self.assertTrue(registry.is_random_variable("c"))
        self.assertFalse(registry.is_random_variable("x"))
        self.assertTrue(registry.is_observed_variable("c"))
        self.assertFalse(registry.is_data_annotated("c"))

    def test_associations_and_calibrations(self) -> None:
        registry = modelang_core.ObjectRegistry()
        registry.add_distribution_association("tree", "treePrior")
        registry.add_distribution_association("tree", "treePrior1")
        registry.add_distribution_association("tree", "treePrior")
        self.assertEqual(
            registry.get_distribution_associations("tree"), ["treePrior", "treePrior1"]
        )
        self.assertEqual(registry.get_distribution_associations("other"), [])
        registry.add_calibration("tree", Calibration(taxonset="clade"))
        self.assertEqual(registry.get_calibrations("tree")[0].taxonset, "clade")
        self.assertFalse(registry.get_calibrations("tree")[0].has_distribution())

    def test_statistics_and_clear(self) -> None:
        registry = modelang_core.ObjectRegistry()
        registry.register("x", RealParameter("x", value=[1.0]))
        registry.mark_as_random_variable("x")
        registry.mark_as_data_annotated("D")
        self.assertEqual(
            registry.get_statistics(),
            "Registry statistics: 1 objects, 1 state nodes (1 random), "
            "0 distributions, 0 observed variables, 1 data-annotated variables",
        )
        registry.clear()
        self.assertEqual(len(registry), 0)
        self.assertEqual(registry.get_random_variables(), [])
        self.assertEqual(registry.get_data_annotated_variables(), [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
