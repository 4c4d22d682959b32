from __future__ import annotations
import os
import tempfile
import unittest

import numpy as np

import modelang_core
from modelang_core.distributions import Dirichlet, LogNormal, Prior
from modelang_core.evolution import MRCAPrior, TreeLikelihood, YuleModel
from modelang_core.exceptions import CastTypeError, ConfigurationError
from modelang_core.objects import (
    Alignment,
    IntegerParameter,
    RealParameter,
    TaxonSet,
    Tree,
)

PRIMATES = """#NEXUS
BEGIN DATA;
  DIMENSIONS NTAX=3 NCHAR=8;
  FORMAT DATATYPE=DNA;
  MATRIX
    human   ACGTACGT
    chimp   ACGTACGA
    gorilla ACGAACGA
  ;
END;
"""

TREE_MODEL = """
@data Alignment D = nexus(file="primates.nex");
Tree tree ~ YuleModel(birthDiffRate=1.0, taxonset=TaxonSet(alignment=D));
@observed(data=D)
Alignment X ~ TreeLikelihood(tree=tree);
"""

CALIBRATED_MODEL = """
@data Alignment D = nexus(file="primates.nex");
TaxonSet taxa = TaxonSet(alignment=D);
Tree tree ~ YuleModel(birthDiffRate=1.0, taxonset=taxa);
@calibration(taxonset=taxa)
Tree tree ~ MRCAPrior(taxonset=taxa, monophyletic=true, distr=LogNormal(M=1.0, S=0.5));
"""


class ModelBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        with open(os.path.join(self._tmp.name, "primates.nex"), "w", encoding="utf-8") as f:
            f.write(PRIMATES)

    def _builder(self, seed: int = 42) -> modelang_core.ModelBuilder:
        return modelang_core.ModelBuilder(
            loader=modelang_core.NexusLoader(base_path=self._tmp.name),
            rng=np.random.default_rng(seed),
        )

    def _build(self, source: str) -> modelang_core.ModelBuilder:
        builder = self._builder()
        builder.build_from_source(source)
        return builder

    # --- Plain declarations ---

    def test_primitive_declaration_keeps_raw_literal(self) -> None:
        builder = self._build("Real x = 1.0;")
        self.assertEqual(builder.get_object("x"), 1.0)
        self.assertIsInstance(builder.get_object("x"), float)
        self.assertEqual(builder.get_random_variables(), [])
        self.assertEqual(builder.get_state_nodes(), {})

    def test_builtin_declarations_convert_leniently(self) -> None:
        builder = self._build('Integer n = "7"; Boolean b = "yes"; Double d = 3;')
        self.assertEqual(builder.get_object("n"), 7)
        self.assertIs(builder.get_object("b"), True)
        self.assertEqual(builder.get_object("d"), 3.0)

    def test_parameter_declaration_from_literal(self) -> None:
        builder = self._build("RealParameter rate = 0.3;")
        rate = builder.get_object("rate")
        self.assertIsInstance(rate, RealParameter)
        self.assertEqual(rate.id, "rate")
        self.assertEqual(rate.values, [0.3])
        # declared, not random
        self.assertEqual(builder.registry.get_eligible_state_nodes(), [])

    def test_array_declaration(self) -> None:
        builder = self._build('Double[] xs = [1, 2.5, "3"];')
        self.assertEqual(builder.get_object("xs"), [1.0, 2.5, 3.0])

    def test_object_declaration_and_reference(self) -> None:
        builder = self._build(
            "\n".join(
                [
                    "JukesCantor jc = JukesCantor();",
                    "SiteModel sm = SiteModel(substModel=jc, gammaCategoryCount=4);",
                    "SiteModel alias = sm;",
                ]
            )
        )
        jc = builder.get_object("jc")
        sm = builder.get_object("sm")
        self.assertEqual(sm.id, "sm")
        self.assertIs(sm.get_input_value("substModel"), jc)
        self.assertIs(builder.get_object("alias"), sm)

    def test_nexus_declaration(self) -> None:
        builder = self._build('Alignment D = nexus(file="primates.nex", id="primates");')
        alignment = builder.get_object("D")
        self.assertIsInstance(alignment, Alignment)
        self.assertEqual(alignment.id, "primates")
        self.assertEqual(alignment.get_taxon_count(), 3)

    def test_filtered_alignment_declaration(self) -> None:
        builder = self._build(
            '@data Alignment D = nexus(file="primates.nex");\n'
            'Alignment F = FilteredAlignment(data=D, filter="1-4");\n'
            'Alignment G = FilteredAlignment(data=D, filter="1-40");'
        )
        self.assertEqual(builder.get_object("F").get_site_count(), 4)
        self.assertIs(builder.get_object("F").get_input_value("data"), builder.get_object("D"))
        self.assertFalse(builder.registry.contains("G"))

    def test_implementation_not_assignable_raises(self) -> None:
        builder = self._builder()
        with self.assertRaises(CastTypeError):
            builder.build_from_source("Tree t = HKY(kappa=2.0);")

    def test_array_literal_for_scalar_type_raises(self) -> None:
        builder = self._builder()
        with self.assertRaises(CastTypeError):
            builder.build_from_source("Double x = [1.0, 2.0];")

    def test_failed_statements_are_skipped(self) -> None:
        builder = self._builder()
        with self.assertLogs("modelang_core.builder", level="ERROR") as logs:
            builder.build_from_source(
                "\n".join(
                    [
                        "Foo f = Foo(a=1);",
                        "JukesCantor jc = JukesCantor(kapa=2.0);",
                        "RealParameter ok = 1.0;",
                    ]
                )
            )
        self.assertEqual(len(logs.output), 2)
        self.assertIn("'f'", logs.output[0])
        self.assertIn("'jc'", logs.output[1])
        self.assertFalse(builder.registry.contains("f"))
        self.assertFalse(builder.registry.contains("jc"))
        self.assertTrue(builder.registry.contains("ok"))

    # --- Stochastic assignments ---

    def test_parametric_prior_creates_three_objects(self) -> None:
        builder = self._build("RealParameter x ~ LogNormal(M=0.0, S=1.0);")
        x = builder.get_object("x")
        dist = builder.get_object("xDist")
        prior = builder.get_object("xPrior")
        self.assertIsInstance(x, RealParameter)
        self.assertIsInstance(dist, LogNormal)
        self.assertIsInstance(prior, Prior)
        self.assertEqual(x.get_dimension(), 1)
        self.assertGreater(x.get_value(), 0.0)
        self.assertIs(prior.get_input_value("x"), x)
        self.assertIs(prior.get_input_value("distr"), dist)
        self.assertEqual(builder.get_random_variables(), ["x"])
        self.assertEqual(builder.registry.get_eligible_state_nodes(), [x])
        self.assertEqual(builder.get_distributions(), [prior])
        self.assertEqual(builder.registry.get_distribution_associations("x"), ["xPrior"])

    def test_parametric_draw_sets_dimension(self) -> None:
        builder = self._build(
            "RealParameter freqs ~ Dirichlet(alpha=[1.0, 1.0, 1.0, 1.0]);\n"
            "IntegerParameter k ~ Poisson(lambda=3.0);"
        )
        freqs = builder.get_object("freqs")
        self.assertEqual(freqs.get_dimension(), 4)
        self.assertAlmostEqual(sum(freqs.values), 1.0)
        self.assertIsInstance(builder.get_object("freqsDist"), Dirichlet)
        k = builder.get_object("k")
        self.assertIsInstance(k, IntegerParameter)
        self.assertIsInstance(k.get_value(), int)

    def test_second_distribution_reuses_variable(self) -> None:
        builder = self._build(
            "RealParameter x ~ LogNormal(M=0.0, S=1.0);\n"
            "RealParameter x ~ Normal(mean=1.0, sigma=2.0);"
        )
        x = builder.get_object("x")
        first = builder.get_object("xPrior")
        second = builder.get_object("xPrior1")
        self.assertIs(first.get_input_value("x"), x)
        self.assertIs(second.get_input_value("x"), x)
        self.assertEqual(
            builder.registry.get_distribution_associations("x"), ["xPrior", "xPrior1"]
        )

    def test_generic_assignment_defaults_parameter_value(self) -> None:
        builder = self._build("RealParameter r ~ Prior(distr=Exponential(mean=1.0));")
        r = builder.get_object("r")
        self.assertEqual(r.values, [0.5])
        prior = builder.get_object("rPrior")
        self.assertIs(prior.get_input_value("x"), r)
        self.assertFalse(builder.registry.contains("rDist"))

    def test_tree_prior_routes_taxon_set_to_tree(self) -> None:
        builder = self._build(TREE_MODEL)
        tree = builder.get_object("tree")
        yule = builder.get_object("treePrior")
        self.assertIsInstance(yule, YuleModel)
        self.assertIs(yule.get_input_value("tree"), tree)
        self.assertIsInstance(tree.get_taxonset(), TaxonSet)
        self.assertEqual(tree.get_taxonset().get_taxon_count(), 3)
        self.assertEqual(yule.get_input_value("birthDiffRate").values, [1.0])

    # --- Observed data ---

    def test_observed_variable_aliases_data(self) -> None:
        builder = self._build(TREE_MODEL)
        data = builder.get_object("D")
        self.assertIs(builder.get_object("X"), data)
        self.assertEqual(builder.get_data_annotated_variables(), ["D"])
        self.assertEqual(builder.get_observed_variables(), ["X"])
        self.assertEqual(builder.registry.get_data_reference("X"), "D")

        likelihood = builder.get_object("XLikelihood")
        self.assertIsInstance(likelihood, TreeLikelihood)
        self.assertIs(likelihood.get_input_value("data"), data)
        self.assertIs(likelihood.get_input_value("tree"), builder.get_object("tree"))

        eligible = builder.registry.get_eligible_state_nodes()
        self.assertEqual([n.id for n in eligible], ["tree"])
        self.assertFalse(any(n is data for n in eligible))

    def test_observed_without_data_annotation_fails(self) -> None:
        sources = [
            "@observed(data=Y) RealParameter Z ~ Normal(mean=0.0, sigma=1.0);",
            "Real Y = 1.0;\n@observed(data=Y) RealParameter Z ~ Normal(mean=0.0, sigma=1.0);",
        ]
        for source in sources:
            with self.subTest(source=source):
                with self.assertRaises(ConfigurationError) as ctx:
                    self._builder().build_from_source(source)
                self.assertIn("'Y'", str(ctx.exception))

    def test_malformed_annotations_fail(self) -> None:
        sources = [
            "@data Alignment D ~ TreeLikelihood();",
            "@observed RealParameter Z ~ Normal();",
            "@observed(data=D) Real Z = 1.0;",
        ]
        for source in sources:
            with self.subTest(source=source):
                with self.assertRaises(ConfigurationError):
                    self._builder().build_from_source(source)

    def test_incompatible_data_reference_fails(self) -> None:
        builder = self._builder()
        with self.assertRaises(ConfigurationError) as ctx:
            builder.build_from_source(
                '@data Alignment D = nexus(file="primates.nex");\n'
                "@observed(data=D) Tree X ~ YuleModel();"
            )
        self.assertIn("not compatible", str(ctx.exception))

    def test_unknown_annotation_is_ignored(self) -> None:
        builder = self._builder()
        with self.assertLogs("modelang_core.builder", level="WARNING"):
            builder.build_from_source("@mystery RealParameter r = 1.0;")
        self.assertTrue(builder.registry.contains("r"))

    # --- Multiple distributions on one tree ---

    def test_calibrated_tree_is_constructed_once(self) -> None:
        builder = self._build(CALIBRATED_MODEL)
        tree = builder.get_object("tree")
        yule = builder.get_object("treePrior")
        mrca = builder.get_object("treePrior1")
        self.assertIsInstance(yule, YuleModel)
        self.assertIsInstance(mrca, MRCAPrior)
        self.assertIs(yule.get_input_value("tree"), tree)
        self.assertIs(mrca.get_input_value("tree"), tree)
        self.assertIs(mrca.get_input_value("taxonset"), builder.get_object("taxa"))
        self.assertIs(mrca.get_input_value("monophyletic"), True)
        self.assertTrue(mrca.has_distribution())
        self.assertEqual(
            builder.registry.get_distribution_associations("tree"),
            ["treePrior", "treePrior1"],
        )
        calibrations = builder.registry.get_calibrations("tree")
        self.assertEqual(len(calibrations), 1)
        self.assertEqual(calibrations[0].taxonset, "taxa")
        self.assertEqual(builder.get_random_variables(), ["tree"])

    def test_calibration_on_non_tree_is_ignored(self) -> None:
        builder = self._builder()
        with self.assertLogs("modelang_core.builder", level="WARNING"):
            builder.build_from_source(
                "@calibration(taxonset=taxa) RealParameter x ~ Normal(mean=0.0, sigma=1.0);"
            )
        self.assertEqual(builder.registry.get_calibrations("x"), [])
        self.assertTrue(builder.registry.contains("xPrior"))

    # --- Whole-build properties ---

    def test_registry_holds_every_variable_name(self) -> None:
        for source in (TREE_MODEL, CALIBRATED_MODEL):
            with self.subTest(source=source):
                builder = self._build(source)
                program = modelang_core.parse_model(source)
                names = set()
                for stmt in program.statements:
                    inner = getattr(stmt, "statement", stmt)
                    names.add(inner.variable_name)
                self.assertTrue(names <= set(builder.get_all_objects()))

    def test_rebuild_yields_same_ids_and_classification(self) -> None:
        builder = self._builder()
        first = builder.build_from_source(TREE_MODEL)
        random_vars = builder.get_random_variables()
        observed = builder.get_observed_variables()
        second = builder.build_from_source(TREE_MODEL)
        self.assertEqual(list(first), list(second))
        self.assertEqual(builder.get_random_variables(), random_vars)
        self.assertEqual(builder.get_observed_variables(), observed)

    def test_rebuild_reloads_data_files(self) -> None:
        builder = self._builder()
        source = '@data Alignment D = nexus(file="primates.nex");'
        builder.build_from_source(source)
        first = builder.get_object("D")
        with open(os.path.join(self._tmp.name, "primates.nex"), "w", encoding="utf-8") as f:
            f.write(
                PRIMATES.replace("NTAX=3", "NTAX=5").replace(
                    "    gorilla ACGAACGA\n",
                    "    gorilla ACGAACGA\n    orang   ACCAACGA\n    gibbon  ACCAACCA\n",
                )
            )
        builder.build_from_source(source)
        second = builder.get_object("D")
        self.assertIsNot(first, second)
        self.assertEqual(first.get_taxon_count(), 3)
        self.assertEqual(second.get_taxon_count(), 5)

    def test_build_logs_registry_statistics(self) -> None:
        builder = self._builder()
        with self.assertLogs("modelang_core.builder", "INFO") as logs:
            builder.build_from_source("RealParameter x ~ LogNormal(M=0.0, S=1.0);")
        self.assertTrue(any("Registry statistics:" in line for line in logs.output))

    def test_injected_empty_catalog_is_kept(self) -> None:
        catalog = modelang_core.TypeCatalog()
        self.assertEqual(len(catalog), 0)
        builder = modelang_core.ModelBuilder(catalog=catalog)
        self.assertIs(builder.catalog, catalog)
        self.assertIs(builder.adapter.catalog, catalog)
        self.assertIs(builder.resolver.catalog, catalog)
        self.assertIs(modelang_core.FrameworkAdapter(catalog).catalog, catalog)
        self.assertIs(modelang_core.NameResolver(catalog).catalog, catalog)

    def test_prior_ids_never_collide(self) -> None:
        builder = self._build(
            "RealParameter x ~ LogNormal(M=0.0, S=1.0);\n"
            "RealParameter xPrior = 2.0;\n"
            "RealParameter x ~ Normal(mean=1.0, sigma=2.0);"
        )
        self.assertIsInstance(builder.get_object("xPrior"), RealParameter)
        self.assertIsInstance(builder.get_object("xPrior1"), Prior)
        self.assertEqual(
            builder.registry.get_distribution_associations("x"), ["xPrior", "xPrior1"]
        )

    def test_imports_steer_resolution(self) -> None:
        builder = self._build(
            "import beast.base.inference.distribution.Normal;\n"
            "requires BEAST.base;\n"
            "RealParameter x ~ Normal(mean=0.0, sigma=1.0);"
        )
        self.assertTrue(builder.registry.contains("xPrior"))

    def test_build_from_file_sets_data_base_path(self) -> None:
        path = os.path.join(self._tmp.name, "model.ml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(TREE_MODEL)
        builder = modelang_core.ModelBuilder(rng=np.random.default_rng(3))
        objects = builder.build_from_file(path)
        self.assertIn("D", objects)
        self.assertEqual(builder.loader.base_path, self._tmp.name)


if __name__ == "__main__":
    unittest.main(verbosity=2)
