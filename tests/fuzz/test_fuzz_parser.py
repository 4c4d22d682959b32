import unittest
import pytest
from lark.exceptions import UnexpectedInput

import modelang_core

hypothesis = pytest.importorskip("hypothesis")
strategies = hypothesis.strategies

_FRAGMENTS = [
    "Real", "RealParameter", "Tree", "x", "D", "=", "~", ";", "(", ")", "[", "]",
    ",", "@data", "@observed(data=D)", "LogNormal", "M=1.0", "1.0", "-3", '"s"',
    "true", "nexus", "import", "requires", ".*", "//c\n",
]


class FuzzTests(unittest.TestCase):
    @hypothesis.settings(deadline=None)
    @hypothesis.given(strategies.text())
    def test_fuzz_parser_stability(self, trash_text: str) -> None:
        try:
            modelang_core.parse_model(trash_text)
        except UnexpectedInput:
            # Expected failure path for invalid programs.
            return

    @hypothesis.settings(deadline=None)
    @hypothesis.given(strategies.lists(strategies.sampled_from(_FRAGMENTS), max_size=12))
    def test_fuzz_builder_stability(self, fragments: list) -> None:
        source = " ".join(fragments)
        try:
            program = modelang_core.parse_model(source)
        except UnexpectedInput:
            return
        try:
            modelang_core.ModelBuilder().build_model(program)
        except modelang_core.ModelError:
            return


if __name__ == "__main__":
    unittest.main(verbosity=2)
