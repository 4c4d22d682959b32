"""State nodes and data objects of the host framework."""

import logging
from typing import Any, Dict, List, Optional

from .exceptions import InputError
from .inputs import Input, ModelObject
from .types import TypeCanon

logger = logging.getLogger(__name__)

_SCALAR = (float, int, bool, str)


class StateNode(ModelObject):
    """A value that is sampled during inference."""

    INPUTS = (Input("estimate", bool, default=True),)


class CalculationNode(ModelObject):
    pass


class StateNodeInitialiser:
    """Mixin for objects that produce starting values for state nodes."""

    def init_state_nodes(self, rng) -> None:
        raise NotImplementedError

    def get_initialised_state_nodes(self) -> List[StateNode]:
        raise NotImplementedError


# --- Parameters ---


class Parameter(StateNode):
    INPUTS = (
        Input("value", _SCALAR, is_collection=True, tip="start value(s)"),
        Input("dimension", int, default=1),
        Input("lower", _SCALAR),
        Input("upper", _SCALAR),
        Input("minordimension", int, default=1),
    )

    SCALAR_TYPE: type = float

    def __init__(self, object_id: Optional[str] = None, **inputs: Any):
        self.values: List[Any] = []
        super().__init__(object_id, **inputs)

    def _coerce(self, value: Any) -> Any:
        return TypeCanon.convert(value, self.SCALAR_TYPE)

    def _validate(self) -> None:
        raw: List[Any] = []
        for v in self.get_input_value("value"):
            raw.extend(v.split() if isinstance(v, str) else [v])
        values = [self._coerce(v) for v in raw]
        dimension = self.get_input_value("dimension") or 1
        if values and dimension > len(values):
            values = [values[i % len(values)] for i in range(dimension)]
        self.values = values

    def get_dimension(self) -> int:
        return len(self.values)

    def get_value(self, index: int = 0) -> Any:
        return self.values[index]

    def set_values(self, values: List[Any]) -> None:
        self._values["value"] = list(values)
        self._values["dimension"] = len(values)
        self.values = [self._coerce(v) for v in values]

    def get_lower(self) -> Any:
        lower = self.get_input_value("lower")
        return None if lower is None else self._coerce(lower)

    def __repr__(self) -> str:
        return f"<{self.describe()} {self.values}>"


class RealParameter(Parameter):
    SCALAR_TYPE = float


class IntegerParameter(Parameter):
    SCALAR_TYPE = int


class BooleanParameter(Parameter):
    SCALAR_TYPE = bool


# --- Taxa and alignments ---


class Taxon(ModelObject):
    def get_name(self) -> str:
        return self.id or ""


class Sequence(ModelObject):
    INPUTS = (
        Input("taxon", str, required=True),
        Input("value", str, required=True),
        Input("totalcount", int),
    )


class Alignment(CalculationNode):
    INPUTS = (
        Input("sequence", Sequence, is_collection=True),
        Input("dataType", str, default="nucleotide"),
    )

    def get_taxa_names(self) -> List[str]:
        return [s.get_input_value("taxon") for s in self.get_input_value("sequence")]

    def get_taxon_count(self) -> int:
        return len(self.get_input_value("sequence"))

    def get_sequences(self) -> Dict[str, str]:
        return {
            s.get_input_value("taxon"): s.get_input_value("value")
            for s in self.get_input_value("sequence")
        }

    def get_site_count(self) -> int:
        sequences = list(self.get_sequences().values())
        return len(sequences[0]) if sequences else 0

    def get_data_type(self) -> str:
        return self.get_input_value("dataType")

    def _validate(self) -> None:
        lengths = {len(v) for v in self.get_sequences().values()}
        if len(lengths) > 1:
            raise InputError(
                f"Sequences of {self.describe()} differ in length: {sorted(lengths)}"
            )


class FilteredAlignment(Alignment):
    """Column subset of another alignment.

    ``filter`` is a comma-separated list of 1-based ranges: ``"1-100"``,
    ``"3::3"`` (every third site from 3) or single sites.
    """

    INPUTS = (
        Input("data", Alignment, required=True),
        Input("filter", str, required=True),
    )

    def __init__(self, object_id: Optional[str] = None, **inputs: Any):
        self.sites: List[int] = []
        super().__init__(object_id, **inputs)

    def get_sequences(self) -> Dict[str, str]:
        source = self.get_input_value("data")
        if source is None:
            return {}
        return {
            taxon: "".join(seq[i] for i in self.sites)
            for taxon, seq in source.get_sequences().items()
        }

    def get_taxa_names(self) -> List[str]:
        return list(self.get_sequences())

    def get_taxon_count(self) -> int:
        return len(self.get_taxa_names())

    def get_data_type(self) -> str:
        return self.get_input_value("data").get_data_type()

    def _validate(self) -> None:
        site_count = self.get_input_value("data").get_site_count()
        self.sites = parse_site_filter(self.get_input_value("filter"), site_count)


def parse_site_filter(spec: str, site_count: int) -> List[int]:
    sites: List[int] = []
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "::" in part:
                start, step = (int(v) for v in part.split("::"))
                end = start
            elif "-" in part:
                start, end = (int(v) for v in part.split("-"))
                step = 1
            else:
                start = end = int(part)
                step = 1
        except ValueError:
            raise InputError(f"Malformed site filter '{part}'") from None
        if step < 1 or end < start:
            raise InputError(f"Malformed site filter '{part}'")
        if start < 1 or end > site_count:
            raise InputError(f"Site filter '{part}' is outside 1..{site_count}")
        if "::" in part:
            sites.extend(range(start - 1, site_count, step))
        else:
            sites.extend(range(start - 1, end))
    return sites


class TaxonSet(ModelObject):
    INPUTS = (
        Input("taxon", Taxon, is_collection=True),
        Input("alignment", Alignment),
    )

    def _validate(self) -> None:
        alignment = self.get_input_value("alignment")
        if alignment is not None and not self.get_input_value("taxon"):
            for name in alignment.get_taxa_names():
                self.set_input_value("taxon", Taxon(name))

    def get_taxa_names(self) -> List[str]:
        return [t.get_name() for t in self.get_input_value("taxon")]

    def get_taxon_count(self) -> int:
        return len(self.get_input_value("taxon"))


# --- Trees ---


class Node:
    __slots__ = ("height", "children", "taxon")

    def __init__(self, height: float, children=None, taxon: Optional[str] = None):
        self.height = height
        self.children = list(children or [])
        self.taxon = taxon

    def is_leaf(self) -> bool:
        return not self.children

    def to_newick(self) -> str:
        if self.is_leaf():
            return self.taxon or ""
        parts = []
        for child in self.children:
            length = self.height - child.height
            parts.append(f"{child.to_newick()}:{length:.6g}")
        return "(" + ",".join(parts) + ")"


class Tree(StateNode):
    """Rooted time tree over a taxon set."""

    INPUTS = (
        Input("taxonset", TaxonSet),
        Input("nodetype", str, default="node"),
    )

    def __init__(self, object_id: Optional[str] = None, **inputs: Any):
        self.root: Optional[Node] = None
        super().__init__(object_id, **inputs)

    def get_taxonset(self) -> Optional[TaxonSet]:
        return self.get_input_value("taxonset")

    def get_leaf_node_count(self) -> int:
        if self.root is not None:
            return sum(1 for n in self._nodes() if n.is_leaf())
        taxonset = self.get_taxonset()
        return taxonset.get_taxon_count() if taxonset is not None else 0

    def get_internal_node_count(self) -> int:
        return max(self.get_leaf_node_count() - 1, 0)

    def get_root_height(self) -> float:
        if self.root is not None:
            return self.root.height
        return float(self.get_internal_node_count())

    def assign_root(self, root: Node) -> None:
        self.root = root

    def to_newick(self) -> str:
        if self.root is None:
            return ";"
        return self.root.to_newick() + ";"

    def _nodes(self):
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            yield node
            stack.extend(node.children)

    def __repr__(self) -> str:
        return f"<{self.describe()} taxa={self.get_leaf_node_count()}>"
