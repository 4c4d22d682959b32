import logging
from typing import Any, Dict, List, Optional

from .adapter import FrameworkAdapter
from .models import Calibration

logger = logging.getLogger(__name__)


class ObjectRegistry:
    """Id -> object store for one build, with classification indices.

    Every map keeps insertion order, so iteration follows the order in
    which statements registered their objects.
    """

    def __init__(self, adapter: Optional[FrameworkAdapter] = None):
        self.adapter = adapter if adapter is not None else FrameworkAdapter()
        self.objects: Dict[str, Any] = {}
        self._state_nodes: Dict[str, Any] = {}
        self._distributions: Dict[str, Any] = {}
        self._random: Dict[str, None] = {}
        self._observed: Dict[str, None] = {}
        self._data_annotated: Dict[str, None] = {}
        self._data_references: Dict[str, str] = {}
        self._associations: Dict[str, List[str]] = {}
        self._calibrations: Dict[str, List[Calibration]] = {}

    def register(self, object_id: str, obj: Any) -> None:
        if not object_id or obj is None:
            raise ValueError("Cannot register a missing id or object")
        self.objects[object_id] = obj
        self._state_nodes.pop(object_id, None)
        self._distributions.pop(object_id, None)
        if self.adapter.is_state_node(obj):
            self._state_nodes[object_id] = obj
        if self.adapter.is_distribution(obj):
            self._distributions[object_id] = obj
        logger.info("Registered object: %s (%s)", object_id, type(obj).__name__)

    def get(self, object_id: str) -> Any:
        return self.objects.get(object_id)

    def contains(self, object_id: str) -> bool:
        return object_id in self.objects

    def all_objects(self) -> Dict[str, Any]:
        return dict(self.objects)

    def state_nodes(self) -> Dict[str, Any]:
        return dict(self._state_nodes)

    def distributions(self) -> List[Any]:
        return list(self._distributions.values())

    def distribution_items(self) -> Dict[str, Any]:
        return dict(self._distributions)

    # --- Variable classification ---

    def mark_as_random_variable(self, name: str) -> None:
        self._random[name] = None
        logger.info("Marked as random variable: %s", name)

    def mark_as_observed_variable(self, name: str, data_ref: Optional[str] = None) -> None:
        self._observed[name] = None
        if data_ref is not None:
            self._data_references[name] = data_ref
        logger.info("Marked as observed variable: %s (data: %s)", name, data_ref)

    def mark_as_data_annotated(self, name: str) -> None:
        self._data_annotated[name] = None
        logger.info("Marked as data-annotated: %s", name)

    def is_random_variable(self, name: str) -> bool:
        return name in self._random

    def is_observed_variable(self, name: str) -> bool:
        return name in self._observed

    def is_data_annotated(self, name: str) -> bool:
        return name in self._data_annotated

    def get_data_reference(self, name: str) -> Optional[str]:
        return self._data_references.get(name)

    def get_random_variables(self) -> List[str]:
        return list(self._random)

    def get_observed_variables(self) -> List[str]:
        return list(self._observed)

    def get_data_annotated_variables(self) -> List[str]:
        return list(self._data_annotated)

    def get_eligible_state_nodes(self) -> List[Any]:
        """Random, unobserved variables that resolve to a state node."""
        return [
            self._state_nodes[name]
            for name in self._random
            if name not in self._observed and name in self._state_nodes
        ]

    # --- Associations ---

    def add_distribution_association(self, name: str, dist_id: str) -> None:
        ids = self._associations.setdefault(name, [])
        if dist_id not in ids:
            ids.append(dist_id)
        logger.info("Associated distribution %s with %s", dist_id, name)

    def get_distribution_associations(self, name: str) -> List[str]:
        return list(self._associations.get(name, []))

    def add_calibration(self, name: str, calibration: Calibration) -> None:
        self._calibrations.setdefault(name, []).append(calibration)
        logger.info("Recorded calibration on %s for taxa %s", name, calibration.taxonset)

    def get_calibrations(self, name: str) -> List[Calibration]:
        return list(self._calibrations.get(name, []))

    def clear(self) -> None:
        for store in (
            self.objects,
            self._state_nodes,
            self._distributions,
            self._random,
            self._observed,
            self._data_annotated,
            self._data_references,
            self._associations,
            self._calibrations,
        ):
            store.clear()
        logger.info("Registry cleared")

    def get_statistics(self) -> str:
        return (
            f"Registry statistics: {len(self.objects)} objects, "
            f"{len(self._state_nodes)} state nodes "
            f"({len(self.get_eligible_state_nodes())} random), "
            f"{len(self._distributions)} distributions, "
            f"{len(self._observed)} observed variables, "
            f"{len(self._data_annotated)} data-annotated variables"
        )

    def __len__(self) -> int:
        return len(self.objects)
