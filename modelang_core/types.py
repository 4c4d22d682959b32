import logging
import math
from typing import Any, Optional

logger = logging.getLogger(__name__)


class TypeCanon:
    """Builtin (non-framework) type names and lenient scalar conversion."""

    REAL = {"Double", "double", "Float", "float"}
    INTEGER = {"Integer", "int", "Long", "long"}
    BOOL = {"Boolean", "boolean"}
    TEXT = {"String"}
    ARRAY_SUFFIX = "[]"

    @classmethod
    def builtin_type(cls, name: str) -> Optional[type]:
        if name in cls.REAL:
            return float
        if name in cls.INTEGER:
            return int
        if name in cls.BOOL:
            return bool
        if name in cls.TEXT:
            return str
        return None

    @classmethod
    def is_array(cls, name: str) -> bool:
        return name.endswith(cls.ARRAY_SUFFIX)

    @classmethod
    def component_of(cls, name: str) -> str:
        if cls.is_array(name):
            return name[: -len(cls.ARRAY_SUFFIX)]
        return name

    # --- Lenient conversion ---

    @classmethod
    def to_double(cls, value: Any) -> float:
        if isinstance(value, bool):
            return 1.0 if value else 0.0
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return float(str(value).strip())
        except ValueError:
            logger.warning("Cannot convert '%s' to a real number, using 0.0", value)
            return 0.0

    @classmethod
    def to_int(cls, value: Any) -> int:
        if isinstance(value, bool):
            return 1 if value else 0
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if math.isfinite(value):
                return int(value)
            logger.warning("Cannot convert %s to an integer, using 0", value)
            return 0
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            logger.warning("Cannot convert '%s' to an integer, using 0", value)
            return 0

    @classmethod
    def to_bool(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        text = str(value).strip().lower()
        if text in ("true", "t", "yes", "1"):
            return True
        if text in ("false", "f", "no", "0"):
            return False
        logger.warning("Cannot convert '%s' to a boolean, using false", value)
        return False

    @classmethod
    def convert(cls, value: Any, target: type) -> Any:
        if target is float:
            return cls.to_double(value)
        if target is int:
            return cls.to_int(value)
        if target is bool:
            return cls.to_bool(value)
        if target is str:
            return "" if value is None else str(value)
        return value
