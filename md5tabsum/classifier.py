from enum import Enum
from typing import Tuple


class TypeCategory(str, Enum):
    STRING = "string"
    TEMPORAL = "temporal"
    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    OTHER = "other"


# evaluated top down, the first matching keyword wins
PRIORITY: Tuple[Tuple[TypeCategory, Tuple[str, ...]], ...] = (
    (TypeCategory.STRING, ("CHAR",)),
    (TypeCategory.TEMPORAL, ("TIME", "DATE")),
    (TypeCategory.BOOLEAN, ("BOOLEAN",)),
    (TypeCategory.NUMERIC, ("NUMBER", "DECIMAL", "FLOAT", "NUMERIC", "DOUBLE", "REAL")),
)


def classify(reported_type: str) -> TypeCategory:
    """Map a DBMS reported column type, e.g. VARCHAR(50) or NUMBER(10,2), to a category.

    Unknown types fall back to OTHER.
    """
    upper = (reported_type or "").upper()
    for category, keywords in PRIORITY:
        if any(keyword in upper for keyword in keywords):
            return category
    return TypeCategory.OTHER
