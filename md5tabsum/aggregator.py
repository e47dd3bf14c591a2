"""
Order independent table checksum.

Every row is reduced to an MD5 hash (32 hex characters). The hash is split into
four 8 character chunks which are read as unsigned 32 bit integers. For each chunk
position the integers are summed over all rows; addition is commutative, thus the
order in which the DBMS returns the rows doesn't matter. The decimal text of the
four sums is concatenated and hashed once more, giving the table checksum.

The reduction runs inside the DBMS, the adapters render it in their own SQL
dialect. The functions below are the reference implementation of the same
formula and the building blocks the adapters share.
"""

import hashlib
from decimal import Decimal
from typing import Callable, Iterable, List, Sequence, Tuple

# md5 of an empty string, returned for tables without rows
EMPTY_TABLE_CHECKSUM = "d41d8cd98f00b204e9800998ecf8427e"

CHUNK_SIZE = 8
# (start, length) with 1-based start positions as used by SQL substring functions
CHUNK_POSITIONS: Tuple[Tuple[int, int], ...] = tuple(
    (start, CHUNK_SIZE) for start in range(1, 32, CHUNK_SIZE)
)


def chunk_sum_terms(render: Callable[[int, int], str]) -> List[str]:
    """Render one SQL sum term per chunk position, in chunk order."""
    return [render(start, length) for start, length in CHUNK_POSITIONS]


def md5_hex(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def row_hash(values: Sequence[str]) -> str:
    """Hash the concatenation of already canonicalized column values."""
    return md5_hex("".join(values))


def split_row_hash(rowhash: str) -> List[int]:
    if len(rowhash) != 32:
        raise ValueError(f"row hash must have 32 hex characters, got {rowhash!r}")
    return [int(rowhash[start - 1 : start - 1 + length], 16) for start, length in CHUNK_POSITIONS]


def chunk_sums(row_hashes: Iterable[str]) -> Tuple[int, List[int]]:
    """Return the number of rows and the four chunk sums."""
    count = 0
    sums = [0] * len(CHUNK_POSITIONS)
    for rowhash in row_hashes:
        count += 1
        for i, value in enumerate(split_row_hash(rowhash)):
            sums[i] += value
    return count, sums


def table_checksum(row_hashes: Iterable[str]) -> Tuple[int, str]:
    count, sums = chunk_sums(row_hashes)
    if count == 0:
        return 0, EMPTY_TABLE_CHECKSUM
    return count, md5_hex("".join(str(value) for value in sums))


def canonical_number(value) -> str:
    """Canonical decimal text of a number.

    Numbers between -1 and 1 keep their leading zero (0.5 and -0.5, never .5 or -.5)
    and fractional trailing zeros are dropped.
    """
    number = Decimal(str(value))
    if number.is_zero():
        return "0"
    return format(number.normalize(), "f")
