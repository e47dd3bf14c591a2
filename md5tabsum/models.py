from enum import Enum, IntFlag
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class Status(IntFlag):
    OK = 0
    ERROR = 2


class RunnerState(str, Enum):
    PENDING = "pending"
    CONNECTING = "connecting"
    DISCOVERING = "discovering"
    HASHING = "hashing"
    DONE = "done"


class ColumnDescriptor(BaseModel):
    """Column of a discovered table."""

    model_config = ConfigDict(frozen=True)

    name: str
    reported_type: str
    ordinal_position: int


class TableChecksum(BaseModel):
    """Checksum of one table of one instance."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    table_name: str
    row_count: int = 0
    checksum_hex: Optional[str] = None
    error: Optional[str] = None

    @property
    def object_id(self) -> str:
        return f"{self.instance_id}.{self.table_name}"

    def __str__(self):
        return f"{self.object_id}:{self.checksum_hex}"


class RunOutcome(BaseModel):
    """Final result of an instance run."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    status: Status
    tables: Tuple[TableChecksum, ...] = ()
    error: Optional[str] = None
