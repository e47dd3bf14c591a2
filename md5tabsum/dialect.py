"""
DBMS dialect adapters.

Every supported DBMS has an adapter which knows how to connect, how to look up
tables and columns in its catalog and how to render the checksum SQL in its own
dialect. The adapters don't share a base class, they only share the type
classifier and the aggregator building blocks.
"""

from typing import List, Protocol, Sequence

from sqlalchemy.engine import URL, Connection

from .configuration import SUPPORTED_DIALECTS
from .errors import ConfigurationError
from .exasol import Exasol
from .models import ColumnDescriptor
from .mssql import Mssql
from .mysql import Mysql
from .oracle import Oracle
from .postgres import Postgres


class DialectAdapter(Protocol):
    name: str

    def connection_url(self, instance, secret: str) -> URL:
        ...

    def session_statements(self) -> List[str]:
        ...

    def quote_identifier(self, name: str) -> str:
        ...

    def discover_tables(self, conn: Connection, schema: str, pattern: str) -> List[str]:
        ...

    def discover_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        ...

    def render_column_expression(self, column: ColumnDescriptor) -> str:
        ...

    def render_row_hash_query(self, schema: str, table: str, column_exprs: Sequence[str]) -> str:
        ...

    def render_aggregation_query(self, row_hash_subquery: str) -> str:
        ...


def get_adapter(dialect: str) -> DialectAdapter:
    adapters = {
        "exasol": Exasol,
        "mysql": Mysql,
        "mssql": Mssql,
        "oracle": Oracle,
        "postgresql": Postgres,
    }
    if dialect not in SUPPORTED_DIALECTS or dialect not in adapters:
        raise ConfigurationError(f"unsupported DBMS '{dialect}'")
    return adapters[dialect]()
