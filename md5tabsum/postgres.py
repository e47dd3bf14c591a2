from typing import List, Sequence

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection

from .aggregator import EMPTY_TABLE_CHECKSUM, chunk_sum_terms
from .classifier import TypeCategory, classify
from .models import ColumnDescriptor

PG_DRIVER = "postgresql+psycopg2"

PG_TABLES_QRY = """select table_name from information_schema.tables
where table_schema = :schema_name and upper(table_name) like upper(:pattern)
order by table_name"""

PG_COLUMNS_QRY = """select column_name, data_type, ordinal_position from information_schema.columns
where table_schema = :schema_name and table_name = :table_name
order by ordinal_position"""


class Postgres:
    """PostgreSQL checksum SQL."""

    name = "postgresql"

    def connection_url(self, instance, secret: str) -> URL:
        return URL.create(
            drivername=PG_DRIVER,
            username=instance.user,
            password=secret,
            host=instance.host,
            port=instance.port,
            database=instance.database,
        )

    def session_statements(self) -> List[str]:
        return []

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def discover_tables(self, conn: Connection, schema: str, pattern: str) -> List[str]:
        result = conn.execute(text(PG_TABLES_QRY), {"schema_name": schema, "pattern": pattern})
        return [row[0] for row in result]

    def discover_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        result = conn.execute(text(PG_COLUMNS_QRY), {"schema_name": schema, "table_name": table})
        return [
            ColumnDescriptor(name=row[0], reported_type=row[1], ordinal_position=int(row[2]))
            for row in result
        ]

    def render_column_expression(self, column: ColumnDescriptor) -> str:
        col = self.quote_identifier(column.name)
        category = classify(column.reported_type)
        if category == TypeCategory.STRING:
            return f"coalesce(md5(rtrim({col})), 'null')"
        if category == TypeCategory.TEMPORAL:
            return f"coalesce(to_char({col}, 'YYYY-MM-DD HH24:MI:SS.US'), 'null')"
        if category == TypeCategory.BOOLEAN:
            return f"coalesce({col}::integer::text, 'null')"
        if category == TypeCategory.NUMERIC:
            # trim_scale drops fractional trailing zeros (PostgreSQL 13+)
            num = f"trim_scale({col}::numeric)::text"
            return (
                f"coalesce(case when {num} like '.%' then '0' || {num} "
                f"when {num} like '-.%' then '-0' || substr({num}, 2) "
                f"else {num} end, 'null')"
            )
        return f"coalesce({col}::text, 'null')"

    def render_row_hash_query(self, schema: str, table: str, column_exprs: Sequence[str]) -> str:
        columns = " || ".join(column_exprs)
        return f"""select md5({columns}) ROWHASH from {self.quote_identifier(schema)}.{self.quote_identifier(table)}"""

    def render_aggregation_query(self, row_hash_subquery: str) -> str:
        sums = " || ".join(
            chunk_sum_terms(
                lambda start, length: f"sum(('x' || substring(t.ROWHASH, {start}, {length}))::bit(32)::bigint)::text"
            )
        )
        return (
            f"""select count(1) NUMROWS, coalesce(md5({sums}), '{EMPTY_TABLE_CHECKSUM}') CHECKSUM """
            f"""from ({row_hash_subquery}) t"""
        )
