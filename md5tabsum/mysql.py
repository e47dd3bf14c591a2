from typing import List, Sequence

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection

from .aggregator import EMPTY_TABLE_CHECKSUM, chunk_sum_terms
from .classifier import TypeCategory, classify
from .models import ColumnDescriptor

MYSQL_DRIVER = "mysql+pymysql"
MYSQL_MAX_CHAR = 65535

MYSQL_TABLES_QRY = """select TABLE_NAME from INFORMATION_SCHEMA.TABLES
where TABLE_SCHEMA = :schema_name and upper(TABLE_NAME) like upper(:pattern)
order by TABLE_NAME"""

MYSQL_COLUMNS_QRY = """select COLUMN_NAME, DATA_TYPE, ORDINAL_POSITION from INFORMATION_SCHEMA.COLUMNS
where TABLE_SCHEMA = :schema_name and TABLE_NAME = :table_name
order by ORDINAL_POSITION"""


def canonical_number(num: str) -> str:
    """Drop fractional trailing zeros and keep the leading zero of -1 < x < 1."""
    trimmed = (
        f"case when locate('.', {num}) > 0 and locate('e', lower({num})) = 0 "
        f"then trim(trailing '.' from trim(trailing '0' from {num})) else {num} end"
    )
    return (
        f"case when {trimmed} like '.%' then concat('0', {trimmed}) "
        f"when {trimmed} like '-.%' then concat('-0', substring({trimmed}, 2)) "
        f"else {trimmed} end"
    )


class Mysql:
    """MySQL checksum SQL."""

    name = "mysql"

    def connection_url(self, instance, secret: str) -> URL:
        return URL.create(
            drivername=MYSQL_DRIVER,
            username=instance.user,
            password=secret,
            host=instance.host,
            port=instance.port,
            database=instance.schema_name,
        )

    def session_statements(self) -> List[str]:
        return []

    def quote_identifier(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def discover_tables(self, conn: Connection, schema: str, pattern: str) -> List[str]:
        result = conn.execute(text(MYSQL_TABLES_QRY), {"schema_name": schema, "pattern": pattern})
        return [row[0] for row in result]

    def discover_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        result = conn.execute(text(MYSQL_COLUMNS_QRY), {"schema_name": schema, "table_name": table})
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
            return f"coalesce(date_format({col}, '%Y-%m-%d %H:%i:%s.%f'), 'null')"
        if category == TypeCategory.BOOLEAN:
            return f"case when {col} is null then 'null' when {col} then '1' else '0' end"
        if category == TypeCategory.NUMERIC:
            return f"coalesce({canonical_number(f'cast({col} as char)')}, 'null')"
        return f"coalesce(cast({col} as char({MYSQL_MAX_CHAR})), 'null')"

    def render_row_hash_query(self, schema: str, table: str, column_exprs: Sequence[str]) -> str:
        columns = ", ".join(column_exprs)
        return f"""select md5(concat({columns})) ROWHASH from {self.quote_identifier(schema)}.{self.quote_identifier(table)}"""

    def render_aggregation_query(self, row_hash_subquery: str) -> str:
        sums = ", ".join(
            chunk_sum_terms(
                lambda start, length: f"sum(cast(conv(substring(t.ROWHASH, {start}, {length}), 16, 10) as unsigned))"
            )
        )
        return (
            f"""select count(1) NUMROWS, coalesce(md5(concat({sums})), '{EMPTY_TABLE_CHECKSUM}') CHECKSUM """
            f"""from ({row_hash_subquery}) t"""
        )
