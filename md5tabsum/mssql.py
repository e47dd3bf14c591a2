from typing import List, Sequence

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection

from .aggregator import EMPTY_TABLE_CHECKSUM, chunk_sum_terms
from .classifier import TypeCategory, classify
from .models import ColumnDescriptor

MSSQL_DRIVER = "mssql+pyodbc"
# hash the UTF-8 bytes of strings like the other DBMS do (SQL Server 2019+)
MSSQL_UTF8_COLLATION = "Latin1_General_100_CI_AS_SC_UTF8"
MSSQL_MILLISECOND_TYPES = ("datetime", "smalldatetime")

MSSQL_TABLES_QRY = """select TABLE_NAME from INFORMATION_SCHEMA.TABLES
where TABLE_SCHEMA = :schema_name and upper(TABLE_NAME) like upper(:pattern)
order by TABLE_NAME"""

MSSQL_COLUMNS_QRY = """select COLUMN_NAME, DATA_TYPE, ORDINAL_POSITION from INFORMATION_SCHEMA.COLUMNS
where TABLE_SCHEMA = :schema_name and TABLE_NAME = :table_name
order by ORDINAL_POSITION"""


def mssql_md5(expression: str) -> str:
    return f"lower(convert(varchar(32), hashbytes('MD5', {expression}), 2))"


def strip_trailing_zeros(num: str) -> str:
    """Drop fractional trailing zeros and a dangling decimal point."""
    stripped = (
        f"case when charindex('.', {num}) > 0 and charindex('E', upper({num})) = 0 "
        f"then left({num}, len({num}) - patindex('%[^0]%', reverse({num})) + 1) else {num} end"
    )
    return f"case when right({stripped}, 1) = '.' then left({stripped}, len({stripped}) - 1) else {stripped} end"


class Mssql:
    """MSSQL checksum SQL."""

    name = "mssql"

    def connection_url(self, instance, secret: str) -> URL:
        return URL.create(
            drivername=MSSQL_DRIVER,
            username=instance.user,
            password=secret,
            host=instance.host,
            port=instance.port,
            database=instance.database,
            query={"driver": instance.odbc_driver, "TrustServerCertificate": "yes"},
        )

    def session_statements(self) -> List[str]:
        return []

    def quote_identifier(self, name: str) -> str:
        return "[" + name.replace("]", "]]") + "]"

    def discover_tables(self, conn: Connection, schema: str, pattern: str) -> List[str]:
        result = conn.execute(text(MSSQL_TABLES_QRY), {"schema_name": schema, "pattern": pattern})
        return [row[0] for row in result]

    def discover_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        result = conn.execute(text(MSSQL_COLUMNS_QRY), {"schema_name": schema, "table_name": table})
        return [
            ColumnDescriptor(name=row[0], reported_type=row[1], ordinal_position=int(row[2]))
            for row in result
        ]

    def render_column_expression(self, column: ColumnDescriptor) -> str:
        col = self.quote_identifier(column.name)
        category = classify(column.reported_type)
        if category == TypeCategory.STRING:
            utf8 = f"convert(varchar(max), rtrim({col}) collate {MSSQL_UTF8_COLLATION})"
            return f"coalesce({mssql_md5(utf8)}, 'null')"
        if category == TypeCategory.TEMPORAL:
            # datetime is stored in 1/300 s steps, round it to milliseconds
            precision = 3 if column.reported_type.lower() in MSSQL_MILLISECOND_TYPES else 6
            return (
                f"coalesce(convert(varchar(32), "
                f"format(convert(datetime2({precision}), {col}), 'yyyy-MM-dd HH:mm:ss.ffffff')), 'null')"
            )
        if category == TypeCategory.BOOLEAN:
            return f"case when {col} is null then 'null' when {col} = 1 then '1' else '0' end"
        if category == TypeCategory.NUMERIC:
            upper = column.reported_type.upper()
            if "FLOAT" in upper or "REAL" in upper:
                num = f"convert(varchar(64), format({col}, 'R', 'en-US'))"
            else:
                num = f"convert(varchar(64), {col})"
            return f"coalesce({strip_trailing_zeros(num)}, 'null')"
        return f"coalesce(cast({col} as varchar(max)), 'null')"

    def render_row_hash_query(self, schema: str, table: str, column_exprs: Sequence[str]) -> str:
        columns = " + ".join(column_exprs)
        return f"""select {mssql_md5(columns)} ROWHASH from {self.quote_identifier(schema)}.{self.quote_identifier(table)}"""

    def render_aggregation_query(self, row_hash_subquery: str) -> str:
        sums = " + ".join(
            chunk_sum_terms(
                lambda start, length: (
                    f"cast(sum(convert(bigint, convert(varbinary(4), substring(t.ROWHASH, {start}, {length}), 2))) "
                    f"as varchar(32))"
                )
            )
        )
        return (
            f"""select count(1) NUMROWS, coalesce({mssql_md5(sums)}, '{EMPTY_TABLE_CHECKSUM}') CHECKSUM """
            f"""from ({row_hash_subquery}) t"""
        )
