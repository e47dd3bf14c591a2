from typing import List, Sequence

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection

from .aggregator import EMPTY_TABLE_CHECKSUM, chunk_sum_terms
from .classifier import TypeCategory, classify
from .models import ColumnDescriptor

EXA_DRIVER = "exa+websocket"
EXA_MAX_VARCHAR = 2000000
EXA_SET_NUMERIC_CHARACTERS = "alter session set NLS_NUMERIC_CHARACTERS = '.,'"

EXA_TABLES_QRY = """select TABLE_NAME from EXA_ALL_TABLES
where TABLE_SCHEMA = upper(:schema_name) and upper(TABLE_NAME) like upper(:pattern)
order by TABLE_NAME"""

EXA_COLUMNS_QRY = """select COLUMN_NAME, COLUMN_TYPE, COLUMN_ORDINAL_POSITION from EXA_ALL_COLUMNS
where COLUMN_SCHEMA = upper(:schema_name) and COLUMN_TABLE = :table_name
order by COLUMN_ORDINAL_POSITION"""


def canonical_number(num: str) -> str:
    trimmed = (
        f"case when instr({num}, '.') > 0 and instr(upper({num}), 'E') = 0 "
        f"then rtrim(rtrim({num}, '0'), '.') else {num} end"
    )
    return (
        f"case when {trimmed} like '.%' then '0' || {trimmed} "
        f"when {trimmed} like '-.%' then '-0' || substr({trimmed}, 2) "
        f"else {trimmed} end"
    )


class Exasol:
    """Exasol checksum SQL.

    Like Oracle, Exasol doesn't distinguish the empty string from NULL.
    """

    name = "exasol"

    def connection_url(self, instance, secret: str) -> URL:
        return URL.create(
            drivername=EXA_DRIVER,
            username=instance.user,
            password=secret,
            host=instance.host,
            port=instance.port,
            database=instance.schema_name.upper(),
            query={"SSLCertificate": "SSL_VERIFY_NONE"},
        )

    def session_statements(self) -> List[str]:
        return [EXA_SET_NUMERIC_CHARACTERS]

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def discover_tables(self, conn: Connection, schema: str, pattern: str) -> List[str]:
        result = conn.execute(text(EXA_TABLES_QRY), {"schema_name": schema, "pattern": pattern})
        return [row[0] for row in result]

    def discover_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        result = conn.execute(text(EXA_COLUMNS_QRY), {"schema_name": schema, "table_name": table})
        return [
            ColumnDescriptor(name=row[0], reported_type=row[1], ordinal_position=int(row[2]))
            for row in result
        ]

    def render_column_expression(self, column: ColumnDescriptor) -> str:
        col = self.quote_identifier(column.name)
        category = classify(column.reported_type)
        if category == TypeCategory.STRING:
            return (
                f"case when {col} is null then 'null' "
                f"when rtrim({col}) is null then '{EMPTY_TABLE_CHECKSUM}' "
                f"else hash_md5(rtrim({col})) end"
            )
        if category == TypeCategory.TEMPORAL:
            if "TIME" not in column.reported_type.upper():
                return (
                    f"case when {col} is null then 'null' "
                    f"else to_char({col}, 'YYYY-MM-DD HH24:MI:SS') || '.000000' end"
                )
            return f"coalesce(to_char({col}, 'YYYY-MM-DD HH24:MI:SS.FF6'), 'null')"
        if category == TypeCategory.BOOLEAN:
            return f"case when {col} is null then 'null' when {col} then '1' else '0' end"
        if category == TypeCategory.NUMERIC:
            return f"coalesce({canonical_number(f'cast({col} as varchar({EXA_MAX_VARCHAR}))')}, 'null')"
        return f"coalesce(cast({col} as varchar({EXA_MAX_VARCHAR})), 'null')"

    def render_row_hash_query(self, schema: str, table: str, column_exprs: Sequence[str]) -> str:
        columns = " || ".join(column_exprs)
        return (
            f"""select hash_md5({columns}) ROWHASH """
            f"""from {self.quote_identifier(schema.upper())}.{self.quote_identifier(table)}"""
        )

    def render_aggregation_query(self, row_hash_subquery: str) -> str:
        sums = " || ".join(
            chunk_sum_terms(
                lambda start, length: f"sum(to_number(substr(t.ROWHASH, {start}, {length}), 'xxxxxxxx'))"
            )
        )
        return (
            f"""select count(1) NUMROWS, coalesce(hash_md5({sums}), '{EMPTY_TABLE_CHECKSUM}') CHECKSUM """
            f"""from ({row_hash_subquery}) t"""
        )
