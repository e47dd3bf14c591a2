from typing import List, Sequence

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection

from .aggregator import EMPTY_TABLE_CHECKSUM, chunk_sum_terms
from .classifier import TypeCategory, classify
from .models import ColumnDescriptor

ORA_DRIVER = "oracle+oracledb"
ORA_MAX_VARCHAR = 4000
# strings are hashed as UTF-8 bytes, also NCHAR and NVARCHAR2
ORA_HASH_CHARSET = "AL32UTF8"
ORA_SET_NUMERIC_CHARACTERS = "alter session set NLS_NUMERIC_CHARACTERS = '.,'"

ORA_TABLES_QRY = """select TABLE_NAME from ALL_TABLES
where OWNER = upper(:schema_name) and upper(TABLE_NAME) like upper(:pattern)
order by TABLE_NAME"""

ORA_COLUMNS_QRY = """select COLUMN_NAME, DATA_TYPE, COLUMN_ID from ALL_TAB_COLUMNS
where OWNER = upper(:schema_name) and TABLE_NAME = :table_name
order by COLUMN_ID"""


def ora_md5(expression: str) -> str:
    return f"lower(rawtohex(standard_hash({expression}, 'MD5')))"


class Oracle:
    """Oracle checksum SQL.

    Oracle stores empty strings as NULL, so a string which is empty after trimming
    is hashed like the empty string on the other DBMS. DATE columns have no
    fractional seconds, the microseconds are appended as zeros.
    """

    name = "oracle"

    def connection_url(self, instance, secret: str) -> URL:
        return URL.create(
            drivername=ORA_DRIVER,
            username=instance.user,
            password=secret,
            host=instance.host,
            port=instance.port,
            query={"service_name": instance.service},
        )

    def session_statements(self) -> List[str]:
        return [ORA_SET_NUMERIC_CHARACTERS]

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def discover_tables(self, conn: Connection, schema: str, pattern: str) -> List[str]:
        result = conn.execute(text(ORA_TABLES_QRY), {"schema_name": schema, "pattern": pattern})
        return [row[0] for row in result]

    def discover_columns(self, conn: Connection, schema: str, table: str) -> List[ColumnDescriptor]:
        result = conn.execute(text(ORA_COLUMNS_QRY), {"schema_name": schema, "table_name": table})
        return [
            ColumnDescriptor(name=row[0], reported_type=row[1], ordinal_position=int(row[2]))
            for row in result
        ]

    def render_column_expression(self, column: ColumnDescriptor) -> str:
        col = self.quote_identifier(column.name)
        category = classify(column.reported_type)
        if category == TypeCategory.STRING:
            utf8 = f"utl_i18n.string_to_raw(rtrim({col}), '{ORA_HASH_CHARSET}')"
            return (
                f"case when {col} is null then 'null' "
                f"when rtrim({col}) is null then '{EMPTY_TABLE_CHECKSUM}' "
                f"else {ora_md5(utf8)} end"
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
            num = f"to_char({col}, 'TM9')"
            return (
                f"case when {col} is null then 'null' "
                f"when {num} like '.%' then '0' || {num} "
                f"when {num} like '-.%' then '-0' || substr({num}, 2) "
                f"else {num} end"
            )
        return f"coalesce(cast({col} as varchar2({ORA_MAX_VARCHAR})), 'null')"

    def render_row_hash_query(self, schema: str, table: str, column_exprs: Sequence[str]) -> str:
        columns = " || ".join(column_exprs)
        return (
            f"""select {ora_md5(columns)} ROWHASH """
            f"""from {self.quote_identifier(schema.upper())}.{self.quote_identifier(table)}"""
        )

    def render_aggregation_query(self, row_hash_subquery: str) -> str:
        sums = " || ".join(
            chunk_sum_terms(
                lambda start, length: f"to_char(sum(to_number(substr(t.ROWHASH, {start}, {length}), 'xxxxxxxx')))"
            )
        )
        return (
            f"""select /*+ PARALLEL */ count(1) NUMROWS, """
            f"""coalesce(case when count(1) > 0 then {ora_md5(sums)} end, '{EMPTY_TABLE_CHECKSUM}') CHECKSUM """
            f"""from ({row_hash_subquery}) t"""
        )
