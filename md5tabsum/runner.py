from typing import Callable, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from .dialect import DialectAdapter
from .errors import ChecksumQueryError, ConnectError, DiscoveryError, InstanceError
from .logger import instance_logger
from .models import RunnerState, RunOutcome, Status, TableChecksum

Emit = Callable[[TableChecksum], None]


class InstanceRunner:
    """Computes the checksums of all configured tables of one DBMS instance.

    The runner walks PENDING -> CONNECTING -> DISCOVERING -> HASHING -> DONE.
    The first failure ends the run, checksums which were already emitted stay
    emitted. The connection is closed whatever the outcome.
    """

    def __init__(
        self,
        instance,
        adapter: DialectAdapter,
        secret: str,
        emit: Emit,
        engine_factory: Callable[..., Engine] = create_engine,
    ):
        self.instance = instance
        self.adapter = adapter
        self.secret = secret
        self.emit = emit
        self.engine_factory = engine_factory
        self.state = RunnerState.PENDING
        self.log = instance_logger(instance.instance_id, instance.loglevel)
        self._engine: Optional[Engine] = None
        self._conn: Optional[Connection] = None
        self._tables: List[TableChecksum] = []

    @property
    def instance_id(self) -> str:
        return self.instance.instance_id

    def run(self) -> RunOutcome:
        error = None
        try:
            self.connect()
            tables = self.discover()
            self.state = RunnerState.HASHING
            for table in tables:
                self.checksum(table)
        except InstanceError as err:
            error = str(err)
            self.log.error(err.message)
        finally:
            self.close()
        return RunOutcome(
            instance_id=self.instance_id,
            status=Status.ERROR if error else Status.OK,
            tables=tuple(self._tables),
            error=error,
        )

    def connect(self):
        self.state = RunnerState.CONNECTING
        url = self.adapter.connection_url(self.instance, self.secret)
        self.log.info(
            "connecting to %s host=%s port=%s user=%s",
            self.adapter.name,
            self.instance.host,
            self.instance.port,
            self.instance.user,
        )
        try:
            self._engine = self.engine_factory(url, poolclass=NullPool)
            self._conn = self._engine.connect()
            for statement in self.adapter.session_statements():
                self.log.debug("SQL: %s", statement)
                self._conn.execute(text(statement))
        except SQLAlchemyError as err:
            raise ConnectError(self.instance_id, f"connection failed: {err}") from err

    def discover(self) -> List[str]:
        """Resolve the table patterns, in pattern order, each table once."""
        self.state = RunnerState.DISCOVERING
        schema = self.instance.schema_name
        tables: List[str] = []
        for pattern in self.instance.table_patterns:
            try:
                found = self.adapter.discover_tables(self._conn, schema, pattern)
            except SQLAlchemyError as err:
                raise DiscoveryError(self.instance_id, f"table lookup for '{pattern}' failed: {err}") from err
            if not found:
                raise DiscoveryError(self.instance_id, f"no table matches '{pattern}' in schema {schema}")
            tables.extend(table for table in found if table not in tables)
        self.log.debug("TABLES: %s", ", ".join(tables))
        return tables

    def checksum(self, table: str) -> TableChecksum:
        schema = self.instance.schema_name
        try:
            columns = self.adapter.discover_columns(self._conn, schema, table)
        except SQLAlchemyError as err:
            raise DiscoveryError(self.instance_id, f"column lookup for {table} failed: {err}") from err
        if not columns:
            raise DiscoveryError(self.instance_id, f"table {table} has no visible columns")
        self.log.debug(
            "[%s] COLUMNS: %s DATATYPES: %s",
            table,
            ", ".join(c.name for c in columns),
            ", ".join(c.reported_type for c in columns),
        )

        exprs = [self.adapter.render_column_expression(c) for c in columns]
        row_hash_qry = self.adapter.render_row_hash_query(schema, table, exprs)
        sql = self.adapter.render_aggregation_query(row_hash_qry)
        self.log.debug("[%s] SQL: %s", table, sql)

        try:
            row = self._conn.execute(text(sql)).one()
        except SQLAlchemyError as err:
            failed = TableChecksum(instance_id=self.instance_id, table_name=table, error=str(err))
            self._tables.append(failed)
            raise ChecksumQueryError(self.instance_id, f"checksum of {table} failed: {err}") from err

        result = TableChecksum(
            instance_id=self.instance_id,
            table_name=table,
            row_count=int(row[0]),
            checksum_hex=str(row[1]).lower(),
        )
        self._tables.append(result)
        self.emit(result)
        self.log.info("%s (%d rows)", result, result.row_count)
        return result

    def close(self):
        if self._conn is not None:
            try:
                self._conn.close()
            except SQLAlchemyError as err:
                self.log.warning("closing the connection failed: %s", err)
            self._conn = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self.state = RunnerState.DONE
