import os

from unittest import TestCase

import pytest
import sqlalchemy

from md5tabsum.aggregator import EMPTY_TABLE_CHECKSUM, canonical_number, md5_hex, row_hash, table_checksum
from md5tabsum.configuration import settings_from_raw
from md5tabsum.models import Status
from md5tabsum.orchestrator import Orchestrator

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.getenv("MD5TABSUM_INTEGRATION"),
        reason="set MD5TABSUM_INTEGRATION=1 to run the tests against PostgreSQL and MySQL containers",
    ),
]

PG_IMAGE = "postgres:16"
MYSQL_IMAGE = "mysql:8.0"
PASSWORD = "test"


def exec_qry(engine, sql):
    with engine.begin() as conn:
        conn.execute(sqlalchemy.text(sql))


class TestPostgresChecksum(TestCase):
    """Checksums computed by PostgreSQL match the reference implementation."""

    @classmethod
    def setUpClass(cls):
        from testcontainers.postgres import PostgresContainer

        cls.container = PostgresContainer(PG_IMAGE, password=PASSWORD)
        cls.container.start()
        cls.engine = sqlalchemy.create_engine(cls.container.get_connection_url())
        exec_qry(
            cls.engine,
            """create table t_order (id integer, name varchar(20), amount numeric(10,2), ok boolean);
               insert into t_order values (1, 'a  ', 0.50, true), (2, 'b', -0.50, null), (3, null, 12.00, false);
               create table t_order_copy as select * from t_order order by id desc;
               create table t_empty (id integer);""",
        )

    @classmethod
    def tearDownClass(cls):
        cls.engine.dispose()
        cls.container.stop()

    def run_instance(self, table):
        url = self.engine.url
        raw = {
            "Logfile": "x.log",
            "Passwordstore": "x.pwd",
            "postgresql": {
                "test": {
                    "active": 1,
                    "loglevel": 2,
                    "host": url.host,
                    "port": url.port,
                    "database": url.database,
                    "user": url.username,
                    "schema": "public",
                    "table": table,
                }
            },
        }
        emitted = []
        status = Orchestrator(
            settings_from_raw(raw).instances, {"postgresql.test": PASSWORD}, emitted.append
        ).run()
        return status, emitted

    def test_checksum_matches_reference(self):
        status, emitted = self.run_instance("t_order")
        self.assertEqual(status, Status.OK)
        rows = [
            [canonical_number(1), md5_hex("a"), canonical_number("0.50"), "1"],
            [canonical_number(2), md5_hex("b"), canonical_number("-0.50"), "null"],
            [canonical_number(3), "null", canonical_number("12.00"), "0"],
        ]
        expected = table_checksum(row_hash(r) for r in rows)
        self.assertEqual((emitted[0].row_count, emitted[0].checksum_hex), expected)

    def test_row_order_doesnt_matter(self):
        status, emitted = self.run_instance("t_order%")
        self.assertEqual(status, Status.OK)
        self.assertEqual([c.table_name for c in emitted], ["t_order", "t_order_copy"])
        self.assertEqual(emitted[0].checksum_hex, emitted[1].checksum_hex)

    def test_empty_table(self):
        status, emitted = self.run_instance("t_empty")
        self.assertEqual(status, Status.OK)
        self.assertEqual(emitted[0].checksum_hex, EMPTY_TABLE_CHECKSUM)
        self.assertEqual(emitted[0].row_count, 0)

    def test_unknown_table(self):
        status, emitted = self.run_instance("t_nope")
        self.assertEqual(status, Status.ERROR)
        self.assertEqual(emitted, [])


class TestMysqlChecksum(TestCase):
    """Checksums computed by MySQL match the reference implementation."""

    @classmethod
    def setUpClass(cls):
        from testcontainers.mysql import MySqlContainer

        cls.container = MySqlContainer(MYSQL_IMAGE)
        cls.container.start()
        url = sqlalchemy.engine.make_url(cls.container.get_connection_url()).set(drivername="mysql+pymysql")
        cls.engine = sqlalchemy.create_engine(url)
        for sql in (
            "create table t_amount (id int, name varchar(20), amount decimal(10,2), ts datetime(6))",
            """insert into t_amount values
               (1, 'a  ', 0.50, '2024-01-02 03:04:05.123000'),
               (2, 'b', -0.50, null),
               (3, null, 12.00, '2024-12-31 23:59:59.000001')""",
            "create table t_amount_copy as select * from t_amount order by id desc",
        ):
            exec_qry(cls.engine, sql)

    @classmethod
    def tearDownClass(cls):
        cls.engine.dispose()
        cls.container.stop()

    def run_instance(self, table):
        url = self.engine.url
        raw = {
            "Logfile": "x.log",
            "Passwordstore": "x.pwd",
            "mysql": {
                "test": {
                    "active": 1,
                    "loglevel": 2,
                    "host": url.host,
                    "port": url.port,
                    "user": url.username,
                    "schema": url.database,
                    "table": table,
                }
            },
        }
        emitted = []
        status = Orchestrator(
            settings_from_raw(raw).instances, {"mysql.test": url.password}, emitted.append
        ).run()
        return status, emitted

    def test_numbers_keep_leading_zero_and_drop_trailing_zeros(self):
        status, emitted = self.run_instance("t_amount")
        self.assertEqual(status, Status.OK)
        rows = [
            ["1", md5_hex("a"), canonical_number("0.50"), "2024-01-02 03:04:05.123000"],
            ["2", md5_hex("b"), canonical_number("-0.50"), "null"],
            ["3", "null", canonical_number("12.00"), "2024-12-31 23:59:59.000001"],
        ]
        self.assertEqual([r[2] for r in rows], ["0.5", "-0.5", "12"])
        expected = table_checksum(row_hash(r) for r in rows)
        self.assertEqual((emitted[0].row_count, emitted[0].checksum_hex), expected)

    def test_row_order_doesnt_matter(self):
        status, emitted = self.run_instance("t_amount%")
        self.assertEqual(status, Status.OK)
        self.assertEqual([c.table_name for c in emitted], ["t_amount", "t_amount_copy"])
        self.assertEqual(emitted[0].checksum_hex, emitted[1].checksum_hex)
