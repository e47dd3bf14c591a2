import threading

from unittest import TestCase
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from md5tabsum.configuration import settings_from_raw
from md5tabsum.models import Status
from md5tabsum.orchestrator import Orchestrator

RAW = {
    "Logfile": "x.log",
    "Passwordstore": "x.pwd",
    "postgresql": {
        "a": {"active": 1, "host": "host-a", "database": "db", "user": "u", "schema": "public", "table": "t"},
        "b": {"active": 1, "host": "host-b", "database": "db", "user": "u", "schema": "public", "table": "t"},
    },
}


class FakeResult:
    def __init__(self, rows):
        self.rows = rows

    def __iter__(self):
        return iter(self.rows)

    def one(self):
        return self.rows[0]


def engine_factory(url, **kwargs):
    """Engine for host-a works, host-b refuses connections."""
    engine = MagicMock()
    if url.host == "host-b":
        engine.connect.side_effect = OperationalError("connect", {}, Exception("connection refused"))
        return engine

    def execute(statement, params=None):
        sql = str(statement)
        if "information_schema.tables" in sql:
            return FakeResult([("t",)])
        if "information_schema.columns" in sql:
            return FakeResult([("id", "integer", 1)])
        return FakeResult([(2, "d41d8cd98f00b204e9800998ecf8427f")])

    conn = MagicMock()
    conn.execute.side_effect = execute
    engine.connect.return_value = conn
    return engine


class Collector:
    def __init__(self):
        self.lines = []
        self._lock = threading.Lock()

    def __call__(self, checksum):
        with self._lock:
            self.lines.append(str(checksum))


class TestOrchestrator(TestCase):
    """Provide unit tests for the Orchestrator."""

    def setUp(self):
        self.instances = settings_from_raw(RAW).instances

    def test_failing_sibling(self):
        emit = Collector()
        orchestrator = Orchestrator(
            self.instances,
            {"postgresql.a": "pw", "postgresql.b": "pw"},
            emit,
            engine_factory=engine_factory,
        )

        status = orchestrator.run()

        self.assertEqual(status, Status.ERROR)
        self.assertEqual(emit.lines, ["postgresql.a.t:d41d8cd98f00b204e9800998ecf8427f"])
        self.assertEqual(orchestrator.outcomes["postgresql.a"].status, Status.OK)
        self.assertEqual(orchestrator.failed(), ["postgresql.b"])

    def test_all_ok(self):
        emit = Collector()
        instances = {"postgresql.a": self.instances["postgresql.a"]}
        status = Orchestrator(instances, {"postgresql.a": "pw"}, emit, engine_factory=engine_factory).run()
        self.assertEqual(status, Status.OK)
        self.assertEqual(int(status), 0)

    def test_missing_credential(self):
        emit = Collector()
        orchestrator = Orchestrator(self.instances, {"postgresql.a": "pw"}, emit, engine_factory=engine_factory)

        status = orchestrator.run()

        self.assertEqual(int(status), 2)
        self.assertIn("no password", orchestrator.outcomes["postgresql.b"].error)
        self.assertEqual(len(emit.lines), 1)

    def test_unexpected_exception(self):
        def broken_factory(url, **kwargs):
            raise RuntimeError("driver not installed")

        orchestrator = Orchestrator(
            self.instances,
            {"postgresql.a": "pw", "postgresql.b": "pw"},
            Collector(),
            engine_factory=broken_factory,
        )

        self.assertEqual(orchestrator.run(), Status.ERROR)
        self.assertEqual(orchestrator.failed(), ["postgresql.a", "postgresql.b"])

    def test_no_instances(self):
        self.assertEqual(Orchestrator({}, {}, Collector()).run(), Status.OK)
