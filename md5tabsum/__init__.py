"""
md5tabsum computes order independent checksums of database tables.
The same table deployed on two DBMS instances, e.g. staging and
production, has the same checksum when it holds the same data.
Supported DBMS: Exasol, MySQL, MSSQL, Oracle and PostgreSQL.
A minimal usage example:
#
#   md5tabsum -c md5tabsum.yaml -p create
#   md5tabsum -c md5tabsum.yaml
#   postgresql.prod.orders:7b0d6c5e54c1d52a8a0be1ab2d4bc0ef
"""

__version__ = '1.0.0'

from . import aggregator, classifier, dialect, orchestrator, passwordstore, runner  # noqa: E402

__all__ = ['__version__', 'aggregator', 'classifier', 'dialect', 'orchestrator', 'passwordstore', 'runner']
