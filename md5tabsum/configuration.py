import logging
from typing import Annotated, Dict, Literal, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

SUPPORTED_DIALECTS = ("exasol", "mysql", "mssql", "oracle", "postgresql")
GLOBAL_KEYS = ("Logfile", "Passwordstore")
ACTIVE_VALUES = ("1", "true", "yes", "on")


class InstanceBase(BaseModel):
    """Connection params shared by all DBMS instances."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    instance_id: str
    active: bool = True
    loglevel: int = Field(default=1, ge=0, le=2)
    host: str
    port: int
    user: str
    schema_name: str = Field(alias="schema")
    table_patterns: Tuple[str, ...] = Field(alias="table")

    @field_validator("table_patterns", mode="before")
    @classmethod
    def split_tables(cls, value):
        if isinstance(value, str):
            value = value.replace("\\", "").split(",")
        patterns = tuple(str(v).strip() for v in value if str(v).strip())
        if not patterns:
            raise ValueError("at least one table name or pattern is required")
        return patterns


class ExasolInstance(InstanceBase):
    """Exasol connection params."""

    dialect: Literal["exasol"]
    port: int = 8563


class MysqlInstance(InstanceBase):
    """MySQL connection params."""

    dialect: Literal["mysql"]
    port: int = 3306


class MssqlInstance(InstanceBase):
    """MSSQL connection params."""

    dialect: Literal["mssql"]
    port: int = 1433
    database: str
    odbc_driver: str = "ODBC Driver 18 for SQL Server"


class OracleInstance(InstanceBase):
    """Oracle connection params."""

    dialect: Literal["oracle"]
    port: int = 1521
    service: str


class PostgresInstance(InstanceBase):
    """Postgres connection params."""

    dialect: Literal["postgresql"]
    port: int = 5432
    database: str


InstanceConfig = Annotated[
    Union[ExasolInstance, MysqlInstance, MssqlInstance, OracleInstance, PostgresInstance],
    Field(discriminator="dialect"),
]


class Settings(BaseModel):
    """Global settings and all active DBMS instances."""

    model_config = ConfigDict(frozen=True)

    logfile: str
    passwordstore: str
    instances: Dict[str, InstanceConfig] = {}


def is_active(value) -> bool:
    return str(value).strip().lower() in ACTIVE_VALUES


def settings_from_raw(raw: dict) -> Settings:
    """Build the settings from the parsed config file.

    The config file holds one section per DBMS, each containing named instances,
    e.g. postgresql -> prod becomes the instance postgresql.prod.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError("the config file must contain a mapping")
    if not raw.get("Logfile"):
        raise ConfigurationError("the Logfile parameter isn't configured")
    if not raw.get("Passwordstore"):
        raise ConfigurationError("the Passwordstore parameter isn't configured")

    instances = {}
    for dbms, section in raw.items():
        if dbms in GLOBAL_KEYS:
            continue
        if dbms not in SUPPORTED_DIALECTS:
            raise ConfigurationError(
                f"unsupported DBMS '{dbms}', supported are: {', '.join(SUPPORTED_DIALECTS)}"
            )
        if not isinstance(section, dict):
            raise ConfigurationError(f"section '{dbms}' must contain named instances")
        for name, params in section.items():
            instance_id = f"{dbms}.{name}"
            if not isinstance(params, dict):
                raise ConfigurationError(f"instance '{instance_id}' has no parameters")
            if not is_active(params.get("active", 0)):
                LOGGER.debug("instance %s is inactive", instance_id)
                continue
            instances[instance_id] = {**params, "dialect": dbms, "instance_id": instance_id}

    try:
        return Settings(
            logfile=str(raw["Logfile"]),
            passwordstore=str(raw["Passwordstore"]),
            instances=instances,
        )
    except ValidationError as err:
        raise ConfigurationError(f"invalid instance configuration: {err}") from err


class Configuration:
    def __init__(self, config_file_name: str):
        self.config_file_name = config_file_name

    def raw_config(self) -> dict:
        try:
            with open(self.config_file_name, "r") as fd:
                raw_yaml = yaml.safe_load(fd)
        except IOError as err:
            raise ConfigurationError(f"{self.config_file_name} not found.") from err
        except yaml.YAMLError as err:
            raise ConfigurationError(f"{self.config_file_name} yaml not well formed.") from err
        if raw_yaml is None:
            raise ConfigurationError(f"{self.config_file_name} is empty.")
        return raw_yaml

    def settings(self) -> Settings:
        return settings_from_raw(self.raw_config())
