class Md5TabsumError(Exception):
    """Base class for md5tabsum errors."""


class ConfigurationError(Md5TabsumError, ValueError):
    """Config file is missing, malformed or names an unsupported DBMS."""


class PasswordStoreError(Md5TabsumError):
    """Password store can't be read, written or doesn't hold the instance."""


class InstanceError(Md5TabsumError):
    """A failure which is isolated to one DBMS instance."""

    def __init__(self, instance_id: str, message: str):
        super().__init__(f"[{instance_id}] {message}")
        self.instance_id = instance_id
        self.message = message


class ConnectError(InstanceError):
    pass


class DiscoveryError(InstanceError):
    pass


class ChecksumQueryError(InstanceError):
    pass
