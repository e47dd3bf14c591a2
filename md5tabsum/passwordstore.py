"""
Encrypted password store.

The store holds one record per instance, `instance_id:password`, each sealed
with AES-256-GCM under a random 96 bit nonce and written as one base64 line.
The key is generated on creation of the store and kept next to it in
`<store>.key`, readable by the owner only.
"""

import base64
import binascii
import logging
import os
from typing import Callable, Dict, Iterable, List, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from rich.prompt import Prompt

from .errors import PasswordStoreError

LOGGER = logging.getLogger(__name__)

KEY_SUFFIX = ".key"
KEY_BITS = 256
NONCE_SIZE = 12
RECORD_SEPARATOR = ":"

PasswordPrompt = Callable[[str], str]


def prompt_password(instance_id: str) -> str:
    return Prompt.ask(f"Enter password for instance {instance_id}", password=True)


def _write_private(path: str, data: bytes):
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)


class PasswordStore:
    def __init__(self, path: str):
        self.path = path
        self.key_path = path + KEY_SUFFIX
        self._records: Optional[Dict[str, str]] = None

    def _key(self, create: bool = False) -> bytes:
        if not os.path.exists(self.key_path):
            if not create:
                raise PasswordStoreError(f"key file {self.key_path} not found, create the password store first")
            key = AESGCM.generate_key(bit_length=KEY_BITS)
            _write_private(self.key_path, key)
            LOGGER.info("created key file %s", self.key_path)
            return key
        with open(self.key_path, "rb") as fh:
            key = fh.read()
        if len(key) != KEY_BITS // 8:
            raise PasswordStoreError(f"key file {self.key_path} is corrupt")
        return key

    def _decrypt(self, cipher: AESGCM, line: str, lineno: int) -> str:
        try:
            sealed = base64.b64decode(line, validate=True)
            record = cipher.decrypt(sealed[:NONCE_SIZE], sealed[NONCE_SIZE:], None)
        except (binascii.Error, InvalidTag, ValueError) as err:
            raise PasswordStoreError(f"{self.path}: record {lineno} can't be decrypted") from err
        return record.decode("utf-8")

    def load(self) -> Dict[str, str]:
        """Read and decrypt all records, keyed by instance id."""
        if not os.path.exists(self.path):
            raise PasswordStoreError(f"password store {self.path} not found")
        cipher = AESGCM(self._key())
        records = {}
        with open(self.path, "r", encoding="ascii") as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                record = self._decrypt(cipher, line, lineno)
                instance_id, sep, secret = record.partition(RECORD_SEPARATOR)
                if not sep:
                    raise PasswordStoreError(f"{self.path}: record {lineno} is malformed")
                records[instance_id] = secret
        self._records = records
        return dict(records)

    def _save(self, records: Dict[str, str], create: bool = False):
        cipher = AESGCM(self._key(create=create))
        lines = []
        for instance_id in sorted(records):
            nonce = os.urandom(NONCE_SIZE)
            record = f"{instance_id}{RECORD_SEPARATOR}{records[instance_id]}".encode("utf-8")
            sealed = nonce + cipher.encrypt(nonce, record, None)
            lines.append(base64.b64encode(sealed).decode("ascii"))
        _write_private(self.path, ("\n".join(lines) + "\n").encode("ascii") if lines else b"")
        self._records = dict(records)

    def get(self, instance_id: str) -> Optional[str]:
        if self._records is None:
            self.load()
        return self._records.get(instance_id)

    def list(self) -> List[str]:
        return sorted(self.load())

    def create(self, instance_ids: Iterable[str], prompt: PasswordPrompt = prompt_password):
        """Create the store from scratch, asking for the password of every instance."""
        records = {instance_id: prompt(instance_id) for instance_id in instance_ids}
        self._save(records, create=True)
        LOGGER.info("created password store %s with %d instance(s)", self.path, len(records))

    def add(self, instance_id: str, prompt: PasswordPrompt = prompt_password):
        records = self.load()
        if instance_id in records:
            raise PasswordStoreError(f"instance {instance_id} already exists in the password store")
        records[instance_id] = prompt(instance_id)
        self._save(records)
        LOGGER.info("added instance %s to the password store", instance_id)

    def update(self, instance_id: str, prompt: PasswordPrompt = prompt_password):
        records = self.load()
        if instance_id not in records:
            raise PasswordStoreError(f"instance {instance_id} doesn't exist in the password store")
        records[instance_id] = prompt(instance_id)
        self._save(records)
        LOGGER.info("updated instance %s in the password store", instance_id)

    def delete(self, instance_id: str):
        records = self.load()
        if instance_id not in records:
            raise PasswordStoreError(f"instance {instance_id} doesn't exist in the password store")
        del records[instance_id]
        self._save(records)
        LOGGER.info("deleted instance %s from the password store", instance_id)
