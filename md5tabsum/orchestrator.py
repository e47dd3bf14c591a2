"""
Runs the checksums of all active instances in parallel.

Each instance gets its own thread and its own connection. The instances don't
share anything but the log sink and the stdout printer, a failing instance never
stops its siblings. The outcomes are reduced to one process status.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Mapping, Optional

from .dialect import get_adapter
from .errors import ConnectError
from .logger import instance_logger
from .models import RunOutcome, Status
from .runner import Emit, InstanceRunner

LOGGER = logging.getLogger(__name__)


class Orchestrator:
    def __init__(
        self,
        instances: Mapping[str, object],
        credentials,
        emit: Emit,
        max_workers: Optional[int] = None,
        engine_factory=None,
    ):
        self.instances = instances
        self.credentials = credentials
        self.emit = emit
        self.max_workers = max_workers
        self.engine_factory = engine_factory
        self.outcomes: Dict[str, RunOutcome] = {}

    def run_instance(self, instance) -> RunOutcome:
        secret = self.credentials.get(instance.instance_id)
        if secret is None:
            err = ConnectError(instance.instance_id, "no password found in the password store")
            instance_logger(instance.instance_id, instance.loglevel).error(err.message)
            return RunOutcome(instance_id=instance.instance_id, status=Status.ERROR, error=str(err))
        kwargs = {"engine_factory": self.engine_factory} if self.engine_factory else {}
        runner = InstanceRunner(instance, get_adapter(instance.dialect), secret, self.emit, **kwargs)
        return runner.run()

    def run(self) -> Status:
        """Run every instance and OR their status together."""
        status = Status.OK
        if not self.instances:
            LOGGER.warning("no active instance configured")
            return status

        workers = self.max_workers or len(self.instances)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="md5tabsum") as executor:
            future_to_instance = {
                executor.submit(self.run_instance, instance): instance_id
                for instance_id, instance in self.instances.items()
            }
            for future in as_completed(future_to_instance):
                instance_id = future_to_instance[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    LOGGER.exception("[%s] unexpected failure", instance_id)
                    outcome = RunOutcome(instance_id=instance_id, status=Status.ERROR, error=str(e))
                self.outcomes[instance_id] = outcome
                status |= outcome.status
        return status

    def failed(self) -> List[str]:
        return sorted(i for i, outcome in self.outcomes.items() if outcome.status != Status.OK)
