"""Container queries against a containerd daemon through the nerdctl CLI."""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
from itertools import takewhile
from typing import Any, Callable, Iterable, NoReturn, Optional

logger = logging.getLogger(__name__)

_PROJECT_LABEL = "com.docker.compose.project"
_SERVICE_LABEL = "com.docker.compose.service"
_HASH_LABEL = "io.compose-spec.config-hash"


class UnsupportedOperation(RuntimeError):
    """Raised when the containerd engine cannot perform a requested operation."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} is not implemented for containerd")
        self.operation = operation


def _as_str(value: Any) -> str:
    """Render a JSON scalar as text, treating a missing value as empty."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def _as_int(value: Any) -> int:
    if value is None or isinstance(value, (dict, list)):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _section(container: dict, key: str) -> dict:
    value = container.get(key)
    return value if isinstance(value, dict) else {}


def summarize_containers(containers: Iterable[dict]) -> dict:
    """Group containers by compose project into per-App service summaries.

    Containers that carry no compose project label are skipped.
    """
    apps: dict = {}
    for container in containers:
        labels = _section(container, "Labels")
        app_name = _as_str(labels.get(_PROJECT_LABEL))
        if not app_name:
            continue

        container_state = _section(container, "State")
        state = _as_str(container_state.get("Status"))
        if state == "stopped":
            state = "exited"

        unhealthy = state == "unknown" or (
            state == "exited" and _as_int(container_state.get("ExitStatus")) != 0
        )
        service = {
            "name": _as_str(labels.get(_SERVICE_LABEL)),
            "hash": _as_str(labels.get(_HASH_LABEL)),
            "image": _as_str(container.get("Image")),
            "state": state,
            "status": _as_str(container.get("Status")),
            "health": "unhealthy" if unhealthy else "healthy",
        }
        apps.setdefault(app_name, {}).setdefault("services", []).append(service)
    return apps


class ContainerdClient:
    """Client of a containerd engine driven by the nerdctl command."""

    _UNSUPPORTED = {
        "logs": "Log fetching",
        "engine_info": "Engine info fetching",
        "arch": "Arch obtaining",
    }

    def __init__(self, nerdctl_path: str) -> None:
        self.nerdctl_path = nerdctl_path

    def _unsupported(self, key: str) -> NoReturn:
        raise UnsupportedOperation(self._UNSUPPORTED[key])

    @staticmethod
    def _skip_prune(kind: str) -> bool:
        logger.error("%s pruning is not supported in nerdctl", kind)
        return False

    def get_containers(self) -> list:
        """List all containers, one JSON document per output line."""
        cmd = shlex.split(self.nerdctl_path) + ["ps", "-a", "--format", "json"]
        result = subprocess.run(cmd, stdout=subprocess.PIPE, text=True, check=False)
        lines = (line.rstrip("\r") for line in result.stdout.split("\n"))
        return [json.loads(line) for line in takewhile(bool, lines)]

    def get_container_state(
        self, containers: Iterable[dict], app: str, service: str, config_hash: str
    ) -> tuple:
        """Return (found, status) of the container matching App, service and hash."""
        for container in containers:
            labels = _section(container, "Labels")
            if (
                _as_str(labels.get(_PROJECT_LABEL)) == app
                and _as_str(labels.get(_SERVICE_LABEL)) == service
                and _as_str(labels.get(_HASH_LABEL)) == config_hash
            ):
                return True, _as_str(_section(container, "State").get("Status"))
        return False, ""

    def get_container_logs(self, container_id: str, tail: int) -> str:
        """Fetch container logs; containerd does not support it and raises."""
        self._unsupported("logs")

    def engine_info(self) -> dict:
        """Return engine information; containerd does not support it and raises."""
        self._unsupported("engine_info")

    def arch(self) -> str:
        """Return the engine architecture; containerd does not support it and raises."""
        self._unsupported("arch")

    def get_running_apps(
        self, ext_func: Optional[Callable[[str, dict], None]] = None
    ) -> dict:
        """Summarize the Apps whose containers are known to the engine."""
        return summarize_containers(self.get_containers())

    def prune_images(self) -> bool:
        """Report that image pruning is unavailable; returns False as nothing is pruned."""
        return self._skip_prune("Image")

    def prune_containers(self) -> bool:
        """Report that container pruning is unavailable; returns False as nothing is pruned."""
        return self._skip_prune("Container")