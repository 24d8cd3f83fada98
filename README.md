# ctrdapps

Queries for compose Apps on a host whose container runtime is containerd.
The queries are made through the `nerdctl` command.

`ctrdapps.client.ContainerdClient` asks `nerdctl` for the containers on the
host. With that list it can:

- look up the state of a single service;
- build a summary of the Apps that have containers.

## Installing

```
pip install .
```

The package has no dependencies outside the standard library. At run time
it needs `nerdctl` installed on the host.

## Listing Apps

```python
from ctrdapps.client import ContainerdClient

client = ContainerdClient("/usr/bin/nerdctl")
apps = client.get_running_apps()
for name, info in apps.items():
    for service in info["services"]:
        print(name, service["name"], service["state"], service["health"])
```

### Reading the containers

`get_containers()` runs `nerdctl ps -a --format json`. It parses one JSON
document per output line and stops at the first empty line. The
`nerdctl_path` given to the constructor is split like a shell command, so
it may carry extra arguments.

### Looking up one service

`get_container_state(containers, app, service, config_hash)` looks for the
first container whose labels match all of these:

- `com.docker.compose.project`
- `com.docker.compose.service`
- `io.compose-spec.config-hash`

It returns a pair. If a container matches, the pair is `(True, status)`,
where `status` is the container's state status. If none matches, the pair
is `(False, "")`.

### Summarizing without calling nerdctl

`summarize_containers(containers)` builds the per-App summary from
container records you already have. `get_running_apps()` returns the same
summary, built from `get_containers()`. It accepts an `ext_func` argument
but does not use it.

Containers without a compose project label are skipped. Each remaining
container becomes one service entry under its App. An entry has these
keys:

- `name`
- `hash`
- `image`
- `state`
- `status`
- `health`

A container in the `stopped` state is reported as `exited`. The `health`
of a service is `unhealthy` in two cases:

- its state is `unknown`;
- it has exited with a non-zero exit status.

Every other service is `healthy`.

## Operations that nerdctl does not support here

These calls raise `ctrdapps.client.UnsupportedOperation`, which is a
subclass of `RuntimeError`:

- `get_container_logs`
- `engine_info`
- `arch`

`prune_images()` and `prune_containers()` log an error and return `False`.
They do not prune anything.

## What this package does not do

The package only reads container state. It does not:

- fetch Apps;
- pull images;
- start, stop or remove Apps.

It has no command-line entry point.