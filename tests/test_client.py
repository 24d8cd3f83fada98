import json
import logging
import shlex
import sys

import pytest

from ctrdapps.client import ContainerdClient, summarize_containers


def _container(app, service, config_hash, status, exit_status=0, image="img"):
    return {
        "Labels": {
            "com.docker.compose.project": app,
            "com.docker.compose.service": service,
            "io.compose-spec.config-hash": config_hash,
        },
        "State": {"Status": status, "ExitStatus": exit_status},
        "Image": image,
        "Status": "Up",
    }


CONTAINERS = [
    _container("app-01", "service-01", "h1", "running", image="image-01"),
    _container("app-01", "service-02", "h2", "stopped", exit_status=1),
    _container("app-02", "service-03", "h3", "unknown"),
    {"Labels": {}, "State": {"Status": "running"}, "Image": "loose"},
]


def _fake_nerdctl(tmp_path, lines):
    script = tmp_path / "nerdctl_fake.py"
    out_file = tmp_path / "out.txt"
    out_file.write_text("".join(line + "\n" for line in lines))
    args_file = tmp_path / "args.txt"
    script.write_text(
        "import sys\n"
        f"open({str(args_file)!r}, 'w').write(' '.join(sys.argv[1:]))\n"
        f"sys.stdout.write(open({str(out_file)!r}).read())\n"
    )
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}", args_file


def test_summarize_groups_by_app():
    apps = summarize_containers(CONTAINERS)
    assert sorted(apps) == ["app-01", "app-02"]
    assert [s["name"] for s in apps["app-01"]["services"]] == ["service-01", "service-02"]
    first = apps["app-01"]["services"][0]
    assert first["image"] == "image-01"
    assert first["hash"] == "h1"
    assert first["health"] == "healthy"


def test_summarize_stopped_becomes_exited_and_unhealthy():
    service = summarize_containers(CONTAINERS)["app-01"]["services"][1]
    assert service["state"] == "exited"
    assert service["health"] == "unhealthy"


def test_summarize_exited_with_zero_code_is_healthy():
    apps = summarize_containers([_container("a", "s", "h", "stopped", exit_status=0)])
    assert apps["a"]["services"][0]["health"] == "healthy"


def test_summarize_unknown_state_is_unhealthy():
    apps = summarize_containers(CONTAINERS)
    assert apps["app-02"]["services"][0]["health"] == "unhealthy"


def test_get_container_state():
    client = ContainerdClient("nerdctl")
    assert client.get_container_state(CONTAINERS, "app-01", "service-01", "h1") == (True, "running")
    assert client.get_container_state(CONTAINERS, "app-01", "service-01", "h2") == (False, "")
    assert client.get_container_state([], "app-01", "service-01", "h1") == (False, "")


def test_get_containers_stops_at_empty_line(tmp_path):
    lines = [json.dumps(c) for c in CONTAINERS[:2]] + ["", json.dumps(CONTAINERS[2])]
    nerdctl, args_file = _fake_nerdctl(tmp_path, lines)
    containers = ContainerdClient(nerdctl).get_containers()
    assert containers == CONTAINERS[:2]
    assert args_file.read_text() == "ps -a --format json"


def test_get_running_apps(tmp_path):
    nerdctl, _ = _fake_nerdctl(tmp_path, [json.dumps(c) for c in CONTAINERS])
    apps = ContainerdClient(nerdctl).get_running_apps(None)
    assert apps == summarize_containers(CONTAINERS)


@pytest.mark.parametrize("method,args", [
    ("get_container_logs", ("id", 10)),
    ("engine_info", ()),
    ("arch", ()),
])
def test_unsupported_operations_raise(method, args):
    with pytest.raises(RuntimeError):
        getattr(ContainerdClient("nerdctl"), method)(*args)


def test_prune_logs_errors(caplog):
    client = ContainerdClient("nerdctl")
    with caplog.at_level(logging.ERROR):
        client.prune_images()
        client.prune_containers()
    assert "Image pruning is not supported in nerdctl" in caplog.text
    assert "Container pruning is not supported in nerdctl" in caplog.text