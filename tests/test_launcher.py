"""
Tests for launch argument building and the write-once Sentinel config.
"""
import stat

import pytest

from bootstrap import launcher
from bootstrap.config import RedisNodeConfig, SentinelConfig
from bootstrap.errors import MissingConfiguration
from bootstrap.models import ReplicationRole, ResolvedTopology, TopologySource


def redis_config(**overrides):
    values = {"master_password": "s3cret"}
    values.update(overrides)
    return RedisNodeConfig(**values)


def sentinel_config(tmp_path, **overrides):
    values = {
        "master_name": "redis-ha-default",
        "quorum": 2,
        "sentinel_password": "s3cret",
        "config_file": str(tmp_path / "sentinel.conf"),
    }
    values.update(overrides)
    return SentinelConfig(**values)


def topology(primary_address, role):
    return ResolvedTopology(primary_address, role, TopologySource.PEER_ROLE_CHAIN)


def test_primary_arguments():
    args = launcher.build_redis_arguments(topology("10.42.0.1", ReplicationRole.PRIMARY), redis_config())

    assert args == ["redis-server", "--requirepass", "s3cret", "--masterauth", "s3cret"]


def test_replica_arguments_add_replication_directive():
    args = launcher.build_redis_arguments(
        topology("10.42.0.1", ReplicationRole.REPLICA),
        redis_config(replication_port=6380),
    )

    assert args[-3:] == ["--slaveof", "10.42.0.1", "6380"]
    assert args[1:5] == ["--requirepass", "s3cret", "--masterauth", "s3cret"]


def test_replica_without_primary_is_rejected():
    with pytest.raises(MissingConfiguration):
        launcher.build_redis_arguments(topology("", ReplicationRole.REPLICA), redis_config())


def test_masked_hides_secrets():
    args = ["redis-server", "--requirepass", "s3cret", "--masterauth", "s3cret", "--slaveof", "h", "6379"]

    assert "s3cret" not in launcher.masked(args)
    assert launcher.masked(args)[-3:] == ["--slaveof", "h", "6379"]


def test_render_template_replaces_only_known_placeholders():
    text = "sentinel monitor ${REDIS_HA_SENTINEL_MASTER_NAME} ${REDIS_HA_SENTINEL_MASTER_HOSTNAME} 6379 " \
           "${REDIS_HA_SENTINEL_QUORUM}\nfoo ${HOME} $PATH\n"

    rendered = launcher.render_template(text, {
        "REDIS_HA_SENTINEL_MASTER_NAME": "group",
        "REDIS_HA_SENTINEL_MASTER_HOSTNAME": "10.42.0.1",
        "REDIS_HA_SENTINEL_QUORUM": "2",
        "HOME": "/root",
    })

    assert rendered == "sentinel monitor group 10.42.0.1 6379 2\nfoo ${HOME} $PATH\n"


def test_prepare_sentinel_config_renders_once(tmp_path):
    config = sentinel_config(tmp_path)
    template = tmp_path / "sentinel.conf.skel"
    template.write_text(
        "sentinel monitor ${REDIS_HA_SENTINEL_MASTER_NAME} ${REDIS_HA_SENTINEL_MASTER_HOSTNAME} 6379 "
        "${REDIS_HA_SENTINEL_QUORUM}\n"
        "sentinel auth-pass ${REDIS_HA_SENTINEL_MASTER_NAME} ${REDIS_HA_SENTINEL_PASSWORD}\n"
    )
    values = launcher.sentinel_template_values(topology("10.42.0.1", ReplicationRole.REPLICA), config)

    generated = launcher.prepare_sentinel_config(config.config_file, config.template_file, values)

    target = tmp_path / "sentinel.conf"
    assert generated is True
    assert target.read_text() == (
        "sentinel monitor redis-ha-default 10.42.0.1 6379 2\n"
        "sentinel auth-pass redis-ha-default s3cret\n"
    )
    assert stat.S_IMODE(target.stat().st_mode) == 0o640


def test_prepare_sentinel_config_never_overwrites(tmp_path):
    config = sentinel_config(tmp_path)
    target = tmp_path / "sentinel.conf"
    target.write_text("sentinel monitor group 10.42.0.9 6379 2\n")
    (tmp_path / "sentinel.conf.skel").write_text("${REDIS_HA_SENTINEL_MASTER_HOSTNAME}\n")
    values = launcher.sentinel_template_values(topology("10.42.0.1", ReplicationRole.REPLICA), config)

    generated = launcher.prepare_sentinel_config(config.config_file, config.template_file, values)

    assert generated is False
    assert target.read_text() == "sentinel monitor group 10.42.0.9 6379 2\n"
    assert stat.S_IMODE(target.stat().st_mode) == 0o640


def test_prepare_sentinel_config_needs_template(tmp_path):
    config = sentinel_config(tmp_path)

    with pytest.raises(MissingConfiguration):
        launcher.prepare_sentinel_config(config.config_file, config.template_file, {})

    assert not (tmp_path / "sentinel.conf").exists()


def test_sentinel_arguments(tmp_path):
    config = sentinel_config(tmp_path)

    assert launcher.build_sentinel_arguments(config) == ["redis-server", str(tmp_path / "sentinel.conf"), "--sentinel"]


def test_exec_server_replaces_process(monkeypatch):
    calls = []
    monkeypatch.setattr(launcher.os, "execvp", lambda file, args: calls.append((file, args)))

    launcher.exec_server(["redis-server", "--requirepass", "pw"])

    assert calls == [("redis-server", ["redis-server", "--requirepass", "pw"])]
