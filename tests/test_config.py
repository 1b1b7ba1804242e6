import os
from pathlib import Path
import pytest
from typing import Optional

from .utils import assert_paths_equal

import etcutils.config
from etcutils.config import EtcConfig
from etcutils.constants import ETCUTILS_CONFIG_ENV, LOCK_TIMEOUT


CONFIG_YML = Path("etcutils.yml")


def load_config(*, config_text: Optional[str] = None) -> EtcConfig:
    if config_text is not None:
        CONFIG_YML.write_text(config_text)
    return etcutils.config.load_config(CONFIG_YML)


def invalid_config(
    *,
    config_text: Optional[str] = None,
    error_match: Optional[str] = None,
) -> None:
    with pytest.raises(etcutils.config.ConfigError, match=error_match):
        load_config(config_text=config_text)


class TestEtcConfig:
    def test_defaults(self) -> None:
        config = EtcConfig()
        assert config.root == Path("/")
        assert config.lock_timeout == LOCK_TIMEOUT
        assert config.backup
        assert not config.continue_on_backup_error
        assert config.detect_concurrent_changes
        assert config.strict_parsing

    def test_default_paths(self) -> None:
        config = EtcConfig()
        assert_paths_equal(config.path_for("passwd"), "/etc/passwd")
        assert_paths_equal(config.path_for("gshadow"), "/etc/gshadow")
        assert_paths_equal(config.lock_path, "/etc/.pwd.lock")

    def test_root(self, tmp_path: Path) -> None:
        """Database paths are relative to root"""
        config = EtcConfig(root=tmp_path)
        assert_paths_equal(config.path_for("shadow"), tmp_path / "etc/shadow")

    def test_file_override(self, tmp_path: Path) -> None:
        config = EtcConfig(root=tmp_path, files=dict(passwd="srv/passwd"))
        assert_paths_equal(config.path_for("passwd"), tmp_path / "srv/passwd")
        assert_paths_equal(config.path_for("group"), tmp_path / "etc/group")

    def test_unknown_file(self) -> None:
        with pytest.raises(etcutils.config.ConfigError, match="hosts"):
            EtcConfig(files=dict(hosts="etc/hosts"))

    def test_negative_timeout(self) -> None:
        with pytest.raises(etcutils.config.ConfigError):
            EtcConfig(lock_timeout=-1)


@pytest.mark.usefixtures("in_tmp_path")
class ConfigTest:
    pass


class TestFindConfig(ConfigTest):
    def test_find_config_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """find_config uses $ETCUTILS_CONFIG"""
        monkeypatch.setenv(ETCUTILS_CONFIG_ENV, "/srv/etcutils.yml")
        assert etcutils.config.find_config() == Path("/srv/etcutils.yml")

    def test_find_config_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(ETCUTILS_CONFIG_ENV, raising=False)
        assert etcutils.config.find_config() is None

    def test_load_config_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """load_config gives the defaults when no config is named"""
        monkeypatch.delenv(ETCUTILS_CONFIG_ENV, raising=False)
        assert etcutils.config.load_config() == EtcConfig()

    def test_load_config_from_env(
        self, in_tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        CONFIG_YML.write_text("lock_timeout: 3")
        monkeypatch.setenv(ETCUTILS_CONFIG_ENV, str(in_tmp_path / CONFIG_YML))
        assert etcutils.config.load_config().lock_timeout == 3


class TestLoadConfig(ConfigTest):
    def test_load_config_empty(self) -> None:
        """An empty config file means the defaults"""
        assert load_config(config_text="") == EtcConfig()

    def test_load_config_missing(self) -> None:
        with pytest.raises(etcutils.config.ConfigError, match="Error opening"):
            etcutils.config.load_config(Path("nonexistent.yml"))

    def test_load_config_bad_yaml(self) -> None:
        invalid_config(config_text="root: [unterminated", error_match="Error loading")

    def test_load_config_not_mapping(self) -> None:
        invalid_config(config_text="- a\n- b\n", error_match="mapping")

    def test_load_unexpected_node(self) -> None:
        """load_config raises ConfigError on unexpected config node"""
        invalid_config(
            config_text="""
            backup: true
            unexpected_node_123456: value
            """,
            error_match="Unrecognized node: unexpected_node_123456",
        )

    def test_load_config_full(self) -> None:
        config = load_config(
            config_text="""
            root: /srv/chroot
            lock_timeout: 2.5
            backup: false
            continue_on_backup_error: true
            detect_concurrent_changes: false
            strict_parsing: false
            files:
              passwd: etc/passwd.test
            """
        )
        assert_paths_equal(config.root, "/srv/chroot")
        assert config.lock_timeout == 2.5
        assert not config.backup
        assert config.continue_on_backup_error
        assert not config.detect_concurrent_changes
        assert not config.strict_parsing
        assert_paths_equal(config.path_for("passwd"), "/srv/chroot/etc/passwd.test")

    def test_load_config_relative_root(self, in_tmp_path: Path) -> None:
        """A relative root is relative to the config file"""
        config = load_config(config_text="root: ./chroot")
        assert_paths_equal(config.root, in_tmp_path / "chroot")

    def test_load_config_relative_root_prefix(self) -> None:
        """Relative paths must start with ./ or ../"""
        invalid_config(config_text="root: chroot", error_match="must start with")

    def test_load_config_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHROOT_DIR", "/srv/chroot")
        config = load_config(config_text="root: $CHROOT_DIR")
        assert_paths_equal(config.root, "/srv/chroot")

    def test_load_config_unset_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_SUCH_VAR_12345", raising=False)
        invalid_config(
            config_text="root: $NO_SUCH_VAR_12345",
            error_match="Unset environment variable",
        )

    def test_load_config_bad_bool(self) -> None:
        invalid_config(config_text="backup: sometimes", error_match="'backup'")

    def test_load_config_bool_timeout(self) -> None:
        """A boolean is not a timeout"""
        invalid_config(config_text="lock_timeout: yes", error_match="number")

    def test_load_config_bad_file_node(self) -> None:
        invalid_config(
            config_text="""
            files:
              passwd: 3
            """,
            error_match="files.passwd",
        )

    def test_load_config_unknown_file(self) -> None:
        invalid_config(
            config_text="""
            files:
              hosts: etc/hosts
            """,
            error_match="hosts",
        )
