from pathlib import Path
import pytest

from etcutils.config import EtcConfig

from .utils import ETC_GROUP, ETC_GSHADOW, ETC_PASSWD, ETC_SHADOW


@pytest.fixture
def in_tmp_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Runs a test in a temporary directory provided by the tmp_path fixture"""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def etc_root(tmp_path: Path) -> Path:
    """A scratch root holding an etc/ directory with all four databases"""
    etc = tmp_path / "etc"
    etc.mkdir()
    (etc / "passwd").write_text(ETC_PASSWD)
    (etc / "group").write_text(ETC_GROUP)
    (etc / "shadow").write_text(ETC_SHADOW)
    (etc / "gshadow").write_text(ETC_GSHADOW)
    return tmp_path


@pytest.fixture
def etc_config(etc_root: Path) -> EtcConfig:
    """Config pointing at etc_root, with a short lock timeout"""
    return EtcConfig(root=etc_root, lock_timeout=0.5)
