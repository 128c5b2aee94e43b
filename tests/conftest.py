"""
テスト共通フィクスチャ

実際のブラウザは起動しない。ブラウザセッションは各テストモジュールで
unittest.mock もしくは簡易フェイクを使って代替する。
"""

from pathlib import Path

import pytest

from webcheck.config import RunConfig

_ENV_KEYS = (
    "WEBCHECK_BROWSER",
    "WEBCHECK_HEADLESS",
    "WEBCHECK_BASE_URL",
    "WEBCHECK_TIMEOUT",
    "WEBCHECK_NETWORK_IDLE_TIMEOUT",
    "WEBCHECK_SCREENSHOT_DIR",
    "WEBCHECK_REPORT_DIR",
    "BROWSER",
    "CI",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """webcheck が参照する環境変数を削除し、カレントディレクトリを一時ディレクトリにする。

    カレントに webcheck.yaml があると読み込まれるため、tmp_path に移動する。
    """
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def run_config(tmp_path: Path) -> RunConfig:
    """一時ディレクトリを出力先とした RunConfig。"""
    return RunConfig(
        timeout_ms=1000,
        screenshot_dir=tmp_path / "screenshots",
        report_dir=tmp_path / "test-results",
    )
