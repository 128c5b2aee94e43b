"""
実行設定 — 設定ファイル・環境変数からの設定読み込み

CLI 引数 > 環境変数 > 設定ファイル（webcheck.yaml） > デフォルト値 の優先順位で適用される。
何も指定しなくても実行できるよう、全項目にデフォルト値を持つ。

環境変数一覧:
  WEBCHECK_BROWSER       : ブラウザエンジン（chromium/firefox/webkit。未設定時は BROWSER を参照）
  WEBCHECK_HEADLESS      : ヘッドレス実行（true/false。未設定時は CI=true ならヘッドレス）
  WEBCHECK_BASE_URL      : テスト対象のベース URL
  WEBCHECK_TIMEOUT       : 1 操作あたりのタイムアウト予算（ミリ秒）
  WEBCHECK_NETWORK_IDLE_TIMEOUT: 遷移後の networkidle 待機時間（ミリ秒）
  WEBCHECK_SCREENSHOT_DIR: スクリーンショット保存先
  WEBCHECK_REPORT_DIR    : レポート出力先
  CI                     : 設定されていれば実行環境を "CI/CD Pipeline" とする
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("webcheck.yaml")

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_BROWSER = "WEBCHECK_BROWSER"
_ENV_BROWSER_FALLBACK = "BROWSER"
_ENV_HEADLESS = "WEBCHECK_HEADLESS"
_ENV_BASE_URL = "WEBCHECK_BASE_URL"
_ENV_TIMEOUT = "WEBCHECK_TIMEOUT"
_ENV_NETWORK_IDLE_TIMEOUT = "WEBCHECK_NETWORK_IDLE_TIMEOUT"
_ENV_SCREENSHOT_DIR = "WEBCHECK_SCREENSHOT_DIR"
_ENV_REPORT_DIR = "WEBCHECK_REPORT_DIR"
_ENV_CI = "CI"

BrowserName = Literal["chromium", "firefox", "webkit"]
_BROWSERS = ("chromium", "firefox", "webkit")


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class RunConfig:
    """テスト実行の設定。

    Attributes:
        browser: ブラウザエンジン
        headless: ヘッドレス実行するか
        base_url: テスト対象のベース URL
        timeout_ms: 1 操作あたりのタイムアウト予算（候補セレクタ全体で共有）
        network_idle_timeout_ms: 遷移後の networkidle 待機時間
        screenshot_dir: スクリーンショット保存先
        report_dir: レポート出力先
        environment: レポートに表示する実行環境名
    """

    browser: BrowserName = "chromium"
    headless: bool = False
    base_url: str = "https://parabank.parasoft.com/parabank"
    timeout_ms: int = 45_000
    network_idle_timeout_ms: int = 10_000
    screenshot_dir: Path = field(default_factory=lambda: Path("screenshots"))
    report_dir: Path = field(default_factory=lambda: Path("test-results"))
    environment: str = "Local"

    def url(self, path: str) -> str:
        """base_url からの相対パスを絶対 URL にする。"""
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


# ---------------------------------------------------------------------------
# 設定ファイル
# ---------------------------------------------------------------------------

class ConfigFile(BaseModel):
    """webcheck.yaml のスキーマ。全項目省略可。"""

    model_config = ConfigDict(extra="forbid")

    browser: Optional[BrowserName] = None
    headless: Optional[bool] = None
    base_url: Optional[str] = Field(default=None, min_length=1)
    timeout_ms: Optional[int] = Field(default=None, gt=0)
    network_idle_timeout_ms: Optional[int] = Field(default=None, gt=0)
    screenshot_dir: Optional[Path] = None
    report_dir: Optional[Path] = None


def load_config_file(path: Path) -> ConfigFile:
    """設定ファイルを読み込み、スキーマ検証する。

    Raises:
        ConfigError: YAML の構文エラー、またはスキーマ違反の場合
    """
    yaml = YAML(typ="safe")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f)
    except (OSError, YAMLError) as exc:
        raise ConfigError(f"設定ファイルを読み込めません: {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"設定ファイルの形式が不正です（マッピングが必要）: {path}")

    try:
        return ConfigFile.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"設定ファイルの内容が不正です: {path}\n{exc}") from exc


# ---------------------------------------------------------------------------
# 環境変数
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """"true", "1", "yes" → True、それ以外 → False"""
    return value.lower() in ("true", "1", "yes")


def _parse_positive_int(env: Mapping[str, str], key: str) -> Optional[int]:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s の値が不正です: %s", key, raw)
        return None
    if value <= 0:
        logger.warning("%s は正の値を指定してください: %s", key, raw)
        return None
    return value


def apply_env(config: RunConfig, env: Optional[Mapping[str, str]] = None) -> RunConfig:
    """環境変数を設定に適用する。不正な値は警告して無視する。"""
    env = os.environ if env is None else env
    config = replace(config)

    browser = env.get(_ENV_BROWSER) or env.get(_ENV_BROWSER_FALLBACK)
    if browser:
        if browser in _BROWSERS:
            config.browser = browser  # type: ignore[assignment]
        else:
            logger.warning("未対応のブラウザ指定を無視します: %s", browser)

    if _ENV_HEADLESS in env:
        config.headless = _parse_bool(env[_ENV_HEADLESS])
    elif _ENV_CI in env:
        config.headless = env[_ENV_CI] == "true"

    if env.get(_ENV_BASE_URL):
        config.base_url = env[_ENV_BASE_URL]

    timeout = _parse_positive_int(env, _ENV_TIMEOUT)
    if timeout is not None:
        config.timeout_ms = timeout

    idle_timeout = _parse_positive_int(env, _ENV_NETWORK_IDLE_TIMEOUT)
    if idle_timeout is not None:
        config.network_idle_timeout_ms = idle_timeout

    if env.get(_ENV_SCREENSHOT_DIR):
        config.screenshot_dir = Path(env[_ENV_SCREENSHOT_DIR])

    if env.get(_ENV_REPORT_DIR):
        config.report_dir = Path(env[_ENV_REPORT_DIR])

    config.environment = "CI/CD Pipeline" if env.get(_ENV_CI) else "Local"
    return config


# ---------------------------------------------------------------------------
# まとめて読み込み
# ---------------------------------------------------------------------------

def load_config(
    config_file: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RunConfig:
    """設定ファイル・環境変数・上書き値から RunConfig を生成する。

    Args:
        config_file: 設定ファイルのパス。None の場合は webcheck.yaml が存在すれば読む
        env: 環境変数（None の場合は os.environ）
        overrides: CLI 引数などによる上書き値（None の値は無視）

    Raises:
        ConfigError: 設定ファイルや上書き値が不正な場合
    """
    config = RunConfig()

    path = config_file
    if path is None and DEFAULT_CONFIG_FILE.exists():
        path = DEFAULT_CONFIG_FILE
    if path is not None:
        file_values = load_config_file(path).model_dump(exclude_none=True)
        config = replace(config, **file_values)
        logger.debug("設定ファイルを読み込みました: %s", path)

    config = apply_env(config, env)

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if not hasattr(config, key):
            raise ConfigError(f"不明な設定項目です: {key}")
        setattr(config, key, value)

    if config.browser not in _BROWSERS:
        raise ConfigError(f"未対応のブラウザです: {config.browser}")
    if config.timeout_ms <= 0:
        raise ConfigError(f"timeout_ms は正の値を指定してください: {config.timeout_ms}")

    logger.info("設定を読み込みました: %s", config)
    return config
