"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

webcheck コマンドとして以下のサブコマンドを提供する:
  - run: シナリオを実行し、レポートを生成する
  - init: 設定ファイル（webcheck.yaml）の雛形生成
  - list-scenarios: 実行可能なシナリオ一覧

終了コード:
  0: 全シナリオ成功
  1: 失敗したシナリオがある、またはレポート生成前に回復不能なエラーが発生した
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer

logger = logging.getLogger(__name__)

_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "webcheck — ブラウザ E2E チェックランナー\n\n"
        "  webcheck run              全シナリオを実行してレポートを生成\n"
        "  webcheck list-scenarios   シナリオ一覧を表示\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        force=True,
    )


# ---------------------------------------------------------------------------
# run コマンド
# ---------------------------------------------------------------------------

@app.command()
def run(
    browser: Optional[str] = typer.Option(
        None, "--browser", "-b", help="ブラウザエンジン (chromium / firefox / webkit)",
    ),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--headed", help="ブラウザ表示モード（デフォルト: CI=true ならヘッドレス）",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="テスト対象のベース URL",
    ),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="1 操作あたりのタイムアウト予算（ミリ秒、候補セレクタ全体で共有）",
    ),
    report_dir: Optional[Path] = typer.Option(
        None, "--report-dir", help="レポート出力先ディレクトリ",
    ),
    screenshot_dir: Optional[Path] = typer.Option(
        None, "--screenshot-dir", help="スクリーンショット保存先ディレクトリ",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="設定ファイル（デフォルト: ./webcheck.yaml があれば使用）",
    ),
    scenario: Optional[List[str]] = typer.Option(
        None, "--scenario", "-s", help="実行するシナリオ名（複数指定可、前方一致）",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="デバッグログを出力する"),
) -> None:
    """シナリオを順に実行し、HTML / JSON / JUnit XML レポートを生成する。"""
    from .config import load_config
    from .core.reporting import ReportAggregator
    from .core.runner import Runner
    from .scenarios import select_scenarios

    _configure_logging(verbose)

    try:
        config = load_config(
            config_file,
            overrides={
                "browser": browser,
                "headless": headless,
                "base_url": base_url,
                "timeout_ms": timeout,
                "report_dir": report_dir,
                "screenshot_dir": screenshot_dir,
            },
        )
        scenarios = select_scenarios(scenario)

        logger.info("テストスイートを開始します (browser=%s)", config.browser)
        logger.info("実行環境: %s", config.environment)
        logger.info("ヘッドレス: %s", config.headless)

        aggregator = ReportAggregator(browser=config.browser, environment=config.environment)
        runner = Runner(aggregator, config)
        asyncio.run(runner.run_all(scenarios))

        paths = aggregator.write_all(config.report_dir)
    except Exception as exc:
        logger.error("致命的なエラー: %s", exc)
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    report = aggregator.render()
    summary = report["summary"]
    duration_s = int((summary["duration_ms"] or 0) / 1000 + 0.5)
    logger.info("=== TEST EXECUTION SUMMARY ===")
    logger.info("Total Tests: %d", summary["total"])
    logger.info("Passed: %d", summary["passed"])
    logger.info("Failed: %d", summary["failed"])
    logger.info("Pass Rate: %d%%", summary["pass_rate"])
    logger.info("Duration: %ds", duration_s)
    logger.info("Browser: %s", summary["browser"])

    typer.echo(
        f"Total: {summary['total']}  Passed: {summary['passed']}  "
        f"Failed: {summary['failed']}  Pass Rate: {summary['pass_rate']}%"
    )
    typer.echo(f"レポート: {paths['html']}")

    if summary["failed"] > 0:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# init コマンド
# ---------------------------------------------------------------------------

_CONFIG_TEMPLATE = """\
# webcheck 設定
# 環境変数（WEBCHECK_*）と CLI オプションがこのファイルより優先されます
browser: chromium
headless: false
base_url: https://parabank.parasoft.com/parabank
timeout_ms: 45000
network_idle_timeout_ms: 10000
screenshot_dir: screenshots
report_dir: test-results
"""


@app.command()
def init(
    project_dir: Path = typer.Argument(
        Path("."), help="プロジェクトディレクトリ（デフォルト: カレント）",
    ),
) -> None:
    """設定ファイルの雛形（webcheck.yaml）を生成する。既存のファイルは上書きしない。"""
    try:
        project_dir.mkdir(parents=True, exist_ok=True)
        config_path = project_dir / "webcheck.yaml"
        if config_path.exists():
            typer.echo(f"既に存在するためスキップしました: {config_path}")
            return
        config_path.write_text(_CONFIG_TEMPLATE, encoding="utf-8")
        typer.echo(f"設定ファイルを生成しました: {config_path.resolve()}")
    except OSError as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# list-scenarios コマンド
# ---------------------------------------------------------------------------

@app.command("list-scenarios")
def list_scenarios() -> None:
    """実行可能なシナリオの一覧を表示する。"""
    from .scenarios import SCENARIOS

    for name, fn in SCENARIOS:
        doc = (fn.__doc__ or "").strip().splitlines()
        typer.echo(f"{name}: {doc[0] if doc else ''}")


if __name__ == "__main__":
    app()
