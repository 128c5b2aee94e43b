"""
ReportAggregator — 実行記録の集約とレポート生成

全 TestRecord と RunSummary を保持し、JSON / HTML / JUnit XML 形式のレポートを生成する。

主な機能:
  - open_record / close_record: Runner からの開始・終了の記録（集計値の更新）
  - render(): レポート用辞書の生成（合格率・実行時間はここで計算）
  - write_json(): JSON レポート（report.json）の生成
  - write_html(): Jinja2 テンプレートを使用した HTML レポート（report.html）の生成
  - write_junit_xml(): JUnit XML レポート（junit.xml）の生成（CI 統合用）

render() は RunSummary.ended_at を最初の呼び出しでのみ設定する。
状態が変わらなければ何度呼んでも同じ集計値を返す。
"""

from __future__ import annotations

import json
import logging
import os
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader

from .records import RunSummary, TestRecord

logger = logging.getLogger(__name__)

# テンプレートディレクトリのパス
_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ReportAggregator:
    """実行記録の集約クラス。

    TestRecord の一覧と RunSummary を実行全体を通じて保持する。
    記録の追加・終了は Runner からのみ行い、削除・並べ替えは行わない。

    Attributes:
        browser: レポートに表示するブラウザ名
        environment: レポートに表示する実行環境名
        title: レポートタイトル
    """

    def __init__(
        self,
        browser: str = "chromium",
        environment: str = "Local",
        title: str = "ParaBank CI/CD Test Report",
    ) -> None:
        self.browser = browser
        self.environment = environment
        self.title = title
        self._records: list[TestRecord] = []
        self._summary = RunSummary()

    @property
    def records(self) -> tuple[TestRecord, ...]:
        return tuple(self._records)

    @property
    def summary(self) -> RunSummary:
        return self._summary

    # -------------------------------------------------------------------
    # 記録（Runner から呼ばれる）
    # -------------------------------------------------------------------

    def open_record(self, name: str) -> TestRecord:
        """TestRecord を生成して running にし、total を加算する。"""
        record = TestRecord(name=name)
        record.start()
        self._records.append(record)
        self._summary.total += 1
        return record

    def close_record(
        self,
        record: TestRecord,
        error: Optional[BaseException] = None,
        cleanup_error: Optional[BaseException] = None,
    ) -> None:
        """TestRecord を passed / failed にして終了処理を行い、集計値を加算する。

        Args:
            record: open_record() で生成した TestRecord
            error: シナリオで発生した例外（成功時は None）
            cleanup_error: error の後、セッション終了処理で発生した例外。
                error のメッセージに追記し、error を置き換えない。
        """
        try:
            if error is None:
                record.mark_passed()
                self._summary.passed += 1
            else:
                message = _describe(error)
                if cleanup_error is not None:
                    message += f"\n後処理でもエラーが発生しました: {_describe(cleanup_error)}"
                record.mark_failed(message)
                self._summary.failed += 1
        finally:
            record.finalize()

    # -------------------------------------------------------------------
    # レンダリング
    # -------------------------------------------------------------------

    def render(self) -> dict[str, Any]:
        """レポート用辞書を生成する。

        初回呼び出しで RunSummary.ended_at を設定する。2 回目以降は
        ended_at を変更しないため、集計値は同じになる。

        Returns:
            summary と tests を持つ辞書
        """
        summary = self._summary
        if summary.ended_at is None:
            summary.ended_at = datetime.now()

        return {
            "title": self.title,
            "generated_at": _iso(summary.ended_at),
            "summary": {
                "total": summary.total,
                "passed": summary.passed,
                "failed": summary.failed,
                "pass_rate": summary.pass_rate,
                "duration_ms": summary.duration_ms,
                "started_at": _iso(summary.started_at),
                "ended_at": _iso(summary.ended_at),
                "browser": self.browser,
                "environment": self.environment,
            },
            "tests": [self._record_dict(r) for r in self._records],
        }

    def _record_dict(self, record: TestRecord) -> dict[str, Any]:
        return {
            "name": record.name,
            "status": record.status,
            "steps": [
                {"description": s.description, "timestamp": _iso(s.timestamp)}
                for s in record.steps
            ],
            "error": record.error,
            "started_at": _iso(record.started_at),
            "ended_at": _iso(record.ended_at),
            "duration_ms": record.duration_ms,
            "screenshots": [p.as_posix() for p in record.screenshots],
        }

    # -------------------------------------------------------------------
    # JSON レポート
    # -------------------------------------------------------------------

    def write_json(self, output_dir: Path) -> Path:
        """JSON レポート（report.json）を生成する。"""
        output_dir.mkdir(parents=True, exist_ok=True)

        output_path = output_dir / "report.json"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.render(), f, ensure_ascii=False, indent=2)

        logger.info("JSON レポートを生成しました: %s", output_path)
        return output_path

    # -------------------------------------------------------------------
    # HTML レポート
    # -------------------------------------------------------------------

    def write_html(self, output_dir: Path) -> Path:
        """HTML レポート（report.html）を生成する。

        Jinja2 テンプレート（templates/report.html.j2）を使用して
        スタンドアロン HTML レポートを生成する。スクリーンショットへのリンクは
        output_dir からの相対パスにする。
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)),
            autoescape=True,
        )
        env.filters["seconds"] = _format_seconds
        template = env.get_template("report.html.j2")
        report = self.render()
        for test in report["tests"]:
            test["screenshots"] = [
                _relative_screenshot_path(Path(p), output_dir) for p in test["screenshots"]
            ]
        html_content = template.render(report=report)

        output_path = output_dir / "report.html"
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(html_content)

        logger.info("HTML レポートを生成しました: %s", output_path)
        return output_path

    # -------------------------------------------------------------------
    # JUnit XML レポート
    # -------------------------------------------------------------------

    def write_junit_xml(self, output_dir: Path) -> Path:
        """JUnit XML レポート（junit.xml）を生成する。

        各 TestRecord を testcase として出力する。
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        report = self.render()
        summary = report["summary"]

        testsuites = ET.Element("testsuites")
        testsuite = ET.SubElement(testsuites, "testsuite")
        testsuite.set("name", f"{self.title} ({self.browser})")
        testsuite.set("tests", str(summary["total"]))
        testsuite.set("failures", str(summary["failed"]))
        testsuite.set("time", f"{(summary['duration_ms'] or 0) / 1000:.3f}")

        for test in report["tests"]:
            testcase = ET.SubElement(testsuite, "testcase")
            testcase.set("name", test["name"])
            testcase.set("classname", self.browser)
            testcase.set("time", f"{(test['duration_ms'] or 0) / 1000:.3f}")

            if test["status"] == "failed":
                failure = ET.SubElement(testcase, "failure")
                failure.set("message", test["error"] or "")
                failure.text = test["error"]

            if test["steps"]:
                system_out = ET.SubElement(testcase, "system-out")
                system_out.text = "\n".join(
                    f"[{s['timestamp']}] {s['description']}" for s in test["steps"]
                )

        tree = ET.ElementTree(testsuites)
        output_path = output_dir / "junit.xml"
        ET.indent(tree, space="  ")
        tree.write(str(output_path), encoding="unicode", xml_declaration=True)

        logger.info("JUnit XML レポートを生成しました: %s", output_path)
        return output_path

    def write_all(self, output_dir: Path) -> dict[str, Path]:
        """JSON / HTML / JUnit XML の全レポートを生成する。"""
        return {
            "json": self.write_json(output_dir),
            "html": self.write_html(output_dir),
            "junit": self.write_junit_xml(output_dir),
        }


def _format_seconds(duration_ms: Optional[float]) -> str:
    """ミリ秒を秒表記（四捨五入）にする。未設定なら "-"。"""
    if duration_ms is None:
        return "-"
    return f"{int(duration_ms / 1000 + 0.5)}s"


def _describe(error: BaseException) -> str:
    """例外のメッセージ。空なら例外クラス名。"""
    return str(error) or type(error).__name__


def _relative_screenshot_path(screenshot_path: Path, output_dir: Path) -> str:
    """スクリーンショットパスをレポート出力先からの相対パスに変換する。

    report.html からのリンクとして解決できるよう、POSIX 形式で返す。
    """
    try:
        relative = os.path.relpath(screenshot_path.resolve(), output_dir.resolve())
    except ValueError:
        # Windows で別ドライブの場合は相対パスにできない
        return screenshot_path.resolve().as_posix()
    return Path(relative).as_posix()
