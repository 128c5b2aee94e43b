"""
Runner — テスト実行ライフサイクル

名前付きのシナリオ関数を実行し、TestRecord の状態遷移・時刻・エラーを記録する。

主な機能:
  - ScenarioContext: シナリオ関数に渡す実行コンテキスト（記録・セッション・操作ヘルパー）
  - Runner.run_test: 1 シナリオを実行し、結果を ReportAggregator に記録する
  - Runner.run_all: 複数シナリオを順に実行する

状態遷移:
  pending → running: 開始時刻を記録し、total を加算
  running → passed : シナリオ関数が例外なく終了
  running → failed : シナリオ関数内で例外が発生（エラーメッセージを記録）
  いずれの場合も終了時刻を記録し、ブラウザセッションは必ず終了する。

シナリオは逐次実行する。失敗したシナリオの再実行は行わない。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    AsyncContextManager,
    Awaitable,
    Callable,
    Optional,
    Sequence,
)

from .artifacts import ScreenshotStore
from .interactions import resolve_and_click, resolve_and_fill
from .selector import SelectorResolver
from .session import open_session

if TYPE_CHECKING:
    from ..config import RunConfig
    from .records import StepRecord, TestRecord
    from .reporting import ReportAggregator
    from .session import BrowserSession

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# シナリオ実行コンテキスト
# ---------------------------------------------------------------------------

@dataclass
class ScenarioContext:
    """シナリオ関数に渡される実行コンテキスト。

    シナリオ関数は実行中（running）の TestRecord にのみアクセスできる。

    Attributes:
        record: 実行中の TestRecord
        session: このシナリオ用のブラウザセッション
        config: 実行設定
        resolver: セレクタリゾルバ
        screenshots: スクリーンショット保存先
    """

    record: TestRecord
    session: BrowserSession
    config: RunConfig
    resolver: SelectorResolver
    screenshots: ScreenshotStore = field(default_factory=ScreenshotStore)

    def step(self, description: str) -> StepRecord:
        """ステップを記録する。"""
        return self.record.add_step(description)

    async def navigate(self, path: str) -> None:
        """base_url からの相対パス（または絶対 URL）へ遷移する。"""
        url = path if "://" in path else self.config.url(path)
        await self.session.navigate(url, timeout=self.config.timeout_ms)

    async def click(self, candidates: Sequence[str], description: str) -> None:
        await resolve_and_click(self.resolver, self.session, candidates, description)

    async def fill(self, candidates: Sequence[str], value: str, description: str) -> None:
        await resolve_and_fill(self.resolver, self.session, candidates, value, description)

    async def screenshot(self, name: str) -> Optional[Path]:
        """スクリーンショットを保存し、成功すれば TestRecord に追加する。"""
        path = await self.screenshots.capture(self.session, name)
        if path is not None:
            self.record.screenshots.append(path)
        return path


ScenarioFn = Callable[[ScenarioContext], Awaitable[None]]
SessionFactory = Callable[["RunConfig"], AsyncContextManager["BrowserSession"]]


# ---------------------------------------------------------------------------
# Runner 本体
# ---------------------------------------------------------------------------

class Runner:
    """テスト実行ライフサイクルを管理する。

    実行記録は ReportAggregator が保持し、Runner は開始・終了の記録のみ行う。

    使用例::

        aggregator = ReportAggregator(browser="chromium", environment="Local")
        runner = Runner(aggregator, config)
        await runner.run_all(SCENARIOS)
    """

    def __init__(
        self,
        aggregator: ReportAggregator,
        config: RunConfig,
        session_factory: SessionFactory = open_session,
    ) -> None:
        """Runner を初期化する。

        Args:
            aggregator: 実行記録の集約先
            config: 実行設定
            session_factory: シナリオごとにブラウザセッションを提供する
                async コンテキストマネージャのファクトリ
        """
        self._aggregator = aggregator
        self._config = config
        self._session_factory = session_factory
        self._resolver = SelectorResolver(timeout_ms=config.timeout_ms)
        self._screenshots = ScreenshotStore(
            directory=config.screenshot_dir, browser=config.browser,
        )

    @property
    def aggregator(self) -> ReportAggregator:
        return self._aggregator

    # -------------------------------------------------------------------
    # パブリック API
    # -------------------------------------------------------------------

    async def run_test(self, name: str, scenario: ScenarioFn) -> TestRecord:
        """1 シナリオを実行し、終了済みの TestRecord を返す。

        シナリオ内で発生した例外はここで 1 度だけ捕捉し、failed として記録する。
        Exception は呼び出し元に伝播しない。KeyboardInterrupt などは記録後に再送出する。

        Args:
            name: シナリオ名
            scenario: シナリオ関数

        Returns:
            終了処理済みの TestRecord
        """
        record = self._aggregator.open_record(name)
        logger.info("テスト開始: %s", name)

        error: Optional[BaseException] = None
        cleanup_error: Optional[BaseException] = None
        try:
            async with self._session_factory(self._config) as session:
                context = ScenarioContext(
                    record=record,
                    session=session,
                    config=self._config,
                    resolver=self._resolver,
                    screenshots=self._screenshots,
                )
                try:
                    await scenario(context)
                except BaseException as exc:
                    error = exc
                    raise
        except BaseException as exc:
            if error is None:
                error = exc
            elif exc is not error:
                # シナリオの失敗後にセッション終了も失敗した
                cleanup_error = exc
                logger.error("セッション終了処理でもエラーが発生しました: %s - %s", name, exc)
            # KeyboardInterrupt / CancelledError は記録した上で伝播させる
            if not isinstance(error, Exception):
                raise error
        finally:
            self._aggregator.close_record(record, error, cleanup_error)

        if error is None:
            logger.info("✅ テスト成功: %s", name)
        else:
            logger.error("❌ テスト失敗: %s - %s", name, error)
        return record

    async def run_all(
        self, scenarios: Sequence[tuple[str, ScenarioFn]]
    ) -> list[TestRecord]:
        """シナリオを順に実行する。

        1 シナリオの失敗で後続のシナリオは中断しない。

        Args:
            scenarios: (シナリオ名, シナリオ関数) のリスト

        Returns:
            各シナリオの TestRecord（実行順）
        """
        return [await self.run_test(name, fn) for name, fn in scenarios]
