"""
Session — ブラウザセッション管理

Playwright ブラウザの起動・操作・終了を担当する。
シナリオが必要とするブラウザ操作（遷移、要素の解決と操作、本文・タイトル・URL の取得、
スクリーンショット）をまとめて提供する。

主な機能:
  - BrowserSession.launch: ブラウザ（chromium / firefox / webkit）の起動
  - navigate: 遷移（networkidle 待機のタイムアウトは致命的としない）
  - locate / click / fill / read_value: 要素の解決と操作
  - read_text / read_title / current_url / read_content: ページ状態の取得
  - capture_screenshot: ベストエフォートのスクリーンショット保存
  - open_session: シナリオ単位で起動・終了を保証する async コンテキストマネージャ
"""

from __future__ import annotations

import enum
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, Optional

from .errors import ResourceError

if TYPE_CHECKING:
    from playwright.async_api import Browser, ElementHandle, Page, Playwright

    from ..config import RunConfig

logger = logging.getLogger(__name__)

BROWSER_ENGINES = ("chromium", "firefox", "webkit")


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """ブラウザセッションの状態。"""

    ACTIVE = "active"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# BrowserSession 本体
# ---------------------------------------------------------------------------

class BrowserSession:
    """Playwright ブラウザセッション。

    launch() で生成し、close() で終了する。close() は何度呼ばれても
    ブラウザの終了処理を 1 度だけ行う。
    """

    def __init__(
        self,
        page: Page,
        browser: Optional[Browser] = None,
        playwright: Optional[Playwright] = None,
        network_idle_timeout: float = 10_000,
    ) -> None:
        self._page = page
        self._browser = browser
        self._playwright = playwright
        self._network_idle_timeout = network_idle_timeout
        self._state = SessionState.ACTIVE

    @classmethod
    async def launch(
        cls,
        browser: str = "chromium",
        headless: bool = True,
        network_idle_timeout: float = 10_000,
    ) -> BrowserSession:
        """ブラウザを起動し、新しいページを持つセッションを返す。

        Args:
            browser: ブラウザエンジン（chromium / firefox / webkit）
            headless: True でヘッドレス起動
            network_idle_timeout: 遷移後の networkidle 待機時間（ミリ秒）

        Raises:
            ResourceError: 起動に失敗した場合
        """
        if browser not in BROWSER_ENGINES:
            raise ResourceError(f"未対応のブラウザです: {browser}")

        from playwright.async_api import async_playwright

        logger.info("ブラウザを起動しています... (browser=%s, headless=%s)", browser, headless)
        pw = await async_playwright().start()
        try:
            instance = await getattr(pw, browser).launch(headless=headless)
            page = await instance.new_page()
        except Exception as exc:
            await pw.stop()
            raise ResourceError(f"ブラウザの起動に失敗しました: {exc}") from exc

        return cls(
            page,
            browser=instance,
            playwright=pw,
            network_idle_timeout=network_idle_timeout,
        )

    @property
    def page(self) -> Page:
        return self._page

    @property
    def is_active(self) -> bool:
        return self._state == SessionState.ACTIVE

    # -------------------------------------------------------------------
    # 遷移・待機
    # -------------------------------------------------------------------

    async def navigate(self, url: str, timeout: float = 45_000) -> None:
        """URL へ遷移する。

        DOMContentLoaded までは必須。その後の networkidle 待機がタイムアウトしても
        ページ自体は読み込まれているため、ログを出して続行する。
        """
        logger.info("goto: %s", url)
        await self._page.goto(url, timeout=timeout, wait_until="domcontentloaded")
        try:
            await self._page.wait_for_load_state(
                "networkidle", timeout=self._network_idle_timeout,
            )
        except Exception as exc:  # noqa: BLE001
            logger.info(
                "networkidle 待機 (%.0fms) は完了しませんでしたがページは読み込み済みです: %s",
                self._network_idle_timeout, exc,
            )

    async def wait_for_load(self, timeout: float = 30_000) -> None:
        """DOMContentLoaded まで待機する。クリックによる画面遷移の後に使う。"""
        await self._page.wait_for_load_state("domcontentloaded", timeout=timeout)

    async def pause(self, ms: float) -> None:
        await self._page.wait_for_timeout(ms)

    # -------------------------------------------------------------------
    # 要素の解決と操作
    # -------------------------------------------------------------------

    async def locate(self, selector: str, timeout: float) -> Optional[ElementHandle]:
        """セレクタが表示状態の要素に解決されるまで待機する。"""
        return await self._page.wait_for_selector(selector, timeout=timeout)

    async def click(self, target: ElementHandle, timeout: float) -> None:
        await target.click(timeout=timeout)

    async def fill(self, target: ElementHandle, value: str, timeout: float) -> None:
        await target.fill(value, timeout=timeout)

    async def read_value(self, target: ElementHandle) -> str:
        return await target.input_value()

    # -------------------------------------------------------------------
    # ページ状態の取得
    # -------------------------------------------------------------------

    async def read_text(self) -> str:
        """body の表示テキスト全体。"""
        return await self._page.text_content("body") or ""

    async def read_title(self) -> str:
        return await self._page.title()

    async def current_url(self) -> str:
        return self._page.url

    async def read_content(self) -> str:
        """ページの HTML 全体。"""
        return await self._page.content()

    # -------------------------------------------------------------------
    # スクリーンショット
    # -------------------------------------------------------------------

    async def capture_screenshot(self, path: Path) -> Optional[Path]:
        """フルページのスクリーンショットを保存する。

        失敗してもシナリオは失敗させない（ログを出して None を返す）。
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self._page.screenshot(path=str(path), full_page=True)
        except Exception as exc:  # noqa: BLE001
            logger.warning("スクリーンショット保存に失敗: %s (%s)", path.name, exc)
            return None
        logger.debug("スクリーンショット保存: %s", path)
        return path

    # -------------------------------------------------------------------
    # 終了
    # -------------------------------------------------------------------

    async def close(self) -> None:
        """ブラウザを終了する。2 回目以降の呼び出しは何もしない。

        Raises:
            ResourceError: ブラウザの終了に失敗した場合
        """
        if self._state == SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED

        try:
            if self._browser is not None:
                await self._browser.close()
        except Exception as exc:
            raise ResourceError(f"ブラウザの終了に失敗しました: {exc}") from exc
        finally:
            if self._playwright is not None:
                await self._playwright.stop()
        logger.info("ブラウザを終了しました")


# ---------------------------------------------------------------------------
# シナリオ単位のセッション
# ---------------------------------------------------------------------------

@asynccontextmanager
async def open_session(config: RunConfig) -> AsyncIterator[BrowserSession]:
    """設定に従ってブラウザを起動し、ブロックを抜ける際に必ず終了する。

    使用例::

        async with open_session(config) as session:
            await session.navigate(config.base_url)
    """
    session = await BrowserSession.launch(
        browser=config.browser,
        headless=config.headless,
        network_idle_timeout=config.network_idle_timeout_ms,
    )
    try:
        yield session
    finally:
        await session.close()
