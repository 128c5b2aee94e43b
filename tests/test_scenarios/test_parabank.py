"""
ParaBank シナリオのユニットテスト

実際のブラウザは起動せず、入力値を保持する簡易フェイク（_FakeBrowser）で
ページを代替してシナリオ関数を実行する。
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Optional

import pytest

from webcheck.config import RunConfig
from webcheck.core.artifacts import ScreenshotStore
from webcheck.core.errors import SelectorExhaustedError, VerificationError
from webcheck.core.records import TestRecord
from webcheck.core.runner import ScenarioContext
from webcheck.core.selector import SelectorResolver
from webcheck.scenarios import SCENARIOS, select_scenarios
from webcheck.scenarios.parabank import (
    LOGOUT_LINK,
    REGISTER_LINK,
    _field,
    customer_registration,
    generate_unique_id,
    user_login,
)


# ---------------------------------------------------------------------------
# ヘルパー: フェイクブラウザ
# ---------------------------------------------------------------------------

class _FakeBrowser:
    """入力値をセレクタごとに保持するフェイクセッション。

    missing に含まれるセレクタは解決できない（TimeoutError）。
    """

    def __init__(
        self,
        text: str = "",
        title: str = "ParaBank",
        url: str = "https://parabank.test/parabank/index.htm",
        content: str = "",
        missing: Optional[set[str]] = None,
    ) -> None:
        self.text = text
        self.title = title
        self.url = url
        self.content = content
        self.missing = missing or set()
        self.values: dict[str, str] = {}
        self.clicked: list[str] = []
        self.navigated: list[str] = []

    async def navigate(self, url: str, timeout: float = 0) -> None:
        self.navigated.append(url)

    async def wait_for_load(self, timeout: float = 0) -> None:
        return None

    async def pause(self, ms: float) -> None:
        return None

    async def locate(self, selector: str, timeout: float) -> str:
        if selector in self.missing:
            raise TimeoutError(f"Timeout {timeout:.0f}ms exceeded")
        return selector

    async def click(self, target: str, timeout: float) -> None:
        self.clicked.append(target)

    async def fill(self, target: str, value: str, timeout: float) -> None:
        self.values[target] = value

    async def read_value(self, target: str) -> str:
        return self.values.get(target, "")

    async def read_text(self) -> str:
        return self.text

    async def read_title(self) -> str:
        return self.title

    async def current_url(self) -> str:
        return self.url

    async def read_content(self) -> str:
        return self.content

    async def capture_screenshot(self, path: Path) -> Optional[Path]:
        return path


def _make_context(browser: _FakeBrowser, run_config: RunConfig) -> ScenarioContext:
    record = TestRecord(name="scenario")
    record.start()
    return ScenarioContext(
        record=record,
        session=browser,  # type: ignore[arg-type]
        config=run_config,
        resolver=SelectorResolver(timeout_ms=run_config.timeout_ms),
        screenshots=ScreenshotStore(directory=run_config.screenshot_dir),
    )


# ===========================================================================
# テスト: 補助関数
# ===========================================================================

class TestHelpers:

    def test_unique_id_format(self) -> None:
        assert re.fullmatch(r"testuser_\d{13,}_[a-z0-9]{9}", generate_unique_id())

    def test_unique_ids_differ(self) -> None:
        assert len({generate_unique_id() for _ in range(50)}) == 50

    def test_field_candidates(self) -> None:
        assert _field("customer.firstName") == [
            "#customer\\.firstName",
            'input[name*="firstName"]',
            'input[id*="firstName"]',
        ]
        assert _field("repeatedPassword")[0] == "#repeatedPassword"


class TestSelectScenarios:

    def test_all_by_default(self) -> None:
        assert [name for name, _ in select_scenarios()] == [name for name, _ in SCENARIOS]

    def test_prefix_match(self) -> None:
        selected = select_scenarios(["TC 002"])
        assert [name for name, _ in selected] == ["TC 002 - User Login Functionality"]

    def test_no_duplicates(self) -> None:
        selected = select_scenarios(["TC", "TC 001 - Customer Registration"])
        assert len(selected) == len(SCENARIOS)

    def test_unknown_name(self) -> None:
        with pytest.raises(KeyError):
            select_scenarios(["TC 999"])


# ===========================================================================
# テスト: TC 001 - 顧客登録
# ===========================================================================

class TestCustomerRegistration:

    def test_successful_registration(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(text="Welcome testuser, your account was created successfully.")
        ctx = _make_context(browser, run_config)

        asyncio.run(customer_registration(ctx))

        assert browser.navigated == [run_config.url("index.htm")]
        assert browser.clicked[0] == REGISTER_LINK[0]
        assert browser.values["#customer\\.firstName"] == "TestUser"
        assert browser.values["#customer\\.address\\.zipCode"] == "90210"
        assert browser.values["#customer\\.username"].startswith("testuser_")
        assert browser.values["#customer\\.password"] == browser.values["#repeatedPassword"]
        descriptions = [s.description for s in ctx.record.steps]
        assert descriptions[-1] == "Registration completed successfully with verification passed"
        assert len(ctx.record.screenshots) == 3

    def test_register_link_fallback(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(text="Welcome", missing=set(REGISTER_LINK[:3]))
        ctx = _make_context(browser, run_config)

        asyncio.run(customer_registration(ctx))

        assert browser.clicked[0] == REGISTER_LINK[3]

    def test_alternative_verification(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(
            text="Signing up is easy!",
            title="ParaBank | Register",
            url="https://parabank.test/parabank/register.htm",
            content="<p>Account Created!</p>",
        )
        ctx = _make_context(browser, run_config)

        asyncio.run(customer_registration(ctx))

        assert ctx.record.steps[-1].description == (
            "Registration completed successfully (alternative verification)"
        )

    def test_no_success_indicator(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(
            text="This username already exists.",
            title="ParaBank | Register",
            url="https://parabank.test/parabank/register.htm",
            content="<p>This username already exists.</p>",
        )
        ctx = _make_context(browser, run_config)

        with pytest.raises(VerificationError, match="Registration verification failed"):
            asyncio.run(customer_registration(ctx))

    def test_missing_form_field_fails(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(text="Welcome", missing=set(_field("customer.ssn")))
        ctx = _make_context(browser, run_config)

        with pytest.raises(SelectorExhaustedError, match="SSN"):
            asyncio.run(customer_registration(ctx))


# ===========================================================================
# テスト: TC 002 - ログイン
# ===========================================================================

class TestUserLogin:

    def test_successful_login(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(
            text="Welcome LoginTest User",
            url="https://parabank.test/parabank/overview.htm",
        )
        ctx = _make_context(browser, run_config)

        asyncio.run(user_login(ctx))

        assert browser.navigated == [run_config.url("register.htm"), run_config.url("index.htm")]
        username = browser.values['input[name="username"]']
        assert username.startswith("login_testuser_")
        assert browser.values['input[name="password"]'] == "LoginTest123!"
        assert LOGOUT_LINK[0] in browser.clicked

    def test_logout_failure_is_tolerated(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(text="Welcome", missing=set(LOGOUT_LINK))
        ctx = _make_context(browser, run_config)

        asyncio.run(user_login(ctx))

        assert not any(target in LOGOUT_LINK for target in browser.clicked)

    def test_pre_setup_field_failure_is_tolerated(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(text="Welcome", missing=set(_field("customer.phoneNumber")))
        ctx = _make_context(browser, run_config)

        asyncio.run(user_login(ctx))

        assert "#customer\\.phoneNumber" not in browser.values

    def test_login_not_verified(self, run_config: RunConfig) -> None:
        browser = _FakeBrowser(
            text="The username and password could not be verified.",
            title="Error",
            url="https://parabank.test/parabank/login.htm",
        )
        ctx = _make_context(browser, run_config)

        with pytest.raises(VerificationError, match="Login verification failed"):
            asyncio.run(user_login(ctx))
