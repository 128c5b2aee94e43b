"""
ParaBank シナリオ — 顧客登録とログイン

ParaBank（https://parabank.parasoft.com/parabank）に対する E2E シナリオ。
各操作対象には複数の候補セレクタを用意し、DOM 構造の違いに耐えるようにしている。

  - customer_registration: 新規顧客登録と登録完了の確認
  - user_login: 登録済みユーザーでのログインと口座一覧の確認
"""

from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.errors import SelectorExhaustedError, VerificationError
from ..core.verify import expect_any

if TYPE_CHECKING:
    from ..core.runner import ScenarioContext, ScenarioFn

logger = logging.getLogger(__name__)


def generate_unique_id() -> str:
    """testuser_<エポックミリ秒>_<英小文字・数字 9 文字> 形式の一意な ID を生成する。"""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"testuser_{int(time.time() * 1000)}_{suffix}"


# ---------------------------------------------------------------------------
# 候補セレクタ
# ---------------------------------------------------------------------------

REGISTER_LINK = [
    'a[href="register.htm"]',
    'a[href*="register"]',
    'a:has-text("Register")',
    "text=Register",
    '//a[contains(@href, "register")]',
    '//a[text()="Register"]',
    '//a[contains(text(), "Register")]',
]

REGISTER_SUBMIT = [
    'input[value="Register"]',
    'input[type="submit"]',
    'button[type="submit"]',
    'button:has-text("Register")',
    '//input[@value="Register"]',
    '//button[text()="Register"]',
]

LOGOUT_LINK = [
    'a[href="logout.htm"]',
    'a[href*="logout"]',
    'a:has-text("Log Out")',
    "text=Log Out",
    '//a[contains(@href, "logout")]',
    '//a[text()="Log Out"]',
    '//a[contains(text(), "Log Out")]',
]

LOGIN_USERNAME = ['input[name="username"]', 'input[id*="username"]', "#username"]
LOGIN_PASSWORD = ['input[name="password"]', 'input[id*="password"]', "#password"]

LOGIN_SUBMIT = [
    'input[value="Log In"]',
    'input[type="submit"]',
    'button[type="submit"]',
    'button:has-text("Log In")',
    '//input[@value="Log In"]',
]


def _field(field_id: str) -> list[str]:
    """登録フォームの入力欄の候補セレクタ（id / name 部分一致 / id 部分一致）。"""
    escaped = field_id.replace(".", "\\.")
    key = field_id.rsplit(".", 1)[-1]
    return [f"#{escaped}", f'input[name*="{key}"]', f'input[id*="{key}"]']


@dataclass(frozen=True)
class Customer:
    """登録フォームに入力する顧客情報。"""

    first_name: str
    last_name: str
    street: str
    city: str
    state: str
    zip_code: str
    phone: str
    ssn: str

    def profile_fields(self) -> list[tuple[list[str], str, str]]:
        """(候補セレクタ, 値, 説明) のリスト。"""
        return [
            (_field("customer.firstName"), self.first_name, "First Name"),
            (_field("customer.lastName"), self.last_name, "Last Name"),
            (_field("customer.address.street"), self.street, "Street"),
            (_field("customer.address.city"), self.city, "City"),
            (_field("customer.address.state"), self.state, "State"),
            (_field("customer.address.zipCode"), self.zip_code, "Zip Code"),
            (_field("customer.phoneNumber"), self.phone, "Phone"),
            (_field("customer.ssn"), self.ssn, "SSN"),
        ]


def credential_fields(username: str, password: str) -> list[tuple[list[str], str, str]]:
    return [
        (_field("customer.username"), username, "Username"),
        (_field("customer.password"), password, "Password"),
        (_field("repeatedPassword"), password, "Confirm Password"),
    ]


REGISTRATION_CUSTOMER = Customer(
    first_name="TestUser",
    last_name="CI_CD",
    street="123 Automation Street",
    city="Test City",
    state="CA",
    zip_code="90210",
    phone="555-123-4567",
    ssn="123-45-6789",
)

LOGIN_CUSTOMER = Customer(
    first_name="LoginTest",
    last_name="User",
    street="456 Login Ave",
    city="Login City",
    state="NY",
    zip_code="10001",
    phone="555-987-6543",
    ssn="987-65-4321",
)


# ---------------------------------------------------------------------------
# TC 001 - 顧客登録
# ---------------------------------------------------------------------------

async def customer_registration(ctx: ScenarioContext) -> None:
    """新規顧客を登録し、登録完了画面を確認する。"""
    username = generate_unique_id()
    password = "TestPass123!"

    ctx.step(f"Navigate to {ctx.config.url('index.htm')}")
    await ctx.navigate("index.htm")
    await ctx.screenshot("homepage")

    ctx.step("Click on Register link")
    await ctx.click(REGISTER_LINK, "Register link")
    await ctx.session.wait_for_load()
    await ctx.screenshot("register_page")

    ctx.step("Fill registration form with test data")
    for candidates, value, desc in REGISTRATION_CUSTOMER.profile_fields():
        await ctx.fill(candidates, value, desc)

    ctx.step(f"Enter unique credentials: {username}")
    for candidates, value, desc in credential_fields(username, password):
        await ctx.fill(candidates, value, desc)

    ctx.step("Submit registration form")
    await ctx.click(REGISTER_SUBMIT, "Register submit button")
    await ctx.session.wait_for_load()
    await ctx.screenshot("registration_success")

    ctx.step("Verify successful registration")
    await ctx.session.pause(3000)
    try:
        await expect_any(
            ctx.session,
            text=["Welcome", username],
            title=["Customer", "Welcome"],
            url=["overview", "customer"],
            message="Registration verification failed: No success indicators found",
        )
        ctx.step("Registration completed successfully with verification passed")
    except VerificationError as exc:
        # 描画が遅れている場合に備え、少し待ってから HTML 全体で再確認する
        logger.info("Verification error: %s", exc)
        await ctx.session.pause(2000)
        content = await ctx.session.read_content()
        if not any(s in content for s in ("Account Created", "Welcome", username)):
            raise VerificationError(
                "Registration verification failed: "
                "No success indicators found in page content"
            ) from exc
        ctx.step("Registration completed successfully (alternative verification)")


# ---------------------------------------------------------------------------
# TC 002 - ログイン
# ---------------------------------------------------------------------------

async def user_login(ctx: ScenarioContext) -> None:
    """ユーザーを登録してからログアウトし、改めてログインできることを確認する。"""
    username = f"login_{generate_unique_id()}"
    password = "LoginTest123!"

    ctx.step("Pre-setup: Register test user for login verification")
    await ctx.navigate("register.htm")

    fields = LOGIN_CUSTOMER.profile_fields() + credential_fields(username, password)
    for candidates, value, _desc in fields:
        # 事前準備のため、入力できない欄があっても続行する
        try:
            await ctx.fill(candidates[:2], value, "Registration field")
        except SelectorExhaustedError as exc:
            logger.warning(
                "Could not fill field with selectors %s: %s", ", ".join(candidates[:2]), exc
            )

    await ctx.click(REGISTER_SUBMIT[:3], "Register submit")
    await ctx.session.wait_for_load()

    ctx.step("Log out to test login functionality")
    try:
        await ctx.click(LOGOUT_LINK, "Logout link")
        await ctx.session.wait_for_load()
    except SelectorExhaustedError as exc:
        logger.warning("Logout failed, navigating directly to login page: %s", exc)
    await ctx.screenshot("logout_complete")

    ctx.step(f"Navigate to login page: {ctx.config.url('index.htm')}")
    await ctx.navigate("index.htm")

    ctx.step(f"Enter valid username: {username}")
    await ctx.fill(LOGIN_USERNAME, username, "Username field")

    ctx.step("Enter valid password")
    await ctx.fill(LOGIN_PASSWORD, password, "Password field")
    await ctx.screenshot("login_form_filled")

    ctx.step("Click Log In button")
    await ctx.click(LOGIN_SUBMIT, "Login button")
    await ctx.session.wait_for_load()
    await ctx.screenshot("login_success")

    ctx.step("Verify successful login and account overview")
    await ctx.session.pause(3000)
    await expect_any(
        ctx.session,
        text=["Welcome"],
        title=["Accounts", "Overview", "ParaBank"],
        url=["overview", "account"],
        message="Login verification failed: No success indicators found",
    )
    ctx.step("Login successful - Account overview page loaded with welcome message")


SCENARIOS: list[tuple[str, ScenarioFn]] = [
    ("TC 001 - Customer Registration", customer_registration),
    ("TC 002 - User Login Functionality", user_login),
]
