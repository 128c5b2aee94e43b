"""
操作プリミティブ（resolve_and_click / resolve_and_fill）のユニットテスト
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from webcheck.core.errors import SelectorExhaustedError
from webcheck.core.interactions import resolve_and_click, resolve_and_fill
from webcheck.core.selector import SelectorResolver


def _make_mock_session() -> MagicMock:
    """全セレクタが解決でき、入力値をそのまま読み戻せるモックセッション。"""
    session = MagicMock()
    values: dict[str, str] = {}

    async def _locate(selector: str, timeout: float) -> MagicMock:
        target = MagicMock()
        target.selector = selector
        return target

    async def _fill(target: MagicMock, value: str, timeout: float) -> None:
        values[target.selector] = value

    async def _read_value(target: MagicMock) -> str:
        return values.get(target.selector, "")

    session.locate = AsyncMock(side_effect=_locate)
    session.click = AsyncMock()
    session.fill = AsyncMock(side_effect=_fill)
    session.read_value = AsyncMock(side_effect=_read_value)
    return session


class TestResolveAndClick:

    def test_clicks_resolved_target(self) -> None:
        session = _make_mock_session()
        resolver = SelectorResolver(timeout_ms=2000)

        asyncio.run(resolve_and_click(resolver, session, ["#a", "#b"], "Register link"))

        session.click.assert_awaited_once()
        target = session.click.await_args.args[0]
        assert target.selector == "#a"
        assert 0 < session.click.await_args.kwargs["timeout"] <= 1000

    def test_click_failure_falls_back(self) -> None:
        session = _make_mock_session()
        session.click = AsyncMock(side_effect=[RuntimeError("intercepted"), None])
        resolver = SelectorResolver(timeout_ms=2000)

        asyncio.run(resolve_and_click(resolver, session, ["#a", "#b"], "Register link"))

        assert session.click.await_count == 2
        assert session.click.await_args.args[0].selector == "#b"

    def test_click_exhausted(self) -> None:
        session = _make_mock_session()
        session.click = AsyncMock(side_effect=RuntimeError("intercepted"))
        resolver = SelectorResolver(timeout_ms=2000)

        with pytest.raises(SelectorExhaustedError):
            asyncio.run(resolve_and_click(resolver, session, ["#a", "#b"], "Register link"))


class TestResolveAndFill:

    def test_fills_value(self) -> None:
        session = _make_mock_session()
        resolver = SelectorResolver(timeout_ms=2000)

        asyncio.run(resolve_and_fill(resolver, session, ["#first"], "TestUser", "First Name"))

        session.fill.assert_awaited_once()
        assert session.fill.await_args.args[1] == "TestUser"

    def test_unwritable_value_is_same_error_kind(self) -> None:
        """値が反映されない場合も SelectorExhaustedError になる。"""
        session = _make_mock_session()
        session.read_value = AsyncMock(return_value="")
        resolver = SelectorResolver(timeout_ms=2000)

        with pytest.raises(SelectorExhaustedError) as exc_info:
            asyncio.run(resolve_and_fill(
                resolver, session, ["#first", "input[name*=first]"], "TestUser", "First Name",
            ))

        assert "入力値が反映されていません" in str(exc_info.value)
        assert session.fill.await_count == 2

    def test_fill_error_falls_back(self) -> None:
        session = _make_mock_session()
        original_fill = session.fill.side_effect
        calls = {"n": 0}

        async def _flaky_fill(target: MagicMock, value: str, timeout: float) -> None:
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("element is not editable")
            await original_fill(target, value, timeout)

        session.fill = AsyncMock(side_effect=_flaky_fill)
        resolver = SelectorResolver(timeout_ms=2000)

        asyncio.run(resolve_and_fill(resolver, session, ["#a", "#b"], "CA", "State"))

        assert session.read_value.await_args.args[0].selector == "#b"
