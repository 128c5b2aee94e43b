# コアモジュール
# セレクタリゾルバ、操作プリミティブ、実行ライフサイクル、レポート集約、ブラウザセッションを提供

from .artifacts import ScreenshotStore
from .errors import (
    ConfigError,
    ResourceError,
    SelectorExhaustedError,
    VerificationError,
    WebcheckError,
)
from .interactions import resolve_and_click, resolve_and_fill
from .records import RunSummary, StepRecord, TestRecord
from .reporting import ReportAggregator
from .runner import Runner, ScenarioContext
from .selector import Attempt, CandidateFailure, SelectorResolver, per_candidate_timeout
from .session import BrowserSession, open_session
from .verify import expect_any, expect_text

__all__ = [
    "Attempt",
    "BrowserSession",
    "CandidateFailure",
    "ConfigError",
    "ReportAggregator",
    "ResourceError",
    "Runner",
    "RunSummary",
    "ScenarioContext",
    "ScreenshotStore",
    "SelectorExhaustedError",
    "SelectorResolver",
    "StepRecord",
    "TestRecord",
    "VerificationError",
    "WebcheckError",
    "expect_any",
    "expect_text",
    "open_session",
    "per_candidate_timeout",
    "resolve_and_click",
    "resolve_and_fill",
]
