"""
実行記録データモデル — TestRecord / StepRecord / RunSummary

1 シナリオの実行記録（TestRecord）、記録されたステップ（StepRecord）、
実行全体の集計（RunSummary）を定義する。

TestRecord の状態遷移は pending → running → passed / failed の一方向のみ。
状態の逆戻りや二重の終了処理は RuntimeError とする。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

logger = logging.getLogger(__name__)

TestStatus = Literal["pending", "running", "passed", "failed"]

# 各状態から遷移可能な状態
_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("running",),
    "running": ("passed", "failed"),
    "passed": (),
    "failed": (),
}


def _elapsed_ms(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """start から end までの経過時間（ミリ秒）。どちらかが未設定なら None。"""
    if start is None or end is None:
        return None
    return max((end - start).total_seconds() * 1000, 0.0)


# ---------------------------------------------------------------------------
# StepRecord
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepRecord:
    """シナリオ中に記録された 1 ステップ。追加後は変更不可。

    Attributes:
        description: 実行した操作の説明文
        timestamp: 記録時刻
    """

    description: str
    timestamp: datetime


# ---------------------------------------------------------------------------
# TestRecord
# ---------------------------------------------------------------------------

@dataclass
class TestRecord:
    """1 シナリオの実行記録。

    Attributes:
        name: シナリオ名（生成後は変更しない）
        status: pending / running / passed / failed
        started_at: 実行開始時刻
        ended_at: 実行終了時刻（終了処理で 1 度だけ設定）
        steps: 記録されたステップ（追加のみ）
        error: エラーメッセージ（failed の場合のみ）
        screenshots: シナリオ中に保存したスクリーンショットのパス
    """

    __test__ = False  # pytest の収集対象外

    name: str
    status: TestStatus = "pending"
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    steps: list[StepRecord] = field(default_factory=list)
    error: Optional[str] = None
    screenshots: list[Path] = field(default_factory=list)

    @property
    def duration_ms(self) -> Optional[float]:
        """実行時間（ミリ秒）。終了処理前は None。"""
        return _elapsed_ms(self.started_at, self.ended_at)

    @property
    def is_finalized(self) -> bool:
        return self.ended_at is not None

    # ----- 状態遷移 -----

    def _transition(self, new_status: TestStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise RuntimeError(
                f"テスト '{self.name}' の状態を {self.status} から {new_status} に変更できません"
            )
        self.status = new_status

    def start(self) -> None:
        """pending → running。開始時刻を記録する。"""
        self._transition("running")
        self.started_at = datetime.now()

    def mark_passed(self) -> None:
        """running → passed。"""
        self._transition("passed")

    def mark_failed(self, error: str) -> None:
        """running → failed。エラーメッセージを記録する。"""
        self._transition("failed")
        self.error = error

    def finalize(self) -> None:
        """終了時刻を記録する。1 度だけ呼び出せる。"""
        if self.ended_at is not None:
            raise RuntimeError(f"テスト '{self.name}' は既に終了処理済みです")
        self.ended_at = datetime.now()

    # ----- ステップ記録 -----

    def add_step(self, description: str) -> StepRecord:
        """ステップを追加する。

        記録時刻は直前のステップより前にならない（システム時刻が戻った場合は
        直前のステップの時刻を使う）。

        Args:
            description: 実行した操作の説明文

        Returns:
            追加した StepRecord
        """
        now = datetime.now()
        if self.steps and now < self.steps[-1].timestamp:
            now = self.steps[-1].timestamp
        step = StepRecord(description=description, timestamp=now)
        self.steps.append(step)
        logger.info("  Step: %s", description)
        return step


# ---------------------------------------------------------------------------
# RunSummary
# ---------------------------------------------------------------------------

@dataclass
class RunSummary:
    """実行全体の集計。

    全 TestRecord の終了後は total == passed + failed が成り立つ。
    """

    total: int = 0
    passed: int = 0
    failed: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[float]:
        return _elapsed_ms(self.started_at, self.ended_at)

    @property
    def pass_rate(self) -> int:
        """合格率（%、四捨五入）。テストが 0 件なら 0。"""
        if self.total == 0:
            return 0
        # 0.5 は切り上げ（round() の偶数丸めは使わない）
        return math.floor(self.passed / self.total * 100 + 0.5)
