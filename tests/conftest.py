"""
共通フィクスチャと収集設定。

- テスト向けの環境変数を毎テスト自動設定（autouse）
- ルートを `sys.path` に追加して `import carecal.*` を解決
- 設定キャッシュを毎テストでクリア
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# プロジェクトルート（このファイルの親の親）をパスに追加
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """テスト用の環境変数を毎テストで設定し、設定キャッシュを初期化。

    各テスト終了時に `monkeypatch` により自動で復元されます。
    """
    from carecal.config import clear_settings_cache

    env: dict[str, str] = {
        "ENVIRONMENT": "testing",
        "DATA_DIR": str(tmp_path / "data"),
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "console",
    }
    for k, v in env.items():
        monkeypatch.setenv(k, v)

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def owner_id() -> str:
    return "user-1"


@pytest.fixture
def gateway():
    """インメモリのゲートウェイ"""
    from carecal.storage import InMemoryGateway

    return InMemoryGateway()


@pytest.fixture
def now():
    """固定の「現在」: 2024-06-01 09:15"""
    from carecal.calendar.models import CalendarDate, LocalMoment, TimeOfDay

    return LocalMoment(CalendarDate(2024, 6, 1), TimeOfDay(9, 15))


@pytest.fixture
def appointment_draft():
    """検証を通る予約フォーム"""
    from carecal.calendar.drafts import AppointmentDraft

    return AppointmentDraft(
        doctor_name="Smith",
        specialty="Cardiology",
        date="2024-06-03",
        time="10:00",
        location="City Clinic",
        duration_minutes=30,
    )


@pytest.fixture
def event_draft():
    """検証を通るイベントフォーム"""
    from carecal.calendar.drafts import EventDraft

    return EventDraft(
        title="Pharmacy pickup",
        date="2024-06-03",
        time="14:30",
        location="Main St Pharmacy",
        category="health",
    )
