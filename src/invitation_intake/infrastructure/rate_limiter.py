"""
レート制限

API エンドポイントの濫用を防ぐための固定ウィンドウ方式のレート制限を提供します。
カウンターはプロセス内メモリに保持するため、複数インスタンス構成では共有されません。
"""

import ipaddress
import logging
import math
import os
import threading
import time
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional
from pydantic import BaseModel, Field

from ..config import ENV_APP_ENV, ENV_TEST_MODE


class RateLimitMode(str, Enum):
    """レート制限モード"""
    PRODUCTION = "production"
    TEST = "test"
    DEVELOPMENT = "development"


class RateLimitConfig(BaseModel):
    """レート制限設定"""

    max_requests: int = Field(..., gt=0, description="ウィンドウ内の最大リクエスト数")
    window_seconds: float = Field(..., gt=0, description="ウィンドウ長 (秒)")


class RateLimitResult(BaseModel):
    """
    レート制限判定結果

    Attributes:
        allowed: リクエストを許可するか
        remaining: ウィンドウ内の残りリクエスト数
        reset_at: ウィンドウがリセットされる時刻 (epoch 秒)
    """
    allowed: bool
    remaining: int
    reset_at: float

    def retry_after_seconds(self, now: Optional[float] = None) -> int:
        """
        Retry-After ヘッダー用の待機秒数

        Args:
            now: 現在時刻 (epoch 秒)。None の場合は time.time()

        Returns:
            int: 切り上げた待機秒数 (0 以上)
        """
        current = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - current))


class RateLimitViolation(BaseModel):
    """レート制限超過の記録"""

    identifier: str = Field(..., description="クライアント識別子")
    timestamp: float = Field(..., description="超過時刻 (epoch 秒)")
    limit: int = Field(..., description="適用された最大リクエスト数")
    window_seconds: float = Field(..., description="適用されたウィンドウ長 (秒)")


class RateLimiter:
    """
    インメモリ固定ウィンドウ方式のレート制限

    Responsibilities:
    - 識別子ごとのリクエスト数カウント
    - 期限切れエントリーの定期削除 (アクセス時に判定)
    - 超過記録 (メトリクス) の保持

    スレッドセーフ (内部ロックで保護)。
    """

    CLEANUP_INTERVAL_SECONDS = 60
    MAX_METRICS = 1000

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        RateLimiter を初期化

        Args:
            clock: 現在時刻 (epoch 秒) を返す関数。テストで差し替え可能。
        """
        self._clock = clock
        self._store: Dict[str, Dict[str, float]] = {}
        self._violations: List[RateLimitViolation] = []
        self._lock = threading.Lock()
        self._last_cleanup = clock()
        self.logger = logging.getLogger(__name__)

    def check(self, identifier: str, config: RateLimitConfig) -> RateLimitResult:
        """
        リクエストを許可するかを判定してカウントを進める

        Args:
            identifier: クライアント識別子 (IP アドレス、ユーザー ID など)
            config: 適用するレート制限設定

        Returns:
            RateLimitResult: 判定結果
        """
        with self._lock:
            now = self._clock()
            self._cleanup_if_due(now)
            entry = self._get_entry(identifier, now)

            if entry is None:
                # ウィンドウ内の最初のリクエスト
                reset_at = now + config.window_seconds
                self._store[identifier] = {"count": 1, "reset_at": reset_at}
                return RateLimitResult(
                    allowed=True,
                    remaining=config.max_requests - 1,
                    reset_at=reset_at
                )

            if entry["count"] >= config.max_requests:
                self._record_violation(identifier, now, config)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=entry["reset_at"]
                )

            entry["count"] += 1
            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests - int(entry["count"]),
                reset_at=entry["reset_at"]
            )

    def reset(self, identifier: str) -> None:
        """識別子のカウントをリセット"""
        with self._lock:
            self._store.pop(identifier, None)

    def clear(self) -> None:
        """全カウントと超過記録を破棄 (アプリケーション終了時)"""
        with self._lock:
            self._store.clear()
            self._violations.clear()

    def get_metrics(self, since: Optional[float] = None) -> List[RateLimitViolation]:
        """
        超過記録を取得

        Args:
            since: この時刻 (epoch 秒) 以降の記録のみを返す。None の場合は全件。

        Returns:
            List[RateLimitViolation]: 古い順の超過記録 (最大 MAX_METRICS 件)
        """
        with self._lock:
            if since is None:
                return list(self._violations)
            return [v for v in self._violations if v.timestamp >= since]

    def clear_metrics(self) -> None:
        """超過記録を破棄"""
        with self._lock:
            self._violations.clear()

    def _get_entry(self, identifier: str, now: float) -> Optional[Dict[str, float]]:
        entry = self._store.get(identifier)
        if entry is not None and entry["reset_at"] <= now:
            del self._store[identifier]
            return None
        return entry

    def _cleanup_if_due(self, now: float) -> None:
        """前回の削除から CLEANUP_INTERVAL_SECONDS 経過していれば期限切れエントリーを削除"""
        if now - self._last_cleanup < self.CLEANUP_INTERVAL_SECONDS:
            return

        expired = [key for key, entry in self._store.items() if entry["reset_at"] <= now]
        for key in expired:
            del self._store[key]
        self._last_cleanup = now

        if expired:
            self.logger.debug(f"Removed {len(expired)} expired rate limit entries")

    def _record_violation(self, identifier: str, now: float, config: RateLimitConfig) -> None:
        self._violations.append(
            RateLimitViolation(
                identifier=identifier,
                timestamp=now,
                limit=config.max_requests,
                window_seconds=config.window_seconds
            )
        )
        # 古い記録から破棄
        if len(self._violations) > self.MAX_METRICS:
            del self._violations[: len(self._violations) - self.MAX_METRICS]

        self.logger.warning(
            "Rate limit exceeded",
            extra={
                "identifier": identifier,
                "limit": config.max_requests,
                "window_seconds": config.window_seconds
            }
        )


def get_rate_limit_mode(environ: Optional[Mapping[str, str]] = None) -> RateLimitMode:
    """
    環境変数からレート制限モードを判定

    - TEST_MODE=true: 本番相当の制限 (CI・結合テスト用)
    - APP_ENV=development: 緩和された制限
    - それ以外: 本番

    Args:
        environ: 環境変数。None の場合は os.environ

    Returns:
        RateLimitMode: 判定したモード
    """
    env = os.environ if environ is None else environ
    if env.get(ENV_TEST_MODE, "").lower() == "true":
        return RateLimitMode.TEST
    if env.get(ENV_APP_ENV, "").lower() == "development":
        return RateLimitMode.DEVELOPMENT
    return RateLimitMode.PRODUCTION


def get_rate_limit_configs(
    mode: Optional[RateLimitMode] = None
) -> Dict[str, RateLimitConfig]:
    """
    用途別のレート制限設定を取得

    Args:
        mode: レート制限モード。None の場合は環境変数から判定

    Returns:
        Dict[str, RateLimitConfig]: MAGIC_LINK, AUTH, API, TOUR_INVITATIONS の設定
    """
    if mode is None:
        mode = get_rate_limit_mode()
    relaxed = mode == RateLimitMode.DEVELOPMENT

    return {
        # 本番: 15分に3回 / 開発: 15分に20回
        "MAGIC_LINK": RateLimitConfig(max_requests=20 if relaxed else 3, window_seconds=15 * 60),
        # 本番: 1分に5回 / 開発: 1分に50回
        "AUTH": RateLimitConfig(max_requests=50 if relaxed else 5, window_seconds=60),
        # 本番: 1分に100回 / 開発: 1分に1000回
        "API": RateLimitConfig(max_requests=1000 if relaxed else 100, window_seconds=60),
        # 本番: 1時間に10回 / 開発: 1時間に100回
        "TOUR_INVITATIONS": RateLimitConfig(
            max_requests=100 if relaxed else 10, window_seconds=60 * 60
        ),
    }


def get_client_identifier(
    headers: Mapping[str, str],
    user_id: Optional[str] = None
) -> str:
    """
    レート制限用のクライアント識別子を生成

    認証済みユーザーはユーザー ID、それ以外はプロキシヘッダーの IP アドレスを使用します。
    ヘッダーは偽装可能なため、信頼できるリバースプロキシ配下での利用を前提とします。

    Args:
        headers: リクエストヘッダー (キーの大文字小文字は区別しない)
        user_id: 認証済みユーザー ID

    Returns:
        str: "user:<id>", "ip:<address>" または "ip:unknown"
    """
    if user_id:
        return f"user:{user_id}"

    lowered = {key.lower(): value for key, value in headers.items()}
    candidates = [
        (lowered.get("x-forwarded-for") or "").split(",")[0],
        lowered.get("x-real-ip") or "",
        lowered.get("cf-connecting-ip") or "",  # Cloudflare
    ]

    for candidate in candidates:
        ip = candidate.strip()
        if not ip:
            continue
        try:
            return f"ip:{ipaddress.ip_address(ip)}"
        except ValueError:
            continue

    return "ip:unknown"
