"""
CSRF トークン

状態を変更するリクエスト (POST / PUT / PATCH / DELETE) に対する
CSRF トークンの生成と検証を提供します。Cookie の読み書き自体は呼び出し側で行います。
"""

import hmac
import secrets
import string
from typing import Any, Dict, Optional
from pydantic import BaseModel

CSRF_TOKEN_BYTES = 32
CSRF_COOKIE_NAME = "csrf-token"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_COOKIE_MAX_AGE_SECONDS = 60 * 60 * 24

_PROTECTED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
_EXEMPT_PATH_PREFIXES = ("/api/auth/",)


class CsrfViolation(BaseModel):
    """CSRF 検証失敗時のエラーレスポンス"""

    status_code: int = 403
    error: str = "Invalid or missing CSRF token. Please refresh the page and try again."


def generate_token() -> str:
    """
    暗号論的に安全なトークンを生成

    Returns:
        str: 16進文字列 (CSRF_TOKEN_BYTES * 2 文字)
    """
    return secrets.token_hex(CSRF_TOKEN_BYTES)


def get_or_create_token(existing_token: Optional[str]) -> str:
    """
    既存トークンを再利用、なければ新規生成

    Args:
        existing_token: Cookie に保存されているトークン

    Returns:
        str: 形式が正しい既存トークン、または新規トークン
    """
    if existing_token and _is_well_formed(existing_token):
        return existing_token
    return generate_token()


def validate_token(stored_token: Optional[str], submitted_token: Optional[str]) -> bool:
    """
    Cookie のトークンとヘッダーのトークンを比較

    Args:
        stored_token: Cookie に保存されているトークン
        submitted_token: リクエストヘッダーで送信されたトークン

    Returns:
        bool: 両方が存在し一致すれば True (比較は定数時間)
    """
    if not stored_token or not submitted_token:
        return False
    return hmac.compare_digest(stored_token.encode("utf-8"), submitted_token.encode("utf-8"))


def check_csrf_protection(
    method: str,
    path: str,
    stored_token: Optional[str],
    submitted_token: Optional[str]
) -> Optional[CsrfViolation]:
    """
    リクエストの CSRF 保護チェック

    Args:
        method: HTTP メソッド
        path: リクエストパス
        stored_token: Cookie に保存されているトークン
        submitted_token: x-csrf-token ヘッダーの値

    Returns:
        Optional[CsrfViolation]: 検証失敗時はエラーレスポンス、それ以外は None

    Note:
        - 状態を変更しないメソッドはチェックしない
        - 認証エンドポイント (/api/auth/) は別の対策を用いるため対象外
    """
    if method.upper() not in _PROTECTED_METHODS:
        return None

    if path.startswith(_EXEMPT_PATH_PREFIXES):
        return None

    if not validate_token(stored_token, submitted_token):
        return CsrfViolation()

    return None


def cookie_options(secure: bool) -> Dict[str, Any]:
    """
    CSRF Cookie の属性

    Args:
        secure: HTTPS 限定にするか (本番では True)

    Returns:
        Dict[str, Any]: Cookie 設定
    """
    return {
        "httponly": True,
        "secure": secure,
        "samesite": "lax",
        "path": "/",
        "max_age": CSRF_COOKIE_MAX_AGE_SECONDS,
    }


def _is_well_formed(token: str) -> bool:
    return len(token) == CSRF_TOKEN_BYTES * 2 and all(c in string.hexdigits for c in token)
