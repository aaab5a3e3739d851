"""
招待リクエストのバリデーション

招待送信・一覧取得リクエストの入力スキーマを定義します。
パース済みのアドレス一覧を送信可能な件数・形式に制限するのはここで行い、
EmailParser 自体は件数上限を持ちません。
"""

import uuid
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from ..config import MAX_EMAILS_PER_INVITATION


class InviteParticipantsCommand(BaseModel):
    """
    参加者招待コマンド

    送信対象のメールアドレス一覧 (1件以上、上限件数以下、重複なし) を保持します。
    """

    emails: List[EmailStr] = Field(..., description="招待するメールアドレス一覧")

    @field_validator("emails")
    @classmethod
    def validate_emails(cls, v: List[str]) -> List[str]:
        """
        件数と重複のバリデーション

        Args:
            v: メールアドレス一覧

        Returns:
            List[str]: バリデーション済みの一覧

        Raises:
            ValueError: 空、上限超過、または大文字小文字を無視して重複がある場合
        """
        if len(v) < 1:
            raise ValueError("At least one email address is required")
        if len(v) > MAX_EMAILS_PER_INVITATION:
            raise ValueError(
                f"Cannot invite more than {MAX_EMAILS_PER_INVITATION} people at once"
            )
        unique = {email.strip().lower() for email in v}
        if len(unique) != len(v):
            raise ValueError("Duplicate email addresses are not allowed")
        return v


class PaginationParams(BaseModel):
    """一覧取得のページネーションパラメータ (クエリ文字列からの変換を含む)"""

    page: int = Field(default=1, ge=1, description="ページ番号 (1始まり)")
    limit: int = Field(default=20, ge=1, le=100, description="1ページあたりの件数")

    @field_validator("page", "limit", mode="before")
    @classmethod
    def apply_default_when_missing(cls, v, info):
        # クエリパラメータ未指定 (None / 空文字) は既定値
        if v is None or v == "":
            return cls.model_fields[info.field_name].default
        return v


def validate_uuid(value: Optional[str]) -> bool:
    """
    UUID 形式かを判定 (ツアー ID・招待 ID の検証用)

    Args:
        value: 判定対象の文字列

    Returns:
        bool: ハイフン区切り 8-4-4-4-12 形式の UUID なら True
            (ハイフンなし・波括弧付き・urn:uuid: 接頭辞は False)
    """
    if not value:
        return False
    try:
        return str(uuid.UUID(value)) == value.lower()
    except (ValueError, AttributeError, TypeError):
        return False
