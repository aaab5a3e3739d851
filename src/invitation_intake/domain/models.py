"""
データモデル定義

このモジュールは invitation-intake のドメイン層のデータモデルを定義します:
- EmailErrorReason: メールアドレス検証エラー種別
- ParsedEmail: 検証に失敗したメールアドレスとその理由
- EmailParseResult: 解析結果 (有効・無効・重複・元の並び)
- InvitationConfirmation: 送信前にユーザーへ提示する確認用ペイロード
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class EmailErrorReason(str, Enum):
    """メールアドレス検証エラー種別 (値はユーザー向けメッセージ)"""
    INVALID_FORMAT = "Invalid email format"
    INVALID_DOMAIN = "Invalid domain"
    INVALID_TLD = "Invalid TLD"


class ParsedEmail(BaseModel):
    """
    検証に失敗したメールアドレス

    email には小文字化済みのトークンをそのまま保持します。
    """

    email: str = Field(..., description="小文字化済みのトークン")
    is_valid: bool = Field(default=False, description="検証結果 (invalid リストでは常に False)")
    error: EmailErrorReason = Field(
        default=EmailErrorReason.INVALID_FORMAT,
        description="エラー種別"
    )


class EmailParseResult(BaseModel):
    """
    メールアドレス一覧の解析結果

    4つのリストは常に存在し、該当がなければ空リストになります。
    input_error は入力長チェックに失敗した場合のみ設定され、その場合は
    4つのリストすべてが空です。
    """

    valid: List[str] = Field(
        default_factory=list,
        description="正規化・重複排除・検証済みのメールアドレス (初出順)"
    )
    invalid: List[ParsedEmail] = Field(
        default_factory=list,
        description="検証に失敗したメールアドレスとエラー種別"
    )
    duplicates: List[str] = Field(
        default_factory=list,
        description="2回目以降に出現したトークン (元の大文字小文字のまま)"
    )
    original: List[str] = Field(
        default_factory=list,
        description="重複排除前の全トークン (元の大文字小文字のまま)"
    )
    input_error: Optional[str] = Field(default=None, description="入力エラーメッセージ")

    @property
    def has_input_error(self) -> bool:
        """入力長チェックに失敗したか"""
        return self.input_error is not None

    @property
    def unique_count(self) -> int:
        """重複排除後のトークン数"""
        return len(self.valid) + len(self.invalid)


class InvitationConfirmation(BaseModel):
    """
    招待送信前の確認用ペイロード

    有効・無効・重複のアドレスを分類してクライアントに返し、
    ユーザーが送信先を確定する前に修正できるようにします。
    """

    valid_emails: List[str] = Field(default_factory=list, description="送信可能なアドレス")
    invalid_emails: List[ParsedEmail] = Field(default_factory=list, description="無効なアドレス")
    duplicate_emails: List[str] = Field(default_factory=list, description="除外された重複アドレス")
    total_parsed: int = Field(default=0, description="重複排除前のトークン数")
    has_issues: bool = Field(default=False, description="無効または重複のアドレスが含まれるか")

    @field_validator("total_parsed")
    @classmethod
    def validate_total_parsed(cls, v: int) -> int:
        """
        トークン数の負値チェック

        Raises:
            ValueError: 負の値が渡された場合
        """
        if v < 0:
            raise ValueError(f"トークン数は負の値にできません: {v}")
        return v

    @classmethod
    def from_parse_result(cls, result: EmailParseResult) -> "InvitationConfirmation":
        """
        解析結果から確認用ペイロードを生成

        Args:
            result: parse_emails の解析結果

        Returns:
            InvitationConfirmation: 確認用ペイロード
        """
        return cls(
            valid_emails=list(result.valid),
            invalid_emails=list(result.invalid),
            duplicate_emails=list(result.duplicates),
            total_parsed=len(result.original),
            has_issues=bool(result.invalid or result.duplicates),
        )
