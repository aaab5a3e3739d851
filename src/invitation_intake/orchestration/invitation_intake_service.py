"""招待受付オーケストレーションサービス"""

from enum import Enum
from typing import List, Optional
import logging
import uuid
from pydantic import BaseModel, ValidationError

from ..config import MAX_EMAILS_PER_INVITATION
from ..domain.email_parser import EmailParser
from ..domain.models import InvitationConfirmation
from ..domain.validators import InviteParticipantsCommand
from ..infrastructure.csrf import CsrfViolation, validate_token
from ..infrastructure.rate_limiter import RateLimitConfig, RateLimiter, get_rate_limit_configs


class IntakeErrorCode(str, Enum):
    """受付失敗時のエラーコード"""
    INVALID_CSRF_TOKEN = "INVALID_CSRF_TOKEN"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    NO_EMAILS = "NO_EMAILS"
    INPUT_TOO_LONG = "INPUT_TOO_LONG"
    NO_VALID_EMAILS = "NO_VALID_EMAILS"
    TOO_MANY_EMAILS = "TOO_MANY_EMAILS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class IntakeResult(BaseModel):
    """
    招待受付結果

    Attributes:
        success: 送信可能な招待コマンドを生成できたか
        request_id: 受付 ID (ログとの突き合わせ用)
        confirmation: クライアントに提示する確認用ペイロード
        command: 送信可能な招待コマンド (success=True の場合のみ)
        error_code: エラーコード (success=False の場合のみ)
        error_message: ユーザー向けエラーメッセージ
        retry_after_seconds: レート制限超過時の待機秒数
    """
    success: bool
    request_id: str = ""
    confirmation: Optional[InvitationConfirmation] = None
    command: Optional[InviteParticipantsCommand] = None
    error_code: Optional[IntakeErrorCode] = None
    error_message: Optional[str] = None
    retry_after_seconds: Optional[int] = None


class InvitationIntakeService:
    """
    招待受付プロセス全体のオーケストレーション

    Responsibilities:
    - CSRF トークン検証 (require_csrf_token=True の場合)
    - レート制限チェック
    - 貼り付けテキストの解析と確認用ペイロードへの変換
    - 送信件数上限のチェックと招待コマンドの生成
    - 構造化ログ出力 (メールアドレスはマスク)

    どの失敗も例外ではなく IntakeResult として返します。
    """

    def __init__(
        self,
        parser: EmailParser,
        rate_limiter: Optional[RateLimiter] = None,
        rate_limit_config: Optional[RateLimitConfig] = None,
        max_emails: int = MAX_EMAILS_PER_INVITATION,
        require_csrf_token: bool = False
    ):
        """
        InvitationIntakeService を初期化

        Args:
            parser: メールアドレス一覧パーサー
            rate_limiter: レート制限。None の場合はチェックしない
            rate_limit_config: 適用する設定。None の場合は TOUR_INVITATIONS の既定値
            max_emails: 1回の招待で送信できる最大件数
            require_csrf_token: Cookie とヘッダーの CSRF トークン一致を要求するか
        """
        self.parser = parser
        self.rate_limiter = rate_limiter
        self.rate_limit_config = rate_limit_config or get_rate_limit_configs()["TOUR_INVITATIONS"]
        self.max_emails = max_emails
        self.require_csrf_token = require_csrf_token
        self.logger = logging.getLogger(__name__)

    def prepare(
        self,
        raw_text: str,
        client_identifier: Optional[str] = None,
        stored_csrf_token: Optional[str] = None,
        submitted_csrf_token: Optional[str] = None
    ) -> IntakeResult:
        """
        貼り付けテキストから招待コマンドを準備

        Args:
            raw_text: ユーザーが入力したメールアドレス一覧テキスト
            client_identifier: レート制限用のクライアント識別子
            stored_csrf_token: Cookie に保存されている CSRF トークン
            submitted_csrf_token: リクエストヘッダーで送信された CSRF トークン

        Returns:
            IntakeResult: 受付結果

        Postconditions: 例外を送出しない (予期しないエラーは INTERNAL_ERROR として返す)
        """
        request_id = self._generate_request_id()

        try:
            if self.require_csrf_token and not validate_token(
                stored_csrf_token, submitted_csrf_token
            ):
                self.logger.warning(
                    "Invitation intake rejected: CSRF token mismatch",
                    extra={"request_id": request_id}
                )
                return IntakeResult(
                    success=False,
                    request_id=request_id,
                    error_code=IntakeErrorCode.INVALID_CSRF_TOKEN,
                    error_message=CsrfViolation().error
                )

            if self.rate_limiter is not None and client_identifier:
                rate_limit = self.rate_limiter.check(client_identifier, self.rate_limit_config)
                if not rate_limit.allowed:
                    self.logger.warning(
                        "Invitation intake rate limited",
                        extra={"request_id": request_id, "identifier": client_identifier}
                    )
                    return IntakeResult(
                        success=False,
                        request_id=request_id,
                        error_code=IntakeErrorCode.TOO_MANY_REQUESTS,
                        error_message="Too many invitation requests. Please try again later.",
                        retry_after_seconds=rate_limit.retry_after_seconds()
                    )

            if not raw_text.strip():
                return IntakeResult(
                    success=False,
                    request_id=request_id,
                    error_code=IntakeErrorCode.NO_EMAILS,
                    error_message="No email addresses provided"
                )

            parse_result = self.parser.parse(raw_text)
            if parse_result.has_input_error:
                self.logger.warning(
                    "Invitation input rejected",
                    extra={"request_id": request_id, "input_length": len(raw_text)}
                )
                return IntakeResult(
                    success=False,
                    request_id=request_id,
                    error_code=IntakeErrorCode.INPUT_TOO_LONG,
                    error_message=parse_result.input_error
                )

            confirmation = InvitationConfirmation.from_parse_result(parse_result)
            self.logger.info(
                "Parsed invitation emails",
                extra={
                    "request_id": request_id,
                    "total_count": confirmation.total_parsed,
                    "valid_count": len(confirmation.valid_emails),
                    "invalid_count": len(confirmation.invalid_emails),
                    "duplicate_count": len(confirmation.duplicate_emails),
                    "invalid_emails": _mask_emails(
                        [item.email for item in confirmation.invalid_emails]
                    )
                }
            )

            if not confirmation.valid_emails:
                return IntakeResult(
                    success=False,
                    request_id=request_id,
                    confirmation=confirmation,
                    error_code=IntakeErrorCode.NO_VALID_EMAILS,
                    error_message="No valid email addresses found"
                )

            if len(confirmation.valid_emails) > self.max_emails:
                return IntakeResult(
                    success=False,
                    request_id=request_id,
                    confirmation=confirmation,
                    error_code=IntakeErrorCode.TOO_MANY_EMAILS,
                    error_message=f"Cannot invite more than {self.max_emails} people at once"
                )

            try:
                command = InviteParticipantsCommand(emails=confirmation.valid_emails)
            except ValidationError as e:
                self.logger.warning(
                    f"Invitation command validation failed: {e.error_count()} errors",
                    extra={"request_id": request_id}
                )
                return IntakeResult(
                    success=False,
                    request_id=request_id,
                    confirmation=confirmation,
                    error_code=IntakeErrorCode.VALIDATION_ERROR,
                    error_message="; ".join(err["msg"] for err in e.errors())
                )

            return IntakeResult(
                success=True,
                request_id=request_id,
                confirmation=confirmation,
                command=command
            )

        except Exception as e:
            self.logger.error(f"Invitation intake failed: {str(e)}", exc_info=True)
            return IntakeResult(
                success=False,
                request_id=request_id,
                error_code=IntakeErrorCode.INTERNAL_ERROR,
                error_message="An unexpected error occurred"
            )

    def _generate_request_id(self) -> str:
        """受付 ID 生成 (UUID)"""
        return str(uuid.uuid4())


def _mask_emails(emails: List[str]) -> List[str]:
    """ログ出力用に各値の先頭と末尾2文字以外を伏せる"""
    return [
        f"{email[:2]}***{email[-2:]}" if len(email) > 4 else "***"
        for email in emails
    ]
