"""InvitationIntakeService のユニットテスト"""

import logging
import pytest
from unittest.mock import Mock

from src.invitation_intake.orchestration.invitation_intake_service import (
    InvitationIntakeService,
    IntakeErrorCode,
    IntakeResult,
)
from src.invitation_intake.domain.email_parser import EmailParser
from src.invitation_intake.domain.models import EmailParseResult
from src.invitation_intake.infrastructure.csrf import generate_token
from src.invitation_intake.infrastructure.rate_limiter import (
    RateLimiter,
    RateLimitConfig,
    RateLimitResult,
)


class TestInvitationIntakeService:
    """InvitationIntakeService のテストケース"""

    @pytest.fixture
    def parser(self):
        """実際の EmailParser (同梱 TLD 一覧)"""
        return EmailParser()

    @pytest.fixture
    def service(self, parser):
        """レート制限なしのサービス"""
        return InvitationIntakeService(parser=parser)

    def test_prepare_success(self, service):
        """有効なアドレスから招待コマンドを生成"""
        result = service.prepare(
            "user@example.com, invalid, user@example.com\ntest@demo.pl r@.pl Test@Demo.PL"
        )

        assert isinstance(result, IntakeResult)
        assert result.success is True
        assert result.error_code is None
        assert result.request_id
        assert result.command.emails == ["user@example.com", "test@demo.pl"]
        assert result.confirmation.valid_emails == ["user@example.com", "test@demo.pl"]
        assert [i.email for i in result.confirmation.invalid_emails] == ["invalid", "r@.pl"]
        assert result.confirmation.duplicate_emails == ["user@example.com", "Test@Demo.PL"]
        assert result.confirmation.total_parsed == 6
        assert result.confirmation.has_issues is True

    @pytest.mark.parametrize("raw", ["", "   \n\t"])
    def test_prepare_empty_input(self, service, raw):
        """空入力は NO_EMAILS"""
        result = service.prepare(raw)

        assert result.success is False
        assert result.error_code == IntakeErrorCode.NO_EMAILS
        assert result.confirmation is None

    def test_prepare_input_too_long(self, service):
        """上限超過の入力は INPUT_TOO_LONG"""
        result = service.prepare("a" * 10001)

        assert result.success is False
        assert result.error_code == IntakeErrorCode.INPUT_TOO_LONG
        assert "10000" in result.error_message
        assert result.confirmation is None

    def test_prepare_no_valid_emails(self, service):
        """有効なアドレスがなければ NO_VALID_EMAILS (確認用ペイロードは返す)"""
        result = service.prepare("not-an-email r@.pl")

        assert result.success is False
        assert result.error_code == IntakeErrorCode.NO_VALID_EMAILS
        assert result.command is None
        assert len(result.confirmation.invalid_emails) == 2

    def test_prepare_too_many_emails(self, parser):
        """上限件数を超えると TOO_MANY_EMAILS"""
        service = InvitationIntakeService(parser=parser, max_emails=3)

        result = service.prepare("a@b.pl c@d.pl e@f.pl g@h.pl")

        assert result.success is False
        assert result.error_code == IntakeErrorCode.TOO_MANY_EMAILS
        assert "3" in result.error_message
        assert len(result.confirmation.valid_emails) == 4

    def test_prepare_default_limit_is_fifty(self, service):
        """既定の上限は50件"""
        emails = " ".join(f"user{i}@example.com" for i in range(51))

        result = service.prepare(emails)

        assert result.error_code == IntakeErrorCode.TOO_MANY_EMAILS
        assert result.error_message == "Cannot invite more than 50 people at once"

    def test_prepare_rate_limited(self, parser):
        """レート制限超過は TOO_MANY_REQUESTS"""
        limiter = RateLimiter()
        config = RateLimitConfig(max_requests=1, window_seconds=3600)
        service = InvitationIntakeService(
            parser=parser, rate_limiter=limiter, rate_limit_config=config
        )

        first = service.prepare("a@b.pl", client_identifier="user:1")
        second = service.prepare("a@b.pl", client_identifier="user:1")

        assert first.success is True
        assert second.success is False
        assert second.error_code == IntakeErrorCode.TOO_MANY_REQUESTS
        assert 0 < second.retry_after_seconds <= 3600
        assert second.confirmation is None

    def test_prepare_without_identifier_skips_rate_limit(self, parser):
        """識別子がなければレート制限をチェックしない"""
        limiter = Mock()
        service = InvitationIntakeService(parser=parser, rate_limiter=limiter)

        service.prepare("a@b.pl")

        limiter.check.assert_not_called()

    def test_prepare_uses_tour_invitations_config_by_default(self, parser):
        """既定では TOUR_INVITATIONS の設定でチェックする"""
        limiter = Mock()
        limiter.check.return_value = RateLimitResult(allowed=True, remaining=9, reset_at=0)
        service = InvitationIntakeService(parser=parser, rate_limiter=limiter)

        service.prepare("a@b.pl", client_identifier="ip:10.0.0.1")

        identifier, config = limiter.check.call_args[0]
        assert identifier == "ip:10.0.0.1"
        assert config.window_seconds == 3600

    def test_prepare_unexpected_error(self):
        """予期しない例外は INTERNAL_ERROR として返す"""
        parser = Mock()
        parser.parse.side_effect = RuntimeError("boom")
        service = InvitationIntakeService(parser=parser)

        result = service.prepare("a@b.pl")

        assert result.success is False
        assert result.error_code == IntakeErrorCode.INTERNAL_ERROR
        assert result.error_message == "An unexpected error occurred"

    def test_prepare_command_validation_error(self):
        """コマンド生成時の検証失敗は VALIDATION_ERROR"""
        parser = Mock()
        parser.parse.return_value = EmailParseResult(
            valid=["not-an-email"], original=["not-an-email"]
        )
        service = InvitationIntakeService(parser=parser)

        result = service.prepare("not-an-email")

        assert result.success is False
        assert result.error_code == IntakeErrorCode.VALIDATION_ERROR
        assert result.confirmation.valid_emails == ["not-an-email"]

    def test_request_ids_are_unique(self, service):
        """受付ごとに異なる ID を発行"""
        assert service.prepare("a@b.pl").request_id != service.prepare("a@b.pl").request_id

    def test_invalid_emails_are_masked_in_logs(self, service, caplog):
        """ログのメールアドレスはマスクされる"""
        with caplog.at_level(logging.INFO):
            service.prepare("secret.person@example.123 ok@example.com")

        record = next(r for r in caplog.records if r.getMessage() == "Parsed invitation emails")
        assert record.invalid_emails == ["se***23"]
        assert record.valid_count == 1
        assert "secret.person" not in caplog.text

    def test_prepare_requires_matching_csrf_token(self, parser):
        """CSRF 検証有効時はトークン不一致を INVALID_CSRF_TOKEN で拒否"""
        limiter = Mock()
        service = InvitationIntakeService(
            parser=parser, rate_limiter=limiter, require_csrf_token=True
        )

        missing = service.prepare("a@b.pl", client_identifier="user:1")
        mismatched = service.prepare(
            "a@b.pl",
            client_identifier="user:1",
            stored_csrf_token=generate_token(),
            submitted_csrf_token=generate_token()
        )

        for result in (missing, mismatched):
            assert result.success is False
            assert result.error_code == IntakeErrorCode.INVALID_CSRF_TOKEN
            assert "CSRF token" in result.error_message
            assert result.confirmation is None
        limiter.check.assert_not_called()

    def test_prepare_accepts_matching_csrf_token(self, parser):
        """トークンが一致すれば通常どおり受け付ける"""
        service = InvitationIntakeService(parser=parser, require_csrf_token=True)
        token = generate_token()

        result = service.prepare(
            "a@b.pl", stored_csrf_token=token, submitted_csrf_token=token
        )

        assert result.success is True
        assert result.command.emails == ["a@b.pl"]

    def test_csrf_not_required_by_default(self, service):
        """既定では CSRF トークンを要求しない"""
        assert service.prepare("a@b.pl").success is True
