"""CLI エントリーポイントのテスト"""

import io
import json
import pytest
from unittest.mock import Mock, patch

from src.invitation_intake.__main__ import main
from src.invitation_intake.orchestration.invitation_intake_service import (
    IntakeErrorCode,
    IntakeResult,
)
from src.invitation_intake.domain.validators import InviteParticipantsCommand


class TestCLI:
    """CLI エントリーポイントのテストケース"""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        """CLI が参照する環境変数をクリア"""
        monkeypatch.delenv("INVITATION_CLIENT_ID", raising=False)
        monkeypatch.delenv("INVITATION_OUTPUT_PATH", raising=False)

    def test_main_success_exits_with_zero(self, monkeypatch, capsys):
        """有効なアドレスがあれば終了コード 0"""
        monkeypatch.setattr("sys.argv", ["invitation_intake"])
        monkeypatch.setattr("sys.stdin", io.StringIO("a@example.com, b@example.pl\n"))

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is True
        assert data["command"]["emails"] == ["a@example.com", "b@example.pl"]

    def test_main_failure_exits_with_one(self, monkeypatch, capsys):
        """有効なアドレスがなければ終了コード 1"""
        monkeypatch.setattr("sys.argv", ["invitation_intake"])
        monkeypatch.setattr("sys.stdin", io.StringIO("not-an-email"))

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        data = json.loads(capsys.readouterr().out)
        assert data["error_code"] == "NO_VALID_EMAILS"

    def test_main_reads_file_argument(self, monkeypatch, tmp_path, capsys):
        """引数のファイルから読み込む"""
        input_file = tmp_path / "emails.txt"
        input_file.write_text("Test@Example.pl test@example.pl", encoding="utf-8")
        monkeypatch.setattr("sys.argv", ["invitation_intake", str(input_file)])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["confirmation"]["duplicate_emails"] == ["test@example.pl"]

    def test_main_writes_output_path(self, monkeypatch, tmp_path):
        """INVITATION_OUTPUT_PATH 指定時はファイルに書き込む"""
        output_path = tmp_path / "out" / "result.json"
        monkeypatch.setenv("INVITATION_OUTPUT_PATH", str(output_path))
        monkeypatch.setattr("sys.argv", ["invitation_intake"])
        monkeypatch.setattr("sys.stdin", io.StringIO("a@example.com"))

        with pytest.raises(SystemExit):
            main()

        assert json.loads(output_path.read_text(encoding="utf-8"))["success"] is True

    def test_main_missing_file_exits_with_one(self, monkeypatch, tmp_path):
        """入力ファイルが存在しなければ終了コード 1"""
        monkeypatch.setattr("sys.argv", ["invitation_intake", str(tmp_path / "missing.txt")])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1

    @patch('src.invitation_intake.__main__.OutputWriter')
    @patch('src.invitation_intake.__main__.RateLimiter')
    @patch('src.invitation_intake.__main__.EmailParser')
    @patch('src.invitation_intake.__main__.InvitationIntakeService')
    def test_main_initializes_all_components(
        self,
        mock_service_class,
        mock_parser_class,
        mock_rate_limiter_class,
        mock_output_writer_class,
        monkeypatch
    ):
        """すべてのコンポーネントが初期化され、識別子が渡されることを確認"""
        monkeypatch.setenv("INVITATION_CLIENT_ID", "user:42")
        monkeypatch.setattr("sys.argv", ["invitation_intake"])
        monkeypatch.setattr("sys.stdin", io.StringIO("a@example.com"))

        mock_service = Mock()
        mock_service.prepare.return_value = IntakeResult(
            success=True,
            command=InviteParticipantsCommand(emails=["a@example.com"])
        )
        mock_service_class.return_value = mock_service

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 0
        mock_parser_class.assert_called_once()
        mock_rate_limiter_class.assert_called_once()
        mock_output_writer_class.assert_called_once()
        mock_service.prepare.assert_called_once_with("a@example.com", client_identifier="user:42")
        mock_output_writer_class.return_value.write_output.assert_called_once()

    @patch('src.invitation_intake.__main__.InvitationIntakeService')
    def test_main_rate_limited_exits_with_one(self, mock_service_class, monkeypatch):
        """サービスが失敗を返した場合は終了コード 1"""
        monkeypatch.setattr("sys.argv", ["invitation_intake"])
        monkeypatch.setattr("sys.stdin", io.StringIO("a@example.com"))
        mock_service_class.return_value.prepare.return_value = IntakeResult(
            success=False,
            error_code=IntakeErrorCode.TOO_MANY_REQUESTS,
            error_message="Too many invitation requests. Please try again later.",
            retry_after_seconds=60
        )

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
