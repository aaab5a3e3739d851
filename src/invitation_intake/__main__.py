"""CLI エントリーポイント"""

import sys
import logging
import os
from pathlib import Path

from .config import ENV_CLIENT_ID, ENV_OUTPUT_PATH
from .domain.email_parser import EmailParser
from .infrastructure.rate_limiter import RateLimiter
from .infrastructure.output_writer import OutputWriter
from .orchestration.invitation_intake_service import InvitationIntakeService


def main():
    """
    CLI エントリーポイント

    Usage:
        python -m invitation_intake [FILE]

    FILE を省略した場合は標準入力からメールアドレス一覧を読み込みます。
    結果 JSON は標準出力 (INVITATION_OUTPUT_PATH 指定時はそのファイル) に書き込みます。

    Exit codes:
        0: 送信可能な招待コマンドを生成できた
        1: 失敗
    """
    # ロギング設定 (標準出力は結果 JSON 用に空けておく)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr
    )
    logger = logging.getLogger(__name__)

    try:
        raw_text = _read_input(sys.argv[1:])

        # 依存関係の初期化
        parser = EmailParser()
        rate_limiter = RateLimiter()
        service = InvitationIntakeService(parser=parser, rate_limiter=rate_limiter)
        output_writer = OutputWriter()

        client_identifier = os.environ.get(ENV_CLIENT_ID, "") or None
        result = service.prepare(raw_text, client_identifier=client_identifier)

        output_path = os.environ.get(ENV_OUTPUT_PATH, "")
        output_writer.write_output(result, Path(output_path) if output_path else None)

        if result.success:
            logger.info(
                f"Invitation intake completed: "
                f"{len(result.command.emails)} emails ready to send"
            )
            sys.exit(0)
        else:
            logger.error(
                f"Invitation intake failed: {result.error_code.value} - {result.error_message}"
            )
            sys.exit(1)

    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        sys.exit(1)


def _read_input(args):
    """引数のファイル、または標準入力からテキストを読み込む"""
    if args:
        with open(args[0], "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


if __name__ == "__main__":
    main()
