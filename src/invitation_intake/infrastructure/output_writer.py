"""JSON 出力コンポーネント"""

from typing import Optional, TextIO, TYPE_CHECKING
from pathlib import Path
import json
import sys
from datetime import datetime, timezone

if TYPE_CHECKING:
    from ..orchestration.invitation_intake_service import IntakeResult


class OutputWriter:
    """
    招待受付結果をクライアント向け JSON として出力

    Responsibilities:
    - IntakeResult を JSON に変換してファイルまたはストリームに書き込み
    - 出力先ディレクトリ管理
    """

    def write_output(
        self,
        result: "IntakeResult",
        output_path: Optional[Path] = None,
        stream: Optional[TextIO] = None
    ) -> Optional[Path]:
        """
        受付結果を JSON として出力

        Args:
            result: 招待受付結果
            output_path: 出力ファイルパス。None の場合は stream に書き込む
            stream: 出力ストリーム。None の場合は標準出力

        Returns:
            Optional[Path]: ファイルに書き込んだ場合はそのパス

        Note:
            - ensure_ascii=False で非 ASCII 文字をそのまま出力
            - indent=2 で人間が読みやすい形式に整形
        """
        output_data = {
            "generated_at": self._get_current_timestamp(),
            **result.model_dump(mode="json"),
        }

        if output_path is not None:
            # ディレクトリ自動作成
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(output_data, f, ensure_ascii=False, indent=2)
            return output_path

        target = stream or sys.stdout
        json.dump(output_data, target, ensure_ascii=False, indent=2)
        target.write("\n")
        return None

    def _get_current_timestamp(self) -> str:
        """
        現在時刻を ISO 8601 形式で取得

        Returns:
            str: ISO 8601 形式のタイムスタンプ（UTC、Z サフィックス付き）
        """
        return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"
