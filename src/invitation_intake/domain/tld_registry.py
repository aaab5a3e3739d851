"""
TLD レジストリ

IANA が公開するトップレベルドメイン一覧 (tlds-alpha-by-domain.txt) を
パッケージ同梱の静的ファイルから読み込みます。
一覧の更新はファイルの差し替えとデプロイで行い、実行時のネットワーク取得は行いません。
"""

import logging
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

from ..config import TLD_LIST_FILENAME


class TldRegistryError(Exception):
    """
    TLD 一覧読み込みエラー

    同梱ファイルの欠損・空ファイルなどのデプロイ不備を表します。
    ユーザー入力の解析中には発生しません。
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        """
        Args:
            message: エラーメッセージ
            path: 読み込もうとしたファイルのパス
        """
        super().__init__(message)
        self.path = path


class TldRegistry:
    """
    TLD 一覧の保持と照会

    IANA 形式 (先頭の "# Version ..." 行に続き 1 行 1 TLD、大文字) のファイルを読み込み、
    小文字化した集合として保持します。読み込み結果はファイルパスごとにキャッシュします。
    """

    DEFAULT_TLD_FILE = Path(__file__).parent / "data" / TLD_LIST_FILENAME

    _cache: Dict[Path, Tuple[FrozenSet[str], Optional[str]]] = {}

    def __init__(self, tld_file: Optional[Path] = None):
        """
        TldRegistry を初期化

        Args:
            tld_file: TLD 一覧ファイル。None の場合は同梱ファイルを使用。

        Raises:
            TldRegistryError: ファイルが存在しない、または TLD が1件もない場合
        """
        self.tld_file = Path(tld_file) if tld_file else self.DEFAULT_TLD_FILE
        self.logger = logging.getLogger(__name__)
        self._tlds, self._version = self._load()

    @property
    def version(self) -> Optional[str]:
        """一覧のバージョン (ヘッダー行がない場合は None)"""
        return self._version

    def __len__(self) -> int:
        return len(self._tlds)

    def __contains__(self, tld: object) -> bool:
        return isinstance(tld, str) and self.contains(tld)

    def contains(self, tld: str) -> bool:
        """
        TLD が登録済みかを判定 (大文字小文字は区別しない)

        Args:
            tld: 判定対象の TLD (先頭のドットなし)

        Returns:
            bool: 一覧に含まれていれば True
        """
        return tld.strip().lower() in self._tlds

    def _load(self) -> Tuple[FrozenSet[str], Optional[str]]:
        """
        TLD 一覧ファイルを読み込み

        Returns:
            Tuple[FrozenSet[str], Optional[str]]: 小文字化した TLD 集合とバージョン

        Raises:
            TldRegistryError: ファイルが存在しない、または TLD が1件もない場合
        """
        cache_key = self.tld_file.resolve()
        if cache_key in TldRegistry._cache:
            return TldRegistry._cache[cache_key]

        if not self.tld_file.exists():
            raise TldRegistryError(
                f"TLD list not found: {self.tld_file}", path=self.tld_file
            )

        version = None
        tlds = set()
        with open(self.tld_file, "r", encoding="utf-8") as f:
            for line in f:
                entry = line.strip()
                if not entry:
                    continue
                if entry.startswith("#"):
                    # "# Version 2025101700, Last Updated ..."
                    if version is None and entry[1:].strip().lower().startswith("version"):
                        version = entry[1:].strip().split(",")[0].split()[-1]
                    continue
                tlds.add(entry.lower())

        if not tlds:
            raise TldRegistryError(
                f"TLD list is empty: {self.tld_file}", path=self.tld_file
            )

        self.logger.info(
            f"Loaded {len(tlds)} TLDs",
            extra={"tld_file": str(self.tld_file), "tld_version": version}
        )

        loaded = (frozenset(tlds), version)
        TldRegistry._cache[cache_key] = loaded
        return loaded
