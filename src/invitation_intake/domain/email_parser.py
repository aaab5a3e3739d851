"""
メールアドレス一覧の解析ロジック

招待フォームに貼り付けられた自由形式のテキストを区切り文字で分割し、
正規化・重複排除・検証を行って有効／無効／重複に分類します。

処理は入力長チェック → 分割 → 正規化 → 重複排除 → 検証 の順に一方向で進み、
I/O や共有状態を持ちません。不正なメールアドレスは例外ではなくデータ
(EmailParseResult.invalid) として返します。
"""

import re
from typing import List, Optional, Tuple

from email_validator import validate_email, EmailNotValidError

from ..config import MAX_INPUT_LENGTH
from .models import EmailErrorReason, EmailParseResult, ParsedEmail
from .tld_registry import TldRegistry


class EmailParser:
    """
    メールアドレス一覧パーサー

    検証は以下の順に行い、最初に失敗した時点で打ち切ります:
    1. 構造チェック (@ が1つ、ローカル部が空でない、ドメインが2セグメント以上で空セグメントなし)
    2. TLD チェック (同梱の IANA 一覧に含まれる)
    3. RFC 5322 構文チェック (email-validator)
    """

    # 区切り文字: 空白 (スペース・タブ・改行を含む)、カンマ、セミコロン
    _SEPARATOR_PATTERN = re.compile(r"[\s,;]+")

    def __init__(
        self,
        tld_registry: Optional[TldRegistry] = None,
        max_input_length: int = MAX_INPUT_LENGTH
    ):
        """
        EmailParser を初期化

        Args:
            tld_registry: TLD 照会用レジストリ。None の場合は同梱一覧を使用。
            max_input_length: 入力テキストの最大文字数
        """
        self.tld_registry = tld_registry or TldRegistry()
        self.max_input_length = max_input_length

    def parse(self, raw_input: str) -> EmailParseResult:
        """
        テキストからメールアドレスを抽出して分類

        Args:
            raw_input: 1件以上のメールアドレスを含む生テキスト (空文字列可)

        Returns:
            EmailParseResult: 有効・無効・重複・元の並びに分類した結果

        Note:
            - 入力が max_input_length を超える場合は input_error のみ設定して即座に返す
            - valid / invalid は重複排除後のトークンに対する結果
            - 初出のトークンは (無効であっても) 重複として数えない
        """
        if len(raw_input) > self.max_input_length:
            return EmailParseResult(
                input_error=(
                    f"Input too long. Maximum {self.max_input_length} characters allowed."
                )
            )

        original = self._tokenize(raw_input)
        unique, duplicates = self._deduplicate(original)

        valid: List[str] = []
        invalid: List[ParsedEmail] = []
        for email in unique:
            error = self.validate(email)
            if error is None:
                valid.append(email)
            else:
                invalid.append(ParsedEmail(email=email, error=error))

        return EmailParseResult(
            valid=valid,
            invalid=invalid,
            duplicates=duplicates,
            original=original,
        )

    def validate(self, email: str) -> Optional[EmailErrorReason]:
        """
        1件のメールアドレスを検証

        Args:
            email: 小文字化済みのメールアドレス

        Returns:
            Optional[EmailErrorReason]: 有効なら None、無効ならエラー種別
        """
        parts = email.split("@")
        if len(parts) != 2 or not parts[0]:
            return EmailErrorReason.INVALID_FORMAT

        # "user@.pl", "user@example.", "user@domain" を弾く
        domain_segments = parts[1].split(".")
        if len(domain_segments) < 2 or any(not segment for segment in domain_segments):
            return EmailErrorReason.INVALID_DOMAIN

        if not self.tld_registry.contains(domain_segments[-1]):
            return EmailErrorReason.INVALID_TLD

        if not self._is_rfc_compliant(email):
            return EmailErrorReason.INVALID_FORMAT

        return None

    @classmethod
    def _tokenize(cls, raw_input: str) -> List[str]:
        """
        区切り文字で分割し、前後の空白を除去して空トークンを捨てる

        Args:
            raw_input: 生テキスト

        Returns:
            List[str]: 出現順のトークン (大文字小文字は元のまま)
        """
        tokens = (token.strip() for token in cls._SEPARATOR_PATTERN.split(raw_input))
        return [token for token in tokens if token]

    @staticmethod
    def _deduplicate(tokens: List[str]) -> Tuple[List[str], List[str]]:
        """
        大文字小文字を区別せずに重複を排除

        Args:
            tokens: 出現順のトークン

        Returns:
            Tuple[List[str], List[str]]:
                (初出順の小文字化済みトークン, 2回目以降に出現した元のトークン)
        """
        seen = set()
        unique: List[str] = []
        duplicates: List[str] = []

        for token in tokens:
            normalized = token.lower()
            if normalized in seen:
                duplicates.append(token)
            else:
                seen.add(normalized)
                unique.append(normalized)

        return unique, duplicates

    @staticmethod
    def _is_rfc_compliant(email: str) -> bool:
        """
        RFC 5322 準拠の構文チェック (DNS 照会なし)

        国際化ローカル部 (RFC 6531 / SMTPUTF8) は受け付けません。
        .arpa などの特殊用途ドメインは email-validator の判定どおり拒否します。

        Args:
            email: メールアドレス

        Returns:
            bool: 構文が正しければ True
        """
        try:
            validate_email(email, check_deliverability=False, allow_smtputf8=False)
        except EmailNotValidError:
            return False
        return True


def parse_emails(raw_input: str) -> EmailParseResult:
    """
    同梱の TLD 一覧と既定の上限値でメールアドレス一覧を解析

    呼び出しごとに EmailParser を生成します (TLD 一覧の読み込みは TldRegistry 側でキャッシュ)。

    Args:
        raw_input: 1件以上のメールアドレスを含む生テキスト

    Returns:
        EmailParseResult: 解析結果

    Example:
        >>> result = parse_emails("a@d.pl dzw@k.pl, zf@d.pl\\nr@.pl")
        >>> result.valid
        ['a@d.pl', 'dzw@k.pl', 'zf@d.pl']
        >>> [(e.email, e.error.value) for e in result.invalid]
        [('r@.pl', 'Invalid domain')]
    """
    return EmailParser().parse(raw_input)
