"""
設定値

招待メールアドレスの解析・送信に関する上限値と、参照する環境変数名を定義します。
上限値の変更はデプロイで行います (実行時フラグではありません)。
"""

# 解析対象テキストの最大文字数
# 50件 × 100文字 (非常に長いアドレス) + 余裕分
MAX_INPUT_LENGTH = 10000

# 1回の招待で送信できる最大件数
MAX_EMAILS_PER_INVITATION = 50

# 同梱する IANA TLD 一覧のファイル名
TLD_LIST_FILENAME = "tlds-alpha-by-domain.txt"

# 環境変数名
ENV_TEST_MODE = "TEST_MODE"
ENV_APP_ENV = "APP_ENV"
ENV_CLIENT_ID = "INVITATION_CLIENT_ID"
ENV_OUTPUT_PATH = "INVITATION_OUTPUT_PATH"
