"""
ドメイン層

メールアドレス一覧の解析・検証ロジックと招待リクエストのスキーマを提供します。
"""

from .models import (
    EmailErrorReason,
    ParsedEmail,
    EmailParseResult,
    InvitationConfirmation,
)
from .tld_registry import TldRegistry, TldRegistryError
from .email_parser import EmailParser, parse_emails
from .validators import InviteParticipantsCommand, PaginationParams, validate_uuid

__all__ = [
    "EmailErrorReason",
    "ParsedEmail",
    "EmailParseResult",
    "InvitationConfirmation",
    "TldRegistry",
    "TldRegistryError",
    "EmailParser",
    "parse_emails",
    "InviteParticipantsCommand",
    "PaginationParams",
    "validate_uuid",
]
