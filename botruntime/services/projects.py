"""Bot project lookup by Telegram token."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from botruntime.config import get_settings
from botruntime.errors import NotFound
from botruntime.models.project import BotProject
from botruntime.services.token_crypto import encrypt_token, decrypt_token, token_digest, mask_token

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"


def _enc_key() -> str:
    s = get_settings()
    return s.token_encryption_key if s.token_encryption_key else s.secret_key


def set_project_bot_token(db: Session, project: BotProject, bot_token: str | None) -> BotProject:
    token = (bot_token or "").strip()
    if token:
        project.telegram_bot_token_enc = encrypt_token(token, _enc_key())
        project.telegram_bot_token_hash = token_digest(token)
    else:
        project.telegram_bot_token_enc = None
        project.telegram_bot_token_hash = None
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


def get_project_bot_token_plain(project: BotProject) -> str | None:
    if not project.telegram_bot_token_enc:
        return None
    return decrypt_token(project.telegram_bot_token_enc, _enc_key())


def find_project_by_token(db: Session, bot_token: str) -> BotProject:
    """Newest active project whose stored token matches; raises NotFound otherwise.

    Projects whose ``bot_status`` is not ``active`` are still returned so the
    caller can acknowledge the update as a no-op.
    """
    digest = token_digest(bot_token)
    row = db.execute(
        select(BotProject)
        .where(
            BotProject.telegram_bot_token_hash == digest,
            BotProject.is_active.is_(True),
        )
        .order_by(BotProject.created_at.desc(), BotProject.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    if not row:
        logger.info("project_not_found token=%s", mask_token(bot_token))
        raise NotFound("Bot not found")
    return row


def is_project_live(project: BotProject) -> bool:
    return bool(project.is_active) and (project.bot_status or "") == STATUS_ACTIVE
