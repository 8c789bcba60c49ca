"""
In-memory storage for import wizard sessions.
Sessions expire after a period without access.
Single-server only.
"""
from datetime import datetime, timedelta
from typing import Optional
import structlog

from config import settings
from exceptions import WizardSessionNotFoundError
from integrations.import_gateway import ImportGateway, get_import_gateway
from services.import_wizard_service import ImportWizardSession

logger = structlog.get_logger(__name__)

_sessions: dict[str, tuple[datetime, ImportWizardSession]] = {}


def _expiry(ttl_minutes: Optional[int] = None) -> datetime:
    return datetime.now() + timedelta(minutes=ttl_minutes or settings.session_ttl_minutes)


def create_session(gateway: Optional[ImportGateway] = None) -> ImportWizardSession:
    """Create and store a new session, return it."""
    session = ImportWizardSession(gateway=gateway or get_import_gateway())
    _sessions[session.session_id] = (_expiry(), session)
    _cleanup_expired()
    logger.info("wizard_session_created", session_id=session.session_id)
    return session


def get_session(session_id: str) -> ImportWizardSession:
    """
    Retrieve a session and extend its lifetime.

    Raises:
        WizardSessionNotFoundError: Unknown or expired session
    """
    entry = _sessions.get(session_id)
    if entry is None:
        raise WizardSessionNotFoundError(session_id)
    expires_at, session = entry
    if datetime.now() > expires_at:
        _sessions.pop(session_id, None)
        logger.info("wizard_session_expired", session_id=session_id)
        raise WizardSessionNotFoundError(session_id)
    _sessions[session_id] = (_expiry(), session)
    return session


def delete_session(session_id: str) -> None:
    """
    Remove a session when the user leaves the wizard.

    Raises:
        WizardSessionNotFoundError: Unknown or expired session
    """
    entry = _sessions.pop(session_id, None)
    if entry is None or datetime.now() > entry[0]:
        raise WizardSessionNotFoundError(session_id)
    logger.info("wizard_session_deleted", session_id=session_id)


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _) in list(_sessions.items()) if now > exp]
    for k in expired:
        _sessions.pop(k, None)
