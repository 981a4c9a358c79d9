import logging

from sqlmodel import SQLModel
from dashboard.db.engine import engine
# Import models so they are registered with SQLModel.metadata
from dashboard.models.user_setting import UserSetting
from dashboard.core.config import settings

logger = logging.getLogger(__name__)


def init_db(bind=None):
    if bind is None:
        bind = engine
        if settings.uses_sqlite:
            settings.ensure_dirs()

    # Creates user_settings with its (user_id, service_name) unique constraint
    SQLModel.metadata.create_all(bind, tables=[UserSetting.__table__])
    logger.info("Settings tables ready on %s", bind.dialect.name)
