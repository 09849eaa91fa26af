# billing/services/bootstrap.py
from __future__ import annotations

import logging
from typing import Optional

from billing.ingestion.db import transaction
from billing.services.auth_service import hash_password
from billing.services import config

logger = logging.getLogger(__name__)


def ensure_default_admin() -> Optional[int]:
    """
    Create the default admin when no admin user exists.
    Returns the new user id, or None if an admin was already present.
    """
    with transaction() as cur:
        cur.execute("SELECT `id` FROM `users` WHERE LOWER(`role`)='admin' LIMIT 1 FOR UPDATE")
        if cur.fetchone():
            return None
        cur.execute(
            """
            INSERT INTO `users`
            (`name`,`email`,`password`,`phone`,`worktype`,`role`,`rate`,`agent_rates`)
            VALUES (%s,%s,%s,%s,%s,'admin',NULL,NULL)
            """,
            (
                config.DEFAULT_ADMIN_NAME,
                config.DEFAULT_ADMIN_EMAIL,
                hash_password(config.DEFAULT_ADMIN_PASSWORD),
                config.DEFAULT_ADMIN_PHONE,
                config.DEFAULT_ADMIN_WORKTYPE,
            ),
        )
        new_id = int(cur.lastrowid)
    logger.info("Default admin created: %s", config.DEFAULT_ADMIN_EMAIL)
    return new_id
