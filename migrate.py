"""
Database migration script.
Creates all tables, and optionally grants admin rights to an existing user.
"""

import argparse
import logging

import crud
from database import SessionLocal, init_db
from models import AdminRoleEnum

logger = logging.getLogger(__name__)

def create_tables():
    """Create all tables defined in models."""
    created = init_db()
    logger.info(f"Tables ready ({len(created)} created)")

def grant_admin(email: str, role: AdminRoleEnum = AdminRoleEnum.ADMIN) -> bool:
    with SessionLocal() as db:
        user = crud.get_user_by_email(db, email)
        if not user:
            logger.error(f"No user registered with email {email}")
            return False
        crud.grant_admin(db, user.id, role)
        logger.info(f"Granted {role.value} to {email}")
        return True

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--grant-admin", metavar="EMAIL", help="make this user an admin")
    parser.add_argument("--super", action="store_true", help="grant super_admin instead of admin")
    args = parser.parse_args()

    create_tables()
    if args.grant_admin:
        role = AdminRoleEnum.SUPER_ADMIN if args.super else AdminRoleEnum.ADMIN
        if not grant_admin(args.grant_admin, role):
            raise SystemExit(1)
