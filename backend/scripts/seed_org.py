#!/usr/bin/env python
"""Seed script to create an organization and its first owner.

Run once during initial setup. The owner can then add admins and
employees through the API.

Usage:
    python backend/scripts/seed_org.py

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
    PASSWORD_PEPPER: Password hashing pepper (required)
    ORG_SLUG: Organization slug (default: acme)
    ORG_NAME: Organization name (default: Acme)
    OWNER_EMAIL: Email for the owner (default: owner@example.com)
    OWNER_PASSWORD: Password for the owner (generated when unset)
    OWNER_NAME: Display name for the owner (default: Organization Owner)
"""

import os
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from sqlalchemy.exc import SQLAlchemyError

from docuflow.auth.password import generate_initial_password, hash_password
from docuflow.database import SessionLocal
from docuflow.models import Org, Profile


def main():
    """Create the organization and its owner profile."""
    org_slug = os.getenv("ORG_SLUG", "acme")
    org_name = os.getenv("ORG_NAME", "Acme")
    owner_email = os.getenv("OWNER_EMAIL", "owner@example.com").strip().lower()
    owner_name = os.getenv("OWNER_NAME", "Organization Owner")
    owner_password = os.getenv("OWNER_PASSWORD") or generate_initial_password()

    session = SessionLocal()
    try:
        if session.query(Org).filter(Org.slug == org_slug).first():
            print(f"ERROR: Organization '{org_slug}' already exists")
            sys.exit(1)

        try:
            org = Org(slug=org_slug, name=org_name, settings_json={})
        except ValueError as e:
            print(f"ERROR: {e}")
            sys.exit(1)
        session.add(org)
        session.flush()

        owner = Profile(
            org_id=org.id,
            email=owner_email,
            full_name=owner_name,
            role="owner",
            password_hash=hash_password(owner_password),
            status="ACTIVE",
        )
        session.add(owner)
        session.commit()

        print("SUCCESS: Organization created")
        print(f"  Org:      {org.slug} ({org.id})")
        print(f"  Owner:    {owner.email}")
        if not os.getenv("OWNER_PASSWORD"):
            print(f"  Password: {owner_password}")

    except SQLAlchemyError as e:
        session.rollback()
        print(f"ERROR: Failed to seed organization: {e}")
        sys.exit(1)

    finally:
        session.close()


if __name__ == "__main__":
    main()
