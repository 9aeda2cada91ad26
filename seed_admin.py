"""
Admin bootstrap: creates the first admin account, or promotes an existing one.

Registration never hands out the admin role, so run this once against the
configured database (DATABASE_URL) after migrations:

    python seed_admin.py --email admin@laundry.app --password 'change-me' --first-name Site --last-name Admin --phone +15550000000

ADMIN_EMAIL and ADMIN_PASSWORD are read from the environment when the flags
are omitted. An existing account with the same email is promoted to admin,
activated and marked verified; its password is only replaced with --reset-password.
"""
import argparse
import os
import sys

from user_service.database import SessionLocal
from user_service.models.user import UserRole
from user_service.services.user_store import UserStore
from user_service.utils.auth import hash_password


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--first-name", default="Admin")
    parser.add_argument("--last-name", default="User")
    parser.add_argument("--phone", default="+10000000000")
    parser.add_argument("--reset-password", action="store_true", help="overwrite the password of an existing account")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if not args.email or not args.password:
        print("❌ --email and --password (or ADMIN_EMAIL / ADMIN_PASSWORD) are required")
        return 1
    if len(args.password) < 6:
        print("❌ Password must be at least 6 characters")
        return 1

    email = args.email.strip().lower()
    db = SessionLocal()
    try:
        users = UserStore(db)
        user = users.get_by_email(email)

        if user:
            changes = {"role": UserRole.ADMIN, "is_active": True, "is_verified": True}
            if args.reset_password:
                changes["password"] = hash_password(args.password)
            users.update_user(user, **changes)
            print(f"  ✓ Promoted existing account to admin  ({user.id})")
        else:
            user = users.create_user(
                email=email,
                password=hash_password(args.password),
                first_name=args.first_name,
                last_name=args.last_name,
                phone=args.phone,
                role=UserRole.ADMIN,
                is_verified=True,
            )
            print(f"  ✓ Created admin account  ({user.id})")
    finally:
        db.close()

    print(f"\n✅  {email} can now log in at POST /api/auth/login\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
