"""
Script to create a user account.
Run this after migrations to create the first account without the API.
"""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import SessionLocal
from app.models.user import User
from app.api.auth import hash_password


def create_user(email: str, password: str, full_name: str = None):
    """Create a user account."""
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"User with email {email} already exists!")
            return

        user = User(
            email=email,
            hashed_password=hash_password(password),
            full_name=full_name,
            is_active=True,
        )

        db.add(user)
        db.commit()
        print(f"✅ User created successfully!")
        print(f"   Email: {email}")

    except Exception as e:
        db.rollback()
        print(f"❌ Error creating user: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Create user')
    parser.add_argument('--email', required=True, help='User email')
    parser.add_argument('--password', required=True, help='User password')
    parser.add_argument('--name', default=None, help='User full name')

    args = parser.parse_args()
    create_user(args.email, args.password, args.name)
