#!/usr/bin/env python3
"""
Promotes an existing user record to the admin role.

The admin-only routes need at least one admin to exist; this is how the first
one is made. The user must have registered (POST /users) before.
"""
import sys

from localchef.config import build_store, get_settings
from localchef.repositories.base import DocumentStore


def set_admin_role(user_email: str, store: DocumentStore) -> bool:
    """Sets role=admin on the user record of `user_email`."""
    user = store.users.find_one({"email": user_email})
    if not user:
        print(f"❌ User not found: {user_email}")
        return False
    print(f"✅ User found: {user['_id']} - {user_email} (role: {user.get('role', 'user')})")

    if user.get("role") == "admin":
        print("✅ User is already admin")
        return True

    store.users.update_by_id(user["_id"], {"role": "admin"})
    print(f"✅ Admin role set for: {user_email}")
    return True


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python set_admin_role.py <user_email>")
        print("Example: python set_admin_role.py admin@example.com")
        sys.exit(1)

    user_email = sys.argv[1]
    print(f"Setting admin role for: {user_email}")

    store = build_store(get_settings())
    try:
        success = set_admin_role(user_email, store)
    finally:
        store.close()

    if success:
        print("🎉 Admin role set successfully!")
    else:
        print("💥 Failed to set admin role")
        sys.exit(1)
