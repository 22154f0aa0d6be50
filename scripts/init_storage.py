#!/usr/bin/env python3
"""
Initialize the EduManage document store.

Creates the DynamoDB table or the MongoDB indexes for the configured
backend, and optionally seeds a super admin account.

Usage:
    python scripts/init_storage.py
    python scripts/init_storage.py --admin-email owner@example.com --admin-password 'Secret@123'

Environment variables:
    STORAGE_BACKEND - dynamodb or mongodb
    DDB_TABLE_NAME, AWS_REGION - DynamoDB table settings
    MONGODB_URI, MONGODB_DB - MongoDB connection settings
"""

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

load_dotenv(project_root / ".env")


def init_dynamodb() -> None:
    from botocore.exceptions import ClientError

    from edumanage.storage import dynamodb

    print(f"🔧 Creating DynamoDB table {dynamodb.TABLE_NAME}...")
    try:
        dynamodb.create_table()
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") != "ResourceInUseException":
            raise
        print("   Table already exists")
    print("✅ DynamoDB table ready")


def init_mongodb() -> None:
    from edumanage.storage import mongodb

    print("🔧 Creating MongoDB indexes...")
    mongodb.ensure_indexes()
    print("✅ MongoDB indexes ready")


def seed_admin(email: str, password: str, name: str) -> None:
    from edumanage.models import Role
    from edumanage.services import auth_service
    from edumanage.services.errors import ConflictError

    try:
        user = auth_service.create_user_document(name, email, password, None, Role.SUPER_ADMIN)
        print(f"✅ Created super admin {user['email']}")
    except ConflictError:
        print(f"   {email} already exists, skipping")


def main():
    parser = argparse.ArgumentParser(description="Initialize the EduManage document store.")
    parser.add_argument("--backend", default=os.getenv("STORAGE_BACKEND", "memory"),
                        choices=["dynamodb", "mongodb", "memory"])
    parser.add_argument("--admin-email")
    parser.add_argument("--admin-password")
    parser.add_argument("--admin-name", default="Administrator")
    args = parser.parse_args()

    if args.backend == "memory":
        print("❌ The memory backend needs no initialization (set STORAGE_BACKEND)")
        sys.exit(1)

    os.environ["STORAGE_BACKEND"] = args.backend
    try:
        if args.backend == "dynamodb":
            init_dynamodb()
        else:
            init_mongodb()
        if args.admin_email and args.admin_password:
            seed_admin(args.admin_email, args.admin_password, args.admin_name)
    except Exception as e:
        print(f"❌ Error initializing storage: {e}")
        print()
        print("Troubleshooting:")
        print("  1. Verify the database is running and reachable")
        print("  2. Check credentials (AWS profile or MONGODB_URI)")
        sys.exit(1)


if __name__ == "__main__":
    main()
