#!/usr/bin/env python3
"""
Connection Test Script

Run this to verify MongoDB, object storage and SMTP are reachable.
Usage: python scripts/test_connections.py
"""
import sys
sys.path.insert(0, '.')

from pms.db.mongodb import test_mongo_connection
from pms.services.notification_service import NotificationService
from pms.services.storage_service import StorageService
from pms.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("PLACEMENT MANAGEMENT - CONNECTION TEST")
    print("=" * 50)

    # Test MongoDB
    print("\n[1] Testing MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if test_mongo_connection():
        print("    ✅ MongoDB: CONNECTED")
    else:
        print("    ❌ MongoDB: FAILED")

    # Test S3
    print("\n[2] Testing object storage...")
    print(f"    Bucket: {settings.s3_bucket} ({settings.s3_endpoint_url or settings.s3_region})")
    if StorageService(settings).check():
        print("    ✅ Storage: REACHABLE")
    else:
        print("    ❌ Storage: FAILED")

    # Test SMTP (only if configured)
    print("\n[3] Testing SMTP...")
    notifications = NotificationService(settings)
    if notifications.configured:
        print(f"    Host: {settings.smtp_host}:{settings.smtp_port}")
        if notifications.check():
            print("    ✅ SMTP: CONNECTED")
        else:
            print("    ❌ SMTP: FAILED")
    else:
        print("    ⚠️  SMTP: not configured (welcome emails will be reported as failed)")

    print("\n" + "=" * 50)
    print("Connection test complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
