#!/usr/bin/env python3
"""
Setup script to create the review image container in Azure Blob Storage.
Reads AZURE_BLOB_* settings from the environment (or .env).
"""

import asyncio
import sys

from reviewmedia.adapters.storage import get_azure_blob_service


def setup_storage_container() -> bool:
    """Create the blob container if it doesn't exist."""
    service = get_azure_blob_service()
    created = asyncio.run(service.ensure_container_exists())

    if created:
        print(f"✅ Blob container ready: {service.settings.container_name}")
    else:
        print(f"❌ Could not create blob container: {service.settings.container_name}")
    return created


if __name__ == "__main__":
    sys.exit(0 if setup_storage_container() else 1)
