"""
Review-Media: image storage and request authentication for the reviews backend

Validated review-image uploads to Azure Blob Storage with on-demand,
time-limited SAS access URLs, plus JWT-based request authentication.
"""

__version__ = "0.1.0"
__author__ = "Review-Media Team"
__description__ = "Review image storage and JWT request authentication"
