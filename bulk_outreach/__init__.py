"""
Bulk Outreach Generator - FastAPI application for generating personalized outreach emails for prospect lists.

This package processes large prospect lists in small, resumable chunks: each call researches
a handful of prospect websites, generates three email drafts per prospect, and records
progress so the caller can keep driving the job until it is complete.
"""

__version__ = "1.0.0"
__description__ = "Chunked, resumable bulk outreach email generation"
