"""
Background Jobs for Project Portal.

This module contains scheduled jobs:
- digest_cron: Periodic digest emails for every active project
"""

from .digest_cron import run_digest_job

__all__ = ["run_digest_job"]
