"""Scheduled jobs: payment reconciliation and platform snapshot refresh."""
