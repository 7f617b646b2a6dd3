"""Celery worker and scheduled tasks."""
