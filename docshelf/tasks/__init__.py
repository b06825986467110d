"""
Celery tasks for background document enrichment
"""
