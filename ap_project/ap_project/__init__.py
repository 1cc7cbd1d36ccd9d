# Celery instance is defined in ap_project/celery.py
# Importing it here makes sure the app is loaded when Django starts,
# so @shared_task binds to it
from .celery import celery_app

__all__ = ("celery_app",)

""" Start a worker with "celery -A ap_project worker -l info" """
