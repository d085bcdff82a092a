import logging.config

from celery import Celery
from celery.signals import setup_logging

from . import settings

app = Celery("roi_worker")
app.config_from_object("roi_worker.settings", namespace="CELERY")


@setup_logging.connect
def configure_logging(**kwargs):
    logging.config.dictConfig(settings.LOGGING)
