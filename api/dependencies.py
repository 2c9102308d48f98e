"""
FastAPI dependencies.

The Supabase client and the automation webhook are created once per process
(see `api.main.create_app`) and kept on `app.state`; handlers receive them
through `Depends` instead of importing a global.
"""

from fastapi import BackgroundTasks, Request

from repositories.client import Client
from services.activity_logger import ActivityLogger
from services.automation_webhook import AutomationWebhook


def get_db(request: Request) -> Client:
    return request.app.state.db


def get_automation_webhook(request: Request) -> AutomationWebhook:
    return request.app.state.webhook


def get_activity_logger(request: Request, background_tasks: BackgroundTasks) -> ActivityLogger:
    """Audit writes run after the response is sent."""

    return ActivityLogger(request.app.state.db, schedule=background_tasks.add_task)
