"""
Celery Tasks
Background tasks for logging processed commands.
"""

import logging
import time
from datetime import datetime

from kitchen_voice.celery_worker import celery_app
from kitchen_voice.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_command_to_excel(self, command_data: dict) -> dict:
    """
    Append a processed command to the Excel command log.
    This task runs asynchronously via Celery worker.

    Args:
        command_data: Flattened command record (see ExcelManager.COMMAND_COLUMNS)

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    command_id = command_data.get('command_id', 'unknown')

    logger.info(f"📋 Task {task_id}: Logging command {command_id}")
    start_time = time.time()

    result = ExcelManager.export_command(command_data)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"✅ Task {task_id}: Command {command_id} logged in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: Command {command_id} failed - {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }


@celery_app.task
def clear_command_log() -> dict:
    """
    Clear the Excel command log (for testing/reset purposes).
    """
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'Command log cleared' if success else 'Failed to clear command log',
        'timestamp': datetime.now().isoformat()
    }
