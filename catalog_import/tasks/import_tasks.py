# catalog_import/tasks/import_tasks.py

import logging
from typing import Any, Dict

from celery import Celery

from catalog_import.core.config import settings
from catalog_import.core.exceptions import ImportConfigurationError
from catalog_import.schemas.fields import Dataset
from catalog_import.schemas.validation import ImportValidationRequest
from catalog_import.tasks.autofix import generate_auto_fix_suggestions
from catalog_import.tasks.validation import validate_data

logger = logging.getLogger(__name__)

celery_app = Celery(
    "catalog_import",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_track_started=True,
    worker_prefetch_multiplier=1,  # validation of big files is long-running
    task_acks_late=True,
)


def _load_request(payload: Dict[str, Any]):
    request = ImportValidationRequest.model_validate(payload)
    dataset = Dataset(headers=request.headers, rows=request.rows)
    return request, dataset


def _configuration_failure(exc: ImportConfigurationError) -> Dict[str, Any]:
    return {"status": "configuration_error", **exc.to_dict()}


@celery_app.task(name="catalog_import.validate")
def validate_import_task(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Background variant of the validate endpoint for large files.
    Returns a JSON-ready dict; configuration problems come back as a
    `configuration_error` status rather than a task failure.
    """
    request, dataset = _load_request(payload)
    logger.info(f"Validating {len(dataset.rows)} rows in background")
    try:
        result = validate_data(dataset, request.mapping, existing_keys=request.existing_keys)
    except ImportConfigurationError as exc:
        return _configuration_failure(exc)
    return {"status": "ok", "result": result.model_dump()}


@celery_app.task(name="catalog_import.auto_fix")
def auto_fix_task(payload: Dict[str, Any]) -> Dict[str, Any]:
    request, dataset = _load_request(payload)
    try:
        batch = generate_auto_fix_suggestions(dataset, request.mapping, existing_keys=request.existing_keys)
    except ImportConfigurationError as exc:
        return _configuration_failure(exc)
    return {"status": "ok", "result": batch.model_dump()}
