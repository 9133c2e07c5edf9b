# catalog_import/api/imports.py

import logging
from fastapi import APIRouter, UploadFile, File, HTTPException, Body
from fastapi.responses import Response
from typing import Dict, List

from catalog_import.core.config import settings
from catalog_import.schemas.fields import (
    DEFAULT_TEMPLATE,
    FIELD_GROUPS,
    Dataset,
    FieldDescriptor,
    FieldGroup,
    PRODUCT_FIELDS,
    PRODUCT_FIELD_REGISTRY,
)
from catalog_import.schemas.validation import (
    AutoFixBatch,
    ImportValidationRequest,
    ValidationResult,
)
from catalog_import.tasks.autofix import generate_auto_fix_suggestions_async
from catalog_import.tasks.validation import validate_data_async
from catalog_import.utils.mapping import suggest_mapping
from catalog_import.utils.parser import build_template_csv, parse_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/import/products", tags=["import"])


@router.get("/fields", response_model=List[FieldDescriptor])
async def list_fields():
    return PRODUCT_FIELDS


@router.get("/field-groups", response_model=Dict[str, FieldGroup])
async def list_field_groups():
    return FIELD_GROUPS


@router.get("/template")
async def download_template():
    return Response(
        content=build_template_csv(DEFAULT_TEMPLATE),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": "attachment; filename=product-import-template.csv"},
    )


@router.post("/upload")
async def upload_csv_for_mapping(file: UploadFile = File(...)):
    content = await file.read()
    try:
        dataset = parse_csv(content)
    except ValueError as e:
        raise HTTPException(400, str(e))

    if not dataset.rows:
        raise HTTPException(400, "CSV contains no data rows.")

    suggestion = suggest_mapping(dataset.headers, PRODUCT_FIELD_REGISTRY)
    logger.info(f"Parsed upload {file.filename}: {len(dataset.rows)} rows, {len(dataset.headers)} columns")

    return {
        "filename": file.filename,
        "headers": dataset.headers,
        "row_count": len(dataset.rows),
        "preview_rows": dataset.rows[:settings.PREVIEW_ROW_LIMIT],
        "suggested_mapping": suggestion.mapping,
        "unmapped_columns": suggestion.unmapped_columns,
    }


@router.post("/validate", response_model=ValidationResult)
async def validate_import(payload: ImportValidationRequest = Body(...)):
    # ImportConfigurationError is rendered by the app-level handler
    dataset = Dataset(headers=payload.headers, rows=payload.rows)
    return await validate_data_async(dataset, payload.mapping, existing_keys=payload.existing_keys)


@router.post("/auto-fix", response_model=AutoFixBatch)
async def auto_fix_import(payload: ImportValidationRequest = Body(...)):
    dataset = Dataset(headers=payload.headers, rows=payload.rows)
    return await generate_auto_fix_suggestions_async(dataset, payload.mapping, existing_keys=payload.existing_keys)
