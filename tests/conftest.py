# tests/conftest.py
import pytest

from catalog_import.schemas.fields import (
    Dataset,
    FieldConstraints,
    FieldDescriptor,
    FieldType,
    PRODUCT_FIELD_REGISTRY,
)


@pytest.fixture
def make_dataset():
    def _make(headers, *rows):
        return Dataset(headers=list(headers), rows=[list(r) for r in rows])
    return _make


@pytest.fixture
def sku_registry():
    return {"sku": PRODUCT_FIELD_REGISTRY["sku"]}


@pytest.fixture
def simple_registry():
    """Small schema without business rules attached to any key."""
    return {
        "code": FieldDescriptor(key="code", label="Code", type=FieldType.TEXT, required=True),
        "qty": FieldDescriptor(
            key="qty", label="Quantity", type=FieldType.INTEGER,
            constraints=FieldConstraints(min=0, max=1000),
        ),
        "labels": FieldDescriptor(key="labels", label="Labels", type=FieldType.ARRAY),
    }


@pytest.fixture
def simple_mapping():
    return {"Code": "code", "Qty": "qty", "Labels": "labels"}
