# catalog_import/schemas/fields.py

import re
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FieldType(str, Enum):
    NUMBER = "number"
    INTEGER = "integer"
    TEXT = "text"
    ENUM = "enum"
    DATE = "date"
    ARRAY = "array"


class FieldConstraints(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None
    min_length: Optional[int] = Field(None, ge=0)
    max_length: Optional[int] = Field(None, ge=1)
    pattern: Optional[str] = None
    allowed_values: List[str] = []

    @field_validator("pattern")
    @classmethod
    def pattern_must_compile(cls, v):
        if v is not None:
            try:
                re.compile(v)
            except re.error as exc:
                raise ValueError(f"Invalid regex pattern: {exc}")
        return v


class FieldDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    type: FieldType
    required: bool = False
    description: str = ""
    constraints: FieldConstraints = FieldConstraints()

    @model_validator(mode="after")
    def enum_needs_values(self):
        if self.type is FieldType.ENUM and not self.constraints.allowed_values:
            raise ValueError(f"Enum field '{self.key}' must declare allowed_values")
        return self


# {"CSV Header": "fieldKey"}; a blank target leaves the column unmapped
FieldMapping = Dict[str, Optional[str]]


class Dataset(BaseModel):
    headers: List[str]
    rows: List[List[str]] = []

    @field_validator("rows", mode="before")
    @classmethod
    def cells_to_str(cls, v):
        # Upstream parsers hand us None/numbers for blank or typed cells
        if isinstance(v, list):
            return [["" if c is None else str(c) for c in row] for row in v]
        return v


DescriptorRegistry = Dict[str, FieldDescriptor]


def as_registry(
    descriptors: Union[Mapping[str, FieldDescriptor], Iterable[FieldDescriptor]],
) -> DescriptorRegistry:
    """Accept either a key->descriptor mapping or a plain list of descriptors."""
    if isinstance(descriptors, Mapping):
        return dict(descriptors)
    return {d.key: d for d in descriptors}


def _field(key, label, type_, required=False, description="", **constraints) -> FieldDescriptor:
    return FieldDescriptor(
        key=key,
        label=label,
        type=type_,
        required=required,
        description=description,
        constraints=FieldConstraints(**constraints),
    )


STATUS_VALUES = ["active", "inactive", "draft", "discontinued"]
VISIBILITY_VALUES = ["everywhere", "catalog", "search", "nowhere"]
CONDITION_VALUES = ["new", "used", "refurbished", "damaged"]

PRODUCT_FIELDS: List[FieldDescriptor] = [
    # === Basic ===
    _field("sku", "SKU", FieldType.TEXT, required=True,
           description="Unique product identifier (alphanumeric, hyphens, underscores)",
           pattern=r"(?i)^[A-Z0-9\-_]+$", min_length=2, max_length=50),
    _field("name", "Product Name", FieldType.TEXT, required=True,
           description="Display name of the product", min_length=3, max_length=255),
    _field("description", "Description", FieldType.TEXT,
           description="Detailed product description (HTML supported)"),
    _field("shortDescription", "Short Description", FieldType.TEXT,
           description="Brief product summary (plain text)", max_length=500),

    # === Pricing & stock ===
    _field("price", "Price", FieldType.NUMBER, required=True,
           description="Product price (excluding tax)", min=0.01, max=999999.99),
    _field("priceWithTax", "Price with Tax", FieldType.NUMBER,
           description="Product price including tax", min=0.01, max=999999.99),
    _field("wholesalePrice", "Wholesale Price", FieldType.NUMBER,
           description="Wholesale/cost price", min=0, max=999999.99),
    _field("stock", "Stock Quantity", FieldType.INTEGER,
           description="Available stock quantity", min=0, max=999999),
    _field("minStock", "Minimum Stock", FieldType.INTEGER,
           description="Minimum stock level for alerts", min=0, max=999999),

    # === Classification ===
    _field("category", "Category", FieldType.TEXT,
           description="Product category (use > for hierarchy)"),
    _field("brand", "Brand", FieldType.TEXT,
           description="Product brand/manufacturer", max_length=100),
    _field("manufacturer", "Manufacturer", FieldType.TEXT,
           description="Product manufacturer (if different from brand)", max_length=100),
    _field("supplier", "Supplier", FieldType.TEXT,
           description="Product supplier/vendor", max_length=100),
    _field("email", "Supplier Email", FieldType.TEXT,
           description="Contact address of the supplier", max_length=254),
    _field("tags", "Tags", FieldType.ARRAY, description="Product tags (comma-separated)"),

    # === Physical ===
    _field("weight", "Weight (kg)", FieldType.NUMBER,
           description="Product weight in kilograms", min=0, max=99999.99),
    _field("dimensions", "Dimensions", FieldType.TEXT,
           description="Product dimensions (L x W x H in cm)"),
    _field("color", "Color", FieldType.TEXT, description="Primary product color"),
    _field("size", "Size", FieldType.TEXT, description="Product size"),
    _field("material", "Material", FieldType.TEXT, description="Primary product material"),

    # === Identifiers ===
    _field("ean", "EAN/Barcode", FieldType.TEXT,
           description="European Article Number or barcode", pattern=r"^\d{8,14}$"),
    _field("isbn", "ISBN", FieldType.TEXT,
           description="International Standard Book Number (for books)"),
    _field("mpn", "MPN", FieldType.TEXT, description="Manufacturer Part Number", max_length=100),

    # === Status ===
    _field("status", "Status", FieldType.ENUM,
           description="Product availability status", allowed_values=STATUS_VALUES),
    _field("visibility", "Visibility", FieldType.ENUM,
           description="Product visibility in catalog", allowed_values=VISIBILITY_VALUES),
    _field("condition", "Condition", FieldType.ENUM,
           description="Product condition", allowed_values=CONDITION_VALUES),

    # === Attributes ===
    _field("features", "Features", FieldType.ARRAY,
           description="Key product features (comma-separated)"),
    _field("warranty", "Warranty (months)", FieldType.INTEGER,
           description="Warranty period in months", min=0, max=120),
    _field("taxRule", "Tax Rule", FieldType.TEXT, description="Tax rule identifier or name"),

    # === SEO ===
    _field("metaTitle", "SEO Title", FieldType.TEXT, description="SEO meta title", max_length=160),
    _field("metaDescription", "SEO Description", FieldType.TEXT,
           description="SEO meta description", max_length=320),

    # === Dates ===
    _field("availableDate", "Available Date", FieldType.DATE,
           description="Product availability date (YYYY-MM-DD)"),
    _field("discontinueDate", "Discontinue Date", FieldType.DATE,
           description="Product discontinuation date (YYYY-MM-DD)"),
]

PRODUCT_FIELD_REGISTRY: DescriptorRegistry = as_registry(PRODUCT_FIELDS)

# Header spellings seen in supplier exports, used for mapping auto-detection
COMMON_FIELD_ALIASES: Dict[str, List[str]] = {
    "sku": ["sku", "product_code", "item_code", "article_number", "part_number", "code"],
    "name": ["name", "title", "product_name", "item_name", "product_title"],
    "description": ["description", "long_description", "details", "product_description"],
    "shortDescription": ["short_description", "summary", "brief", "excerpt"],
    "price": ["price", "cost", "amount", "unit_price", "selling_price", "retail_price"],
    "priceWithTax": ["price_with_tax", "price_incl_tax", "gross_price", "final_price"],
    "wholesalePrice": ["wholesale_price", "cost_price", "purchase_price", "trade_price"],
    "category": ["category", "cat", "product_category", "type", "group"],
    # "manufacturer" is left out: it is its own field and matches exactly
    "brand": ["brand", "make", "vendor", "producer"],
    "stock": ["stock", "quantity", "qty", "available", "inventory", "stock_quantity"],
    "weight": ["weight", "mass", "kg", "grams", "weight_kg"],
    "ean": ["ean", "barcode", "ean13", "gtin", "upc"],
    # no "active"/"visible": those read as values of status and visibility, not headers
    "status": ["status", "state", "enabled"],
    "tags": ["tags", "keywords", "labels", "categories"],
    "email": ["email", "e-mail", "supplier_email", "contact_email"],
}


class FieldGroup(BaseModel):
    label: str
    fields: List[str]


# Display grouping of PRODUCT_FIELDS; every key appears in exactly one group
FIELD_GROUPS: Dict[str, FieldGroup] = {
    "basic": FieldGroup(label="Basic Information",
                        fields=["sku", "name", "description", "shortDescription"]),
    "pricing": FieldGroup(label="Pricing & Stock",
                          fields=["price", "priceWithTax", "wholesalePrice", "stock", "minStock"]),
    "categorization": FieldGroup(label="Categories & Classification",
                                 fields=["category", "brand", "manufacturer", "supplier", "email", "tags"]),
    "physical": FieldGroup(label="Physical Properties",
                           fields=["weight", "dimensions", "color", "size", "material"]),
    "identifiers": FieldGroup(label="Product Identifiers", fields=["ean", "isbn", "mpn"]),
    "status": FieldGroup(label="Status & Visibility", fields=["status", "visibility", "condition"]),
    "attributes": FieldGroup(label="Additional Attributes", fields=["features", "warranty", "taxRule"]),
    "seo": FieldGroup(label="SEO & Marketing", fields=["metaTitle", "metaDescription"]),
    "dates": FieldGroup(label="Important Dates", fields=["availableDate", "discontinueDate"]),
}


class ImportTemplate(BaseModel):
    id: str
    name: str
    description: str = ""
    version: str = "1.0"
    field_keys: List[str]
    sample_rows: List[Dict[str, str]] = []

    @model_validator(mode="after")
    def keys_are_known(self):
        unknown = [k for k in self.field_keys if k not in PRODUCT_FIELD_REGISTRY]
        if unknown:
            raise ValueError(f"template references unknown fields: {unknown}")
        return self

    @property
    def descriptors(self) -> List[FieldDescriptor]:
        return [PRODUCT_FIELD_REGISTRY[k] for k in self.field_keys]


DEFAULT_TEMPLATE = ImportTemplate(
    id="basic-product-import",
    name="Basic Product Import",
    description="Standard template for importing basic product information",
    field_keys=["sku", "name", "description", "price", "stock", "category", "brand", "status"],
    sample_rows=[
        {
            "sku": "DEMO-001",
            "name": "Premium Wireless Headphones",
            "description": "High-quality audio experience with active noise cancellation and 30-hour battery life.",
            "price": "299.99",
            "category": "Electronics > Audio > Headphones",
            "stock": "100",
            "status": "active",
            "brand": "Sony",
        },
        {
            "sku": "DEMO-002",
            "name": "Smart Fitness Tracker",
            "description": "Track your daily activities, heart rate, and sleep patterns with this advanced fitness tracker.",
            "price": "199.99",
            "category": "Electronics > Wearables > Fitness",
            "stock": "50",
            "status": "active",
            "brand": "Fitbit",
        },
        {
            "sku": "DEMO-003",
            "name": "Ergonomic Office Chair",
            "description": "Comfortable office chair with lumbar support and adjustable height for all-day productivity.",
            "price": "449.99",
            "category": "Furniture > Office > Chairs",
            "stock": "25",
            "status": "active",
            "brand": "Herman Miller",
        },
    ],
)
