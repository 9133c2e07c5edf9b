# catalog_import/utils/parser.py
import io
from typing import Union

import pandas as pd

from catalog_import.schemas.fields import Dataset, ImportTemplate


def parse_csv(content: Union[str, bytes]) -> Dataset:
    """Raw CSV text/bytes -> Dataset with every cell kept as text."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValueError("Invalid file encoding, please save as UTF-8 (with or without BOM).")
    else:
        content = content.lstrip("\ufeff")

    if not content.strip():
        raise ValueError("CSV has no headers or is empty.")

    try:
        df = pd.read_csv(io.StringIO(content), dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise ValueError("CSV has no headers or is empty.")
    except pd.errors.ParserError as exc:
        raise ValueError(f"CSV could not be parsed: {exc}")

    df = df.fillna("")
    return Dataset(headers=[str(c) for c in df.columns], rows=df.values.tolist())


def build_template_csv(template: ImportTemplate) -> str:
    """Header row of field labels followed by the template's sample rows."""
    keys = template.field_keys
    df = pd.DataFrame(
        [[row.get(k, "") for k in keys] for row in template.sample_rows],
        columns=[d.label for d in template.descriptors],
    )
    return df.to_csv(index=False)
