# tests/test_autofix.py
import asyncio

import pytest

from catalog_import.schemas.fields import PRODUCT_FIELD_REGISTRY
from catalog_import.tasks.autofix import (
    FIX_TRANSFORMS,
    generate_auto_fix_suggestions,
    generate_auto_fix_suggestions_async,
)
from catalog_import.tasks.validation import validate_data


def single_suggestion(make_dataset, header, field_key, value):
    dataset = make_dataset([header], [value])
    batch = generate_auto_fix_suggestions(
        dataset, {header: field_key}, {field_key: PRODUCT_FIELD_REGISTRY[field_key]},
    )
    assert len(batch.suggestions) == 1
    return batch.suggestions[0]


class TestTransforms:
    def test_comma_decimal(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Weight", "weight", "12,5")
        assert suggestion.preview.before == "12,5"
        assert suggestion.preview.after == "12.5"
        assert suggestion.confidence == 0.9
        assert suggestion.applicable is True

    def test_drop_fraction(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Stock", "stock", "12.7")
        assert suggestion.preview.after == "12"
        assert suggestion.confidence == 0.8

    def test_drop_fraction_of_negative_truncates_toward_zero(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Stock", "stock", "-3.5")
        assert suggestion.preview.after == "-3"

    def test_drop_fraction_of_huge_value(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Stock", "stock", "9" * 5000 + ".5")
        assert suggestion.applicable is True
        assert suggestion.preview.after == "9" * 5000

    @pytest.mark.parametrize("value, expected", [("-0.5", "0"), (".5", "0"), ("1.25e1", "12")])
    def test_drop_fraction_edge_forms(self, make_dataset, value, expected):
        suggestion = single_suggestion(make_dataset, "Stock", "stock", value)
        assert suggestion.preview.after == expected

    def test_truncate(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Title", "metaTitle", "y" * 200)
        assert suggestion.preview.after == "y" * 160
        assert suggestion.description == "Truncate to 160 characters"
        assert suggestion.confidence == 0.7

    def test_dedupe(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Tags", "tags", "red, red, blue")
        assert suggestion.preview.after == "red, blue"
        assert suggestion.confidence == 0.95

    def test_enum_fuzzy_match(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Status", "status", "actve")
        assert suggestion.preview.after == "active"
        assert suggestion.confidence == 0.85

    def test_date_reformat(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Available", "availableDate", "15/01/2024")
        assert suggestion.preview.after == "2024-01-15"
        assert suggestion.confidence == 0.75

    def test_impossible_fix_is_listed_but_not_applicable(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Stock", "stock", "1.2.3")
        assert suggestion.applicable is False
        assert suggestion.preview.after == suggestion.preview.before == "1.2.3"

    def test_impossible_date_is_not_applicable(self, make_dataset):
        suggestion = single_suggestion(make_dataset, "Available", "availableDate", "31/02/2024")
        assert suggestion.applicable is False

    def test_every_fixable_code_has_a_transform(self):
        fixable_codes = {
            "number_comma_decimal", "number_invalid", "integer_invalid", "text_too_long",
            "enum_invalid", "date_invalid", "array_duplicates",
        }
        assert fixable_codes == set(FIX_TRANSFORMS)

    def test_confidences_are_on_the_ladder(self):
        for _, confidence in FIX_TRANSFORMS.values():
            assert 0.7 <= confidence <= 0.95


class TestBatch:
    def test_non_fixable_issues_are_skipped(self, make_dataset):
        dataset = make_dataset(["Price", "Status"], ["0", "xyz"])
        registry = {k: PRODUCT_FIELD_REGISTRY[k] for k in ("price", "status")}
        batch = generate_auto_fix_suggestions(dataset, {"Price": "price", "Status": "status"}, registry)
        assert batch.suggestions == []
        assert batch.total_affected_rows == 0
        assert batch.estimated_time == 0

    def test_affected_rows_are_distinct(self, make_dataset):
        dataset = make_dataset(
            ["Weight", "Tags"],
            ["1,5", "a, a"],
            ["2", "b"],
            ["3,5", ""],
        )
        registry = {k: PRODUCT_FIELD_REGISTRY[k] for k in ("weight", "tags")}
        batch = generate_auto_fix_suggestions(dataset, {"Weight": "weight", "Tags": "tags"}, registry)
        assert [s.issue.row for s in batch.suggestions] == [0, 0, 2]
        assert batch.total_affected_rows == 2
        assert batch.estimated_time == 1

    def test_estimated_time_rounds_up_per_hundred_rows(self, make_dataset):
        dataset = make_dataset(["Weight"], *[["%d,5" % i] for i in range(150)])
        batch = generate_auto_fix_suggestions(dataset, {"Weight": "weight"}, {"weight": PRODUCT_FIELD_REGISTRY["weight"]})
        assert batch.total_affected_rows == 150
        assert batch.estimated_time == 2

    def test_issue_ids_point_into_flat_issue_list(self, make_dataset):
        dataset = make_dataset(["SKU", "Name", "Price"], ["A-1", "TV", "12,5"])
        mapping = {"SKU": "sku", "Name": "name", "Price": "price"}
        result = validate_data(dataset, mapping)
        batch = generate_auto_fix_suggestions(dataset, mapping, result=result)

        assert len(batch.suggestions) == 1
        suggestion = batch.suggestions[0]
        assert result.issues[int(suggestion.issue_id)] == suggestion.issue

    def test_reusing_result_matches_fresh_run(self, make_dataset):
        dataset = make_dataset(
            ["SKU", "Name", "Price", "Tags"],
            ["DUP-1", "Lamp", "12,5", "x, x"],
            ["DUP-1", "Desk", "8", "y"],
        )
        mapping = {"SKU": "sku", "Name": "name", "Price": "price", "Tags": "tags"}
        fresh = generate_auto_fix_suggestions(dataset, mapping)
        reused = generate_auto_fix_suggestions(dataset, mapping, result=validate_data(dataset, mapping))
        assert fresh.model_dump() == reused.model_dump()

    def test_repeated_runs_are_identical(self, make_dataset):
        dataset = make_dataset(["SKU", "Name", "Price"], ["DUP-1", "Lamp", "1,5"], ["DUP-1", "Desk", "2,5"])
        mapping = {"SKU": "sku", "Name": "name", "Price": "price"}
        assert generate_auto_fix_suggestions(dataset, mapping) == generate_auto_fix_suggestions(dataset, mapping)

    def test_fix_does_not_touch_dataset(self, make_dataset):
        dataset = make_dataset(["Weight"], ["12,5"])
        generate_auto_fix_suggestions(dataset, {"Weight": "weight"}, {"weight": PRODUCT_FIELD_REGISTRY["weight"]})
        assert dataset.rows == [["12,5"]]


def test_async_batch_matches_sync(make_dataset):
    dataset = make_dataset(
        ["SKU", "Stock", "Tags"],
        ["A-1", "12.7", "red, red"],
        ["A-1", "4", "blue"],
        ["B-2", "1,5", "green, green, green"],
    )
    mapping = {"SKU": "sku", "Stock": "stock", "Tags": "tags"}

    expected = generate_auto_fix_suggestions(dataset, mapping)
    actual = asyncio.run(generate_auto_fix_suggestions_async(dataset, mapping))

    assert actual.model_dump_json() == expected.model_dump_json()
